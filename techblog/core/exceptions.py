"""Custom exception classes for the blog back office."""

from fastapi import status


class TechBlogError(Exception):
    """Base exception for the back office. Rendered as ``{"error": message}``."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(TechBlogError):
    """Raised when a referenced Permission, Role or User does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, identifier=None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found")


class DuplicateSlugError(TechBlogError):
    """Raised when a slug is already taken."""
    pass


class DuplicateNameError(TechBlogError):
    """Raised when a unique name is already taken."""
    pass


class ProtectedResourceError(TechBlogError):
    """Raised on an attempt to delete or retag a system role."""

    status_code = status.HTTP_403_FORBIDDEN


class OperationFailedError(TechBlogError):
    """Raised when the storage layer fails underneath a service call."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class Unauthorized(TechBlogError):
    """No resolvable caller identity. Raised only by route guards."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(TechBlogError):
    """Identity resolved but the check failed. Raised only by route guards."""

    status_code = status.HTTP_403_FORBIDDEN
