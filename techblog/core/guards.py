"""Route guards: the authorization evaluator wrapped as FastAPI dependencies.

Every guard runs the same three steps and stops at the first failure:

  1. no caller identity                 -> 401 "Unauthorized"
  2. no user for that email, or no role -> 403 "Forbidden: User has no assigned role"
  3. evaluator check is False           -> 403 naming what is missing

On success the dependency returns the resolved ``User`` so handlers do not
look it up again.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from techblog.core.exceptions import Forbidden, OperationFailedError, Unauthorized
from techblog.core.security import SessionIdentity, resolve_identity, security_scheme
from techblog.db.session import get_db
from techblog.models.user import User
from techblog.services import authorization
from techblog.services.user_service import user_service

logger = logging.getLogger("techblog")

NO_ROLE_MESSAGE = "Forbidden: User has no assigned role"


@dataclass
class GuardDecision:
    """Structured outcome of a guard check."""
    allowed: bool
    status_code: int = status.HTTP_200_OK
    error: Optional[str] = None
    user: Optional[User] = None


def evaluate_guard(
    db: Session,
    identity: Optional[SessionIdentity],
    check: Callable[[Session, str], bool],
    denial_message: str,
) -> GuardDecision:
    """Run the guard steps and return a decision. Never raises."""
    if identity is None:
        return GuardDecision(False, status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    try:
        user = user_service.get_user_by_email(db, identity.email)
        if user is None or user.role_id is None:
            return GuardDecision(False, status.HTTP_403_FORBIDDEN, NO_ROLE_MESSAGE)

        if not check(db, user.id):
            logger.warning(f"Access denied for {user.email}: {denial_message}")
            return GuardDecision(False, status.HTTP_403_FORBIDDEN, denial_message, user)
    except SQLAlchemyError as e:
        logger.error(f"Error checking permission: {e}")
        return GuardDecision(False, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    return GuardDecision(True, user=user)


class Guard:
    """Base dependency. Subclasses set ``denial_message`` and implement ``check``."""

    denial_message = "Forbidden"

    def check(self, db: Session, user_id: str) -> bool:
        raise NotImplementedError

    def __call__(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
        db: Session = Depends(get_db),
    ) -> User:
        decision = evaluate_guard(db, resolve_identity(credentials), self.check, self.denial_message)
        if decision.allowed:
            return decision.user
        if decision.status_code == status.HTTP_401_UNAUTHORIZED:
            raise Unauthorized(decision.error)
        if decision.status_code == status.HTTP_403_FORBIDDEN:
            raise Forbidden(decision.error)
        raise OperationFailedError(decision.error)


class RequirePermission(Guard):
    def __init__(self, permission: str):
        self.permission = permission
        self.denial_message = f'Forbidden: Missing permission "{permission}"'

    def check(self, db: Session, user_id: str) -> bool:
        return authorization.has_permission(db, user_id, self.permission)


class RequireAnyPermission(Guard):
    def __init__(self, permissions: Iterable[str]):
        self.permissions = list(permissions)
        self.denial_message = f"Forbidden: Missing any of permissions [{', '.join(self.permissions)}]"

    def check(self, db: Session, user_id: str) -> bool:
        return authorization.has_any_permission(db, user_id, self.permissions)


class RequireResourcePermission(Guard):
    def __init__(self, resource: str, action: str):
        self.resource = resource
        self.action = action
        self.denial_message = f'Forbidden: Missing permission "{resource}.{action}"'

    def check(self, db: Session, user_id: str) -> bool:
        return authorization.has_resource_permission(db, user_id, self.resource, self.action)


class RequireAdmin(Guard):
    denial_message = "Forbidden: Only Super Admin and Admin can access this resource"

    def check(self, db: Session, user_id: str) -> bool:
        return authorization.is_admin(db, user_id)


def require_permission(permission: str) -> RequirePermission:
    return RequirePermission(permission)


def require_any_permission(permissions: Iterable[str]) -> RequireAnyPermission:
    return RequireAnyPermission(permissions)


def require_resource_permission(resource: str, action: str) -> RequireResourcePermission:
    return RequireResourcePermission(resource, action)


def require_admin() -> RequireAdmin:
    return RequireAdmin()
