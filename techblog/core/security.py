"""Session tokens and caller identity.

The OAuth sign-in happens outside this service; what reaches us is a signed
session token whose claims carry the identity (``email``, ``name``, ``image``).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from techblog.core.config import settings
from techblog.core.exceptions import Unauthorized

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionIdentity:
    """Identity claims supplied by the OAuth provider."""
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


def create_session_token(identity: SessionIdentity, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token for ``identity``."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.SESSION_EXPIRY_MINUTES)
    )
    to_encode = {
        "sub": identity.email,
        "email": identity.email,
        "name": identity.name,
        "image": identity.image,
        "exp": expire,
        "type": "session",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    """Decode and validate a session token. Invalid or expired tokens give ``None``."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def resolve_identity(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[SessionIdentity]:
    """Turn bearer credentials into an identity, or ``None`` if there is none."""
    if credentials is None:
        return None
    payload = decode_session_token(credentials.credentials)
    if not payload or payload.get("type") != "session" or not payload.get("email"):
        return None
    return SessionIdentity(
        email=payload["email"],
        name=payload.get("name"),
        image=payload.get("image"),
    )


async def get_session_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> SessionIdentity:
    """Dependency for routes that need a signed-in caller but no permission."""
    identity = resolve_identity(credentials)
    if identity is None:
        raise Unauthorized()
    return identity
