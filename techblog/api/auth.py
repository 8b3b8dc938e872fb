"""Auth API router: the signed-in caller's profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from techblog.core.security import SessionIdentity, get_session_identity
from techblog.db.session import get_db
from techblog.schemas.schemas import MeOut, UserOut
from techblog.services import authorization
from techblog.services.user_service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeOut)
async def get_me(
    db: Session = Depends(get_db),
    identity: SessionIdentity = Depends(get_session_identity),
):
    """Current user with effective permissions. Provisions the user on first sign-in."""
    user = user_service.get_or_create_from_identity(db, identity.email, identity.name, identity.image)
    return MeOut(
        user=UserOut.model_validate(user),
        permissions=authorization.get_user_permissions(db, user.id),
        is_admin=authorization.is_admin(db, user.id),
    )
