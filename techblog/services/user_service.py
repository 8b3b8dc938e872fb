"""User service: lookup, sign-in provisioning, role assignment."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from techblog.core.exceptions import NotFoundError
from techblog.db.session import storage_errors
from techblog.models.role import Role
from techblog.models.user import User

logger = logging.getLogger("techblog")


class UserService:
    """Users are keyed by email; role assignment is an explicit admin action."""

    @staticmethod
    def get_user(db: Session, user_id: str) -> User:
        """Get a user by id."""
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_or_create_from_identity(
        db: Session,
        email: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
    ) -> User:
        """Provision the user on first sign-in. New users start without a role."""
        with storage_errors(db, "provision user"):
            user = UserService.get_user_by_email(db, email)
            if user is None:
                user = User(email=email, name=name, image=image, role_id=None)
                db.add(user)
                db.commit()
                db.refresh(user)
                logger.info(f"Created user {email} on first sign-in")
                return user

            if (name and name != user.name) or (image and image != user.image):
                user.name = name or user.name
                user.image = image or user.image
                db.commit()
                db.refresh(user)
        return user

    @staticmethod
    def list_users(
        db: Session,
        email: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """List users newest first, optionally filtered by exact email."""
        query = db.query(User)
        if email:
            query = query.filter(User.email == email)

        with storage_errors(db, "list users"):
            total = query.count()
            users = (
                query.order_by(User.created_at.desc(), User.email)
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
        return {"users": users, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def assign_role(db: Session, user_id: str, role_id: Optional[str]) -> User:
        """Point the user at ``role_id``; ``None`` detaches the role.

        Raises:
            NotFoundError: If the user or the role does not exist.
        """
        user = UserService.get_user(db, user_id)
        if role_id is not None and db.get(Role, role_id) is None:
            raise NotFoundError("Role", role_id)

        with storage_errors(db, "assign role"):
            user.role_id = role_id
            db.commit()
            db.refresh(user)

        logger.info(f"Assigned role {role_id} to user {user.email}")
        return user


user_service = UserService()
