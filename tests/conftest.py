"""Shared pytest fixtures: in-memory database, API client, identities."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-session-secret")

from typing import Dict, Iterator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import techblog.models  # noqa: F401
from techblog.core.security import SessionIdentity, create_session_token
from techblog.db.base import Base
from techblog.db.seeds.seed_roles import seed_roles
from techblog.db.session import get_db
from techblog.main import app
from techblog.models.role import Role
from techblog.models.user import User


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def roles(db: Session) -> Dict[str, Role]:
    """The seeded default ladder, keyed by slug."""
    seed_roles(db)
    return {role.slug: role for role in db.query(Role).all()}


@pytest.fixture()
def make_user(db: Session):
    def _make_user(email: str, role: Optional[Role] = None, name: Optional[str] = None) -> User:
        user = User(email=email, name=name or email.split("@")[0], role_id=role.id if role else None)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


def auth_headers(email: str, name: Optional[str] = None) -> Dict[str, str]:
    token = create_session_token(SessionIdentity(email=email, name=name))
    return {"Authorization": f"Bearer {token}"}
