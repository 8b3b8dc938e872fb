"""Database engine, session factory, and dependency injection."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from techblog.core.config import settings
from techblog.core.exceptions import OperationFailedError

logger = logging.getLogger("techblog")

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back, log and re-raise storage failures as ``OperationFailedError``.

    Domain errors raised inside the block are re-raised as they are, after
    the same rollback, so nothing the block staged reaches a later commit.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage error while trying to {operation}: {e}")
        raise OperationFailedError(f"Failed to {operation}") from e
    except Exception:
        db.rollback()
        raise
