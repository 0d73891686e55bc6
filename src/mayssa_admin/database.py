"""Database utilities."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings
from .errors import StoreAccessError


class Base(DeclarativeBase):
    """Base model for SQLAlchemy mappings."""


def _create_engine():
    settings = get_settings()
    return create_engine(
        f"sqlite:///{settings.database_path}", connect_args={"check_same_thread": False}, future=True
    )


def get_engine():
    """Return a lazily created engine instance."""

    global engine
    try:
        return engine
    except NameError:  # pragma: no cover - executed once at runtime
        engine = _create_engine()
        return engine


SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, expire_on_commit=False)


def init_database(bind=None) -> None:
    """Ensure that the database schema exists."""

    from . import models  # noqa: F401 - ensure models are imported

    Base.metadata.create_all(bind=bind or get_engine())


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit *db* when the block succeeds and roll it back otherwise.

    Database failures surface as :class:`StoreAccessError`; domain errors
    raised inside the block propagate unchanged.
    """

    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreAccessError(f"The record store rejected the write: {exc}") from exc
    except Exception:
        db.rollback()
        raise
