"""Database connection and session management"""

from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from ..config import Settings, settings
from ..models.base import Base


def make_engine(source: Settings = settings) -> Engine:
    return create_engine(
        source.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=source.DB_POOL_SIZE,
        max_overflow=source.DB_MAX_OVERFLOW,
    )


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI

    Yields a database session and ensures it's closed after use.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """
    Session for work outside a request (background tasks)

    Uncommitted changes are rolled back when the block raises.
    """

    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables on ``bind`` (the application engine by default)"""

    # Registers every model on Base.metadata
    from .. import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
