"""Database session management."""

from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from ugc_engine.config import settings

# Create engine
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

SessionFactory = Callable[[], Session]


def get_session() -> Generator[Session, None, None]:
    """Get a database session (for FastAPI dependency injection)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(factory: SessionFactory = SessionLocal) -> Generator[Session, None, None]:
    """Open a session from ``factory``, committing on success and rolling back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
    """Get a database session as a context manager (for use outside of FastAPI)."""
    with session_scope(SessionLocal) as session:
        yield session


def init_db() -> None:
    """Initialize database connection and verify connectivity."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
