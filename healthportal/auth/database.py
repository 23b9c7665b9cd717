"""
Healthcare Portal - Database Configuration

One SQLModel engine per process: SQLite (StaticPool) for development and
tests, a pooled PostgreSQL engine in production. The database is the single
store for accounts, sessions, reset tokens and consultations; nothing is
cached in process.

Usage:
    engine = get_engine()
    init_db(engine)
    factory = get_session_factory(engine)
"""

import logging
from typing import Callable, Optional

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from healthportal.config import settings
from healthportal.exceptions import DependencyError

logger = logging.getLogger(__name__)


def get_engine(database_url: Optional[str] = None, echo: bool = False):
    """
    Create the engine for settings.DATABASE_URL (or an override).

    SQLite shares a single connection across threads so in-memory
    databases survive between requests.
    """
    url = database_url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


def init_db(engine) -> None:
    """Create every table. Safe to call repeatedly."""
    # Import models to register them with SQLModel
    from healthportal.auth.models import Account, Session as AuthSession, ResetToken  # noqa: F401
    from healthportal.consultations.models import ConsultationRequest, Appointment  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session_factory(engine) -> Callable[[], Session]:
    def session_factory() -> Session:
        return Session(engine)

    return session_factory


def commit(db: Session) -> None:
    """
    Commit the unit of work.

    IntegrityError propagates untouched so callers can map constraint
    violations to domain errors. Any other store failure is rolled back
    and raised as DependencyError.
    """
    try:
        db.commit()
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database commit failed: %s", e.__class__.__name__)
        raise DependencyError(f"Database commit failed: {e}") from e
