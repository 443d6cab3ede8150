"""
Database configuration, session management and the retrying unit of work
"""

import time
from typing import Callable, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from .config import settings
from .core.exceptions import ConcurrentUpdateError, StorageUnavailableError
from .core.logging import get_logger
from .models.base import Base
# Import all models to ensure they're registered with SQLAlchemy
from .models import transaction, dispute, rating, notification  # noqa: F401

logger = get_logger(__name__)

T = TypeVar("T")


def build_engine(url: str, **kwargs):
    """Create an engine with the connection settings used across the app."""
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 15)
    else:
        if settings.db_host.startswith('/cloudsql/'):
            # For Cloud SQL, the host is the Unix socket directory
            connect_args.setdefault("host", '/cloudsql/' + settings.db_host.split('/cloudsql/')[1])
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_recycle", 300)

    return create_engine(
        url,
        echo=(settings.log_verbosity == "full" and settings.debug),
        connect_args=connect_args,
        **kwargs,
    )


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Database dependency for FastAPI routes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Faults worth another attempt: lock timeouts, dropped connections and lost CAS races
RETRYABLE_ERRORS = (OperationalError, StaleDataError, ConcurrentUpdateError)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, RETRYABLE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def run_in_transaction(
    db: Session,
    work: Callable[[Session], T],
    *,
    operation: str,
    attempts: int = None,
    backoff_ms: int = None,
) -> T:
    """
    Run ``work`` as one atomic read-modify-write and commit it.

    Transient storage faults roll the session back and re-run ``work`` from
    scratch, up to ``attempts`` times, then surface as
    StorageUnavailableError. Any other exception rolls back and propagates
    unchanged.
    """
    attempts = attempts or settings.storage_retry_attempts
    backoff_ms = settings.storage_retry_backoff_ms if backoff_ms is None else backoff_ms

    for attempt in range(1, attempts + 1):
        try:
            result = work(db)
            db.commit()
            return result
        except Exception as exc:
            db.rollback()
            if not _is_retryable(exc):
                raise
            if attempt == attempts:
                logger.error(
                    f"{operation} failed after {attempts} attempts: {exc}",
                    extra={"event": "storage_exhausted", "operation": operation, "attempts": attempts},
                )
                raise StorageUnavailableError(
                    "The service is temporarily unavailable. Please try again."
                ) from exc
            logger.warning(
                f"{operation} hit a transient storage fault (attempt {attempt}/{attempts}): {exc.__class__.__name__}",
                extra={"event": "storage_retry", "operation": operation, "attempt": attempt},
            )
            if backoff_ms:
                time.sleep(backoff_ms * attempt / 1000.0)
