"""SQLAlchemy engine, session factory and transient-failure retry."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker

from jam3a.core.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_engine(settings.database_url, pool_pre_ping=True)

SessionFactory = sessionmaker(
    bind=engine,
    class_=Session,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)

P = ParamSpec("P")
R = TypeVar("R")


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session per request lifecycle."""

    with SessionFactory() as session:
        yield session


def is_transient_error(exc: BaseException) -> bool:
    """Tell whether a storage error is a dropped connection worth retrying."""

    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def retry_transient(method: Callable[P, R]) -> Callable[P, R]:
    """Retry a repository read when the connection was invalidated.

    Only wrap reads that run before any write in their unit of work: the
    owning session is rolled back before each new attempt, which would
    silently discard earlier flushed rows. `ProductRepository.get_by_sku`
    and `CategoryRepository.get_by_name` stay unwrapped because catalog
    seeding calls them after inserting rows in the same transaction.
    """

    @wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        current_settings = get_settings()
        attempts = current_settings.db_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return method(*args, **kwargs)
            except DBAPIError as exc:
                if not is_transient_error(exc) or attempt == attempts:
                    raise
                session: Any = getattr(args[0], "_session", None)
                if session is not None:
                    session.rollback()
                logger.warning(
                    "storage_retry",
                    extra={
                        "operation": method.__qualname__,
                        "attempt": attempt,
                        "max_attempts": attempts,
                    },
                )
                time.sleep(current_settings.db_retry_backoff_seconds * attempt)
        raise RuntimeError("Retry loop exited without result.")

    return wrapper
