"""
Serializable transaction wrapper with retry.

CONCURRENCY STRATEGY: Serializable Transactions with Retry
==========================================================

Problem:
  Two users join the last open slot simultaneously.
  Both count confirmed attendees, both see one free seat, both commit CONFIRMED.
  Result: Oversubscription.

Solution:
  Every attendance operation reads the capacity snapshot and writes the new
  record inside ONE serializable transaction. The store then guarantees that
  at most one of the racing transactions commits; the loser fails with a
  serialization error (PostgreSQL 40001) or waits on the write lock (SQLite).

  The loser is not an error for the caller. We open a fresh session and run
  the whole operation again: it re-reads the snapshot, now sees the slot taken,
  and is waitlisted or rejected by the normal business rules.

  Retried:
  - serialization failures and deadlocks
  - unique-key violations on (event_id, user_id), i.e. two upserts racing to insert
  - SQLite "database is locked" and invalidated connections

  Never retried:
  - AttendanceError (business-rule violations cannot change on retry)

  When attempts run out we raise TransactionConflictError, which callers treat
  as an infrastructure failure distinct from the business taxonomy.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance.core.config import get_settings
from attendance.core.exceptions import TransactionConflictError
from attendance.core.logging import get_logger
from attendance.core.metrics import db_retries_exhausted, record_db_retry

logger = get_logger(__name__)

T = TypeVar("T")

SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
UNIQUE_VIOLATION = "23505"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def retry_reason(exc: DBAPIError) -> Optional[str]:
    """Classify a driver error as retryable; None means propagate it."""
    if exc.connection_invalidated:
        return "disconnect"

    code = _sqlstate(exc)
    if code == SERIALIZATION_FAILURE:
        return "serialization"
    if code == DEADLOCK_DETECTED:
        return "deadlock"
    if code == UNIQUE_VIOLATION:
        return "unique_violation"

    message = str(exc.orig).lower()
    if isinstance(exc, IntegrityError) and "unique constraint failed" in message:
        return "unique_violation"
    if isinstance(exc, OperationalError) and "database is locked" in message:
        return "locked"
    return None


def backoff_delay(attempt: int) -> float:
    settings = get_settings()
    ceiling = min(settings.TX_RETRY_MAX_DELAY, settings.TX_RETRY_BASE_DELAY * (2 ** (attempt - 1)))
    return random.uniform(0, ceiling)


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: Optional[int] = None,
    **kwargs: Any,
) -> T:
    """
    Run `operation(session, *args, **kwargs)` in its own transaction and commit.
    Retries the whole operation with a fresh session on transient conflicts.
    """
    attempts = max_attempts or get_settings().TX_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            async with session_factory() as session:
                async with session.begin():
                    return await operation(session, *args, **kwargs)
        except DBAPIError as exc:
            reason = retry_reason(exc)
            if reason is None:
                raise

            record_db_retry(reason)
            logger.info(
                "transaction_retry",
                operation=getattr(operation, "__name__", repr(operation)),
                attempt=attempt,
                reason=reason,
            )
            if attempt == attempts:
                db_retries_exhausted.inc()
                logger.error(
                    "transaction_retries_exhausted",
                    operation=getattr(operation, "__name__", repr(operation)),
                    attempts=attempts,
                )
                raise TransactionConflictError(attempts) from exc

            await asyncio.sleep(backoff_delay(attempt))

    # Only reachable with attempts < 1
    raise TransactionConflictError(attempts)
