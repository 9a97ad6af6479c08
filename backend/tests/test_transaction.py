"""
Tests for the serializable transaction wrapper and its retry policy.
"""

import sqlite3

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from attendance.core.exceptions import NotAttendingError, TransactionConflictError
from attendance.db.transaction import retry_reason, run_in_transaction
from attendance.models.event import Event


def locked_error() -> OperationalError:
    return OperationalError("BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked"))


def unique_error() -> IntegrityError:
    return IntegrityError(
        "INSERT INTO attendance_records",
        {},
        sqlite3.IntegrityError("UNIQUE constraint failed: attendance_records.event_id, attendance_records.user_id"),
    )


def test_retry_reason_classification():
    """Retryable database errors are recognised, others are not."""
    assert retry_reason(locked_error()) == "locked"
    assert retry_reason(unique_error()) == "unique_violation"
    assert retry_reason(OperationalError("SELECT 1", {}, sqlite3.OperationalError("no such table: x"))) is None


@pytest.mark.asyncio
async def test_transient_conflict_is_retried(session_factory):
    """A transient conflict is retried until it succeeds."""
    calls = []

    async def flaky(db):
        calls.append(1)
        if len(calls) < 3:
            raise locked_error()
        return await db.scalar(select(Event.id).limit(1))

    assert await run_in_transaction(session_factory, flaky, max_attempts=5) is None
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_conflict(session_factory):
    """Persistent conflicts end in TransactionConflictError."""
    async def always_locked(db):
        raise locked_error()

    with pytest.raises(TransactionConflictError) as exc_info:
        await run_in_transaction(session_factory, always_locked, max_attempts=2)
    assert exc_info.value.attempts == 2


@pytest.mark.asyncio
async def test_business_errors_are_not_retried(session_factory):
    """Business errors surface on the first attempt."""
    calls = []

    async def rejected(db):
        calls.append(1)
        raise NotAttendingError()

    with pytest.raises(NotAttendingError):
        await run_in_transaction(session_factory, rejected, max_attempts=5)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failed_attempt_rolls_back(session_factory, make_event):
    """Writes from a failed attempt are rolled back."""
    event = await make_event(title="Before")

    async def rename_then_fail(db):
        stored = await db.get(Event, event.id)
        stored.title = "After"
        await db.flush()
        raise NotAttendingError()

    with pytest.raises(NotAttendingError):
        await run_in_transaction(session_factory, rename_then_fail)

    async def read_title(db):
        return (await db.get(Event, event.id)).title

    assert await run_in_transaction(session_factory, read_title) == "Before"
