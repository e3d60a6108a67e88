"""
Submission guard — one in-flight submission per draft.

PENDING fails fast, COMPLETED replays the stored result to the same owner,
and a failed attempt releases the key so the customer can submit again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Generic, TypeVar

from kungfu import Result, Ok, Error

from storefront.orders._types import CheckoutError, ErrorCode

T = TypeVar("T")


class RecordState(Enum):
    """
    Guard record lifecycle.

        PENDING → COMPLETED (order stored, expires after completed_ttl)
                → released   (failure, key deleted)
    """

    PENDING = auto()
    COMPLETED = auto()


@dataclass
class _GuardRecord(Generic[T]):
    state: RecordState
    value: T | None
    owner: str | None
    created_at: datetime
    expires_at: datetime | None = None


class SubmissionGuard(Generic[T]):
    """
    In-memory guard keyed by draft id.

    Expired COMPLETED records are evicted on every begin()/complete(), so
    the map holds at most the drafts submitted within one TTL window.

    Note: single-process only; there is no distributed lock.

    Example:
        guard = SubmissionGuard[Submission]()
        match await guard.begin(draft.draft_id, owner="acc-42"):
            case Error(e):            # in flight, or another owner's draft
                return Error(e)
            case Ok(None):            # first attempt
                ...                   # proceed, then complete() or release()
            case Ok(previous):        # already done
                return Ok(previous)
    """

    def __init__(
        self,
        completed_ttl: timedelta | None = timedelta(hours=1),
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._records: dict[str, _GuardRecord[T]] = {}
        self._lock = asyncio.Lock()
        self._ttl = completed_ttl
        self._clock = clock

    def __len__(self) -> int:
        return len(self._records)

    async def begin(self, key: str, owner: str | None = None) -> Result[T | None, CheckoutError]:
        async with self._lock:
            self._evict_expired()
            existing = self._records.get(key)

            if existing is None:
                self._records[key] = _GuardRecord(
                    state=RecordState.PENDING,
                    value=None,
                    owner=owner,
                    created_at=self._clock(),
                )
                return Ok(None)

            if existing.state is RecordState.PENDING:
                return Error(
                    CheckoutError(
                        ErrorCode.SUBMISSION_IN_FLIGHT,
                        "Your order is already being submitted",
                    )
                )
            if existing.owner != owner:
                return Error(
                    CheckoutError(
                        ErrorCode.DUPLICATE_SUBMISSION,
                        "This order was already submitted",
                    )
                )
            return Ok(existing.value)

    async def complete(self, key: str, value: T) -> None:
        async with self._lock:
            self._evict_expired()
            now = self._clock()
            previous = self._records.get(key)
            self._records[key] = _GuardRecord(
                state=RecordState.COMPLETED,
                value=value,
                owner=previous.owner if previous is not None else None,
                created_at=now,
                expires_at=now + self._ttl if self._ttl is not None else None,
            )

    async def release(self, key: str) -> bool:
        async with self._lock:
            return self._records.pop(key, None) is not None

    async def state(self, key: str) -> RecordState | None:
        async with self._lock:
            record = self._records.get(key)
            return record.state if record is not None else None

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, record in self._records.items()
            if record.expires_at is not None and now >= record.expires_at
        ]
        for key in expired:
            del self._records[key]


__all__ = ("RecordState", "SubmissionGuard")
