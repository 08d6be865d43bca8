"""
Daily analysis quota ledger.

One counter per (user, UTC calendar day). The only way to move a counter is
try_consume(), which tests and increments in a single atomic step: a single
conditional upsert in Postgres, or a lock-guarded update in memory. There is
no "read count, then write count + 1" path anywhere.
Counters are never decremented; a new day simply starts a new row.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional, Tuple
from uuid import UUID

from backend.app.core.database import Database
from backend.app.core.errors import LedgerError

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def utc_day(now: Optional[datetime] = None) -> date:
    """UTC calendar day for a timestamp. Naive datetimes are taken as UTC."""
    now = now or _now_utc()
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(timezone.utc).date()


def next_utc_midnight(now: Optional[datetime] = None) -> datetime:
    return datetime.combine(utc_day(now) + timedelta(days=1), time.min, tzinfo=timezone.utc)


def format_utc_iso(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix, e.g. 2024-01-02T00:00:00.000Z."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: int
    usage_date: date


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"quota limit must be a positive integer, got {limit!r}")


class QuotaLedger(ABC):
    """Atomic test-and-increment over per-user daily counters."""

    @abstractmethod
    async def try_consume(
        self,
        user_id: UUID,
        limit: int,
        now: Optional[datetime] = None,
    ) -> QuotaDecision:
        """
        Consume one unit of today's quota if any is left.

        Allowed: the counter is incremented and remaining = limit - new_count.
        Denied: the counter is untouched and remaining is 0.
        Raises LedgerError when the underlying store fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_usage(self, user_id: UUID, now: Optional[datetime] = None) -> int:
        """Today's count for reporting only. Never used to make a quota decision."""
        raise NotImplementedError


class PostgresQuotaLedger(QuotaLedger):

    CONSUME_SQL = """
        INSERT INTO job_analysis_usage (user_id, usage_date, usage_count)
        VALUES ($1, $2, 1)
        ON CONFLICT (user_id, usage_date)
        DO UPDATE SET usage_count = job_analysis_usage.usage_count + 1, updated_at = NOW()
        WHERE job_analysis_usage.usage_count < $3
        RETURNING usage_count
    """

    USAGE_SQL = """
        SELECT usage_count
        FROM job_analysis_usage
        WHERE user_id = $1 AND usage_date = $2
    """

    def __init__(self, database: Database):
        self.database = database

    async def try_consume(
        self,
        user_id: UUID,
        limit: int,
        now: Optional[datetime] = None,
    ) -> QuotaDecision:
        _check_limit(limit)
        day = utc_day(now)
        try:
            async with self.database.connection() as conn:
                row = await conn.fetchrow(self.CONSUME_SQL, user_id, day, limit)
        except Exception as e:
            logger.exception("Quota consume failed for user %s", user_id)
            raise LedgerError() from e

        # No row back means the WHERE guard rejected the update: already at the limit.
        if row is None:
            return QuotaDecision(allowed=False, remaining=0, usage_date=day)
        count = int(row["usage_count"])
        return QuotaDecision(allowed=True, remaining=max(limit - count, 0), usage_date=day)

    async def get_usage(self, user_id: UUID, now: Optional[datetime] = None) -> int:
        day = utc_day(now)
        try:
            async with self.database.connection() as conn:
                row = await conn.fetchrow(self.USAGE_SQL, user_id, day)
        except Exception as e:
            logger.exception("Usage lookup failed for user %s", user_id)
            raise LedgerError() from e
        return int(row["usage_count"]) if row else 0


class InMemoryQuotaLedger(QuotaLedger):
    """
    Single-process ledger for local dev and tests.

    Counters live in this process only; multi-instance deployments must use
    PostgresQuotaLedger.
    """

    def __init__(self):
        self._counts: Dict[Tuple[UUID, date], int] = {}
        self._lock = asyncio.Lock()

    async def try_consume(
        self,
        user_id: UUID,
        limit: int,
        now: Optional[datetime] = None,
    ) -> QuotaDecision:
        _check_limit(limit)
        day = utc_day(now)
        key = (user_id, day)
        async with self._lock:
            count = self._counts.get(key, 0)
            if count >= limit:
                return QuotaDecision(allowed=False, remaining=0, usage_date=day)
            count += 1
            self._counts[key] = count
        return QuotaDecision(allowed=True, remaining=limit - count, usage_date=day)

    async def get_usage(self, user_id: UUID, now: Optional[datetime] = None) -> int:
        async with self._lock:
            return self._counts.get((user_id, utc_day(now)), 0)
