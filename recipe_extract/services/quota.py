# recipe_extract/services/quota.py
"""
YouTube Data API quota tracking.

The daily allowance (10,000 units by default) resets at midnight Pacific
time, so usage is keyed by the Pacific-time date. Storage is behind
QuotaRepository; the service is always injected into its callers.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from supabase import Client

from recipe_extract.services.types import QuotaUsage

logger = logging.getLogger(__name__)

QUOTA_COSTS = {
    "SEARCH": 100,
    "VIDEOS_LIST": 1,
    "CHANNELS_LIST": 1,
    "CAPTIONS_LIST": 50,
}

DEFAULT_QUOTA_LIMIT = 10000
DATE_FORMAT = "%Y-%m-%d"
QUOTA_TIMEZONE = ZoneInfo("America/Los_Angeles")


def quota_date(now: datetime | None = None) -> str:
    """Quota day for ``now`` (defaults to the current time) as YYYY-MM-DD in Pacific time."""
    moment = now or datetime.now(QUOTA_TIMEZONE)
    if moment.tzinfo is None:
        return moment.strftime(DATE_FORMAT)
    return moment.astimezone(QUOTA_TIMEZONE).strftime(DATE_FORMAT)


class QuotaCounter(ABC):
    """What the YouTube client needs from a quota tracker."""

    @abstractmethod
    def check_quota(self, units: int) -> bool:
        pass

    @abstractmethod
    def record_usage(self, units: int, operation: str) -> None:
        pass


class QuotaRepository(ABC):
    """
    Abstract interface for per-day quota storage.
    """

    @abstractmethod
    def get_usage(self, date: str, quota_limit: int) -> QuotaUsage:
        """
        Get the usage record for a day.

        Args:
            date: Quota day (YYYY-MM-DD)
            quota_limit: Limit to report when no record exists yet

        Returns:
            QuotaUsage for that day (zero usage when absent)
        """
        pass

    @abstractmethod
    def add_usage(self, date: str, units: int, operation: str, quota_limit: int) -> QuotaUsage:
        """
        Add units to a day's usage, creating the record if needed.

        Args:
            date: Quota day (YYYY-MM-DD)
            units: Units consumed
            operation: API operation name, kept for reporting
            quota_limit: Limit stored on a newly created record

        Returns:
            The updated QuotaUsage
        """
        pass

    @abstractmethod
    def reset(self, date: str) -> None:
        pass


class InMemoryQuotaRepository(QuotaRepository):
    def __init__(self) -> None:
        self._records: dict[str, QuotaUsage] = {}
        self._lock = threading.Lock()

    def get_usage(self, date: str, quota_limit: int) -> QuotaUsage:
        with self._lock:
            record = self._records.get(date)
            if record is None:
                return QuotaUsage(date=date, units_used=0, quota_limit=quota_limit)
            return QuotaUsage(
                date=record.date,
                units_used=record.units_used,
                quota_limit=record.quota_limit,
                operations=dict(record.operations),
            )

    def add_usage(self, date: str, units: int, operation: str, quota_limit: int) -> QuotaUsage:
        with self._lock:
            record = self._records.setdefault(date, QuotaUsage(date=date, quota_limit=quota_limit))
            record.units_used += units
            record.operations[operation] = record.operations.get(operation, 0) + units
            return QuotaUsage(
                date=record.date,
                units_used=record.units_used,
                quota_limit=record.quota_limit,
                operations=dict(record.operations),
            )

    def reset(self, date: str) -> None:
        with self._lock:
            record = self._records.get(date)
            if record is not None:
                record.units_used = 0
                record.operations.clear()


class SupabaseQuotaRepository(QuotaRepository):
    TABLE_NAME = "youtube_api_quota"

    def __init__(self, client: Client):
        self._client = client

    def _fetch_row(self, date: str) -> Optional[dict]:
        result = (
            self._client.table(self.TABLE_NAME)
            .select("date, units_used, quota_limit")
            .eq("date", date)
            .limit(1)
            .execute()
        )
        rows = result.data or []
        return rows[0] if rows else None

    def get_usage(self, date: str, quota_limit: int) -> QuotaUsage:
        try:
            row = self._fetch_row(date)
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error reading quota: %s", error)
            return QuotaUsage(date=date, units_used=0, quota_limit=quota_limit)

        if not row:
            return QuotaUsage(date=date, units_used=0, quota_limit=quota_limit)
        return QuotaUsage(
            date=date,
            units_used=int(row.get("units_used") or 0),
            quota_limit=int(row.get("quota_limit") or quota_limit),
        )

    def add_usage(self, date: str, units: int, operation: str, quota_limit: int) -> QuotaUsage:
        try:
            row = self._fetch_row(date)
            if row:
                units_used = int(row.get("units_used") or 0) + units
                limit = int(row.get("quota_limit") or quota_limit)
                self._client.table(self.TABLE_NAME).update({"units_used": units_used}).eq(
                    "date", date
                ).execute()
            else:
                units_used, limit = units, quota_limit
                self._client.table(self.TABLE_NAME).insert(
                    {"date": date, "units_used": units_used, "quota_limit": limit}
                ).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error recording quota usage: %s", error)
            return QuotaUsage(date=date, units_used=units, quota_limit=quota_limit)

        logger.debug("Recorded quota: date=%s, op=%s, units=%d, total=%d", date, operation, units, units_used)
        return QuotaUsage(date=date, units_used=units_used, quota_limit=limit, operations={operation: units})

    def reset(self, date: str) -> None:
        try:
            self._client.table(self.TABLE_NAME).update({"units_used": 0}).eq("date", date).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error resetting quota: %s", error)


class YouTubeQuotaService(QuotaCounter):
    """
    Daily YouTube API quota keyed by the Pacific-time date.

    Responsibilities:
    - Answer whether an operation still fits in today's allowance
    - Record units consumed per operation
    - Provide usage statistics
    """

    def __init__(
        self,
        repository: QuotaRepository,
        daily_limit: int = DEFAULT_QUOTA_LIMIT,
        clock: Callable[[], datetime] | None = None,
    ):
        self._repo = repository
        self.daily_limit = daily_limit
        self._clock = clock

    def _today(self) -> str:
        return quota_date(self._clock() if self._clock else None)

    def check_quota(self, units: int) -> bool:
        usage = self.get_usage()
        return usage.remaining >= units

    def record_usage(self, units: int, operation: str) -> None:
        usage = self._repo.add_usage(self._today(), units, operation, self.daily_limit)
        logger.info(
            "YouTube quota used: op=%s, units=%d, total=%d/%d",
            operation,
            units,
            usage.units_used,
            usage.quota_limit,
        )

    def get_usage(self) -> QuotaUsage:
        return self._repo.get_usage(self._today(), self.daily_limit)

    def reset_quota(self, date: str | None = None) -> None:
        self._repo.reset(date or self._today())
