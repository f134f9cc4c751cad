"""In-memory result cache for aggregated term schedules.

ScheduleCache keeps one entry per raw ucode and expires it a fixed time after
insertion. Expired entries are removed when a read finds them; nothing sweeps
in the background. The clock is injectable so expiry can be tested without
waiting.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from src.timetable.logging import get_logger
from src.timetable.models import CacheEntry, CacheStats, DaySchedule

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _copy_weeks(weeks: dict[int, list[DaySchedule]]) -> dict[int, list[DaySchedule]]:
    return {week: [day.model_copy(deep=True) for day in days] for week, days in weeks.items()}


class ScheduleCache:
    """TTL cache of ``{week_number: [DaySchedule]}`` maps keyed by ucode.

    Entries are deep copies: changing a schedule returned by ``get`` or passed
    to ``put`` never alters what later reads see.

    Safe to share between threads and tasks: each operation holds the lock
    for a single key. Two concurrent misses for the same ucode both fetch;
    the last ``put`` wins.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize ScheduleCache.

        Args:
            ttl: Lifetime of an entry, measured from insertion.
            clock: Returns the current aware datetime.
        """
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_valid(self, entry: CacheEntry, now: datetime) -> bool:
        return now - entry.cached_at < self.ttl

    def get(self, identifier: str) -> dict[int, list[DaySchedule]] | None:
        """Return the cached weeks for ``identifier``, or None on miss/expiry."""
        now = self.clock()
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            if not self._is_valid(entry, now):
                del self._entries[identifier]
                logger.info(
                    "cache_expired",
                    age_hours=(now - entry.cached_at).total_seconds() / 3600,
                )
                return None
            return _copy_weeks(entry.weeks)

    def put(self, identifier: str, weeks: dict[int, list[DaySchedule]]) -> None:
        entry = CacheEntry(weeks=_copy_weeks(weeks), cached_at=self.clock())
        with self._lock:
            self._entries[identifier] = entry
        logger.debug("cache_stored", weeks=len(weeks))

    def invalidate(self, identifier: str) -> None:
        with self._lock:
            removed = self._entries.pop(identifier, None)
        if removed is None:
            logger.debug("cache_invalidate_skipped", reason="not_cached")
        else:
            logger.info("cache_invalidated")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Count all entries and those still within their TTL."""
        now = self.clock()
        with self._lock:
            entries = list(self._entries.values())
        return CacheStats(
            total=len(entries),
            valid=sum(1 for entry in entries if self._is_valid(entry, now)),
        )
