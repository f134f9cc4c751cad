"""Aggregation of a whole term of week schedules.

Fans WeekFetcher calls out across every week window of the term and merges
the results into a ``{week_number: [DaySchedule, ...]}`` map. A week whose
fetch fails is logged and left out; the remaining weeks are still returned.
"""

import asyncio
from enum import Enum
from typing import Protocol

from src.timetable.errors import EmptyInput, MissingCredentials, PartialAggregationLoss
from src.timetable.logging import get_logger
from src.timetable.models import DaySchedule, WeekWindow

log = get_logger(__name__)


class FetchMode(str, Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class WeekSource(Protocol):
    async def fetch_week(
        self, token: str, student_id: str, week_start_date: str
    ) -> list[DaySchedule]: ...


class Aggregator:
    """Drives one fetch per week and assembles the term map.

    In parallel mode every week gets its own task at once unless
    ``max_concurrency`` is set, in which case a semaphore caps the number of
    fetches in flight.
    """

    def __init__(self, source: WeekSource, *, max_concurrency: int | None = None) -> None:
        """Initialize Aggregator.

        Args:
            source: Anything with WeekFetcher's ``fetch_week`` coroutine.
            max_concurrency: Cap on simultaneous fetches in parallel mode (None = no cap).
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.source = source
        self.max_concurrency = max_concurrency

    async def aggregate(
        self,
        token: str,
        student_id: str,
        weeks: list[WeekWindow],
        mode: FetchMode = FetchMode.PARALLEL,
    ) -> dict[int, list[DaySchedule]]:
        """Fetch every week of ``weeks``.

        Args:
            token: Access token.
            student_id: Student number.
            weeks: Week windows of the term.
            mode: PARALLEL (all at once) or SEQUENTIAL (ascending week number).

        Returns:
            Map of week number to that week's days sorted by weekday. Weeks
            whose fetch failed are absent.

        Raises:
            EmptyInput: If ``weeks`` is empty.
            MissingCredentials: If ``token`` or ``student_id`` is empty.
        """
        if not weeks:
            raise EmptyInput("Semester info must not be empty")
        if not token or not student_id:
            raise MissingCredentials("Student ID or User token must be provided")

        if mode == FetchMode.SEQUENTIAL:
            results = [
                await self._fetch_one(token, student_id, week, len(weeks))
                for week in sorted(weeks, key=lambda w: w.week_number)
            ]
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
            results = await asyncio.gather(
                *(self._fetch_one(token, student_id, week, len(weeks), semaphore) for week in weeks)
            )

        courses: dict[int, list[DaySchedule]] = {}
        for result in results:
            if isinstance(result, PartialAggregationLoss):
                continue
            week_number, days = result
            # Weekday echoed per record is authoritative for the order
            courses[week_number] = sorted(days, key=lambda day: day.weekday)

        dropped = len(weeks) - len(courses)
        log.info(
            "term_aggregated",
            mode=mode.value,
            weeks_requested=len(weeks),
            weeks_returned=len(courses),
            weeks_dropped=dropped,
        )
        return courses

    async def _fetch_one(
        self,
        token: str,
        student_id: str,
        week: WeekWindow,
        total: int,
        semaphore: asyncio.Semaphore | None = None,
    ) -> tuple[int, list[DaySchedule]] | PartialAggregationLoss:
        log.debug("week_requested", week=week.week_number, total=total, start_date=week.start_date)
        try:
            if semaphore is None:
                days = await self.source.fetch_week(token, student_id, week.start_date)
            else:
                async with semaphore:
                    days = await self.source.fetch_week(token, student_id, week.start_date)
        except Exception as e:
            loss = PartialAggregationLoss(week.week_number, e)
            log.error(
                "week_dropped",
                week=week.week_number,
                start_date=week.start_date,
                error=str(e),
                type=type(e).__name__,
            )
            return loss
        return week.week_number, days
