import asyncio
import unittest

from src.timetable.aggregate import Aggregator, FetchMode
from src.timetable.errors import EmptyInput, MissingCredentials, UpstreamUnavailable
from src.timetable.models import CourseSlot, DaySchedule, WeekWindow


def _weeks(*numbers: int) -> list[WeekWindow]:
    return [
        WeekWindow(week_number=n, start_date=f"2025-09-{n:02d}", end_date=f"2025-09-{n + 6:02d}")
        for n in numbers
    ]


class ScriptedSource:
    """Returns days in reversed weekday order; fails for chosen start dates."""

    def __init__(self, failing: set[str] | None = None, delay: float = 0.0) -> None:
        self.failing = failing or set()
        self.delay = delay
        self.requested: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_week(self, token: str, student_id: str, week_start_date: str) -> list[DaySchedule]:
        self.requested.append(week_start_date)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if week_start_date in self.failing:
                raise UpstreamUnavailable("gateway timeout", status=504)
            return [
                DaySchedule(weekday=weekday, slots=[CourseSlot(slot_number=1)])
                for weekday in range(7, 0, -1)
            ]
        finally:
            self.in_flight -= 1


class StaggeredSource:
    """Later weeks answer sooner; each week's slot number is its start day."""

    def __init__(self, slowest: float = 0.05) -> None:
        self.slowest = slowest
        self.completed: list[str] = []

    async def fetch_week(self, token: str, student_id: str, week_start_date: str) -> list[DaySchedule]:
        day = int(week_start_date[-2:])
        await asyncio.sleep(self.slowest / day)
        self.completed.append(week_start_date)
        return [
            DaySchedule(weekday=weekday, slots=[CourseSlot(slot_number=day)])
            for weekday in range(7, 0, -1)
        ]


class TestAggregator(unittest.IsolatedAsyncioTestCase):
    async def test_completion_order_does_not_change_result(self) -> None:
        weeks = _weeks(1, 2, 3, 4, 5)
        source = StaggeredSource()
        parallel = await Aggregator(source).aggregate(
            "tok", "245810101", weeks, FetchMode.PARALLEL
        )
        sequential = await Aggregator(StaggeredSource()).aggregate(
            "tok", "245810101", weeks, FetchMode.SEQUENTIAL
        )

        self.assertEqual(
            source.completed,
            ["2025-09-05", "2025-09-04", "2025-09-03", "2025-09-02", "2025-09-01"],
        )
        self.assertEqual(parallel, sequential)
        for number, days in parallel.items():
            self.assertEqual({slot.slot_number for day in days for slot in day.slots}, {number})

    async def test_failed_week_is_dropped(self) -> None:
        source = ScriptedSource(failing={"2025-09-02"})
        result = await Aggregator(source).aggregate("tok", "245810101", _weeks(1, 2, 3))

        self.assertEqual(set(result), {1, 3})

    async def test_failed_week_is_dropped_sequentially(self) -> None:
        source = ScriptedSource(failing={"2025-09-02"})
        result = await Aggregator(source).aggregate(
            "tok", "245810101", _weeks(1, 2, 3), FetchMode.SEQUENTIAL
        )

        self.assertEqual(set(result), {1, 3})

    async def test_days_sorted_by_weekday(self) -> None:
        result = await Aggregator(ScriptedSource()).aggregate("tok", "245810101", _weeks(1, 2))

        for days in result.values():
            self.assertEqual([day.weekday for day in days], [1, 2, 3, 4, 5, 6, 7])

    async def test_modes_produce_identical_content(self) -> None:
        weeks = _weeks(3, 1, 2)
        parallel = await Aggregator(ScriptedSource(failing={"2025-09-01"})).aggregate(
            "tok", "245810101", weeks, FetchMode.PARALLEL
        )
        sequential = await Aggregator(ScriptedSource(failing={"2025-09-01"})).aggregate(
            "tok", "245810101", weeks, FetchMode.SEQUENTIAL
        )

        self.assertEqual(parallel, sequential)

    async def test_sequential_runs_in_week_order(self) -> None:
        source = ScriptedSource()
        await Aggregator(source).aggregate("tok", "245810101", _weeks(3, 1, 2), FetchMode.SEQUENTIAL)

        self.assertEqual(source.requested, ["2025-09-01", "2025-09-02", "2025-09-03"])
        self.assertEqual(source.max_in_flight, 1)

    async def test_parallel_fans_out_every_week(self) -> None:
        source = ScriptedSource(delay=0.01)
        await Aggregator(source).aggregate("tok", "245810101", _weeks(*range(1, 9)))

        self.assertEqual(source.max_in_flight, 8)

    async def test_max_concurrency_bounds_fan_out(self) -> None:
        source = ScriptedSource(delay=0.01)
        result = await Aggregator(source, max_concurrency=2).aggregate(
            "tok", "245810101", _weeks(*range(1, 9))
        )

        self.assertEqual(len(result), 8)
        self.assertLessEqual(source.max_in_flight, 2)

    async def test_empty_weeks_rejected(self) -> None:
        with self.assertRaises(EmptyInput):
            await Aggregator(ScriptedSource()).aggregate("tok", "245810101", [])

    async def test_missing_credentials_rejected(self) -> None:
        source = ScriptedSource()
        with self.assertRaises(MissingCredentials):
            await Aggregator(source).aggregate("", "245810101", _weeks(1))
        with self.assertRaises(MissingCredentials):
            await Aggregator(source).aggregate("tok", "", _weeks(1))
        self.assertEqual(source.requested, [])

    def test_invalid_max_concurrency(self) -> None:
        with self.assertRaises(ValueError):
            Aggregator(ScriptedSource(), max_concurrency=0)


if __name__ == "__main__":
    unittest.main()
