"""Seasonal bell schedule selection.

The school runs two daily schedules: a summer one from June 1 through
September 30 (afternoon and evening periods start later) and a winter one for
the rest of the year. Both have 10 periods of 45 minutes.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from src.timetable.models import Season

WINTER_TIME_TABLE: tuple[tuple[str, str], ...] = (
    ("08:00", "08:45"),
    ("08:55", "09:40"),
    ("10:00", "10:45"),
    ("10:55", "11:40"),
    ("14:00", "14:45"),
    ("14:55", "15:40"),
    ("16:00", "16:45"),
    ("16:55", "17:40"),
    ("19:00", "19:45"),
    ("19:55", "20:40"),
)

SUMMER_TIME_TABLE: tuple[tuple[str, str], ...] = (
    ("08:00", "08:45"),
    ("08:55", "09:40"),
    ("10:00", "10:45"),
    ("10:55", "11:40"),
    ("14:30", "15:15"),
    ("15:25", "16:10"),
    ("16:30", "17:15"),
    ("17:25", "18:10"),
    ("19:30", "20:15"),
    ("20:25", "21:10"),
)


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is not a valid date in that format.
    """
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e


def school_today(tz_name: str = "Asia/Shanghai") -> date:
    """Today's date at the school, regardless of the server's timezone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def season_for(day: date | str) -> Season:
    if isinstance(day, str):
        day = parse_date(day)
    if (day.month == 6 and day.day >= 1) or 7 <= day.month <= 9:
        return Season.SUMMER
    return Season.WINTER


def timetable_for(season: Season) -> list[tuple[str, str]]:
    table = SUMMER_TIME_TABLE if season == Season.SUMMER else WINTER_TIME_TABLE
    return list(table)
