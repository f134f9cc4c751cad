"""Pydantic models for timetable data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Field names are ours; the comments name the upstream field each one is read from.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Season(str, Enum):
    """Which of the two daily bell schedules is in force."""

    WINTER = "winter"
    SUMMER = "summer"


class UserCredential(BaseModel):
    """Tokens and profile returned by the ucode token exchange.

    Obtained fresh for every aggregation and never persisted.
    """

    access_token: str
    refresh_token: str
    student_id: str  # user_info.username
    display_name: str  # user_info.nickName
    phone: str  # user_info.phone, already masked upstream ("138****1234")


class AcademicTerm(BaseModel):
    """One semester of a school year."""

    school_year: str  # xn, e.g. "2025-2026"
    term_number: int  # xq
    is_current: bool  # dqxqbj != 0
    start_date: str  # qsrq
    end_date: str  # jsrq


class WeekWindow(BaseModel):
    """A numbered 7-day span within a term."""

    week_number: int
    start_date: str
    end_date: str


class CourseDetail(BaseModel):
    """A decoded course record (one pipe-delimited upstream string)."""

    name: str
    classroom: str | None = None  # "无" upstream means no room
    section_label: str  # teaching class, e.g. "23软件1班"
    teachers: list[str] = Field(default_factory=list)
    slot_number: int
    weekday: int
    color_tag: str
    span_count: int  # number of consecutive slots the course occupies
    course_code: str


class CourseSlot(BaseModel):
    """One daily period. ``course`` is None for a free period."""

    slot_number: int
    course: CourseDetail | None = None


class DaySchedule(BaseModel):
    """All periods of one calendar day (weekday 1 = Monday)."""

    weekday: int
    slots: list[CourseSlot] = Field(default_factory=list)


class AggregatedSchedule(BaseModel):
    """A whole term of courses, keyed by week number, plus today's bell schedule."""

    weeks: dict[int, list[DaySchedule]]
    time_table: list[tuple[str, str]]
    season: Season
    from_cache: bool = False


class CacheEntry(BaseModel):
    """Aggregated weeks held by the result cache."""

    weeks: dict[int, list[DaySchedule]]
    cached_at: datetime


class CacheStats(BaseModel):
    total: int
    valid: int


class SimulatorResult(BaseModel):
    """Credential headers recovered by the browser fallback. Either may be missing."""

    recovered_basic: str | None = None
    recovered_bearer: str | None = None


class TermMetadata(BaseModel):
    """All known terms plus the week windows of the current one."""

    terms: list[AcademicTerm]
    weeks: list[WeekWindow]


class SeasonTimetable(BaseModel):
    season: Season
    time_table: list[tuple[str, str]]


class UsageStats(BaseModel):
    """Request totals kept by the usage recorder."""

    total_requests: int = 0
    unique_users: int = 0
    last_updated_at: datetime | None = None
