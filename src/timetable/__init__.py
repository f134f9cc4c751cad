"""Campus timetable aggregation for the FJCPC app gateway.

Resolves a student ucode to gateway credentials, locates the current term,
fetches and decodes every week of it, and caches the result for a day.
"""

from src.timetable.aggregate import Aggregator, FetchMode
from src.timetable.cache import ScheduleCache
from src.timetable.decoder import decode_course_string
from src.timetable.models import AggregatedSchedule, DaySchedule, Season
from src.timetable.season import season_for, timetable_for
from src.timetable.service import ScheduleService

__all__ = [
    "ScheduleService",
    "Aggregator",
    "FetchMode",
    "ScheduleCache",
    "AggregatedSchedule",
    "DaySchedule",
    "Season",
    "decode_course_string",
    "season_for",
    "timetable_for",
]
