"""Decoder for the gateway's pipe-delimited course strings.

Each non-empty slot of the week payload is one record:

    name|classroom|section|teachers|slot_number|weekday|color|span_count|code

- ``teachers`` is ``;``-joined ("张三;李四")
- ``classroom`` is the literal "无" when the course has no room
- numeric fields that don't parse decode to 0

Broken records never fail a week: they decode to a free slot.
"""

from typing import Any

from src.timetable.errors import MalformedRecord
from src.timetable.models import CourseDetail, CourseSlot, DaySchedule

FIELD_SEPARATOR = "|"
TEACHER_SEPARATOR = ";"
NO_CLASSROOM = "无"
RECORD_FIELDS = 9


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_course_record(record: str) -> CourseDetail:
    """Parse one record, strictly.

    Raises:
        MalformedRecord: If the record is empty or has fewer than 9 fields.
    """
    if not record:
        raise MalformedRecord("Empty course record")

    fields = record.split(FIELD_SEPARATOR)
    if len(fields) < RECORD_FIELDS:
        raise MalformedRecord(
            f"Course record has {len(fields)} fields, expected {RECORD_FIELDS}: {record!r}"
        )

    name, classroom, section, teachers, slot, weekday, color, span, code = fields[:RECORD_FIELDS]
    return CourseDetail(
        name=name,
        classroom=None if classroom == NO_CLASSROOM else classroom,
        section_label=section,
        teachers=teachers.split(TEACHER_SEPARATOR),
        slot_number=_to_int(slot),
        weekday=_to_int(weekday),
        color_tag=color,
        span_count=_to_int(span),
        course_code=code,
    )


def decode_course_string(record: str) -> CourseDetail | None:
    """Decode one record, returning None for a free or unreadable slot."""
    try:
        return parse_course_record(record)
    except MalformedRecord:
        return None


def decode_week(days: list[list[Any]]) -> list[DaySchedule]:
    """Turn the raw day-by-slot string grid into DaySchedules.

    Day index 0 is weekday 1 (Monday); slot index 0 is slot number 1.
    Non-string cells (null in the JSON) are treated as free slots.
    """
    week: list[DaySchedule] = []
    for day_index, records in enumerate(days):
        slots = [
            CourseSlot(
                slot_number=slot_index + 1,
                course=decode_course_string(record) if isinstance(record, str) else None,
            )
            for slot_index, record in enumerate(records or [])
        ]
        week.append(DaySchedule(weekday=day_index + 1, slots=slots))
    return week
