"""SemesterLocator - finds the current term and its week windows.

Upstream answers in pinyin-abbreviated fields:

    getXn              -> {"data": [{"xn": "2025-2026", "xq": "1", "dqxqbj": "1",
                                     "qsrq": "2025-09-01", "jsrq": "2026-01-18"}, ...]}
    getSemesterbyXn    -> {"data": [["1", "2025-09-01", "2025-09-07"], ...]}

The term list may repeat a term or keep a stale current flag on an older
entry; the last flagged entry wins.
"""

import asyncio
from typing import Any

from src.timetable.client import UpstreamClient, bearer_authorization
from src.timetable.errors import NoCurrentTerm, UpstreamRejected
from src.timetable.logging import get_logger
from src.timetable.models import AcademicTerm, WeekWindow

log = get_logger(__name__)


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def _data_list(payload: dict[str, Any], what: str) -> list[Any]:
    data = payload.get("data")
    if not isinstance(data, list):
        raise UpstreamRejected(f"{what} payload has no data list", body=str(payload)[:500])
    return data


def parse_term(item: dict[str, Any]) -> AcademicTerm:
    return AcademicTerm(
        school_year=str(item.get("xn") or ""),
        term_number=_to_int(item.get("xq")),
        is_current=_to_int(item.get("dqxqbj")) != 0,
        start_date=str(item.get("qsrq") or ""),
        end_date=str(item.get("jsrq") or ""),
    )


def parse_week_window(item: list[Any]) -> WeekWindow:
    return WeekWindow(
        week_number=_to_int(item[0]) if len(item) > 0 else 0,
        start_date=str(item[1]) if len(item) > 1 else "",
        end_date=str(item[2]) if len(item) > 2 else "",
    )


def pick_current_term(terms: list[AcademicTerm]) -> AcademicTerm:
    """Return the last term flagged current.

    Raises:
        NoCurrentTerm: If no term carries the flag.
    """
    for term in reversed(terms):
        if term.is_current:
            return term
    raise NoCurrentTerm("No current semester found")


class SemesterLocator:
    """Term and week lookups against /gateway/xgwork/appCourseTable."""

    TERMS_PATH = "/gateway/xgwork/appCourseTable/getXn"
    WEEKS_PATH = "/gateway/xgwork/appCourseTable/getSemesterbyXn"

    def __init__(self, client: UpstreamClient) -> None:
        self.client = client

    async def list_terms(self, token: str) -> list[AcademicTerm]:
        """All terms the gateway knows about, in upstream order."""
        payload = await asyncio.to_thread(
            self.client.get_json,
            self.TERMS_PATH,
            authorization=bearer_authorization(token),
        )
        terms = [parse_term(item) for item in _data_list(payload, "School year") if isinstance(item, dict)]
        log.debug("terms_listed", count=len(terms), current=sum(t.is_current for t in terms))
        return terms

    async def current_term(self, token: str) -> AcademicTerm:
        """The term currently in session.

        Raises:
            NoCurrentTerm: If the gateway flags no term as current.
        """
        term = pick_current_term(await self.list_terms(token))
        log.info("current_term_located", school_year=term.school_year, term=term.term_number)
        return term

    async def weeks_of(self, token: str, term: AcademicTerm) -> list[WeekWindow]:
        """Week windows of ``term`` in upstream order."""
        payload = await asyncio.to_thread(
            self.client.get_json,
            self.WEEKS_PATH,
            authorization=bearer_authorization(token),
            params={"xn": term.school_year, "xq": str(term.term_number)},
        )
        weeks = [parse_week_window(item) for item in _data_list(payload, "Semester") if isinstance(item, list)]
        log.debug("weeks_listed", school_year=term.school_year, term=term.term_number, count=len(weeks))
        return weeks
