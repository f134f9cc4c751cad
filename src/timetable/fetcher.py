"""WeekFetcher - retrieves and decodes one week of courses for a student."""

import asyncio

from src.timetable.client import UpstreamClient, bearer_authorization
from src.timetable.decoder import decode_week
from src.timetable.errors import UpstreamRejected
from src.timetable.logging import get_logger
from src.timetable.models import DaySchedule

log = get_logger(__name__)


class WeekFetcher:
    """Week course endpoint at /gateway/xgwork/appCourseTable/getListByNoWeek2.

    The payload's ``data`` is a list of 7 days, each a list of raw course
    strings (see decoder.py).
    """

    URL_PATH = "/gateway/xgwork/appCourseTable/getListByNoWeek2"

    def __init__(self, client: UpstreamClient) -> None:
        self.client = client

    async def fetch_week(
        self, token: str, student_id: str, week_start_date: str
    ) -> list[DaySchedule]:
        """Fetch the week starting on ``week_start_date``.

        Args:
            token: Access token from the credential exchange.
            student_id: Student number (user_info.username).
            week_start_date: First day of the week as sent by the weeks endpoint.

        Returns:
            One DaySchedule per upstream day, weekday = position + 1.

        Raises:
            AuthFailure, UpstreamUnavailable, UpstreamRejected: From the transport,
                or UpstreamRejected when ``data`` is not a list of days.
        """
        payload = await asyncio.to_thread(
            self.client.get_json,
            self.URL_PATH,
            authorization=bearer_authorization(token),
            params={"no": student_id, "startDate": week_start_date},
        )

        days = payload.get("data")
        if not isinstance(days, list) or not all(isinstance(d, list) or d is None for d in days):
            raise UpstreamRejected(
                f"Week course payload for {week_start_date} has no day list",
                body=str(payload)[:500],
            )

        week = decode_week(days)
        log.debug(
            "week_fetched",
            start_date=week_start_date,
            days=len(week),
            courses=sum(1 for day in week for slot in day.slots if slot.course is not None),
        )
        return week
