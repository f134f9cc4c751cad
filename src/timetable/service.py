"""ScheduleService - the operations the serving layer calls.

Wires the pipeline together:

    cache -> credentials -> current term -> weeks -> fan-out -> cache
          -> today's season and bell schedule -> usage side effects

Errors are raised as the typed exceptions in errors.py; the serving layer
maps them to responses (NoCurrentTerm -> 404, AuthFailure -> 401, ...).
"""

import time
from collections.abc import Callable
from datetime import date, timedelta

from src.timetable.aggregate import Aggregator, FetchMode
from src.timetable.auth import CredentialResolver
from src.timetable.cache import ScheduleCache
from src.timetable.client import UpstreamClient
from src.timetable.config import TimetableConfig, get_config
from src.timetable.errors import NoCurrentTerm
from src.timetable.fetcher import WeekFetcher
from src.timetable.logging import get_logger, request_context
from src.timetable.models import (
    AggregatedSchedule,
    CacheStats,
    DaySchedule,
    SeasonTimetable,
    TermMetadata,
    UsageStats,
    UserCredential,
)
from src.timetable.season import parse_date, school_today, season_for, timetable_for
from src.timetable.semester import SemesterLocator, pick_current_term
from src.timetable.simulator import BrowserSimulator, CredentialSimulator
from src.timetable.stats import DetachedTasks, InMemoryUsageRecorder, UsageRecorder, hash_identifier

logger = get_logger(__name__)


class ScheduleService:
    """Entry point for schedule aggregation, user lookup and metadata."""

    def __init__(
        self,
        config: TimetableConfig | None = None,
        *,
        client: UpstreamClient | None = None,
        cache: ScheduleCache | None = None,
        simulator: CredentialSimulator | None = None,
        usage: UsageRecorder | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize ScheduleService.

        Every collaborator defaults to the production implementation built
        from ``config``; tests pass fakes.

        Args:
            config: Service configuration (defaults to the env singleton).
            client: Gateway transport.
            cache: Result cache.
            simulator: Browser fallback for credential recovery.
            usage: Recorder for request logs and visit counts.
            today: Returns the school's current date (season selection).
        """
        self.config = config or get_config()
        self.client = client or UpstreamClient(
            self.config.fjcpc_app_base_url,
            timeout=self.config.http_timeout_seconds,
        )
        self.cache = cache or ScheduleCache(ttl=timedelta(hours=self.config.cache_ttl_hours))
        if simulator is None:
            simulator = BrowserSimulator(
                self.config.fjcpc_app_base_url,
                headless=self.config.simulator_headless,
                settle_ms=self.config.simulator_settle_ms,
                default_ucode=self.config.test_student_ucode,
            )
        self.usage = usage or InMemoryUsageRecorder()
        self.today = today or (lambda: school_today(self.config.school_timezone))

        self.resolver = CredentialResolver.create(
            self.client,
            simulator=simulator,
            namespace=self.config.ucode_namespace,
            username=self.config.fallback_basic_user,
            password=self.config.fallback_basic_password,
        )
        self.locator = SemesterLocator(self.client)
        self.aggregator = Aggregator(
            WeekFetcher(self.client),
            max_concurrency=self.config.max_concurrency,
        )
        self.background = DetachedTasks()

    async def aggregate_schedule_for(
        self,
        identifier: str,
        use_cache: bool = True,
        parallel: bool = True,
    ) -> AggregatedSchedule:
        """Full term schedule for a ucode.

        Args:
            identifier: Raw student ucode.
            use_cache: Serve a cached result if one is still fresh.
            parallel: Fetch all weeks concurrently instead of one by one.

        Returns:
            AggregatedSchedule with today's season and bell schedule attached.

        Raises:
            AuthFailure: Credentials rejected even after escalation.
            NoCurrentTerm: The gateway flags no term as current.
            UpstreamUnavailable, UpstreamRejected: Credential or term lookup failed.
            EmptyInput: The current term has no weeks.
        """
        with request_context(user=hash_identifier(identifier)[:16]):
            if use_cache:
                cached = self.cache.get(identifier)
                if cached is not None:
                    logger.info("cache_hit")
                    return self._assemble(cached, from_cache=True)

            started = time.monotonic()
            user = await self.resolver.resolve(identifier)
            term = await self.locator.current_term(user.access_token)
            weeks = await self.locator.weeks_of(user.access_token, term)
            mode = FetchMode.PARALLEL if parallel else FetchMode.SEQUENTIAL
            courses = await self.aggregator.aggregate(
                user.access_token, user.student_id, weeks, mode
            )

            self.cache.put(identifier, courses)
            schedule = self._assemble(courses, from_cache=False)

            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info("schedule_aggregated", weeks=len(courses), duration_ms=duration_ms)
            self.background.spawn(
                self._record_usage(identifier, user, duration_ms),
                name="record_usage",
            )
            return schedule

    async def resolve_user(self, identifier: str) -> UserCredential:
        """Tokens and profile for a ucode."""
        with request_context(user=hash_identifier(identifier)[:16]):
            return await self.resolver.resolve(identifier)

    async def term_and_week_metadata(self, identifier: str) -> TermMetadata:
        """All terms plus the current term's weeks.

        Without a current term the week list is empty instead of an error.
        """
        with request_context(user=hash_identifier(identifier)[:16]):
            user = await self.resolver.resolve(identifier)
            terms = await self.locator.list_terms(user.access_token)
            try:
                current = pick_current_term(terms)
            except NoCurrentTerm:
                logger.info("metadata_without_current_term", terms=len(terms))
                return TermMetadata(terms=terms, weeks=[])
            weeks = await self.locator.weeks_of(user.access_token, current)
            return TermMetadata(terms=terms, weeks=weeks)

    def season_and_timetable(self, day: date | str | None = None) -> SeasonTimetable:
        """Season and bell schedule for ``day`` (default: today at the school).

        Raises:
            ValueError: If ``day`` is a string not in YYYY-MM-DD format.
        """
        if day is None:
            day = self.today()
        elif isinstance(day, str):
            day = parse_date(day)
        season = season_for(day)
        return SeasonTimetable(season=season, time_table=timetable_for(season))

    def usage_stats(self) -> UsageStats:
        return self.usage.snapshot()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    async def drain(self) -> None:
        """Wait for pending usage side effects."""
        await self.background.drain()

    def close(self) -> None:
        self.client.close()

    def _assemble(
        self, weeks: dict[int, list[DaySchedule]], *, from_cache: bool
    ) -> AggregatedSchedule:
        current = self.season_and_timetable()
        return AggregatedSchedule(
            weeks=weeks,
            time_table=current.time_table,
            season=current.season,
            from_cache=from_cache,
        )

    async def _record_usage(self, identifier: str, user: UserCredential, duration_ms: int) -> None:
        self.usage.log_request(user.access_token, user.student_id, duration_ms)
        self.usage.bump(hash_identifier(identifier))
