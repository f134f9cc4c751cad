"""Usage accounting and detached side effects.

Request logging and visit counting run after the response has been
assembled and must never delay or fail it. They are keyed by a one-way hash
of the ucode, never by the raw ucode the cache uses.
"""

import asyncio
import hashlib
import threading
from collections.abc import Coroutine
from datetime import datetime, timezone
from typing import Any, Protocol

from src.timetable.logging import get_logger
from src.timetable.models import UsageStats

logger = get_logger(__name__)


def hash_identifier(identifier: str) -> str:
    """SHA-256 hex digest used as the privacy-preserving user key."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()


class UsageRecorder(Protocol):
    def log_request(self, token: str, student_id: str, duration_ms: int) -> None: ...

    def bump(self, identifier_hash: str) -> None: ...

    def snapshot(self) -> UsageStats: ...


class InMemoryUsageRecorder:
    """Counts requests and distinct users for the lifetime of the process."""

    def __init__(self) -> None:
        self._visits: dict[str, int] = {}
        self._total_requests = 0
        self._last_updated_at: datetime | None = None
        self._lock = threading.Lock()

    def log_request(self, token: str, student_id: str, duration_ms: int) -> None:
        # Tokens and student ids are personal data; only digests reach the log
        logger.info(
            "request_logged",
            token_hash=hash_identifier(token)[:16],
            student_hash=hash_identifier(student_id)[:16],
            duration_ms=duration_ms,
        )

    def bump(self, identifier_hash: str) -> None:
        with self._lock:
            is_new_user = identifier_hash not in self._visits
            self._visits[identifier_hash] = self._visits.get(identifier_hash, 0) + 1
            self._total_requests += 1
            self._last_updated_at = datetime.now(timezone.utc)
        logger.debug("visit_counted", new_user=is_new_user)

    def visit_count(self, identifier_hash: str) -> int:
        with self._lock:
            return self._visits.get(identifier_hash, 0)

    def snapshot(self) -> UsageStats:
        with self._lock:
            return UsageStats(
                total_requests=self._total_requests,
                unique_users=len(self._visits),
                last_updated_at=self._last_updated_at,
            )


class DetachedTasks:
    """Fire-and-forget task runner.

    Keeps a strong reference to every task until it finishes (the event loop
    only holds weak ones) and logs any exception instead of raising it.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("detached_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "detached_task_failed",
                task=task.get_name(),
                error=str(exc),
                type=type(exc).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding task (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
