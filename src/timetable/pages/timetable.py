"""TimetablePage - the student timetable web view, used to recover credentials.

The mobile web app at /czmobile/mytimetableIndexNew?uid=<ucode> logs the
student in on load and then calls the gateway itself. Two places leak a
usable credential:

  - the Authorization header of its gateway requests
    ("Basic ..." on /gateway/auth/oauth/token, "Bearer ..." afterwards)
  - localStorage, where the app keeps the access token after login

Neither is guaranteed; the page changes without notice.
"""

import json

from playwright.async_api import Page, Request, TimeoutError as PlaywrightTimeoutError

from src.timetable.errors import TransientError
from src.timetable.logging import get_logger
from src.timetable.models import SimulatorResult

log = get_logger(__name__)

# localStorage keys the app has been seen to store its token under
TOKEN_STORAGE_KEYS: tuple[str, ...] = ("access_token", "token", "Authorization")


def _token_from_storage(storage: dict[str, str]) -> str | None:
    for key in TOKEN_STORAGE_KEYS:
        raw = storage.get(key)
        if not raw:
            continue
        # Values are sometimes JSON-encoded strings or {"content": "..."} wrappers
        try:
            value = json.loads(raw)
        except ValueError:
            value = raw
        if isinstance(value, dict):
            value = value.get("content") or value.get("access_token")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class TimetablePage:
    """Student timetable view at /czmobile/mytimetableIndexNew."""

    URL_PATH = "/czmobile/mytimetableIndexNew"
    GATEWAY_MARKER = "/gateway/"

    def __init__(self, page: Page) -> None:
        self.page = page
        self._basic: str | None = None
        self._bearer: str | None = None

    def _capture(self, request: Request) -> None:
        if self.GATEWAY_MARKER not in request.url:
            return
        header = request.headers.get("authorization")
        if not header:
            return
        if header.startswith("Basic ") and self._basic is None:
            self._basic = header
            log.info("basic_auth_captured", url=request.url)
        elif header.startswith("Bearer ") and self._bearer is None:
            self._bearer = header
            log.info("bearer_auth_captured", url=request.url)

    async def capture_credentials(
        self, base_url: str, ucode: str, *, settle_ms: int = 3000
    ) -> SimulatorResult:
        """Load the timetable for ``ucode`` and collect any credential it uses.

        Args:
            base_url: Campus app base URL.
            ucode: Raw student ucode.
            settle_ms: How long to let the page run its own API calls.

        Returns:
            SimulatorResult with whatever was recovered (possibly nothing).

        Raises:
            TransientError: If the page fails to load within timeout.
        """
        self.page.on("request", self._capture)
        url = f"{base_url}{self.URL_PATH}?uid={ucode}"
        log.info("timetable_page_navigating", url=f"{base_url}{self.URL_PATH}")

        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=30000)
        except PlaywrightTimeoutError:
            raise TransientError("Timetable page failed to load")

        await self.page.wait_for_timeout(settle_ms)

        if self._bearer is None:
            storage = await self.page.evaluate(
                "() => Object.fromEntries(Object.entries(window.localStorage))"
            )
            token = _token_from_storage(storage or {})
            if token:
                self._bearer = token if token.startswith("Bearer ") else f"Bearer {token}"
                log.info("bearer_auth_recovered", source="local_storage")

        return SimulatorResult(recovered_basic=self._basic, recovered_bearer=self._bearer)
