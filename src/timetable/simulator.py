"""Headless-browser fallback for credential recovery.

When the static Basic credential is rejected, BrowserSimulator opens the
student's timetable page the way a phone would and records the credentials
the page itself uses. Best-effort: an empty SimulatorResult is a normal
outcome.
"""

from typing import Protocol

from playwright.async_api import async_playwright
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.timetable.errors import TransientError
from src.timetable.logging import get_logger
from src.timetable.models import SimulatorResult
from src.timetable.pages.timetable import TimetablePage
from src.timetable.utils import configure_page_for_simulation

logger = get_logger(__name__)

_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
]

# Mobile UA: the /czmobile pages redirect desktop browsers
_MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


class CredentialSimulator(Protocol):
    async def simulate(self, identifier: str) -> SimulatorResult: ...


class BrowserSimulator:
    """Playwright implementation of CredentialSimulator."""

    def __init__(
        self,
        base_url: str,
        *,
        headless: bool = True,
        settle_ms: int = 3000,
        default_ucode: str | None = None,
    ) -> None:
        """Initialize BrowserSimulator.

        Args:
            base_url: Campus app base URL.
            headless: Launch Chromium without a window.
            settle_ms: Time the page gets to issue its own gateway calls.
            default_ucode: Used when ``simulate`` is called with an empty identifier.
        """
        self.base_url = base_url.rstrip("/")
        self.headless = headless
        self.settle_ms = settle_ms
        self.default_ucode = default_ucode

    async def simulate(self, identifier: str) -> SimulatorResult:
        """Recover credentials for ``identifier`` from the timetable web view.

        Raises:
            ValueError: If neither ``identifier`` nor a default ucode is available.
            TransientError: If the page still fails to load after a retry.
        """
        ucode = identifier or self.default_ucode
        if not ucode:
            raise ValueError("No ucode provided")

        logger.warning("browser_simulator_started")
        result = await self._run(ucode)
        logger.info(
            "browser_simulator_finished",
            recovered_basic=result.recovered_basic is not None,
            recovered_bearer=result.recovered_bearer is not None,
        )
        return result

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(2),
        retry=retry_if_exception_type(TransientError),
        reraise=True,
    )
    async def _run(self, ucode: str) -> SimulatorResult:
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(headless=self.headless, args=_LAUNCH_ARGS)
            try:
                context = await browser.new_context(user_agent=_MOBILE_USER_AGENT)
                page = await context.new_page()
                await configure_page_for_simulation(page, read_only=True)
                return await TimetablePage(page).capture_credentials(
                    self.base_url, ucode, settle_ms=self.settle_ms
                )
            finally:
                await browser.close()
