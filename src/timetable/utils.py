"""Playwright page setup for the credential simulator: resource blocking and read-only guardrails."""

from playwright.async_api import Page, Route

from src.timetable.logging import get_logger

log = get_logger(__name__)

BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset(
    {"image", "stylesheet", "font", "media"}
)

# HTTP methods that modify server state; blocked in read-only mode.
_BLOCKED_METHODS: frozenset[str] = frozenset({"POST", "PUT", "DELETE", "PATCH"})

# Gateway endpoints the timetable page may POST to without changing anything.
WHITELISTED_AJAX_PATHS: frozenset[str] = frozenset(
    {
        "/gateway/auth/oauth/token",
        "/gateway/xgwork/appCourseTable",
    }
)


async def configure_page_for_simulation(page: Page, *, read_only: bool = True) -> None:
    """Set up a Playwright page for the timetable simulation.

    Blocks images, stylesheets, fonts and media; the page only needs its
    scripts and XHRs to run for the Authorization header to show up.

    Args:
        page: Playwright Page instance.
        read_only: If True, also block POST/PUT/DELETE/PATCH requests
                   outside the whitelisted gateway paths.
    """

    async def _block_resources(route: Route) -> None:
        request = route.request

        if read_only and request.method in _BLOCKED_METHODS:
            if any(path in request.url for path in WHITELISTED_AJAX_PATHS):
                await route.continue_()
                return
            log.warning(
                "blocked_mutating_request",
                method=request.method,
                url=request.url,
            )
            await route.abort("blockedbyclient")
            return

        if request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _block_resources)
    page.set_default_timeout(30000)
    page.set_default_navigation_timeout(30000)
