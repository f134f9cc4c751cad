"""HTTP transport for the campus app gateway.

All upstream endpoints are plain GETs that answer JSON. This module owns the
requests.Session and maps transport outcomes onto the error hierarchy:

- 401                      -> AuthFailure
- 5xx, timeouts, resets    -> UpstreamUnavailable
- other non-2xx, bad JSON  -> UpstreamRejected
"""

from typing import Any

import requests

from src.timetable.errors import AuthFailure, UpstreamRejected, UpstreamUnavailable
from src.timetable.logging import get_logger

logger = get_logger(__name__)

# Keep error messages readable; some gateway error pages are full HTML documents.
_BODY_SNIPPET = 500


def basic_authorization(token: str) -> str:
    """Header value for an already-encoded Basic credential."""
    return token if token.startswith("Basic ") else f"Basic {token}"


def bearer_authorization(token: str) -> str:
    return token if token.startswith("Bearer ") else f"Bearer {token}"


class UpstreamClient:
    """Blocking JSON client for the campus gateway.

    Blocking on purpose: callers dispatch calls with ``asyncio.to_thread`` so
    one client can serve many concurrent week fetches from the thread pool.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize UpstreamClient.

        Args:
            base_url: Gateway base URL (e.g., https://app.fjcpc.edu.cn).
            timeout: Per-call timeout in seconds.
            session: Pre-built session (tests inject one); a new one otherwise.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_json(
        self,
        path: str,
        *,
        authorization: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """GET ``path`` and return the decoded JSON object.

        Args:
            path: Endpoint path starting with "/".
            authorization: Full Authorization header value ("Basic ..." / "Bearer ...").
            params: Query parameters.

        Returns:
            The decoded JSON body.

        Raises:
            AuthFailure: The gateway answered 401.
            UpstreamUnavailable: Network failure, timeout or 5xx.
            UpstreamRejected: Any other non-2xx status, or a body that is not a JSON object.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(
                url,
                headers={"Authorization": authorization},
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("upstream_request_failed", path=path, error=str(e), type=type(e).__name__)
            raise UpstreamUnavailable(f"Request to {path} failed: {e}") from e

        if resp.status_code == 401:
            body = resp.text[:_BODY_SNIPPET]
            logger.warning("upstream_auth_rejected", path=path, status=resp.status_code)
            raise AuthFailure(
                f"Error while fetching {path}: {resp.status_code}. Message: {body}",
                status=resp.status_code,
                body=body,
            )

        if resp.status_code >= 500:
            body = resp.text[:_BODY_SNIPPET]
            logger.warning("upstream_unavailable", path=path, status=resp.status_code)
            raise UpstreamUnavailable(
                f"Error while fetching {path}: {resp.status_code}. Message: {body}",
                status=resp.status_code,
                body=body,
            )

        if not 200 <= resp.status_code < 300:
            body = resp.text[:_BODY_SNIPPET]
            logger.warning("upstream_rejected", path=path, status=resp.status_code)
            raise UpstreamRejected(
                f"Error while fetching {path}: {resp.status_code}. Message: {body}",
                status=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamRejected(
                f"Response from {path} is not JSON",
                status=resp.status_code,
                body=resp.text[:_BODY_SNIPPET],
            ) from e

        if not isinstance(data, dict):
            raise UpstreamRejected(
                f"Response from {path} is not a JSON object",
                status=resp.status_code,
                body=resp.text[:_BODY_SNIPPET],
            )
        return data

    def close(self) -> None:
        self.session.close()
