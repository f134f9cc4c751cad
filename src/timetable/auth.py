"""Credential resolution for a student ucode.

The gateway exchanges ``HUA_TENG-<ucode>`` for an access token, guarded by a
Basic credential the web app ships in its client code. Resolution is two
fixed steps, never a loop:

    PrimaryAttempt   static Basic credential
        | AuthFailure (401) only
    EscalatedAttempt credential recovered by the browser simulator,
                     or the static one again if nothing was recovered

Anything other than a 401 from the primary attempt is raised as-is.
"""

import asyncio
import base64
from typing import Any

from src.timetable.client import UpstreamClient, basic_authorization
from src.timetable.errors import AuthFailure, UpstreamRejected
from src.timetable.logging import get_logger
from src.timetable.models import UserCredential
from src.timetable.simulator import CredentialSimulator

logger = get_logger(__name__)

TOKEN_PATH = "/gateway/auth/oauth/token"


def static_basic_secret(username: str = "cat", password: str = "cat") -> str:
    """Basic header value for the credential the web app is known to use."""
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def composite_identifier(identifier: str, namespace: str = "HUA_TENG") -> str:
    return f"{namespace}-{identifier}"


def parse_token_response(payload: dict[str, Any]) -> UserCredential:
    """Build a UserCredential from the token endpoint's JSON.

    Raises:
        UpstreamRejected: If a required field is missing.
    """
    user_info = payload.get("user_info")
    if not isinstance(user_info, dict) or "access_token" not in payload:
        raise UpstreamRejected(
            "Token response lacks access_token or user_info",
            body=str(payload)[:500],
        )
    return UserCredential(
        access_token=str(payload["access_token"]),
        refresh_token=str(payload.get("refresh_token") or ""),
        student_id=str(user_info.get("username") or ""),
        display_name=str(user_info.get("nickName") or ""),
        phone=str(user_info.get("phone") or ""),
    )


class TokenExchange:
    """The ucode -> token call itself, parameterized by the Basic secret."""

    def __init__(self, client: UpstreamClient, *, namespace: str = "HUA_TENG") -> None:
        self.client = client
        self.namespace = namespace

    async def exchange(self, identifier: str, secret: str) -> UserCredential:
        payload = await asyncio.to_thread(
            self.client.get_json,
            TOKEN_PATH,
            authorization=basic_authorization(secret),
            params={
                "ucode": composite_identifier(identifier, self.namespace),
                "state": "1",
                "grant_type": "ucode",
                "scope": "server",
            },
        )
        return parse_token_response(payload)


class PrimaryAttempt:
    """Token exchange with the static secret."""

    def __init__(self, exchange: TokenExchange, secret: str) -> None:
        self.exchange = exchange
        self.secret = secret

    async def run(self, identifier: str) -> UserCredential:
        return await self.exchange.exchange(identifier, self.secret)


class EscalatedAttempt:
    """Token exchange with a credential recovered by the browser simulator.

    Only the recovered Basic header feeds the exchange. A recovered bearer token
    is reported by the simulator but not used here, since the exchange is what
    yields the refresh token and profile.
    """

    def __init__(
        self,
        exchange: TokenExchange,
        simulator: CredentialSimulator | None,
        fallback_secret: str,
    ) -> None:
        self.exchange = exchange
        self.simulator = simulator
        self.fallback_secret = fallback_secret

    async def recover_secret(self, identifier: str) -> str:
        """Best-effort recovery; the fixed secret when nothing comes back."""
        if self.simulator is None:
            logger.warning("simulator_unavailable", fallback="static_basic")
            return self.fallback_secret
        try:
            result = await self.simulator.simulate(identifier)
        except Exception as e:
            logger.error("simulator_failed", error=str(e), type=type(e).__name__)
            return self.fallback_secret
        if result.recovered_basic:
            return result.recovered_basic
        logger.warning("simulator_recovered_nothing", fallback="static_basic")
        return self.fallback_secret

    async def run(self, identifier: str) -> UserCredential:
        secret = await self.recover_secret(identifier)
        return await self.exchange.exchange(identifier, secret)


class CredentialResolver:
    """Resolves a ucode to a UserCredential, escalating at most once."""

    def __init__(self, primary: PrimaryAttempt, escalated: EscalatedAttempt) -> None:
        self.primary = primary
        self.escalated = escalated

    @classmethod
    def create(
        cls,
        client: UpstreamClient,
        *,
        simulator: CredentialSimulator | None = None,
        namespace: str = "HUA_TENG",
        username: str = "cat",
        password: str = "cat",
    ) -> "CredentialResolver":
        exchange = TokenExchange(client, namespace=namespace)
        secret = static_basic_secret(username, password)
        return cls(PrimaryAttempt(exchange, secret), EscalatedAttempt(exchange, simulator, secret))

    async def resolve(self, identifier: str) -> UserCredential:
        """Exchange ``identifier`` for tokens and the student's profile.

        Raises:
            AuthFailure: If the escalated attempt is also rejected.
            UpstreamUnavailable, UpstreamRejected: From the primary attempt
                (no escalation) or from the escalated one.
        """
        try:
            user = await self.primary.run(identifier)
        except AuthFailure as e:
            logger.error("primary_auth_rejected", status=e.status, error=str(e))
            logger.warning("auth_escalating", strategy="browser_simulation")
            user = await self.escalated.run(identifier)
            logger.info("escalated_auth_succeeded")
            return user

        logger.debug("primary_auth_succeeded")
        return user
