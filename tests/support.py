"""In-process fakes for the campus gateway and the browser simulator."""

import threading
from collections.abc import Callable
from typing import Any

from src.timetable.errors import AuthFailure
from src.timetable.models import SimulatorResult

MATH = "高等数学|A101|23软件1班|张三;李四|1|1|#FF0000|2|MATH101"
PE = "体育|无|23软件1班|王五|3|2|#00FF00|2|PE001"

Handler = Callable[[str, dict[str, str]], dict[str, Any]]


class FakeUpstream:
    """Stands in for UpstreamClient: routes ``get_json`` calls by path."""

    def __init__(self, routes: dict[str, Handler]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str, dict[str, str]]] = []
        self._lock = threading.Lock()
        self.closed = False

    def get_json(
        self,
        path: str,
        *,
        authorization: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        params = params or {}
        with self._lock:
            self.calls.append((path, authorization, params))
        return self.routes[path](authorization, params)

    def calls_to(self, path: str) -> list[tuple[str, str, dict[str, str]]]:
        return [call for call in self.calls if call[0] == path]

    def close(self) -> None:
        self.closed = True


class FakeSimulator:
    def __init__(self, result: SimulatorResult | None = None, error: Exception | None = None) -> None:
        self.result = result or SimulatorResult()
        self.error = error
        self.calls: list[str] = []

    async def simulate(self, identifier: str) -> SimulatorResult:
        self.calls.append(identifier)
        if self.error is not None:
            raise self.error
        return self.result


def token_payload(access_token: str = "tok-1") -> dict[str, Any]:
    return {
        "access_token": access_token,
        "refresh_token": "ref-1",
        "user_info": {"username": "245810101", "phone": "138****1234", "nickName": "张三"},
    }


def token_route(accepted: set[str] | None = None) -> Handler:
    """Token endpoint accepting any Basic header in ``accepted`` (all if None)."""

    def handler(authorization: str, params: dict[str, str]) -> dict[str, Any]:
        if accepted is not None and authorization not in accepted:
            raise AuthFailure("Error while fetching token: 401", status=401, body="unauthorized")
        return token_payload()

    return handler


def terms_route(flags: list[str]) -> Handler:
    def handler(authorization: str, params: dict[str, str]) -> dict[str, Any]:
        return {
            "data": [
                {
                    "xn": "2025-2026",
                    "xq": str(i + 1),
                    "dqxqbj": flag,
                    "qsrq": "2025-09-01",
                    "jsrq": "2026-01-18",
                }
                for i, flag in enumerate(flags)
            ]
        }

    return handler


def weeks_route(count: int) -> Handler:
    def handler(authorization: str, params: dict[str, str]) -> dict[str, Any]:
        return {
            "data": [
                [str(n), f"2025-09-{n:02d}", f"2025-09-{n + 6:02d}"] for n in range(1, count + 1)
            ]
        }

    return handler


def week_course_route(failing_dates: set[str] | None = None) -> Handler:
    """Week course endpoint: same two courses every week."""

    def handler(authorization: str, params: dict[str, str]) -> dict[str, Any]:
        if failing_dates and params["startDate"] in failing_dates:
            raise RuntimeError("connection reset")
        days: list[list[str]] = [[""] * 4 for _ in range(7)]
        days[0][0] = MATH
        days[1][2] = PE
        return {"data": days}

    return handler
