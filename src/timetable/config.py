"""Service configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class TimetableConfig(BaseSettings):
    """Timetable service configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Campus app gateway (no published API contract)
    fjcpc_app_base_url: str = Field(
        default="https://app.fjcpc.edu.cn",
        description="Base URL of the campus app gateway",
    )
    test_student_ucode: str | None = Field(
        default=None,
        description="UCode used by the CLI and the simulator when none is given",
    )

    # Credential exchange
    ucode_namespace: str = Field(
        default="HUA_TENG",
        description="Tag prefixed to the raw ucode for the token exchange",
    )
    fallback_basic_user: str = Field(
        default="cat",
        description="Username of the static Basic credential",
    )
    fallback_basic_password: str = Field(
        default="cat",
        description="Password of the static Basic credential",
    )

    # Transport
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Per-call timeout for upstream requests",
    )

    # Aggregation
    max_concurrency: int | None = Field(
        default=None,
        description="Upper bound on concurrent week fetches (unset = one task per week)",
    )

    # Cache
    cache_ttl_hours: int = Field(
        default=24,
        description="Lifetime of an aggregated schedule in the cache",
    )

    # Season selection
    school_timezone: str = Field(
        default="Asia/Shanghai",
        description="Timezone used to decide what 'today' is",
    )

    # Browser simulator
    simulator_headless: bool = Field(
        default=True,
        description="Run the fallback browser without a window",
    )
    simulator_settle_ms: int = Field(
        default=3000,
        description="Time to let the timetable page issue its API calls",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: TimetableConfig | None = None


def get_config() -> TimetableConfig:
    """Get the service configuration singleton.

    Returns:
        TimetableConfig: Service configuration instance
    """
    global _config
    if _config is None:
        _config = TimetableConfig()
    return _config
