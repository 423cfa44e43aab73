from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: str) -> int:
    raw = _getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _getenv_bool(name: str, default: str) -> bool:
    raw = _getenv(name, default).lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    default_pass_percentage: float = 60.0
    drop_out_inactive_days: int = 30
    otp_ttl_seconds: int = 600

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", "8000")
    log_json = _getenv_bool("LOG_JSON", "false")

    pass_raw = _getenv("DEFAULT_PASS_PERCENTAGE", "60")
    try:
        default_pass_percentage = float(pass_raw)
    except ValueError:
        raise ValueError(
            f"DEFAULT_PASS_PERCENTAGE must be a number (got {pass_raw!r})"
        ) from None
    if not 0 <= default_pass_percentage <= 100:
        raise ValueError(
            f"DEFAULT_PASS_PERCENTAGE must be between 0 and 100 (got {pass_raw!r})"
        )

    drop_out_inactive_days = _getenv_int("DROP_OUT_INACTIVE_DAYS", "30")
    if drop_out_inactive_days <= 0:
        raise ValueError(
            "DROP_OUT_INACTIVE_DAYS must be a positive integer "
            f"(got {drop_out_inactive_days!r})"
        )

    otp_ttl_seconds = _getenv_int("OTP_TTL_SECONDS", "600")
    if otp_ttl_seconds <= 0:
        raise ValueError(
            f"OTP_TTL_SECONDS must be a positive integer (got {otp_ttl_seconds!r})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        default_pass_percentage=default_pass_percentage,
        drop_out_inactive_days=drop_out_inactive_days,
        otp_ttl_seconds=otp_ttl_seconds,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
