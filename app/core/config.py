from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

SERVICE_VERSION = "1.0.0"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    allowed_origins: tuple[str, ...]
    allowed_origin_regex: str | None
    verification_base_url: str
    replication_timeout_seconds: float
    issuance_data_path: Path
    verification_data_path: Path

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
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("REPLICATION_TIMEOUT_SECONDS", "5.0")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0", "yes", "no"):
        raise ValueError(f"LOG_JSON must be true|false (got {log_json_raw!r})")

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"REPLICATION_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if timeout <= 0:
        raise ValueError(
            f"REPLICATION_TIMEOUT_SECONDS must be positive (got {timeout_raw!r})"
        )

    # Trailing slash would double up when joined with "/sync"
    verification_base_url = (
        _getenv("VERIFICATION_BASE_URL", "") or "http://verification-service:3002"
    ).rstrip("/")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1", "yes"),
        port=port,
        allowed_origins=_split_csv(_getenv("ALLOWED_ORIGINS", "http://localhost:3000")),
        allowed_origin_regex=_getenv("ALLOWED_ORIGIN_REGEX", "") or None,
        verification_base_url=verification_base_url,
        replication_timeout_seconds=timeout,
        issuance_data_path=Path(
            _getenv("ISSUANCE_DATA_PATH", "data/issuance/credentials.json")
        ),
        verification_data_path=Path(
            _getenv("VERIFICATION_DATA_PATH", "data/verification/credentials.json")
        ),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
