"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "DEPLOY_TRACKER_"
DEFAULT_DB_PATH = Path("work/local/deploy_tracker.db")
DEFAULT_LOG_PATH = Path("work/logs/deploy_tracker.log")
DEFAULT_CORS_ORIGINS = (
    "http://127.0.0.1:3000",
    "http://localhost:3000",
)


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(ENV_PREFIX + name, default).strip()


def env_int(name: str, default: int, *, minimum: int, maximum: int) -> int:
    """Read an integer setting, falling back on blanks or garbage and clamping the rest."""
    raw = env_str(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def env_csv(name: str) -> list[str]:
    return [item.strip() for item in env_str(name).split(",") if item.strip()]


@dataclass(frozen=True)
class TrackerSettings:
    """Resolved process settings; build with ``load_settings``."""

    db_path: Path = DEFAULT_DB_PATH
    store_backend: str = "sqlite"
    auth_mode: str = "local"
    token_ttl_hours: int = 24
    page_size: int = 10
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    log_path: Path = DEFAULT_LOG_PATH
    log_max_bytes: int = 5 * 1024 * 1024
    log_backup_count: int = 10
    access_log_level: str = "WARNING"


def load_settings(*, db_path: Path | None = None) -> TrackerSettings:
    """Resolve settings from explicit args, then ``DEPLOY_TRACKER_*`` env vars, then defaults."""
    resolved_db_path = db_path
    if resolved_db_path is None:
        raw_db_path = env_str("DB_PATH")
        resolved_db_path = Path(raw_db_path) if raw_db_path else DEFAULT_DB_PATH
    auth_mode = env_str("AUTH_MODE", "local").lower() or "local"
    if auth_mode not in {"local", "oidc"}:
        raise RuntimeError("Unsupported DEPLOY_TRACKER_AUTH_MODE value. Expected local or oidc.")
    if auth_mode == "oidc" and not env_str("OIDC_ISSUER"):
        raise RuntimeError("DEPLOY_TRACKER_OIDC_ISSUER is required when AUTH_MODE=oidc.")
    return TrackerSettings(
        db_path=resolved_db_path,
        store_backend=env_str("STORE_BACKEND", "sqlite").lower() or "sqlite",
        auth_mode=auth_mode,
        token_ttl_hours=env_int("TOKEN_TTL_HOURS", 24, minimum=1, maximum=720),
        page_size=env_int("PAGE_SIZE", 10, minimum=1, maximum=100),
        cors_origins=tuple(env_csv("CORS_ORIGINS")) or DEFAULT_CORS_ORIGINS,
        log_level=env_str("LOG_LEVEL", "INFO").upper() or "INFO",
        log_path=Path(env_str("LOG_PATH") or DEFAULT_LOG_PATH),
        log_max_bytes=env_int(
            "LOG_MAX_BYTES", 5 * 1024 * 1024, minimum=64 * 1024, maximum=100 * 1024 * 1024
        ),
        log_backup_count=env_int("LOG_BACKUP_COUNT", 10, minimum=1, maximum=120),
        access_log_level=env_str("ACCESS_LOG_LEVEL", "WARNING").upper() or "WARNING",
    )
