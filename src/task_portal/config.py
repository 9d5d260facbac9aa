"""Settings loaded from TASK_PORTAL_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASK_PORTAL"

SEARCH_SYNC_MODES = ("deferred", "inline")


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str) -> str:
    v = os.getenv(_k(name))
    return default if v is None or v.strip() == "" else v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(_k(name))
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    db_path: str = "./data/task_portal.db"
    log_level: str = "INFO"
    log_dir: Path = Path("./logs")
    log_to_file: bool = True
    default_per_page: int = 15
    search_max_query_length: int = 255
    search_sync_mode: str = "deferred"
    search_sync_retries: int = 3
    search_sync_retry_delay: float = 0.5

    @classmethod
    def from_env(cls) -> "Settings":
        mode = _env("SEARCH_SYNC_MODE", cls.search_sync_mode).lower()
        if mode not in SEARCH_SYNC_MODES:
            mode = cls.search_sync_mode
        per_page = _env_int("DEFAULT_PER_PAGE", cls.default_per_page)
        if not 1 <= per_page <= 100:
            per_page = cls.default_per_page

        return cls(
            db_path=_env("DB_PATH", cls.db_path),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            log_dir=Path(_env("LOG_DIR", str(cls.log_dir))).expanduser(),
            log_to_file=_env_bool("LOG_TO_FILE", cls.log_to_file),
            default_per_page=per_page,
            search_max_query_length=max(2, _env_int("SEARCH_MAX_QUERY_LENGTH", cls.search_max_query_length)),
            search_sync_mode=mode,
            search_sync_retries=max(1, _env_int("SEARCH_SYNC_RETRIES", cls.search_sync_retries)),
            search_sync_retry_delay=max(0.0, _env_float("SEARCH_SYNC_RETRY_DELAY", cls.search_sync_retry_delay)),
        )
