# src/taskmgmt/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Components receive settings explicitly; only the CLI reads the singleton.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKMGMT"

STORAGE_BACKENDS = ("sqlite", "memory")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    storage_backend: str
    data_dir: Path
    tasks_db_path: Path
    sqlite_timeout: float

    # ---- Task roots ----
    default_root: str

    # ---- Concurrency ----
    update_retries: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskmgmt").strip() or "taskmgmt"
        log_level = _env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"

        storage_backend = _env(_k("STORAGE_BACKEND"), "sqlite").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            storage_backend = "sqlite"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmgmt"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        sqlite_timeout = max(0.0, _env_float(_k("SQLITE_TIMEOUT"), 30.0))

        default_root = _env(_k("DEFAULT_ROOT"), "tasks").strip() or "tasks"

        update_retries = max(1, _env_int(_k("UPDATE_RETRIES"), 3))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            storage_backend=storage_backend,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            sqlite_timeout=sqlite_timeout,
            default_root=default_root,
            update_retries=update_retries,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, built on first use (reads .env without overriding real env vars)."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
