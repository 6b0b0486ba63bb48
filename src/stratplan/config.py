# src/stratplan/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole service.
- No secrets required at import time.
- Paths default to a local, gitignored data directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "STRATPLAN"

LEDGER_BACKENDS = ("memory", "sqlite")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
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

    # ---- Switches ----
    scheduler_enabled: bool
    console_enabled: bool

    # ---- Due-date scheduler ----
    due_interval_minutes: int
    ledger_backend: str
    ledger_claim_ttl_seconds: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    ledger_db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "stratplan").strip() or "stratplan"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        due_interval_minutes = max(1, _env_int(_k("DUE_INTERVAL_MINUTES"), 60))

        ledger_backend = _env(_k("LEDGER_BACKEND"), "memory").strip().lower()
        if ledger_backend not in LEDGER_BACKENDS:
            ledger_backend = "memory"
        ledger_claim_ttl_seconds = max(1, _env_int(_k("LEDGER_CLAIM_TTL_SECONDS"), 600))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/stratplan"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "stratplan.sqlite3")
        ledger_db_path = _env_path(_k("LEDGER_DB_PATH"), data_dir / "ledger.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            scheduler_enabled=scheduler_enabled,
            console_enabled=console_enabled,
            due_interval_minutes=due_interval_minutes,
            ledger_backend=ledger_backend,
            ledger_claim_ttl_seconds=ledger_claim_ttl_seconds,
            data_dir=data_dir,
            db_path=db_path,
            ledger_db_path=ledger_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
