from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _load_dotenv(path: str = ".env") -> Dict[str, str]:
    """
    Basic .env loader to populate os.environ without overriding set variables.
    Returns a mapping of parsed key/value pairs.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    parsed: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)
        parsed[key] = value
    return parsed


_load_dotenv()


def get_database_url() -> str:
    """
    Determine the SQLAlchemy database URL for the battery catalog.

    Prefers ``POSTGRES_DSN`` when set, otherwise falls back to a SQLite file
    located at ``SIM_BATTERY_DB_PATH`` (relative paths resolve against the
    current working directory).

    Returns:
        Database connection string compatible with SQLAlchemy.
    """
    dsn = os.getenv("POSTGRES_DSN")
    if dsn:
        return dsn

    db_path = Path(os.getenv("SIM_BATTERY_DB_PATH", "sim_battery.db")).expanduser()
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{db_path}"


def get_log_level() -> int:
    """
    Resolve the logging level from ``SIM_BATTERY_LOG_LEVEL`` (default INFO).

    Accepts level names (``DEBUG``, ``warning``) or numeric values; unknown
    names fall back to INFO.
    """
    raw = os.getenv("SIM_BATTERY_LOG_LEVEL", "INFO").strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else logging.INFO


def get_max_workers() -> int:
    """
    Number of worker threads used to fan out per-battery comparisons.

    Read from ``SIM_BATTERY_MAX_WORKERS``; invalid or non-positive values
    resolve to 1 (sequential execution).
    """
    raw = os.getenv("SIM_BATTERY_MAX_WORKERS", "1")
    try:
        workers = int(raw)
    except ValueError:
        return 1
    return max(1, workers)


def configure_logging(level: int | None = None) -> None:
    """Configure root logging for CLI and API entry points."""
    logging.basicConfig(
        level=level if level is not None else get_log_level(),
        format=LOG_FORMAT,
    )
