"""Application configuration and constants."""
import os
from pathlib import Path

from exam_engine.timing import DEFAULT_MINUTES_BY_INDEX, FALLBACK_MINUTES


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_minutes_table(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    """Parse a comma-separated list of minutes, e.g. ``13,13,20``."""
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        values = tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        return default
    return values or default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DB_DIR / 'exam.db'}")

# Chapter timing
CHAPTER_DEFAULT_MINUTES = _parse_minutes_table(
    "CHAPTER_DEFAULT_MINUTES", DEFAULT_MINUTES_BY_INDEX
)
CHAPTER_FALLBACK_MINUTES = _parse_int_env("CHAPTER_FALLBACK_MINUTES", FALLBACK_MINUTES)
TIMER_TICK_SECONDS = _parse_float_env("TIMER_TICK_SECONDS", 1.0)

# Audio
AUTOPLAY = os.environ.get("AUTOPLAY", "1").lower() not in ("0", "false", "no")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
