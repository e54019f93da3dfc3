"""Static timing configuration: default chapter durations and warning marks."""
from typing import Mapping, Sequence

# Default minutes by chapter position, used when a chapter has no stored
# duration: listening parts 1-3, reading parts 1-3, grammar parts 1-3.
DEFAULT_MINUTES_BY_INDEX: tuple[int, ...] = (13, 13, 20, 20, 20, 20, 20, 10, 10)
FALLBACK_MINUTES = 20


def mins_to_secs(minutes: float) -> int:
    """Convert minutes to whole seconds (never negative)."""
    return max(0, round(minutes * 60))


def resolve_duration(
    declared_seconds: int | None,
    position: int,
    defaults: Sequence[int] | Mapping[int, int] = DEFAULT_MINUTES_BY_INDEX,
    fallback_minutes: int = FALLBACK_MINUTES,
) -> int:
    """Resolve a chapter's duration in seconds.

    Declared value first, then the per-position default table, then the
    generic fallback.
    """
    if declared_seconds is not None and declared_seconds > 0:
        return int(declared_seconds)
    if isinstance(defaults, Mapping):
        minutes = defaults.get(position)
    else:
        minutes = defaults[position] if 0 <= position < len(defaults) else None
    if minutes is not None:
        return mins_to_secs(minutes)
    return mins_to_secs(fallback_minutes)


def warning_thresholds(total_seconds: int) -> tuple[int, ...]:
    """Remaining-time marks (seconds) at which a chapter warns, largest first.

    Chapters of 20 minutes or more warn at 10 and 5 minutes remaining;
    chapters of at least 10 minutes warn once at 5 minutes; shorter
    chapters never warn.
    """
    if total_seconds >= mins_to_secs(20):
        return (mins_to_secs(10), mins_to_secs(5))
    if total_seconds >= mins_to_secs(10):
        return (mins_to_secs(5),)
    return ()


def format_mmss(seconds: int | None) -> str:
    """Render seconds as MM:SS."""
    secs = max(0, int(seconds or 0))
    return f"{secs // 60:02d}:{secs % 60:02d}"
