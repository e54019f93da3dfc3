"""Validation utilities."""
from fastapi import HTTPException


def validate_id(name: str, value: str) -> str:
    """Validate ID string (non-empty, no path separators or whitespace)."""
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{name} is required")
    cleaned = value.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    if any(ch in cleaned for ch in "/\\ ") or cleaned in (".", ".."):
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned


def parse_bool(value: str | None) -> bool | None:
    """Parse an optional query flag such as ``true``/``0``."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise HTTPException(status_code=400, detail=f"Invalid boolean: {value}")
