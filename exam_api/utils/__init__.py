"""Utility modules."""
from exam_api.utils.time_utils import isoformat, utc_now
from exam_api.utils.validation import parse_bool, validate_id

__all__ = [
    "isoformat",
    "parse_bool",
    "utc_now",
    "validate_id",
]
