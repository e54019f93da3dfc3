"""API route modules."""
from exam_api.routes import attempts, sessions, tests

__all__ = ["attempts", "sessions", "tests"]
