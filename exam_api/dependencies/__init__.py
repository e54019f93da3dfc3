"""FastAPI dependencies."""
from exam_api.dependencies.sessions import (
    get_exam_session,
    get_loader,
    get_registry,
    get_store,
)

__all__ = ["get_exam_session", "get_loader", "get_registry", "get_store"]
