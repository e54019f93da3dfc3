"""Main FastAPI application with modularized routes."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.logging_setup import setup_console_logging
from exam_api.config import LOG_LEVEL
from exam_api.database import init_db
from exam_api.routes import attempts, sessions, tests
from exam_api.services.session_service import registry

setup_console_logging(LOG_LEVEL)

app = FastAPI(title="Exam Session API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_events() -> None:
    """Initialize database on startup."""
    init_db()


@app.on_event("shutdown")
async def shutdown_events() -> None:
    """Stop timers and audio of sessions still running."""
    await registry.close_all()


@app.get("/api/health")
def health() -> dict[str, object]:
    return {"status": "ok", "liveSessions": len(registry)}


# Include routers
app.include_router(tests.router)
app.include_router(sessions.router)
app.include_router(attempts.router)
