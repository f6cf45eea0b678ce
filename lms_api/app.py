"""Main FastAPI application with modularized routes."""
import threading

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.logging_setup import setup_console_logging
from lms_api.config import LOG_LEVEL
from lms_api.database import init_db
from lms_api.routes import attempts, auth, courses, tryouts
from lms_api.services.cleanup_service import schedule_cleanup

setup_console_logging(LOG_LEVEL)

app = FastAPI(title="LMS Tryout API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_cleanup_stop = threading.Event()


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and schedule cleanup tasks on startup."""
    init_db()
    _cleanup_stop.clear()
    schedule_cleanup(stop_event=_cleanup_stop)


@app.on_event("shutdown")
def shutdown_events() -> None:
    """Stop the cleanup worker."""
    _cleanup_stop.set()


# Include routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(tryouts.router)
app.include_router(attempts.tryout_router)
app.include_router(attempts.router)
