"""Periodic cleanup: close overdue attempts and drop expired sessions."""
import logging
import threading

from sqlalchemy.orm import sessionmaker

from lms_api.config import EXPIRED_ATTEMPTS_SWEEP_INTERVAL_SECONDS
from lms_api.database import SessionLocal
from lms_api.services.attempt_service import complete_expired_attempts
from lms_api.services.auth_service import cleanup_expired_sessions

logger = logging.getLogger(__name__)


def run_cleanup(session_factory: sessionmaker = SessionLocal) -> tuple[int, int]:
    """
    Auto-complete timed attempts whose deadline has passed and remove
    expired sessions. Returns (attempts completed, sessions removed).
    """
    db = session_factory()
    try:
        completed = complete_expired_attempts(db)
        if completed > 0:
            logger.info(f"Auto-completed {completed} overdue attempts")
        removed = cleanup_expired_sessions(db)
        if removed > 0:
            logger.info(f"Removed {removed} expired sessions")
        return completed, removed
    finally:
        db.close()


def schedule_cleanup(
    interval_seconds: int = EXPIRED_ATTEMPTS_SWEEP_INTERVAL_SECONDS,
    stop_event: threading.Event | None = None,
) -> threading.Thread:
    """Run cleanup periodically on a daemon thread until ``stop_event`` is set."""
    stop_event = stop_event or threading.Event()

    def _worker() -> None:
        while not stop_event.wait(interval_seconds):
            try:
                run_cleanup()
            except Exception:
                logger.exception("Cleanup run failed")

    thread = threading.Thread(
        target=_worker,
        name="attempts_cleanup",
        daemon=True,
    )
    thread.start()
    return thread
