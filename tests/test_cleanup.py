import threading
from datetime import timedelta

from sqlalchemy import select

from lms_api.models.db.user import Session
from lms_api.services import attempt_service, auth_service, cleanup_service
from lms_api.utils.time_utils import utc_now


def test_run_cleanup_completes_overdue_attempts_and_drops_sessions(
    db, session_factory, student, make_tryout
) -> None:
    tryout = make_tryout(duration=5)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    attempt.started_at = utc_now() - timedelta(minutes=10)
    db.commit()
    auth_service.create_session(db, student.id, "stale-jti", utc_now() - timedelta(hours=1))
    auth_service.issue_token(db, student.id)

    assert cleanup_service.run_cleanup(session_factory) == (1, 1)

    db.expire_all()
    assert attempt_service.get_active_attempt(db, tryout.id, student.id) is None
    remaining = db.execute(select(Session.token_jti)).scalars().all()
    assert "stale-jti" not in remaining
    assert len(remaining) == 1


def test_run_cleanup_with_nothing_to_do(session_factory) -> None:
    assert cleanup_service.run_cleanup(session_factory) == (0, 0)


def test_schedule_cleanup_runs_until_stopped(monkeypatch) -> None:
    runs = threading.Semaphore(0)
    monkeypatch.setattr(cleanup_service, "run_cleanup", lambda: runs.release())
    stop = threading.Event()

    thread = cleanup_service.schedule_cleanup(interval_seconds=0.01, stop_event=stop)
    assert runs.acquire(timeout=2)
    assert runs.acquire(timeout=2)

    stop.set()
    thread.join(timeout=2)
    assert not thread.is_alive()
    assert thread.daemon


def test_schedule_cleanup_survives_failures(monkeypatch) -> None:
    calls = threading.Semaphore(0)

    def failing() -> None:
        calls.release()
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cleanup_service, "run_cleanup", failing)
    stop = threading.Event()

    thread = cleanup_service.schedule_cleanup(interval_seconds=0.01, stop_event=stop)
    assert calls.acquire(timeout=2)
    assert calls.acquire(timeout=2)
    stop.set()
    thread.join(timeout=2)
