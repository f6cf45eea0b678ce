"""
Deadline evaluation for timed attempts.

The pure helpers derive an attempt's deadline and remaining time from its
start timestamp and the tryout duration. ``DeadlineTimer`` wraps them in a
cancellable ticking handle that reports expiry exactly once.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from lms_api.config import TIMER_TICK_MS
from lms_api.utils.time_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


def deadline_for(started_at: datetime, duration_minutes: int | None) -> datetime | None:
    """Return when an attempt started at ``started_at`` runs out, or None if untimed."""
    if duration_minutes is None:
        return None
    return as_utc(started_at) + timedelta(minutes=duration_minutes)


def remaining_ms(
    started_at: datetime,
    duration_minutes: int | None,
    now: datetime | None = None,
) -> int | None:
    """Milliseconds left before the deadline, never negative; None if untimed."""
    deadline = deadline_for(started_at, duration_minutes)
    if deadline is None:
        return None
    now = as_utc(now) if now is not None else utc_now()
    delta_ms = int((deadline - now).total_seconds() * 1000)
    return max(0, delta_ms)


class DeadlineTimer:
    """
    Ticks while an attempt is open and calls ``on_expire`` once the deadline passes.

    The timer is inactive for untimed tryouts. ``cancel()`` must be called
    when the attempt completes or its view is torn down; after that the
    callback never fires.
    """

    def __init__(
        self,
        started_at: datetime,
        duration_minutes: int | None,
        on_expire: Callable[[], object],
        tick_ms: int = TIMER_TICK_MS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.started_at = as_utc(started_at)
        self.duration_minutes = duration_minutes
        self.tick_ms = tick_ms
        self._on_expire = on_expire
        self._clock = clock
        self._lock = threading.Lock()
        self._fired = False
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def active(self) -> bool:
        """True while the timer can still fire."""
        return (
            self.duration_minutes is not None
            and not self._fired
            and not self._cancelled.is_set()
        )

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def remaining_ms(self) -> int | None:
        return remaining_ms(self.started_at, self.duration_minutes, self._clock())

    def tick(self) -> bool:
        """Evaluate the deadline once. Returns True if this call fired the callback."""
        if not self.active:
            return False
        left = self.remaining_ms
        if left is None or left > 0:
            return False

        with self._lock:
            if self._fired or self._cancelled.is_set():
                return False
            self._fired = True

        logger.info("Attempt deadline reached (started %s)", self.started_at.isoformat())
        try:
            self._on_expire()
        finally:
            self._cancelled.set()
        return True

    def start(self) -> "DeadlineTimer":
        """Start ticking on a daemon thread. No-op for untimed attempts."""
        if self.duration_minutes is None or self._thread is not None:
            return self

        def _worker() -> None:
            interval = self.tick_ms / 1000
            while not self._cancelled.is_set():
                try:
                    if self.tick():
                        return
                except Exception:
                    logger.exception("Deadline callback failed")
                    return
                self._cancelled.wait(interval)

        self._thread = threading.Thread(
            target=_worker,
            name="attempt_deadline_timer",
            daemon=True,
        )
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Stop ticking; the callback will not fire afterwards."""
        self._cancelled.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(self.tick_ms / 1000, 0.1) * 2)
