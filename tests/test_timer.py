import threading
from datetime import datetime, timedelta, timezone

from lms_api.timer import DeadlineTimer, deadline_for, remaining_ms

STARTED = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def test_deadline_for_timed_and_untimed() -> None:
    assert deadline_for(STARTED, 30) == STARTED + timedelta(minutes=30)
    assert deadline_for(STARTED, None) is None


def test_deadline_for_treats_naive_start_as_utc() -> None:
    naive = STARTED.replace(tzinfo=None)
    assert deadline_for(naive, 1) == STARTED + timedelta(minutes=1)


def test_remaining_ms_counts_down_and_clamps_at_zero() -> None:
    assert remaining_ms(STARTED, 30, STARTED) == 30 * 60 * 1000
    assert remaining_ms(STARTED, 30, STARTED + timedelta(minutes=29)) == 60_000
    assert remaining_ms(STARTED, 30, STARTED + timedelta(hours=2)) == 0
    assert remaining_ms(STARTED, None, STARTED) is None


def test_untimed_timer_never_fires() -> None:
    calls = []
    clock = FakeClock(STARTED)
    timer = DeadlineTimer(STARTED, None, lambda: calls.append(1), clock=clock)

    clock.advance(days=1)
    assert timer.tick() is False
    assert timer.start()._thread is None
    assert not timer.active
    assert timer.remaining_ms is None
    assert calls == []


def test_timer_fires_exactly_once_after_deadline() -> None:
    calls = []
    clock = FakeClock(STARTED)
    timer = DeadlineTimer(STARTED, 1, lambda: calls.append(1), clock=clock)

    assert timer.tick() is False
    assert timer.remaining_ms == 60_000

    clock.advance(minutes=1)
    assert timer.tick() is True
    assert timer.tick() is False
    clock.advance(minutes=5)
    assert timer.tick() is False

    assert calls == [1]
    assert timer.fired
    assert not timer.active


def test_cancelled_timer_does_not_fire() -> None:
    calls = []
    clock = FakeClock(STARTED)
    timer = DeadlineTimer(STARTED, 1, lambda: calls.append(1), clock=clock)

    timer.cancel()
    clock.advance(minutes=2)
    assert timer.tick() is False
    assert calls == []


def test_timer_thread_fires_callback() -> None:
    expired = threading.Event()
    started = datetime.now(timezone.utc) - timedelta(minutes=2)
    timer = DeadlineTimer(started, 1, expired.set, tick_ms=10).start()

    assert expired.wait(2)
    timer.cancel()
    assert timer.fired


def test_timer_thread_stops_on_cancel() -> None:
    expired = threading.Event()
    timer = DeadlineTimer(datetime.now(timezone.utc), 60, expired.set, tick_ms=10).start()

    timer.cancel()
    assert not timer._thread.is_alive()
    assert not expired.is_set()
    assert not timer.active
