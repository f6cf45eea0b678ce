"""
Python client for the tryout API.

``TryoutClient`` is a thin wrapper over ``httpx.Client`` that turns error
responses back into the typed errors the server raised. ``AttemptSession``
drives one attempt the way the attempt view does: it starts or resumes the
attempt, records answers as they are edited, and submits the attempt either
on request or when the deadline timer runs out, but never twice.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

import httpx

from lms_api.config import TIMER_TICK_MS
from lms_api.errors import ERRORS_BY_STATUS, LMSError
from lms_api.timer import DeadlineTimer
from lms_api.utils.json_utils import json_dump
from lms_api.utils.time_utils import parse_iso_timestamp, utc_now

logger = logging.getLogger(__name__)

ClientError = (LMSError, httpx.HTTPError)


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text or response.reason_phrase
    return detail if isinstance(detail, str) else str(detail)


class TryoutClient:
    """One method per tryout/attempt operation of the API."""

    def __init__(self, http: httpx.Client, token: str | None = None) -> None:
        self.http = http
        if token:
            self.set_token(token)

    @classmethod
    def connect(cls, base_url: str, token: str | None = None, timeout: float = 10.0) -> "TryoutClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout), token)

    def set_token(self, token: str) -> None:
        self.http.headers["Authorization"] = f"Bearer {token}"

    def login(self, username: str, password: str) -> str:
        """Log in and use the returned token for later calls."""
        payload = self._request("POST", "/api/auth/login", json={"username": username, "password": password})
        self.set_token(payload["access_token"])
        return payload["access_token"]

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = self.http.request(method, url, **kwargs)
        if response.is_error:
            error_cls = ERRORS_BY_STATUS.get(response.status_code)
            if error_cls is not None:
                raise error_cls(_error_detail(response))
            response.raise_for_status()
        return response.json()

    def get_tryout(self, tryout_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/tryouts/{tryout_id}/student")

    def get_active_attempt(self, tryout_id: int) -> dict[str, Any] | None:
        return self._request("GET", f"/api/tryouts/{tryout_id}/attempts/active")

    def start_attempt(self, tryout_id: int) -> dict[str, Any]:
        return self._request("POST", f"/api/tryouts/{tryout_id}/attempts")

    def get_user_attempts(self, tryout_id: int) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/tryouts/{tryout_id}/attempts")

    def submit_answer(self, attempt_id: int, question_id: int, answer: str) -> dict[str, Any]:
        return self._request(
            "PUT",
            f"/api/attempts/{attempt_id}/answers/{question_id}",
            json={"answer": answer},
        )

    def complete_attempt(self, attempt_id: int) -> dict[str, Any]:
        return self._request("POST", f"/api/attempts/{attempt_id}/complete")

    def get_attempt_results(self, attempt_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/attempts/{attempt_id}/results")


def encode_answer(value: str | Iterable[int | str]) -> str:
    """Answers are strings; multi-choice selections become JSON arrays of ids."""
    if isinstance(value, str):
        return value
    return json_dump([str(item) for item in value])


def _log_error(exc: Exception) -> None:
    logger.warning("Tryout request failed: %s", exc)


class AttemptSession:
    """
    Client-side lifecycle of a single attempt.

    ``on_error`` receives every failed request (for a toast or status line)
    before the error is re-raised; nothing is retried automatically. The
    deadline timer is owned by the session and is cancelled on completion
    and on ``close()``.
    """

    def __init__(
        self,
        client: TryoutClient,
        tryout_id: int,
        on_error: Callable[[Exception], object] | None = None,
        tick_ms: int = TIMER_TICK_MS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.tryout_id = tryout_id
        self.notify = on_error or _log_error
        self.tick_ms = tick_ms
        self.clock = clock
        self.attempt: dict[str, Any] | None = None
        self.result: dict[str, Any] | None = None
        self.answers: dict[int, str] = {}
        self.timer: DeadlineTimer | None = None
        self._complete_lock = threading.Lock()

    @property
    def attempt_id(self) -> int:
        if self.attempt is None:
            raise RuntimeError("Attempt has not been started")
        return self.attempt["id"]

    @property
    def remaining_ms(self) -> int | None:
        return self.timer.remaining_ms if self.timer else None

    @property
    def completed(self) -> bool:
        return self.result is not None

    def start(self) -> dict[str, Any]:
        """Start (or resume) the attempt and arm the deadline timer."""
        try:
            active = self.client.get_active_attempt(self.tryout_id)
            attempt = active if active is not None else self.client.start_attempt(self.tryout_id)
        except ClientError as exc:
            self.notify(exc)
            raise

        self.attempt = attempt
        for answer in attempt.get("answers", []):
            self.answers[answer["question_id"]] = answer["answer"]

        started_at = parse_iso_timestamp(attempt["started_at"])
        self.timer = DeadlineTimer(
            started_at,
            attempt.get("duration"),
            self._on_deadline,
            tick_ms=self.tick_ms,
            clock=self.clock,
        ).start()
        return attempt

    def answer(self, question_id: int, value: str | Iterable[int | str]) -> dict[str, Any]:
        """
        Record an edit and send it. The local value is kept even when the
        request fails so the user can retry.
        """
        encoded = encode_answer(value)
        self.answers[question_id] = encoded
        try:
            return self.client.submit_answer(self.attempt_id, question_id, encoded)
        except ClientError as exc:
            self.notify(exc)
            raise

    def complete(self) -> dict[str, Any]:
        """Submit the attempt once; later calls return the first result."""
        with self._complete_lock:
            if self.result is None:
                try:
                    self.result = self.client.complete_attempt(self.attempt_id)
                except ClientError as exc:
                    self.notify(exc)
                    raise
        self._stop_timer()
        return self.result

    def results(self) -> dict[str, Any]:
        try:
            return self.client.get_attempt_results(self.attempt_id)
        except ClientError as exc:
            self.notify(exc)
            raise

    def _on_deadline(self) -> None:
        logger.info("Time is up; submitting attempt %s", self.attempt_id)
        self.complete()

    def _stop_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()

    def close(self) -> None:
        self._stop_timer()

    def __enter__(self) -> "AttemptSession":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
