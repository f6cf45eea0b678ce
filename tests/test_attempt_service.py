import threading
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from lms_api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from lms_api.models.db.attempt import Attempt, AttemptAnswer
from lms_api.models.db.user import User
from lms_api.services import attempt_service
from lms_api.utils.time_utils import as_utc, utc_now
from tests.factories import long_answer, multi_choice, option_id, short_answer, single_choice


def _count(db, model, **filters) -> int:
    stmt = select(func.count()).select_from(model).where(
        *(getattr(model, name) == value for name, value in filters.items())
    )
    return db.execute(stmt).scalar()


def _backdate(db, attempt: Attempt, **delta: float) -> None:
    attempt.started_at = utc_now() - timedelta(**delta)
    db.commit()


def test_start_attempt_sets_max_score(db, student, make_tryout) -> None:
    tryout = make_tryout(single_choice(points=10), multi_choice(points=20))

    attempt = attempt_service.start_attempt(db, tryout.id, student)

    assert attempt.max_score == 30
    assert attempt.score == 0
    assert attempt.is_completed is False
    assert attempt.ended_at is None


def test_start_attempt_resumes_active_attempt(db, student, make_tryout) -> None:
    tryout = make_tryout()

    first = attempt_service.start_attempt(db, tryout.id, student)
    second = attempt_service.start_attempt(db, tryout.id, student)

    assert first.id == second.id
    assert _count(db, Attempt, tryout_id=tryout.id) == 1
    assert attempt_service.get_active_attempt(db, tryout.id, student.id).id == first.id


def test_start_attempt_rejects_inactive_or_missing_tryout(db, student, make_tryout) -> None:
    tryout = make_tryout(is_active=False)

    with pytest.raises(NotFoundError):
        attempt_service.start_attempt(db, tryout.id, student)
    with pytest.raises(NotFoundError):
        attempt_service.start_attempt(db, 9999, student)


def test_start_attempt_requires_enrollment(db, make_user, make_tryout) -> None:
    tryout = make_tryout()
    outsider = make_user("outsider")

    with pytest.raises(ForbiddenError):
        attempt_service.start_attempt(db, tryout.id, outsider)


def test_second_active_attempt_is_rejected_by_index(db, student, make_tryout) -> None:
    tryout = make_tryout()
    attempt_service.start_attempt(db, tryout.id, student)

    db.add(Attempt(user_id=student.id, tryout_id=tryout.id, started_at=utc_now()))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_concurrent_start_resumes_the_winner(db, session_factory, student, make_tryout, monkeypatch) -> None:
    tryout = make_tryout()
    other = session_factory()
    try:
        winner_id = attempt_service.start_attempt(other, tryout.id, other.get(User, student.id)).id
    finally:
        other.close()

    real_lookup = attempt_service.get_active_attempt
    lookups = []

    def racing_lookup(session, tryout_id, user_id):
        lookups.append(tryout_id)
        if len(lookups) == 1:
            return None
        return real_lookup(session, tryout_id, user_id)

    monkeypatch.setattr(attempt_service, "get_active_attempt", racing_lookup)
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    assert attempt.id == winner_id
    assert len(lookups) == 2
    assert _count(db, Attempt, tryout_id=tryout.id) == 1


def test_parallel_starts_create_one_attempt(db, session_factory, student, make_tryout) -> None:
    tryout = make_tryout()
    barrier = threading.Barrier(2)
    ids, errors = [], []

    def worker() -> None:
        session = session_factory()
        try:
            user = session.get(User, student.id)
            barrier.wait()
            ids.append(attempt_service.start_attempt(session, tryout.id, user).id)
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(ids) == 2 and ids[0] == ids[1]
    assert _count(db, Attempt, tryout_id=tryout.id) == 1


def test_get_user_attempts_newest_first(db, student, make_tryout) -> None:
    tryout = make_tryout()
    first = attempt_service.start_attempt(db, tryout.id, student)
    _backdate(db, first, minutes=10)
    attempt_service.complete_attempt(db, first.id, student)
    second = attempt_service.start_attempt(db, tryout.id, student)

    attempts = attempt_service.get_user_attempts(db, tryout.id, student.id)

    assert [attempt.id for attempt in attempts] == [second.id, first.id]
    assert attempt_service.get_user_attempts(db, tryout.id, student.id + 100) == []


def test_submit_answer_overwrites_previous_value(db, student, make_tryout) -> None:
    tryout = make_tryout(single_choice())
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    question_id = tryout.questions[0].id

    attempt_service.submit_answer(db, attempt.id, question_id, "1", student)
    record = attempt_service.submit_answer(db, attempt.id, question_id, "2", student)

    assert record.answer == "2"
    assert record.points == 0
    assert _count(db, AttemptAnswer, attempt_id=attempt.id) == 1


def test_submit_answer_to_completed_attempt_conflicts(db, student, make_tryout) -> None:
    tryout = make_tryout()
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    attempt_service.complete_attempt(db, attempt.id, student)

    with pytest.raises(ConflictError):
        attempt_service.submit_answer(db, attempt.id, tryout.questions[0].id, "1", student)


def test_submit_answer_after_deadline_conflicts(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=30)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    _backdate(db, attempt, minutes=31)

    with pytest.raises(ConflictError):
        attempt_service.submit_answer(db, attempt.id, tryout.questions[0].id, "1", student)


def test_submit_answer_within_grace_period_is_accepted(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=30)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    _backdate(db, attempt, minutes=30, seconds=5)

    record = attempt_service.submit_answer(db, attempt.id, tryout.questions[0].id, "1", student)
    assert record.answer == "1"


def test_submit_answer_validates_multi_choice_payload(db, student, make_tryout) -> None:
    tryout = make_tryout(multi_choice())
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    with pytest.raises(ValidationError):
        attempt_service.submit_answer(db, attempt.id, tryout.questions[0].id, "opt1", student)


def test_submit_answer_checks_ownership_and_question(db, student, make_user, make_tryout) -> None:
    tryout = make_tryout()
    other_tryout = make_tryout()
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    stranger = make_user("stranger")

    with pytest.raises(NotFoundError):
        attempt_service.submit_answer(db, attempt.id, tryout.questions[0].id, "1", stranger)
    with pytest.raises(NotFoundError):
        attempt_service.submit_answer(db, attempt.id, other_tryout.questions[0].id, "1", student)
    with pytest.raises(NotFoundError):
        attempt_service.submit_answer(db, 9999, tryout.questions[0].id, "1", student)


def test_complete_attempt_scores_answers(db, student, make_tryout) -> None:
    tryout = make_tryout(single_choice(points=10, correct="B"), multi_choice(points=20))
    single, multi = tryout.questions
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    attempt_service.submit_answer(db, attempt.id, single.id, str(option_id(tryout, 0, "B")), student)
    attempt_service.submit_answer(db, attempt.id, multi.id, f'["{option_id(tryout, 1, "opt1")}"]', student)
    completed = attempt_service.complete_attempt(db, attempt.id, student)

    assert completed.is_completed
    assert completed.max_score == 30
    assert completed.score == 10
    assert completed.ended_at is not None
    points = dict(
        db.execute(
            select(AttemptAnswer.question_id, AttemptAnswer.points).where(
                AttemptAnswer.attempt_id == attempt.id
            )
        ).all()
    )
    assert points == {single.id: 10, multi.id: 0}


def test_complete_attempt_awards_exact_multi_choice_set(db, student, make_tryout) -> None:
    tryout = make_tryout(multi_choice(points=15, correct=("opt1", "opt3")))
    question = tryout.questions[0]
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    selected = [option_id(tryout, 0, "opt3"), option_id(tryout, 0, "opt1")]

    attempt_service.submit_answer(db, attempt.id, question.id, f'["{selected[0]}", "{selected[1]}"]', student)

    assert attempt_service.complete_attempt(db, attempt.id, student).score == 15


def test_complete_attempt_is_idempotent(db, student, make_tryout) -> None:
    tryout = make_tryout(single_choice(points=10, correct="A"))
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    attempt_service.submit_answer(
        db, attempt.id, tryout.questions[0].id, str(option_id(tryout, 0, "A")), student
    )

    first = attempt_service.complete_attempt(db, attempt.id, student)
    first_score, first_ended = first.score, first.ended_at
    second = attempt_service.complete_attempt(db, attempt.id, student)

    assert second.score == first_score == 10
    assert second.ended_at == first_ended


def test_finalize_loses_race_without_overwriting(db, session_factory, student, make_tryout) -> None:
    tryout = make_tryout(single_choice(points=10, correct="A"))
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    other = session_factory()
    try:
        winner = attempt_service.complete_attempt(other, attempt.id, other.get(User, student.id))
        winner_ended = as_utc(winner.ended_at)
    finally:
        other.close()

    # a request that read the attempt before the winner committed
    result, won = attempt_service._finalize(db, attempt)

    assert won is False
    assert result.is_completed
    assert as_utc(result.ended_at) == winner_ended


def test_complete_attempt_of_another_user_is_not_found(db, student, make_user, make_tryout) -> None:
    tryout = make_tryout()
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    with pytest.raises(NotFoundError):
        attempt_service.complete_attempt(db, attempt.id, make_user("intruder"))


def test_short_and_long_answers_are_flagged_for_review(db, student, make_tryout) -> None:
    tryout = make_tryout(short_answer(points=5), long_answer(points=20))
    short, essay = tryout.questions
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    attempt_service.submit_answer(db, attempt.id, short.id, " paris ", student)
    attempt_service.submit_answer(db, attempt.id, essay.id, "Divide and conquer", student)
    attempt_service.complete_attempt(db, attempt.id, student)

    results = attempt_service.get_attempt_results(db, attempt.id, student)
    assert results.attempt.score == 5
    assert results.attempt.max_score == 25
    assert results.answers[short.id].points == 5
    assert results.answers[essay.id].needs_review
    assert results.pending_review == 1


def test_results_require_completed_attempt(db, student, make_tryout) -> None:
    tryout = make_tryout()
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    with pytest.raises(NotFoundError):
        attempt_service.get_attempt_results(db, attempt.id, student)


def test_results_include_unanswered_questions_as_missing(db, student, make_tryout) -> None:
    tryout = make_tryout(single_choice(), single_choice(text="Second"))
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    attempt_service.complete_attempt(db, attempt.id, student)

    results = attempt_service.get_attempt_results(db, attempt.id, student)

    assert [question.id for question in results.tryout.questions] == [q.id for q in tryout.questions]
    assert results.answers == {}
    assert results.attempt.score == 0


def test_attempt_details_for_review_includes_open_attempts(db, student, make_tryout) -> None:
    tryout = make_tryout()
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    details = attempt_service.get_attempt_details(db, attempt.id)

    assert details.attempt.id == attempt.id
    assert details.tryout.id == tryout.id
    with pytest.raises(NotFoundError):
        attempt_service.get_attempt_details(db, 9999)


def test_is_past_deadline_honours_grace(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=10)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    deadline = attempt_service.attempt_deadline(attempt)

    assert not attempt_service.is_past_deadline(attempt, deadline + timedelta(seconds=10), grace_seconds=30)
    assert attempt_service.is_past_deadline(attempt, deadline + timedelta(seconds=31), grace_seconds=30)


def test_untimed_attempt_never_passes_deadline(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=None)
    attempt = attempt_service.start_attempt(db, tryout.id, student)

    assert attempt_service.attempt_deadline(attempt) is None
    assert not attempt_service.is_past_deadline(attempt, utc_now() + timedelta(days=365))


def test_complete_expired_attempts_only_closes_overdue(db, student, make_tryout) -> None:
    overdue_tryout = make_tryout(single_choice(points=10, correct="C"), duration=15)
    running_tryout = make_tryout(duration=15)
    untimed_tryout = make_tryout(duration=None)

    overdue = attempt_service.start_attempt(db, overdue_tryout.id, student)
    attempt_service.submit_answer(
        db, overdue.id, overdue_tryout.questions[0].id, str(option_id(overdue_tryout, 0, "C")), student
    )
    _backdate(db, overdue, minutes=20)
    running = attempt_service.start_attempt(db, running_tryout.id, student)
    untimed = attempt_service.start_attempt(db, untimed_tryout.id, student)
    _backdate(db, untimed, days=3)

    assert attempt_service.complete_expired_attempts(db) == 1

    db.expire_all()
    overdue = db.get(Attempt, overdue.id)
    assert overdue.is_completed
    assert overdue.score == 10
    assert as_utc(overdue.ended_at) == as_utc(overdue.started_at) + timedelta(minutes=15)
    assert not db.get(Attempt, running.id).is_completed
    assert not db.get(Attempt, untimed.id).is_completed


def test_late_completion_ends_at_deadline(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=30)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    _backdate(db, attempt, minutes=45)
    deadline = attempt_service.attempt_deadline(attempt)

    completed = attempt_service.complete_attempt(db, attempt.id, student)

    assert completed.is_completed
    assert as_utc(completed.ended_at) == deadline


def test_completion_in_time_ends_now(db, student, make_tryout) -> None:
    tryout = make_tryout(duration=30)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    before = utc_now()

    completed = attempt_service.complete_attempt(db, attempt.id, student)

    assert before <= as_utc(completed.ended_at) <= utc_now()


def test_complete_expired_attempts_counts_only_own_completions(
    db, session_factory, student, make_tryout, monkeypatch
) -> None:
    tryout = make_tryout(duration=15)
    attempt = attempt_service.start_attempt(db, tryout.id, student)
    _backdate(db, attempt, minutes=20)
    real_finalize = attempt_service._finalize

    def finalize_after_concurrent_completion(session, target, ended_at=None):
        other = session_factory()
        try:
            real_finalize(other, other.get(Attempt, target.id), ended_at=ended_at)
        finally:
            other.close()
        return real_finalize(session, target, ended_at=ended_at)

    monkeypatch.setattr(attempt_service, "_finalize", finalize_after_concurrent_completion)

    assert attempt_service.complete_expired_attempts(db) == 0
    db.expire_all()
    assert db.get(Attempt, attempt.id).is_completed
