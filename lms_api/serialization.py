"""Conversion of ORM objects into API response models."""
from lms_api.models.attempts import (
    ActiveAttemptResponse,
    AnswerResponse,
    AttemptResponse,
    AttemptResults,
    AttemptReview,
    AttemptUserRef,
    AttemptWithUser,
    ResultQuestion,
    TryoutRef,
)
from lms_api.models.db.attempt import Attempt
from lms_api.models.db.tryout import Tryout
from lms_api.models.tryouts import CourseRef, QuestionResponse, TryoutSummary
from lms_api.services import attempt_service
from lms_api.timer import deadline_for
from lms_api.utils.time_utils import as_utc


def serialize_attempt(attempt: Attempt) -> AttemptResponse:
    duration = attempt.tryout.duration
    return AttemptResponse(
        id=attempt.id,
        user_id=attempt.user_id,
        tryout_id=attempt.tryout_id,
        started_at=as_utc(attempt.started_at),
        ended_at=as_utc(attempt.ended_at) if attempt.ended_at else None,
        is_completed=attempt.is_completed,
        score=attempt.score,
        max_score=attempt.max_score,
        duration=duration,
        deadline=deadline_for(attempt.started_at, duration),
    )


def serialize_active_attempt(attempt: Attempt) -> ActiveAttemptResponse:
    tryout = attempt.tryout
    return ActiveAttemptResponse(
        **serialize_attempt(attempt).model_dump(),
        tryout_title=tryout.title,
        question_ids=[question.id for question in tryout.questions],
        answers=[AnswerResponse.model_validate(answer) for answer in attempt.answers],
    )


def serialize_attempt_with_user(attempt: Attempt) -> AttemptWithUser:
    return AttemptWithUser(
        **serialize_attempt(attempt).model_dump(),
        user=AttemptUserRef.model_validate(attempt.user),
    )


def serialize_results(results: attempt_service.AttemptResults) -> AttemptResults:
    """Every question in order, with the stored answer and awarded points."""
    questions = []
    for question in results.tryout.questions:
        answer = results.answers.get(question.id)
        questions.append(
            ResultQuestion(
                question=QuestionResponse.model_validate(question),
                answer=AnswerResponse.model_validate(answer) if answer else None,
                points=answer.points if answer else 0,
            )
        )
    tryout = results.tryout
    return AttemptResults(
        attempt=serialize_attempt(results.attempt),
        tryout=TryoutRef(id=tryout.id, title=tryout.title, duration=tryout.duration),
        questions=questions,
        pending_review=results.pending_review,
    )


def serialize_review(results: attempt_service.AttemptResults) -> AttemptReview:
    return AttemptReview(
        **serialize_results(results).model_dump(),
        user=AttemptUserRef.model_validate(results.attempt.user),
    )


def serialize_tryout_summary(tryout: Tryout, counts: tuple[int, int]) -> TryoutSummary:
    question_count, attempt_count = counts
    return TryoutSummary(
        id=tryout.id,
        title=tryout.title,
        description=tryout.description,
        duration=tryout.duration,
        is_active=tryout.is_active,
        created_at=tryout.created_at,
        course=CourseRef.model_validate(tryout.course),
        question_count=question_count,
        attempt_count=attempt_count,
    )
