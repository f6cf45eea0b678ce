"""Attempt endpoints: start, answer, complete and results."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from lms_api.database import get_db
from lms_api.dependencies.auth import get_admin_user, get_current_user
from lms_api.models.attempts import (
    ActiveAttemptResponse,
    AnswerResponse,
    AnswerSubmit,
    AttemptResponse,
    AttemptResults,
    AttemptReview,
)
from lms_api.models.db.user import User
from lms_api.serialization import (
    serialize_active_attempt,
    serialize_attempt,
    serialize_results,
    serialize_review,
)
from lms_api.services import attempt_service

tryout_router = APIRouter(prefix="/api/tryouts/{tryout_id}/attempts", tags=["attempts"])
router = APIRouter(prefix="/api/attempts/{attempt_id}", tags=["attempts"])


@tryout_router.get("/active", response_model=ActiveAttemptResponse | None)
def get_active_attempt(
    tryout_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> ActiveAttemptResponse | None:
    """The caller's in-progress attempt for a tryout, or null."""
    attempt = attempt_service.get_active_attempt(db, tryout_id, current_user.id)
    if attempt is None:
        return None
    return serialize_active_attempt(attempt)


@tryout_router.post("", response_model=AttemptResponse)
def start_attempt(
    tryout_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AttemptResponse:
    """Start an attempt, or resume the one in progress."""
    return serialize_attempt(attempt_service.start_attempt(db, tryout_id, current_user))


@tryout_router.get("", response_model=list[AttemptResponse])
def get_user_attempts(
    tryout_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[AttemptResponse]:
    """The caller's attempts for a tryout, newest first."""
    attempts = attempt_service.get_user_attempts(db, tryout_id, current_user.id)
    return [serialize_attempt(attempt) for attempt in attempts]


@router.put("/answers/{question_id}", response_model=AnswerResponse)
def submit_answer(
    attempt_id: int,
    question_id: int,
    payload: AnswerSubmit,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AnswerResponse:
    """Record the answer to one question; repeated calls overwrite."""
    answer = attempt_service.submit_answer(
        db, attempt_id, question_id, payload.answer, current_user
    )
    return AnswerResponse.model_validate(answer)


@router.post("/complete", response_model=AttemptResponse)
def complete_attempt(
    attempt_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AttemptResponse:
    """Score and close the attempt; idempotent."""
    return serialize_attempt(attempt_service.complete_attempt(db, attempt_id, current_user))


@router.get("/results", response_model=AttemptResults)
def get_attempt_results(
    attempt_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AttemptResults:
    """Completed attempt with questions, answers and awarded points."""
    return serialize_results(attempt_service.get_attempt_results(db, attempt_id, current_user))


@router.get("/review", response_model=AttemptReview)
def get_attempt_review(
    attempt_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> AttemptReview:
    """Any attempt, for grading and review (admin)."""
    return serialize_review(attempt_service.get_attempt_details(db, attempt_id))
