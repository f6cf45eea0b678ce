"""Tryout authoring (admin) and student-facing tryout endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session as DbSession

from lms_api.database import get_db
from lms_api.dependencies.auth import get_admin_user, get_current_user
from lms_api.models.attempts import AttemptUserRef, CourseTryouts, MyTryout, TryoutDetailed
from lms_api.models.auth import MessageResponse
from lms_api.models.db.user import User
from lms_api.models.tryouts import (
    CourseRef,
    StudentTryout,
    TryoutCreate,
    TryoutDetail,
    TryoutStatistics,
    TryoutSummary,
    TryoutUpdate,
)
from lms_api.serialization import (
    serialize_attempt,
    serialize_attempt_with_user,
    serialize_tryout_summary,
)
from lms_api.services import attempt_service, course_service, stats_service, tryout_service

router = APIRouter(prefix="/api/tryouts", tags=["tryouts"])


def _summaries(db: DbSession, tryouts) -> list[TryoutSummary]:
    counts = tryout_service.count_questions_and_attempts(db, [tryout.id for tryout in tryouts])
    return [serialize_tryout_summary(tryout, counts[tryout.id]) for tryout in tryouts]


@router.post("", response_model=TryoutDetail, status_code=status.HTTP_201_CREATED)
def create_tryout(
    payload: TryoutCreate,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TryoutDetail:
    """Create a tryout with its questions (admin)."""
    return TryoutDetail.model_validate(tryout_service.create_tryout(db, payload))


@router.get("", response_model=list[TryoutSummary])
def list_tryouts(
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[TryoutSummary]:
    """List every tryout, newest first (admin)."""
    return _summaries(db, tryout_service.list_tryouts(db))


@router.get("/mine", response_model=list[CourseTryouts])
def list_my_tryouts(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[CourseTryouts]:
    """Active tryouts of the caller's courses, with the caller's attempts."""
    grouped = tryout_service.list_my_tryouts(db, current_user)
    result = []
    for course, tryouts in grouped:
        items = []
        for summary in _summaries(db, tryouts):
            attempts = attempt_service.get_user_attempts(db, summary.id, current_user.id)
            items.append(
                MyTryout(
                    **summary.model_dump(),
                    attempts=[serialize_attempt(attempt) for attempt in attempts],
                )
            )
        result.append(CourseTryouts(course=CourseRef.model_validate(course), tryouts=items))
    return result


@router.get("/course/{course_id}", response_model=list[TryoutSummary])
def list_course_tryouts(
    course_id: int,
    _user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[TryoutSummary]:
    """Tryouts of one course, newest first."""
    course_service.require_course(db, course_id)
    return _summaries(db, tryout_service.list_tryouts(db, course_id=course_id))


@router.get("/{tryout_id}", response_model=TryoutDetail)
def get_tryout(
    tryout_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TryoutDetail:
    """Tryout with its answer key, for editing (admin)."""
    return TryoutDetail.model_validate(tryout_service.require_tryout(db, tryout_id))


@router.get("/{tryout_id}/student", response_model=StudentTryout)
def get_tryout_for_student(
    tryout_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> StudentTryout:
    """Active tryout without correct answers, for an enrolled user."""
    return StudentTryout.model_validate(
        tryout_service.get_for_student(db, tryout_id, current_user)
    )


@router.patch("/{tryout_id}", response_model=TryoutDetail)
def update_tryout(
    tryout_id: int,
    payload: TryoutUpdate,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TryoutDetail:
    """Update a tryout; supplied questions replace the existing ones (admin)."""
    return TryoutDetail.model_validate(tryout_service.update_tryout(db, tryout_id, payload))


@router.delete("/{tryout_id}", response_model=MessageResponse)
def delete_tryout(
    tryout_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Delete a tryout with all attempts (admin)."""
    tryout_service.delete_tryout(db, tryout_id)
    return MessageResponse(message="Tryout deleted")


@router.post("/{tryout_id}/toggle-active", response_model=TryoutDetail)
def toggle_tryout_active(
    tryout_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TryoutDetail:
    """Flip whether students can see and start the tryout (admin)."""
    tryout_service.toggle_active(db, tryout_id)
    return TryoutDetail.model_validate(tryout_service.require_tryout(db, tryout_id))


@router.post(
    "/{tryout_id}/duplicate",
    response_model=TryoutDetail,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_tryout(
    tryout_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TryoutDetail:
    """Copy a tryout; the copy is inactive (admin)."""
    return TryoutDetail.model_validate(tryout_service.duplicate_tryout(db, tryout_id))


@router.get("/{tryout_id}/detailed", response_model=TryoutDetailed)
def get_tryout_detailed(
    tryout_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
    completed_only: bool = Query(False, alias="completedOnly"),
) -> TryoutDetailed:
    """Tryout overview with members, attempts and score statistics (admin)."""
    tryout = tryout_service.require_tryout(db, tryout_id)
    attempts = attempt_service.list_tryout_attempts(db, tryout_id)
    statistics = stats_service.tryout_statistics(attempts)
    if completed_only:
        attempts = [attempt for attempt in attempts if attempt.is_completed]

    counts = tryout_service.count_questions_and_attempts(db, [tryout.id])[tryout.id]
    return TryoutDetailed(
        tryout=serialize_tryout_summary(tryout, counts),
        course=CourseRef.model_validate(tryout.course),
        members=[AttemptUserRef.model_validate(member) for member in tryout.course.members],
        attempts=[serialize_attempt_with_user(attempt) for attempt in attempts],
        statistics=TryoutStatistics(**statistics),
    )
