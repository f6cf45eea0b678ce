"""Course and enrollment endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session as DbSession

from lms_api.database import get_db
from lms_api.dependencies.auth import get_admin_user, get_current_user
from lms_api.models.auth import MessageResponse
from lms_api.models.courses import CourseCreate, CourseResponse
from lms_api.models.db.course import Course
from lms_api.models.db.user import User
from lms_api.services import course_service

router = APIRouter(prefix="/api/courses", tags=["courses"])


def _to_response(db: DbSession, course: Course, user: User) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        class_code=course.class_code,
        description=course.description,
        created_at=course.created_at,
        member_count=course_service.member_count(db, course.id),
        is_member=course_service.is_member(db, course.id, user.id),
    )


@router.get("", response_model=list[CourseResponse])
def list_courses(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[CourseResponse]:
    """List all courses."""
    return [_to_response(db, course, current_user) for course in course_service.list_courses(db)]


@router.get("/mine", response_model=list[CourseResponse])
def list_my_courses(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[CourseResponse]:
    """List courses the current user is enrolled in."""
    return [
        _to_response(db, course, current_user)
        for course in course_service.list_user_courses(db, current_user)
    ]


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> CourseResponse:
    """Create a course (admin)."""
    course = course_service.create_course(
        db, payload.title, payload.class_code, payload.description
    )
    return _to_response(db, course, admin)


@router.delete("/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: int,
    _admin: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> MessageResponse:
    """Delete a course with its tryouts (admin)."""
    course_service.delete_course(db, course_id)
    return MessageResponse(message="Course deleted")


@router.post("/{course_id}/enroll", response_model=CourseResponse)
def enroll(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> CourseResponse:
    """Enroll the current user in a course."""
    course = course_service.enroll(db, course_id, current_user)
    return _to_response(db, course, current_user)


@router.delete("/{course_id}/enroll", response_model=CourseResponse)
def unenroll(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> CourseResponse:
    """Leave a course."""
    course = course_service.unenroll(db, course_id, current_user)
    return _to_response(db, course, current_user)
