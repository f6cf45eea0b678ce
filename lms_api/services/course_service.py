"""Course and enrollment service."""
import logging

from sqlalchemy import exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession

from lms_api.errors import ConflictError, NotFoundError
from lms_api.models.db.course import Course, course_members
from lms_api.models.db.user import User

logger = logging.getLogger(__name__)


def get_course(db: DbSession, course_id: int) -> Course | None:
    """Get course by ID."""
    return db.get(Course, course_id)


def require_course(db: DbSession, course_id: int) -> Course:
    course = get_course(db, course_id)
    if course is None:
        raise NotFoundError("Course not found")
    return course


def create_course(
    db: DbSession, title: str, class_code: str, description: str | None = None
) -> Course:
    """Create a course; class codes are unique."""
    course = Course(title=title, class_code=class_code, description=description)
    db.add(course)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Class code already in use")
    db.refresh(course)
    logger.info("Created course %s (%s)", course.id, course.class_code)
    return course


def list_courses(db: DbSession) -> list[Course]:
    return list(db.execute(select(Course).order_by(Course.title.asc())).scalars().all())


def list_user_courses(db: DbSession, user: User) -> list[Course]:
    stmt = (
        select(Course)
        .join(course_members, course_members.c.course_id == Course.id)
        .where(course_members.c.user_id == user.id)
        .order_by(Course.title.asc())
    )
    return list(db.execute(stmt).scalars().all())


def member_count(db: DbSession, course_id: int) -> int:
    stmt = select(func.count()).select_from(course_members).where(
        course_members.c.course_id == course_id
    )
    return db.execute(stmt).scalar() or 0


def is_member(db: DbSession, course_id: int, user_id: int) -> bool:
    """Check whether a user is enrolled in a course."""
    stmt = select(
        exists().where(
            course_members.c.course_id == course_id,
            course_members.c.user_id == user_id,
        )
    )
    return bool(db.execute(stmt).scalar())


def enroll(db: DbSession, course_id: int, user: User) -> Course:
    """Enroll a user; enrolling twice is a no-op."""
    course = require_course(db, course_id)
    if not is_member(db, course_id, user.id):
        course.members.append(user)
        db.commit()
        logger.info("User %s enrolled in course %s", user.id, course_id)
    return course


def unenroll(db: DbSession, course_id: int, user: User) -> Course:
    """Remove a user from a course; a no-op when not enrolled."""
    course = require_course(db, course_id)
    if user in course.members:
        course.members.remove(user)
        db.commit()
        logger.info("User %s left course %s", user.id, course_id)
    return course


def delete_course(db: DbSession, course_id: int) -> None:
    course = require_course(db, course_id)
    db.delete(course)
    db.commit()
    logger.info("Deleted course %s", course_id)
