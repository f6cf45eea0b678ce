"""Service layer for tryout authoring and viewing."""
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession, selectinload

from lms_api.errors import ForbiddenError, NotFoundError
from lms_api.models.db.attempt import Attempt
from lms_api.models.db.course import Course, course_members
from lms_api.models.db.tryout import Question, QuestionOption, Tryout
from lms_api.models.db.user import User
from lms_api.models.tryouts import QuestionInput, TryoutCreate, TryoutUpdate
from lms_api.services import course_service

logger = logging.getLogger(__name__)


def _with_questions(stmt):
    return stmt.options(
        selectinload(Tryout.questions).selectinload(Question.options),
        selectinload(Tryout.course),
    )


def _build_question(data: QuestionInput, order: int) -> Question:
    """Create a Question (with options) from its input definition."""
    question = Question(
        type=data.type.value,
        question=data.question,
        points=data.points,
        required=data.required,
        explanation=data.explanation,
        order=order,
    )
    question.short_answers = [value.strip() for value in data.short_answers or []]
    for index, option in enumerate(data.options or [], start=1):
        question.options.append(
            QuestionOption(
                text=option.text,
                is_correct=option.is_correct,
                explanation=option.explanation,
                order=index,
            )
        )
    return question


def get_tryout(db: DbSession, tryout_id: int) -> Tryout | None:
    """Get tryout with questions and options loaded."""
    stmt = _with_questions(select(Tryout).where(Tryout.id == tryout_id))
    return db.execute(stmt).scalar_one_or_none()


def require_tryout(db: DbSession, tryout_id: int) -> Tryout:
    tryout = get_tryout(db, tryout_id)
    if tryout is None:
        raise NotFoundError("Tryout not found")
    return tryout


def require_active_tryout(db: DbSession, tryout_id: int) -> Tryout:
    """Active tryouts only; inactive ones are invisible to students."""
    tryout = get_tryout(db, tryout_id)
    if tryout is None or not tryout.is_active:
        raise NotFoundError("Tryout not found or not active")
    return tryout


def ensure_enrolled(db: DbSession, tryout: Tryout, user: User) -> None:
    if not course_service.is_member(db, tryout.course_id, user.id):
        raise ForbiddenError("You are not enrolled in this course")


def create_tryout(db: DbSession, data: TryoutCreate) -> Tryout:
    """Create a tryout with its questions; question order follows input order."""
    course_service.require_course(db, data.course_id)

    tryout = Tryout(
        course_id=data.course_id,
        title=data.title,
        description=data.description,
        duration=data.duration,
        is_active=data.is_active,
    )
    for index, question in enumerate(data.questions, start=1):
        tryout.questions.append(_build_question(question, index))

    db.add(tryout)
    db.commit()
    logger.info("Created tryout %s with %d questions", tryout.id, len(data.questions))
    return require_tryout(db, tryout.id)


def update_tryout(db: DbSession, tryout_id: int, data: TryoutUpdate) -> Tryout:
    """
    Update tryout fields. When questions are supplied they replace the
    existing ones entirely, in one transaction.
    """
    tryout = require_tryout(db, tryout_id)
    fields = data.model_dump(exclude_unset=True, exclude={"questions"})

    if fields.get("course_id") is not None:
        course_service.require_course(db, fields["course_id"])
    for name, value in fields.items():
        if name in ("title", "is_active", "course_id") and value is None:
            continue
        setattr(tryout, name, value)

    if data.questions is not None:
        tryout.questions.clear()
        db.flush()
        for index, question in enumerate(data.questions, start=1):
            tryout.questions.append(_build_question(question, index))

    db.commit()
    logger.info("Updated tryout %s", tryout_id)
    db.expire_all()
    return require_tryout(db, tryout_id)


def delete_tryout(db: DbSession, tryout_id: int) -> None:
    """Delete a tryout with its questions, attempts and answers."""
    tryout = require_tryout(db, tryout_id)
    db.delete(tryout)
    db.commit()
    logger.info("Deleted tryout %s", tryout_id)


def toggle_active(db: DbSession, tryout_id: int) -> Tryout:
    tryout = require_tryout(db, tryout_id)
    tryout.is_active = not tryout.is_active
    db.commit()
    logger.info("Tryout %s active=%s", tryout_id, tryout.is_active)
    return tryout


def duplicate_tryout(db: DbSession, tryout_id: int) -> Tryout:
    """Copy a tryout with its questions; the copy starts inactive."""
    original = require_tryout(db, tryout_id)

    copy = Tryout(
        course_id=original.course_id,
        title=f"{original.title} (Copy)",
        description=original.description,
        duration=original.duration,
        is_active=False,
    )
    for index, question in enumerate(original.questions, start=1):
        cloned = Question(
            type=question.type,
            question=question.question,
            points=question.points,
            required=question.required,
            explanation=question.explanation,
            short_answers_json=question.short_answers_json,
            order=index,
        )
        for option_index, option in enumerate(question.options, start=1):
            cloned.options.append(
                QuestionOption(
                    text=option.text,
                    is_correct=option.is_correct,
                    explanation=option.explanation,
                    order=option_index,
                )
            )
        copy.questions.append(cloned)

    db.add(copy)
    db.commit()
    logger.info("Duplicated tryout %s as %s", tryout_id, copy.id)
    return require_tryout(db, copy.id)


def get_for_student(db: DbSession, tryout_id: int, user: User) -> Tryout:
    """Active tryout for an enrolled user (answer key is stripped by the route)."""
    tryout = require_active_tryout(db, tryout_id)
    ensure_enrolled(db, tryout, user)
    return tryout


def count_questions_and_attempts(
    db: DbSession, tryout_ids: list[int]
) -> dict[int, tuple[int, int]]:
    """Map tryout id to (question count, attempt count)."""
    if not tryout_ids:
        return {}
    question_counts = dict(
        db.execute(
            select(Question.tryout_id, func.count(Question.id))
            .where(Question.tryout_id.in_(tryout_ids))
            .group_by(Question.tryout_id)
        ).all()
    )
    attempt_counts = dict(
        db.execute(
            select(Attempt.tryout_id, func.count(Attempt.id))
            .where(Attempt.tryout_id.in_(tryout_ids))
            .group_by(Attempt.tryout_id)
        ).all()
    )
    return {
        tryout_id: (question_counts.get(tryout_id, 0), attempt_counts.get(tryout_id, 0))
        for tryout_id in tryout_ids
    }


def list_tryouts(db: DbSession, course_id: int | None = None) -> list[Tryout]:
    """All tryouts (optionally of one course), newest first."""
    stmt = select(Tryout).options(selectinload(Tryout.course))
    if course_id is not None:
        stmt = stmt.where(Tryout.course_id == course_id)
    stmt = stmt.order_by(Tryout.created_at.desc(), Tryout.id.desc())
    return list(db.execute(stmt).scalars().all())


def list_my_tryouts(db: DbSession, user: User) -> list[tuple[Course, list[Tryout]]]:
    """
    Active tryouts grouped by the courses the user is enrolled in.
    Courses are sorted by title, tryouts newest first; courses without
    active tryouts are left out.
    """
    stmt = (
        select(Tryout)
        .join(course_members, course_members.c.course_id == Tryout.course_id)
        .where(course_members.c.user_id == user.id, Tryout.is_active == True)  # noqa: E712
        .options(selectinload(Tryout.course))
        .order_by(Tryout.created_at.desc(), Tryout.id.desc())
    )
    grouped: dict[int, tuple[Course, list[Tryout]]] = {}
    for tryout in db.execute(stmt).scalars().all():
        grouped.setdefault(tryout.course_id, (tryout.course, []))[1].append(tryout)
    return sorted(grouped.values(), key=lambda item: item[0].title)
