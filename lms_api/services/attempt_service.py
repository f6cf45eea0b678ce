"""Service layer for tryout attempts: start, answer, complete and review."""
import logging
from datetime import datetime, timedelta
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession, selectinload

from lms_api.config import ATTEMPT_DEADLINE_GRACE_SECONDS
from lms_api.errors import ConflictError, NotFoundError, ValidationError
from lms_api.models.db.attempt import Attempt, AttemptAnswer
from lms_api.models.db.tryout import Question, QuestionType, Tryout
from lms_api.models.db.user import User
from lms_api.services import tryout_service
from lms_api.services.scoring import parse_multi_choice, score_answer
from lms_api.timer import deadline_for
from lms_api.utils.time_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class AttemptResults(NamedTuple):
    """A completed attempt with its tryout and answers keyed by question id."""

    attempt: Attempt
    tryout: Tryout
    answers: dict[int, AttemptAnswer]

    @property
    def pending_review(self) -> int:
        return sum(1 for answer in self.answers.values() if answer.needs_review)


def get_active_attempt(db: DbSession, tryout_id: int, user_id: int) -> Attempt | None:
    """Most recent non-completed attempt of a user for a tryout."""
    stmt = (
        select(Attempt)
        .where(
            Attempt.user_id == user_id,
            Attempt.tryout_id == tryout_id,
            Attempt.is_completed == False,  # noqa: E712
        )
        .order_by(Attempt.started_at.desc(), Attempt.id.desc())
    )
    return db.execute(stmt).scalars().first()


def start_attempt(db: DbSession, tryout_id: int, user: User) -> Attempt:
    """
    Start an attempt, or resume the one already in progress.

    The partial unique index on active attempts rejects a second concurrent
    insert; the loser rolls back and resumes the winner's attempt.
    """
    tryout = tryout_service.require_active_tryout(db, tryout_id)
    tryout_service.ensure_enrolled(db, tryout, user)

    existing = get_active_attempt(db, tryout_id, user.id)
    if existing:
        logger.info("Resuming attempt %s for user %s", existing.id, user.id)
        return existing

    attempt = Attempt(
        user_id=user.id,
        tryout_id=tryout.id,
        started_at=utc_now(),
        score=0,
        max_score=tryout.max_score,
    )
    db.add(attempt)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_active_attempt(db, tryout_id, user.id)
        if existing is None:
            raise
        logger.info("Concurrent start; resuming attempt %s for user %s", existing.id, user.id)
        return existing

    db.refresh(attempt)
    logger.info(
        "Started attempt %s on tryout %s for user %s (max score %d)",
        attempt.id, tryout_id, user.id, attempt.max_score,
    )
    return attempt


def get_user_attempts(db: DbSession, tryout_id: int, user_id: int) -> list[Attempt]:
    """All attempts of a user for a tryout, newest first."""
    stmt = (
        select(Attempt)
        .where(Attempt.user_id == user_id, Attempt.tryout_id == tryout_id)
        .order_by(Attempt.started_at.desc(), Attempt.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def get_owned_attempt(
    db: DbSession, attempt_id: int, user: User, for_update: bool = False
) -> Attempt:
    """Load an attempt owned by ``user``; other users' attempts look absent."""
    stmt = select(Attempt).where(Attempt.id == attempt_id)
    if for_update:
        stmt = stmt.with_for_update()
    attempt = db.execute(stmt).scalar_one_or_none()
    if attempt is None or attempt.user_id != user.id:
        raise NotFoundError("Attempt not found")
    return attempt


def attempt_deadline(attempt: Attempt) -> datetime | None:
    return deadline_for(attempt.started_at, attempt.tryout.duration)


def is_past_deadline(
    attempt: Attempt,
    now: datetime | None = None,
    grace_seconds: int = ATTEMPT_DEADLINE_GRACE_SECONDS,
) -> bool:
    """True once a timed attempt's deadline plus the grace period has passed."""
    deadline = attempt_deadline(attempt)
    if deadline is None:
        return False
    now = as_utc(now) if now is not None else utc_now()
    return now > deadline + timedelta(seconds=grace_seconds)


def validate_answer(question: Question, answer: str) -> None:
    """Reject payloads that cannot be stored for this question type."""
    if question.question_type == QuestionType.MULTIPLE_CHOICE_MULTIPLE:
        if parse_multi_choice(answer) is None:
            raise ValidationError(
                "Answer for a multiple choice question must be a JSON array of option ids"
            )


def _find_answer(db: DbSession, attempt_id: int, question_id: int) -> AttemptAnswer | None:
    stmt = select(AttemptAnswer).where(
        AttemptAnswer.attempt_id == attempt_id,
        AttemptAnswer.question_id == question_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def submit_answer(
    db: DbSession,
    attempt_id: int,
    question_id: int,
    answer: str,
    user: User,
) -> AttemptAnswer:
    """
    Record or overwrite the answer to one question of an attempt.
    Points are not computed here; scoring happens on completion.
    """
    attempt = get_owned_attempt(db, attempt_id, user, for_update=True)
    if attempt.is_completed:
        raise ConflictError("Attempt already completed")
    if is_past_deadline(attempt):
        raise ConflictError("Time is up for this attempt")

    question = db.get(Question, question_id)
    if question is None or question.tryout_id != attempt.tryout_id:
        raise NotFoundError("Question not found")
    validate_answer(question, answer)

    record = _find_answer(db, attempt.id, question.id)
    if record is None:
        record = AttemptAnswer(attempt_id=attempt.id, question_id=question.id, answer=answer)
        db.add(record)
    else:
        record.answer = answer

    try:
        db.commit()
    except IntegrityError:
        # A concurrent first write for the same question won; overwrite it
        db.rollback()
        record = _find_answer(db, attempt_id, question_id)
        if record is None:
            raise
        record.answer = answer
        db.commit()

    db.refresh(record)
    logger.debug("Recorded answer for question %s in attempt %s", question_id, attempt_id)
    return record


def _finalize(
    db: DbSession, attempt: Attempt, ended_at: datetime | None = None
) -> tuple[Attempt, bool]:
    """
    Score every stored answer and mark the attempt completed.
    Returns the attempt and whether this call completed it.

    The completion flag is flipped with a conditional update so that only
    one of several racing completions writes a result; the others roll back
    and return what the winner stored.
    """
    questions = db.execute(
        select(Question)
        .options(selectinload(Question.options))
        .where(Question.tryout_id == attempt.tryout_id)
    ).scalars().all()
    by_id = {question.id: question for question in questions}

    answers = db.execute(
        select(AttemptAnswer).where(AttemptAnswer.attempt_id == attempt.id)
    ).scalars().all()

    total = 0
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None:
            continue
        scored = score_answer(question, answer.answer)
        answer.points = scored.points
        answer.needs_review = scored.needs_review
        total += scored.points

    result = db.execute(
        update(Attempt)
        .where(Attempt.id == attempt.id, Attempt.is_completed == False)  # noqa: E712
        .values(is_completed=True, score=total, ended_at=ended_at or utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        db.refresh(attempt)
        logger.info("Attempt %s was already completed", attempt.id)
        return attempt, False

    db.commit()
    db.refresh(attempt)
    logger.info(
        "Completed attempt %s: %d/%d", attempt.id, attempt.score, attempt.max_score
    )
    return attempt, True


def complete_attempt(db: DbSession, attempt_id: int, user: User) -> Attempt:
    """
    Score and close an attempt.

    Completing an already completed attempt returns it unchanged, so a timer
    auto-submit racing a manual submit is harmless. A timed attempt closed
    after its grace period ends at its deadline, as the sweeper records it.
    """
    attempt = get_owned_attempt(db, attempt_id, user, for_update=True)
    if attempt.is_completed:
        return attempt

    ended_at = utc_now()
    if is_past_deadline(attempt, ended_at):
        ended_at = attempt_deadline(attempt)
    attempt, _ = _finalize(db, attempt, ended_at=ended_at)
    return attempt


def load_results(db: DbSession, attempt: Attempt) -> AttemptResults:
    tryout = tryout_service.require_tryout(db, attempt.tryout_id)
    answers = db.execute(
        select(AttemptAnswer).where(AttemptAnswer.attempt_id == attempt.id)
    ).scalars().all()
    return AttemptResults(attempt, tryout, {answer.question_id: answer for answer in answers})


def get_attempt_results(db: DbSession, attempt_id: int, user: User) -> AttemptResults:
    """Results of the caller's completed attempt."""
    attempt = get_owned_attempt(db, attempt_id, user)
    if not attempt.is_completed:
        raise NotFoundError("Attempt not found or not completed yet")
    return load_results(db, attempt)


def get_attempt_details(db: DbSession, attempt_id: int) -> AttemptResults:
    """Any attempt, completed or not, for administrative review."""
    attempt = db.get(Attempt, attempt_id)
    if attempt is None:
        raise NotFoundError("Attempt not found")
    return load_results(db, attempt)


def list_tryout_attempts(db: DbSession, tryout_id: int) -> list[Attempt]:
    """Every attempt of a tryout with its user, newest first."""
    stmt = (
        select(Attempt)
        .options(selectinload(Attempt.user))
        .where(Attempt.tryout_id == tryout_id)
        .order_by(Attempt.started_at.desc(), Attempt.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def complete_expired_attempts(db: DbSession, now: datetime | None = None) -> int:
    """
    Auto-complete timed attempts left open past their deadline plus grace.
    The recorded end time is the deadline itself.
    """
    now = as_utc(now) if now is not None else utc_now()
    stmt = (
        select(Attempt)
        .join(Tryout, Tryout.id == Attempt.tryout_id)
        .options(selectinload(Attempt.tryout))
        .where(
            Attempt.is_completed == False,  # noqa: E712
            Tryout.duration.is_not(None),
        )
    )
    completed = 0
    for attempt in db.execute(stmt).scalars().all():
        if not is_past_deadline(attempt, now):
            continue
        _, won = _finalize(db, attempt, ended_at=attempt_deadline(attempt))
        if won:
            completed += 1
    return completed
