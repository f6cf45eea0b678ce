"""
Attempt and AttemptAnswer database models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_api.database import Base

if TYPE_CHECKING:
    from lms_api.models.db.tryout import Question, Tryout
    from lms_api.models.db.user import User


class Attempt(Base):
    """
    One user's run through a tryout.
    At most one non-completed attempt may exist per (user, tryout).
    """

    __tablename__ = "attempts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tryout_id: Mapped[int] = mapped_column(
        ForeignKey("tryouts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Status and results
    is_completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    max_score: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (
        Index(
            "uq_active_attempt",
            "user_id",
            "tryout_id",
            unique=True,
            sqlite_where=sa.text("is_completed = 0"),
            postgresql_where=sa.text("is_completed = false"),
        ),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="attempts")
    tryout: Mapped["Tryout"] = relationship("Tryout", back_populates="attempts")
    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer", back_populates="attempt", cascade="all, delete-orphan"
    )

    @property
    def percent(self) -> float:
        """Score as a percentage of the maximum."""
        if self.max_score == 0:
            return 0.0
        return (self.score / self.max_score) * 100


class AttemptAnswer(Base):
    """
    The stored response to one question within an attempt.
    ``points`` and ``needs_review`` are written only when the attempt is completed.
    """

    __tablename__ = "attempt_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[int] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Raw answer; multi-choice values are JSON arrays of option ids
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(default=0, nullable=False)
    needs_review: Mapped[bool] = mapped_column(default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    # Relationships
    attempt: Mapped["Attempt"] = relationship("Attempt", back_populates="answers")
    question: Mapped["Question"] = relationship("Question", back_populates="answers")
