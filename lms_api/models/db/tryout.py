"""
Tryout, Question and QuestionOption database models.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_api.database import Base
from lms_api.utils.json_utils import json_dump, load_string_list

if TYPE_CHECKING:
    from lms_api.models.db.attempt import Attempt, AttemptAnswer
    from lms_api.models.db.course import Course


class QuestionType(str, enum.Enum):
    """Kind of question and therefore how it is graded."""

    MULTIPLE_CHOICE_SINGLE = "MULTIPLE_CHOICE_SINGLE"
    MULTIPLE_CHOICE_MULTIPLE = "MULTIPLE_CHOICE_MULTIPLE"
    SHORT_ANSWER = "SHORT_ANSWER"
    LONG_ANSWER = "LONG_ANSWER"

    @property
    def is_choice(self) -> bool:
        return self in (
            QuestionType.MULTIPLE_CHOICE_SINGLE,
            QuestionType.MULTIPLE_CHOICE_MULTIPLE,
        )


class Tryout(Base):
    """
    A timed or untimed quiz scoped to a course.
    ``duration`` is in minutes; None means untimed.
    """

    __tablename__ = "tryouts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
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

    # Relationships
    course: Mapped["Course"] = relationship("Course", back_populates="tryouts")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="tryout",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    attempts: Mapped[list["Attempt"]] = relationship(
        "Attempt", back_populates="tryout", cascade="all, delete-orphan"
    )

    @property
    def max_score(self) -> int:
        """Sum of all question points."""
        return sum(question.points for question in self.questions)


class Question(Base):
    """
    A single question of a tryout.
    Choice questions carry options; short-answer questions carry the list
    of accepted answers (stored as JSON).
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tryout_id: Mapped[int] = mapped_column(
        ForeignKey("tryouts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    required: Mapped[bool] = mapped_column(default=False, nullable=False)
    order: Mapped[int] = mapped_column(default=0, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    tryout: Mapped["Tryout"] = relationship("Tryout", back_populates="questions")
    options: Mapped[list["QuestionOption"]] = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.order",
    )
    answers: Mapped[list["AttemptAnswer"]] = relationship(
        "AttemptAnswer", back_populates="question", cascade="all, delete-orphan"
    )

    @property
    def question_type(self) -> QuestionType:
        return QuestionType(self.type)

    @property
    def short_answers(self) -> list[str]:
        """Parse accepted short answers from JSON."""
        return load_string_list(self.short_answers_json) or []

    @short_answers.setter
    def short_answers(self, value: list[str] | None) -> None:
        """Serialize accepted short answers to JSON."""
        self.short_answers_json = json_dump(value) if value else None

    @property
    def correct_option_ids(self) -> set[int]:
        return {option.id for option in self.options if option.is_correct}


class QuestionOption(Base):
    """Selectable choice of a single/multi-choice question."""

    __tablename__ = "question_options"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    question: Mapped["Question"] = relationship("Question", back_populates="options")
