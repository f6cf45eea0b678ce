"""Tryout authoring and viewing Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from lms_api.models.db.tryout import QuestionType


class OptionInput(BaseModel):
    """Option of a choice question."""

    text: str = Field(..., min_length=1)
    is_correct: bool = False
    explanation: str | None = None


class QuestionInput(BaseModel):
    """Question definition used when creating or updating a tryout."""

    type: QuestionType
    question: str = Field(..., min_length=1)
    points: int = Field(..., ge=1)
    required: bool = False
    explanation: str | None = None
    options: list[OptionInput] | None = None
    short_answers: list[str] | None = None

    @model_validator(mode="after")
    def check_answer_key(self) -> "QuestionInput":
        if self.type.is_choice and (not self.options or len(self.options) < 2):
            raise ValueError("Multiple choice questions must have at least 2 options.")

        if self.type == QuestionType.MULTIPLE_CHOICE_SINGLE:
            correct = sum(1 for option in self.options or [] if option.is_correct)
            if correct != 1:
                raise ValueError("Single choice questions must have exactly one correct option.")

        if self.type == QuestionType.MULTIPLE_CHOICE_MULTIPLE:
            if not any(option.is_correct for option in self.options or []):
                raise ValueError("Multiple choice questions must have at least one correct option.")

        if self.type == QuestionType.SHORT_ANSWER:
            if not self.short_answers or any(not value.strip() for value in self.short_answers):
                raise ValueError(
                    "Short answer questions must have at least one non-empty correct answer."
                )
        return self


class TryoutCreate(BaseModel):
    """Model for creating a tryout with its questions."""

    title: str = Field(..., min_length=1)
    description: str | None = None
    duration: int | None = Field(None, ge=1)
    course_id: int
    is_active: bool = True
    questions: list[QuestionInput] = Field(..., min_length=1)


class TryoutUpdate(BaseModel):
    """Partial tryout update; ``questions`` replaces the whole set when given."""

    title: str | None = Field(None, min_length=3)
    description: str | None = None
    duration: int | None = Field(None, ge=1)
    is_active: bool | None = None
    course_id: int | None = None
    questions: list[QuestionInput] | None = Field(None, min_length=1)


class OptionResponse(BaseModel):
    id: int
    text: str
    order: int
    is_correct: bool
    explanation: str | None

    class Config:
        from_attributes = True


class StudentOptionResponse(BaseModel):
    """Option without the answer key."""

    id: int
    text: str
    order: int

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: int
    type: QuestionType
    question: str
    points: int
    required: bool
    order: int
    explanation: str | None
    short_answers: list[str]
    options: list[OptionResponse]

    class Config:
        from_attributes = True


class StudentQuestionResponse(BaseModel):
    """Question without the answer key."""

    id: int
    type: QuestionType
    question: str
    points: int
    required: bool
    order: int
    options: list[StudentOptionResponse]

    class Config:
        from_attributes = True


class CourseRef(BaseModel):
    id: int
    title: str
    class_code: str

    class Config:
        from_attributes = True


class TryoutSummary(BaseModel):
    """Tryout list entry."""

    id: int
    title: str
    description: str | None
    duration: int | None
    is_active: bool
    created_at: datetime
    course: CourseRef
    question_count: int
    attempt_count: int


class TryoutDetail(BaseModel):
    """Full tryout including the answer key (admin)."""

    id: int
    title: str
    description: str | None
    duration: int | None
    is_active: bool
    created_at: datetime
    course: CourseRef
    max_score: int
    questions: list[QuestionResponse]

    class Config:
        from_attributes = True


class StudentTryout(BaseModel):
    """Tryout as presented to a student taking it."""

    id: int
    title: str
    description: str | None
    duration: int | None
    course: CourseRef
    max_score: int
    questions: list[StudentQuestionResponse]

    class Config:
        from_attributes = True


class TryoutStatistics(BaseModel):
    """Aggregates over completed attempts, as percentages."""

    total_attempts: int
    completed_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float
