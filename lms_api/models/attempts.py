"""Attempt-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field

from lms_api.models.tryouts import CourseRef, QuestionResponse, TryoutStatistics, TryoutSummary


class AnswerSubmit(BaseModel):
    """Raw answer; multi-choice answers are JSON arrays of option ids."""

    answer: str


class AnswerResponse(BaseModel):
    id: int
    attempt_id: int
    question_id: int
    answer: str
    points: int
    needs_review: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class AttemptResponse(BaseModel):
    """Attempt record plus its derived deadline."""

    id: int
    user_id: int
    tryout_id: int
    started_at: datetime
    ended_at: datetime | None
    is_completed: bool
    score: int
    max_score: int
    duration: int | None = None
    deadline: datetime | None = None


class ActiveAttemptResponse(AttemptResponse):
    """In-progress attempt with what the attempt view needs to resume."""

    tryout_title: str
    question_ids: list[int]
    answers: list[AnswerResponse]


class TryoutRef(BaseModel):
    id: int
    title: str
    duration: int | None


class AttemptUserRef(BaseModel):
    id: int
    username: str
    name: str | None
    email: str
    nim: str | None

    class Config:
        from_attributes = True


class ResultQuestion(BaseModel):
    """One question of a results view with the stored answer, if any."""

    question: QuestionResponse
    answer: AnswerResponse | None
    points: int


class AttemptResults(BaseModel):
    """Completed attempt joined with questions, options and answers."""

    attempt: AttemptResponse
    tryout: TryoutRef
    questions: list[ResultQuestion]
    pending_review: int = Field(0, description="Answers awaiting manual grading")


class AttemptReview(AttemptResults):
    """Results view for administrators, including who made the attempt."""

    user: AttemptUserRef


class AttemptWithUser(AttemptResponse):
    user: AttemptUserRef


class TryoutDetailed(BaseModel):
    """Admin overview: tryout, enrolled members, attempts and statistics."""

    tryout: TryoutSummary
    course: CourseRef
    members: list[AttemptUserRef]
    attempts: list[AttemptWithUser]
    statistics: TryoutStatistics


class CourseTryouts(BaseModel):
    """Active tryouts of one enrolled course with the caller's attempts."""

    course: CourseRef
    tryouts: list["MyTryout"]


class MyTryout(TryoutSummary):
    attempts: list[AttemptResponse]


CourseTryouts.model_rebuild()
