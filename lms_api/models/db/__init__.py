"""Database models."""
from lms_api.models.db.user import User, Session
from lms_api.models.db.course import Course, course_members
from lms_api.models.db.tryout import Question, QuestionOption, QuestionType, Tryout
from lms_api.models.db.attempt import Attempt, AttemptAnswer

__all__ = [
    "User",
    "Session",
    "Course",
    "course_members",
    "Question",
    "QuestionOption",
    "QuestionType",
    "Tryout",
    "Attempt",
    "AttemptAnswer",
]
