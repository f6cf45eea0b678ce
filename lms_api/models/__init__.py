"""Pydantic models."""
from lms_api.models.attempts import (
    ActiveAttemptResponse,
    AnswerResponse,
    AnswerSubmit,
    AttemptResponse,
    AttemptResults,
    AttemptReview,
)
from lms_api.models.auth import (
    MessageResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from lms_api.models.courses import CourseCreate, CourseResponse
from lms_api.models.tryouts import TryoutCreate, TryoutUpdate

__all__ = [
    "ActiveAttemptResponse",
    "AnswerResponse",
    "AnswerSubmit",
    "AttemptResponse",
    "AttemptResults",
    "AttemptReview",
    "CourseCreate",
    "CourseResponse",
    "MessageResponse",
    "TokenResponse",
    "TryoutCreate",
    "TryoutUpdate",
    "UserLogin",
    "UserRegister",
    "UserResponse",
]
