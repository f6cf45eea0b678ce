"""
Typed API errors.

Services raise these directly; FastAPI renders them as ``{"detail": ...}``
with the matching status code, so routes do not translate them.
"""
from fastapi import HTTPException, status


class LMSError(HTTPException):
    """Base class for domain errors surfaced to the client."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)

    @property
    def message(self) -> str:
        return str(self.detail)


class NotFoundError(LMSError):
    """Tryout, attempt or question is absent or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ForbiddenError(LMSError):
    """Caller is not allowed to act on the resource (e.g. not enrolled)."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class ConflictError(LMSError):
    """Invalid state transition, e.g. answering a completed attempt."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class ValidationError(LMSError):
    """Malformed payload, e.g. a multi-choice answer that is not a JSON list."""

    status_code = 422
    default_detail = "Invalid payload"


ERRORS_BY_STATUS: dict[int, type[LMSError]] = {
    cls.status_code: cls
    for cls in (NotFoundError, ForbiddenError, ConflictError, ValidationError)
}
