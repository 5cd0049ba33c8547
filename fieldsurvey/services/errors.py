"""Service-level exceptions.

Every exception here carries the HTTP status and error kind it maps to; the
application-wide handler in `fieldsurvey.main` renders them as JSON.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that are reported to the caller as-is."""

    status_code = 500
    error = "Internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class NotFoundError(ServiceError):
    """Raised when a survey, user, question or response does not exist."""

    status_code = 404
    error = "NotFound"


class ValidationFailure(ServiceError):
    """Raised when submitted input is missing, malformed or out of range.

    Attributes:
        question_text: Text of the question the failure relates to, if any
        index: Position of the failing item in a bulk submission, if any
    """

    status_code = 400
    error = "Validation"

    def __init__(
        self,
        message: str,
        question_text: Optional[str] = None,
        index: Optional[int] = None
    ):
        super().__init__(message)
        self.question_text = question_text
        self.index = index

    def for_item(self, index: int) -> "ValidationFailure":
        """Return a copy tagged with the bulk item index that failed."""
        return ValidationFailure(
            f"Response index {index}: {self.message}",
            question_text=self.question_text,
            index=index,
        )

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.index is not None:
            payload["index"] = self.index
        return payload


class ConflictError(ServiceError):
    """Raised when a write would duplicate a unique value (mobile, user code)."""

    status_code = 409
    error = "Conflict"


class ForbiddenError(ServiceError):
    """Raised when the caller's role does not permit the operation."""

    status_code = 403
    error = "Forbidden"


class MediaStorageError(ServiceError):
    """Raised when an upload cannot be written to the media store."""

    status_code = 500
    error = "Internal"
