"""Approval state machine for survey responses.

Every response starts PENDING. A reviewer may move it to CORRECTLY_DONE or
to one of the negative classifications, and may reset it to PENDING at any
time. `is_approved` is derived by the model on every status write; this
module owns the reviewer stamp (`approved_by` / `approved_at`):

- entering CORRECTLY_DONE stamps the reviewer and time together, only when
  the response has no approval time yet, so repeating the approval keeps the
  original stamp
- resetting to PENDING clears the stamp
- negative classifications leave an existing stamp untouched
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.models.user import User, UserRole
from fieldsurvey.schemas.response import ApprovalStatus
from fieldsurvey.services.errors import ForbiddenError, NotFoundError, ValidationFailure
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_STATUSES = ", ".join(status.value for status in ApprovalStatus)


def parse_status(raw_status: Any) -> ApprovalStatus:
    """Parse a caller-supplied approval status.

    Raises:
        ValidationFailure: If the status is missing or not a known value
    """
    if raw_status is None or (isinstance(raw_status, str) and not raw_status.strip()):
        raise ValidationFailure("approvalStatus is required.")
    try:
        return ApprovalStatus(str(raw_status).strip())
    except ValueError:
        raise ValidationFailure(
            f"approvalStatus must be one of: {ALLOWED_STATUSES}"
        )


def apply_approval(
    response: SurveyResponse,
    status: ApprovalStatus,
    reviewer_id: Optional[int],
    now: Optional[datetime] = None,
) -> None:
    """Apply a status transition to a response in place.

    Args:
        response: Response being reviewed
        status: New approval status
        reviewer_id: Id of the acting reviewer, None for anonymous callers
        now: Transition time (defaults to the current UTC time)
    """
    previous = response.approval_status
    response.approval_status = status

    if status == ApprovalStatus.CORRECTLY_DONE:
        if response.approved_at is None:
            response.approved_at = now or datetime.now(timezone.utc)
            response.approved_by = reviewer_id
    elif status == ApprovalStatus.PENDING:
        response.approved_at = None
        response.approved_by = None

    logger.info(
        f"Approval status {previous} -> {status.value}",
        extra={
            "response_id": response.id,
            "survey_code": response.survey_code,
            "user_code": response.user_code,
        },
    )


class ApprovalService:
    """Service for reviewer actions on stored responses."""

    def __init__(self, db: Session):
        self.db = db

    def set_status(
        self,
        response_id: Any,
        raw_status: Any,
        reviewer_id: Optional[int] = None,
        require_reviewer: bool = False,
    ) -> SurveyResponse:
        """Set the approval status of a response and commit.

        Args:
            response_id: Response id as received in the request path
            raw_status: Requested status as received in the request body
            reviewer_id: User id taken from the caller's token, if any
            require_reviewer: Reject the call unless `reviewer_id` resolves to
                an active quality engineer; otherwise an unresolvable
                reviewer is treated as anonymous

        Returns:
            The updated SurveyResponse

        Raises:
            ValidationFailure: If the id or status is malformed
            ForbiddenError: If a reviewer is required and cannot be resolved
            NotFoundError: If no response has that id
        """
        key = str(response_id).strip()
        if not key.isdigit():
            raise ValidationFailure("Invalid responseId.")
        status = parse_status(raw_status)

        reviewer = self._resolve_reviewer(reviewer_id)
        if reviewer is None and require_reviewer:
            logger.warning(f"Approval denied for unknown or inactive reviewer {reviewer_id}")
            raise ForbiddenError("Quality engineer account not found or inactive.")

        response = self.db.get(SurveyResponse, int(key))
        if response is None:
            raise NotFoundError("Survey response not found.")

        try:
            apply_approval(response, status, reviewer.id if reviewer is not None else None)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(response)
        return response

    def _resolve_reviewer(self, reviewer_id: Optional[int]) -> Optional[User]:
        """Load the token holder; tokens outlive deleted or blocked accounts."""
        if reviewer_id is None:
            return None
        user = self.db.get(User, reviewer_id)
        if user is None or not user.is_active or user.role != UserRole.QUALITY_ENGINEER.value:
            return None
        return user
