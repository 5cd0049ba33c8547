"""SurveyResponse model for submitted survey responses.

Each row is one respondent's submission for one survey. Answers are stored
as an embedded JSON list of normalized answer documents and are never
modified after creation; only the approval fields change later.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    select,
    text,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from fieldsurvey.models.database import Base
from fieldsurvey.schemas.response import ApprovalStatus


class SurveyResponse(Base):
    """Model for one submitted survey response.

    The respondent's user code, name, mobile and role are copied in at
    submission time and are not updated when the user record changes.

    Attributes:
        id: Primary key
        survey_id: Survey reference (nulled if the survey is deleted)
        survey_code: Survey code at submission time
        user_id: Respondent reference
        user_code / user_name / user_mobile / user_role: Respondent snapshot
        audio_url: Proof-of-conduct recording reference
        latitude / longitude: Optional submission location
        is_completed: Always True for current submission flows
        answers: Normalized answer documents
        approval_status: Reviewer classification
        is_approved: True exactly when approval_status is CORRECTLY_DONE
        approved_by: Reviewer who approved the response
        approved_at: When the response was approved
    """

    __tablename__ = "survey_responses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    survey_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("surveys.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Foreign key to surveys table"
    )
    survey_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Respondent snapshot
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    user_mobile: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    user_role: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    audio_url: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    answers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Approval
    approval_status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=ApprovalStatus.PENDING.value,
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_response_survey_user", "survey_id", "user_code"),
    )

    @validates("approval_status")
    def _derive_is_approved(self, key: str, value) -> str:
        """Keep is_approved in lockstep with every approval_status write."""
        status = ApprovalStatus(value)
        self.is_approved = status == ApprovalStatus.CORRECTLY_DONE
        return status.value

    @classmethod
    def list_for_survey(cls, db: Session, survey_id: int) -> List["SurveyResponse"]:
        """List responses of a survey, newest first."""
        return list(
            db.execute(
                select(cls)
                .where(cls.survey_id == survey_id)
                .order_by(cls.created_at.desc(), cls.id.desc())
            ).scalars()
        )

    def __repr__(self) -> str:
        return (
            f"<SurveyResponse(id={self.id}, "
            f"survey_code={self.survey_code}, "
            f"user_code={self.user_code}, "
            f"approval_status={self.approval_status})>"
        )
