"""Survey model.

A survey owns its questions (deleting the survey deletes them) but not its
responses, which keep their denormalized survey code.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, select, text
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from fieldsurvey.models.database import Base
from fieldsurvey.schemas.survey import SurveyStatus


class Survey(Base):
    """Model for a named, coded collection of questions.

    Attributes:
        id: Primary key
        survey_code: Unique human-readable code (SRV-XXXXXXXX)
        name: Survey name
        status: DRAFT, ACTIVE or CLOSED
        allowed_question_types: Question types admins may add (empty = any)
        assigned_user_codes: Field users the survey is assigned to (empty = all)
        is_anonymous_allowed, max_responses: Informational settings shown to
            admins; submissions always need a known user and are never capped
        is_active: Soft on/off switch independent of status
        created_by_admin: Subject of the admin token that created the survey
        questions: Relationship to SurveyQuestion (cascade delete)
    """

    __tablename__ = "surveys"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Human-readable survey code"
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    project_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    target_audience: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SurveyStatus.DRAFT.value,
    )
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_anonymous_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_responses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="hi")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    allowed_question_types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    assigned_user_codes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_admin: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

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

    questions: Mapped[List["SurveyQuestion"]] = relationship(
        "SurveyQuestion",
        back_populates="survey",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @classmethod
    def find_by_id_or_code(cls, db: Session, survey_id_or_code: str) -> Optional["Survey"]:
        """Resolve a survey by numeric id or by its survey code.

        Args:
            db: Database session
            survey_id_or_code: Either the primary key (as a string) or a code

        Returns:
            Survey if found, None otherwise
        """
        key = str(survey_id_or_code).strip()
        if key.isdigit():
            survey = db.get(cls, int(key))
            if survey is not None:
                return survey
        return db.execute(
            select(cls).where(cls.survey_code == key)
        ).scalar_one_or_none()

    def is_assigned_to(self, user_code: str) -> bool:
        """Unassigned surveys are open to every field user."""
        return not self.assigned_user_codes or user_code in self.assigned_user_codes

    def __repr__(self) -> str:
        return (
            f"<Survey(id={self.id}, survey_code={self.survey_code}, "
            f"status={self.status})>"
        )
