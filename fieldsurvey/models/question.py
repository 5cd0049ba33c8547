"""SurveyQuestion model for question definitions.

Rows are converted into immutable `RootQuestion` / `FollowUpQuestion`
definitions before answers are validated against them.
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
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from fieldsurvey.models.database import Base
from fieldsurvey.schemas.question import (
    DEFAULT_OTHER_LABEL,
    OPTION_TYPES,
    FollowUpQuestion,
    QuestionDefinition,
    QuestionType,
    RatingConfig,
    RootQuestion,
)
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)


class SurveyQuestion(Base):
    """Model for one prompt within a survey.

    A question with `parent_question_id` set is a follow-up: it is always
    answered as free text and its stored type, options and rating fields
    are ignored.

    Attributes:
        id: Primary key
        survey_id: Owning survey (cascade delete)
        question_text: Prompt shown to the respondent
        type: Stored question type
        options: Ordered option labels for option-based types
        allow_multiple: Multiple selection flag (CHECKBOX is always True)
        min_rating / max_rating / rating_step: RATING configuration
        enable_other_option / other_option_label: Free-text "Other" choice
        required: Whether the question must be answered
        order: Display ordering
        is_active: Soft deactivation flag
        parent_question_id / parent_option_value: Follow-up link
    """

    __tablename__ = "survey_questions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    survey_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to surveys table"
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    options: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    allow_multiple: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    min_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rating_step: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    enable_other_option: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    other_option_label: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=DEFAULT_OTHER_LABEL,
    )

    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    help_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    parent_question_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("survey_questions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Parent question for follow-ups"
    )
    parent_option_value: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

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

    survey: Mapped["Survey"] = relationship("Survey", back_populates="questions")
    follow_ups: Mapped[List["SurveyQuestion"]] = relationship(
        "SurveyQuestion",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_question_survey_order", "survey_id", "order"),
    )

    @property
    def is_follow_up(self) -> bool:
        return self.parent_question_id is not None

    @classmethod
    def list_for_survey(
        cls,
        db: Session,
        survey_id: int,
        active_only: bool = False
    ) -> List["SurveyQuestion"]:
        """List questions of a survey ordered for display.

        Args:
            db: Database session
            survey_id: Owning survey id
            active_only: Skip deactivated questions (answer validation must
                not set this, since historical answers may target them)

        Returns:
            Questions ordered by `order`, then creation time
        """
        stmt = select(cls).where(cls.survey_id == survey_id)
        if active_only:
            stmt = stmt.where(cls.is_active.is_(True))
        stmt = stmt.order_by(cls.order, cls.created_at, cls.id)
        return list(db.execute(stmt).scalars())

    def to_definition(self) -> Optional[QuestionDefinition]:
        """Build the immutable definition used for answer validation.

        Returns:
            FollowUpQuestion for follow-ups, RootQuestion otherwise, or None
            when a root question carries a type outside `QuestionType`
        """
        if self.is_follow_up:
            return FollowUpQuestion(
                id=self.id,
                survey_id=self.survey_id,
                text=self.question_text,
                parent_question_id=self.parent_question_id,
                parent_option_value=self.parent_option_value or "",
                required=self.required,
                order=self.order,
                is_active=self.is_active,
            )

        try:
            question_type = QuestionType(self.type)
        except ValueError:
            logger.warning(f"Question {self.id} has unsupported type {self.type!r}")
            return None

        rating = None
        if question_type == QuestionType.RATING:
            rating = RatingConfig(
                min_rating=self.min_rating,
                max_rating=self.max_rating,
                rating_step=self.rating_step,
            )

        return RootQuestion(
            id=self.id,
            survey_id=self.survey_id,
            text=self.question_text,
            type=question_type,
            options=tuple(self.options or ()) if question_type in OPTION_TYPES else (),
            allow_multiple=self.allow_multiple,
            rating=rating,
            enable_other_option=self.enable_other_option,
            other_option_label=(self.other_option_label or DEFAULT_OTHER_LABEL).strip(),
            required=self.required,
            order=self.order,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return (
            f"<SurveyQuestion(id={self.id}, survey_id={self.survey_id}, "
            f"type={self.type}, follow_up={self.is_follow_up})>"
        )
