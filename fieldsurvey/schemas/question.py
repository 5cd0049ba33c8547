"""Pydantic schemas for survey questions.

Two families of models live here:

- Question definitions (`RootQuestion`, `FollowUpQuestion`) are the immutable
  view of a stored question that answer normalization works against. A
  follow-up question has no type of its own; its effective type is always
  OPEN_ENDED.
- Admin payloads (`QuestionCreate`, `QuestionUpdate`) and the API projection
  (`QuestionOut`) use camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Closed set of question types a survey may contain."""
    OPEN_ENDED = "OPEN_ENDED"
    MCQ_SINGLE = "MCQ_SINGLE"
    RATING = "RATING"
    LIKERT = "LIKERT"
    CHECKBOX = "CHECKBOX"
    DROPDOWN = "DROPDOWN"
    YES_NO = "YES_NO"


# Types answered by picking exactly one option
SINGLE_CHOICE_TYPES = frozenset({
    QuestionType.MCQ_SINGLE,
    QuestionType.DROPDOWN,
    QuestionType.LIKERT,
    QuestionType.YES_NO,
})

# Types that carry an options list
OPTION_TYPES = SINGLE_CHOICE_TYPES | {QuestionType.CHECKBOX}

DEFAULT_OTHER_LABEL = "Other"
DEFAULT_MIN_RATING = 1
DEFAULT_MAX_RATING = 5
DEFAULT_RATING_STEP = 1


class RatingConfig(BaseModel):
    """Rating bounds of a RATING question; either bound may be unset."""
    model_config = ConfigDict(frozen=True)

    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    rating_step: Optional[float] = None

    @property
    def is_bounded(self) -> bool:
        return self.min_rating is not None and self.max_rating is not None


class RootQuestion(BaseModel):
    """A top-level question with its own type."""
    model_config = ConfigDict(frozen=True)

    id: int
    survey_id: int
    text: str
    type: QuestionType
    options: tuple[str, ...] = ()
    allow_multiple: bool = False
    rating: Optional[RatingConfig] = None
    enable_other_option: bool = False
    other_option_label: str = DEFAULT_OTHER_LABEL
    required: bool = True
    order: int = 0
    is_active: bool = True

    @property
    def effective_type(self) -> QuestionType:
        return self.type

    def accepts_option(self, value: object) -> bool:
        """Whether `value` is a listed option or the enabled "Other" label."""
        return value in self.options or self.is_other_option(value)

    def is_other_option(self, value: object) -> bool:
        return self.enable_other_option and value == self.other_option_label


class FollowUpQuestion(BaseModel):
    """A free-text question shown when its parent was answered with a given option."""
    model_config = ConfigDict(frozen=True)

    id: int
    survey_id: int
    text: str
    parent_question_id: int
    parent_option_value: str
    required: bool = True
    order: int = 0
    is_active: bool = True

    @property
    def effective_type(self) -> QuestionType:
        return QuestionType.OPEN_ENDED


QuestionDefinition = Union[RootQuestion, FollowUpQuestion]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionCreate(_CamelModel):
    """Payload for adding a question to a survey.

    `type` may be omitted for follow-up questions, which are always stored
    as OPEN_ENDED.
    """
    question_text: str = Field(..., min_length=1)
    type: Optional[QuestionType] = None
    options: Optional[List[str]] = None
    allow_multiple: Optional[bool] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    rating_step: Optional[float] = Field(None, gt=0)
    enable_other_option: bool = False
    other_option_label: Optional[str] = None
    required: bool = True
    order: int = 0
    help_text: Optional[str] = None
    parent_question_id: Optional[int] = None
    parent_option_value: Optional[str] = None

    @field_validator("question_text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("questionText cannot be blank")
        return v

    @field_validator("options")
    @classmethod
    def clean_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [option.strip() for option in v if option and option.strip()]


class QuestionUpdate(_CamelModel):
    """Partial update of a question; only supplied fields change."""
    question_text: Optional[str] = Field(None, min_length=1)
    type: Optional[QuestionType] = None
    options: Optional[List[str]] = None
    allow_multiple: Optional[bool] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    rating_step: Optional[float] = Field(None, gt=0)
    enable_other_option: Optional[bool] = None
    other_option_label: Optional[str] = None
    required: Optional[bool] = None
    order: Optional[int] = None
    help_text: Optional[str] = None
    is_active: Optional[bool] = None
    parent_option_value: Optional[str] = None

    @field_validator("options")
    @classmethod
    def clean_options(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [option.strip() for option in v if option and option.strip()]


class QuestionOut(_CamelModel):
    """API projection of a question.

    Type-specific fields are `None` when they do not apply and are dropped
    from the response by the routers.
    """
    id: int
    survey: int
    question_text: str
    type: str
    required: bool
    order: int
    is_active: bool
    options: Optional[List[str]] = None
    allow_multiple: Optional[bool] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    rating_step: Optional[float] = None
    enable_other_option: Optional[bool] = None
    other_option_label: Optional[str] = None
    help_text: Optional[str] = None
    parent_question_id: Optional[int] = None
    parent_option_value: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, question: Any) -> "QuestionOut":
        """Project a stored question, keeping only fields of its type."""
        out = cls(
            id=question.id,
            survey=question.survey_id,
            question_text=question.question_text,
            type=question.type,
            required=question.required,
            order=question.order,
            is_active=question.is_active,
            help_text=question.help_text or None,
            created_at=question.created_at,
            updated_at=question.updated_at,
        )
        if question.parent_question_id is not None:
            return out.model_copy(update={
                "parent_question_id": question.parent_question_id,
                "parent_option_value": question.parent_option_value,
            })

        extra: dict = {}
        if question.type in {t.value for t in OPTION_TYPES}:
            extra["options"] = list(question.options or [])
            extra["enable_other_option"] = question.enable_other_option
            if question.enable_other_option:
                extra["other_option_label"] = question.other_option_label
        if question.type in (QuestionType.MCQ_SINGLE.value, QuestionType.CHECKBOX.value):
            extra["allow_multiple"] = question.allow_multiple
        if question.type == QuestionType.RATING.value:
            extra["min_rating"] = question.min_rating
            extra["max_rating"] = question.max_rating
            extra["rating_step"] = question.rating_step
        return out.model_copy(update=extra)
