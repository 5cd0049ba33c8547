"""Pydantic schemas for survey responses, answers and approval."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fieldsurvey.schemas.question import QuestionType


class ApprovalStatus(str, Enum):
    """Quality classification a reviewer assigns to a response."""
    PENDING = "PENDING"
    CORRECTLY_DONE = "CORRECTLY_DONE"
    NOT_ASKING_ALL_QUESTIONS = "NOT_ASKING_ALL_QUESTIONS"
    NOT_DOING_IT_PROPERLY = "NOT_DOING_IT_PROPERLY"
    TAKING_FROM_FRIENDS_OR_TEAMMATE = "TAKING_FROM_FRIENDS_OR_TEAMMATE"
    FAKE_OR_EMPTY_AUDIO = "FAKE_OR_EMPTY_AUDIO"


class RawAnswer(BaseModel):
    """One answer as submitted by the client.

    Every payload field is deliberately untyped: clients send loosely typed
    JSON and the answer normalizer decides what is acceptable for the
    question being answered.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_id: Any = Field(None, alias="questionId")
    answer_text: Any = Field(None, alias="answerText")
    rating: Any = None
    selected_option: Any = Field(None, alias="selectedOption")
    selected_options: Any = Field(None, alias="selectedOptions")
    other_text: Any = Field(None, alias="otherText")


class NormalizedAnswer(BaseModel):
    """Validated answer embedded in a stored response.

    Question text and type are captured at submission time and never
    refreshed from the question afterwards. Only the payload fields that
    belong to `question_type` are set.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question_id: int = Field(..., alias="question")
    question_text: str = Field(..., alias="questionText")
    question_type: QuestionType = Field(..., alias="questionType")
    answer_text: Optional[str] = Field(None, alias="answerText")
    rating: Optional[Union[int, float]] = None
    selected_options: Optional[List[str]] = Field(None, alias="selectedOptions")
    other_text: Optional[str] = Field(None, alias="otherText")

    def to_document(self) -> dict:
        """Serialize for storage, omitting payload fields that are not set."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CreatedResponse(BaseModel):
    """Index/id pair reported for each item of a bulk submission."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    index: int
    response_id: int


class ApprovalUpdate(BaseModel):
    """Body of the approval endpoints; the status is checked by the service."""
    model_config = ConfigDict(populate_by_name=True)

    approval_status: Optional[str] = Field(None, alias="approvalStatus")


class ResponseOut(BaseModel):
    """API projection of a stored survey response."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response_id: int
    survey: Optional[int] = None
    survey_code: str
    user_code: str
    user_name: Optional[str] = None
    user_mobile: Optional[str] = None
    user_role: Optional[str] = None
    audio_url: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_completed: bool
    answers: List[dict] = []
    approval_status: ApprovalStatus
    is_approved: bool
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, response: Any) -> "ResponseOut":
        return cls(
            response_id=response.id,
            survey=response.survey_id,
            survey_code=response.survey_code,
            user_code=response.user_code,
            user_name=response.user_name,
            user_mobile=response.user_mobile,
            user_role=response.user_role,
            audio_url=response.audio_url,
            latitude=response.latitude,
            longitude=response.longitude,
            is_completed=response.is_completed,
            answers=list(response.answers or []),
            approval_status=response.approval_status,
            is_approved=response.is_approved,
            approved_by=response.approved_by,
            approved_at=response.approved_at,
            created_at=response.created_at,
            updated_at=response.updated_at,
        )


def answer_view(answer: dict) -> dict:
    """Stored answer document as shown in the grouped listings."""
    return {
        "questionId": answer.get("question"),
        "questionText": answer.get("questionText"),
        "questionType": answer.get("questionType"),
        "answerText": answer.get("answerText"),
        "selectedOptions": answer.get("selectedOptions"),
        "rating": answer.get("rating"),
        "otherText": answer.get("otherText"),
    }


class _ListedResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response_id: int
    audio_url: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_completed: bool
    is_approved: bool
    approval_status: ApprovalStatus
    approved_by: Optional[int] = None
    created_at: Optional[datetime] = None
    answers: List[dict] = []

    @classmethod
    def _common(cls, response: Any) -> dict:
        return dict(
            response_id=response.id,
            audio_url=response.audio_url,
            latitude=response.latitude,
            longitude=response.longitude,
            is_completed=response.is_completed,
            is_approved=response.is_approved,
            approval_status=response.approval_status,
            approved_by=response.approved_by,
            created_at=response.created_at,
            answers=[answer_view(a) for a in response.answers or []],
        )


class PublicResponseOut(_ListedResponse):
    """Response in the all-surveys listing, with the respondent snapshot."""
    user_code: str
    user_name: Optional[str] = None
    user_mobile: Optional[str] = None
    user_role: Optional[str] = None

    @classmethod
    def from_model(cls, response: Any) -> "PublicResponseOut":
        return cls(
            user_code=response.user_code,
            user_name=response.user_name,
            user_mobile=response.user_mobile,
            user_role=response.user_role,
            **cls._common(response),
        )


class UserResponseOut(_ListedResponse):
    """Response in a field user's history, with the approver resolved."""
    approved_by_name: Optional[str] = None
    approved_by_user_code: Optional[str] = None
    approved_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, response: Any, approver: Any = None) -> "UserResponseOut":
        return cls(
            approved_by_name=approver.full_name if approver is not None else None,
            approved_by_user_code=approver.user_code if approver is not None else None,
            approved_at=response.approved_at,
            **cls._common(response),
        )


class _ResponseGroup(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    survey_id: int
    survey_code: str
    name: str
    description: Optional[str] = None
    status: str

    @classmethod
    def _survey_fields(cls, survey: Any) -> dict:
        return dict(
            survey_id=survey.id,
            survey_code=survey.survey_code,
            name=survey.name,
            description=survey.description,
            status=survey.status,
        )


class PublicResponseGroupOut(_ResponseGroup):
    """One survey and all of its responses."""
    category: Optional[str] = None
    project_name: Optional[str] = None
    responses: List[PublicResponseOut] = []

    @classmethod
    def from_group(cls, survey: Any, responses: List[Any]) -> "PublicResponseGroupOut":
        return cls(
            category=survey.category,
            project_name=survey.project_name,
            responses=[PublicResponseOut.from_model(r) for r in responses],
            **cls._survey_fields(survey),
        )


class UserResponseGroupOut(_ResponseGroup):
    """One survey and a single user's responses to it."""
    responses: List[UserResponseOut] = []

    @classmethod
    def from_group(
        cls, survey: Any, responses: List[Any], approvers: Dict[int, Any]
    ) -> "UserResponseGroupOut":
        return cls(
            responses=[UserResponseOut.from_model(r, approvers.get(r.approved_by)) for r in responses],
            **cls._survey_fields(survey),
        )
