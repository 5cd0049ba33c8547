"""Pydantic schemas for surveys."""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SurveyStatus(str, Enum):
    """Lifecycle status of a survey."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class _SurveyFields(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: Optional[str] = None
    category: Optional[str] = None
    project_name: Optional[str] = None
    target_audience: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_anonymous_allowed: Optional[bool] = None
    max_responses: Optional[int] = Field(None, ge=1)
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    # Raw strings; unknown types are filtered out by the admin service
    allowed_question_types: Optional[List[str]] = None
    assigned_user_codes: Optional[List[str]] = None


class SurveyCreate(_SurveyFields):
    """Payload for creating a survey."""
    name: str = Field(..., min_length=1)
    status: SurveyStatus = SurveyStatus.DRAFT

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v


class SurveyUpdate(_SurveyFields):
    """Partial update of a survey; only supplied fields change."""
    name: Optional[str] = Field(None, min_length=1)
    status: Optional[SurveyStatus] = None
    is_active: Optional[bool] = None


class SurveyOut(BaseModel):
    """API projection of a survey."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    survey_code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    project_name: Optional[str] = None
    target_audience: Optional[str] = None
    status: SurveyStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_anonymous_allowed: bool = False
    max_responses: Optional[int] = None
    language: Optional[str] = None
    tags: List[str] = []
    allowed_question_types: List[str] = []
    assigned_user_codes: List[str] = []
    is_active: bool = True
    created_by_admin: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, survey: Any) -> "SurveyOut":
        return cls(
            id=survey.id,
            survey_code=survey.survey_code,
            name=survey.name,
            description=survey.description,
            category=survey.category,
            project_name=survey.project_name,
            target_audience=survey.target_audience,
            status=survey.status,
            start_date=survey.start_date,
            end_date=survey.end_date,
            is_anonymous_allowed=survey.is_anonymous_allowed,
            max_responses=survey.max_responses,
            language=survey.language,
            tags=list(survey.tags or []),
            allowed_question_types=list(survey.allowed_question_types or []),
            assigned_user_codes=list(survey.assigned_user_codes or []),
            is_active=survey.is_active,
            created_by_admin=survey.created_by_admin,
            created_at=survey.created_at,
            updated_at=survey.updated_at,
        )
