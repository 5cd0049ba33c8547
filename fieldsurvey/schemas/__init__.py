"""Pydantic schemas for request/response validation and question definitions."""

from fieldsurvey.schemas.question import (
    QuestionType,
    RatingConfig,
    RootQuestion,
    FollowUpQuestion,
    QuestionDefinition,
    QuestionCreate,
    QuestionUpdate,
    QuestionOut,
)
from fieldsurvey.schemas.response import (
    ApprovalStatus,
    RawAnswer,
    NormalizedAnswer,
    CreatedResponse,
    ApprovalUpdate,
    ResponseOut,
)
from fieldsurvey.schemas.survey import SurveyStatus, SurveyCreate, SurveyUpdate, SurveyOut
from fieldsurvey.schemas.help import HelpUpdate
from fieldsurvey.schemas.user import UserRole, UserCreate, UserUpdate, UserOut

__all__ = [
    "QuestionType",
    "RatingConfig",
    "RootQuestion",
    "FollowUpQuestion",
    "QuestionDefinition",
    "QuestionCreate",
    "QuestionUpdate",
    "QuestionOut",
    "ApprovalStatus",
    "RawAnswer",
    "NormalizedAnswer",
    "CreatedResponse",
    "ApprovalUpdate",
    "ResponseOut",
    "SurveyStatus",
    "SurveyCreate",
    "SurveyUpdate",
    "SurveyOut",
    "HelpUpdate",
    "UserRole",
    "UserCreate",
    "UserUpdate",
    "UserOut",
]
