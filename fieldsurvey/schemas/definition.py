"""Pydantic schemas for YAML survey definition files.

A definition file describes one survey, its questions and, optionally, the
field users and reviewers who work on it. Follow-up questions name their
parent through a `key` that only has meaning inside the file.

Example:
    survey:
      code: SRV-HOUSE001
      name: Household Water Access
      status: ACTIVE
      allowedQuestionTypes: [YES_NO, RATING, OPEN_ENDED]
    questions:
      - key: has_tap
        questionText: Does the household have a tap connection?
        type: YES_NO
        options: ["Yes", "No"]
      - parent: has_tap
        parentOptionValue: "No"
        questionText: Where does the household fetch water from?
    users:
      - userCode: FU-001
        mobile: "9000000001"
        fullName: Asha Devi
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fieldsurvey.schemas.user import UserCreate, UserRole
from fieldsurvey.schemas.question import QuestionCreate
from fieldsurvey.schemas.survey import SurveyCreate


class SurveyDefinition(SurveyCreate):
    """Survey block; `code` pins the survey code instead of generating one."""
    code: Optional[str] = None


class QuestionDefinitionEntry(QuestionCreate):
    """Question block; `parent` refers to another entry's `key`."""
    key: Optional[str] = None
    parent: Optional[str] = None


class UserDefinition(UserCreate):
    """Field user or reviewer seeded together with a survey; the code is fixed."""
    user_code: str = Field(..., min_length=1)
    role: UserRole = UserRole.SURVEY_USER


class SurveyFile(BaseModel):
    """Complete survey definition file."""
    survey: SurveyDefinition
    questions: List[QuestionDefinitionEntry] = Field(default_factory=list)
    users: List[UserDefinition] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def validate_unique_keys(cls, v: List[QuestionDefinitionEntry]) -> List[QuestionDefinitionEntry]:
        """Ensure question keys are unique within the file."""
        keys = [q.key for q in v if q.key]
        if len(keys) != len(set(keys)):
            duplicates = sorted({k for k in keys if keys.count(k) > 1})
            raise ValueError(f"Duplicate question keys found: {duplicates}")
        return v

    @model_validator(mode="after")
    def validate_parent_references(self) -> "SurveyFile":
        """Ensure every follow-up names an earlier question's key."""
        seen = set()
        for question in self.questions:
            if question.parent is not None:
                if question.parent not in seen:
                    raise ValueError(
                        f"Question {question.question_text!r} refers to unknown "
                        f"or later parent key {question.parent!r}"
                    )
                if not question.parent_option_value:
                    raise ValueError(
                        f"Question {question.question_text!r} needs parentOptionValue"
                    )
            if question.key:
                seen.add(question.key)
        return self
