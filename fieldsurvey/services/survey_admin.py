"""Survey administration service.

Admins create surveys, add questions to them and read back the collected
responses. The rules applied here decide what a stored question looks like
for its type, so that answer normalization can rely on them:

- option types (MCQ_SINGLE, CHECKBOX, DROPDOWN, LIKERT, YES_NO) need options
- CHECKBOX always allows multiple selection; MCQ_SINGLE honours the flag
- RATING defaults to 1..5 step 1 and requires min <= max
- follow-ups are stored OPEN_ENDED with no options, rating or "Other"
"""

import secrets
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldsurvey.models.question import SurveyQuestion
from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.models.survey import Survey
from fieldsurvey.models.user import User
from fieldsurvey.schemas.question import (
    DEFAULT_MAX_RATING,
    DEFAULT_MIN_RATING,
    DEFAULT_OTHER_LABEL,
    DEFAULT_RATING_STEP,
    OPTION_TYPES,
    QuestionCreate,
    QuestionType,
    QuestionUpdate,
)
from fieldsurvey.schemas.survey import SurveyCreate, SurveyStatus, SurveyUpdate
from fieldsurvey.services.errors import NotFoundError, ValidationFailure
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

SURVEY_CODE_PREFIX = "SRV-"

ResponseGroup = Tuple[Survey, List[SurveyResponse]]


def generate_survey_code() -> str:
    """Return a code of the form SRV-XXXXXXXX (8 uppercase hex digits)."""
    return SURVEY_CODE_PREFIX + secrets.token_hex(4).upper()


def filter_question_types(raw_types: Optional[List[str]]) -> List[str]:
    """Keep only known question types, preserving order and dropping repeats.

    Raises:
        ValidationFailure: If a non-empty list contains no known type
    """
    if not raw_types:
        return []
    known = {qtype.value for qtype in QuestionType}
    kept: List[str] = []
    for value in raw_types:
        if value in known and value not in kept:
            kept.append(value)
    if not kept:
        raise ValidationFailure("Invalid allowedQuestionTypes")
    return kept


class SurveyAdminService:
    """Service for survey and question management."""

    def __init__(self, db: Session):
        self.db = db

    # Surveys

    def create_survey(
        self,
        data: SurveyCreate,
        created_by: Optional[str] = None,
        survey_code: Optional[str] = None,
    ) -> Survey:
        """Create a survey; a survey code is generated unless one is given."""
        fields = data.model_dump(exclude_unset=True, exclude={"code"})
        fields["status"] = data.status.value
        fields["allowed_question_types"] = filter_question_types(data.allowed_question_types)

        survey = Survey(
            survey_code=survey_code or self._unique_survey_code(),
            created_by_admin=created_by,
            **{k: v for k, v in fields.items() if v is not None},
        )
        self._commit(survey)
        logger.info(
            f"Created survey {survey.name!r}",
            extra={"survey_code": survey.survey_code},
        )
        return survey

    def update_survey(self, survey_id_or_code: str, data: SurveyUpdate) -> Survey:
        survey = self.get_survey(survey_id_or_code)
        fields = data.model_dump(exclude_unset=True)

        if "name" in fields:
            name = (fields["name"] or "").strip()
            if not name:
                raise ValidationFailure("name cannot be blank")
            fields["name"] = name
        if "status" in fields:
            if fields["status"] is None:
                raise ValidationFailure("status cannot be null")
            fields["status"] = SurveyStatus(fields["status"]).value
        if "allowed_question_types" in fields:
            fields["allowed_question_types"] = filter_question_types(fields["allowed_question_types"])
        for key in ("tags", "assigned_user_codes"):
            if key in fields and fields[key] is None:
                fields[key] = []

        for key, value in fields.items():
            setattr(survey, key, value)
        self._commit(survey)
        logger.info(f"Updated survey fields {sorted(fields)}", extra={"survey_code": survey.survey_code})
        return survey

    def delete_survey(self, survey_id_or_code: str) -> None:
        """Delete a survey and its questions; responses keep their survey code."""
        survey = self.get_survey(survey_id_or_code)
        code = survey.survey_code
        try:
            self.db.delete(survey)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted survey", extra={"survey_code": code})

    def get_survey(self, survey_id_or_code: str) -> Survey:
        survey = Survey.find_by_id_or_code(self.db, survey_id_or_code)
        if survey is None:
            raise NotFoundError("Survey not found.")
        return survey

    def list_surveys(self) -> List[Survey]:
        """All surveys, newest first."""
        return list(
            self.db.execute(
                select(Survey).order_by(Survey.created_at.desc(), Survey.id.desc())
            ).scalars()
        )

    def list_public_surveys(self, user_code: Optional[str] = None) -> List[Survey]:
        """ACTIVE, switched-on surveys, optionally limited to a field user's assignments."""
        surveys = self.db.execute(
            select(Survey)
            .where(
                Survey.status == SurveyStatus.ACTIVE.value,
                Survey.is_active.is_(True),
            )
            .order_by(Survey.created_at.desc(), Survey.id.desc())
        ).scalars()
        code = (user_code or "").strip()
        if not code:
            return list(surveys)
        return [survey for survey in surveys if survey.is_assigned_to(code)]

    def get_survey_with_questions(self, survey_id_or_code: str) -> Tuple[Survey, List[SurveyQuestion]]:
        survey = self.get_survey(survey_id_or_code)
        return survey, SurveyQuestion.list_for_survey(self.db, survey.id, active_only=True)

    def list_responses(self, survey_id_or_code: str) -> List[SurveyResponse]:
        survey = self.get_survey(survey_id_or_code)
        return SurveyResponse.list_for_survey(self.db, survey.id)

    def list_responses_by_survey(self, user_code: Optional[str] = None) -> List[ResponseGroup]:
        """Responses grouped by survey, optionally limited to one field user.

        Groups are ordered by their newest response and responses within a
        group newest first. Responses of deleted surveys are left out.
        """
        query = (
            select(SurveyResponse, Survey)
            .join(Survey, SurveyResponse.survey_id == Survey.id)
            .order_by(SurveyResponse.created_at.desc(), SurveyResponse.id.desc())
        )
        if user_code is not None:
            query = query.where(SurveyResponse.user_code == user_code)

        groups: Dict[int, ResponseGroup] = {}
        for response, survey in self.db.execute(query):
            groups.setdefault(survey.id, (survey, []))[1].append(response)
        return list(groups.values())

    def get_user_history(
        self, user_code: Optional[str]
    ) -> Tuple[Optional[User], List[ResponseGroup], Dict[int, User]]:
        """A field user's responses grouped by survey, with the approving users.

        Returns:
            The user (None if the code is unknown), the response groups and
            the approvers of those responses keyed by user id
        """
        code = (user_code or "").strip()
        if not code:
            raise ValidationFailure("userCode is required.")
        user = User.find_by_code(self.db, code)
        groups = self.list_responses_by_survey(user_code=code)

        approver_ids = {
            response.approved_by
            for _, responses in groups
            for response in responses
            if response.approved_by is not None
        }
        approvers: Dict[int, User] = {}
        if approver_ids:
            approvers = {
                approver.id: approver
                for approver in self.db.execute(
                    select(User).where(User.id.in_(approver_ids))
                ).scalars()
            }
        return user, groups, approvers

    # Questions

    def add_question(self, survey_id_or_code: str, data: QuestionCreate) -> SurveyQuestion:
        """Add a root or follow-up question to a survey.

        Raises:
            NotFoundError: If the survey or parent question does not exist
            ValidationFailure: If the payload breaks a per-type rule
        """
        survey = self.get_survey(survey_id_or_code)

        has_parent = data.parent_question_id is not None
        has_value = bool((data.parent_option_value or "").strip())
        if has_parent != has_value:
            raise ValidationFailure("parentQuestionId and parentOptionValue are required together.")

        question = SurveyQuestion(
            survey_id=survey.id,
            question_text=data.question_text,
            required=data.required,
            order=data.order,
            help_text=data.help_text,
            is_active=True,
        )

        if has_parent:
            parent = self._get_parent(survey, data.parent_question_id)
            value = data.parent_option_value.strip()
            _check_parent_option(parent, value)
            question.parent_question_id = parent.id
            question.parent_option_value = value
            _apply_follow_up_config(question)
        else:
            if data.type is None:
                raise ValidationFailure("questionText and type are required.")
            _check_type_allowed(survey, data.type)
            _apply_type_config(question, data.type, data.model_dump())

        self._commit(question)
        logger.info(
            f"Added {question.type} question {question.id}"
            + (f" following {question.parent_question_id}" if question.is_follow_up else ""),
            extra={"survey_code": survey.survey_code},
        )
        return question

    def update_question(self, question_id: Any, data: QuestionUpdate) -> SurveyQuestion:
        question = self.get_question(question_id)
        fields = data.model_dump(exclude_unset=True)

        if "question_text" in fields:
            text = (fields["question_text"] or "").strip()
            if not text:
                raise ValidationFailure("questionText cannot be blank")
            question.question_text = text
        for key in ("required", "order", "is_active"):
            if fields.get(key) is not None:
                setattr(question, key, fields[key])
        if "help_text" in fields:
            question.help_text = fields["help_text"]

        if question.is_follow_up:
            if fields.get("type") is not None:
                raise ValidationFailure("Question type cannot be changed for follow-up questions.")
            if fields.get("parent_option_value") is not None:
                value = fields["parent_option_value"].strip()
                parent = self.get_question(question.parent_question_id)
                _check_parent_option(parent, value)
                question.parent_option_value = value
            _apply_follow_up_config(question)
        else:
            new_type = fields.get("type") or QuestionType(question.type)
            if fields.get("type") is not None and new_type.value != question.type:
                _check_type_allowed(question.survey, new_type)
            merged = _current_config(question)
            merged.update({k: v for k, v in fields.items() if v is not None})
            _apply_type_config(question, new_type, merged)

        self._commit(question)
        logger.info(f"Updated question {question.id}", extra={"survey_code": question.survey.survey_code})
        return question

    def delete_question(self, question_id: Any) -> None:
        """Hard-delete a question together with its follow-ups."""
        question = self.get_question(question_id)
        qid = question.id
        try:
            self.db.delete(question)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Deleted question {qid}")

    def get_question(self, question_id: Any) -> SurveyQuestion:
        key = str(question_id).strip()
        if not key.isdigit():
            raise ValidationFailure("Invalid questionId.")
        question = self.db.get(SurveyQuestion, int(key))
        if question is None:
            raise NotFoundError("Question not found.")
        return question

    def _get_parent(self, survey: Survey, parent_id: int) -> SurveyQuestion:
        parent = self.db.get(SurveyQuestion, parent_id)
        if parent is None or parent.survey_id != survey.id:
            raise NotFoundError("Parent question not found in this survey.")
        if parent.is_follow_up:
            raise ValidationFailure("Follow-up questions cannot have follow-ups.")
        return parent

    def _unique_survey_code(self) -> str:
        while True:
            code = generate_survey_code()
            exists = self.db.execute(
                select(Survey.id).where(Survey.survey_code == code)
            ).first()
            if exists is None:
                return code

    def _commit(self, instance: Any) -> None:
        try:
            self.db.add(instance)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(instance)


def _check_type_allowed(survey: Survey, question_type: QuestionType) -> None:
    allowed = survey.allowed_question_types or []
    if allowed and question_type.value not in allowed:
        raise ValidationFailure(
            f"This question type is not allowed for this survey. Allowed: {', '.join(allowed)}"
        )


def _check_parent_option(parent: SurveyQuestion, value: str) -> None:
    """A follow-up on an option question must hang off one of its options."""
    definition = parent.to_definition()
    if definition is None or definition.effective_type not in OPTION_TYPES:
        return
    if not definition.accepts_option(value):
        raise ValidationFailure(
            f'parentOptionValue "{value}" is not an option of question: {parent.question_text}'
        )


def _current_config(question: SurveyQuestion) -> Dict[str, Any]:
    return {
        "options": list(question.options or []),
        "allow_multiple": question.allow_multiple,
        "min_rating": question.min_rating,
        "max_rating": question.max_rating,
        "rating_step": question.rating_step,
        "enable_other_option": question.enable_other_option,
        "other_option_label": question.other_option_label,
    }


def _apply_type_config(question: SurveyQuestion, question_type: QuestionType, config: Dict[str, Any]) -> None:
    """Set type-specific columns of a root question from a config mapping."""
    question.type = question_type.value

    if question_type in OPTION_TYPES:
        options = config.get("options") or []
        if not options:
            raise ValidationFailure("options are required for this question type.")
        question.options = list(options)
        question.enable_other_option = bool(config.get("enable_other_option"))
        label = (config.get("other_option_label") or "").strip()
        question.other_option_label = label or DEFAULT_OTHER_LABEL
    else:
        question.options = []
        question.enable_other_option = False
        question.other_option_label = DEFAULT_OTHER_LABEL

    if question_type == QuestionType.CHECKBOX:
        question.allow_multiple = True
    elif question_type == QuestionType.MCQ_SINGLE:
        question.allow_multiple = bool(config.get("allow_multiple"))
    else:
        question.allow_multiple = False

    if question_type == QuestionType.RATING:
        min_rating = _or_default(config.get("min_rating"), DEFAULT_MIN_RATING)
        max_rating = _or_default(config.get("max_rating"), DEFAULT_MAX_RATING)
        if min_rating > max_rating:
            raise ValidationFailure("minRating cannot be greater than maxRating.")
        question.min_rating = min_rating
        question.max_rating = max_rating
        question.rating_step = _or_default(config.get("rating_step"), DEFAULT_RATING_STEP)
    else:
        question.min_rating = None
        question.max_rating = None
        question.rating_step = None


def _apply_follow_up_config(question: SurveyQuestion) -> None:
    question.type = QuestionType.OPEN_ENDED.value
    question.options = []
    question.allow_multiple = False
    question.enable_other_option = False
    question.other_option_label = DEFAULT_OTHER_LABEL
    question.min_rating = None
    question.max_rating = None
    question.rating_step = None


def _or_default(value: Optional[float], default: float) -> float:
    return default if value is None else value
