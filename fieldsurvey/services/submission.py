"""Submission service for survey responses.

This module resolves the respondent and survey, validates every answer of a
submission against the survey's questions, and persists the resulting
SurveyResponse rows. A bulk submission is written in a single transaction:
either every item is stored or none is.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.orm import Session

from fieldsurvey.models.question import SurveyQuestion
from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.models.survey import Survey
from fieldsurvey.models.user import User
from fieldsurvey.schemas.response import (
    ApprovalStatus,
    CreatedResponse,
    NormalizedAnswer,
    RawAnswer,
)
from fieldsurvey.services.answer_normalizer import AnswerNormalizer
from fieldsurvey.services.errors import NotFoundError, ValidationFailure
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RespondentSnapshot:
    """Respondent identity copied into a response at submission time."""
    user_id: int
    user_code: str
    user_name: Optional[str]
    user_mobile: Optional[str]
    user_role: Optional[str]

    @classmethod
    def of(cls, user: User) -> "RespondentSnapshot":
        return cls(
            user_id=user.id,
            user_code=user.user_code,
            user_name=user.full_name,
            user_mobile=user.mobile,
            user_role=user.role,
        )


@dataclass(frozen=True)
class SubmissionTarget:
    """Resolved respondent, survey and question lookup for one request."""
    respondent: RespondentSnapshot
    survey: Survey
    questions: Dict[str, SurveyQuestion]


class SubmissionService:
    """Service that validates and stores survey responses."""

    def __init__(self, db: Session):
        """Initialize submission service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def submit_response(
        self,
        survey_id_or_code: str,
        user_code: Optional[str],
        raw_answers: Any,
        audio_ref: Optional[str],
        latitude: Any = None,
        longitude: Any = None,
    ) -> int:
        """Validate and store a single survey response.

        Args:
            survey_id_or_code: Survey primary key or survey code
            user_code: Code of the submitting field user
            raw_answers: Decoded `answers` array from the request
            audio_ref: Durable reference of the uploaded recording
            latitude: Optional latitude (number or numeric string)
            longitude: Optional longitude (number or numeric string)

        Returns:
            Id of the created SurveyResponse

        Raises:
            NotFoundError: If the user or survey cannot be resolved
            ValidationFailure: If any input or answer is invalid
        """
        target = self._resolve_target(survey_id_or_code, user_code, audio_ref)
        location = (_parse_coordinate(latitude, "latitude"), _parse_coordinate(longitude, "longitude"))

        answers = self._normalize_answers(raw_answers, target.questions)
        response = self._build_response(target, answers, audio_ref, *location)

        try:
            self.db.add(response)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(response)

        logger.info(
            f"Stored response {response.id} with {len(answers)} answers",
            extra={
                "survey_code": target.survey.survey_code,
                "user_code": target.respondent.user_code,
                "response_id": response.id,
            },
        )
        return response.id

    def submit_bulk(
        self,
        survey_id_or_code: str,
        user_code: Optional[str],
        items: Any,
        audio_ref: Optional[str],
    ) -> List[CreatedResponse]:
        """Validate and store several responses sharing one recording.

        Items are processed in order. All rows are flushed inside one
        transaction and committed together; the first failing item rolls
        back every row of the request.

        Args:
            survey_id_or_code: Survey primary key or survey code
            user_code: Code of the submitting field user
            items: Decoded `responses` array; each item holds `answers` and
                optional `latitude` / `longitude`
            audio_ref: Durable reference of the shared recording

        Returns:
            Index/id pairs of the created responses, in item order

        Raises:
            NotFoundError: If the user or survey cannot be resolved
            ValidationFailure: If an item is invalid (tagged with its index)
        """
        target = self._resolve_target(survey_id_or_code, user_code, audio_ref)

        if not isinstance(items, list) or not items:
            raise ValidationFailure("responses array is required and cannot be empty.")

        created: List[CreatedResponse] = []
        try:
            for index, item in enumerate(items):
                try:
                    response = self._build_item(target, item, audio_ref)
                except ValidationFailure as exc:
                    raise exc.for_item(index) from exc

                self.db.add(response)
                self.db.flush()
                created.append(CreatedResponse(index=index, response_id=response.id))

            self.db.commit()
        except ValidationFailure as exc:
            self.db.rollback()
            logger.info(
                f"Bulk submission rejected, nothing stored: {exc.message}",
                extra={
                    "survey_code": target.survey.survey_code,
                    "user_code": target.respondent.user_code,
                },
            )
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Stored {len(created)} bulk responses",
            extra={
                "survey_code": target.survey.survey_code,
                "user_code": target.respondent.user_code,
            },
        )
        return created

    def _resolve_target(
        self,
        survey_id_or_code: str,
        user_code: Optional[str],
        audio_ref: Optional[str],
    ) -> SubmissionTarget:
        if not user_code or not str(user_code).strip():
            raise ValidationFailure("userCode is required.")

        user = User.find_active_survey_user(self.db, str(user_code).strip())
        if user is None:
            raise NotFoundError("Active SURVEY_USER not found for this userCode.")

        survey = Survey.find_by_id_or_code(self.db, survey_id_or_code)
        if survey is None:
            raise NotFoundError("Survey not found.")

        if not audio_ref or not str(audio_ref).strip():
            raise ValidationFailure("Audio recording (audio) is required.")

        # Inactive questions stay in the lookup: earlier app builds may still
        # submit answers for them.
        questions = {
            str(question.id): question
            for question in SurveyQuestion.list_for_survey(self.db, survey.id)
        }
        return SubmissionTarget(
            respondent=RespondentSnapshot.of(user),
            survey=survey,
            questions=questions,
        )

    def _build_item(self, target: SubmissionTarget, item: Any, audio_ref: str) -> SurveyResponse:
        if not isinstance(item, dict):
            raise ValidationFailure("each response must be an object.")

        latitude = _parse_coordinate(item.get("latitude"), "latitude")
        longitude = _parse_coordinate(item.get("longitude"), "longitude")
        answers = self._normalize_answers(item.get("answers"), target.questions)
        return self._build_response(target, answers, audio_ref, latitude, longitude)

    def _normalize_answers(
        self,
        raw_answers: Any,
        questions: Dict[str, SurveyQuestion],
    ) -> List[NormalizedAnswer]:
        if not isinstance(raw_answers, list) or not raw_answers:
            raise ValidationFailure("answers array is required and cannot be empty.")

        normalized: List[NormalizedAnswer] = []
        for entry in raw_answers:
            raw = _parse_raw_answer(entry)
            question_id = "" if raw.question_id is None else str(raw.question_id)

            question = questions.get(question_id)
            if question is None:
                raise ValidationFailure(f'Invalid questionId "{question_id}" for this survey.')

            definition = question.to_definition()
            if definition is None:
                logger.warning(f"Skipping answer for question {question.id} with unsupported type")
                continue

            normalized.append(AnswerNormalizer.normalize(raw, definition))

        if not normalized:
            raise ValidationFailure("No valid answers found for this survey.")
        return normalized

    def _build_response(
        self,
        target: SubmissionTarget,
        answers: Sequence[NormalizedAnswer],
        audio_ref: str,
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> SurveyResponse:
        respondent = target.respondent
        return SurveyResponse(
            survey_id=target.survey.id,
            survey_code=target.survey.survey_code,
            user_id=respondent.user_id,
            user_code=respondent.user_code,
            user_name=respondent.user_name,
            user_mobile=respondent.user_mobile,
            user_role=respondent.user_role,
            audio_url=audio_ref,
            latitude=latitude,
            longitude=longitude,
            is_completed=True,
            answers=[answer.to_document() for answer in answers],
            approval_status=ApprovalStatus.PENDING,
            approved_by=None,
            approved_at=None,
        )


def _parse_raw_answer(entry: Any) -> RawAnswer:
    if not isinstance(entry, dict):
        raise ValidationFailure("each answer must be an object.")
    try:
        return RawAnswer.model_validate(entry)
    except ValidationError as exc:
        raise ValidationFailure(f"Invalid answer payload: {exc.errors()[0]['msg']}") from exc


def _parse_coordinate(value: Any, field_name: str) -> Optional[float]:
    """Parse an optional coordinate; absent and empty values yield None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationFailure(f"{field_name} must be a valid number.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{field_name} must be a valid number.")
    if not math.isfinite(number):
        raise ValidationFailure(f"{field_name} must be a valid number.")
    return number
