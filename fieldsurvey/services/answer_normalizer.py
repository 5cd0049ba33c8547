"""Answer normalization service.

This module validates one raw answer against one question definition and
produces the normalized answer stored with a response. Dispatch is on the
question's effective type; follow-up questions are always free text.
"""

import math
from typing import Any, Callable, Dict, Optional, Union

from fieldsurvey.schemas.question import (
    SINGLE_CHOICE_TYPES,
    FollowUpQuestion,
    QuestionDefinition,
    QuestionType,
    RootQuestion,
)
from fieldsurvey.schemas.response import NormalizedAnswer, RawAnswer
from fieldsurvey.services.errors import ValidationFailure

Number = Union[int, float]


class AnswerNormalizer:
    """Service for turning raw answers into normalized answer records."""

    @staticmethod
    def normalize(raw: RawAnswer, question: QuestionDefinition) -> NormalizedAnswer:
        """Validate a raw answer and build its normalized form.

        Output payload by effective type:
        - OPEN_ENDED: answerText
        - RATING: rating
        - MCQ_SINGLE, DROPDOWN, LIKERT, YES_NO: selectedOptions with one value
        - CHECKBOX: selectedOptions with one or more values
        - any option type: otherText when the "Other" label was selected

        Args:
            raw: Answer as submitted by the client
            question: Definition of the question being answered

        Returns:
            NormalizedAnswer carrying only the fields of the question's type

        Raises:
            ValidationFailure: If the answer is unacceptable for the question

        Example:
            >>> q = RootQuestion(id=1, survey_id=1, text="Rate us", type=QuestionType.RATING,
            ...                  rating=RatingConfig(min_rating=1, max_rating=5))
            >>> AnswerNormalizer.normalize(RawAnswer(questionId=1, rating=3), q).rating
            3
        """
        handler = _handler_for(question)
        payload = handler(raw, question)
        return NormalizedAnswer(
            question_id=question.id,
            question_text=question.text,
            question_type=question.effective_type,
            **payload,
        )

    @staticmethod
    def _normalize_open_ended(raw: RawAnswer, question: QuestionDefinition) -> Dict[str, Any]:
        answer_text = raw.answer_text
        if not isinstance(answer_text, str) or not answer_text.strip():
            raise ValidationFailure(
                f"answerText is required for OPEN_ENDED question: {question.text}",
                question_text=question.text,
            )
        # Stored exactly as submitted; only blank text is rejected.
        return {"answer_text": answer_text}

    @staticmethod
    def _normalize_rating(raw: RawAnswer, question: RootQuestion) -> Dict[str, Any]:
        rating = _coerce_number(raw.rating)
        if rating is None:
            raise ValidationFailure(
                f"rating (number) is required for RATING question: {question.text}",
                question_text=question.text,
            )

        bounds = question.rating
        if bounds is not None and bounds.is_bounded:
            if rating < bounds.min_rating or rating > bounds.max_rating:
                raise ValidationFailure(
                    f"rating must be between {_format_number(bounds.min_rating)} and "
                    f"{_format_number(bounds.max_rating)} for question: {question.text}",
                    question_text=question.text,
                )
        return {"rating": rating}

    @staticmethod
    def _normalize_single_choice(raw: RawAnswer, question: RootQuestion) -> Dict[str, Any]:
        selected = raw.selected_option
        if not selected and isinstance(raw.selected_options, list) and raw.selected_options:
            selected = raw.selected_options[0]

        if not isinstance(selected, str) or not selected:
            raise ValidationFailure(
                f"selectedOption is required for question: {question.text}",
                question_text=question.text,
            )

        if not question.accepts_option(selected):
            raise ValidationFailure(
                f'selectedOption "{selected}" is not valid for question: {question.text}',
                question_text=question.text,
            )

        payload: Dict[str, Any] = {"selected_options": [selected]}
        if question.is_other_option(selected):
            payload["other_text"] = _require_other_text(raw, question)
        return payload

    @staticmethod
    def _normalize_checkbox(raw: RawAnswer, question: RootQuestion) -> Dict[str, Any]:
        selected = raw.selected_options
        if not isinstance(selected, list) or not selected:
            raise ValidationFailure(
                f"selectedOptions (array) is required for CHECKBOX question: {question.text}",
                question_text=question.text,
            )

        invalid = [value for value in selected if not question.accepts_option(value)]
        if invalid:
            raise ValidationFailure(
                f"Invalid options {', '.join(str(v) for v in invalid)} "
                f"for question: {question.text}",
                question_text=question.text,
            )

        payload: Dict[str, Any] = {"selected_options": list(selected)}
        if any(question.is_other_option(value) for value in selected):
            payload["other_text"] = _require_other_text(raw, question)
        return payload


Handler = Callable[[RawAnswer, Any], Dict[str, Any]]

# One handler per question type; tests assert this covers QuestionType.
TYPE_HANDLERS: Dict[QuestionType, Handler] = {
    QuestionType.OPEN_ENDED: AnswerNormalizer._normalize_open_ended,
    QuestionType.RATING: AnswerNormalizer._normalize_rating,
    QuestionType.CHECKBOX: AnswerNormalizer._normalize_checkbox,
    **{qtype: AnswerNormalizer._normalize_single_choice for qtype in SINGLE_CHOICE_TYPES},
}


def _handler_for(question: QuestionDefinition) -> Handler:
    if isinstance(question, FollowUpQuestion):
        return AnswerNormalizer._normalize_open_ended
    return TYPE_HANDLERS[question.type]


def _require_other_text(raw: RawAnswer, question: RootQuestion) -> str:
    other_text = raw.other_text.strip() if isinstance(raw.other_text, str) else ""
    if not other_text:
        raise ValidationFailure(
            f'otherText is required when selecting "{question.other_option_label}" '
            f"for question: {question.text}",
            question_text=question.text,
        )
    return other_text


def _coerce_number(value: Any) -> Optional[Number]:
    """Accept ints, floats and numeric strings; reject everything else."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)

