"""Unit tests for the answer normalizer.

Tests per-type payload shapes, rating bounds, option membership, the
"Other" free-text rule and follow-up handling.
"""

import pytest

from fieldsurvey.schemas.question import (
    FollowUpQuestion,
    QuestionType,
    RatingConfig,
    RootQuestion,
)
from fieldsurvey.schemas.response import RawAnswer
from fieldsurvey.services.answer_normalizer import TYPE_HANDLERS, AnswerNormalizer
from fieldsurvey.services.errors import ValidationFailure


def raw(**fields) -> RawAnswer:
    return RawAnswer.model_validate({"questionId": 1, **fields})


def root(qtype: QuestionType, **fields) -> RootQuestion:
    return RootQuestion(id=1, survey_id=1, text=fields.pop("text", "Test question"), type=qtype, **fields)


PAYLOAD_KEYS = {"answerText", "rating", "selectedOptions", "otherText"}


def payload_of(answer) -> set:
    return set(answer.to_document()) & PAYLOAD_KEYS


class TestDispatch:
    """Tests for type dispatch."""

    def test_every_question_type_has_a_handler(self):
        assert set(TYPE_HANDLERS) == set(QuestionType)

    def test_output_captures_question_identity(self):
        question = root(QuestionType.OPEN_ENDED, text="Your name?")
        answer = AnswerNormalizer.normalize(raw(answerText="Asha"), question)

        doc = answer.to_document()
        assert doc["question"] == 1
        assert doc["questionText"] == "Your name?"
        assert doc["questionType"] == "OPEN_ENDED"

    def test_normalization_is_idempotent(self):
        question = root(QuestionType.CHECKBOX, options=("A", "B"), enable_other_option=True)
        answer = raw(selectedOptions=["A", "Other"], otherText="custom")

        first = AnswerNormalizer.normalize(answer, question)
        second = AnswerNormalizer.normalize(answer, question)

        assert first == second
        assert first.to_document() == second.to_document()


class TestOpenEnded:
    """Tests for OPEN_ENDED answers."""

    def test_valid_text(self):
        answer = AnswerNormalizer.normalize(raw(answerText="Piped water"), root(QuestionType.OPEN_ENDED))

        assert answer.answer_text == "Piped water"
        assert payload_of(answer) == {"answerText"}

    def test_text_is_stored_as_submitted(self):
        answer = AnswerNormalizer.normalize(raw(answerText="  Piped water\n"), root(QuestionType.OPEN_ENDED))

        assert answer.answer_text == "  Piped water\n"
        assert answer.to_document()["answerText"] == "  Piped water\n"

    @pytest.mark.parametrize("value", [None, "", "   ", 42, ["text"]])
    def test_missing_or_non_string_rejected(self, value):
        with pytest.raises(ValidationFailure) as exc_info:
            AnswerNormalizer.normalize(raw(answerText=value), root(QuestionType.OPEN_ENDED, text="Your name?"))

        assert exc_info.value.status_code == 400
        assert "Your name?" in exc_info.value.message
        assert exc_info.value.question_text == "Your name?"

    def test_other_fields_are_not_copied(self):
        answer = AnswerNormalizer.normalize(
            raw(answerText="yes", rating=4, selectedOptions=["A"], otherText="x"),
            root(QuestionType.OPEN_ENDED),
        )

        assert payload_of(answer) == {"answerText"}


class TestRating:
    """Tests for RATING answers."""

    @pytest.fixture
    def question(self):
        return root(QuestionType.RATING, text="Rate the service", rating=RatingConfig(min_rating=1, max_rating=5))

    @pytest.mark.parametrize("value", [1, 3, 5])
    def test_in_bounds_accepted(self, question, value):
        answer = AnswerNormalizer.normalize(raw(rating=value), question)

        assert answer.rating == value
        assert payload_of(answer) == {"rating"}

    @pytest.mark.parametrize("value", [0, 6])
    def test_out_of_bounds_rejected(self, question, value):
        with pytest.raises(ValidationFailure) as exc_info:
            AnswerNormalizer.normalize(raw(rating=value), question)

        assert "between 1 and 5" in exc_info.value.message
        assert "Rate the service" in exc_info.value.message

    @pytest.mark.parametrize("value", [None, "abc", True, [3], float("nan")])
    def test_non_numbers_rejected(self, question, value):
        with pytest.raises(ValidationFailure, match="rating \\(number\\) is required"):
            AnswerNormalizer.normalize(raw(rating=value), question)

    def test_numeric_string_is_coerced(self, question):
        assert AnswerNormalizer.normalize(raw(rating="4"), question).rating == 4
        assert AnswerNormalizer.normalize(raw(rating="2.5"), question).rating == 2.5

    def test_unbounded_rating_accepts_any_number(self):
        question = root(QuestionType.RATING, rating=RatingConfig(min_rating=1, max_rating=None))

        assert AnswerNormalizer.normalize(raw(rating=100), question).rating == 100

    def test_missing_rating_config_accepts_any_number(self):
        assert AnswerNormalizer.normalize(raw(rating=-3), root(QuestionType.RATING)).rating == -3


class TestSingleChoice:
    """Tests for MCQ_SINGLE, DROPDOWN, LIKERT and YES_NO answers."""

    @pytest.mark.parametrize("qtype", [
        QuestionType.MCQ_SINGLE,
        QuestionType.DROPDOWN,
        QuestionType.LIKERT,
        QuestionType.YES_NO,
    ])
    def test_listed_option_accepted(self, qtype):
        question = root(qtype, options=("Yes", "No"))

        answer = AnswerNormalizer.normalize(raw(selectedOption="No"), question)

        assert answer.selected_options == ["No"]
        assert payload_of(answer) == {"selectedOptions"}

    def test_falls_back_to_first_selected_options_entry(self):
        question = root(QuestionType.DROPDOWN, options=("Red", "Green"))

        answer = AnswerNormalizer.normalize(raw(selectedOptions=["Green", "Red"]), question)

        assert answer.selected_options == ["Green"]

    def test_unlisted_option_rejected(self):
        question = root(QuestionType.MCQ_SINGLE, text="Favourite colour", options=("Red", "Green"))

        with pytest.raises(ValidationFailure) as exc_info:
            AnswerNormalizer.normalize(raw(selectedOption="Blue"), question)

        assert '"Blue"' in exc_info.value.message
        assert "Favourite colour" in exc_info.value.message

    def test_missing_selection_rejected(self):
        question = root(QuestionType.YES_NO, options=("Yes", "No"))

        with pytest.raises(ValidationFailure, match="selectedOption is required"):
            AnswerNormalizer.normalize(raw(), question)

    def test_other_label_without_flag_rejected(self):
        question = root(QuestionType.MCQ_SINGLE, options=("Red", "Green"), enable_other_option=False)

        with pytest.raises(ValidationFailure):
            AnswerNormalizer.normalize(raw(selectedOption="Other", otherText="Blue"), question)

    def test_other_label_requires_other_text(self):
        question = root(QuestionType.MCQ_SINGLE, options=("Red", "Green"), enable_other_option=True)

        with pytest.raises(ValidationFailure, match="otherText is required"):
            AnswerNormalizer.normalize(raw(selectedOption="Other", otherText="   "), question)

    def test_other_label_with_text_accepted(self):
        question = root(
            QuestionType.LIKERT,
            options=("Agree", "Disagree"),
            enable_other_option=True,
            other_option_label="Something else",
        )

        answer = AnswerNormalizer.normalize(
            raw(selectedOption="Something else", otherText="  Not sure  "), question
        )

        assert answer.selected_options == ["Something else"]
        assert answer.other_text == "Not sure"
        assert payload_of(answer) == {"selectedOptions", "otherText"}

    def test_other_text_dropped_for_regular_option(self):
        question = root(QuestionType.MCQ_SINGLE, options=("Red",), enable_other_option=True)

        answer = AnswerNormalizer.normalize(raw(selectedOption="Red", otherText="ignored"), question)

        assert answer.other_text is None


class TestCheckbox:
    """Tests for CHECKBOX answers."""

    @pytest.fixture
    def question(self):
        return root(
            QuestionType.CHECKBOX,
            text="Which sources?",
            options=("A", "B"),
            enable_other_option=True,
        )

    def test_multiple_options_accepted_in_order(self, question):
        answer = AnswerNormalizer.normalize(raw(selectedOptions=["B", "A"]), question)

        assert answer.selected_options == ["B", "A"]
        assert payload_of(answer) == {"selectedOptions"}

    @pytest.mark.parametrize("value", [None, [], "A"])
    def test_empty_or_non_list_rejected(self, question, value):
        with pytest.raises(ValidationFailure, match="selectedOptions \\(array\\) is required"):
            AnswerNormalizer.normalize(raw(selectedOptions=value), question)

    def test_mix_of_valid_and_invalid_rejected(self, question):
        with pytest.raises(ValidationFailure) as exc_info:
            AnswerNormalizer.normalize(raw(selectedOptions=["A", "Z"]), question)

        assert "Z" in exc_info.value.message
        assert "Which sources?" in exc_info.value.message

    def test_other_without_text_rejected(self, question):
        with pytest.raises(ValidationFailure) as exc_info:
            AnswerNormalizer.normalize(raw(selectedOptions=["A", "Other"]), question)

        assert exc_info.value.question_text == "Which sources?"

    def test_other_with_text_accepted(self, question):
        answer = AnswerNormalizer.normalize(
            raw(selectedOptions=["A", "Other"], otherText="custom"), question
        )

        assert answer.to_document()["selectedOptions"] == ["A", "Other"]
        assert answer.to_document()["otherText"] == "custom"


class TestFollowUp:
    """Tests for follow-up questions."""

    def test_follow_up_is_always_open_ended(self):
        question = FollowUpQuestion(
            id=7,
            survey_id=1,
            text="Why not?",
            parent_question_id=1,
            parent_option_value="No",
        )

        answer = AnswerNormalizer.normalize(raw(questionId=7, answerText="Too far"), question)

        assert answer.question_type == QuestionType.OPEN_ENDED
        assert answer.answer_text == "Too far"

    def test_follow_up_ignores_option_payload(self):
        question = FollowUpQuestion(
            id=7,
            survey_id=1,
            text="Why not?",
            parent_question_id=1,
            parent_option_value="No",
        )

        with pytest.raises(ValidationFailure, match="answerText is required"):
            AnswerNormalizer.normalize(raw(questionId=7, selectedOption="No"), question)
