"""Integration tests for the submission service.

Covers single and bulk submission against a real (SQLite) session: target
resolution, answer validation against stored questions, the stored response
document and bulk atomicity.
"""

import pytest

from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.models.user import UserRole
from fieldsurvey.services.errors import NotFoundError, ValidationFailure
from fieldsurvey.services.submission import SubmissionService

AUDIO = "/media/survey_audio/proof.mp3"


@pytest.fixture
def survey(make_survey):
    return make_survey(survey_code="SRV-HOME0001")


@pytest.fixture
def rating_question(survey, make_question):
    return make_question(survey, "Rate the service", "RATING", min_rating=1, max_rating=5, rating_step=1)


@pytest.fixture
def checkbox_question(survey, make_question):
    return make_question(
        survey,
        "Which sources?",
        "CHECKBOX",
        options=["A", "B"],
        allow_multiple=True,
        enable_other_option=True,
        other_option_label="Other",
    )


@pytest.fixture
def service(db_session):
    return SubmissionService(db_session)


def count_responses(db_session) -> int:
    return db_session.query(SurveyResponse).count()


class TestSubmitResponse:
    """Tests for single submissions."""

    def test_stores_normalized_answers_and_snapshot(self, db_session, service, survey, survey_user, rating_question):
        response_id = service.submit_response(
            "SRV-HOME0001",
            survey_user.user_code,
            [{"questionId": str(rating_question.id), "rating": 3}],
            AUDIO,
            latitude="28.61",
            longitude=77.2,
        )

        stored = db_session.get(SurveyResponse, response_id)
        assert stored.survey_id == survey.id
        assert stored.survey_code == "SRV-HOME0001"
        assert stored.user_code == survey_user.user_code
        assert stored.user_name == survey_user.full_name
        assert stored.user_mobile == survey_user.mobile
        assert stored.user_role == UserRole.SURVEY_USER.value
        assert stored.audio_url == AUDIO
        assert stored.latitude == pytest.approx(28.61)
        assert stored.longitude == pytest.approx(77.2)
        assert stored.is_completed is True
        assert stored.approval_status == "PENDING"
        assert stored.is_approved is False
        assert stored.approved_by is None
        assert stored.answers == [{
            "question": rating_question.id,
            "questionText": "Rate the service",
            "questionType": "RATING",
            "rating": 3,
        }]

    def test_survey_resolved_by_numeric_id(self, service, survey, survey_user, rating_question):
        response_id = service.submit_response(
            str(survey.id), survey_user.user_code, [{"questionId": rating_question.id, "rating": 5}], AUDIO
        )

        assert response_id > 0

    def test_unknown_user_is_not_found(self, service, survey, rating_question):
        with pytest.raises(NotFoundError, match="Active SURVEY_USER not found"):
            service.submit_response("SRV-HOME0001", "FU-404", [{"questionId": rating_question.id, "rating": 3}], AUDIO)

    def test_reviewer_cannot_submit(self, service, survey, quality_engineer, rating_question):
        with pytest.raises(NotFoundError):
            service.submit_response(
                "SRV-HOME0001", quality_engineer.user_code, [{"questionId": rating_question.id, "rating": 3}], AUDIO
            )

    def test_unknown_survey_is_not_found(self, service, survey_user):
        with pytest.raises(NotFoundError, match="Survey not found"):
            service.submit_response("SRV-NOPE0000", survey_user.user_code, [{"questionId": 1, "rating": 3}], AUDIO)

    @pytest.mark.parametrize("audio", [None, "", "   "])
    def test_audio_is_required(self, service, survey, survey_user, rating_question, audio):
        with pytest.raises(ValidationFailure, match="Audio recording"):
            service.submit_response(
                "SRV-HOME0001", survey_user.user_code, [{"questionId": rating_question.id, "rating": 3}], audio
            )

    @pytest.mark.parametrize("latitude", ["north", True, "inf"])
    def test_bad_latitude_rejected(self, service, survey, survey_user, rating_question, latitude):
        with pytest.raises(ValidationFailure, match="latitude must be a valid number"):
            service.submit_response(
                "SRV-HOME0001",
                survey_user.user_code,
                [{"questionId": rating_question.id, "rating": 3}],
                AUDIO,
                latitude=latitude,
            )

    def test_blank_coordinates_are_absent(self, db_session, service, survey, survey_user, rating_question):
        response_id = service.submit_response(
            "SRV-HOME0001",
            survey_user.user_code,
            [{"questionId": rating_question.id, "rating": 3}],
            AUDIO,
            latitude="",
            longitude=None,
        )

        stored = db_session.get(SurveyResponse, response_id)
        assert stored.latitude is None
        assert stored.longitude is None

    @pytest.mark.parametrize("answers", [None, [], "not-a-list"])
    def test_answers_required(self, service, survey, survey_user, answers):
        with pytest.raises(ValidationFailure, match="answers array is required"):
            service.submit_response("SRV-HOME0001", survey_user.user_code, answers, AUDIO)

    def test_question_from_other_survey_rejected(self, service, survey, survey_user, make_survey, make_question):
        other = make_question(make_survey(), "Elsewhere", "OPEN_ENDED")

        with pytest.raises(ValidationFailure) as exc_info:
            service.submit_response(
                "SRV-HOME0001", survey_user.user_code, [{"questionId": other.id, "answerText": "x"}], AUDIO
            )

        assert exc_info.value.message == f'Invalid questionId "{other.id}" for this survey.'

    def test_first_failing_answer_rejects_submission(self, db_session, service, survey, survey_user,
                                                     rating_question, checkbox_question):
        with pytest.raises(ValidationFailure) as exc_info:
            service.submit_response(
                "SRV-HOME0001",
                survey_user.user_code,
                [
                    {"questionId": rating_question.id, "rating": 4},
                    {"questionId": checkbox_question.id, "selectedOptions": ["A", "Other"]},
                ],
                AUDIO,
            )

        assert exc_info.value.question_text == "Which sources?"
        assert count_responses(db_session) == 0

    def test_inactive_question_still_validates(self, db_session, service, survey, survey_user, make_question):
        retired = make_question(survey, "Old question", "OPEN_ENDED", is_active=False)

        response_id = service.submit_response(
            "SRV-HOME0001", survey_user.user_code, [{"questionId": retired.id, "answerText": "still here"}], AUDIO
        )

        assert db_session.get(SurveyResponse, response_id).answers[0]["answerText"] == "still here"

    def test_follow_up_answered_as_text(self, db_session, service, survey, survey_user, make_question):
        parent = make_question(survey, "Tap?", "YES_NO", options=["Yes", "No"])
        follow_up = make_question(
            survey, "Why not?", "CHECKBOX", options=["X"], parent_question_id=parent.id, parent_option_value="No"
        )

        response_id = service.submit_response(
            "SRV-HOME0001",
            survey_user.user_code,
            [
                {"questionId": parent.id, "selectedOption": "No"},
                {"questionId": follow_up.id, "answerText": "Too expensive"},
            ],
            AUDIO,
        )

        answers = db_session.get(SurveyResponse, response_id).answers
        assert answers[0]["selectedOptions"] == ["No"]
        assert answers[1] == {
            "question": follow_up.id,
            "questionText": "Why not?",
            "questionType": "OPEN_ENDED",
            "answerText": "Too expensive",
        }

    def test_unknown_stored_type_is_skipped(self, db_session, service, survey, survey_user,
                                            make_question, rating_question):
        legacy = make_question(survey, "Legacy", "MATRIX")

        response_id = service.submit_response(
            "SRV-HOME0001",
            survey_user.user_code,
            [
                {"questionId": legacy.id, "answerText": "ignored"},
                {"questionId": rating_question.id, "rating": 2},
            ],
            AUDIO,
        )

        answers = db_session.get(SurveyResponse, response_id).answers
        assert [a["question"] for a in answers] == [rating_question.id]

    def test_only_skipped_answers_is_a_failure(self, db_session, service, survey, survey_user, make_question):
        legacy = make_question(survey, "Legacy", "MATRIX")

        with pytest.raises(ValidationFailure, match="No valid answers"):
            service.submit_response(
                "SRV-HOME0001", survey_user.user_code, [{"questionId": legacy.id, "answerText": "x"}], AUDIO
            )

        assert count_responses(db_session) == 0

    def test_duplicate_submissions_are_not_deduplicated(self, db_session, service, survey, survey_user,
                                                        rating_question):
        answers = [{"questionId": rating_question.id, "rating": 3}]

        first = service.submit_response("SRV-HOME0001", survey_user.user_code, answers, AUDIO)
        second = service.submit_response("SRV-HOME0001", survey_user.user_code, answers, AUDIO)

        assert first != second
        assert count_responses(db_session) == 2

    def test_response_cap_and_anonymous_flag_are_informational(self, db_session, service, make_survey,
                                                               make_question, survey_user):
        capped = make_survey(survey_code="SRV-CAP00001", max_responses=1, is_anonymous_allowed=True)
        question = make_question(capped, "Rate it", "RATING", min_rating=1, max_rating=5, rating_step=1)
        answers = [{"questionId": question.id, "rating": 3}]

        service.submit_response("SRV-CAP00001", survey_user.user_code, answers, AUDIO)
        service.submit_response("SRV-CAP00001", survey_user.user_code, answers, AUDIO)

        assert count_responses(db_session) == 2
        with pytest.raises(ValidationFailure, match="userCode is required"):
            service.submit_response("SRV-CAP00001", None, answers, AUDIO)


class TestSubmitBulk:
    """Tests for bulk submissions."""

    def test_creates_one_response_per_item(self, db_session, service, survey, survey_user, rating_question):
        items = [
            {"answers": [{"questionId": rating_question.id, "rating": n}], "latitude": 10 + n}
            for n in (1, 2, 3)
        ]

        created = service.submit_bulk("SRV-HOME0001", survey_user.user_code, items, AUDIO)

        assert [c.index for c in created] == [0, 1, 2]
        stored = [db_session.get(SurveyResponse, c.response_id) for c in created]
        assert [s.answers[0]["rating"] for s in stored] == [1, 2, 3]
        assert [s.latitude for s in stored] == [11, 12, 13]
        assert {s.audio_url for s in stored} == {AUDIO}

    def test_failure_reports_index_and_stores_nothing(self, db_session, service, survey, survey_user,
                                                       rating_question):
        items = [
            {"answers": [{"questionId": rating_question.id, "rating": 1}]},
            {"answers": [{"questionId": 999999, "rating": 2}]},
            {"answers": [{"questionId": rating_question.id, "rating": 3}]},
        ]

        with pytest.raises(ValidationFailure) as exc_info:
            service.submit_bulk("SRV-HOME0001", survey_user.user_code, items, AUDIO)

        assert exc_info.value.index == 1
        assert exc_info.value.message.startswith("Response index 1: ")
        assert '"999999"' in exc_info.value.message
        assert exc_info.value.to_dict()["index"] == 1
        assert count_responses(db_session) == 0

    @pytest.mark.parametrize("items", [None, [], {"answers": []}])
    def test_responses_required(self, service, survey, survey_user, items):
        with pytest.raises(ValidationFailure, match="responses array is required"):
            service.submit_bulk("SRV-HOME0001", survey_user.user_code, items, AUDIO)

    def test_non_object_item_rejected_with_index(self, service, survey, survey_user, rating_question):
        items = [{"answers": [{"questionId": rating_question.id, "rating": 1}]}, "oops"]

        with pytest.raises(ValidationFailure) as exc_info:
            service.submit_bulk("SRV-HOME0001", survey_user.user_code, items, AUDIO)

        assert exc_info.value.index == 1

    def test_bulk_resolves_user_before_items(self, service, survey):
        with pytest.raises(NotFoundError):
            service.submit_bulk("SRV-HOME0001", "FU-404", [{"answers": []}], AUDIO)
