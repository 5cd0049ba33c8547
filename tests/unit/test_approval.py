"""Unit tests for the approval state machine."""

from datetime import datetime, timedelta, timezone

import pytest

from fieldsurvey.models.response import SurveyResponse
from fieldsurvey.schemas.response import ApprovalStatus
from fieldsurvey.services.approval import apply_approval, parse_status
from fieldsurvey.services.errors import ValidationFailure

NEGATIVE_STATUSES = [
    ApprovalStatus.NOT_ASKING_ALL_QUESTIONS,
    ApprovalStatus.NOT_DOING_IT_PROPERLY,
    ApprovalStatus.TAKING_FROM_FRIENDS_OR_TEAMMATE,
    ApprovalStatus.FAKE_OR_EMPTY_AUDIO,
]

T0 = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def response() -> SurveyResponse:
    return SurveyResponse(
        survey_code="SRV-TEST0001",
        user_code="FU-001",
        audio_url="/media/survey_audio/a.mp3",
        answers=[],
        approval_status=ApprovalStatus.PENDING,
    )


class TestApplyApproval:
    """Tests for status transitions."""

    @pytest.mark.parametrize("status", list(ApprovalStatus))
    def test_is_approved_follows_status(self, response, status):
        apply_approval(response, status, reviewer_id=9, now=T0)

        assert response.approval_status == status.value
        assert response.is_approved is (status == ApprovalStatus.CORRECTLY_DONE)

    def test_is_approved_holds_across_a_sequence(self, response):
        sequence = [
            ApprovalStatus.CORRECTLY_DONE,
            ApprovalStatus.FAKE_OR_EMPTY_AUDIO,
            ApprovalStatus.PENDING,
            ApprovalStatus.CORRECTLY_DONE,
            ApprovalStatus.CORRECTLY_DONE,
            ApprovalStatus.NOT_DOING_IT_PROPERLY,
        ]
        for status in sequence:
            apply_approval(response, status, reviewer_id=9, now=T0)
            assert response.is_approved is (status == ApprovalStatus.CORRECTLY_DONE)

    def test_first_approval_stamps_reviewer_and_time(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0)

        assert response.approved_by == 9
        assert response.approved_at == T0

    def test_repeated_approval_keeps_original_stamp(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0)
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=12, now=T0 + timedelta(hours=1))

        assert response.approved_by == 9
        assert response.approved_at == T0

    @pytest.mark.parametrize("status", NEGATIVE_STATUSES)
    def test_negative_status_keeps_stamp(self, response, status):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0)
        apply_approval(response, status, reviewer_id=12, now=T0 + timedelta(hours=1))

        assert response.is_approved is False
        assert response.approved_by == 9
        assert response.approved_at == T0

    def test_negative_status_does_not_stamp(self, response):
        apply_approval(response, ApprovalStatus.FAKE_OR_EMPTY_AUDIO, reviewer_id=9, now=T0)

        assert response.approved_by is None
        assert response.approved_at is None

    def test_reset_to_pending_clears_stamp(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0)
        apply_approval(response, ApprovalStatus.PENDING, reviewer_id=12)

        assert response.approval_status == ApprovalStatus.PENDING.value
        assert response.is_approved is False
        assert response.approved_by is None
        assert response.approved_at is None

    def test_anonymous_approval_stamps_time_only(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=None, now=T0)

        assert response.approved_by is None
        assert response.approved_at == T0

    def test_later_reviewer_does_not_split_an_anonymous_stamp(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=None, now=T0)
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0 + timedelta(hours=1))

        assert response.approved_by is None
        assert response.approved_at == T0

    def test_reviewer_recorded_after_reset(self, response):
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=None, now=T0)
        apply_approval(response, ApprovalStatus.PENDING, reviewer_id=None)
        apply_approval(response, ApprovalStatus.CORRECTLY_DONE, reviewer_id=9, now=T0 + timedelta(hours=1))

        assert response.approved_by == 9
        assert response.approved_at == T0 + timedelta(hours=1)


class TestParseStatus:
    """Tests for approval status parsing."""

    @pytest.mark.parametrize("status", list(ApprovalStatus))
    def test_all_statuses_accepted(self, status):
        assert parse_status(status.value) == status

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_status_rejected(self, value):
        with pytest.raises(ValidationFailure, match="approvalStatus is required"):
            parse_status(value)

    def test_unknown_status_lists_allowed_values(self):
        with pytest.raises(ValidationFailure) as exc_info:
            parse_status("APPROVED")

        assert exc_info.value.status_code == 400
        for status in ApprovalStatus:
            assert status.value in exc_info.value.message
