"""Survey response submission, approval and listing endpoints.

Submissions arrive as multipart forms: scalar fields, a JSON-encoded
`answers` (or `responses`) array and the audio recording. The recording is
stored first; if the submission is then rejected it is discarded again.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from fieldsurvey.middleware.auth import (
    AuthenticatedActor,
    get_optional_actor,
    require_quality_engineer,
)
from fieldsurvey.models.database import get_db
from fieldsurvey.schemas.response import (
    ApprovalUpdate,
    PublicResponseGroupOut,
    ResponseOut,
    UserResponseGroupOut,
)
from fieldsurvey.services.approval import ApprovalService
from fieldsurvey.services.errors import ValidationFailure
from fieldsurvey.services.media_storage import LocalMediaStorage, get_media_storage
from fieldsurvey.services.submission import SubmissionService
from fieldsurvey.services.survey_admin import SurveyAdminService
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/survey")


def parse_json_array(raw: Optional[str], field_name: str) -> Any:
    """Decode a JSON-encoded form field; blank values are treated as absent."""
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationFailure(f"{field_name} must be a valid JSON array.")
    if not isinstance(value, list):
        raise ValidationFailure(f"{field_name} must be a valid JSON array.")
    return value


async def _store_audio(storage: LocalMediaStorage, audio: Optional[UploadFile]) -> Optional[str]:
    if audio is None or not audio.filename:
        return None
    return await storage.save_audio(audio)


@router.post("/{survey_id_or_code}/respond", status_code=201)
async def submit_response(
    survey_id_or_code: str,
    user_code: Optional[str] = Form(None, alias="userCode"),
    answers: Optional[str] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    audio: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_media_storage),
) -> dict:
    """Submit one survey response with its audio recording.

    Returns:
        dict: `responseId` of the stored response

    Raises:
        ValidationFailure (400): Missing/malformed fields or a rejected answer
        NotFoundError (404): Unknown user or survey
    """
    raw_answers = parse_json_array(answers, "answers")
    audio_url = await _store_audio(storage, audio)

    try:
        response_id = SubmissionService(db).submit_response(
            survey_id_or_code,
            user_code,
            raw_answers,
            audio_url,
            latitude=latitude,
            longitude=longitude,
        )
    except Exception:
        storage.discard(audio_url)
        raise

    return {"message": "Survey response submitted successfully", "responseId": response_id}


@router.post("/{survey_id_or_code}/respond/bulk", status_code=201)
async def submit_bulk_responses(
    survey_id_or_code: str,
    user_code: Optional[str] = Form(None, alias="userCode"),
    responses: Optional[str] = Form(None),
    audio: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_media_storage),
) -> dict:
    """Submit several responses sharing one audio recording.

    All items are stored or none is; a rejected item is reported by index.

    Returns:
        dict: `createdResponses` as a list of `{index, responseId}`
    """
    items = parse_json_array(responses, "responses")
    audio_url = await _store_audio(storage, audio)

    try:
        created = SubmissionService(db).submit_bulk(
            survey_id_or_code,
            user_code,
            items,
            audio_url,
        )
    except Exception:
        storage.discard(audio_url)
        raise

    return {
        "message": "Bulk survey responses submitted successfully",
        "createdResponses": [item.model_dump(by_alias=True) for item in created],
    }


@router.patch("/responses/{response_id}/approval")
async def set_response_approval(
    response_id: str,
    payload: ApprovalUpdate,
    db: Session = Depends(get_db),
    reviewer: AuthenticatedActor = Depends(require_quality_engineer),
) -> dict:
    """Quality engineer sets or resets the approval status of a response."""
    response = ApprovalService(db).set_status(
        response_id,
        payload.approval_status,
        reviewer_id=reviewer.user_id,
        require_reviewer=True,
    )
    return {
        "message": "Response approvalStatus updated successfully",
        "response": ResponseOut.from_model(response).model_dump(mode="json", by_alias=True),
    }


@router.patch("/public/responses/{response_id}/approval")
async def public_set_response_approval(
    response_id: str,
    payload: ApprovalUpdate,
    db: Session = Depends(get_db),
    actor: Optional[AuthenticatedActor] = Depends(get_optional_actor),
) -> dict:
    """Unauthenticated variant used for on-site verification.

    Same semantics as the reviewer route; a caller whose token belongs to an
    active quality engineer is recorded as the reviewer, anyone else is
    treated as anonymous.
    """
    reviewer_id = actor.user_id if actor is not None else None
    response = ApprovalService(db).set_status(response_id, payload.approval_status, reviewer_id=reviewer_id)
    logger.info(
        f"Public approval update to {response.approval_status}"
        + ("" if reviewer_id is not None else " without reviewer identity"),
        extra={"response_id": response.id},
    )
    return {
        "message": f"Response status set to {response.approval_status}",
        "response": ResponseOut.from_model(response).model_dump(mode="json", by_alias=True),
    }


@router.get("/public/responses/all")
async def list_all_responses(db: Session = Depends(get_db)) -> dict:
    """Every response with its approval state, grouped by survey."""
    groups = SurveyAdminService(db).list_responses_by_survey()
    return {
        "surveys": [
            PublicResponseGroupOut.from_group(survey, responses).model_dump(mode="json", by_alias=True)
            for survey, responses in groups
        ]
    }


@router.get("/responses/user/{user_code}")
async def list_user_responses(user_code: str, db: Session = Depends(get_db)) -> dict:
    """A field user's submission history grouped by survey.

    Responses stay listed after the user record is deleted; the `user` block
    then carries only the code.
    """
    user, groups, approvers = SurveyAdminService(db).get_user_history(user_code)
    if user is None:
        user_info = {"userCode": user_code}
    else:
        user_info = {
            "userCode": user.user_code,
            "userName": user.full_name,
            "userMobile": user.mobile,
            "role": user.role,
        }
    return {
        "user": user_info,
        "surveys": [
            UserResponseGroupOut.from_group(survey, responses, approvers).model_dump(mode="json", by_alias=True)
            for survey, responses in groups
        ],
    }
