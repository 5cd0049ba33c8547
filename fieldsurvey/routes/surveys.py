"""Survey administration and public survey endpoints.

Admin routes manage surveys and their questions; the public routes serve
the field app. Fixed paths are registered before `/{survey_id_or_code}`
so they are not captured by it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fieldsurvey.middleware.auth import AuthenticatedActor, require_admin
from fieldsurvey.models.database import get_db
from fieldsurvey.models.question import SurveyQuestion
from fieldsurvey.models.survey import Survey
from fieldsurvey.schemas.question import QuestionCreate, QuestionOut, QuestionUpdate
from fieldsurvey.schemas.response import ResponseOut
from fieldsurvey.schemas.survey import SurveyCreate, SurveyOut, SurveyUpdate
from fieldsurvey.services.survey_admin import SurveyAdminService

router = APIRouter(prefix="/survey")


def _survey(survey: Survey) -> dict:
    return SurveyOut.from_model(survey).model_dump(mode="json", by_alias=True)


def _question(question: SurveyQuestion) -> dict:
    return QuestionOut.from_model(question).model_dump(mode="json", by_alias=True, exclude_none=True)


def _questions(questions: List[SurveyQuestion]) -> List[dict]:
    return [_question(q) for q in questions]


@router.post("/create", status_code=201)
async def create_survey(
    payload: SurveyCreate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    survey = SurveyAdminService(db).create_survey(payload, created_by=admin.subject)
    return {"message": "Survey created successfully", "survey": _survey(survey)}


@router.get("/list")
async def list_surveys(
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    surveys = SurveyAdminService(db).list_surveys()
    return {"surveys": [_survey(s) for s in surveys]}


@router.get("/public/list")
async def list_public_surveys(
    user_code: Optional[str] = Query(None, alias="userCode"),
    db: Session = Depends(get_db),
) -> dict:
    """ACTIVE surveys, limited to those assigned to `userCode` when given."""
    surveys = SurveyAdminService(db).list_public_surveys(user_code)
    return {"surveys": [_survey(s) for s in surveys]}


@router.put("/questions/{question_id}")
async def update_question(
    question_id: str,
    payload: QuestionUpdate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    question = SurveyAdminService(db).update_question(question_id, payload)
    return {"message": "Question updated successfully", "question": _question(question)}


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    SurveyAdminService(db).delete_question(question_id)
    return {"message": "Question deleted successfully"}


@router.post("/{survey_id_or_code}/questions", status_code=201)
async def add_question(
    survey_id_or_code: str,
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    question = SurveyAdminService(db).add_question(survey_id_or_code, payload)
    return {"message": "Question added to survey successfully", "question": _question(question)}


@router.get("/{survey_id_or_code}/responses")
async def list_survey_responses(
    survey_id_or_code: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    responses = SurveyAdminService(db).list_responses(survey_id_or_code)
    return {
        "count": len(responses),
        "responses": [
            ResponseOut.from_model(r).model_dump(mode="json", by_alias=True)
            for r in responses
        ],
    }


@router.put("/{survey_id_or_code}")
async def update_survey(
    survey_id_or_code: str,
    payload: SurveyUpdate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    survey = SurveyAdminService(db).update_survey(survey_id_or_code, payload)
    return {"message": "Survey updated successfully", "survey": _survey(survey)}


@router.delete("/{survey_id_or_code}")
async def delete_survey(
    survey_id_or_code: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    SurveyAdminService(db).delete_survey(survey_id_or_code)
    return {"message": "Survey deleted successfully"}


@router.get("/{survey_id_or_code}")
async def get_survey(survey_id_or_code: str, db: Session = Depends(get_db)) -> dict:
    """Survey with its active questions in display order."""
    survey, questions = SurveyAdminService(db).get_survey_with_questions(survey_id_or_code)
    return {"survey": _survey(survey), "questions": _questions(questions)}
