"""Readiness endpoint for load balancers and deployment checks.

A submission needs both the database and a writable media store, so both
are checked; the service is reported unavailable if either one fails.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fieldsurvey import __version__
from fieldsurvey.models.database import get_db
from fieldsurvey.services.media_storage import LocalMediaStorage, get_media_storage
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()

OK = "ok"
UNAVAILABLE = "unavailable"


def _database_status(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unavailable: {e}")
        return UNAVAILABLE
    return OK


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_media_storage),
):
    """Report whether submissions can currently be accepted.

    Returns 200 with `status: healthy` when every check passes, otherwise
    503 with `status: unavailable`. `checks` names the state of each one:

        {"status": "healthy", "version": "1.0.0",
         "checks": {"database": "ok", "mediaStore": "ok"}}
    """
    checks = {
        "database": _database_status(db),
        "mediaStore": OK if storage.is_writable() else UNAVAILABLE,
    }
    healthy = all(state == OK for state in checks.values())
    body = {
        "status": "healthy" if healthy else UNAVAILABLE,
        "version": __version__,
        "checks": checks,
    }
    if not healthy:
        failed = sorted(name for name, state in checks.items() if state != OK)
        logger.warning(f"Health check failed: {', '.join(failed)}")
        return JSONResponse(status_code=503, content=body)
    return body
