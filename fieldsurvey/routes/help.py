"""Help & support endpoints.

GET /help is public so the field app can show support contacts before
sign-in; PUT /help is admin-only and updates only the fields it receives.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fieldsurvey.middleware.auth import AuthenticatedActor, require_admin
from fieldsurvey.models.database import get_db
from fieldsurvey.models.help import HelpContent
from fieldsurvey.schemas.help import HelpUpdate
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/help")


@router.get("")
async def get_help(db: Session = Depends(get_db)) -> dict:
    """Return the help record, creating an empty one on first access."""
    record = HelpContent.get_singleton(db)
    db.commit()
    return {"help": record.to_dict()}


@router.put("")
async def update_help(
    payload: HelpUpdate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    """Update the supplied help fields.

    Nested objects (officeAddress, officeHours, socialLinks) are merged into
    the stored object; `faqs` replaces the whole list.
    """
    record = HelpContent.get_singleton(db)
    fields = payload.model_dump(exclude_unset=True)

    for key in ("support_email", "support_phone", "whatsapp_number"):
        if key in fields:
            setattr(record, key, fields[key])

    for key in ("office_address", "office_hours", "social_links"):
        if fields.get(key) is not None:
            nested = getattr(payload, key).model_dump(by_alias=True, exclude_unset=True)
            setattr(record, key, {**(getattr(record, key) or {}), **nested})

    if fields.get("faqs") is not None:
        record.faqs = [faq.model_dump() for faq in payload.faqs]

    record.updated_by_admin = admin.subject
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(record)

    logger.info(f"Help content updated by admin {admin.subject}: {sorted(fields)}")
    return {"message": "Help content updated successfully", "help": record.to_dict()}
