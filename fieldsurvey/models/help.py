"""HelpContent model holding the single help & support record."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, String, select, text
from sqlalchemy.orm import Mapped, Session, mapped_column

from fieldsurvey.models.database import Base


class HelpContent(Base):
    """Support contact details and FAQs shown in the field app.

    Only one row is ever used; `get_singleton` creates it on first access.
    """

    __tablename__ = "help_content"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    support_email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    support_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    whatsapp_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    office_address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    office_hours: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    social_links: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    faqs: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_by_admin: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def get_singleton(cls, db: Session) -> "HelpContent":
        """Return the help record, creating an empty one if none exists.

        Note:
            A newly created record is flushed but not committed; callers
            commit as part of their own unit of work.
        """
        existing = db.execute(
            select(cls).order_by(cls.id).limit(1)
        ).scalar_one_or_none()
        if existing is not None:
            return existing

        record = cls(office_address={}, office_hours={}, social_links={}, faqs=[])
        db.add(record)
        db.flush()
        return record

    def to_dict(self) -> dict:
        return {
            "supportEmail": self.support_email,
            "supportPhone": self.support_phone,
            "whatsappNumber": self.whatsapp_number,
            "officeAddress": self.office_address or {},
            "officeHours": self.office_hours or {},
            "socialLinks": self.social_links or {},
            "faqs": self.faqs or [],
            "updatedByAdmin": self.updated_by_admin,
            "updatedAt": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<HelpContent(id={self.id}, support_email={self.support_email})>"
