"""User model for field users and quality engineers.

Passwords and login live with the authentication service; this table holds
the identity and profile fields that submissions, reviews and the admin user
screens need.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, String, select, text
from sqlalchemy.orm import Mapped, Session, mapped_column

from fieldsurvey.models.database import Base
from fieldsurvey.schemas.user import UserRole


class User(Base):
    """A field user (respondent-facing surveyor) or a quality engineer.

    Attributes:
        id: Primary key
        user_code: Human-readable unique code used by the field app
        mobile: Unique mobile number
        full_name: Display name
        role: SURVEY_USER or QUALITY_ENGINEER
        email: Optional contact email
        employee_code, department, city, state, pincode, date_of_joining:
            Optional HR profile fields kept for the admin screens
        is_active: Blocked users cannot submit responses or review them
        created_by_admin: Identity of the admin that created the account
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Human-readable user code"
    )
    mobile: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        comment="Mobile number"
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="SURVEY_USER or QUALITY_ENGINEER"
    )
    email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    employee_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    date_of_joining: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_admin: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
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
    def find_active_survey_user(cls, db: Session, user_code: str) -> Optional["User"]:
        """Find an active SURVEY_USER by code.

        Args:
            db: Database session
            user_code: Code supplied by the field app

        Returns:
            User if an active surveyor with that code exists, None otherwise
        """
        return db.execute(
            select(cls).where(
                cls.user_code == user_code,
                cls.role == UserRole.SURVEY_USER.value,
                cls.is_active.is_(True),
            )
        ).scalar_one_or_none()

    @classmethod
    def find_by_code(cls, db: Session, user_code: str) -> Optional["User"]:
        return db.execute(
            select(cls).where(cls.user_code == user_code)
        ).scalar_one_or_none()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, user_code={self.user_code}, role={self.role})>"
