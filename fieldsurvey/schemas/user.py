"""Pydantic schemas for field users and quality engineers."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    SURVEY_USER = "SURVEY_USER"
    QUALITY_ENGINEER = "QUALITY_ENGINEER"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _UserProfile(_CamelModel):
    email: Optional[str] = None
    employee_code: Optional[str] = None
    department: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    date_of_joining: Optional[date] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip().lower() or None


class UserCreate(_UserProfile):
    """Payload for creating a user; a user code is generated unless given."""
    mobile: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    role: UserRole
    user_code: Optional[str] = None

    @field_validator("mobile", "full_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be blank")
        return v


class UserUpdate(_UserProfile):
    """Partial update of a user; only supplied fields change."""
    mobile: Optional[str] = Field(None, min_length=1)
    full_name: Optional[str] = Field(None, min_length=1)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserOut(_CamelModel):
    """API projection of a user."""
    id: int
    user_code: str
    mobile: str
    full_name: str
    role: UserRole
    email: Optional[str] = None
    employee_code: Optional[str] = None
    department: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    date_of_joining: Optional[date] = None
    is_active: bool
    created_by_admin: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: Any) -> "UserOut":
        return cls(
            id=user.id,
            user_code=user.user_code,
            mobile=user.mobile,
            full_name=user.full_name,
            role=user.role,
            email=user.email,
            employee_code=user.employee_code,
            department=user.department,
            city=user.city,
            state=user.state,
            pincode=user.pincode,
            date_of_joining=user.date_of_joining,
            is_active=user.is_active,
            created_by_admin=user.created_by_admin,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
