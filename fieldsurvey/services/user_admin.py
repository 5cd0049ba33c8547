"""User administration service.

Admins create, edit, block and delete field users and quality engineers.
Mobile numbers and user codes are unique; a write that would duplicate one
is reported as a conflict rather than a database error.
"""

import secrets
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldsurvey.models.user import User
from fieldsurvey.schemas.user import UserCreate, UserRole, UserUpdate
from fieldsurvey.services.errors import ConflictError, NotFoundError, ValidationFailure
from fieldsurvey.logging_config import get_logger

logger = get_logger(__name__)

USER_CODE_PREFIX = "USR-"


def generate_user_code() -> str:
    """Return a code of the form USR-XXXXXXXX (8 uppercase hex digits)."""
    return USER_CODE_PREFIX + secrets.token_hex(4).upper()


class UserAdminService:
    """Service for user account management."""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, data: UserCreate, created_by: Optional[str] = None) -> User:
        """Create a user; a user code is generated unless one is given.

        Raises:
            ConflictError: If the mobile number or user code is already taken
        """
        if self._find_by_mobile(data.mobile) is not None:
            raise ConflictError("User with this mobile already exists.")
        user_code = (data.user_code or "").strip()
        if user_code:
            if User.find_by_code(self.db, user_code) is not None:
                raise ConflictError("User with this userCode already exists.")
        else:
            user_code = self._unique_user_code()

        fields = data.model_dump(exclude={"user_code", "role"}, exclude_none=True)
        user = User(
            user_code=user_code,
            role=data.role.value,
            is_active=True,
            created_by_admin=created_by,
            **fields,
        )
        self._commit(user)
        logger.info(f"Created {user.role} user {user.user_code}")
        return user

    def list_users(self, role: Optional[str] = None, is_active: Optional[bool] = None) -> List[User]:
        """Users newest first, optionally filtered by role and active flag."""
        query = select(User).order_by(User.created_at.desc(), User.id.desc())
        if role:
            try:
                query = query.where(User.role == UserRole(role).value)
            except ValueError:
                raise ValidationFailure("Invalid role")
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        return list(self.db.execute(query).scalars())

    def get_user(self, user_id: Any) -> User:
        key = str(user_id).strip()
        if not key.isdigit():
            raise ValidationFailure("Invalid userId.")
        user = self.db.get(User, int(key))
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def update_user(self, user_id: Any, data: UserUpdate) -> User:
        user = self.get_user(user_id)
        fields = data.model_dump(exclude_unset=True)

        for key in ("mobile", "full_name", "role", "is_active"):
            if key in fields and fields[key] is None:
                raise ValidationFailure(f"{key} cannot be null")
        if "mobile" in fields:
            fields["mobile"] = fields["mobile"].strip()
            other = self._find_by_mobile(fields["mobile"])
            if other is not None and other.id != user.id:
                raise ConflictError("User with this mobile already exists.")
        if "full_name" in fields:
            fields["full_name"] = fields["full_name"].strip()
            if not fields["full_name"]:
                raise ValidationFailure("fullName cannot be blank")
        if "role" in fields:
            fields["role"] = UserRole(fields["role"]).value

        for key, value in fields.items():
            setattr(user, key, value)
        self._commit(user)
        logger.info(f"Updated user fields {sorted(fields)}", extra={"user_code": user.user_code})
        return user

    def set_active(self, user_id: Any, is_active: bool) -> User:
        """Block or unblock a user. Blocked users can neither submit nor review."""
        user = self.get_user(user_id)
        user.is_active = is_active
        self._commit(user)
        logger.info(
            "Unblocked user" if is_active else "Blocked user",
            extra={"user_code": user.user_code},
        )
        return user

    def delete_user(self, user_id: Any) -> None:
        """Delete a user; their responses and approvals keep the user code only."""
        user = self.get_user(user_id)
        code = user.user_code
        try:
            self.db.delete(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Deleted user", extra={"user_code": code})

    def _find_by_mobile(self, mobile: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.mobile == mobile)
        ).scalar_one_or_none()

    def _unique_user_code(self) -> str:
        while True:
            code = generate_user_code()
            if User.find_by_code(self.db, code) is None:
                return code

    def _commit(self, instance: Any) -> None:
        try:
            self.db.add(instance)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User with this mobile or userCode already exists.")
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(instance)
