"""Admin user management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fieldsurvey.middleware.auth import AuthenticatedActor, require_admin
from fieldsurvey.models.database import get_db
from fieldsurvey.models.user import User
from fieldsurvey.schemas.user import UserCreate, UserOut, UserUpdate
from fieldsurvey.services.user_admin import UserAdminService

router = APIRouter(prefix="/user")


def _user(user: User) -> dict:
    return UserOut.from_model(user).model_dump(mode="json", by_alias=True)


@router.post("/create", status_code=201)
async def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    user = UserAdminService(db).create_user(payload, created_by=admin.subject)
    return {"message": "User created successfully", "user": _user(user)}


@router.get("/list")
async def list_users(
    role: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    users = UserAdminService(db).list_users(role=role, is_active=is_active)
    return {"users": [_user(u) for u in users]}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    return {"user": _user(UserAdminService(db).get_user(user_id))}


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    user = UserAdminService(db).update_user(user_id, payload)
    return {"message": "User updated successfully", "user": _user(user)}


@router.patch("/{user_id}/block")
async def block_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    user = UserAdminService(db).set_active(user_id, False)
    return {"message": "User blocked successfully", "user": _user(user)}


@router.patch("/{user_id}/unblock")
async def unblock_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    user = UserAdminService(db).set_active(user_id, True)
    return {"message": "User unblocked successfully", "user": _user(user)}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: AuthenticatedActor = Depends(require_admin),
) -> dict:
    UserAdminService(db).delete_user(user_id)
    return {"message": "User deleted successfully"}
