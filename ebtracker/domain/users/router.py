"""User router - FastAPI endpoints for the team directory"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...auth import CurrentUser, get_current_user
from ...database import get_store
from .schemas import UserCreate, UserUpdate
from .service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

__all__ = ["router"]


def get_user_service(store=Depends(get_store)) -> UserService:
    return UserService(store)


@router.get("")
async def get_users(
    id: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    includeInactive: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    if id:
        return {"success": True, "data": service.get_user(id)}
    users = service.list_users(current_user, role, includeInactive)
    return {"success": True, "data": users, "count": len(users)}


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.create_user(data, current_user)
    return {"success": True, "data": user, "message": "User created successfully"}


@router.put("")
async def update_user(
    data: UserUpdate,
    uid: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    if not uid:
        raise HTTPException(status_code=400, detail="User UID is required")
    user = service.update_user(uid, data, current_user)
    return {"success": True, "data": user, "message": "User updated successfully"}
