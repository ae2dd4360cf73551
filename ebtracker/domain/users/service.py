"""User service - Team directory and account administration"""

import logging
from typing import Optional

from fastapi import HTTPException
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from ...auth import CurrentUser, ensure_role
from ...firebase import init_firebase
from ...services.activity_service import log_activity
from ...shared.roles import ALL_ROLES, COO, DESIGN_LEAD, DESIGNER, DIRECTOR
from ...shared.validators import utcnow
from .repository import UserRepository
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

DIRECTORY_ROLES = (COO, DIRECTOR, DESIGN_LEAD)


def safe_user(user: dict) -> dict:
    """The fields other users may see"""
    data = {
        "uid": user.get("id") or user.get("uid"),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
        "status": user.get("status") or "active",
        "department": user.get("department") or "",
        "joinDate": user.get("joinDate"),
    }
    if user.get("role") == DESIGN_LEAD:
        data["activeProjects"] = user.get("activeProjects") or 0
    elif user.get("role") == DESIGNER:
        data["assignedProjects"] = user.get("assignedProjects") or 0
    return data


class UserService:
    def __init__(self, store):
        self.store = store
        self.repo = UserRepository()

    def get_user(self, uid: str) -> dict:
        user = self.repo.get(self.store, uid)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return safe_user(user)

    def list_users(self, user: CurrentUser, role: Optional[str] = None, include_inactive: bool = False) -> list[dict]:
        if user.role not in DIRECTORY_ROLES:
            raise HTTPException(status_code=403, detail="You do not have permission to view users")
        if role and role not in ALL_ROLES:
            raise HTTPException(status_code=400, detail="Invalid role specified")

        users = [safe_user(u) for u in self.repo.list_users(self.store, role, include_inactive)]
        return sorted(users, key=lambda u: (u.get("name") or "").lower())

    def create_user(self, data: UserCreate, user: CurrentUser) -> dict:
        ensure_role(user, (DIRECTOR,))
        init_firebase()
        try:
            record = firebase_auth.create_user(
                email=data.email, password=data.password, display_name=data.name, email_verified=False
            )
        except (ValueError, firebase_exceptions.FirebaseError) as e:
            logger.error(f"❌ Firebase user creation failed for {data.email}: {e}")
            raise HTTPException(status_code=400, detail=str(e)) from e

        now = utcnow()
        user_data = {
            "name": data.name,
            "email": data.email,
            "role": data.role,
            "department": data.department,
            "status": "active",
            "createdAt": now,
            "updatedAt": now,
            "createdBy": user.name,
            "createdByUid": user.uid,
            "joinDate": now.isoformat(),
            "activeProjects": 0,
            "assignedProjects": 0,
        }
        self.repo.create(self.store, record.uid, user_data)
        logger.info(f"✅ Created {data.role} user {record.uid}")

        log_activity(self.store, "user_created", f"New {data.role} user created: {data.name} ({data.email})", user)
        return {"uid": record.uid, **user_data}

    def update_user(self, uid: str, data: UserUpdate, user: CurrentUser) -> dict:
        ensure_role(user, (DIRECTOR,))
        target = self.repo.get(self.store, uid)
        if not target:
            raise HTTPException(status_code=404, detail="User not found")

        updates = data.model_dump(exclude_none=True)
        if not updates:
            raise HTTPException(status_code=400, detail="Nothing to update")

        if "status" in updates and updates["status"] != target.get("status"):
            init_firebase()
            try:
                firebase_auth.update_user(uid, disabled=updates["status"] != "active")
            except (ValueError, firebase_exceptions.FirebaseError) as e:
                logger.error(f"❌ Could not toggle auth account for {uid}: {e}")
                raise HTTPException(status_code=500, detail="Failed to update authentication account") from e

        self.repo.update(self.store, uid, {**updates, "updatedAt": utcnow()})
        logger.info(f"✅ Updated user {uid}: {updates}")

        changes = ", ".join(f"{k} to {v}" for k, v in updates.items())
        log_activity(
            self.store, "user_updated", f"User {target.get('name')} updated: {changes}", user, targetUid=uid
        )
        return safe_user({**target, **updates})
