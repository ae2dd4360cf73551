import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from pydantic import BaseModel

from .database import get_store
from .firebase import init_firebase
from .shared.roles import BDM, BLOCKED_STATUSES, DESIGN_LEAD, DESIGNER, ESTIMATOR

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 rather than 403
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """The authenticated caller, resolved from the token and users/{uid}"""

    uid: str
    email: Optional[str] = None
    name: str = ""
    role: str
    status: str = "active"
    department: Optional[str] = None


def verify_id_token(token: str) -> dict:
    """Verify a Firebase ID token. Raises 401 on any verification failure."""
    init_firebase()
    try:
        return firebase_auth.verify_id_token(token)
    except (firebase_auth.ExpiredIdTokenError, firebase_auth.RevokedIdTokenError) as e:
        logger.info(f"ℹ️ Rejected stale token: {e}")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except Exception as e:
        logger.warning(f"⚠️ Token verification failed: {type(e).__name__}: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store=Depends(get_store),
) -> CurrentUser:
    """Resolve the Bearer token to the caller's user record"""
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="No authorization token provided")

    decoded_token = verify_id_token(credentials.credentials)
    uid = decoded_token.get("uid") or decoded_token.get("sub")
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user_doc = store.get("users", uid)
    if not user_doc:
        logger.warning(f"⚠️ Authenticated uid {uid} has no user document")
        raise HTTPException(status_code=404, detail="User data not found.")

    status = user_doc.get("status", "active")
    if status in BLOCKED_STATUSES:
        logger.warning(f"⚠️ Blocked {status} account attempted access: {uid}")
        raise HTTPException(status_code=403, detail=f"Account is {status}")

    return CurrentUser(
        uid=uid,
        email=user_doc.get("email") or decoded_token.get("email"),
        name=user_doc.get("name") or decoded_token.get("name") or "",
        role=user_doc.get("role", ""),
        status=status,
        department=user_doc.get("department"),
    )


# ============================================================================
# ROLE AND OWNERSHIP CHECKS
# ============================================================================


def ensure_role(user: CurrentUser, roles) -> None:
    """Raise 403 naming the required roles unless the caller holds one of them"""
    if roles is None or user.role in roles:
        return
    raise HTTPException(
        status_code=403,
        detail=f"Access denied. Your role is '{user.role}'. Required: {', '.join(roles)}",
    )


def require_roles(*roles: str):
    """Dependency factory: the caller must hold one of `roles`"""

    async def _dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        ensure_role(user, roles)
        return user

    return _dependency


def can_access_project(user: CurrentUser, project: dict) -> bool:
    if user.role == DESIGNER:
        return user.uid in (project.get("assignedDesigners") or [])
    if user.role == DESIGN_LEAD:
        return project.get("designLeadUid") == user.uid
    if user.role == BDM:
        return project.get("bdmUid") == user.uid
    if user.role == ESTIMATOR:
        return False
    # coo, director, accounts
    return True


def check_project_access(user: CurrentUser, project: dict) -> None:
    if not can_access_project(user, project):
        raise HTTPException(status_code=403, detail="Access denied. You are not assigned to this project.")


def check_proposal_access(user: CurrentUser, proposal: dict) -> None:
    if user.role == BDM and proposal.get("createdByUid") != user.uid:
        raise HTTPException(status_code=403, detail="Access denied. You can only access your own proposals.")
