"""
Project state rules
A project carries two status fields, the delivery `status` and the
`designStatus`. Only the combinations below may be stored.
"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class ProjectStatus(str, Enum):
    PENDING_ALLOCATION = "pending_allocation"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class DesignStatus(str, Enum):
    NOT_STARTED = "not_started"
    ALLOCATED = "allocated"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


LEGAL_STATES: dict[str, frozenset[str]] = {
    ProjectStatus.PENDING_ALLOCATION.value: frozenset({DesignStatus.NOT_STARTED.value}),
    ProjectStatus.ASSIGNED.value: frozenset(
        {
            DesignStatus.ALLOCATED.value,
            DesignStatus.IN_PROGRESS.value,
            DesignStatus.SUBMITTED.value,
            DesignStatus.REVISION_REQUIRED.value,
        }
    ),
    ProjectStatus.IN_PROGRESS.value: frozenset(
        {
            DesignStatus.IN_PROGRESS.value,
            DesignStatus.SUBMITTED.value,
            DesignStatus.REVISION_REQUIRED.value,
            DesignStatus.APPROVED.value,
        }
    ),
    ProjectStatus.ON_HOLD.value: frozenset(
        {
            DesignStatus.REJECTED.value,
            DesignStatus.REVISION_REQUIRED.value,
            DesignStatus.IN_PROGRESS.value,
        }
    ),
    ProjectStatus.COMPLETED.value: frozenset({DesignStatus.APPROVED.value, DesignStatus.COMPLETED.value}),
}


def is_legal_state(status: Optional[str], design_status: Optional[str]) -> bool:
    return design_status in LEGAL_STATES.get(status, frozenset())


def touches_state(updates: dict) -> bool:
    return "status" in updates or "designStatus" in updates


def ensure_legal_project_state(project: dict, updates: dict) -> None:
    """
    Raise 409 if applying `updates` to `project` would leave an illegal
    (status, designStatus) pair. Writes that touch neither field pass through.
    """
    if not touches_state(updates):
        return
    status = updates.get("status", project.get("status"))
    design_status = updates.get("designStatus", project.get("designStatus"))
    if not is_legal_state(status, design_status):
        logger.warning(f"⚠️ Rejected project {project.get('id')} transition to ({status}, {design_status})")
        raise HTTPException(
            status_code=409,
            detail=f"Illegal project state: status '{status}' cannot have design status '{design_status}'",
        )
