"""Dashboard service - Headline counts for the landing page and per-role views"""

import logging
from typing import Optional

from ...auth import CurrentUser
from ...shared.roles import ACCOUNTS, BDM, COO, DESIGN_LEAD, DESIGNER, DIRECTOR, ESTIMATOR
from ...shared.validators import utcnow
from ..activities.repository import ActivityRepository
from ..payments.repository import PAYMENTS
from ..projects.repository import PROJECTS
from ..projects.states import ProjectStatus
from ..proposals.repository import PROPOSALS
from ..submissions.repository import SUBMISSIONS
from ..tasks.repository import TASKS
from ..tasks.schemas import TaskStatus

logger = logging.getLogger(__name__)

STATS_COLLECTIONS = (PROPOSALS, PROJECTS, TASKS, SUBMISSIONS, PAYMENTS)


def _as_number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class DashboardService:
    def __init__(self, store):
        self.store = store

    def stats(self) -> dict:
        return {collection: self.store.count(collection) for collection in STATS_COLLECTIONS}

    def overview(self) -> dict:
        proposals = self.store.query(PROPOSALS)
        recent = [
            {
                "id": a["id"],
                "description": a.get("details") or "Activity",
                "user": a.get("performedByName") or "System",
                "timestamp": a.get("timestamp"),
                "type": a.get("type") or "general",
            }
            for a in ActivityRepository.recent(self.store, 10)
        ]
        data = {
            "totalProposals": len(proposals),
            "activeProjects": self.store.count(PROJECTS, [("status", "==", ProjectStatus.IN_PROGRESS.value)]),
            "pendingTasks": self.store.count(TASKS, [("status", "==", TaskStatus.NOT_STARTED.value)]),
            "totalValue": sum(_as_number(p.get("estimatedValue")) for p in proposals),
            "recentActivities": recent,
            "lastUpdated": utcnow(),
        }
        logger.info(
            f"✅ Dashboard data prepared: {data['totalProposals']} proposals, "
            f"{data['activeProjects']} active projects, {len(recent)} activities"
        )
        return data

    def role_dashboard(self, role: str, user: CurrentUser) -> dict:
        logger.info(f"📊 Loading dashboard for role: {role}")
        if role == ESTIMATOR:
            return {
                "pendingProposals": self.store.count(PROPOSALS, [("status", "==", "pending_estimation")]),
                "message": "Estimator dashboard",
            }
        if role in (COO, DIRECTOR):
            return {
                "totalProposals": self.store.count(PROPOSALS),
                "totalProjects": self.store.count(PROJECTS),
                "message": "Executive dashboard",
            }
        if role in (DESIGNER, DESIGN_LEAD):
            field = "designerUid" if role == DESIGNER else "assignedByUid"
            return {
                "designTasks": self.store.count(TASKS, [(field, "==", user.uid)]),
                "message": "Design dashboard",
            }
        if role == ACCOUNTS:
            return {"totalPayments": self.store.count(PAYMENTS), "message": "Accounts dashboard"}
        if role == BDM:
            return {
                "myProposals": self.store.count(PROPOSALS, [("createdByUid", "==", user.uid)]),
                "message": "BDM dashboard",
            }
        return {"message": "Generic dashboard"}

    def get_dashboard(self, user: CurrentUser, role: Optional[str] = None, stats: bool = False) -> dict:
        if stats:
            return self.stats()
        if role:
            return self.role_dashboard(role, user)
        return self.overview()
