"""
Timesheet service - Hour logging against project budgets

A project's hoursLogged is always the sum of its timesheet hours. Every add
and delete re-aggregates inside the same transaction as the write.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...services.activity_service import log_activity
from ...shared.roles import DESIGNER, EXECUTIVE_ROLES
from ...shared.validators import to_utc, utcnow
from ..projects.repository import PROJECTS, ProjectRepository
from ..users.repository import UserRepository
from .repository import TIMESHEETS, TimesheetRepository
from .schemas import TimesheetCreate

logger = logging.getLogger(__name__)


def project_budget(project: dict) -> float:
    return float(project.get("maxAllocatedHours") or 0) + float(project.get("additionalHours") or 0)


class TimesheetService:
    """Service layer for timesheet business logic"""

    def __init__(self, store):
        self.store = store
        self.repo = TimesheetRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_for_project(self, project_id: str) -> list[dict]:
        return self.repo.list_for_project(self.store, project_id)

    def list_own(self, user: CurrentUser, start_date: Optional[str] = None, end_date: Optional[str] = None) -> list[dict]:
        return self.repo.list_for_designer(self.store, user.uid, to_utc(start_date), to_utc(end_date))

    def executive_dashboard(self, user: CurrentUser) -> dict:
        """Budget usage across every project plus per-designer totals"""
        ensure_role(user, EXECUTIVE_ROLES)

        projects = {p["id"]: {**p, "hoursLogged": 0.0} for p in ProjectRepository.list_all(self.store)}
        designers = {
            d["id"]: {"name": d.get("name"), "email": d.get("email"), "totalHours": 0.0, "projects": set()}
            for d in UserRepository.list_users(self.store, role=DESIGNER, include_inactive=True)
        }

        for entry in self.repo.list_all(self.store):
            hours = float(entry.get("hours") or 0)
            if entry.get("projectId") in projects:
                projects[entry["projectId"]]["hoursLogged"] += hours
            if entry.get("designerUid") in designers:
                designers[entry["designerUid"]]["totalHours"] += hours
                designers[entry["designerUid"]]["projects"].add(entry.get("projectId"))

        metrics = {
            "totalProjects": len(projects),
            "activeProjects": 0,
            "projectsWithTimeline": 0,
            "projectsAboveTimeline": 0,
            "totalExceededHours": 0.0,
            "totalAllocatedHours": 0.0,
            "totalLoggedHours": 0.0,
        }
        exceeded, status_distribution = [], {}

        for p in projects.values():
            status_key = p.get("status") or "unknown"
            status_distribution[status_key] = status_distribution.get(status_key, 0) + 1
            if p.get("status") == "in_progress":
                metrics["activeProjects"] += 1

            allocated = project_budget(p)
            p["allocatedHours"] = allocated
            metrics["totalLoggedHours"] += p["hoursLogged"]
            if allocated <= 0:
                p.update(isExceeded=False, exceededBy=0, percentageUsed=0)
                continue

            metrics["projectsWithTimeline"] += 1
            metrics["totalAllocatedHours"] += allocated
            p["percentageUsed"] = round(p["hoursLogged"] / allocated * 100, 1)
            over = p["hoursLogged"] - allocated
            p["isExceeded"] = over > 0
            p["exceededBy"] = max(over, 0)
            if over > 0:
                metrics["projectsAboveTimeline"] += 1
                metrics["totalExceededHours"] += over
                exceeded.append(p)

        metrics["averageHoursPerProject"] = metrics["totalLoggedHours"] / len(projects) if projects else 0

        designer_rows = sorted(
            (
                {
                    "uid": uid,
                    "name": d["name"],
                    "email": d["email"],
                    "totalHours": d["totalHours"],
                    "projectsWorkedOn": len(d["projects"]),
                }
                for uid, d in designers.items()
            ),
            key=lambda d: d["totalHours"],
            reverse=True,
        )
        return {
            "metrics": metrics,
            "projects": list(projects.values()),
            "designers": designer_rows,
            "analytics": {
                "exceededProjects": exceeded,
                "projectStatusDistribution": status_distribution,
            },
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_timesheet(self, data: TimesheetCreate, user: CurrentUser) -> dict:
        """
        Log hours against a project.

        Returns {"success": True, "data": entry} or, when the entry would push the
        project past its budget, the over-allocation result with success False.
        """

        def _add(txn) -> dict:
            project = txn.get(PROJECTS, data.projectId)
            if not project:
                raise HTTPException(status_code=404, detail="Project not found.")
            if user.role == DESIGNER and user.uid not in (project.get("assignedDesigners") or []):
                raise HTTPException(status_code=403, detail="You are not assigned to this project.")

            total = self.repo.aggregate_hours(txn, data.projectId)
            allocated = project_budget(project)
            if allocated > 0 and total + data.hours > allocated:
                exceeded_by = total + data.hours - allocated
                return {
                    "success": False,
                    "exceedsAllocation": True,
                    "totalHours": total,
                    "allocatedHours": allocated,
                    "exceededBy": exceeded_by,
                    "message": (
                        f"Logging {data.hours:g} hours would exceed the project allocation of "
                        f"{allocated:g} hours by {exceeded_by:g}. Please request additional time."
                    ),
                }

            entry = {
                "projectId": data.projectId,
                "projectName": project.get("projectName"),
                "projectCode": project.get("projectCode"),
                "date": data.date,
                "hours": data.hours,
                "description": data.description,
                "designerUid": user.uid,
                "designerName": user.name,
                "designerEmail": user.email,
                "status": "approved",
                "createdAt": utcnow(),
            }
            entry_id = txn.create(TIMESHEETS, entry)
            ProjectRepository.update_in_transaction(
                txn, project, {"hoursLogged": total + data.hours, "updatedAt": utcnow()}
            )
            return {"success": True, "data": {"id": entry_id, **entry}}

        result = self.store.run_transaction(_add)

        if result["success"]:
            entry = result["data"]
            logger.info(f"✅ {user.uid} logged {data.hours:g}h on project {data.projectId}")
            log_activity(
                self.store,
                "timesheet_logged",
                f"{user.name} logged {data.hours:g} hours on {entry.get('projectName')}",
                user,
                projectId=data.projectId,
                timesheetId=entry["id"],
            )
        else:
            logger.warning(f"⚠️ {user.uid} blocked on project {data.projectId}: exceeds by {result['exceededBy']:g}h")
        return result

    def delete_timesheet(self, timesheet_id: str, user: CurrentUser) -> None:
        def _delete(txn) -> dict:
            entry = txn.get(TIMESHEETS, timesheet_id)
            if not entry:
                raise HTTPException(status_code=404, detail="Timesheet entry not found.")
            if entry.get("designerUid") != user.uid:
                raise HTTPException(status_code=403, detail="You are not authorized to delete this entry.")

            project = txn.get(PROJECTS, entry.get("projectId")) if entry.get("projectId") else None
            total = self.repo.aggregate_hours(txn, project["id"], exclude_id=timesheet_id) if project else 0

            txn.delete(TIMESHEETS, timesheet_id)
            if project:
                ProjectRepository.update_in_transaction(txn, project, {"hoursLogged": total, "updatedAt": utcnow()})
            return entry

        entry = self.store.run_transaction(_delete)
        log_activity(
            self.store,
            "timesheet_deleted",
            f"{user.name} deleted a {entry.get('hours', 0):g} hour entry on {entry.get('projectName')}",
            user,
            projectId=entry.get("projectId"),
            timesheetId=timesheet_id,
        )
