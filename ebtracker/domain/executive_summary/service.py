"""
Executive summary - Budget health of the projects worked on in a date range

A project is counted when it has timesheet hours inside the range. Its health
is judged on total usage: hoursLogged against maxAllocatedHours plus
additionalHours.
"""

import logging
from collections import defaultdict
from datetime import timedelta

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...shared.roles import DESIGN_MANAGEMENT_ROLES
from ...shared.validators import to_utc
from ..projects.repository import ProjectRepository
from ..timesheets.repository import TimesheetRepository
from ..timesheets.service import project_budget

logger = logging.getLogger(__name__)

ON_TRACK_MAX_PERCENT = 70
AT_RISK_MAX_PERCENT = 100


def budget_health(logged: float, budget: float) -> str:
    if budget <= 0:
        return "exceeded" if logged > 0 else "onTrack"
    used = logged / budget * 100
    if used <= ON_TRACK_MAX_PERCENT:
        return "onTrack"
    if used <= AT_RISK_MAX_PERCENT:
        return "atRisk"
    return "exceeded"


class ExecutiveSummaryService:
    def __init__(self, store):
        self.store = store

    def summary(self, user: CurrentUser, from_date: str, to_date: str) -> dict:
        ensure_role(user, DESIGN_MANAGEMENT_ROLES)
        start = to_utc(from_date)
        end = to_utc(to_date)
        if not start or not end:
            raise HTTPException(status_code=400, detail="Both fromDate and toDate are required.")
        # toDate is inclusive of the whole day
        end = end + timedelta(days=1)

        hours_in_range = defaultdict(float)
        for entry in TimesheetRepository.list_in_range(self.store, start, end):
            hours_in_range[entry.get("projectId")] += float(entry.get("hours") or 0)

        counts = {"onTrack": 0, "atRisk": 0, "exceeded": 0}
        totals = {"totalProjects": 0, "totalHoursAllocated": 0.0, "totalHoursLogged": 0.0}
        active_ids = [pid for pid, hours in hours_in_range.items() if pid and hours > 0]
        for project in ProjectRepository.get_many(self.store, active_ids):
            budget = project_budget(project)
            logged = float(project.get("hoursLogged") or 0)
            totals["totalProjects"] += 1
            totals["totalHoursAllocated"] += budget
            totals["totalHoursLogged"] += logged
            counts[budget_health(logged, budget)] += 1

        logger.info(f"📊 Executive summary {from_date}..{to_date}: {totals['totalProjects']} project(s)")
        return {
            **totals,
            "onTrackProjects": counts["onTrack"],
            "atRiskProjects": counts["atRisk"],
            "exceededProjects": counts["exceeded"],
        }
