"""Timesheet repository - Document store operations for timesheet entries"""

from datetime import datetime
from typing import Optional

TIMESHEETS = "timesheets"


class TimesheetRepository:
    """Repository for timesheet document operations"""

    @staticmethod
    def get(store, timesheet_id: str) -> Optional[dict]:
        return store.get(TIMESHEETS, timesheet_id)

    @staticmethod
    def list_for_project(store, project_id: str) -> list[dict]:
        return store.query(TIMESHEETS, [("projectId", "==", project_id)], order_by="date", descending=True)

    @staticmethod
    def list_for_designer(
        store, uid: str, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[dict]:
        filters = [("designerUid", "==", uid)]
        if start:
            filters.append(("date", ">=", start))
        if end:
            filters.append(("date", "<=", end))
        return store.query(TIMESHEETS, filters, order_by="date", descending=True)

    @staticmethod
    def list_in_range(store, start: datetime, end: datetime) -> list[dict]:
        return store.query(TIMESHEETS, [("date", ">=", start), ("date", "<=", end)])

    @staticmethod
    def list_all(store) -> list[dict]:
        return store.query(TIMESHEETS)

    @staticmethod
    def aggregate_hours(txn, project_id: str, exclude_id: Optional[str] = None) -> float:
        """Sum of logged hours for a project, read inside the caller's transaction"""
        entries = txn.query(TIMESHEETS, [("projectId", "==", project_id)])
        return sum(float(e.get("hours") or 0) for e in entries if e["id"] != exclude_id)
