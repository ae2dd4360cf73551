"""Tests for hour logging, budget enforcement and additional-time requests."""

from conftest import auth


def log_hours(client, project_id, hours, uid="designer-1", date="2024-03-05T09:00:00Z"):
    return client.post(
        "/api/timesheets",
        json={"projectId": project_id, "date": date, "hours": hours, "description": "Detailing"},
        headers=auth(uid),
    )


class TestLogHours:
    def test_entry_beyond_allocation_is_blocked(self, client, store, make_project, make_timesheet):
        pid = make_project(maxAllocatedHours=10, additionalHours=0, hoursLogged=8)
        make_timesheet(pid, 5)
        make_timesheet(pid, 3)

        response = log_hours(client, pid, 5)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["exceedsAllocation"] is True
        assert body["exceededBy"] == 3
        assert body["allocatedHours"] == 10
        assert len(store.all("timesheets")) == 2

    def test_additional_hours_count_towards_budget(self, client, make_project, make_timesheet):
        pid = make_project(maxAllocatedHours=10, additionalHours=5)
        make_timesheet(pid, 8)

        response = log_hours(client, pid, 5)

        assert response.status_code == 201
        assert response.json()["success"] is True

    def test_hours_logged_is_reaggregated(self, client, store, make_project, make_timesheet):
        pid = make_project(maxAllocatedHours=100, hoursLogged=99)
        make_timesheet(pid, 2)
        make_timesheet(pid, 3)

        response = log_hours(client, pid, 1.5)

        assert response.status_code == 201
        assert store.get("projects", pid)["hoursLogged"] == 6.5
        assert any(a["type"] == "timesheet_logged" for a in store.all("activities"))

    def test_delete_recomputes_hours(self, client, store, make_project, make_timesheet):
        pid = make_project(maxAllocatedHours=100)
        keep = make_timesheet(pid, 2)
        drop = make_timesheet(pid, 4)

        response = client.delete(f"/api/timesheets?id={drop}", headers=auth("designer-1"))

        assert response.status_code == 200
        assert store.get("timesheets", drop) is None
        assert store.get("timesheets", keep) is not None
        assert store.get("projects", pid)["hoursLogged"] == 2

    def test_only_owner_deletes_entry(self, client, make_project, make_timesheet):
        pid = make_project()
        entry = make_timesheet(pid, 2, designer_uid="designer-1")

        assert client.delete(f"/api/timesheets?id={entry}", headers=auth("designer-2")).status_code == 403

    def test_unassigned_designer_is_rejected(self, client, make_project):
        pid = make_project(assignedDesigners=["designer-2"])
        assert log_hours(client, pid, 1).status_code == 403

    def test_zero_hours_is_invalid(self, client, make_project):
        pid = make_project()
        assert log_hours(client, pid, 0).status_code == 400

    def test_no_budget_means_no_limit(self, client, make_project):
        pid = make_project(maxAllocatedHours=0, additionalHours=0)
        assert log_hours(client, pid, 50).status_code == 201


class TestExecutiveDashboard:
    def test_reports_exceeded_projects(self, client, make_project, make_timesheet):
        over = make_project(projectName="Over", maxAllocatedHours=10)
        make_project(projectName="Fine", maxAllocatedHours=10)
        make_timesheet(over, 12)

        response = client.get("/api/timesheets?action=executive_dashboard", headers=auth("coo-1"))

        data = response.json()["data"]
        assert data["metrics"]["projectsAboveTimeline"] == 1
        assert data["metrics"]["totalExceededHours"] == 2
        assert [p["projectName"] for p in data["analytics"]["exceededProjects"]] == ["Over"]

    def test_designers_cannot_view(self, client):
        response = client.get("/api/timesheets?action=executive_dashboard", headers=auth("designer-1"))
        assert response.status_code == 403


def request_time(client, project_id, hours=3, pending=None):
    body = {"projectId": project_id, "requestedHours": hours, "reason": "Client added two levels"}
    if pending:
        body["pendingTimesheetData"] = pending
    response = client.post("/api/time-requests", json=body, headers=auth("designer-1"))
    assert response.status_code == 201, response.text
    return response.json()["id"]


def review(client, request_id, uid, action, data=None):
    return client.put(
        f"/api/time-requests?id={request_id}",
        json={"action": action, "data": data or {}},
        headers=auth(uid),
    )


class TestTimeRequests:
    def test_create_notifies_executives_and_lead(self, client, store, make_project):
        pid = make_project()

        request_time(client, pid)

        recipients = {n["recipientUid"] for n in store.all("notifications") if n["type"] == "time_request_created"}
        assert recipients == {"coo-1", "director-1", "lead-1"}

    def test_approval_adds_hours_exactly_once(self, client, store, make_project):
        pid = make_project(additionalHours=2)
        rid = request_time(client, pid, hours=3)

        first = review(client, rid, "coo-1", "approve", {"approvedHours": 4})
        assert first.status_code == 200
        assert store.get("projects", pid)["additionalHours"] == 6

        retried = review(client, rid, "director-1", "approve", {"approvedHours": 4})
        assert retried.status_code == 400
        assert store.get("projects", pid)["additionalHours"] == 6
        assert store.get("timeRequests", rid)["approvedHours"] == 4

    def test_approval_defaults_to_requested_hours(self, client, store, make_project):
        pid = make_project(additionalHours=0)
        rid = request_time(client, pid, hours=3)

        review(client, rid, "coo-1", "approve")

        assert store.get("projects", pid)["additionalHours"] == 3

    def test_approval_can_log_the_blocked_entry(self, client, store, make_project, make_timesheet):
        pid = make_project(maxAllocatedHours=10, additionalHours=0)
        make_timesheet(pid, 8)
        pending = {"date": "2024-03-05", "hours": 5, "description": "Detailing"}
        rid = request_time(client, pid, hours=3, pending=pending)

        response = review(client, rid, "coo-1", "approve", {"applyToTimesheet": True})

        assert response.status_code == 200
        project = store.get("projects", pid)
        assert project["additionalHours"] == 3
        assert project["hoursLogged"] == 13
        attached = [t for t in store.all("timesheets") if t.get("timeRequestId") == rid]
        assert len(attached) == 1 and attached[0]["hours"] == 5

    def test_reject_requires_comment(self, client, store, make_project):
        pid = make_project()
        rid = request_time(client, pid)

        assert review(client, rid, "coo-1", "reject").status_code == 400
        response = review(client, rid, "coo-1", "reject", {"comment": "Out of scope"})
        assert response.status_code == 200
        assert store.get("timeRequests", rid)["status"] == "rejected"
        assert store.get("projects", pid)["additionalHours"] == 0

    def test_designer_cannot_review(self, client, make_project):
        pid = make_project()
        rid = request_time(client, pid)
        assert review(client, rid, "designer-1", "approve").status_code == 403
        assert review(client, rid, "lead-1", "approve").status_code == 403

    def test_approved_request_cannot_be_deleted(self, client, make_project):
        pid = make_project()
        rid = request_time(client, pid)
        review(client, rid, "coo-1", "approve")

        response = client.delete(f"/api/time-requests?id={rid}", headers=auth("designer-1"))
        assert response.status_code == 400

    def test_listing_is_scoped_by_role(self, client, make_project):
        pid = make_project()
        request_time(client, pid)

        assert len(client.get("/api/time-requests", headers=auth("designer-1")).json()["data"]) == 1
        assert len(client.get("/api/time-requests", headers=auth("lead-1")).json()["data"]) == 1
        assert len(client.get("/api/time-requests", headers=auth("coo-1")).json()["data"]) == 1
        assert client.get("/api/time-requests", headers=auth("bdm-1")).status_code == 403
