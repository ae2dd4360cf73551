"""Tests for design tasks and client submissions."""

from conftest import auth


def create_task(client, project_id, uid="lead-1", **fields):
    body = {
        "projectId": project_id,
        "taskDescription": "Ground floor GA plan",
        "designerUid": "designer-1",
        "designerName": "Dana Ng",
        "drawingType": "GA Plan",
        **fields,
    }
    return client.post("/api/tasks", json=body, headers=auth(uid))


def task_action(client, task_id, action, data=None, uid="designer-1"):
    return client.put(f"/api/tasks?id={task_id}", json={"action": action, "data": data or {}}, headers=auth(uid))


class TestTasks:
    def test_create_assigns_and_notifies_designer(self, client, store, make_project):
        pid = make_project()

        response = create_task(client, pid)

        assert response.status_code == 201, response.text
        task = response.json()["data"]
        assert task["status"] == "not_started"
        assert task["assignedByUid"] == "lead-1"
        assert task["projectCode"] == "PN-100"
        note = store.all("notifications")[0]
        assert note["recipientUid"] == "designer-1"
        assert note["type"] == "task_assigned"

    def test_designer_needs_a_target(self, client, make_project):
        response = create_task(client, make_project(), designerUid=None, designerName=None)
        assert response.status_code == 400

    def test_designer_cannot_create(self, client, make_project):
        assert create_task(client, make_project(), uid="designer-1").status_code == 403

    def test_submit_then_approve(self, client, store, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]

        submitted = task_action(client, task_id, "update_status", {"status": "submitted", "fileUrl": "https://x/plan.pdf"})
        assert submitted.status_code == 200
        assert submitted.json()["data"]["status"] == "submitted"
        assert submitted.json()["data"]["submittedDate"] is not None
        assert any(n["recipientUid"] == "lead-1" for n in store.all("notifications"))

        approved = task_action(client, task_id, "approve", uid="lead-1")
        assert approved.json()["data"]["status"] == "approved"
        assert approved.json()["data"]["approvedBy"] == "Lee Park"
        assert [a["type"] for a in store.all("activities")][-2:] == ["task_update_status", "task_approve"]

    def test_designer_cannot_approve_own_task(self, client, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]
        assert task_action(client, task_id, "approve").status_code == 403

    def test_designer_may_only_use_working_statuses(self, client, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]
        assert task_action(client, task_id, "update_status", {"status": "approved"}).status_code == 400

    def test_other_designer_cannot_update(self, client, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]
        response = task_action(client, task_id, "update_status", {"status": "in_progress"}, uid="designer-2")
        assert response.status_code == 403

    def test_request_revision_counts_and_comments(self, client, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]

        response = task_action(client, task_id, "request_revision", {"comment": "Dimensions missing"}, uid="coo-1")

        task = response.json()["data"]
        assert task["status"] == "revision_required"
        assert task["revisionCount"] == 1
        assert task["comments"][0]["text"] == "Dimensions missing"

    def test_unknown_action(self, client, make_project):
        task_id = create_task(client, make_project()).json()["data"]["id"]
        assert task_action(client, task_id, "archive").status_code == 400

    def test_designers_see_only_their_tasks(self, client, make_project):
        pid = make_project(assignedDesigners=["designer-1", "designer-2"])
        create_task(client, pid)
        create_task(client, pid, designerUid="designer-2", designerName="Drew Li")

        mine = client.get("/api/tasks", headers=auth("designer-1")).json()["data"]
        everyone = client.get(f"/api/tasks?projectId={pid}", headers=auth("lead-1")).json()["data"]

        assert [t["designerUid"] for t in mine] == ["designer-1"]
        assert len(everyone) == 2


def create_submission(client, project_id, uid="lead-1"):
    return client.post(
        "/api/submissions",
        json={"projectId": project_id, "description": "Stage 2 drawing set", "drawingNumbers": ["A-101", "A-102"]},
        headers=auth(uid),
    )


def feedback(client, submission_id, verdict, uid="bdm-1", notes=""):
    return client.put(
        f"/api/submissions?id={submission_id}",
        json={"action": "client_feedback", "data": {"feedback": verdict, "notes": notes}},
        headers=auth(uid),
    )


class TestSubmissions:
    def test_create_moves_project_to_submitted(self, client, store, make_project):
        pid = make_project()

        response = create_submission(client, pid)

        assert response.status_code == 201, response.text
        submission = response.json()["data"]
        assert submission["clientFeedback"] == "pending"
        assert submission["submittedTo"] == "Acme Developments"
        project = store.get("projects", pid)
        assert project["designStatus"] == "submitted"
        assert project["lastSubmissionDate"] is not None
        assert any(n.get("recipientUid") == "bdm-1" for n in store.all("notifications"))

    def test_only_the_allocated_lead_submits(self, client, store, make_project):
        pid = make_project(designLeadUid="lead-2")

        assert create_submission(client, pid).status_code == 403
        assert store.all("submissions") == []
        assert store.get("projects", pid)["designStatus"] == "in_progress"

    def test_designer_cannot_submit(self, client, make_project):
        assert create_submission(client, make_project(), uid="designer-1").status_code == 403

    def test_approval_completes_project(self, client, store, make_project):
        pid = make_project()
        submission_id = create_submission(client, pid).json()["data"]["id"]

        response = feedback(client, submission_id, "approved")

        assert response.status_code == 200
        assert response.json()["data"]["clientFeedback"] == "approved"
        project = store.get("projects", pid)
        assert (project["status"], project["designStatus"]) == ("completed", "approved")
        milestone = [n for n in store.all("notifications") if n["type"] == "milestone_check"]
        assert milestone[0]["recipientRole"] == "accounts"

    def test_revision_counts(self, client, store, make_project):
        pid = make_project()
        submission_id = create_submission(client, pid).json()["data"]["id"]

        feedback(client, submission_id, "revision_required", notes="Move core")

        assert store.get("submissions", submission_id)["revisionCount"] == 1
        assert store.get("projects", pid)["designStatus"] == "revision_required"

    def test_rejection_puts_project_on_hold(self, client, store, make_project):
        pid = make_project()
        submission_id = create_submission(client, pid).json()["data"]["id"]

        feedback(client, submission_id, "rejected")

        project = store.get("projects", pid)
        assert (project["status"], project["designStatus"]) == ("on_hold", "rejected")

    def test_revised_submission_from_on_hold_is_illegal(self, client, store, make_project):
        pid = make_project()
        submission_id = create_submission(client, pid).json()["data"]["id"]
        feedback(client, submission_id, "rejected")

        response = client.put(
            f"/api/submissions?id={submission_id}",
            json={"action": "revised_submission", "data": {"notes": "Second attempt"}},
            headers=auth("lead-1"),
        )

        assert response.status_code == 409
        assert store.get("submissions", submission_id)["clientFeedback"] == "rejected"
        assert store.get("projects", pid)["designStatus"] == "rejected"

    def test_revised_submission_resets_feedback(self, client, store, make_project):
        pid = make_project()
        submission_id = create_submission(client, pid).json()["data"]["id"]
        feedback(client, submission_id, "revision_required")

        response = client.put(
            f"/api/submissions?id={submission_id}",
            json={"action": "revised_submission", "data": {"fileUrls": ["https://x/rev-b.pdf"]}},
            headers=auth("lead-1"),
        )

        assert response.json()["data"]["clientFeedback"] == "pending"
        assert response.json()["data"]["fileUrls"] == ["https://x/rev-b.pdf"]
        assert store.get("projects", pid)["designStatus"] == "submitted"

    def test_pending_is_not_a_verdict(self, client, make_project):
        submission_id = create_submission(client, make_project()).json()["data"]["id"]
        assert feedback(client, submission_id, "pending").status_code == 400

    def test_designer_cannot_record_feedback(self, client, make_project):
        submission_id = create_submission(client, make_project()).json()["data"]["id"]
        assert feedback(client, submission_id, "approved", uid="designer-1").status_code == 403
