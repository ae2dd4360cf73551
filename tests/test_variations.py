"""Tests for scope variations and their hour approvals."""

from conftest import auth


def create_variation(client, project_id, code="PN-100-V1", hours=12, uid="lead-1"):
    return client.post(
        "/api/variations",
        json={"parentProjectId": project_id, "variationCode": code, "estimatedHours": hours, "scopeDescription": "Extra basement level"},
        headers=auth(uid),
    )


def review(client, variation_id, data, uid="coo-1"):
    return client.put(
        f"/api/variations?id={variation_id}",
        json={"action": "review_variation", "data": data},
        headers=auth(uid),
    )


class TestVariations:
    def test_create_notifies_coo_members_and_emails(self, client, store, make_project, resend_send):
        pid = make_project()

        response = create_variation(client, pid)

        assert response.status_code == 200, response.text
        variation = store.get("variations", response.json()["variationId"])
        assert variation["status"] == "pending_coo_approval"
        assert variation["parentProjectCode"] == "PN-100"
        assert [n["recipientUid"] for n in store.all("notifications")] == ["coo-1"]
        assert resend_send.call_count == 1

    def test_duplicate_code_per_project(self, client, make_project):
        pid = make_project()
        create_variation(client, pid)

        assert create_variation(client, pid).status_code == 400
        assert create_variation(client, make_project()).status_code == 200

    def test_only_design_leads_create(self, client, make_project):
        assert create_variation(client, make_project(), uid="coo-1").status_code == 403

    def test_hours_must_be_positive(self, client, make_project):
        assert create_variation(client, make_project(), hours=0).status_code == 400

    def test_approval_adds_hours_to_parent(self, client, store, make_project):
        pid = make_project(additionalHours=4)
        variation_id = create_variation(client, pid).json()["variationId"]

        response = review(client, variation_id, {"status": "approved", "approvedHours": 10})

        assert response.status_code == 200
        assert response.json()["data"]["approvedHours"] == 10
        assert store.get("projects", pid)["additionalHours"] == 14
        lead_note = [n for n in store.all("notifications") if n["type"] == "variation_approved"][0]
        assert lead_note["recipientUid"] == "lead-1"

    def test_second_review_is_refused(self, client, store, make_project):
        pid = make_project()
        variation_id = create_variation(client, pid).json()["variationId"]
        review(client, variation_id, {"status": "approved", "approvedHours": 10})

        response = review(client, variation_id, {"status": "approved", "approvedHours": 10}, uid="director-1")

        assert response.status_code == 400
        assert store.get("projects", pid)["additionalHours"] == 10

    def test_rejection_needs_notes_and_leaves_hours(self, client, store, make_project):
        pid = make_project()
        variation_id = create_variation(client, pid).json()["variationId"]

        assert review(client, variation_id, {"status": "rejected"}).status_code == 400
        response = review(client, variation_id, {"status": "rejected", "notes": "Out of scope"})

        assert response.json()["data"]["status"] == "rejected"
        assert response.json()["data"]["approvedHours"] is None
        assert store.get("projects", pid)["additionalHours"] == 0

    def test_approval_needs_hours(self, client, make_project):
        variation_id = create_variation(client, make_project()).json()["variationId"]
        assert review(client, variation_id, {"status": "approved"}).status_code == 400

    def test_design_lead_cannot_review(self, client, make_project):
        variation_id = create_variation(client, make_project()).json()["variationId"]
        assert review(client, variation_id, {"status": "approved", "approvedHours": 3}, uid="lead-1").status_code == 403

    def test_listing_scope(self, client, make_project):
        create_variation(client, make_project())

        assert len(client.get("/api/variations", headers=auth("lead-1")).json()["data"]) == 1
        assert len(client.get("/api/variations?status=pending_coo_approval", headers=auth("director-1")).json()["data"]) == 1
        assert client.get("/api/variations", headers=auth("designer-1")).status_code == 403
