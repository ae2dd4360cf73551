"""Tests for the team directory and proposal attachments."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from conftest import auth, utc


@pytest.fixture
def firebase_admin_auth(monkeypatch):
    create_user = MagicMock(return_value=SimpleNamespace(uid="new-user"))
    update_user = MagicMock()
    monkeypatch.setattr("ebtracker.domain.users.service.init_firebase", lambda: None)
    monkeypatch.setattr("firebase_admin.auth.create_user", create_user)
    monkeypatch.setattr("firebase_admin.auth.update_user", update_user)
    return SimpleNamespace(create_user=create_user, update_user=update_user)


class TestUsers:
    def test_directory_is_sorted_and_safe(self, client):
        response = client.get("/api/users", headers=auth("coo-1"))

        assert response.status_code == 200
        names = [u["name"] for u in response.json()["data"]]
        assert names == sorted(names, key=str.lower)
        assert "createdAt" not in response.json()["data"][0]

    def test_role_filter_and_inactive_users(self, client, store):
        store.update("users", "designer-2", {"status": "inactive"})

        active = client.get("/api/users?role=designer", headers=auth("lead-1")).json()["data"]
        everyone = client.get("/api/users?role=designer&includeInactive=true", headers=auth("lead-1")).json()["data"]

        assert [u["uid"] for u in active] == ["designer-1"]
        assert {u["uid"] for u in everyone} == {"designer-1", "designer-2"}

    def test_designer_cannot_browse(self, client):
        assert client.get("/api/users", headers=auth("designer-1")).status_code == 403

    def test_unknown_role_filter(self, client):
        assert client.get("/api/users?role=intern", headers=auth("director-1")).status_code == 400

    def test_director_creates_user(self, client, store, firebase_admin_auth):
        response = client.post(
            "/api/users",
            json={"email": "New.Hire@Example.com", "password": "s3cret!", "name": "Nia Hale", "role": "designer"},
            headers=auth("director-1"),
        )

        assert response.status_code == 201, response.text
        firebase_admin_auth.create_user.assert_called_once()
        stored = store.get("users", "new-user")
        assert stored["email"] == "new.hire@example.com"
        assert stored["status"] == "active"
        assert store.all("activities")[0]["type"] == "user_created"

    def test_only_director_creates(self, client, firebase_admin_auth):
        response = client.post(
            "/api/users",
            json={"email": "x@example.com", "password": "s3cret!", "name": "X", "role": "designer"},
            headers=auth("coo-1"),
        )
        assert response.status_code == 403
        firebase_admin_auth.create_user.assert_not_called()

    def test_invalid_role_on_create(self, client, firebase_admin_auth):
        response = client.post(
            "/api/users",
            json={"email": "x@example.com", "password": "s3cret!", "name": "X", "role": "intern"},
            headers=auth("director-1"),
        )
        assert response.status_code == 400

    def test_deactivation_disables_login(self, client, store, firebase_admin_auth):
        response = client.put("/api/users?uid=designer-2", json={"status": "inactive"}, headers=auth("director-1"))

        assert response.status_code == 200
        firebase_admin_auth.update_user.assert_called_once_with("designer-2", disabled=True)
        assert store.get("users", "designer-2")["status"] == "inactive"
        assert client.get("/api/tasks", headers=auth("designer-2")).status_code == 403


class TestProposalFiles:
    @pytest.fixture
    def proposal_id(self, store):
        return store.create(
            "proposals",
            {"projectName": "Harbor Tower", "createdByUid": "bdm-1", "status": "pending_estimation", "createdAt": utc(2024, 1, 2)},
        )

    def upload(self, client, proposal_id, uid, file_type="project", name="brief.pdf"):
        return client.post(
            "/api/files/upload-file",
            files={"file": (name, b"%PDF-1.4 brief", "application/pdf")},
            data={"proposalId": proposal_id, "fileType": file_type},
            headers=auth(uid),
        )

    def test_bdm_uploads_project_file(self, client, store, proposal_id, r2_client):
        response = self.upload(client, proposal_id, "bdm-1")

        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["fileName"].startswith(f"proposals/{proposal_id}/")
        assert data["url"] == "https://r2.example.com/signed"
        assert data["canDelete"] is True
        r2_client.put_object.assert_called_once()

    def test_other_bdm_cannot_upload(self, client, proposal_id):
        assert self.upload(client, proposal_id, "bdm-2").status_code == 403

    def test_only_estimators_upload_estimations(self, client, proposal_id):
        assert self.upload(client, proposal_id, "bdm-1", file_type="estimation").status_code == 403
        assert self.upload(client, proposal_id, "estimator-1", file_type="estimation").status_code == 201

    def test_bdm_sees_estimation_once_priced(self, client, store, proposal_id):
        self.upload(client, proposal_id, "estimator-1", file_type="estimation", name="quote.xlsx")
        self.upload(client, proposal_id, "bdm-1")

        before = client.get(f"/api/files?proposalId={proposal_id}", headers=auth("bdm-1")).json()["data"]
        store.update("proposals", proposal_id, {"status": "approved"})
        after = client.get(f"/api/files?proposalId={proposal_id}", headers=auth("bdm-1")).json()["data"]

        assert [f["fileType"] for f in before] == ["project"]
        assert sorted(f["fileType"] for f in after) == ["estimation", "project"]

    def test_links(self, client, store, proposal_id):
        response = client.post(
            "/api/files",
            json={"proposalId": proposal_id, "links": [{"url": " https://drive.example.com/brief ", "title": "Brief"}]},
            headers=auth("bdm-1"),
        )

        assert response.status_code == 201
        link = response.json()["data"][0]
        assert link["url"] == "https://drive.example.com/brief"
        assert link["fileType"] == "link"

    def test_delete_own_file_removes_blob(self, client, store, proposal_id, r2_client):
        file_id = self.upload(client, proposal_id, "bdm-1").json()["data"]["id"]

        assert client.delete(f"/api/files?id={file_id}", headers=auth("estimator-1")).status_code == 403
        assert client.delete(f"/api/files?id={file_id}", headers=auth("bdm-1")).status_code == 200
        r2_client.delete_object.assert_called_once()
        assert store.get("files", file_id) is None
