"""Tests for the notification inbox: role and uid addressed documents."""

from datetime import timedelta
from unittest.mock import patch

from conftest import auth, utc
from ebtracker.services.notification_service import build_notification, notify_role_members, send_notifications
from ebtracker.services.outbox_service import retry_failed


def add(store, role, uid=None, minutes=0, is_read=False, message="hello"):
    return store.create(
        "notifications",
        {
            "type": "info",
            "recipientRole": role,
            "recipientUid": uid,
            "message": message,
            "priority": "normal",
            "isRead": is_read,
            "createdAt": utc(2024, 5, 1) + timedelta(minutes=minutes),
        },
    )


class TestInbox:
    def test_merges_role_and_uid_documents(self, client, store):
        role_doc = add(store, "designer", minutes=1, message="role")
        mine = add(store, "designer", uid="designer-1", minutes=3, message="mine")
        add(store, "designer", uid="designer-2", minutes=2, message="someone else")
        add(store, "coo", minutes=4, message="other role")

        response = client.get("/api/notifications", headers=auth("designer-1"))

        ids = [n["id"] for n in response.json()["data"]]
        assert ids == [mine, role_doc]

    def test_unread_only_and_limit(self, client, store):
        for minute in range(5):
            add(store, "designer", uid="designer-1", minutes=minute)
        add(store, "designer", uid="designer-1", minutes=10, is_read=True)

        unread = client.get("/api/notifications?unreadOnly=true", headers=auth("designer-1")).json()
        assert unread["count"] == 5
        limited = client.get("/api/notifications?limit=2", headers=auth("designer-1")).json()
        assert limited["count"] == 2

    def test_mark_one_read(self, client, store):
        doc = add(store, "designer", uid="designer-1")

        response = client.put(f"/api/notifications?id={doc}", json={"isRead": True}, headers=auth("designer-1"))

        assert response.status_code == 200
        assert store.get("notifications", doc)["isRead"] is True
        assert store.get("notifications", doc)["readAt"] is not None

    def test_cannot_mark_someone_elses(self, client, store):
        doc = add(store, "designer", uid="designer-2")
        response = client.put(f"/api/notifications?id={doc}", json={"isRead": True}, headers=auth("designer-1"))
        assert response.status_code == 403

    def test_is_read_required(self, client, store):
        doc = add(store, "designer", uid="designer-1")
        assert client.put(f"/api/notifications?id={doc}", json={}, headers=auth("designer-1")).status_code == 400

    def test_mark_all_read_only_touches_own_inbox(self, client, store):
        add(store, "designer", uid="designer-1")
        add(store, "designer")
        other = add(store, "designer", uid="designer-2")

        response = client.put("/api/notifications", json={"markAllRead": True}, headers=auth("designer-1"))

        assert response.json()["data"]["count"] == 2
        assert store.get("notifications", other)["isRead"] is False

    def test_put_without_target_is_400(self, client):
        assert client.put("/api/notifications", json={}, headers=auth("designer-1")).status_code == 400

    def test_clear_all(self, client, store):
        add(store, "designer", uid="designer-1")
        add(store, "designer")
        other = add(store, "coo")

        response = client.delete("/api/notifications", headers=auth("designer-1"))

        assert response.json()["data"]["count"] == 2
        assert [n["id"] for n in store.all("notifications")] == [other]


class TestCreateNotification:
    def test_design_lead_can_post(self, client, store):
        response = client.post(
            "/api/notifications",
            json={"type": "reminder", "recipientRole": "designer", "recipientUid": "designer-1", "message": "Upload today"},
            headers=auth("lead-1"),
        )

        assert response.status_code == 201
        doc = store.all("notifications")[0]
        assert doc["createdByUid"] == "lead-1"
        assert doc["isRead"] is False

    def test_designer_cannot_post(self, client):
        response = client.post(
            "/api/notifications",
            json={"type": "reminder", "recipientRole": "coo", "message": "Hi"},
            headers=auth("designer-1"),
        )
        assert response.status_code == 403

    def test_unknown_role_is_rejected(self, client):
        response = client.post(
            "/api/notifications",
            json={"type": "reminder", "recipientRole": "intern", "message": "Hi"},
            headers=auth("coo-1"),
        )
        assert response.status_code == 400


class TestFanOut:
    def test_role_members_skip_inactive_and_excluded(self, store):
        store.update("users", "designer-2", {"status": "inactive"})
        store.create("users", {"name": "Dot", "role": "designer", "status": "active"}, doc_id="designer-3")

        sent = notify_role_members(store, ["designer"], "heads_up", "Site visit", exclude_uids=["designer-3"])

        assert sent == 1
        assert [n["recipientUid"] for n in store.all("notifications")] == ["designer-1"]

    def test_only_the_failed_batch_is_queued_for_retry(self, store, monkeypatch):
        monkeypatch.setattr("ebtracker.services.notification_service.BATCH_SIZE", 2)
        original_create_many = store.create_many
        calls = []

        def second_batch_fails(collection, docs):
            calls.append(len(docs))
            if len(calls) == 2:
                raise RuntimeError("deadline exceeded")
            return original_create_many(collection, docs)

        notifications = [build_notification("heads_up", f"Note {i}", "designer", f"designer-{i}") for i in range(5)]
        with patch.object(store, "create_many", side_effect=second_batch_fails):
            assert send_notifications(store, notifications) == 3

        assert calls == [2, 2, 1]
        assert [n["message"] for n in store.all("notifications")] == ["Note 0", "Note 1", "Note 4"]
        queued = store.query("outbox", [("kind", "==", "notification")])
        assert [e["payload"]["message"] for e in queued] == ["Note 2", "Note 3"]

        assert retry_failed(store)["succeeded"] == 2
        assert len(store.all("notifications")) == 5
