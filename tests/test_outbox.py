"""Tests for the side-effect outbox: email tracking and replay of failed writes."""

from unittest.mock import patch

from conftest import auth, utc
from ebtracker.services.activity_service import log_activity
from ebtracker.services.notification_service import notify_role
from ebtracker.services.outbox_service import dispatch_email, retry_failed


class TestEmailDispatch:
    def test_sent_email_is_recorded(self, store):
        result = dispatch_email(store, "proposal.created", {"projectName": "Harbor Tower", "createdByEmail": "bdm1@example.com"})

        assert result["success"] is True
        entry = store.get("outbox", result["outboxId"])
        assert entry["status"] == "sent"
        assert entry["attempts"] == 1
        assert "bdm1@example.com" in entry["recipients"]

    def test_failed_email_is_retried(self, store, resend_send):
        resend_send.side_effect = RuntimeError("provider down")
        result = dispatch_email(store, "project.won", {"projectName": "Harbor Tower"})
        assert result["success"] is False
        assert store.get("outbox", result["outboxId"])["status"] == "failed"

        resend_send.side_effect = None
        summary = retry_failed(store)

        assert summary == {"retried": 1, "succeeded": 1, "failed": 0}
        entry = store.get("outbox", result["outboxId"])
        assert entry["status"] == "sent"
        assert entry["attempts"] == 2

    def test_missing_api_key_never_raises(self, store, monkeypatch):
        monkeypatch.setattr("ebtracker.email_service.RESEND_API_KEY", None)

        result = dispatch_email(store, "project.won", {"projectName": "Harbor Tower"})

        assert result["success"] is False
        assert store.get("outbox", result["outboxId"])["lastError"] == "Missing API Key"

    def test_event_without_recipients_is_skipped(self, store):
        result = dispatch_email(store, "project.approved_by_director", {"projectName": "Orphan"})

        assert result.get("skipped") is True
        assert store.get("outbox", result["outboxId"])["status"] == "skipped"

    def test_exhausted_entries_are_not_retried(self, store, resend_send):
        store.create(
            "outbox",
            {"kind": "email", "event": "project.won", "payload": {}, "status": "failed", "attempts": 5, "createdAt": None},
        )

        assert retry_failed(store) == {"retried": 0, "succeeded": 0, "failed": 0}
        resend_send.assert_not_called()
        assert store.all("outbox")[0]["status"] == "dead"

    def test_exhausted_backlog_does_not_starve_older_entries(self, store):
        older = store.create(
            "outbox",
            {
                "kind": "notification",
                "payload": {"type": "project_won", "recipientRole": "coo", "message": "Harbor Tower won"},
                "status": "failed",
                "attempts": 1,
                "createdAt": utc(2024, 1, 1),
            },
        )
        for day in range(1, 29):
            for hour in (1, 2):
                store.create(
                    "outbox",
                    {"kind": "email", "event": "project.won", "payload": {}, "status": "failed", "attempts": 5, "createdAt": utc(2024, 2, day, hour)},
                )

        assert retry_failed(store) == {"retried": 1, "succeeded": 1, "failed": 0}
        assert store.get("outbox", older)["status"] == "sent"
        assert store.count("outbox", [("status", "==", "dead")]) == 56

    def test_last_failed_attempt_is_dead(self, store, resend_send):
        resend_send.side_effect = RuntimeError("provider down")
        result = dispatch_email(store, "project.won", {"projectName": "Harbor Tower"})
        store.update("outbox", result["outboxId"], {"attempts": 4})

        assert retry_failed(store) == {"retried": 1, "succeeded": 0, "failed": 1}
        entry = store.get("outbox", result["outboxId"])
        assert entry["status"] == "dead"
        assert entry["attempts"] == 5


class TestFailedWrites:
    def test_failed_notification_is_replayed(self, store):
        with patch.object(store, "create_many", side_effect=RuntimeError("quota exceeded")):
            assert notify_role(store, "coo", "project_won", "Harbor Tower won") == 0

        failed = store.query("outbox", [("kind", "==", "notification")])
        assert len(failed) == 1 and failed[0]["status"] == "failed"
        assert store.all("notifications") == []

        assert retry_failed(store)["succeeded"] == 1
        notifications = store.all("notifications")
        assert len(notifications) == 1 and notifications[0]["recipientRole"] == "coo"

    def test_failed_activity_is_recorded(self, store):
        original_create = store.create

        def flaky_create(collection, data, doc_id=None):
            if collection == "activities":
                raise RuntimeError("write rejected")
            return original_create(collection, data, doc_id)

        with patch.object(store, "create", side_effect=flaky_create):
            assert log_activity(store, "project_created", "Created", None, projectId="p1") is None

        entries = store.query("outbox", [("kind", "==", "activity")])
        assert entries[0]["payload"]["performedByName"] == "System"
        assert retry_failed(store)["succeeded"] == 1
        assert store.all("activities")[0]["projectId"] == "p1"


class TestOutboxEndpoints:
    def test_listing_is_executive_only(self, client, store):
        dispatch_email(store, "project.won", {"projectName": "Harbor Tower"})

        assert client.get("/api/email/outbox", headers=auth("designer-1")).status_code == 403
        response = client.get("/api/email/outbox?kind=email", headers=auth("director-1"))
        assert response.json()["count"] == 1

    def test_retry_endpoint(self, client, store, resend_send):
        resend_send.side_effect = RuntimeError("provider down")
        dispatch_email(store, "project.won", {"projectName": "Harbor Tower"})
        resend_send.side_effect = None

        response = client.post("/api/email/outbox/retry", headers=auth("coo-1"))

        assert response.json()["data"] == {"retried": 1, "succeeded": 1, "failed": 0}

    def test_email_health_needs_no_token(self, client):
        response = client.get("/api/email/health")
        assert response.status_code == 200
        assert response.json()["service"] == "email"
