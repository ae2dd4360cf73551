"""Tests for payment records, status derivation and the overdue sweep."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import auth
from ebtracker.domain.payments.repository import PaymentRepository
from ebtracker.domain.payments.service import check_overdue_payments, derive_payment_status, is_payment_overdue
from ebtracker.shared.validators import utcnow


def create_payment(client, project_id, amount=1000, due=None, uid="accounts-1"):
    due = due or (utcnow() + timedelta(days=30))
    response = client.post(
        "/api/payments",
        json={"projectId": project_id, "invoiceNumber": "INV-1", "invoiceAmount": amount, "dueDate": due.isoformat()},
        headers=auth(uid),
    )
    return response


def act(client, payment_id, action, data, uid="accounts-1"):
    return client.put(
        f"/api/payments?id={payment_id}",
        json={"action": action, "data": data},
        headers=auth(uid),
    )


class TestPaymentStatus:
    @pytest.mark.parametrize(
        "invoice,received,status",
        [
            (1000, 0, "pending"),
            (1000, 0.01, "partially_paid"),
            (1000, 999.99, "partially_paid"),
            (1000, 1000, "fully_paid"),
            (1000, 1250, "fully_paid"),
        ],
    )
    def test_derive_payment_status(self, invoice, received, status):
        assert derive_payment_status(invoice, received) == status

    def test_overdue_threshold(self):
        now = utcnow()
        assert is_payment_overdue({"paymentStatus": "pending", "dueDate": now - timedelta(days=16)}, now)
        assert not is_payment_overdue({"paymentStatus": "pending", "dueDate": now - timedelta(days=15)}, now)
        assert not is_payment_overdue({"paymentStatus": "fully_paid", "dueDate": now - timedelta(days=90)}, now)
        assert not is_payment_overdue({"paymentStatus": "pending"}, now)


class TestPaymentRecords:
    def test_create_rolls_up_to_project(self, client, store, make_project):
        pid = make_project(totalInvoiced=500)

        response = create_payment(client, pid, amount=1000)

        assert response.status_code == 201, response.text
        payment = response.json()["data"]
        assert payment["paymentStatus"] == "pending"
        assert payment["balanceOutstanding"] == 1000
        project = store.get("projects", pid)
        assert project["totalInvoiced"] == 1500
        assert project["paymentStatus"] == "invoice_generated"

        notes = store.all("notifications")
        assert {n["recipientRole"] for n in notes if not n["recipientUid"]} == {"coo", "director"}
        assert [n["recipientUid"] for n in notes if n["recipientUid"]] == ["bdm-1"]

    def test_partial_then_full_payment(self, client, store, make_project):
        pid = make_project()
        payment_id = create_payment(client, pid, amount=1000).json()["data"]["id"]

        partial = act(client, payment_id, "record_payment", {"amount": 400, "reference": "TX-1"})
        assert partial.json()["data"]["paymentStatus"] == "partially_paid"
        assert partial.json()["data"]["balanceOutstanding"] == 600
        assert store.get("projects", pid)["paymentStatus"] == "partially_paid"

        full = act(client, payment_id, "record_payment", {"amount": 600})
        data = full.json()["data"]
        assert data["paymentStatus"] == "fully_paid"
        assert data["balanceOutstanding"] == 0
        assert len(data["paymentHistory"]) == 2
        assert store.get("projects", pid)["paymentStatus"] == "fully_paid"

    def test_manual_delay_survives_invoice_edit(self, client, store, make_project):
        pid = make_project()
        payment_id = create_payment(client, pid).json()["data"]["id"]

        act(client, payment_id, "mark_delayed", {"remarks": "Client on holiday"})
        response = act(client, payment_id, "update_invoice", {"invoiceAmount": 1200})

        data = response.json()["data"]
        assert data["paymentStatus"] == "delayed"
        assert data["balanceOutstanding"] == 1200

    def test_role_guards(self, client, make_project):
        pid = make_project()
        assert create_payment(client, pid, uid="bdm-1").status_code == 403
        payment_id = create_payment(client, pid).json()["data"]["id"]

        assert act(client, payment_id, "record_payment", {"amount": 5}, uid="designer-1").status_code == 403
        assert client.get("/api/payments", headers=auth("bdm-1")).status_code == 200
        assert client.get("/api/payments", headers=auth("designer-1")).status_code == 403

    def test_invalid_amount(self, client, make_project):
        pid = make_project()
        payment_id = create_payment(client, pid).json()["data"]["id"]
        assert act(client, payment_id, "record_payment", {"amount": -5}).status_code == 400


class TestOverdueSweep:
    def _payment(self, store, project_id, days_past_due, status="pending"):
        return store.create(
            "payments",
            {
                "projectId": project_id,
                "projectName": "Harbor Tower",
                "invoiceAmount": 1000,
                "paymentReceivedAmount": 0,
                "paymentStatus": status,
                "dueDate": utcnow() - timedelta(days=days_past_due),
                "createdAt": utcnow(),
            },
        )

    def test_only_overdue_open_payments_are_flagged(self, store, make_project):
        pid = make_project()
        overdue = self._payment(store, pid, 20)
        recent = self._payment(store, pid, 10)
        partial = self._payment(store, pid, 40, status="partially_paid")
        paid = self._payment(store, pid, 60, status="fully_paid")

        assert check_overdue_payments(store) == 2

        assert store.get("payments", overdue)["paymentStatus"] == "delayed"
        assert store.get("payments", partial)["paymentStatus"] == "delayed"
        assert store.get("payments", recent)["paymentStatus"] == "pending"
        assert store.get("payments", paid)["paymentStatus"] == "fully_paid"
        assert store.get("projects", pid)["paymentStatus"] == "delayed"

        urgent = [n for n in store.all("notifications") if n["type"] == "payment_overdue"]
        assert all(n["priority"] == "urgent" for n in urgent)
        assert {n["recipientRole"] for n in urgent} == {"accounts", "coo", "director", "bdm"}

    def test_second_run_flags_nothing(self, store, make_project):
        pid = make_project()
        self._payment(store, pid, 20)

        assert check_overdue_payments(store) == 1
        assert check_overdue_payments(store) == 0

    def test_payment_settled_after_listing_is_left_alone(self, store, make_project):
        pid = make_project(paymentStatus="pending")
        settled = self._payment(store, pid, 20)
        stale = store.get("payments", settled)
        store.update("payments", settled, {"paymentStatus": "fully_paid", "paymentReceivedAmount": 1000})

        with patch.object(PaymentRepository, "list_open", return_value=[stale]):
            assert check_overdue_payments(store) == 0

        assert store.get("payments", settled)["paymentStatus"] == "fully_paid"
        assert store.get("projects", pid)["paymentStatus"] == "pending"
        assert not [n for n in store.all("notifications") if n["type"] == "payment_overdue"]

    def test_due_date_moved_after_listing_is_left_alone(self, store, make_project):
        pid = make_project()
        extended = self._payment(store, pid, 20)
        stale = store.get("payments", extended)
        store.update("payments", extended, {"dueDate": utcnow() + timedelta(days=10)})

        with patch.object(PaymentRepository, "list_open", return_value=[stale]):
            assert check_overdue_payments(store) == 0

        assert store.get("payments", extended)["paymentStatus"] == "pending"

    def test_on_demand_sweep_is_executive_only(self, client, store, make_project):
        self._payment(store, make_project(), 30)

        assert client.post("/api/payments/check-overdue", headers=auth("accounts-1")).status_code == 403
        response = client.post("/api/payments/check-overdue", headers=auth("coo-1"))
        assert response.json()["data"]["count"] == 1

    def test_overdue_filter(self, client, store, make_project):
        pid = make_project()
        self._payment(store, pid, 20)
        self._payment(store, pid, 3)

        response = client.get("/api/payments?overdue=true", headers=auth("accounts-1"))
        assert len(response.json()["data"]) == 1
