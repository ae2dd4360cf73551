"""Tests for invoices and payment reminders."""

from datetime import timedelta

from conftest import auth
from ebtracker.domain.invoices.service import annotate_due_state, reminder_event, send_invoice_reminders
from ebtracker.shared.validators import utcnow


def create_invoice(client, project_id, uid="accounts-1", **fields):
    body = {
        "projectId": project_id,
        "invoiceNumber": "INV-100",
        "invoiceAmount": 2500,
        "dueDate": (utcnow() + timedelta(days=30)).isoformat(),
        **fields,
    }
    return client.post("/api/invoices", json=body, headers=auth(uid))


def insert_invoice(store, project_id, days_until_due, status="pending", number="INV-X"):
    return store.create(
        "invoices",
        {
            "projectId": project_id,
            "invoiceNumber": number,
            "invoiceAmount": 1000,
            "clientCompany": "Acme Developments",
            "status": status,
            "dueDate": utcnow() + timedelta(days=days_until_due),
            "createdAt": utcnow(),
        },
    )


class TestInvoiceCrud:
    def test_create_notifies_finance_and_bdm(self, client, store, make_project, resend_send):
        pid = make_project()

        response = create_invoice(client, pid)

        assert response.status_code == 201, response.text
        invoice = response.json()["data"]
        assert invoice["status"] == "pending"
        assert invoice["clientCompany"] == "Acme Developments"
        recipients = {n["recipientUid"] for n in store.all("notifications")}
        assert recipients == {"coo-1", "director-1", "bdm-1"}
        assert resend_send.call_count == 1
        assert "bdm1@example.com" in resend_send.call_args.args[0]["to"]

    def test_only_finance_creates(self, client, make_project):
        pid = make_project()
        assert create_invoice(client, pid, uid="bdm-1").status_code == 403
        assert create_invoice(client, pid, uid="designer-1").status_code == 403

    def test_delete_unpaid_logs_one_activity(self, client, store, make_project):
        invoice_id = insert_invoice(store, make_project(), 10)

        response = client.delete(f"/api/invoices?id={invoice_id}", headers=auth("coo-1"))

        assert response.status_code == 200
        assert store.get("invoices", invoice_id) is None
        assert [a["type"] for a in store.all("activities")] == ["invoice_deleted"]

    def test_paid_invoice_cannot_be_deleted(self, client, store, make_project):
        invoice_id = insert_invoice(store, make_project(), -5, status="paid")

        response = client.delete(f"/api/invoices?id={invoice_id}", headers=auth("accounts-1"))

        assert response.status_code == 400
        assert store.get("invoices", invoice_id) is not None
        assert store.all("activities") == []

    def test_bdm_cannot_delete(self, client, store, make_project):
        invoice_id = insert_invoice(store, make_project(), 10)
        assert client.delete(f"/api/invoices?id={invoice_id}", headers=auth("bdm-1")).status_code == 403

    def test_mark_paid_records_payment(self, client, store, make_project):
        invoice_id = insert_invoice(store, make_project(), 10)

        response = client.put(f"/api/invoices?id={invoice_id}", json={"status": "paid"}, headers=auth("accounts-1"))

        assert response.status_code == 200
        stored = store.get("invoices", invoice_id)
        assert stored["status"] == "paid"
        assert stored["paidAmount"] == 1000
        assert "paidDate" in stored
        assert any(a["type"] == "invoice_paid" for a in store.all("activities"))

    def test_overdue_listing(self, client, store, make_project):
        pid = make_project()
        insert_invoice(store, pid, -3, number="LATE")
        insert_invoice(store, pid, 5, number="SOON")

        response = client.get("/api/invoices?overdue=true", headers=auth("bdm-1"))

        assert [i["invoiceNumber"] for i in response.json()["data"]] == ["LATE"]
        assert response.json()["data"][0]["daysOverdue"] >= 2


class TestReminders:
    def test_reminder_event(self):
        now = utcnow()
        event, info = reminder_event({"dueDate": now - timedelta(days=4)}, now)
        assert event == "invoice.overdue" and info == {"daysOverdue": 4}
        event, info = reminder_event({"dueDate": now + timedelta(days=2)}, now)
        assert event == "invoice.payment_due" and info == {"daysUntilDue": 2}

    def test_annotate_due_state_skips_paid(self):
        invoice = {"status": "paid", "dueDate": utcnow() - timedelta(days=9)}
        assert "isOverdue" not in annotate_due_state(invoice)

    def test_reminders_cover_due_soon_and_overdue(self, store, make_project, resend_send):
        pid = make_project()
        soon = insert_invoice(store, pid, 3, number="SOON")
        late = insert_invoice(store, pid, -6, number="LATE")
        insert_invoice(store, pid, 30, number="LATER")
        insert_invoice(store, pid, -6, status="paid", number="PAID")

        reminders = send_invoice_reminders(store)

        assert {r["invoiceNumber"]: r["status"] for r in reminders} == {"SOON": "due_soon", "LATE": "overdue"}
        assert resend_send.call_count == 2
        assert "lastReminderSent" in store.get("invoices", soon)
        assert "lastReminderSent" in store.get("invoices", late)
        assert [a["type"] for a in store.all("activities")] == ["bulk_payment_reminders_sent"]

    def test_reminder_endpoint_is_finance_only(self, client, store, make_project):
        insert_invoice(store, make_project(), 1)

        assert client.post("/api/invoices/send-reminders", headers=auth("bdm-1")).status_code == 403
        response = client.post("/api/invoices/send-reminders", headers=auth("accounts-1"))
        assert response.status_code == 200
        assert len(response.json()["reminders"]) == 1
