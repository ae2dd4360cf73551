"""Invoice service - Client invoices, due dates and payment reminders"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...config import INVOICE_REMINDER_WINDOW_DAYS
from ...services.activity_service import log_activity
from ...services.notification_service import notify_role_members, notify_user
from ...services.outbox_service import dispatch_email
from ...shared.roles import BDM, COO, DIRECTOR, FINANCE_ROLES
from ...shared.validators import round_money, to_utc, utcnow
from ..projects.repository import ProjectRepository
from .repository import InvoiceRepository
from .schemas import InvoiceCreate, InvoiceStatus, InvoiceUpdate

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def annotate_due_state(invoice: dict, now: Optional[datetime] = None) -> dict:
    """Add isOverdue plus daysOverdue or daysUntilDue to an unpaid invoice"""
    due = to_utc(invoice.get("dueDate"))
    if not due or invoice.get("status") == InvoiceStatus.PAID.value:
        return invoice
    days = ((now or utcnow()) - due).days
    if days > 0:
        return {**invoice, "isOverdue": True, "daysOverdue": days}
    return {**invoice, "isOverdue": False, "daysUntilDue": abs(days)}


def reminder_event(invoice: dict, now: Optional[datetime] = None) -> tuple[str, dict]:
    """Pick the reminder email for an invoice and the day count it reports"""
    due = to_utc(invoice.get("dueDate")) or (now or utcnow())
    days = math.ceil((due - (now or utcnow())).total_seconds() / SECONDS_PER_DAY)
    if days < 0:
        return "invoice.overdue", {"daysOverdue": abs(days)}
    return "invoice.payment_due", {"daysUntilDue": days}


def _reminder_payload(store, invoice: dict, days_info: dict) -> dict:
    project = ProjectRepository.get(store, invoice.get("projectId")) if invoice.get("projectId") else None
    project = project or {}
    return {
        "invoiceId": invoice["id"],
        "invoiceNumber": invoice.get("invoiceNumber"),
        "invoiceAmount": invoice.get("invoiceAmount"),
        "dueDate": invoice.get("dueDate"),
        "projectId": invoice.get("projectId"),
        "projectName": project.get("projectName") or invoice.get("projectName"),
        "clientCompany": invoice.get("clientCompany") or project.get("clientCompany"),
        "bdmEmail": project.get("bdmEmail"),
        **days_info,
    }


def send_invoice_reminders(store, user=None) -> list[dict]:
    """
    Email a reminder for every unpaid invoice due within the reminder window,
    or already past due. Run daily by the worker and on demand.
    """
    now = utcnow()
    horizon = now + timedelta(days=INVOICE_REMINDER_WINDOW_DAYS)
    reminders = []

    for invoice in InvoiceRepository.list_unpaid(store):
        due = to_utc(invoice.get("dueDate"))
        if not due or due > horizon:
            continue
        event, days_info = reminder_event(invoice, now)
        dispatch_email(store, event, _reminder_payload(store, invoice, days_info))
        InvoiceRepository.update(store, invoice["id"], {"lastReminderSent": now})
        reminders.append(
            {
                "invoiceId": invoice["id"],
                "invoiceNumber": invoice.get("invoiceNumber"),
                "clientCompany": invoice.get("clientCompany"),
                "status": "overdue" if event == "invoice.overdue" else "due_soon",
                **days_info,
            }
        )

    if reminders:
        log_activity(store, "bulk_payment_reminders_sent", f"Sent {len(reminders)} payment reminders", user)
    logger.info(f"📧 Sent {len(reminders)} invoice reminder(s)")
    return reminders


class InvoiceService:
    """Service layer for invoices"""

    def __init__(self, store):
        self.store = store
        self.repo = InvoiceRepository()

    def _get_or_404(self, invoice_id: str) -> dict:
        invoice = self.repo.get(self.store, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def list_invoices(
        self, user: CurrentUser, status: Optional[str] = None, project_id: Optional[str] = None, overdue: bool = False
    ) -> list[dict]:
        ensure_role(user, FINANCE_ROLES + (BDM,))
        now = utcnow()
        invoices = [annotate_due_state(i, now) for i in self.repo.list_invoices(self.store, status, project_id)]
        if overdue:
            invoices = [i for i in invoices if i.get("isOverdue")]
        return invoices

    def get_invoice(self, invoice_id: str, user: CurrentUser) -> dict:
        ensure_role(user, FINANCE_ROLES + (BDM,))
        return annotate_due_state(self._get_or_404(invoice_id))

    def create_invoice(self, data: InvoiceCreate, user: CurrentUser) -> dict:
        ensure_role(user, FINANCE_ROLES)
        project = ProjectRepository.get(self.store, data.projectId)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")

        now = utcnow()
        amount = round_money(data.invoiceAmount)
        invoice = {
            "projectId": data.projectId,
            "projectName": project.get("projectName"),
            "projectCode": project.get("projectCode"),
            "clientCompany": project.get("clientCompany") or "",
            "invoiceNumber": data.invoiceNumber,
            "invoiceAmount": amount,
            "currency": data.currency or project.get("currency") or "USD",
            "dueDate": data.dueDate,
            "paymentTerms": data.paymentTerms or "Net 30",
            "description": data.description,
            "milestone": data.milestone,
            "items": data.items,
            "notes": data.notes,
            "status": InvoiceStatus.PENDING.value,
            "createdByUid": user.uid,
            "createdByName": user.name or user.email,
            "createdAt": now,
            "updatedAt": now,
        }
        invoice_id = self.repo.create(self.store, invoice)
        logger.info(f"✅ Invoice {data.invoiceNumber} ({invoice_id}) created for project {data.projectId}")

        log_activity(
            self.store,
            "invoice_created",
            f"Invoice {data.invoiceNumber} created for {invoice['clientCompany']}",
            user,
            projectId=data.projectId,
            invoiceId=invoice_id,
        )
        message = f"New invoice {data.invoiceNumber} created for {invoice['clientCompany']} - Amount: {invoice['currency']} {amount:,.2f}"
        notify_role_members(
            self.store,
            [COO, DIRECTOR],
            "invoice_created",
            message,
            priority="high",
            invoiceId=invoice_id,
            projectId=data.projectId,
        )
        notify_user(
            self.store,
            project.get("bdmUid"),
            BDM,
            "invoice_created",
            f"New invoice {data.invoiceNumber} created for your project {project.get('projectName')} - "
            f"Amount: {invoice['currency']} {amount:,.2f}",
            priority="high",
            invoiceId=invoice_id,
            projectId=data.projectId,
        )
        dispatch_email(
            self.store,
            "invoice.created",
            {
                "invoiceId": invoice_id,
                "invoiceNumber": data.invoiceNumber,
                "invoiceAmount": amount,
                "dueDate": data.dueDate,
                "paymentTerms": invoice["paymentTerms"],
                "projectId": data.projectId,
                "projectName": project.get("projectName"),
                "projectCode": project.get("projectCode"),
                "clientCompany": invoice["clientCompany"],
                "createdBy": invoice["createdByName"],
                "bdmEmail": project.get("bdmEmail"),
            },
        )
        return {"id": invoice_id, **invoice}

    def update_invoice(self, invoice_id: str, data: InvoiceUpdate, user: CurrentUser) -> dict:
        ensure_role(user, FINANCE_ROLES)
        invoice = self._get_or_404(invoice_id)

        now = utcnow()
        updates = data.model_dump(exclude_none=True, exclude={"sendReminder"})
        if data.status:
            updates["status"] = data.status.value
        if data.dueDate:
            updates["dueDate"] = to_utc(data.dueDate)
        if data.invoiceAmount is not None:
            updates["invoiceAmount"] = round_money(data.invoiceAmount)
        if data.status == InvoiceStatus.PAID and invoice.get("status") != InvoiceStatus.PAID.value:
            updates["paidDate"] = now
            updates.setdefault("paidAmount", invoice.get("invoiceAmount"))
        if data.sendReminder:
            updates["lastReminderSent"] = now
        updates.update(updatedAt=now, updatedBy=user.uid)
        self.repo.update(self.store, invoice_id, updates)

        merged = {**invoice, **updates}
        if data.status == InvoiceStatus.PAID:
            log_activity(
                self.store,
                "invoice_paid",
                f"Invoice {merged.get('invoiceNumber')} marked as paid",
                user,
                invoiceId=invoice_id,
                projectId=merged.get("projectId"),
            )
        if data.sendReminder:
            event, days_info = reminder_event(merged, now)
            dispatch_email(self.store, event, _reminder_payload(self.store, merged, days_info))
            log_activity(
                self.store,
                "payment_reminder_sent",
                f"Payment reminder sent for invoice {merged.get('invoiceNumber')}",
                user,
                invoiceId=invoice_id,
                projectId=merged.get("projectId"),
            )
        return merged

    def delete_invoice(self, invoice_id: str, user: CurrentUser) -> None:
        ensure_role(user, FINANCE_ROLES)
        invoice = self._get_or_404(invoice_id)
        if invoice.get("status") == InvoiceStatus.PAID.value:
            raise HTTPException(status_code=400, detail="Cannot delete paid invoices")

        self.repo.delete(self.store, invoice_id)
        log_activity(
            self.store,
            "invoice_deleted",
            f"Invoice {invoice.get('invoiceNumber')} deleted",
            user,
            projectId=invoice.get("projectId"),
            invoiceId=invoice_id,
        )

    def send_reminders(self, user: CurrentUser) -> list[dict]:
        ensure_role(user, FINANCE_ROLES)
        return send_invoice_reminders(self.store, user)
