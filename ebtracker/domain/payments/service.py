"""
Payment service - Payment records raised against projects

A payment's status is derived from what has been received against the
invoice amount, except for `delayed`, which is set by hand or by the daily
overdue sweep. The payment status is mirrored onto the project.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser, ensure_role
from ...config import OVERDUE_THRESHOLD_DAYS
from ...services.activity_service import log_activity
from ...services.notification_service import build_notification, send_notifications
from ...shared.roles import ACCOUNTS, BDM, COO, DIRECTOR, EXECUTIVE_ROLES, FINANCE_ROLES
from ...shared.transitions import ActionRequest, Outcome, Transition, authorize_transition, parse_action
from ...shared.validators import round_money, to_utc, utcnow
from ..projects.repository import PROJECTS, ProjectRepository
from .repository import PAYMENTS, PaymentRepository
from .schemas import (
    INVOICE_GENERATED,
    MarkDelayedData,
    PaymentAction,
    PaymentCreate,
    PaymentStatus,
    RecordPaymentData,
    UpdateInvoiceData,
)

logger = logging.getLogger(__name__)

PAYMENT_TRANSITIONS: dict[PaymentAction, Transition] = {
    PaymentAction.RECORD_PAYMENT: Transition(FINANCE_ROLES, RecordPaymentData),
    PaymentAction.MARK_DELAYED: Transition(FINANCE_ROLES, MarkDelayedData),
    PaymentAction.UPDATE_INVOICE: Transition(FINANCE_ROLES, UpdateInvoiceData),
}


# ============================================================================
# STATUS RULES
# ============================================================================


def derive_payment_status(invoice_amount: float, received: float) -> str:
    if received >= invoice_amount:
        return PaymentStatus.FULLY_PAID.value
    if received > 0:
        return PaymentStatus.PARTIALLY_PAID.value
    return PaymentStatus.PENDING.value


def days_past_due(payment: dict, now: Optional[datetime] = None) -> Optional[int]:
    due = to_utc(payment.get("dueDate"))
    if not due:
        return None
    return ((now or utcnow()) - due).days


def is_payment_overdue(payment: dict, now: Optional[datetime] = None) -> bool:
    """Unpaid and more than OVERDUE_THRESHOLD_DAYS past its due date"""
    if payment.get("paymentStatus") == PaymentStatus.FULLY_PAID.value:
        return False
    days = days_past_due(payment, now)
    return days is not None and days > OVERDUE_THRESHOLD_DAYS


def _finance_notifications(payment: dict, bdm_uid: Optional[str], notification_type: str, message: str, **kw):
    """Role notifications for accounts/coo/director plus one for the project's BDM"""
    roles = kw.pop("roles", (COO, DIRECTOR))
    context = {"projectId": payment.get("projectId"), "paymentId": payment.get("id"), **kw}
    notifications = [build_notification(notification_type, message, role, None, **context) for role in roles]
    if bdm_uid:
        notifications.append(build_notification(notification_type, message, BDM, bdm_uid, **context))
    return notifications


OPEN_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.PARTIALLY_PAID.value)


def _flag_overdue(store, payment_id: str, now: datetime) -> Optional[tuple[dict, Optional[dict]]]:
    """Re-read and mark one payment delayed. None when it no longer qualifies."""

    def _apply(txn):
        payment = txn.get(PAYMENTS, payment_id)
        if not payment or payment.get("paymentStatus") not in OPEN_STATUSES or not is_payment_overdue(payment, now):
            return None
        project = txn.get(PROJECTS, payment.get("projectId")) if payment.get("projectId") else None
        txn.update(PAYMENTS, payment_id, {"paymentStatus": PaymentStatus.DELAYED.value, "delayedAt": now, "updatedAt": now})
        if project:
            ProjectRepository.update_in_transaction(
                txn, project, {"paymentStatus": PaymentStatus.DELAYED.value, "updatedAt": now}
            )
        return payment, project

    return store.run_transaction(_apply)


def check_overdue_payments(store) -> int:
    """
    Mark open payments past the overdue threshold as delayed and raise urgent
    notifications. Run daily by the worker; returns how many were flagged.

    Each candidate is re-read inside its own transaction, so a payment recorded
    between the listing and the write is left alone.
    """
    now = utcnow()
    flagged = 0
    for candidate in PaymentRepository.list_open(store):
        if not is_payment_overdue(candidate, now):
            continue
        result = _flag_overdue(store, candidate["id"], now)
        if not result:
            logger.info(f"⏭️ Payment {candidate['id']} changed since the sweep listed it, skipping")
            continue
        payment, project = result
        days = days_past_due(payment, now)

        send_notifications(
            store,
            _finance_notifications(
                {**payment, "id": candidate["id"]},
                project.get("bdmUid") if project else None,
                "payment_overdue",
                f"⚠️ URGENT: Payment for {payment.get('projectName')} is {days} days overdue",
                roles=(ACCOUNTS, COO, DIRECTOR),
                priority="urgent",
            ),
        )
        flagged += 1

    logger.info(f"✅ Overdue payment sweep flagged {flagged} payment(s)")
    return flagged


# ============================================================================
# SERVICE
# ============================================================================


class PaymentService:
    """Service layer for payment records"""

    def __init__(self, store):
        self.store = store
        self.repo = PaymentRepository()

    def list_payments(
        self, user: CurrentUser, project_id: Optional[str] = None, status: Optional[str] = None, overdue: bool = False
    ) -> list[dict]:
        ensure_role(user, FINANCE_ROLES + (BDM,))
        payments = self.repo.list_payments(self.store, project_id, status)
        if overdue:
            now = utcnow()
            payments = [p for p in payments if is_payment_overdue(p, now)]
        return payments

    def create_payment(self, data: PaymentCreate, user: CurrentUser) -> dict:
        ensure_role(user, FINANCE_ROLES)
        project = ProjectRepository.get(self.store, data.projectId)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")

        now = utcnow()
        amount = round_money(data.invoiceAmount)
        currency = data.currency or project.get("currency") or "USD"
        payment = {
            "projectId": data.projectId,
            "projectCode": project.get("projectCode"),
            "projectName": project.get("projectName"),
            "clientCompany": project.get("clientCompany"),
            "quoteValue": project.get("quoteValue"),
            "currency": currency,
            "invoiceNumber": data.invoiceNumber,
            "invoiceDate": data.invoiceDate or now,
            "invoiceAmount": amount,
            "dueDate": data.dueDate,
            "paymentTerms": data.paymentTerms or project.get("paymentTerms") or "",
            "milestoneDescription": data.milestoneDescription,
            "paymentReceivedAmount": 0,
            "balanceOutstanding": amount,
            "paymentStatus": PaymentStatus.PENDING.value,
            "paymentHistory": [],
            "createdBy": user.name,
            "createdByUid": user.uid,
            "createdAt": now,
            "updatedAt": now,
        }
        payment_id = self.repo.create(self.store, payment)
        self.store.increment(
            PROJECTS,
            data.projectId,
            "totalInvoiced",
            amount,
            extra={"paymentStatus": INVOICE_GENERATED, "lastInvoiceDate": payment["invoiceDate"], "updatedAt": now},
        )
        logger.info(f"✅ Payment record {payment_id} created for project {data.projectId}")

        log_activity(
            self.store,
            "invoice_created",
            f"Invoice {data.invoiceNumber} generated for {project.get('projectName')}",
            user,
            projectId=data.projectId,
            paymentId=payment_id,
        )
        send_notifications(
            self.store,
            _finance_notifications(
                {**payment, "id": payment_id},
                project.get("bdmUid"),
                "invoice_created",
                f"Invoice generated for {project.get('projectName')} - Amount: {currency} {amount:,.2f}",
            ),
        )
        return {"id": payment_id, **payment}

    def check_overdue(self, user: CurrentUser) -> int:
        ensure_role(user, EXECUTIVE_ROLES)
        return check_overdue_payments(self.store)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def apply_action(self, payment_id: str, request: ActionRequest, user: CurrentUser) -> dict:
        action = parse_action(PaymentAction, request.action)
        payload = authorize_transition(PAYMENT_TRANSITIONS, action, user, request.data)
        handler = getattr(self, f"_{action.value}")

        def _apply(txn) -> tuple[dict, Optional[dict], Outcome]:
            payment = txn.get(PAYMENTS, payment_id)
            if not payment:
                raise HTTPException(status_code=404, detail="Payment record not found")
            project = txn.get(PROJECTS, payment.get("projectId")) if payment.get("projectId") else None

            outcome = handler(payment, project, payload, user)
            now = utcnow()
            txn.update(PAYMENTS, payment_id, {**outcome.updates, "updatedAt": now})
            new_status = outcome.updates.get("paymentStatus")
            if project and new_status:
                ProjectRepository.update_in_transaction(txn, project, {"paymentStatus": new_status, "updatedAt": now})
            return payment, project, outcome

        payment, project, outcome = self.store.run_transaction(_apply)
        logger.info(f"✅ Payment {payment_id}: {action.value} by {user.role} {user.uid}")

        log_activity(
            self.store,
            f"payment_{action.value}",
            outcome.detail,
            user,
            projectId=payment.get("projectId"),
            paymentId=payment_id,
        )
        for effect in outcome.effects:
            effect()
        return self.repo.get(self.store, payment_id)

    def _record_payment(self, payment, project, payload: RecordPaymentData, user) -> Outcome:
        amount = round_money(payload.amount)
        invoice_amount = round_money(payment.get("invoiceAmount"))
        received = round_money((payment.get("paymentReceivedAmount") or 0) + amount)
        status = derive_payment_status(invoice_amount, received)
        paid_at = payload.paymentDate or utcnow()

        history = list(payment.get("paymentHistory") or [])
        history.append(
            {
                "amount": amount,
                "paymentDate": paid_at,
                "reference": payload.reference,
                "recordedBy": user.name,
                "recordedByUid": user.uid,
            }
        )
        updates = {
            "paymentReceivedAmount": received,
            "paymentReceivedDate": paid_at,
            "balanceOutstanding": round_money(max(0, invoice_amount - received)),
            "paymentStatus": status,
            "paymentHistory": history,
        }
        if payload.proofUrl:
            updates["paymentProofUrl"] = payload.proofUrl

        currency = payment.get("currency") or ""
        notifications = _finance_notifications(
            payment,
            project.get("bdmUid") if project else None,
            "payment_received",
            f"Payment received for {payment.get('projectName')} - {currency} {amount:,.2f}",
        )
        effects = [lambda: send_notifications(self.store, notifications)]
        return Outcome(updates, f"Payment received: {currency} {amount:,.2f}", effects)

    def _mark_delayed(self, payment, project, payload: MarkDelayedData, user) -> Outcome:
        updates = {
            "paymentStatus": PaymentStatus.DELAYED.value,
            "delayRemarks": payload.remarks,
            "delayedAt": utcnow(),
        }
        notifications = _finance_notifications(
            payment,
            project.get("bdmUid") if project else None,
            "payment_delayed",
            f"⚠️ Payment delay for {payment.get('projectName')}, please follow up with client",
            roles=(ACCOUNTS, COO, DIRECTOR),
            priority="high",
        )
        effects = [lambda: send_notifications(self.store, notifications)]
        return Outcome(updates, f"Payment marked as delayed: {payload.remarks}", effects)

    def _update_invoice(self, payment, project, payload: UpdateInvoiceData, user) -> Outcome:
        updates = payload.model_dump(exclude_none=True)
        if payload.dueDate:
            updates["dueDate"] = to_utc(payload.dueDate)
        if payload.invoiceAmount is not None:
            invoice_amount = round_money(payload.invoiceAmount)
            received = round_money(payment.get("paymentReceivedAmount"))
            updates["invoiceAmount"] = invoice_amount
            updates["balanceOutstanding"] = round_money(max(0, invoice_amount - received))
            # A manual delay stands until money arrives
            if payment.get("paymentStatus") != PaymentStatus.DELAYED.value:
                updates["paymentStatus"] = derive_payment_status(invoice_amount, received)
        return Outcome(updates, "Invoice updated")
