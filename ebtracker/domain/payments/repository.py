"""Payment repository - Document store operations for payment records"""

from typing import Optional

PAYMENTS = "payments"


class PaymentRepository:
    @staticmethod
    def get(store, payment_id: str) -> Optional[dict]:
        return store.get(PAYMENTS, payment_id)

    @staticmethod
    def list_payments(store, project_id: Optional[str] = None, status: Optional[str] = None) -> list[dict]:
        filters = []
        if project_id:
            filters.append(("projectId", "==", project_id))
        if status:
            filters.append(("paymentStatus", "==", status))
        return store.query(PAYMENTS, filters, order_by="createdAt", descending=True)

    @staticmethod
    def list_open(store) -> list[dict]:
        """Payments the overdue sweep may flag"""
        return store.query(PAYMENTS, [("paymentStatus", "in", ["pending", "partially_paid"])])

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(PAYMENTS, data)
