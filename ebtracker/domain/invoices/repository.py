"""Invoice repository - Document store operations for invoices"""

from typing import Optional

INVOICES = "invoices"


class InvoiceRepository:
    @staticmethod
    def get(store, invoice_id: str) -> Optional[dict]:
        return store.get(INVOICES, invoice_id)

    @staticmethod
    def list_invoices(store, status: Optional[str] = None, project_id: Optional[str] = None) -> list[dict]:
        filters = []
        if status:
            filters.append(("status", "==", status))
        if project_id:
            filters.append(("projectId", "==", project_id))
        return store.query(INVOICES, filters, order_by="createdAt", descending=True)

    @staticmethod
    def list_unpaid(store) -> list[dict]:
        return store.query(INVOICES, [("status", "!=", "paid")])

    @staticmethod
    def create(store, data: dict) -> str:
        return store.create(INVOICES, data)

    @staticmethod
    def update(store, invoice_id: str, updates: dict) -> None:
        store.update(INVOICES, invoice_id, updates)

    @staticmethod
    def delete(store, invoice_id: str) -> None:
        store.delete(INVOICES, invoice_id)
