"""Document store - Firestore access shared by every domain repository"""

import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .firebase import init_firebase

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Firestore rejects batches with more than 500 writes
BATCH_SIZE = 499

# (field, operator, value), e.g. ("status", "==", "pending")
Filter = tuple[str, str, Any]


def _to_dict(snapshot) -> Optional[dict]:
    if not snapshot.exists:
        return None
    return {"id": snapshot.id, **(snapshot.to_dict() or {})}


def _chunks(items: list, size: int = BATCH_SIZE):
    for i in range(0, len(items), size):
        yield items[i : i + size]


class FirestoreTransaction:
    """Reads and writes bound to a single Firestore transaction.

    Firestore requires every read in a transaction to happen before the first write.
    """

    def __init__(self, store: "FirestoreStore", transaction):
        self.store = store
        self.transaction = transaction

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self.store._ref(collection, doc_id).get(transaction=self.transaction)
        return _to_dict(snapshot)

    def query(self, collection: str, filters: Iterable[Filter] = ()) -> list[dict]:
        query = self.store._build_query(collection, filters)
        return [_to_dict(s) for s in query.stream(transaction=self.transaction)]

    def create(self, collection: str, data: dict, doc_id: Optional[str] = None) -> str:
        col = self.store.client.collection(collection)
        ref = col.document(doc_id) if doc_id else col.document()
        self.transaction.create(ref, data)
        return ref.id

    def update(self, collection: str, doc_id: str, updates: dict) -> None:
        self.transaction.update(self.store._ref(collection, doc_id), updates)

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self.transaction.set(self.store._ref(collection, doc_id), data)

    def delete(self, collection: str, doc_id: str) -> None:
        self.transaction.delete(self.store._ref(collection, doc_id))


class FirestoreStore:
    """Dict-shaped document access over a Firestore client"""

    def __init__(self, client):
        self.client = client

    def _ref(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    def _build_query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ):
        query = self.client.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)
        return query

    # ------------------------------------------------------------------
    # Single document operations
    # ------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        if not doc_id:
            return None
        return _to_dict(self._ref(collection, doc_id).get())

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> list[dict]:
        """Fetch several documents in one round trip; missing ids are skipped"""
        refs = [self._ref(collection, doc_id) for doc_id in dict.fromkeys(doc_ids) if doc_id]
        if not refs:
            return []
        return [doc for doc in (_to_dict(s) for s in self.client.get_all(refs)) if doc]

    def create(self, collection: str, data: dict, doc_id: Optional[str] = None) -> str:
        if doc_id:
            self._ref(collection, doc_id).set(data)
            return doc_id
        _, ref = self.client.collection(collection).add(data)
        return ref.id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._ref(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, updates: dict) -> None:
        """Partial update. Dotted keys address nested fields."""
        self._ref(collection, doc_id).update(updates)

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def increment(self, collection: str, doc_id: str, field: str, amount: float, extra: Optional[dict] = None) -> None:
        """Atomic server-side counter increment"""
        updates = {field: firestore.Increment(amount)}
        if extra:
            updates.update(extra)
        self._ref(collection, doc_id).update(updates)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        query = self._build_query(collection, filters, order_by, descending, limit)
        return [_to_dict(s) for s in query.stream()]

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        results = self._build_query(collection, filters).count().get()
        return int(results[0][0].value) if results else 0

    # ------------------------------------------------------------------
    # Batched writes
    # ------------------------------------------------------------------

    def create_many(self, collection: str, docs: list[dict]) -> list[str]:
        ids = []
        col = self.client.collection(collection)
        for chunk in _chunks(docs):
            batch = self.client.batch()
            for data in chunk:
                ref = col.document()
                batch.set(ref, data)
                ids.append(ref.id)
            batch.commit()
        return ids

    def update_many(self, collection: str, doc_ids: list[str], updates: dict) -> int:
        for chunk in _chunks(doc_ids):
            batch = self.client.batch()
            for doc_id in chunk:
                batch.update(self._ref(collection, doc_id), updates)
            batch.commit()
        return len(doc_ids)

    def delete_many(self, collection: str, doc_ids: list[str]) -> int:
        for chunk in _chunks(doc_ids):
            batch = self.client.batch()
            for doc_id in chunk:
                batch.delete(self._ref(collection, doc_id))
            batch.commit()
        return len(doc_ids)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def run_transaction(self, callback: Callable[[FirestoreTransaction], T]) -> T:
        """Run callback(txn) in a Firestore transaction, retried on contention"""
        transaction = self.client.transaction()

        @firestore.transactional
        def _run(transaction):
            return callback(FirestoreTransaction(self, transaction))

        return _run(transaction)


_store: Optional[FirestoreStore] = None


def get_store() -> FirestoreStore:
    """FastAPI dependency returning the process-wide document store"""
    global _store
    if _store is None:
        init_firebase()
        _store = FirestoreStore(firestore.client())
        logger.info("✅ Firestore client created")
    return _store
