"""
Shared test configuration and fixtures for EB-Tracker.

The API runs against an in-memory document store with the same interface as
FirestoreStore. Firebase token checks, Resend and R2 are mocked.
"""

import copy
import itertools
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from ebtracker.database import get_store
from ebtracker.main import app

_MISSING = object()


def _get_path(doc: dict, path: str):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set_path(doc: dict, path: str, value) -> None:
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _matches(doc: dict, field: str, op: str, expected) -> bool:
    value = _get_path(doc, field)
    if value is _MISSING:
        return False
    if op == "==":
        return value == expected
    if op == "!=":
        return value != expected
    if op == "in":
        return value in expected
    if op == "array_contains":
        return isinstance(value, list) and expected in value
    if value is None:
        return False
    if op == ">=":
        return value >= expected
    if op == "<=":
        return value <= expected
    if op == ">":
        return value > expected
    if op == "<":
        return value < expected
    raise ValueError(f"Unsupported operator {op}")


class InMemoryTransaction:
    """Reads go straight to the store; writes are buffered until commit"""

    def __init__(self, store: "InMemoryStore"):
        self.store = store
        self.writes = []

    def get(self, collection, doc_id):
        return self.store.get(collection, doc_id)

    def query(self, collection, filters=()):
        return self.store.query(collection, filters)

    def create(self, collection, data, doc_id=None):
        doc_id = doc_id or self.store.new_id()
        self.writes.append(lambda: self.store.create(collection, data, doc_id))
        return doc_id

    def update(self, collection, doc_id, updates):
        self.writes.append(lambda: self.store.update(collection, doc_id, updates))

    def set(self, collection, doc_id, data):
        self.writes.append(lambda: self.store.set(collection, doc_id, data))

    def delete(self, collection, doc_id):
        self.writes.append(lambda: self.store.delete(collection, doc_id))

    def commit(self):
        for write in self.writes:
            write()


class InMemoryStore:
    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self._ids = itertools.count(1)

    def new_id(self) -> str:
        return f"doc-{next(self._ids)}"

    def _col(self, collection):
        return self.collections.setdefault(collection, {})

    def _out(self, doc_id, data):
        return {"id": doc_id, **copy.deepcopy(data)}

    def all(self, collection) -> list[dict]:
        return [self._out(i, d) for i, d in self._col(collection).items()]

    def get(self, collection, doc_id):
        if not doc_id or doc_id not in self._col(collection):
            return None
        return self._out(doc_id, self._col(collection)[doc_id])

    def get_many(self, collection, doc_ids):
        docs = (self.get(collection, doc_id) for doc_id in dict.fromkeys(doc_ids) if doc_id)
        return [d for d in docs if d]

    def create(self, collection, data, doc_id=None):
        doc_id = doc_id or self.new_id()
        self._col(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def set(self, collection, doc_id, data, merge=False):
        if merge and doc_id in self._col(collection):
            self.update(collection, doc_id, data)
        else:
            self._col(collection)[doc_id] = copy.deepcopy(data)

    def update(self, collection, doc_id, updates):
        if doc_id not in self._col(collection):
            raise KeyError(f"{collection}/{doc_id} does not exist")
        doc = self._col(collection)[doc_id]
        for key, value in updates.items():
            _set_path(doc, key, copy.deepcopy(value))

    def delete(self, collection, doc_id):
        self._col(collection).pop(doc_id, None)

    def increment(self, collection, doc_id, field, amount, extra=None):
        doc = self._col(collection)[doc_id]
        current = _get_path(doc, field)
        _set_path(doc, field, (0 if current is _MISSING or current is None else current) + amount)
        if extra:
            self.update(collection, doc_id, extra)

    def query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        docs = [
            self._out(i, d)
            for i, d in self._col(collection).items()
            if all(_matches(d, f, op, v) for f, op, v in filters)
        ]
        if order_by:
            present = [d for d in docs if _get_path(d, order_by) not in (_MISSING, None)]
            missing = [d for d in docs if _get_path(d, order_by) in (_MISSING, None)]
            present.sort(key=lambda d: _get_path(d, order_by), reverse=descending)
            docs = present + missing
        return docs[:limit] if limit else docs

    def count(self, collection, filters=()):
        return len(self.query(collection, filters))

    def create_many(self, collection, docs):
        return [self.create(collection, d) for d in docs]

    def update_many(self, collection, doc_ids, updates):
        for doc_id in doc_ids:
            self.update(collection, doc_id, updates)
        return len(doc_ids)

    def delete_many(self, collection, doc_ids):
        for doc_id in doc_ids:
            self.delete(collection, doc_id)
        return len(doc_ids)

    def run_transaction(self, callback):
        txn = InMemoryTransaction(self)
        result = callback(txn)
        txn.commit()
        return result


USERS = {
    "bdm-1": {"name": "Bea Morgan", "email": "bdm1@example.com", "role": "bdm"},
    "bdm-2": {"name": "Ben Ortiz", "email": "bdm2@example.com", "role": "bdm"},
    "estimator-1": {"name": "Esa Tran", "email": "estimator@example.com", "role": "estimator"},
    "coo-1": {"name": "Cora Oduya", "email": "coo@example.com", "role": "coo"},
    "director-1": {"name": "Dev Rao", "email": "director@example.com", "role": "director"},
    "lead-1": {"name": "Lee Park", "email": "lead@example.com", "role": "design_lead"},
    "designer-1": {"name": "Dana Ng", "email": "designer1@example.com", "role": "designer"},
    "designer-2": {"name": "Drew Li", "email": "designer2@example.com", "role": "designer"},
    "accounts-1": {"name": "Ash Kim", "email": "accounts@example.com", "role": "accounts"},
}


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def store():
    store = InMemoryStore()
    for uid, user in USERS.items():
        store.create("users", {**user, "status": "active", "createdAt": utc(2024, 1, 1)}, doc_id=uid)
    return store


@pytest.fixture(autouse=True)
def _fake_token_verification(monkeypatch):
    def verify(token):
        if not token.startswith("token-"):
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        return {"uid": token[len("token-"):]}

    monkeypatch.setattr("ebtracker.auth.verify_id_token", verify)


@pytest.fixture(autouse=True)
def resend_send(monkeypatch):
    """Mock Resend so no email leaves the process"""
    send = MagicMock(return_value={"id": "email-1"})
    monkeypatch.setattr("ebtracker.email_service.RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr("resend.Emails.send", send)
    monkeypatch.setattr("ebtracker.email_service.compile_mjml_to_html", lambda mjml: "<html></html>")
    return send


@pytest.fixture(autouse=True)
def r2_client(monkeypatch):
    """Mock the R2 client used by ebtracker.storage"""
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://r2.example.com/signed"
    monkeypatch.setattr("ebtracker.storage.get_r2_client", lambda: client)
    return client


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_project(store):
    """Insert a project document and return its id"""

    def _make(**fields):
        project = {
            "projectName": "Harbor Tower",
            "projectCode": "PN-100",
            "clientCompany": "Acme Developments",
            "bdmUid": "bdm-1",
            "bdmEmail": "bdm1@example.com",
            "designLeadUid": "lead-1",
            "designLeadName": "Lee Park",
            "assignedDesigners": ["designer-1"],
            "status": "in_progress",
            "designStatus": "in_progress",
            "maxAllocatedHours": 10,
            "additionalHours": 0,
            "hoursLogged": 0,
            "totalInvoiced": 0,
            "currency": "USD",
            "createdAt": utc(2024, 2, 1),
        }
        project.update(fields)
        return store.create("projects", project)

    return _make


@pytest.fixture
def make_timesheet(store):
    def _make(project_id, hours, designer_uid="designer-1", **fields):
        entry = {
            "projectId": project_id,
            "designerUid": designer_uid,
            "hours": hours,
            "date": utc(2024, 3, 1),
            "description": "Drafting",
            "createdAt": utc(2024, 3, 1),
        }
        entry.update(fields)
        return store.create("timesheets", entry)

    return _make
