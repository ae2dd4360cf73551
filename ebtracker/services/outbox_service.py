"""
Side-effect outbox
Every email dispatch and every failed notification/activity write leaves a
record here so failures are queryable and can be replayed
"""

import logging
from typing import Optional

from ..config import OUTBOX_MAX_ATTEMPTS
from ..email_service import send_email_notification
from ..shared.validators import utcnow

logger = logging.getLogger(__name__)

OUTBOX = "outbox"
FAILED = "failed"
DEAD = "dead"

# kind -> collection a replayed write goes to
WRITE_KINDS = {"notification": "notifications", "activity": "activities"}


def _safe_create(store, entry: dict) -> Optional[str]:
    try:
        return store.create(OUTBOX, entry)
    except Exception as e:
        logger.error(f"❌ Could not record {entry.get('kind')} in outbox: {e}")
        return None


def _safe_update(store, entry_id: Optional[str], updates: dict) -> None:
    if not entry_id:
        return
    try:
        store.update(OUTBOX, entry_id, {**updates, "updatedAt": utcnow()})
    except Exception as e:
        logger.error(f"❌ Could not update outbox entry {entry_id}: {e}")


def record_failed_write(store, kind: str, payload: dict, error: Exception) -> Optional[str]:
    """Track a notification/activity document that could not be written"""
    now = utcnow()
    return _safe_create(
        store,
        {
            "kind": kind,
            "event": payload.get("type"),
            "payload": payload,
            "status": FAILED,
            "attempts": 1,
            "lastError": str(error),
            "createdAt": now,
            "updatedAt": now,
        },
    )


def failed_status(attempts: int) -> str:
    """Entries out of attempts become `dead` so they drop out of the retry queue"""
    return DEAD if attempts >= OUTBOX_MAX_ATTEMPTS else FAILED


def _apply_email_result(store, entry_id: Optional[str], attempts: int, result: dict) -> None:
    if result.get("success"):
        updates = {"status": "sent", "providerId": result.get("id"), "recipients": result.get("recipients", [])}
    elif result.get("skipped"):
        updates = {"status": "skipped", "lastError": result.get("message")}
    else:
        updates = {"status": failed_status(attempts), "lastError": result.get("error")}
    _safe_update(store, entry_id, {**updates, "attempts": attempts})


def dispatch_email(store, event: str, data: dict) -> dict:
    """Send a workflow email and track the attempt. Never raises."""
    now = utcnow()
    entry_id = _safe_create(
        store,
        {
            "kind": "email",
            "event": event,
            "payload": data,
            "status": "pending",
            "attempts": 0,
            "createdAt": now,
            "updatedAt": now,
        },
    )
    result = send_email_notification(store, event, data)
    _apply_email_result(store, entry_id, 1, result)
    return {**result, "outboxId": entry_id}


def list_entries(store, status: Optional[str] = None, kind: Optional[str] = None, limit: int = 50) -> list[dict]:
    filters = []
    if status:
        filters.append(("status", "==", status))
    if kind:
        filters.append(("kind", "==", kind))
    return store.query(OUTBOX, filters, order_by="createdAt", descending=True, limit=limit)


def retry_entry(store, entry: dict) -> bool:
    """Replay one failed entry. Returns True when it now succeeded."""
    attempts = int(entry.get("attempts") or 0) + 1
    kind = entry.get("kind")

    if kind == "email":
        result = send_email_notification(store, entry.get("event"), entry.get("payload") or {})
        _apply_email_result(store, entry["id"], attempts, result)
        return bool(result.get("success"))

    collection = WRITE_KINDS.get(kind)
    if not collection:
        logger.warning(f"⚠️ Unknown outbox kind '{kind}' on entry {entry['id']}")
        return False
    try:
        store.create(collection, entry.get("payload") or {})
    except Exception as e:
        _safe_update(store, entry["id"], {"status": failed_status(attempts), "attempts": attempts, "lastError": str(e)})
        return False
    _safe_update(store, entry["id"], {"status": "sent", "attempts": attempts})
    return True


def retry_failed(store, limit: int = 50) -> dict:
    """Retry failed entries that still have attempts left, oldest first"""
    entries = []
    for entry in store.query(OUTBOX, [("status", "==", FAILED)], order_by="createdAt"):
        if int(entry.get("attempts") or 0) >= OUTBOX_MAX_ATTEMPTS:
            _safe_update(store, entry["id"], {"status": DEAD})
        elif len(entries) < limit:
            entries.append(entry)

    succeeded = 0
    for entry in entries:
        if retry_entry(store, entry):
            succeeded += 1
    summary = {"retried": len(entries), "succeeded": succeeded, "failed": len(entries) - succeeded}
    logger.info(f"🔁 Outbox retry complete: {summary}")
    return summary
