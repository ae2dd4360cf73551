"""Activity log - append-only audit trail"""

import logging
from typing import Optional

from ..shared.validators import utcnow
from .outbox_service import record_failed_write

logger = logging.getLogger(__name__)


def log_activity(store, activity_type: str, details: str, user, **related) -> Optional[str]:
    """
    Append an activity record.

    `related` carries ids such as proposalId / projectId; None values are dropped.
    A failed write is recorded in the outbox instead of failing the caller.
    """
    activity = {
        "type": activity_type,
        "details": details,
        "performedByName": getattr(user, "name", None) or "System",
        "performedByRole": getattr(user, "role", None) or "system",
        "performedByUid": getattr(user, "uid", None),
        "timestamp": utcnow(),
    }
    activity.update({k: v for k, v in related.items() if v is not None})

    try:
        return store.create("activities", activity)
    except Exception as e:
        logger.error(f"❌ Failed to log activity {activity_type}: {e}")
        record_failed_write(store, "activity", activity, e)
        return None
