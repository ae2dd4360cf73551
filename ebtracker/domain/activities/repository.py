"""Activity repository - Read side of the append-only activity log"""

ACTIVITIES = "activities"


class ActivityRepository:
    @staticmethod
    def recent(store, limit: int, filters=()) -> list[dict]:
        return store.query(ACTIVITIES, list(filters), order_by="timestamp", descending=True, limit=limit)

    @staticmethod
    def recent_for_proposal(store, proposal_id: str, limit: int) -> list[dict]:
        return ActivityRepository.recent(store, limit, [("proposalId", "==", proposal_id)])

    @staticmethod
    def recent_for_proposals(store, proposal_ids: list[str], limit: int) -> list[dict]:
        return ActivityRepository.recent(store, limit, [("proposalId", "in", proposal_ids)])
