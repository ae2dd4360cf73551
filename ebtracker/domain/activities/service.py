"""Activity service - Activity feed, scoped to the caller's proposals for BDMs"""

from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser
from ...shared.roles import BDM
from ..proposals.repository import ProposalRepository
from .repository import ActivityRepository

# Firestore caps `in` filters at 10 values
IN_QUERY_LIMIT = 10


class ActivityService:
    def __init__(self, store):
        self.store = store
        self.repo = ActivityRepository()

    def list_activities(self, user: CurrentUser, limit: int = 20, proposal_id: Optional[str] = None) -> list[dict]:
        if proposal_id:
            if user.role == BDM:
                proposal = ProposalRepository.get(self.store, proposal_id)
                if not proposal or proposal.get("createdByUid") != user.uid:
                    raise HTTPException(
                        status_code=403,
                        detail="Access denied. You can only view activities for your own proposals.",
                    )
            return self.repo.recent_for_proposal(self.store, proposal_id, limit)

        if user.role != BDM:
            return self.repo.recent(self.store, limit)

        proposal_ids = [p["id"] for p in ProposalRepository.list_by_creator(self.store, user.uid)]
        if not proposal_ids:
            return []
        if len(proposal_ids) <= IN_QUERY_LIMIT:
            return self.repo.recent_for_proposals(self.store, proposal_ids, limit)

        # Too many proposals for one `in` filter: over-fetch and filter in memory
        own = set(proposal_ids)
        activities = self.repo.recent(self.store, limit * 2)
        return [a for a in activities if a.get("proposalId") in own][:limit]
