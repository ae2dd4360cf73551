"""Submission repository - Document store operations for client submissions"""

from typing import Optional

SUBMISSIONS = "submissions"


class SubmissionRepository:
    @staticmethod
    def get(store, submission_id: str) -> Optional[dict]:
        return store.get(SUBMISSIONS, submission_id)

    @staticmethod
    def list_submissions(store, project_id: Optional[str] = None, client_feedback: Optional[str] = None) -> list[dict]:
        filters = []
        if project_id:
            filters.append(("projectId", "==", project_id))
        if client_feedback:
            filters.append(("clientFeedback", "==", client_feedback))
        return store.query(SUBMISSIONS, filters, order_by="submittedAt", descending=True)
