"""Data access layer for submission attempts"""

from typing import List

from sqlalchemy.orm import Session

from onboarding_gateway.domain.models import SubmissionResult
from onboarding_gateway.infrastructure.database.models import SubmissionAttempt


def outcome_label(result: SubmissionResult) -> str:
    if result.succeeded:
        return "succeeded"
    if result.partial:
        return "partial"
    return "failed"


class SubmissionAttemptRepository:
    """Repository for submission audit rows"""

    def __init__(self, db: Session):
        self.db = db

    def record_attempt(self, session_id: str, result: SubmissionResult) -> SubmissionAttempt:
        """Persist the outcome of one submission run"""
        attempt = SubmissionAttempt(
            session_id=session_id,
            account_type=result.account_type,
            profile_branch=result.branch.value,
            outcome=outcome_label(result),
            failed_step=result.failed_step.value if result.failed_step else None,
            account_id=result.account_id,
            partial=result.partial,
            error=result.error,
        )
        self.db.add(attempt)
        self.db.flush()  # Get ID without committing
        return attempt

    def get_attempts_by_session(self, session_id: str, limit: int = 10) -> List[SubmissionAttempt]:
        """Fetch recent attempts for a session, newest first"""
        return (
            self.db.query(SubmissionAttempt)
            .filter(SubmissionAttempt.session_id == session_id)
            .order_by(SubmissionAttempt.created_at.desc())
            .limit(limit)
            .all()
        )
