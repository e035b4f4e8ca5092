"""
Bill status lifecycle.

Status is a function of the vote date relative to now: past votes are
completed, votes inside the lookahead window are voting_now, later votes
are upcoming. Completed bills are never reopened.

Responsibility: Time-driven status transitions of published bills
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
import logging

from ..db.repositories import BillRepository
from ..db.session import Database
from ..models.bill import BillStatus

logger = logging.getLogger(__name__)


def determine_status(
    vote_datetime: Optional[datetime],
    now: datetime,
    lookahead_days: int = 7,
    current: Optional[BillStatus] = None,
) -> BillStatus:
    """
    Compute a bill's status at a point in time.

    Args:
        vote_datetime: Scheduled vote (None keeps the current status)
        now: Reference time (naive UTC)
        lookahead_days: Window in which a vote counts as voting_now
        current: Status stored today, if any

    Returns:
        The status the bill should have at `now`

    Example:
        >>> determine_status(now + timedelta(days=3), now)
        BillStatus.VOTING_NOW
    """
    if current == BillStatus.COMPLETED:
        return BillStatus.COMPLETED
    if vote_datetime is None:
        return current or BillStatus.UPCOMING
    if vote_datetime < now:
        return BillStatus.COMPLETED
    if vote_datetime <= now + timedelta(days=lookahead_days):
        return BillStatus.VOTING_NOW
    return BillStatus.UPCOMING


class StatusLifecycleJob:
    """
    Apply determine_status to every published bill in bulk.

    Idempotent: a second run at the same instant changes nothing.

    Example:
        job = StatusLifecycleJob(db, lookahead_days=7)
        counts = await job.run()
    """

    def __init__(self, db: Database, lookahead_days: int = 7):
        self.db = db
        self.lookahead_days = lookahead_days

    async def run(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Run one lifecycle pass.

        Returns:
            Number of bills moved into each status
        """
        now = now or datetime.utcnow()
        async with self.db.session() as session:
            counts = await BillRepository(session).update_statuses(now, self.lookahead_days)

        moved = sum(counts.values())
        if moved:
            logger.info(
                f"Updated {moved} bill statuses "
                f"(completed={counts['completed']}, voting_now={counts['voting_now']}, "
                f"upcoming={counts['upcoming']})"
            )
        else:
            logger.info("Bill statuses already up to date")
        return counts
