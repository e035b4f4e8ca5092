"""
Re-classification of bills left under the sentinel theme.

Picks up bills whose classification failed at import time (or that were
imported while the classifier was unavailable) and classifies them again.
Database sessions are not held open across classifier calls.

Responsibility: Catch-up classification of pending and published bills
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
import logging

from .classification_service import ClassificationService
from .full_text_service import FullTextService
from ..db.repositories import BillRepository, PendingBillRepository
from ..db.session import Database
from ..models.bill import ReviewStatus
from ..models.classification import ClassificationOutcome
from ..utils.text import is_blank

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReclassificationStats:
    processed: int = 0
    classified: int = 0
    failed: int = 0
    skipped: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "classified": self.classified,
            "failed": self.failed,
            "skipped": self.skipped,
        }


# (record id, title, summary, full_text_url)
Candidate = Tuple[object, str, Optional[str], Optional[str]]


class ReclassificationService:
    """
    Classify pending bills (review mode) or published bills (direct mode)
    that are unclassified or still under the sentinel theme.

    Example:
        service = ReclassificationService(db, classifier, full_text)
        stats = await service.run(limit=10)
    """

    def __init__(
        self,
        db: Database,
        classifier: ClassificationService,
        full_text: Optional[FullTextService] = None,
        delay_seconds: float = 1.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize re-classification job.

        Args:
            db: Database manager
            classifier: Classification service
            full_text: Full text fetcher (optional)
            delay_seconds: Pause between classifier calls
            sleep: Awaitable sleep (tests pass a no-op)
        """
        self.db = db
        self.classifier = classifier
        self.full_text = full_text
        self.delay_seconds = delay_seconds
        self._sleep = sleep or asyncio.sleep

    async def run(self, limit: int = 10, force: bool = False) -> Dict[str, int]:
        """
        Re-classify pending bills.

        Args:
            limit: Maximum number of bills
            force: Re-classify every pending bill, even classified ones

        Returns:
            Counts of processed, classified, failed and skipped bills
        """
        async with self.db.session() as session:
            rows = await PendingBillRepository(session).list_needing_classification(limit, force)
            candidates = [(row.id, row.title, row.summary, row.full_text_url) for row in rows]

        return await self._process(candidates, self._store_pending)

    async def run_published(self, limit: int = 10) -> Dict[str, int]:
        """Re-classify published bills still unclassified or under the sentinel theme."""
        async with self.db.session() as session:
            rows = await BillRepository(session).list_needing_classification(limit)
            candidates = [(row.id, row.title, row.summary, row.full_text_url) for row in rows]

        return await self._process(candidates, self._store_published)

    async def _process(self, candidates: List[Candidate], store) -> Dict[str, int]:
        stats = ReclassificationStats()
        if not candidates:
            logger.info("No bills found for re-classification")
            return stats.as_dict()

        logger.info(f"Found {len(candidates)} bills to re-classify")

        for index, (record_id, title, summary, full_text_url) in enumerate(candidates):
            stats.processed += 1

            full_text = None
            if self.full_text is not None and full_text_url:
                full_text = await self.full_text.fetch(full_text_url)

            if is_blank(summary) and is_blank(full_text):
                logger.info(f"Skipping bill {record_id}: no content available for classification")
                stats.skipped += 1
                continue

            outcome = await self.classifier.classify(title, summary, full_text)
            if not outcome.succeeded:
                stats.failed += 1
                logger.error(f"Failed to classify bill {record_id}: {outcome.error}")
            elif await store(record_id, outcome):
                stats.classified += 1
                logger.info(f"Bill {record_id} classified as '{outcome.classification.theme}'")
            else:
                stats.skipped += 1
                logger.info(f"Bill {record_id} was removed or reviewed during classification, result dropped")

            if index < len(candidates) - 1 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)

        logger.info(
            f"Re-classification done: {stats.classified} classified, "
            f"{stats.failed} failed, {stats.skipped} skipped"
        )
        return stats.as_dict()

    async def _store_pending(self, pending_id, outcome: ClassificationOutcome) -> bool:
        async with self.db.session() as session:
            repo = PendingBillRepository(session)
            model = await repo.get_by_id(pending_id)
            if model is None or model.status != ReviewStatus.PENDING.value:
                return False
            await repo.apply_classification(model, outcome.classification)
        return True

    async def _store_published(self, bill_id, outcome: ClassificationOutcome) -> bool:
        classification = outcome.classification
        async with self.db.session() as session:
            repo = BillRepository(session)
            model = await repo.get_by_id(bill_id)
            if model is None:
                return False
            await repo.update(model, {
                "theme": classification.theme,
                "ai_summary": classification.summary,
                "ai_abstract": classification.abstract,
                "ai_pour": classification.pour,
                "ai_contre": classification.contre,
                "ai_concerne": list(classification.concerne) or None,
                "ai_confidence": classification.confidence,
                "ai_processed_at": datetime.utcnow(),
            })
        return True
