"""
Human review of queued bills.

Approval copies a pending bill into the public bills table under a new
slug id; rejection records the reviewer's notes. Both are terminal: a
reviewed pending bill is never modified again, and it is never deleted.

Responsibility: Review queue state machine (pending -> approved | rejected)
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from .bill_ids import generate_bill_id
from ..config import ImportConfig
from ..db.models import BillModel, PendingBillModel
from ..db.repositories import BillRepository, PendingBillRepository
from ..models.bill import BillStatus, Level, ReviewStatus, TITLE_MAX_LENGTH
from ..utils.text import is_blank, parse_datetime

logger = logging.getLogger(__name__)

EDIT_REQUIRED_FIELDS = ("title", "summary", "vote_datetime", "level")
EDITABLE_FIELDS = ("id", "title", "summary", "full_text_url", "level", "chamber", "vote_datetime", "theme")


class ReviewError(Exception):
    """
    Review action refused.

    Attributes:
        category: Stable machine-readable category
        status_code: HTTP status used by the API layer
    """

    def __init__(self, category: str, message: str, status_code: int):
        super().__init__(message)
        self.category = category
        self.message = message
        self.status_code = status_code

    @classmethod
    def not_found(cls, pending_id: int) -> "ReviewError":
        return cls("not_found", f"Projet de loi en attente {pending_id} introuvable", 404)

    @classmethod
    def invalid_state(cls, status: str) -> "ReviewError":
        return cls("invalid_state", f"Ce projet a déjà été traité (statut : {status})", 409)

    @classmethod
    def conflict(cls, bill_id: str) -> "ReviewError":
        return cls("conflict", f"Un projet avec l'identifiant '{bill_id}' existe déjà", 409)

    @classmethod
    def validation(cls, message: str) -> "ReviewError":
        return cls("validation_error", message, 400)


class ReviewService:
    """
    Approve, edit-and-approve or reject pending bills.

    Example:
        service = ReviewService(session, settings.imports)
        bill = await service.approve(42)
    """

    def __init__(self, session: AsyncSession, config: Optional[ImportConfig] = None):
        self.session = session
        self.config = config or ImportConfig()
        self.pending = PendingBillRepository(session)
        self.bills = BillRepository(session)

    async def list_pending(self, status: Optional[str] = ReviewStatus.PENDING.value, limit: int = 100) -> List[PendingBillModel]:
        return await self.pending.list_by_status(status, limit)

    async def approve(
        self,
        pending_id: int,
        overrides: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> BillModel:
        """
        Publish a pending bill.

        Args:
            pending_id: Review queue id
            overrides: Optional field overrides (see EDITABLE_FIELDS)
            now: Reference time

        Returns:
            The created BillModel

        Raises:
            ReviewError: not_found, invalid_state, conflict or validation_error
        """
        now = now or datetime.utcnow()
        model = await self._get_reviewable(pending_id)
        fields = self._merge(model, overrides or {}, now)

        bill_id = fields.pop("id", None)
        if bill_id:
            if await self.bills.exists(bill_id):
                raise ReviewError.conflict(bill_id)
        else:
            bill_id = await generate_bill_id(self.bills, fields["level"], fields["title"], now)

        bill = await self.bills.create(
            id=bill_id,
            status=BillStatus.UPCOMING.value,
            source=model.source,
            external_id=model.external_id,
            ai_summary=model.ai_summary,
            ai_abstract=model.ai_abstract,
            ai_pour=model.ai_pour,
            ai_contre=model.ai_contre,
            ai_concerne=model.ai_concerne,
            ai_confidence=model.ai_confidence,
            ai_processed_at=model.ai_processed_at,
            **fields,
        )

        model.status = ReviewStatus.APPROVED.value
        model.reviewed_at = now
        model.bill_id = bill.id
        await self.session.flush()

        logger.info(f"Approved pending bill {pending_id} as {bill.id}")
        return bill

    async def edit_approve(
        self,
        pending_id: int,
        overrides: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> BillModel:
        """
        Approve with reviewer edits; title, summary, vote_datetime and
        level must all be present in the edits.
        """
        missing = [field for field in EDIT_REQUIRED_FIELDS if is_blank(overrides.get(field))]
        if missing:
            raise ReviewError.validation(f"Champ requis manquant : {', '.join(missing)}")
        return await self.approve(pending_id, overrides, now)

    async def reject(self, pending_id: int, notes: Optional[str] = None, now: Optional[datetime] = None) -> PendingBillModel:
        """
        Reject a pending bill.

        Raises:
            ReviewError: not_found or invalid_state
        """
        model = await self._get_reviewable(pending_id)
        model.status = ReviewStatus.REJECTED.value
        model.reviewed_at = now or datetime.utcnow()
        model.notes = notes or None
        await self.session.flush()

        logger.info(f"Rejected pending bill {pending_id}")
        return model

    async def _get_reviewable(self, pending_id: int) -> PendingBillModel:
        model = await self.pending.get_by_id(pending_id)
        if model is None:
            raise ReviewError.not_found(pending_id)
        if model.status != ReviewStatus.PENDING.value:
            raise ReviewError.invalid_state(model.status)
        return model

    def _merge(self, model: PendingBillModel, overrides: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        unknown = set(overrides) - set(EDITABLE_FIELDS)
        if unknown:
            raise ReviewError.validation(f"Champs inconnus : {', '.join(sorted(unknown))}")

        fields: Dict[str, Any] = {
            "title": model.title,
            "summary": model.summary,
            "full_text_url": model.full_text_url,
            "level": model.level,
            "chamber": model.chamber,
            "vote_datetime": model.vote_datetime,
            "theme": model.theme,
        }
        for key, value in overrides.items():
            if key != "id" and value is None:
                continue
            fields[key] = value.strip() if isinstance(value, str) else value

        if is_blank(fields["title"]):
            raise ReviewError.validation("Le titre est requis")
        if len(fields["title"]) > TITLE_MAX_LENGTH:
            raise ReviewError.validation(f"Le titre dépasse {TITLE_MAX_LENGTH} caractères")
        if fields["level"] not in (Level.EU.value, Level.FRANCE.value):
            raise ReviewError.validation("Niveau invalide (eu ou france)")

        vote_datetime = fields["vote_datetime"]
        if isinstance(vote_datetime, str):
            vote_datetime = parse_datetime(vote_datetime)
            if vote_datetime is None:
                raise ReviewError.validation("Date de vote invalide")
        fields["vote_datetime"] = vote_datetime or now + timedelta(days=self.config.approval_default_vote_days)

        if is_blank(fields.get("id")):
            fields.pop("id", None)

        return fields
