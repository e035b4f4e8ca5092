"""
Manual bill management for administrators.

Bills created here have no source provenance; their status is derived
from the vote date unless the administrator sets one explicitly.

Responsibility: Validated create / update / delete of published bills
"""

from datetime import datetime
from typing import Any, Dict, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import ImportConfig
from ..db.models import BillModel
from ..db.repositories import BillRepository
from ..models.bill import BillStatus, Level, SENTINEL_THEME, THEMES, TITLE_MAX_LENGTH
from ..orchestration.status_lifecycle import determine_status
from ..utils.text import is_blank, parse_datetime

logger = logging.getLogger(__name__)

CREATE_REQUIRED_FIELDS = ("id", "title", "summary", "level", "chamber", "vote_datetime")
UPDATABLE_FIELDS = (
    "title",
    "summary",
    "full_text_url",
    "level",
    "chamber",
    "vote_datetime",
    "status",
    "theme",
    "ai_summary",
    "ai_abstract",
    "ai_pour",
    "ai_contre",
    "ai_concerne",
)


class AdminError(Exception):
    """
    Admin request refused.

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
    def unauthorized(cls) -> "AdminError":
        return cls("unauthorized", "Mot de passe administrateur invalide", 401)

    @classmethod
    def validation(cls, message: str) -> "AdminError":
        return cls("validation_error", message, 400)

    @classmethod
    def not_found(cls, bill_id: str) -> "AdminError":
        return cls("not_found", f"Projet de loi '{bill_id}' introuvable", 404)

    @classmethod
    def conflict(cls, bill_id: str) -> "AdminError":
        return cls("conflict", f"Un projet avec l'identifiant '{bill_id}' existe déjà", 409)


class AdminBillService:
    """
    Create, update and delete published bills by hand.

    Example:
        service = AdminBillService(session, settings.imports)
        bill = await service.create({
            "id": "fr-loi-test-2025",
            "title": "Loi Test",
            "summary": "Résumé",
            "level": "france",
            "chamber": "Assemblée Nationale",
            "vote_datetime": "2025-06-01 15:00:00",
        })
    """

    def __init__(self, session: AsyncSession, config: Optional[ImportConfig] = None):
        self.session = session
        self.config = config or ImportConfig()
        self.bills = BillRepository(session)

    async def create(self, fields: Dict[str, Any], now: Optional[datetime] = None) -> BillModel:
        """
        Create a bill from administrator input.

        Raises:
            AdminError: validation_error or conflict
        """
        now = now or datetime.utcnow()
        missing = [name for name in CREATE_REQUIRED_FIELDS if is_blank(fields.get(name))]
        if missing:
            raise AdminError.validation(f"Champ requis manquant : {', '.join(missing)}")

        values = self._validate({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
        bill_id = str(fields["id"]).strip()
        if await self.bills.exists(bill_id):
            raise AdminError.conflict(bill_id)

        values.setdefault("theme", SENTINEL_THEME)
        if "status" not in values:
            values["status"] = determine_status(
                values["vote_datetime"], now, self.config.lookahead_days
            ).value

        bill = await self.bills.create(id=bill_id, **values)
        logger.info(f"Admin created bill {bill.id} ({bill.status})")
        return bill

    async def update(self, bill_id: Optional[str], fields: Dict[str, Any], now: Optional[datetime] = None) -> BillModel:
        """
        Apply a partial update; omitted fields keep their value.

        Raises:
            AdminError: validation_error or not_found
        """
        now = now or datetime.utcnow()
        bill = await self._get(bill_id)

        values = self._validate({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
        if not values:
            raise AdminError.validation("Aucun champ à mettre à jour")

        if "vote_datetime" in values and "status" not in values:
            values["status"] = determine_status(
                values["vote_datetime"],
                now,
                self.config.lookahead_days,
                current=BillStatus(bill.status),
            ).value

        await self.bills.update(bill, values)
        logger.info(f"Admin updated bill {bill.id}: {', '.join(sorted(values))}")
        return bill

    async def delete(self, bill_id: Optional[str]) -> None:
        """
        Delete a bill together with its votes.

        Raises:
            AdminError: validation_error or not_found
        """
        if is_blank(bill_id):
            raise AdminError.validation("Champ requis manquant : id")
        bill_id = bill_id.strip()
        if not await self.bills.delete(bill_id):
            raise AdminError.not_found(bill_id)
        logger.info(f"Admin deleted bill {bill_id}")

    async def _get(self, bill_id: Optional[str]) -> BillModel:
        if is_blank(bill_id):
            raise AdminError.validation("Champ requis manquant : id")
        bill = await self.bills.get_by_id(bill_id.strip())
        if bill is None:
            raise AdminError.not_found(bill_id.strip())
        return bill

    def _validate(self, values: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: v.strip() if isinstance(v, str) else v for k, v in values.items()}

        if "title" in values:
            if is_blank(values["title"]):
                raise AdminError.validation("Le titre est requis")
            if len(values["title"]) > TITLE_MAX_LENGTH:
                raise AdminError.validation(f"Le titre dépasse {TITLE_MAX_LENGTH} caractères")
        if "level" in values and values["level"] not in (Level.EU.value, Level.FRANCE.value):
            raise AdminError.validation("Niveau invalide (eu ou france)")
        if "chamber" in values and is_blank(values["chamber"]):
            raise AdminError.validation("La chambre est requise")
        if "status" in values and values["status"] not in {s.value for s in BillStatus}:
            raise AdminError.validation("Statut invalide (upcoming, voting_now ou completed)")
        if "theme" in values and values["theme"] not in THEMES:
            raise AdminError.validation(f"Thème inconnu : {values['theme']}")

        if "vote_datetime" in values:
            parsed = parse_datetime(values["vote_datetime"])
            if parsed is None:
                raise AdminError.validation("Date de vote invalide (YYYY-MM-DD HH:MM:SS)")
            values["vote_datetime"] = parsed

        return values
