"""
Admin API endpoints.

Manual bill management and the review queue. Bill CRUD carries the
admin password in its body; every other route expects it in the
X-Admin-Password header.

Responsibility: Admin routes
"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_settings, require_admin, verify_admin_password
from api.v1.schemas.admin import (
    AdminBillRequest,
    AdminBillResponse,
    ApproveResponse,
    ImportLogListResponse,
    ImportLogResponse,
    PendingBillResponse,
    PendingEdit,
    PendingListResponse,
    RejectRequest,
    RejectResponse,
)
from api.v1.schemas.bills import BillResponse
from constituant.config import Settings
from constituant.db.repositories import ImportLogRepository
from constituant.db.session import get_session
from constituant.models.bill import ReviewStatus
from constituant.services.admin_service import AdminBillService, AdminError
from constituant.services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


@router.post("/bills", response_model=AdminBillResponse)
async def manage_bill(
    payload: AdminBillRequest,
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> AdminBillResponse:
    """Create, update or delete a published bill."""
    verify_admin_password(payload.admin_password, app_settings)

    service = AdminBillService(db, app_settings.imports)
    fields = payload.bill.model_dump(exclude_unset=True)
    action = payload.action.strip().lower()

    if action == "create":
        bill = await service.create(fields)
        message = "Projet de loi créé"
    elif action == "update":
        bill = await service.update(fields.pop("id", None), fields)
        message = "Projet de loi mis à jour"
    elif action == "delete":
        await service.delete(fields.get("id"))
        await db.commit()
        return AdminBillResponse(action=action, message="Projet de loi supprimé")
    else:
        raise AdminError.validation("Action invalide. Doit être : create, update ou delete")

    await db.commit()
    return AdminBillResponse(
        action=action,
        message=message,
        bill=BillResponse.model_validate(bill),
    )


@router.get("/pending", response_model=PendingListResponse, dependencies=[Depends(require_admin)])
async def list_pending(
    status: Optional[str] = Query(ReviewStatus.PENDING.value, description="pending, approved or rejected"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_session)
) -> PendingListResponse:
    """Review queue, newest first."""
    rows = await ReviewService(db).list_pending(status=status, limit=limit)
    return PendingListResponse(
        count=len(rows),
        pending=[PendingBillResponse.model_validate(row) for row in rows],
    )


@router.post("/pending/{pending_id}/approve", response_model=ApproveResponse, dependencies=[Depends(require_admin)])
async def approve_pending(
    pending_id: int,
    edits: Optional[PendingEdit] = None,
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> ApproveResponse:
    """Publish a pending bill, optionally with edits."""
    service = ReviewService(db, app_settings.imports)
    bill = await service.approve(pending_id, edits.overrides() if edits else None)
    await db.commit()
    return ApproveResponse(bill=BillResponse.model_validate(bill))


@router.post("/pending/{pending_id}/edit-approve", response_model=ApproveResponse, dependencies=[Depends(require_admin)])
async def edit_approve_pending(
    pending_id: int,
    edits: PendingEdit,
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> ApproveResponse:
    """Publish a pending bill with mandatory reviewer edits."""
    service = ReviewService(db, app_settings.imports)
    bill = await service.edit_approve(pending_id, edits.overrides())
    await db.commit()
    return ApproveResponse(bill=BillResponse.model_validate(bill))


@router.post("/pending/{pending_id}/reject", response_model=RejectResponse, dependencies=[Depends(require_admin)])
async def reject_pending(
    pending_id: int,
    body: Optional[RejectRequest] = None,
    db: AsyncSession = Depends(get_session)
) -> RejectResponse:
    """Reject a pending bill with optional notes."""
    row = await ReviewService(db).reject(pending_id, body.notes if body else None)
    await db.commit()
    return RejectResponse(pending=PendingBillResponse.model_validate(row))


@router.get("/import-logs", response_model=ImportLogListResponse, dependencies=[Depends(require_admin)])
async def list_import_logs(
    source: Optional[str] = Query(None, description="Filter by source key"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_session)
) -> ImportLogListResponse:
    """Most recent import runs, newest first."""
    logs = await ImportLogRepository(db).get_recent_logs(limit=limit, source=source)
    return ImportLogListResponse(
        count=len(logs),
        logs=[ImportLogResponse.model_validate(log) for log in logs],
    )
