"""
Pydantic schemas for admin API requests and responses.

Responsibility: Admin CRUD, review queue and import log schemas
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from api.v1.schemas.bills import BillResponse


class AdminBillFields(BaseModel):
    """
    Bill fields accepted from administrators.

    Only explicitly sent fields are applied on update.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    full_text_url: Optional[str] = None
    level: Optional[str] = None
    chamber: Optional[str] = None
    vote_datetime: Optional[str] = Field(
        default=None,
        description="YYYY-MM-DD HH:MM:SS or ISO-8601"
    )
    status: Optional[str] = None
    theme: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_abstract: Optional[str] = None
    ai_pour: Optional[str] = None
    ai_contre: Optional[str] = None
    ai_concerne: Optional[List[str]] = None


class AdminBillRequest(BaseModel):
    action: str
    admin_password: Optional[str] = None
    bill: AdminBillFields = Field(default_factory=AdminBillFields)


class AdminBillResponse(BaseModel):
    success: bool = True
    action: str
    message: str
    bill: Optional[BillResponse] = None


class PendingBillResponse(BaseModel):
    """Review queue entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    source: str
    external_id: str
    title: str
    summary: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_abstract: Optional[str] = None
    ai_pour: Optional[str] = None
    ai_contre: Optional[str] = None
    ai_concerne: Optional[List[str]] = None
    theme: str
    ai_confidence: Optional[float] = None
    ai_processed_at: Optional[datetime] = None
    full_text_url: Optional[str] = None
    level: str
    chamber: str
    vote_datetime: Optional[datetime] = None
    status: str
    fetched_at: datetime
    reviewed_at: Optional[datetime] = None
    notes: Optional[str] = None
    bill_id: Optional[str] = None


class PendingListResponse(BaseModel):
    success: bool = True
    count: int
    pending: List[PendingBillResponse]


class PendingEdit(BaseModel):
    """Reviewer edits applied on approval."""

    id: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    full_text_url: Optional[str] = None
    level: Optional[str] = None
    chamber: Optional[str] = None
    vote_datetime: Optional[str] = None
    theme: Optional[str] = None

    def overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RejectRequest(BaseModel):
    notes: Optional[str] = None


class ApproveResponse(BaseModel):
    success: bool = True
    bill: BillResponse


class RejectResponse(BaseModel):
    success: bool = True
    pending: PendingBillResponse


class ImportLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source: str
    status: str
    fetched: int
    new: int
    updated: int
    skipped: int
    errors: int
    error_details: Optional[List[str]] = None
    execution_time: Optional[float] = None
    created_at: datetime


class ImportLogListResponse(BaseModel):
    success: bool = True
    count: int
    logs: List[ImportLogResponse]
