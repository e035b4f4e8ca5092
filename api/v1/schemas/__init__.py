"""API v1 request and response schemas."""

from api.v1.schemas.bills import (
    BillResponse,
    BillListItem,
    BillListResponse
)
from api.v1.schemas.votes import (
    CastVoteRequest,
    CastVoteResponse,
    ResultsResponse
)
from api.v1.schemas.admin import (
    AdminBillRequest,
    AdminBillResponse,
    PendingBillResponse,
    PendingListResponse,
    ImportLogListResponse
)

__all__ = [
    "BillResponse",
    "BillListItem",
    "BillListResponse",
    "CastVoteRequest",
    "CastVoteResponse",
    "ResultsResponse",
    "AdminBillRequest",
    "AdminBillResponse",
    "PendingBillResponse",
    "PendingListResponse",
    "ImportLogListResponse",
]
