"""
Bill API endpoints.

Public listing of published bills with their vote tallies.

Responsibility: Bill listing routes
"""

from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_client_ip, get_settings
from api.v1.schemas.bills import BillListItem, BillListResponse, BillResponse, UrgencyResponse
from constituant.config import Settings
from constituant.db.session import get_session
from constituant.services.vote_service import VoteService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/bills", response_model=BillListResponse)
async def list_bills(
    level: str = Query("all", description="all, eu or france"),
    status: Optional[str] = Query(None, description="upcoming, voting_now or completed"),
    voter_ip: Optional[str] = Depends(get_client_ip),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> BillListResponse:
    """
    List published bills ordered by vote date.

    Each bill carries its tallies, percentages, an urgency label and the
    caller's own vote, if any.
    """
    listings = await VoteService(db, app_settings.vote).list_bills(
        level=level,
        status=status,
        voter_ip=voter_ip,
    )

    bills = [
        BillListItem(
            **BillResponse.model_validate(listing.bill).model_dump(),
            votes=listing.tally.counts(),
            percentages=listing.tally.percentages(),
            urgency=UrgencyResponse(
                label=listing.urgency.label,
                urgency=listing.urgency.urgency,
                is_soon=listing.urgency.is_soon,
            ),
            user_voted=listing.user_voted,
        )
        for listing in listings
    ]

    logger.debug(f"Listed {len(bills)} bills (level={level}, status={status})")
    return BillListResponse(count=len(bills), bills=bills)
