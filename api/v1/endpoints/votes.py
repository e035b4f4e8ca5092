"""
Vote API endpoints.

Provides the citizen vote submission and per-bill results.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_client_ip, get_settings
from api.v1.schemas.votes import (
    CastVoteRequest,
    CastVoteResponse,
    ResultsBill,
    ResultsResponse,
    TimelineEntry,
    VoteOut,
)
from constituant.config import Settings
from constituant.db.session import get_session
from constituant.models.vote import VoteAction
from constituant.services.vote_service import VoteService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/votes", response_model=CastVoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    payload: CastVoteRequest,
    request: Request,
    response: Response,
    voter_ip: Optional[str] = Depends(get_client_ip),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> CastVoteResponse:
    """
    Cast or change a vote on a bill.

    Returns 201 for a first vote and 200 when an existing vote changed.
    """
    service = VoteService(db, app_settings.vote)
    result = await service.cast_vote(
        payload.bill_id,
        payload.vote_type,
        voter_ip,
        user_agent=request.headers.get("user-agent"),
    )
    await db.commit()

    if result.action == VoteAction.UPDATED:
        response.status_code = status.HTTP_200_OK

    return CastVoteResponse(
        action=result.action.value,
        vote=VoteOut(
            bill_id=result.bill_id,
            vote_type=result.vote_type.value,
            voted_at=result.voted_at,
            previous_vote_type=result.previous_vote_type.value if result.previous_vote_type else None,
        ),
    )


@router.get("/results", response_model=ResultsResponse)
async def get_results(
    bill_id: Optional[str] = Query(None, description="Bill identifier"),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_session)
) -> ResultsResponse:
    """Tallies, percentages and hourly timeline for the last 24 hours."""
    results = await VoteService(db, app_settings.vote).get_results(bill_id)
    bill = results.bill

    return ResultsResponse(
        bill=ResultsBill(
            id=bill.id,
            title=bill.title,
            level=bill.level,
            chamber=bill.chamber,
            status=bill.status,
            theme=bill.theme,
            vote_datetime=bill.vote_datetime,
        ),
        results=results.tally.counts(),
        percentages=results.tally.percentages(),
        timeline=[
            TimelineEntry(
                hour=bucket.hour,
                votes_for=bucket.votes_for,
                votes_against=bucket.votes_against,
                votes_abstain=bucket.votes_abstain,
            )
            for bucket in results.timeline
        ],
    )
