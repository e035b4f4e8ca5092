"""
Citizen vote casting and vote queries.

One vote per (bill, voter address), changeable but not repeatable,
rate-limited per address. The uniqueness rule is enforced by the
uq_vote_bill_voter constraint; two concurrent first votes race at the
storage layer and the loser is reported as an ordinary "already voted".

Responsibility: Vote integrity protocol, tallies and public bill listings
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import ipaddress
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import VoteConfig
from ..db.models import BillModel
from ..db.repositories import BillRepository, VoteRepository
from ..models.bill import BillStatus, Level
from ..models.vote import CastVoteResult, VoteAction, VoteTally, VoteType
from ..utils.text import is_blank

logger = logging.getLogger(__name__)

PLACEHOLDER_IPS = {"", "0.0.0.0", "unknown"}
TIMELINE_HOURS = 24
VALID_LEVELS = ("all", Level.EU.value, Level.FRANCE.value)


class VoteError(Exception):
    """
    Vote request refused.

    Subclasses carry a stable category and the HTTP status the API
    layer answers with.
    """

    category = "invalid_request"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidVoteError(VoteError):
    category = "invalid_request"
    status_code = 400


class BillNotFoundError(VoteError):
    category = "bill_not_found"
    status_code = 404


class VotingClosedError(VoteError):
    category = "voting_closed"
    status_code = 400


class RateLimitedError(VoteError):
    category = "rate_limited"
    status_code = 429


class AlreadyVotedError(VoteError):
    category = "already_voted"
    status_code = 409


@dataclass(slots=True)
class Urgency:
    label: str
    urgency: str
    is_soon: bool


@dataclass(slots=True)
class TimelineBucket:
    """Votes cast during one clock hour"""

    hour: datetime
    votes_for: int = 0
    votes_against: int = 0
    votes_abstain: int = 0


@dataclass(slots=True)
class BillResults:
    bill: BillModel
    tally: VoteTally
    timeline: List[TimelineBucket] = field(default_factory=list)


@dataclass(slots=True)
class BillListing:
    bill: BillModel
    tally: VoteTally
    urgency: Urgency
    user_voted: Optional[str] = None


def is_placeholder_ip(voter_ip: Optional[str]) -> bool:
    """Whether an address cannot identify a voter"""
    if voter_ip is None or voter_ip.strip().lower() in PLACEHOLDER_IPS:
        return True
    try:
        ipaddress.ip_address(voter_ip.strip())
    except ValueError:
        return True
    return False


def vote_urgency(vote_datetime: Optional[datetime], now: datetime) -> Urgency:
    """
    Label how soon a vote takes place.

    Example:
        >>> vote_urgency(now + timedelta(hours=3), now).label
        "Vote aujourd'hui"
    """
    if vote_datetime is None:
        return Urgency(label="Date à confirmer", urgency="unknown", is_soon=False)
    if vote_datetime < now:
        return Urgency(label="Vote terminé", urgency="past", is_soon=False)

    remaining = vote_datetime - now
    if remaining < timedelta(hours=24):
        return Urgency(label="Vote aujourd'hui", urgency="urgent", is_soon=True)
    if remaining < timedelta(days=7):
        return Urgency(label="Vote cette semaine", urgency="soon", is_soon=True)
    return Urgency(label="Vote prévu", urgency="future", is_soon=False)


def build_timeline(votes, now: datetime, hours: int = TIMELINE_HOURS) -> List[TimelineBucket]:
    """
    Bucket votes by clock hour over the trailing window, oldest first.

    Every hour of the window is present, including hours without votes.
    """
    current_hour = now.replace(minute=0, second=0, microsecond=0)
    first_hour = current_hour - timedelta(hours=hours - 1)
    buckets = [TimelineBucket(hour=first_hour + timedelta(hours=i)) for i in range(hours)]

    for vote in votes:
        if vote.voted_at < first_hour or vote.voted_at > now:
            continue
        index = int((vote.voted_at - first_hour).total_seconds() // 3600)
        bucket = buckets[index]
        if vote.vote_type == VoteType.FOR.value:
            bucket.votes_for += 1
        elif vote.vote_type == VoteType.AGAINST.value:
            bucket.votes_against += 1
        elif vote.vote_type == VoteType.ABSTAIN.value:
            bucket.votes_abstain += 1
    return buckets


class VoteService:
    """
    Cast votes and read vote results.

    Example:
        service = VoteService(session, settings.vote)
        result = await service.cast_vote("fr-loi-climat-2025", "for", "203.0.113.7")
    """

    def __init__(self, session: AsyncSession, config: Optional[VoteConfig] = None):
        self.session = session
        self.config = config or VoteConfig()
        self.bills = BillRepository(session)
        self.votes = VoteRepository(session)

    async def cast_vote(
        self,
        bill_id: str,
        vote_type: str,
        voter_ip: Optional[str],
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CastVoteResult:
        """
        Cast or change a vote.

        Args:
            bill_id: Bill slug
            vote_type: "for", "against" or "abstain"
            voter_ip: Caller address
            user_agent: Caller user agent (stored for audit)
            now: Reference time

        Returns:
            CastVoteResult with action created or updated

        Raises:
            VoteError: One of the VoteError subclasses
        """
        now = now or datetime.utcnow()

        if is_blank(bill_id):
            raise InvalidVoteError("Le champ bill_id est requis")
        if is_blank(vote_type):
            raise InvalidVoteError("Le champ vote_type est requis")
        try:
            choice = VoteType(vote_type.strip())
        except ValueError:
            raise InvalidVoteError("Type de vote invalide. Doit être : for, against ou abstain")
        if is_placeholder_ip(voter_ip):
            raise InvalidVoteError("Impossible de déterminer votre adresse IP")

        bill_id = bill_id.strip()
        voter_ip = voter_ip.strip()

        bill = await self.bills.get_by_id(bill_id)
        if bill is None:
            raise BillNotFoundError("Projet de loi introuvable")
        if bill.status == BillStatus.COMPLETED.value:
            raise VotingClosedError("Le vote pour ce projet de loi est terminé")

        since = now - timedelta(seconds=self.config.rate_window_seconds)
        recent = await self.votes.count_recent_by_ip(voter_ip, since)
        if recent >= self.config.rate_limit:
            logger.warning(f"Rate limit reached for {voter_ip} ({recent} votes)")
            raise RateLimitedError("Limite de votes atteinte. Veuillez réessayer plus tard.")

        existing = await self.votes.get_for_voter(bill_id, voter_ip)
        if existing is not None:
            if existing.vote_type == choice.value:
                raise AlreadyVotedError(f"Vous avez déjà voté « {choice.value} » pour ce projet de loi")

            previous = VoteType(existing.vote_type)
            existing.user_agent = user_agent
            await self.votes.change_vote_type(existing, choice.value, now)
            logger.info(f"Vote on {bill_id} changed from {previous.value} to {choice.value}")
            return CastVoteResult(
                action=VoteAction.UPDATED,
                bill_id=bill_id,
                vote_type=choice,
                voted_at=now,
                previous_vote_type=previous,
            )

        try:
            await self.votes.insert(bill_id, voter_ip, choice.value, now, user_agent)
        except IntegrityError:
            logger.info(f"Concurrent first vote on {bill_id} from the same address rejected")
            raise AlreadyVotedError("Vous avez déjà voté sur ce projet de loi")

        return CastVoteResult(
            action=VoteAction.CREATED,
            bill_id=bill_id,
            vote_type=choice,
            voted_at=now,
        )

    async def get_results(self, bill_id: str, now: Optional[datetime] = None) -> BillResults:
        """
        Tallies, percentages and 24-hour timeline for one bill.

        Raises:
            InvalidVoteError: When bill_id is blank
            BillNotFoundError: When the bill does not exist
        """
        now = now or datetime.utcnow()
        if is_blank(bill_id):
            raise InvalidVoteError("Le paramètre bill_id est requis")

        bill = await self.bills.get_by_id(bill_id.strip())
        if bill is None:
            raise BillNotFoundError("Projet de loi introuvable")

        tally = await self.votes.tallies(bill.id)
        window_start = now.replace(minute=0, second=0, microsecond=0) - timedelta(hours=TIMELINE_HOURS - 1)
        recent = await self.votes.votes_since(bill.id, window_start)

        return BillResults(bill=bill, tally=tally, timeline=build_timeline(recent, now))

    async def list_bills(
        self,
        level: str = "all",
        status: Optional[str] = None,
        voter_ip: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[BillListing]:
        """
        Public bill listing with tallies and the caller's own vote.

        Args:
            level: "all", "eu" or "france"
            status: Optional status filter
            voter_ip: Caller address used for user_voted
            now: Reference time for urgency labels

        Raises:
            InvalidVoteError: On an unknown level or status
        """
        now = now or datetime.utcnow()
        level = level or "all"
        if level not in VALID_LEVELS:
            raise InvalidVoteError("Paramètre level invalide. Doit être : all, eu ou france")
        if status is not None and status not in {s.value for s in BillStatus}:
            raise InvalidVoteError("Paramètre status invalide. Doit être : upcoming, voting_now ou completed")

        bills = await self.bills.list_public(level=level, status=status)
        ids = [bill.id for bill in bills]
        tallies = await self.votes.tallies_for_bills(ids)

        user_votes: Dict[str, str] = {}
        if not is_placeholder_ip(voter_ip):
            user_votes = await self.votes.voted_bill_ids(voter_ip.strip(), ids)

        return [
            BillListing(
                bill=bill,
                tally=tallies[bill.id],
                urgency=vote_urgency(bill.vote_datetime, now),
                user_voted=user_votes.get(bill.id),
            )
            for bill in bills
        ]
