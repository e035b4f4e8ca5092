"""Services package for business logic and integrations"""

from .admin_service import AdminBillService, AdminError
from .bill_upsert_service import (
    BillUpsertService,
    DirectPublishStrategy,
    PublishStrategy,
    ReviewQueueStrategy,
)
from .classification_service import ClassificationError, ClassificationService
from .full_text_service import FullTextService
from .reclassification_service import ReclassificationService
from .review_service import ReviewError, ReviewService
from .vote_service import (
    AlreadyVotedError,
    BillNotFoundError,
    InvalidVoteError,
    RateLimitedError,
    VoteError,
    VoteService,
    VotingClosedError,
)

__all__ = [
    "AdminBillService",
    "AdminError",
    "BillUpsertService",
    "DirectPublishStrategy",
    "PublishStrategy",
    "ReviewQueueStrategy",
    "ClassificationError",
    "ClassificationService",
    "FullTextService",
    "ReclassificationService",
    "ReviewError",
    "ReviewService",
    "AlreadyVotedError",
    "BillNotFoundError",
    "InvalidVoteError",
    "RateLimitedError",
    "VoteError",
    "VoteService",
    "VotingClosedError",
]
