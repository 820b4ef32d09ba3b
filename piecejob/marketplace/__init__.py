"""Job/bid marketplace for PieceJob.

Models:
- Job: A unit of work posted by a customer
- Bid: A provider's proposal against a job
- Provider: A service professional profile
- Review, JobMessage: Post-job feedback and job chat
- JobStateTransition: Audit log entry for status changes

Service:
- MarketplaceService: Registry operations (post, bid, accept, start, etc.)
"""

from piecejob.marketplace.models import (
    VALID_JOB_TRANSITIONS,
    Bid,
    BidStatus,
    Job,
    JobMessage,
    JobStateTransition,
    JobStatus,
    Provider,
    Qualification,
    Review,
    Urgency,
)
from piecejob.marketplace.proximity import rank_by_distance
from piecejob.marketplace.service import (
    BidNotFoundError,
    InvalidStateError,
    JobNotFoundError,
    MarketplaceError,
    MarketplaceService,
    NotFoundError,
    ProviderNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from piecejob.marketplace.storage import InMemoryMarketplaceStorage, MarketplaceStorage

__all__ = [
    # Models
    "Job",
    "Bid",
    "Provider",
    "Qualification",
    "Review",
    "JobMessage",
    "JobStatus",
    "BidStatus",
    "Urgency",
    "JobStateTransition",
    "VALID_JOB_TRANSITIONS",
    # Storage
    "MarketplaceStorage",
    "InMemoryMarketplaceStorage",
    # Ranking
    "rank_by_distance",
    # Service
    "MarketplaceService",
    "MarketplaceError",
    "ValidationError",
    "NotFoundError",
    "JobNotFoundError",
    "BidNotFoundError",
    "ProviderNotFoundError",
    "InvalidStateError",
    "UnauthorizedError",
]
