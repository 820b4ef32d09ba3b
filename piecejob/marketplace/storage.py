"""
Marketplace storage layer.

Provides persistence for jobs, bids, providers and their audit trail. The
only backend is in-memory: state lives for the lifetime of the process.
"""

import logging
from typing import Dict, List, Optional, Protocol

from piecejob.marketplace.models import (
    Bid,
    BidStatus,
    Job,
    JobMessage,
    JobStateTransition,
    JobStatus,
    Provider,
    Review,
)

logger = logging.getLogger(__name__)


class MarketplaceStorage(Protocol):
    """Protocol for marketplace persistence backends."""

    # Jobs
    def save_job(self, job: Job) -> str:
        """Save a new job listing at the head of the collection. Returns the job ID."""
        ...

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        ...

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        customer_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Job]:
        """List jobs most-recent-first with optional filters."""
        ...

    def update_job(self, job: Job) -> bool:
        """Update a job. Returns True if successful."""
        ...

    # Bids
    def save_bid(self, bid: Bid) -> str:
        """Append a bid to the global collection and to its job. Returns the bid ID."""
        ...

    def get_bid(self, bid_id: str) -> Optional[Bid]:
        """Get a bid by ID."""
        ...

    def list_bids(
        self,
        job_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        status: Optional[BidStatus] = None,
    ) -> List[Bid]:
        """List bids in submission order with optional filters."""
        ...

    # Providers
    def save_provider(self, provider: Provider) -> str: ...

    def get_provider(self, provider_id: str) -> Optional[Provider]: ...

    def list_providers(self) -> List[Provider]: ...

    # Reviews and messages
    def save_review(self, review: Review) -> str: ...

    def list_reviews(self, reviewee_id: Optional[str] = None) -> List[Review]: ...

    def save_message(self, message: JobMessage) -> str: ...

    def list_messages(self, job_id: Optional[str] = None) -> List[JobMessage]: ...

    # Transitions (audit log)
    def save_transition(self, transition: JobStateTransition) -> str:
        """Save a state transition record. Returns the transition ID."""
        ...

    def get_transitions(self, job_id: str) -> List[JobStateTransition]:
        """Get all state transitions for a job, oldest first."""
        ...


class InMemoryMarketplaceStorage:
    """In-memory marketplace storage for local use and testing."""

    def __init__(self):
        """Initialize empty storage."""
        self._jobs: dict[str, Job] = {}
        self._job_order: list[str] = []  # most recent first
        self._bids: dict[str, Bid] = {}
        self._bid_order: list[str] = []  # submission order
        self._providers: dict[str, Provider] = {}
        self._reviews: list[Review] = []
        self._messages: list[JobMessage] = []
        self._transitions: dict[str, list[JobStateTransition]] = {}  # job_id -> list

    # === Jobs ===

    def save_job(self, job: Job) -> str:
        """Save a job listing."""
        if job.id in self._jobs:
            self._job_order.remove(job.id)
        self._jobs[job.id] = job
        self._job_order.insert(0, job.id)
        self._transitions.setdefault(job.id, [])
        return job.id

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        return self._jobs.get(job_id)

    def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        customer_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Job]:
        """List jobs with optional filters."""
        jobs = [self._jobs[job_id] for job_id in self._job_order]

        if status is not None:
            status_val = status.value if isinstance(status, JobStatus) else status
            jobs = [j for j in jobs if j.status == status_val]
        if customer_id is not None:
            jobs = [j for j in jobs if j.customer_id == customer_id]
        if provider_id is not None:
            jobs = [j for j in jobs if j.provider_id == provider_id]
        if category is not None:
            wanted = category.lower()
            jobs = [j for j in jobs if j.category.lower() == wanted]

        return jobs

    def update_job(self, job: Job) -> bool:
        """Update a job."""
        if job.id not in self._jobs:
            return False
        self._jobs[job.id] = job
        return True

    # === Bids ===

    def save_bid(self, bid: Bid) -> str:
        """Save a bid and attach it to its job."""
        is_new = bid.id not in self._bids
        self._bids[bid.id] = bid
        if is_new:
            self._bid_order.append(bid.id)
            job = self._jobs.get(bid.job_id)
            if job is not None:
                job.bids.append(bid)
            else:
                logger.warning("Bid %s saved for unknown job %s", bid.id, bid.job_id)
        return bid.id

    def get_bid(self, bid_id: str) -> Optional[Bid]:
        """Get a bid by ID."""
        return self._bids.get(bid_id)

    def list_bids(
        self,
        job_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        status: Optional[BidStatus] = None,
    ) -> List[Bid]:
        """List bids with optional filters."""
        bids = [self._bids[bid_id] for bid_id in self._bid_order]

        if job_id is not None:
            bids = [b for b in bids if b.job_id == job_id]
        if provider_id is not None:
            bids = [b for b in bids if b.provider_id == provider_id]
        if status is not None:
            status_val = status.value if isinstance(status, BidStatus) else status
            bids = [b for b in bids if b.status == status_val]

        return bids

    # === Providers ===

    def save_provider(self, provider: Provider) -> str:
        self._providers[provider.id] = provider
        return provider.id

    def get_provider(self, provider_id: str) -> Optional[Provider]:
        return self._providers.get(provider_id)

    def list_providers(self) -> List[Provider]:
        return list(self._providers.values())

    # === Reviews & messages ===

    def save_review(self, review: Review) -> str:
        self._reviews.append(review)
        return review.id

    def list_reviews(self, reviewee_id: Optional[str] = None) -> List[Review]:
        if reviewee_id is None:
            return list(self._reviews)
        return [r for r in self._reviews if r.reviewee_id == reviewee_id]

    def save_message(self, message: JobMessage) -> str:
        self._messages.append(message)
        return message.id

    def list_messages(self, job_id: Optional[str] = None) -> List[JobMessage]:
        if job_id is None:
            return list(self._messages)
        return [m for m in self._messages if m.job_id == job_id]

    # === Transitions ===

    def save_transition(self, transition: JobStateTransition) -> str:
        """Save a state transition record."""
        self._transitions.setdefault(transition.job_id, []).append(transition)
        return transition.id

    def get_transitions(self, job_id: str) -> List[JobStateTransition]:
        """Get all state transitions for a job."""
        return list(self._transitions.get(job_id, []))
