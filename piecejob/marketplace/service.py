"""
Marketplace service.

The job/bid registry. All mutations go through one re-entrant lock owned
by the service instance, so a job and its bids are never observed half
updated (e.g. two accepted bids, or an accepted bid on a job that is
still posted).

Lifecycle::

    posted -> confirmed -> in-progress -> completed
       \\          \\
        +----------+--> cancelled
"""

import logging
import math
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from piecejob.config import MarketplaceConfig
from piecejob.geo import Coordinates
from piecejob.logging_config import (
    log_bid_accepted,
    log_bid_submitted,
    log_job_posted,
    log_job_transition,
)
from piecejob.marketplace.models import (
    Bid,
    BidStatus,
    Job,
    JobMessage,
    JobStateTransition,
    JobStatus,
    Provider,
    Review,
    parse_amount,
)
from piecejob.marketplace.proximity import rank_by_distance
from piecejob.marketplace.storage import InMemoryMarketplaceStorage, MarketplaceStorage
from piecejob.notifications import NotificationCenter, NotificationType
from piecejob.safety.monitor import MonitoredJob, SafetyMonitor
from piecejob.utils import utc_now

logger = logging.getLogger(__name__)

CoordinatesLike = Union[Coordinates, Dict[str, float], Tuple[float, float]]


# =============================================================================
# Errors
# =============================================================================


class MarketplaceError(Exception):
    """Base exception for marketplace operations."""

    pass


class ValidationError(MarketplaceError):
    """Raised when required input is missing or malformed."""

    pass


class NotFoundError(MarketplaceError):
    """Raised when a referenced record does not exist."""

    pass


class JobNotFoundError(NotFoundError):
    """Raised when a job is not found."""

    pass


class BidNotFoundError(NotFoundError):
    """Raised when a bid is not found."""

    pass


class ProviderNotFoundError(NotFoundError):
    """Raised when a provider is not found."""

    pass


class InvalidStateError(MarketplaceError):
    """Raised when a record is not in the state an operation requires."""

    pass


class UnauthorizedError(MarketplaceError):
    """Raised when the actor may not perform an operation."""

    pass


# =============================================================================
# Validation helpers
# =============================================================================


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def _require_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("Estimated duration must be a positive whole number of hours")
    return value


def _coerce_coordinates(value: Optional[CoordinatesLike]) -> Optional[Coordinates]:
    if value is None or isinstance(value, Coordinates):
        return value
    try:
        if isinstance(value, dict):
            return Coordinates.from_dict(value)
        latitude, longitude = value
        return Coordinates(latitude=float(latitude), longitude=float(longitude))
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid coordinates: {e}") from e


def _round_half_up(value: float, places: int = 1) -> float:
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


# =============================================================================
# Service
# =============================================================================


class MarketplaceService:
    """Job/bid registry with proximity listings and safety hooks.

    Args:
        storage: Persistence backend. Defaults to a fresh in-memory store.
        config: Marketplace tuning values.
        monitor: Safety monitor activated when jobs start. Optional.
        notifications: Inbox notified of bids, transitions and messages. Optional.
        clock: Source of the current time.
        instance_id: Name of this marketplace in logs and the event log.
        record_events: Write the daily marketplace event log.
    """

    def __init__(
        self,
        storage: Optional[MarketplaceStorage] = None,
        config: Optional[MarketplaceConfig] = None,
        monitor: Optional[SafetyMonitor] = None,
        notifications: Optional[NotificationCenter] = None,
        clock: Callable[[], datetime] = utc_now,
        instance_id: str = "default",
        record_events: bool = False,
    ):
        self.storage = storage if storage is not None else InMemoryMarketplaceStorage()
        self.config = config or MarketplaceConfig()
        self.monitor = monitor
        self.notifications = notifications
        self.instance_id = instance_id
        self.record_events = record_events
        self._clock = clock
        self._lock = threading.RLock()

    # === Jobs ===

    def create_job(
        self,
        customer_id: str,
        title: str,
        description: str,
        category: str,
        location: str,
        budget: str,
        estimated_duration: int,
        urgency: str = "medium",
        coordinates: Optional[CoordinatesLike] = None,
        images: Optional[Sequence[str]] = None,
    ) -> Job:
        """Post a new job. It starts in ``posted`` with no bids."""
        customer_id = _require_text(customer_id, "Customer")
        title = _require_text(title, "Title")
        description = _require_text(description, "Description")
        category = _require_text(category, "Category")
        location = _require_text(location, "Location")
        budget = _require_text(budget, "Budget")
        estimated_duration = _require_duration(estimated_duration)
        coords = _coerce_coordinates(coordinates)

        now = self._clock()
        try:
            job = Job(
                id=str(uuid.uuid4()),
                customer_id=customer_id,
                title=title,
                description=description,
                category=category,
                location=location,
                budget=budget,
                estimated_duration=estimated_duration,
                urgency=urgency,
                coordinates=coords,
                images=list(images or []),
                created_at=now,
                updated_at=now,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        with self._lock:
            self.storage.save_job(job)
            self._record_transition(job, None, JobStatus.POSTED.value, customer_id, "created")

        logger.info("Job posted | id=%s | customer=%s | title=%s", job.id, customer_id, title[:50])
        if self.record_events:
            log_job_posted(self.instance_id, job.id, category, customer_id)
        return job

    def get_job(self, job_id: str) -> Job:
        """Get a job by ID."""
        job = self.storage.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def list_jobs(
        self,
        caller_location: Optional[CoordinatesLike] = None,
        radius_km: Optional[float] = None,
        status: Optional[JobStatus] = None,
        customer_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Job]:
        """List jobs, most recent first or nearest first.

        When ``caller_location`` is given, jobs farther than ``radius_km``
        are dropped and the rest are annotated with a distance label. Jobs
        without coordinates are always kept and listed last.
        """
        with self._lock:
            jobs = self.storage.list_jobs(status=status, customer_id=customer_id, category=category)
        return self._rank(jobs, caller_location, radius_km)

    def get_jobs_for_customer(self, customer_id: str) -> List[Job]:
        """Get all jobs posted by a customer."""
        return self.list_jobs(customer_id=customer_id)

    def get_jobs_for_provider(self, provider_id: str) -> List[Job]:
        """Get all jobs assigned to a provider."""
        with self._lock:
            return self.storage.list_jobs(provider_id=provider_id)

    def start_job(self, job_id: str, actor_id: Optional[str] = None) -> Job:
        """Move a confirmed job to in-progress and begin safety monitoring."""
        with self._lock:
            job = self.get_job(job_id)
            self._check_participant(job, actor_id, "start")
            if not job.can_transition_to(JobStatus.IN_PROGRESS):
                raise InvalidStateError(f"Job must be confirmed to start (status: {job.status})")

            now = self._clock()
            previous = job.status
            job.status = JobStatus.IN_PROGRESS.value
            job.start_time = now
            job.updated_at = now
            self.storage.update_job(job)
            self._record_transition(job, previous, job.status, actor_id)

            if self.monitor is not None:
                self.monitor.start_monitoring(job)

        logger.info("Job started | id=%s | provider=%s", job.id, job.provider_id)
        self._notify(
            job.customer_id,
            NotificationType.JOB_STARTED,
            "Job Started",
            f'Work on "{job.title}" has started.',
            {"job_id": job.id},
        )
        return job

    def complete_job(self, job_id: str, actor_id: Optional[str] = None) -> Job:
        """Move an in-progress job to completed and stop monitoring it."""
        with self._lock:
            job = self.get_job(job_id)
            self._check_participant(job, actor_id, "complete")
            if not job.can_transition_to(JobStatus.COMPLETED):
                raise InvalidStateError(
                    f"Job must be in progress to complete (status: {job.status})"
                )

            now = self._clock()
            previous = job.status
            job.status = JobStatus.COMPLETED.value
            job.completed_time = now
            job.updated_at = now
            self.storage.update_job(job)
            self._record_transition(job, previous, job.status, actor_id)

            if self.monitor is not None:
                self.monitor.stop_monitoring(job.id)

            provider = self.storage.get_provider(job.provider_id) if job.provider_id else None
            if provider is not None:
                provider.completed_jobs += 1

        logger.info("Job completed | id=%s", job.id)
        self._notify(
            job.customer_id,
            NotificationType.JOB_COMPLETED,
            "Job Completed",
            f'"{job.title}" has been marked as completed.',
            {"job_id": job.id},
        )
        return job

    def cancel_job(
        self,
        job_id: str,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Job:
        """Cancel a job that has not started. Pending bids are rejected."""
        with self._lock:
            job = self.get_job(job_id)
            if actor_id is not None and actor_id != job.customer_id:
                raise UnauthorizedError("Only the customer who posted the job can cancel it")
            if not job.can_transition_to(JobStatus.CANCELLED):
                raise InvalidStateError(f"Cannot cancel job in status: {job.status}")

            now = self._clock()
            previous = job.status
            for bid in self.storage.list_bids(job_id=job.id):
                if bid.is_pending:
                    bid.status = BidStatus.REJECTED.value
            job.status = JobStatus.CANCELLED.value
            job.cancelled_at = now
            job.updated_at = now
            self.storage.update_job(job)
            self._record_transition(job, previous, job.status, actor_id, reason)

            if self.monitor is not None:
                self.monitor.stop_monitoring(job.id)

        logger.info("Job cancelled | id=%s | reason=%s", job.id, reason or "-")
        return job

    def get_job_history(self, job_id: str) -> List[JobStateTransition]:
        """Get the status transitions of a job, oldest first."""
        self.get_job(job_id)
        return self.storage.get_transitions(job_id)

    # === Bids ===

    def submit_bid(
        self,
        job_id: str,
        provider_id: str,
        amount: str,
        message: str,
        estimated_duration: int,
    ) -> Bid:
        """Submit a pending bid on a posted job."""
        job_id = _require_text(job_id, "Job")
        provider_id = _require_text(provider_id, "Provider")
        amount = _require_text(amount, "Amount")
        message = _require_text(message, "Message")
        estimated_duration = _require_duration(estimated_duration)
        try:
            amount_value = parse_amount(amount)
        except ValueError as e:
            raise ValidationError(f"Bid amount must be a positive number: {e}") from e
        if amount_value <= 0:
            raise ValidationError("Bid amount must be a positive number")

        with self._lock:
            job = self.get_job(job_id)
            provider = self.get_provider(provider_id)
            if not job.is_open:
                raise InvalidStateError(
                    f"Job {job_id} is not accepting bids (status: {job.status})"
                )

            bid = Bid(
                id=str(uuid.uuid4()),
                job_id=job.id,
                provider_id=provider.id,
                amount=amount,
                message=message,
                estimated_duration=estimated_duration,
                provider_name=provider.name,
                provider_avatar=provider.avatar,
                created_at=self._clock(),
            )
            self.storage.save_bid(bid)

        logger.info("Bid submitted | id=%s | job=%s | provider=%s", bid.id, job.id, provider.id)
        if self.record_events:
            log_bid_submitted(self.instance_id, bid.id, job.id, amount)
        self._notify(
            job.customer_id,
            NotificationType.BID_RECEIVED,
            "New Bid Received",
            f'{provider.name} bid {amount} on "{job.title}".',
            {"job_id": job.id, "bid_id": bid.id},
        )
        return bid

    def get_bid(self, bid_id: str) -> Bid:
        """Get a bid by ID."""
        bid = self.storage.get_bid(bid_id)
        if bid is None:
            raise BidNotFoundError(f"Bid {bid_id} not found")
        return bid

    def get_bids_for_job(self, job_id: str) -> List[Bid]:
        """Get a job's bids in submission order."""
        self.get_job(job_id)
        with self._lock:
            return self.storage.list_bids(job_id=job_id)

    def get_bids_for_provider(self, provider_id: str) -> List[Bid]:
        with self._lock:
            return self.storage.list_bids(provider_id=provider_id)

    def accept_bid(self, bid_id: str, actor_id: Optional[str] = None) -> Tuple[Job, Bid]:
        """Accept a pending bid.

        The bid becomes ``accepted``, every other bid on the job becomes
        ``rejected``, and the job is confirmed with the bidder assigned, all
        under the registry lock.

        Returns:
            The updated (job, bid) pair.
        """
        with self._lock:
            bid = self.get_bid(bid_id)
            if not bid.is_pending:
                raise InvalidStateError(f"Bid {bid_id} is not pending (status: {bid.status})")
            job = self.get_job(bid.job_id)
            if actor_id is not None and actor_id != job.customer_id:
                raise UnauthorizedError("Only the customer who posted the job can accept bids")
            if not job.can_transition_to(JobStatus.CONFIRMED):
                raise InvalidStateError(
                    f"Job must be posted to accept a bid (status: {job.status})"
                )

            rejected = 0
            for other in self.storage.list_bids(job_id=job.id):
                if other.id == bid.id:
                    continue
                if other.status != BidStatus.REJECTED.value:
                    other.status = BidStatus.REJECTED.value
                    rejected += 1
            bid.status = BidStatus.ACCEPTED.value

            now = self._clock()
            previous = job.status
            job.status = JobStatus.CONFIRMED.value
            job.provider_id = bid.provider_id
            job.confirmed_at = now
            job.updated_at = now
            self.storage.update_job(job)
            self._record_transition(job, previous, job.status, actor_id, f"bid {bid.id} accepted")

        logger.info(
            "Bid accepted | id=%s | job=%s | provider=%s | rejected=%d",
            bid.id,
            job.id,
            bid.provider_id,
            rejected,
        )
        if self.record_events:
            log_bid_accepted(self.instance_id, bid.id, job.id, rejected)
        self._notify(
            bid.provider_id,
            NotificationType.BID_ACCEPTED,
            "Bid Accepted",
            f'Your bid of {bid.amount} on "{job.title}" was accepted.',
            {"job_id": job.id, "bid_id": bid.id},
        )
        return job, bid

    # === Providers ===

    def register_provider(self, provider: Provider) -> Provider:
        """Add or replace a provider profile."""
        _require_text(provider.id, "Provider id")
        _require_text(provider.name, "Provider name")
        with self._lock:
            self.storage.save_provider(provider)
        logger.debug("Provider registered | id=%s", provider.id)
        return provider

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.storage.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(f"Provider {provider_id} not found")
        return provider

    def list_providers(
        self,
        caller_location: Optional[CoordinatesLike] = None,
        radius_km: Optional[float] = None,
    ) -> List[Provider]:
        """List providers, nearest first when a location is given."""
        with self._lock:
            providers = self.storage.list_providers()
        return self._rank(providers, caller_location, radius_km)

    # === Reviews ===

    def create_review(
        self,
        job_id: str,
        reviewer_id: str,
        reviewee_id: str,
        rating: int,
        comment: str = "",
        reviewer_name: str = "",
    ) -> Review:
        """Review the provider of a completed job and refresh their rating."""
        with self._lock:
            job = self.get_job(job_id)
            provider = self.get_provider(reviewee_id)
            if job.status != JobStatus.COMPLETED.value:
                raise InvalidStateError(
                    f"Only completed jobs can be reviewed (status: {job.status})"
                )
            if reviewer_id != job.customer_id:
                raise UnauthorizedError("Only the customer who posted the job can review it")
            if job.provider_id != provider.id:
                raise ValidationError(f"Provider {provider.id} did not work on job {job.id}")

            try:
                review = Review(
                    id=str(uuid.uuid4()),
                    job_id=job.id,
                    reviewer_id=reviewer_id,
                    reviewee_id=provider.id,
                    rating=rating,
                    comment=comment,
                    reviewer_name=reviewer_name,
                    created_at=self._clock(),
                )
            except ValueError as e:
                raise ValidationError(str(e)) from e

            self.storage.save_review(review)
            # Fold into the existing aggregate, which may predate stored reviews
            total = provider.rating * provider.review_count + rating
            provider.review_count += 1
            provider.rating = _round_half_up(total / provider.review_count)

        logger.info(
            "Review added | provider=%s | rating=%s | new_average=%s",
            provider.id,
            rating,
            provider.rating,
        )
        return review

    def get_reviews_for_provider(self, provider_id: str) -> List[Review]:
        self.get_provider(provider_id)
        return self.storage.list_reviews(reviewee_id=provider_id)

    # === Messages ===

    def send_message(
        self,
        job_id: str,
        sender_id: str,
        receiver_id: str,
        content: str,
        message_type: str = "text",
    ) -> JobMessage:
        """Send a chat message about a job."""
        sender_id = _require_text(sender_id, "Sender")
        receiver_id = _require_text(receiver_id, "Receiver")
        content = _require_text(content, "Message content")

        with self._lock:
            job = self.get_job(job_id)
            try:
                message = JobMessage(
                    id=str(uuid.uuid4()),
                    job_id=job.id,
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    content=content,
                    type=message_type,
                    created_at=self._clock(),
                )
            except ValueError as e:
                raise ValidationError(str(e)) from e
            self.storage.save_message(message)

        self._notify(
            receiver_id,
            NotificationType.MESSAGE,
            "New Message",
            content[:100],
            {"job_id": job.id, "message_id": message.id},
        )
        return message

    def get_messages_for_job(self, job_id: str) -> List[JobMessage]:
        self.get_job(job_id)
        return self.storage.list_messages(job_id=job_id)

    # === Safety ===

    def get_safety_status(self, job_id: str) -> MonitoredJob:
        """Current safety state of an in-progress job.

        A read only; alerts are raised by the monitor's sweep.
        """
        self._require_monitored(job_id)
        status = self.monitor.preview(job_id)
        if status is None:
            raise InvalidStateError(f"Job {job_id} is not being monitored")
        return status

    def confirm_safety(self, job_id: str, user_id: Optional[str] = None) -> MonitoredJob:
        """Record a safety check-in for an in-progress job."""
        self._require_monitored(job_id)
        status = self.monitor.confirm_safety(job_id, user_id)
        if status is None:
            raise InvalidStateError(f"Job {job_id} is not being monitored")
        return status

    def request_emergency_help(self, job_id: str, user_id: Optional[str] = None) -> None:
        """Dispatch emergency help for an in-progress job."""
        self._require_monitored(job_id)
        self.monitor.request_emergency_help(job_id, user_id)

    # === Internals ===

    def _require_monitored(self, job_id: str) -> None:
        job = self.get_job(job_id)
        if self.monitor is None:
            raise InvalidStateError("Safety monitoring is not enabled")
        if job.status != JobStatus.IN_PROGRESS.value:
            raise InvalidStateError(
                f"Safety monitoring only applies to jobs in progress (status: {job.status})"
            )

    def _check_participant(self, job: Job, actor_id: Optional[str], action: str) -> None:
        if actor_id is None:
            return
        if actor_id not in (job.customer_id, job.provider_id):
            raise UnauthorizedError(f"Only the customer or assigned provider can {action} a job")

    def _rank(self, items: List[Any], caller_location, radius_km) -> List[Any]:
        if caller_location is None:
            return items
        if radius_km is None:
            raise ValidationError("radius_km is required when a caller location is given")
        if radius_km <= 0:
            raise ValidationError("radius_km must be positive")
        origin = _coerce_coordinates(caller_location)
        return rank_by_distance(items, origin, radius_km)

    def _record_transition(
        self,
        job: Job,
        from_status: Optional[str],
        to_status: str,
        actor_id: Optional[str],
        reason: Optional[str] = None,
    ) -> None:
        transition = JobStateTransition(
            id=str(uuid.uuid4()),
            job_id=job.id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            reason=reason,
            created_at=self._clock(),
        )
        self.storage.save_transition(transition)
        if self.record_events:
            log_job_transition(self.instance_id, job.id, from_status, to_status, actor_id)

    def _notify(
        self,
        user_id: Optional[str],
        type: NotificationType,
        title: str,
        message: str,
        data: Dict[str, Any],
    ) -> None:
        if self.notifications is None or not user_id:
            return
        try:
            self.notifications.notify(user_id, type, title, message, data)
        except Exception as e:
            logger.warning("Notification to %s failed: %s", user_id, e)
