"""
Marketplace data models.

Jobs are posted by customers, providers bid on them, and the customer
accepts exactly one bid. Status values are stored as plain strings so
records serialize cleanly; the enums are accepted anywhere a status is.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from piecejob.geo import Coordinates
from piecejob.utils import format_time_ago

MAX_TITLE_LENGTH = 200


class JobStatus(str, Enum):
    """Job lifecycle status."""

    POSTED = "posted"  # Open for bids
    CONFIRMED = "confirmed"  # A bid was accepted, provider assigned
    IN_PROGRESS = "in-progress"  # Work started, safety monitor active
    COMPLETED = "completed"  # Work finished
    CANCELLED = "cancelled"  # Withdrawn before work started


class BidStatus(str, Enum):
    """Bid lifecycle status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Urgency(str, Enum):
    """Customer-reported priority of a job."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QualificationType(str, Enum):
    CERTIFICATE = "certificate"
    LICENSE = "license"
    EXPERIENCE = "experience"
    REFERENCE = "reference"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"


VALID_JOB_TRANSITIONS: Dict[str, set] = {
    JobStatus.POSTED.value: {JobStatus.CONFIRMED.value, JobStatus.CANCELLED.value},
    JobStatus.CONFIRMED.value: {JobStatus.IN_PROGRESS.value, JobStatus.CANCELLED.value},
    JobStatus.IN_PROGRESS.value: {JobStatus.COMPLETED.value},
}

TERMINAL_JOB_STATUSES = {JobStatus.COMPLETED.value, JobStatus.CANCELLED.value}

_AMOUNT_PREFIX = re.compile(r"^[^\d\-+.]*")


def parse_amount(amount: str) -> float:
    """Parse a monetary string such as "R950" or "R1,200.50".

    Leading currency symbols and thousands separators are ignored.

    Raises:
        ValueError: If the remainder is not a number.
    """
    if not isinstance(amount, str):
        raise ValueError("Amount must be a string")
    cleaned = _AMOUNT_PREFIX.sub("", amount.strip()).replace(",", "").replace(" ", "")
    if not cleaned:
        raise ValueError(f"Amount is not a number: '{amount}'")
    value = float(cleaned)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"Amount is not a number: '{amount}'")
    return value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _check_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive whole number of hours")


@dataclass
class Bid:
    """A provider's priced, timed proposal against a job."""

    id: str
    job_id: str
    provider_id: str
    amount: str
    message: str
    estimated_duration: int
    status: str = BidStatus.PENDING.value
    provider_name: str = ""
    provider_avatar: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = _enum_value(self.status)
        if self.status not in {s.value for s in BidStatus}:
            raise ValueError(f"Invalid status: {self.status}")
        _check_positive_int(self.estimated_duration, "Estimated duration")

    @property
    def amount_value(self) -> float:
        return parse_amount(self.amount)

    @property
    def is_pending(self) -> bool:
        return self.status == BidStatus.PENDING.value

    @property
    def time_submitted(self) -> str:
        return format_time_ago(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "provider_id": self.provider_id,
            "provider_name": self.provider_name,
            "provider_avatar": self.provider_avatar,
            "amount": self.amount,
            "message": self.message,
            "estimated_duration": self.estimated_duration,
            "status": self.status,
            "time_submitted": self.time_submitted,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Job:
    """A unit of requested work posted by a customer."""

    id: str
    customer_id: str
    title: str
    description: str
    category: str
    location: str
    budget: str
    estimated_duration: int
    urgency: str = Urgency.MEDIUM.value
    coordinates: Optional[Coordinates] = None
    images: List[str] = field(default_factory=list)
    status: str = JobStatus.POSTED.value
    bids: List[Bid] = field(default_factory=list)
    provider_id: Optional[str] = None
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    # Filled in by listing operations relative to the caller, never stored
    distance: Optional[str] = None

    def __post_init__(self):
        self.status = _enum_value(self.status)
        self.urgency = _enum_value(self.urgency)
        if self.status not in {s.value for s in JobStatus}:
            raise ValueError(f"Invalid status: {self.status}")
        if self.urgency not in {u.value for u in Urgency}:
            raise ValueError(f"Invalid urgency: {self.urgency}")
        if len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title too long (max {MAX_TITLE_LENGTH} characters)")
        _check_positive_int(self.estimated_duration, "Estimated duration")

    def can_transition_to(self, status: Any) -> bool:
        """Check whether moving to ``status`` is a legal transition."""
        return _enum_value(status) in VALID_JOB_TRANSITIONS.get(self.status, set())

    @property
    def is_open(self) -> bool:
        """Whether the job still accepts bids."""
        return self.status == JobStatus.POSTED.value

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_JOB_STATUSES

    @property
    def accepted_bid(self) -> Optional[Bid]:
        for bid in self.bids:
            if bid.status == BidStatus.ACCEPTED.value:
                return bid
        return None

    @property
    def time_posted(self) -> str:
        return format_time_ago(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "provider_id": self.provider_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "location": self.location,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "budget": self.budget,
            "estimated_duration": self.estimated_duration,
            "urgency": self.urgency,
            "images": list(self.images),
            "status": self.status,
            "bids": [b.to_dict() for b in self.bids],
            "time_posted": self.time_posted,
            "distance": self.distance,
            "start_time": _iso(self.start_time),
            "completed_time": _iso(self.completed_time),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "confirmed_at": _iso(self.confirmed_at),
            "cancelled_at": _iso(self.cancelled_at),
        }


@dataclass
class Qualification:
    """A certificate, license or reference attached to a provider profile."""

    id: str
    type: str
    title: str
    description: str = ""
    image_url: Optional[str] = None
    verification_status: str = VerificationStatus.PENDING.value
    date_added: Optional[str] = None

    def __post_init__(self):
        self.type = _enum_value(self.type)
        self.verification_status = _enum_value(self.verification_status)
        if self.type not in {t.value for t in QualificationType}:
            raise ValueError(f"Invalid qualification type: {self.type}")
        if self.verification_status not in {v.value for v in VerificationStatus}:
            raise ValueError(f"Invalid verification status: {self.verification_status}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "verification_status": self.verification_status,
            "date_added": self.date_added,
        }


@dataclass
class Provider:
    """A service professional who can bid on jobs."""

    id: str
    name: str
    specialty: str
    location: str
    hourly_rate: str
    avatar: str = ""
    rating: float = 0.0
    review_count: int = 0
    coordinates: Optional[Coordinates] = None
    completed_jobs: int = 0
    is_verified: bool = False
    badges: List[str] = field(default_factory=list)
    description: str = ""
    qualifications: List[Qualification] = field(default_factory=list)
    is_online: bool = False
    # Filled in by listing operations relative to the caller, never stored
    distance: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.rating <= 5.0:
            raise ValueError(f"Rating must be between 0 and 5, got {self.rating}")
        self.rating = round(self.rating, 1)
        if self.review_count < 0 or self.completed_jobs < 0:
            raise ValueError("Counts cannot be negative")
        # Badges behave as a set but keep their display order
        self.badges = list(dict.fromkeys(self.badges))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "avatar": self.avatar,
            "rating": self.rating,
            "review_count": self.review_count,
            "specialty": self.specialty,
            "location": self.location,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "distance": self.distance,
            "hourly_rate": self.hourly_rate,
            "completed_jobs": self.completed_jobs,
            "is_verified": self.is_verified,
            "badges": list(self.badges),
            "description": self.description,
            "qualifications": [q.to_dict() for q in self.qualifications],
            "is_online": self.is_online,
        }


@dataclass
class Review:
    """A customer's rating of a provider after a completed job."""

    id: str
    job_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: str = ""
    reviewer_name: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.rating, bool) or not isinstance(self.rating, int):
            raise ValueError("Rating must be a whole number")
        if not 1 <= self.rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {self.rating}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_name": self.reviewer_name,
            "reviewee_id": self.reviewee_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": _iso(self.created_at),
        }


@dataclass
class JobMessage:
    """A chat message exchanged about a job."""

    id: str
    job_id: str
    sender_id: str
    receiver_id: str
    content: str
    type: str = MessageType.TEXT.value
    read: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.type = _enum_value(self.type)
        if self.type not in {t.value for t in MessageType}:
            raise ValueError(f"Invalid message type: {self.type}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "content": self.content,
            "type": self.type,
            "read": self.read,
            "created_at": _iso(self.created_at),
        }


@dataclass
class JobStateTransition:
    """Audit log entry for a job status change."""

    id: str
    job_id: str
    from_status: Optional[str]
    to_status: str
    actor_id: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "reason": self.reason,
            "created_at": _iso(self.created_at),
        }
