"""Jobs routes for the PieceJob API.

Endpoints for posting jobs, bidding on them and moving them through
their lifecycle.
"""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field, field_validator

from ..dependencies import Actor, Marketplace, caller_search_area
from ..rate_limit import limiter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


# =============================================================================
# Request/Response Models
# =============================================================================

JobStatus = Literal["posted", "confirmed", "in-progress", "completed", "cancelled"]
BidStatus = Literal["pending", "accepted", "rejected"]
Urgency = Literal["low", "medium", "high"]


class CoordinatesModel(BaseModel):
    """A latitude/longitude pair in degrees."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class JobCreate(BaseModel):
    """Request to post a job."""

    customer_id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    category: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    budget: str = Field(..., min_length=1, max_length=100)
    estimated_duration: int = Field(..., gt=0, description="Estimated hours")
    urgency: Urgency = "medium"
    coordinates: CoordinatesModel | None = None
    images: list[str] = Field(default_factory=list, max_length=10)

    @field_validator("title", "description", "category", "location", "budget")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class BidCreate(BaseModel):
    """Request to bid on a job."""

    provider_id: str = Field(..., min_length=1, max_length=100)
    amount: str = Field(..., min_length=1, max_length=50, description='e.g. "R950"')
    message: str = Field(..., min_length=1, max_length=2000)
    estimated_duration: int = Field(..., gt=0, description="Estimated hours")


class CancelJobRequest(BaseModel):
    """Request to cancel a job."""

    reason: str | None = Field(None, max_length=500)


class MessageCreate(BaseModel):
    """Request to send a message about a job."""

    sender_id: str = Field(..., min_length=1, max_length=100)
    receiver_id: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=2000)
    type: Literal["text", "image", "system"] = "text"


class BidResponse(BaseModel):
    """Bid details response."""

    id: str
    job_id: str
    provider_id: str
    provider_name: str
    provider_avatar: str
    amount: str
    message: str
    estimated_duration: int
    status: BidStatus
    time_submitted: str
    created_at: datetime | None = None


class JobResponse(BaseModel):
    """Job details response."""

    id: str
    customer_id: str
    provider_id: str | None = None
    title: str
    description: str
    category: str
    location: str
    coordinates: CoordinatesModel | None = None
    distance: str | None = None
    budget: str
    estimated_duration: int
    urgency: Urgency
    images: list[str]
    status: JobStatus
    bids: list[BidResponse]
    time_posted: str
    start_time: datetime | None = None
    completed_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None


class JobListResponse(BaseModel):
    """List of jobs, nearest first when a location was given."""

    jobs: list[JobResponse]
    total: int
    radius_km: float | None = None


class TransitionResponse(BaseModel):
    """A job status change."""

    id: str
    job_id: str
    from_status: JobStatus | None = None
    to_status: JobStatus
    actor_id: str | None = None
    reason: str | None = None
    created_at: datetime | None = None


class BidListResponse(BaseModel):
    """Bids on a job in submission order."""

    bids: list[BidResponse]
    total: int


class MessageResponse(BaseModel):
    """A message exchanged about a job."""

    id: str
    job_id: str
    sender_id: str
    receiver_id: str
    content: str
    type: str
    read: bool
    created_at: datetime | None = None


def to_job_response(job) -> JobResponse:
    """Convert a Job record to its response model."""
    return JobResponse.model_validate(job.to_dict())


def to_bid_response(bid) -> BidResponse:
    """Convert a Bid record to its response model."""
    return BidResponse.model_validate(bid.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_job_listing(request: Request, job: JobCreate, m: Marketplace):
    """
    Post a new job.

    Jobs start in 'posted' status with no bids and are listed first.
    """
    logger.info(f"POST /jobs | customer={job.customer_id} | title={job.title[:50]}")

    created = m.create_job(
        customer_id=job.customer_id,
        title=job.title,
        description=job.description,
        category=job.category,
        location=job.location,
        budget=job.budget,
        estimated_duration=job.estimated_duration,
        urgency=job.urgency,
        coordinates=job.coordinates.model_dump() if job.coordinates else None,
        images=job.images,
    )

    logger.info(f"Job created | id={created.id} | customer={job.customer_id}")
    return to_job_response(created)


@router.get("", response_model=JobListResponse)
@limiter.limit("60/minute")
async def list_jobs_endpoint(
    request: Request,
    m: Marketplace,
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=20000),
    status_filter: JobStatus | None = Query(None, alias="status"),
    category: str | None = Query(None),
    customer_id: str | None = Query(None),
):
    """
    List jobs.

    Filters:
    - lat/lon: Rank by distance from this point (radius defaults to 25 km)
    - status: Filter by job status
    - category: Filter by category (case-insensitive)
    - customer_id: Only jobs posted by this customer
    """
    location, radius = caller_search_area(m, lat, lon, radius_km)
    logger.info(f"GET /jobs | location={location} | radius={radius} | status={status_filter}")

    jobs = m.list_jobs(
        caller_location=location,
        radius_km=radius,
        status=status_filter,
        customer_id=customer_id,
        category=category,
    )
    return JobListResponse(
        jobs=[to_job_response(j) for j in jobs],
        total=len(jobs),
        radius_km=radius,
    )


@router.get("/{job_id}", response_model=JobResponse)
@limiter.limit("60/minute")
async def get_job_details(request: Request, job_id: str, m: Marketplace):
    """Get details of a specific job, including its bids."""
    return to_job_response(m.get_job(job_id))


@router.get("/{job_id}/history", response_model=list[TransitionResponse])
@limiter.limit("60/minute")
async def get_job_history(request: Request, job_id: str, m: Marketplace):
    """Get the status history of a job, oldest first."""
    return [TransitionResponse.model_validate(t.to_dict()) for t in m.get_job_history(job_id)]


@router.post("/{job_id}/start", response_model=JobResponse)
@limiter.limit("10/minute")
async def start_job(request: Request, job_id: str, m: Marketplace, actor: Actor):
    """
    Start a confirmed job.

    Safety monitoring begins as soon as the job is in progress.
    """
    logger.info(f"POST /jobs/{job_id}/start | actor={actor}")
    job = m.start_job(job_id, actor_id=actor)
    logger.info(f"Job started | id={job_id} | provider={job.provider_id}")
    return to_job_response(job)


@router.post("/{job_id}/complete", response_model=JobResponse)
@limiter.limit("10/minute")
async def complete_job(request: Request, job_id: str, m: Marketplace, actor: Actor):
    """Complete an in-progress job and stop monitoring it."""
    logger.info(f"POST /jobs/{job_id}/complete | actor={actor}")
    job = m.complete_job(job_id, actor_id=actor)
    logger.info(f"Job completed | id={job_id}")
    return to_job_response(job)


@router.post("/{job_id}/cancel", response_model=JobResponse)
@limiter.limit("10/minute")
async def cancel_job(
    request: Request,
    job_id: str,
    m: Marketplace,
    actor: Actor,
    cancel_request: CancelJobRequest | None = None,
):
    """
    Cancel a job that has not started.

    Only the customer may cancel. Pending bids are rejected.
    """
    reason = cancel_request.reason if cancel_request else None
    logger.info(f"POST /jobs/{job_id}/cancel | actor={actor} | reason={reason}")
    return to_job_response(m.cancel_job(job_id, actor_id=actor, reason=reason))


@router.post(
    "/{job_id}/bids", response_model=BidResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit("30/minute")
async def submit_bid(request: Request, job_id: str, bid: BidCreate, m: Marketplace):
    """
    Bid on a posted job.

    The amount must parse to a positive number ("R950", "R1,200").
    """
    logger.info(f"POST /jobs/{job_id}/bids | provider={bid.provider_id} | amount={bid.amount}")

    created = m.submit_bid(
        job_id=job_id,
        provider_id=bid.provider_id,
        amount=bid.amount,
        message=bid.message,
        estimated_duration=bid.estimated_duration,
    )

    logger.info(f"Bid created | id={created.id} | job={job_id}")
    return to_bid_response(created)


@router.get("/{job_id}/bids", response_model=BidListResponse)
@limiter.limit("60/minute")
async def list_bids(request: Request, job_id: str, m: Marketplace):
    """List the bids on a job in submission order."""
    bids = m.get_bids_for_job(job_id)
    return BidListResponse(bids=[to_bid_response(b) for b in bids], total=len(bids))


@router.post(
    "/{job_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit("60/minute")
async def send_message(request: Request, job_id: str, message: MessageCreate, m: Marketplace):
    """Send a message about a job. The receiver is notified."""
    sent = m.send_message(
        job_id=job_id,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        content=message.content,
        message_type=message.type,
    )
    return MessageResponse.model_validate(sent.to_dict())


@router.get("/{job_id}/messages", response_model=list[MessageResponse])
@limiter.limit("60/minute")
async def list_messages(request: Request, job_id: str, m: Marketplace):
    """List the messages exchanged about a job, oldest first."""
    return [MessageResponse.model_validate(msg.to_dict()) for msg in m.get_messages_for_job(job_id)]
