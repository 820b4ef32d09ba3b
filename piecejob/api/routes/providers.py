"""Provider routes for the PieceJob API."""

import logging
from datetime import datetime

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from ..dependencies import Marketplace, caller_search_area
from ..rate_limit import limiter
from .jobs import CoordinatesModel

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/providers", tags=["providers"])


# =============================================================================
# Request/Response Models
# =============================================================================


class QualificationResponse(BaseModel):
    id: str
    type: str
    title: str
    description: str
    image_url: str | None = None
    verification_status: str
    date_added: str | None = None


class ProviderResponse(BaseModel):
    """Provider profile response."""

    id: str
    name: str
    avatar: str
    rating: float
    review_count: int
    specialty: str
    location: str
    coordinates: CoordinatesModel | None = None
    distance: str | None = None
    hourly_rate: str
    completed_jobs: int
    is_verified: bool
    badges: list[str]
    description: str
    qualifications: list[QualificationResponse]
    is_online: bool


class ProviderListResponse(BaseModel):
    providers: list[ProviderResponse]
    total: int
    radius_km: float | None = None


class ReviewCreate(BaseModel):
    """Request to review a provider after a completed job."""

    job_id: str = Field(..., min_length=1)
    reviewer_id: str = Field(..., min_length=1, max_length=100)
    reviewer_name: str = Field("", max_length=100)
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)


class ReviewResponse(BaseModel):
    id: str
    job_id: str
    reviewer_id: str
    reviewer_name: str
    reviewee_id: str
    rating: int
    comment: str
    created_at: datetime | None = None


def to_provider_response(provider) -> ProviderResponse:
    return ProviderResponse.model_validate(provider.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_model=ProviderListResponse)
@limiter.limit("60/minute")
async def list_providers(
    request: Request,
    m: Marketplace,
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=20000),
):
    """List providers, nearest first when lat/lon are given."""
    location, radius = caller_search_area(m, lat, lon, radius_km)
    logger.info(f"GET /providers | location={location} | radius={radius}")

    providers = m.list_providers(caller_location=location, radius_km=radius)
    return ProviderListResponse(
        providers=[to_provider_response(p) for p in providers],
        total=len(providers),
        radius_km=radius,
    )


@router.get("/{provider_id}", response_model=ProviderResponse)
@limiter.limit("60/minute")
async def get_provider(request: Request, provider_id: str, m: Marketplace):
    """Get a provider profile."""
    return to_provider_response(m.get_provider(provider_id))


@router.post(
    "/{provider_id}/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit("10/minute")
async def create_review(request: Request, provider_id: str, review: ReviewCreate, m: Marketplace):
    """
    Review a provider.

    The job must be completed, the reviewer must be its customer and the
    provider must be the one who did the work. The new rating is folded
    into the provider's average.
    """
    logger.info(
        f"POST /providers/{provider_id}/reviews | job={review.job_id} | rating={review.rating}"
    )

    created = m.create_review(
        job_id=review.job_id,
        reviewer_id=review.reviewer_id,
        reviewee_id=provider_id,
        rating=review.rating,
        comment=review.comment,
        reviewer_name=review.reviewer_name,
    )
    return ReviewResponse.model_validate(created.to_dict())


@router.get("/{provider_id}/reviews", response_model=list[ReviewResponse])
@limiter.limit("60/minute")
async def list_reviews(request: Request, provider_id: str, m: Marketplace):
    """List a provider's reviews."""
    reviews = m.get_reviews_for_provider(provider_id)
    return [ReviewResponse.model_validate(r.to_dict()) for r in reviews]
