"""Bid routes for the PieceJob API."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..dependencies import Actor, Marketplace
from ..rate_limit import limiter
from .jobs import BidResponse, JobResponse, to_bid_response, to_job_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bids", tags=["bids"])


class AcceptBidResponse(BaseModel):
    """The confirmed job and the accepted bid."""

    job: JobResponse
    bid: BidResponse


@router.get("/{bid_id}", response_model=BidResponse)
@limiter.limit("60/minute")
async def get_bid(request: Request, bid_id: str, m: Marketplace):
    """Get a bid by ID."""
    return to_bid_response(m.get_bid(bid_id))


@router.post("/{bid_id}/accept", response_model=AcceptBidResponse)
@limiter.limit("10/minute")
async def accept_bid(request: Request, bid_id: str, m: Marketplace, actor: Actor):
    """
    Accept a pending bid.

    Every other bid on the job is rejected and the job is confirmed with
    the bidder assigned. Only the job's customer may accept.
    """
    logger.info(f"POST /bids/{bid_id}/accept | actor={actor}")

    job, bid = m.accept_bid(bid_id, actor_id=actor)

    logger.info(f"Bid accepted | id={bid_id} | job={job.id} | provider={bid.provider_id}")
    return AcceptBidResponse(job=to_job_response(job), bid=to_bid_response(bid))
