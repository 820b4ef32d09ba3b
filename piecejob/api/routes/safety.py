"""Safety routes for the PieceJob API.

Status and check-ins for jobs in progress, plus a sweep endpoint that can
be called periodically (e.g. via cron) when the in-process monitor loop
is disabled.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..dependencies import Actor, Marketplace
from ..rate_limit import limiter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/safety", tags=["safety"])


# =============================================================================
# Request/Response Models
# =============================================================================


class SafetyStatusResponse(BaseModel):
    """Safety state of a monitored job."""

    job_id: str
    start_time: datetime | None = None
    estimated_duration: float
    alert_level: str
    check_in_status: str
    emergency_check_triggered: bool
    check_in_prompt_open: bool
    elapsed_hours: float
    emergency_alerts: int
    last_evaluated_at: datetime | None = None
    help_requested_at: datetime | None = None


class EmergencyResponse(BaseModel):
    job_id: str
    dispatched: bool
    requested_at: datetime


class SweepResponse(BaseModel):
    """Result of evaluating every monitored job once."""

    evaluated: int
    jobs: list[SafetyStatusResponse]
    checked_at: datetime


def to_status_response(state) -> SafetyStatusResponse:
    return SafetyStatusResponse.model_validate(state.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/sweep", response_model=SweepResponse)
@limiter.limit("10/minute")
async def sweep(request: Request, m: Marketplace):
    """Evaluate every monitored job now."""
    if m.monitor is None:
        return SweepResponse(evaluated=0, jobs=[], checked_at=datetime.now(timezone.utc))

    results = m.monitor.sweep()
    logger.info(f"POST /safety/sweep | evaluated={len(results)}")
    return SweepResponse(
        evaluated=len(results),
        jobs=[to_status_response(s) for s in results.values()],
        checked_at=datetime.now(timezone.utc),
    )


@router.get("/{job_id}", response_model=SafetyStatusResponse)
@limiter.limit("60/minute")
async def get_safety_status(request: Request, job_id: str, m: Marketplace):
    """Get the current safety state of an in-progress job."""
    return to_status_response(m.get_safety_status(job_id))


@router.post("/{job_id}/confirm", response_model=SafetyStatusResponse)
@limiter.limit("30/minute")
async def confirm_safety(request: Request, job_id: str, m: Marketplace, actor: Actor):
    """Confirm that everyone on the job is safe. Resets the alert level."""
    logger.info(f"POST /safety/{job_id}/confirm | actor={actor}")
    return to_status_response(m.confirm_safety(job_id, user_id=actor))


@router.post("/{job_id}/emergency", response_model=EmergencyResponse)
@limiter.limit("10/minute")
async def request_emergency_help(request: Request, job_id: str, m: Marketplace, actor: Actor):
    """Dispatch emergency help for a job immediately."""
    logger.warning(f"POST /safety/{job_id}/emergency | actor={actor}")
    m.request_emergency_help(job_id, user_id=actor)
    return EmergencyResponse(
        job_id=job_id, dispatched=True, requested_at=datetime.now(timezone.utc)
    )
