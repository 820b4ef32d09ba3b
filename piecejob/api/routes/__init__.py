"""API routes."""

from .bids import router as bids_router
from .jobs import router as jobs_router
from .notifications import router as notifications_router
from .providers import router as providers_router
from .safety import router as safety_router

__all__ = [
    "jobs_router",
    "bids_router",
    "providers_router",
    "safety_router",
    "notifications_router",
]
