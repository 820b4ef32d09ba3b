"""
Demo data for PieceJob.

Eight open jobs around Johannesburg, six providers and two customers. The
CLI and the API (when ``seed_demo_data`` is set) start from this data set.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from piecejob.geo import Coordinates
from piecejob.marketplace.models import (
    Bid,
    Job,
    JobStateTransition,
    JobStatus,
    Provider,
    Qualification,
)
from piecejob.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = Coordinates(latitude=-26.2041, longitude=28.0473)  # Johannesburg CBD

_AVATAR = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=400"


def _avatar(photo_id: int) -> str:
    return _AVATAR.format(photo_id, photo_id)


DEMO_CUSTOMERS: List[Dict[str, Any]] = [
    {
        "id": "customer1",
        "name": "Michael Johnson",
        "location": "Sandton, Johannesburg",
        "coordinates": Coordinates(-26.1076, 28.0567),
    },
    {
        "id": "customer2",
        "name": "Emma Thompson",
        "location": "Melville, Johannesburg",
        "coordinates": Coordinates(-26.1875, 28.0103),
    },
]


def demo_providers() -> List[Provider]:
    """Build fresh provider profiles."""
    return [
        Provider(
            id="provider1",
            name="Sarah Mokoena",
            avatar=_avatar(1239291),
            rating=4.9,
            review_count=127,
            specialty="Deep Cleaning",
            location="Sandton",
            coordinates=Coordinates(-26.1076, 28.0567),
            hourly_rate="R180/hour",
            completed_jobs=245,
            is_verified=True,
            badges=["Top Rated", "Quick Response", "Eco-Friendly"],
            description=(
                "Professional cleaner with 8+ years experience. Specializing in residential "
                "deep cleaning and move-in/out services."
            ),
            qualifications=[
                Qualification(
                    id="qual1",
                    type="certificate",
                    title="Professional Cleaning Certificate",
                    description="Certified by SA Cleaning Institute",
                    verification_status="verified",
                    date_added="2023-01-15",
                )
            ],
            is_online=True,
        ),
        Provider(
            id="provider2",
            name="Themba Dlamini",
            avatar=_avatar(2379004),
            rating=4.8,
            review_count=89,
            specialty="Garden Maintenance",
            location="Rosebank",
            coordinates=Coordinates(-26.1448, 28.0436),
            hourly_rate="R150/hour",
            completed_jobs=156,
            is_verified=True,
            badges=["Eco-Friendly", "Reliable", "Landscaping Expert"],
            description=(
                "Experienced gardener with expertise in lawn care, hedge trimming, and "
                "landscape maintenance."
            ),
            qualifications=[
                Qualification(
                    id="qual2",
                    type="certificate",
                    title="Horticulture Certificate",
                    description="Certified in garden maintenance and landscaping",
                    verification_status="verified",
                    date_added="2023-02-20",
                )
            ],
            is_online=True,
        ),
        Provider(
            id="provider3",
            name="Maria Santos",
            avatar=_avatar(762020),
            rating=4.7,
            review_count=203,
            specialty="Interior Painting",
            location="Melville",
            coordinates=Coordinates(-26.1875, 28.0103),
            hourly_rate="R200/hour",
            completed_jobs=312,
            is_verified=True,
            badges=["Master Painter", "Quality Guarantee", "Interior Specialist"],
            description="Professional painter with 12+ years experience.",
            qualifications=[
                Qualification(
                    id="qual3",
                    type="license",
                    title="Professional Painter License",
                    description="Licensed professional painter",
                    verification_status="verified",
                    date_added="2023-01-10",
                )
            ],
            is_online=True,
        ),
        Provider(
            id="provider4",
            name="John Williams",
            avatar=_avatar(1043471),
            rating=4.9,
            review_count=156,
            specialty="Plumbing",
            location="Fourways",
            coordinates=Coordinates(-25.9269, 28.0094),
            hourly_rate="R250/hour",
            completed_jobs=189,
            is_verified=True,
            badges=["Licensed Plumber", "Emergency Service", "24/7 Available"],
            description="Licensed plumber with 15+ years experience.",
            qualifications=[
                Qualification(
                    id="qual4",
                    type="license",
                    title="Master Plumber License",
                    description="Licensed master plumber with COC",
                    verification_status="verified",
                    date_added="2023-01-05",
                )
            ],
            is_online=True,
        ),
        Provider(
            id="provider5",
            name="Linda Nkomo",
            avatar=_avatar(3763188),
            rating=4.6,
            review_count=78,
            specialty="House Cleaning",
            location="Sandton",
            coordinates=Coordinates(-26.1076, 28.0567),
            hourly_rate="R160/hour",
            completed_jobs=134,
            is_verified=True,
            badges=["Reliable", "Detail Oriented"],
            description="Professional cleaning service with 6 years experience.",
            is_online=True,
        ),
        Provider(
            id="provider6",
            name="David Mthembu",
            avatar=_avatar(1681010),
            rating=4.8,
            review_count=92,
            specialty="Electrical Work",
            location="Randburg",
            coordinates=Coordinates(-26.0939, 27.9621),
            hourly_rate="R280/hour",
            completed_jobs=167,
            is_verified=True,
            badges=["Licensed Electrician", "Safety Certified", "COC Provider"],
            description="Qualified electrician with 10+ years experience.",
            qualifications=[
                Qualification(
                    id="qual5",
                    type="license",
                    title="Electrical License",
                    description="Licensed electrician with COC certification",
                    verification_status="verified",
                    date_added="2023-01-12",
                )
            ],
            is_online=False,
        ),
    ]


# (job fields, hours since posted, bids)
# Each bid is (id, provider, amount, duration, message, hours since bid)
_DEMO_JOBS = [
    (
        dict(
            id="1",
            title="Deep Clean 3-Bedroom House",
            description=(
                "Need a thorough cleaning of my 3-bedroom house in Sandton. Kitchen, "
                "bathrooms, and all living areas."
            ),
            location="Sandton, Johannesburg",
            coordinates=Coordinates(-26.1076, 28.0567),
            budget="R800 - R1200",
            category="Cleaning",
            urgency="medium",
            customer_id="customer1",
            estimated_duration=4,
            images=[_avatar(4099467), _avatar(6197119)],
        ),
        2,
        [
            (
                "bid1",
                "provider1",
                "R950",
                4,
                "I have 8+ years of experience in deep cleaning and use only eco-friendly "
                "products.",
                1,
            ),
            (
                "bid2",
                "provider5",
                "R850",
                5,
                "Professional cleaning service with 6 years experience. Can start tomorrow "
                "morning.",
                0.75,
            ),
        ],
    ),
    (
        dict(
            id="2",
            title="Garden Maintenance & Lawn Care",
            description=(
                "Weekly garden maintenance needed for large suburban garden. Includes lawn "
                "mowing, hedge trimming, weeding, and general garden cleanup."
            ),
            location="Rosebank, Johannesburg",
            coordinates=Coordinates(-26.1448, 28.0436),
            budget="R400 - R600",
            category="Gardening",
            urgency="low",
            customer_id="customer1",
            estimated_duration=3,
        ),
        4,
        [
            (
                "bid3",
                "provider2",
                "R500",
                3,
                "I have 10+ years of gardening experience and all professional equipment.",
                2,
            )
        ],
    ),
    (
        dict(
            id="3",
            title="Interior Wall Painting",
            description=(
                "Need to paint the interior walls of my 2-bedroom apartment. All materials "
                "will be provided."
            ),
            location="Melville, Johannesburg",
            coordinates=Coordinates(-26.1875, 28.0103),
            budget="R1500 - R2500",
            category="Painting",
            urgency="medium",
            customer_id="customer2",
            estimated_duration=6,
        ),
        24,
        [
            (
                "bid4",
                "provider3",
                "R1800",
                6,
                "Professional painter with 12+ years experience. Can complete in 2 days.",
                18,
            )
        ],
    ),
    (
        dict(
            id="4",
            title="Bathroom Plumbing Repair",
            description=(
                "Urgent plumbing repair needed in main bathroom. Leaking tap in basin and "
                "blocked drain in shower."
            ),
            location="Fourways, Johannesburg",
            coordinates=Coordinates(-25.9269, 28.0094),
            budget="R500 - R800",
            category="Plumbing",
            urgency="high",
            customer_id="customer3",
            estimated_duration=2,
        ),
        3,
        [
            (
                "bid5",
                "provider4",
                "R650",
                2,
                "Licensed plumber with 15+ years experience. I can fix both issues today.",
                1,
            )
        ],
    ),
    (
        dict(
            id="5",
            title="Electrical Socket Installation",
            description=(
                "Need 3 new electrical sockets installed in home office. Must be qualified "
                "electrician with valid COC."
            ),
            location="Randburg, Johannesburg",
            coordinates=Coordinates(-26.0939, 27.9621),
            budget="R800 - R1200",
            category="Electrical",
            urgency="medium",
            customer_id="customer4",
            estimated_duration=3,
        ),
        6,
        [],
    ),
    (
        dict(
            id="6",
            title="Moving Assistance - 2 Bedroom Apartment",
            description=(
                "Need help moving from 2-bedroom apartment to new house across town. Heavy "
                "furniture included."
            ),
            location="Bryanston, Johannesburg",
            coordinates=Coordinates(-26.0469, 28.0187),
            budget="R1000 - R1500",
            category="Moving",
            urgency="high",
            customer_id="customer5",
            estimated_duration=5,
        ),
        5,
        [],
    ),
    (
        dict(
            id="7",
            title="Kitchen Deep Clean & Appliance Service",
            description=(
                "Complete kitchen deep clean including oven, refrigerator, microwave, and all "
                "surfaces."
            ),
            location="Parktown, Johannesburg",
            coordinates=Coordinates(-26.1715, 28.0441),
            budget="R600 - R900",
            category="Cleaning",
            urgency="medium",
            customer_id="customer6",
            estimated_duration=4,
        ),
        8,
        [],
    ),
    (
        dict(
            id="8",
            title="Handyman - Multiple Small Repairs",
            description=(
                "Various small repairs around the house: door hinges, broken tiles, small "
                "holes in walls, loose cabinet handles."
            ),
            location="Greenside, Johannesburg",
            coordinates=Coordinates(-26.1542, 28.0186),
            budget="R800 - R1200",
            category="Handyman",
            urgency="low",
            customer_id="customer7",
            estimated_duration=4,
        ),
        12,
        [],
    ),
]


def load_demo_data(service, now: Optional[datetime] = None) -> Dict[str, int]:
    """Populate ``service`` with the demo providers, jobs and bids.

    Records keep their well-known ids ("1".."8", "bid1".., "provider1"..)
    so they can be referenced from the command line. Jobs are listed in
    the order above, job "1" first.

    Returns:
        Counts of loaded records by kind.
    """
    now = now or utc_now()
    storage = service.storage
    providers = {p.id: p for p in demo_providers()}
    for provider in providers.values():
        service.register_provider(provider)

    bid_count = 0
    # Saved oldest first so the newest listing ends up at the head
    for fields, hours_ago, bids in reversed(_DEMO_JOBS):
        created_at = now - timedelta(hours=hours_ago)
        job = Job(
            **fields,
            status=JobStatus.POSTED.value,
            created_at=created_at,
            updated_at=created_at,
        )
        storage.save_job(job)
        storage.save_transition(
            JobStateTransition(
                id=f"seed-{job.id}",
                job_id=job.id,
                from_status=None,
                to_status=JobStatus.POSTED.value,
                actor_id=job.customer_id,
                reason="created",
                created_at=created_at,
            )
        )
        for bid_id, provider_id, amount, duration, message, bid_hours_ago in bids:
            provider = providers[provider_id]
            storage.save_bid(
                Bid(
                    id=bid_id,
                    job_id=job.id,
                    provider_id=provider_id,
                    amount=amount,
                    message=message,
                    estimated_duration=duration,
                    provider_name=provider.name,
                    provider_avatar=provider.avatar,
                    created_at=now - timedelta(hours=bid_hours_ago),
                )
            )
            bid_count += 1

    counts = {"providers": len(providers), "jobs": len(_DEMO_JOBS), "bids": bid_count}
    logger.info(
        "Demo data loaded | providers=%d | jobs=%d | bids=%d",
        counts["providers"],
        counts["jobs"],
        counts["bids"],
    )
    return counts
