"""End-to-end walkthrough of a job's lifecycle."""

from datetime import timedelta
from typing import TYPE_CHECKING

from piecejob.cli.commands.helpers import print_json
from piecejob.seed import DEFAULT_LOCATION

if TYPE_CHECKING:
    from piecejob.marketplace import MarketplaceService


def cmd_demo(args, m: "MarketplaceService"):
    """Post a job, bid, accept, start, monitor and complete it."""
    steps = []

    def step(label: str, **details):
        steps.append({"step": label, **details})
        if not args.json:
            extra = ", ".join(f"{k}={v}" for k, v in details.items())
            print(f"→ {label}" + (f" ({extra})" if extra else ""))

    job = m.create_job(
        customer_id="customer1",
        title="Window Cleaning - Double Storey",
        description="Clean all windows inside and out on a double storey house.",
        category="Cleaning",
        location="Sandton, Johannesburg",
        budget="R800 - R1200",
        estimated_duration=4,
        coordinates={"latitude": -26.1076, "longitude": 28.0567},
    )
    step("Job posted", id=job.id, status=job.status, bids=len(job.bids))

    nearby = m.list_jobs(caller_location=DEFAULT_LOCATION, radius_km=m.config.default_radius_km)
    listed = next(j for j in nearby if j.id == job.id)
    step("Listed near Johannesburg", distance=listed.distance, results=len(nearby))

    bid = m.submit_bid(
        job_id=job.id,
        provider_id="provider1",
        amount="R950",
        message="Eco-friendly products, all equipment supplied.",
        estimated_duration=4,
    )
    step("Bid submitted", id=bid.id, amount=bid.amount, status=bid.status)

    rival = m.submit_bid(
        job_id=job.id,
        provider_id="provider5",
        amount="R850",
        message="Available tomorrow morning.",
        estimated_duration=5,
    )
    step("Second bid submitted", id=rival.id, amount=rival.amount)

    job, bid = m.accept_bid(bid.id, actor_id="customer1")
    step(
        "Bid accepted",
        job_status=job.status,
        provider=job.provider_id,
        other_bid=rival.status,
    )

    job = m.start_job(job.id)
    step("Job started", status=job.status)

    if m.monitor is not None:
        for hours in (3, 5, 7):
            status = m.monitor.evaluate(job.id, now=job.start_time + timedelta(hours=hours))
            step(
                f"Safety check after {hours}h",
                alert=status.alert_level,
                check_in=status.check_in_status,
            )
        status = m.confirm_safety(job.id, user_id="customer1")
        step("Safety confirmed", alert=status.alert_level)

    job = m.complete_job(job.id)
    monitored = m.monitor.is_monitoring(job.id) if m.monitor is not None else False
    step("Job completed", status=job.status, monitored=monitored)

    m.create_review(
        job_id=job.id,
        reviewer_id="customer1",
        reviewee_id="provider1",
        rating=5,
        comment="Spotless windows.",
        reviewer_name="Michael Johnson",
    )
    provider = m.get_provider("provider1")
    step("Review left", rating=provider.rating, reviews=provider.review_count)

    if args.json:
        print_json(steps)
