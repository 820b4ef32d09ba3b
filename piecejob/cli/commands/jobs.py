"""Job commands for the PieceJob CLI."""

from typing import TYPE_CHECKING

from piecejob.cli.commands.helpers import caller_location, print_json, validate_input

if TYPE_CHECKING:
    from piecejob.marketplace import MarketplaceService


def _print_job_line(job) -> None:
    distance = f" | {job.distance}" if job.distance else ""
    print(f"  [{job.id}] {job.title}")
    print(
        f"      {job.category} | {job.location} | {job.budget} | "
        f"{job.status} | {len(job.bids)} bid(s){distance}"
    )


def cmd_jobs(args, m: "MarketplaceService"):
    """Browse, post and inspect jobs."""
    action = getattr(args, "jobs_action", None)

    if action == "list":
        location = caller_location(args)
        radius = args.radius if args.radius is not None else m.config.default_radius_km
        jobs = m.list_jobs(
            caller_location=location,
            radius_km=radius if location is not None else None,
            status=args.status,
            category=args.category,
        )
        if args.json:
            print_json([j.to_dict() for j in jobs])
            return
        if not jobs:
            print("No jobs found.")
            return
        where = f" within {radius:g}km" if location is not None else ""
        print(f"Jobs{where} ({len(jobs)}):")
        for job in jobs:
            _print_job_line(job)

    elif action == "show":
        job = m.get_job(args.job_id)
        if args.json:
            print_json(job.to_dict())
            return
        print(f"{job.title} [{job.id}]")
        print(f"  Status:   {job.status}")
        print(f"  Category: {job.category} ({job.urgency} urgency)")
        print(f"  Location: {job.location}")
        print(f"  Budget:   {job.budget}")
        print(f"  Duration: {job.estimated_duration}h")
        print(f"  Posted:   {job.time_posted}")
        if job.provider_id:
            print(f"  Provider: {job.provider_id}")
        print()
        print(job.description)
        print()
        print(f"Bids ({len(job.bids)}):")
        for bid in job.bids:
            print(
                f"  [{bid.id}] {bid.provider_name or bid.provider_id}: {bid.amount}, "
                f"{bid.estimated_duration}h ({bid.status})"
            )

    elif action == "post":
        location = caller_location(args)
        job = m.create_job(
            customer_id=validate_input(args.customer, "customer", 100),
            title=validate_input(args.title, "title", 200),
            description=validate_input(args.description, "description", 5000),
            category=validate_input(args.category, "category", 100),
            location=validate_input(args.location, "location", 200),
            budget=validate_input(args.budget, "budget", 100),
            estimated_duration=args.duration,
            urgency=args.urgency,
            coordinates=location,
        )
        if args.json:
            print_json(job.to_dict())
        else:
            print(f"✓ Job posted: {job.id}")
            print(f"  {job.title} ({job.category}, {job.budget})")

    elif action == "history":
        transitions = m.get_job_history(args.job_id)
        if args.json:
            print_json([t.to_dict() for t in transitions])
            return
        print(f"History for job {args.job_id}:")
        for t in transitions:
            when = t.created_at.strftime("%Y-%m-%d %H:%M") if t.created_at else "?"
            reason = f" ({t.reason})" if t.reason else ""
            print(f"  {when}  {t.from_status or '-'} -> {t.to_status}{reason}")
