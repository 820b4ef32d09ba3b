"""Provider commands for the PieceJob CLI."""

from typing import TYPE_CHECKING

from piecejob.cli.commands.helpers import caller_location, print_json

if TYPE_CHECKING:
    from piecejob.marketplace import MarketplaceService


def cmd_providers(args, m: "MarketplaceService"):
    """Browse provider profiles."""
    action = getattr(args, "providers_action", None)

    if action == "list":
        location = caller_location(args)
        radius = args.radius if args.radius is not None else m.config.default_radius_km
        providers = m.list_providers(
            caller_location=location,
            radius_km=radius if location is not None else None,
        )
        if args.json:
            print_json([p.to_dict() for p in providers])
            return
        if not providers:
            print("No providers found.")
            return
        print(f"Providers ({len(providers)}):")
        for p in providers:
            verified = " ✓" if p.is_verified else ""
            distance = f" | {p.distance}" if p.distance else ""
            online = "online" if p.is_online else "offline"
            print(f"  [{p.id}] {p.name}{verified}")
            print(
                f"      {p.specialty} | {p.location} | {p.hourly_rate} | "
                f"★ {p.rating} ({p.review_count}) | {online}{distance}"
            )

    elif action == "show":
        p = m.get_provider(args.provider_id)
        if args.json:
            print_json(p.to_dict())
            return
        print(f"{p.name} [{p.id}]{' (verified)' if p.is_verified else ''}")
        print(f"  Specialty: {p.specialty}")
        print(f"  Location:  {p.location}")
        print(f"  Rate:      {p.hourly_rate}")
        print(f"  Rating:    {p.rating} from {p.review_count} review(s)")
        print(f"  Completed: {p.completed_jobs} job(s)")
        if p.badges:
            print(f"  Badges:    {', '.join(p.badges)}")
        if p.description:
            print()
            print(p.description)
        if p.qualifications:
            print()
            print("Qualifications:")
            for q in p.qualifications:
                print(f"  - {q.title} ({q.type}, {q.verification_status})")
