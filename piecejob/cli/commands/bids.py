"""Bid commands for the PieceJob CLI."""

from typing import TYPE_CHECKING

from piecejob.cli.commands.helpers import print_json, validate_input

if TYPE_CHECKING:
    from piecejob.marketplace import MarketplaceService


def cmd_bids(args, m: "MarketplaceService"):
    """Submit, accept and list bids."""
    action = getattr(args, "bids_action", None)

    if action == "submit":
        bid = m.submit_bid(
            job_id=args.job_id,
            provider_id=validate_input(args.provider, "provider", 100),
            amount=validate_input(args.amount, "amount", 50),
            message=validate_input(args.message, "message", 2000),
            estimated_duration=args.duration,
        )
        if args.json:
            print_json(bid.to_dict())
        else:
            print(f"✓ Bid submitted: {bid.id}")
            print(f"  {bid.provider_name} bid {bid.amount} on job {bid.job_id}")

    elif action == "accept":
        job, bid = m.accept_bid(args.bid_id)
        if args.json:
            print_json({"job": job.to_dict(), "bid": bid.to_dict()})
            return
        rejected = sum(1 for b in job.bids if b.id != bid.id)
        print(f"✓ Bid {bid.id} accepted")
        print(f"  Job {job.id} is now {job.status}, assigned to {job.provider_id}")
        if rejected:
            print(f"  {rejected} other bid(s) rejected")

    elif action == "list":
        bids = m.get_bids_for_job(args.job_id)
        if args.json:
            print_json([b.to_dict() for b in bids])
            return
        if not bids:
            print(f"No bids on job {args.job_id}.")
            return
        print(f"Bids on job {args.job_id} ({len(bids)}):")
        for bid in bids:
            print(
                f"  [{bid.id}] {bid.provider_name or bid.provider_id}: {bid.amount}, "
                f"{bid.estimated_duration}h, {bid.status} ({bid.time_submitted})"
            )
            print(f"      {bid.message[:80]}")
