"""
PieceJob CLI - Command-line interface for the local services marketplace.

Every invocation works on a fresh in-memory marketplace seeded with the
demo data set.

Usage:
    piecejob jobs list [--lat LAT --lon LON] [--radius KM] [--status S] [--category C]
    piecejob jobs show JOB_ID
    piecejob jobs post --customer C --title T --description D --category C \\
        --location L --budget B --duration H [--urgency U] [--lat LAT --lon LON]
    piecejob jobs history JOB_ID
    piecejob bids submit JOB_ID --provider P --amount A --message M --duration H
    piecejob bids accept BID_ID
    piecejob bids list JOB_ID
    piecejob providers list [--lat LAT --lon LON] [--radius KM]
    piecejob providers show PROVIDER_ID
    piecejob safety check JOB_ID --elapsed HOURS
    piecejob demo
"""

import argparse
import logging
import sys

from piecejob.bootstrap import build_marketplace
from piecejob.cli.commands import cmd_bids, cmd_demo, cmd_jobs, cmd_providers, cmd_safety
from piecejob.cli.commands.helpers import validate_duration, validate_hours, validate_radius
from piecejob.config import MarketplaceConfig
from piecejob.logging_config import setup_piecejob_logging
from piecejob.marketplace.models import JobStatus, Urgency
from piecejob.marketplace.service import MarketplaceError

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def _add_location_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", type=float, help="Caller latitude")
    parser.add_argument("--lon", type=float, help="Caller longitude")
    parser.add_argument(
        "--radius", type=validate_radius, help="Search radius in km (default from config)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piecejob",
        description="Local services marketplace: jobs, bids and safety monitoring",
    )
    parser.add_argument("--log-level", help="Log level (writes to the data dir log file)")
    parser.add_argument("--json", "-j", action="store_true", help="Output JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # jobs
    p_jobs = subparsers.add_parser("jobs", help="Browse and post jobs")
    jobs_sub = p_jobs.add_subparsers(dest="jobs_action", required=True)

    jobs_list = jobs_sub.add_parser("list", help="List jobs, nearest first with --lat/--lon")
    _add_location_args(jobs_list)
    jobs_list.add_argument("--status", choices=[s.value for s in JobStatus])
    jobs_list.add_argument("--category", help="Filter by category")

    jobs_show = jobs_sub.add_parser("show", help="Show a job and its bids")
    jobs_show.add_argument("job_id", help="Job ID")

    jobs_post = jobs_sub.add_parser("post", help="Post a new job")
    jobs_post.add_argument("--customer", required=True, help="Customer ID")
    jobs_post.add_argument("--title", required=True)
    jobs_post.add_argument("--description", required=True)
    jobs_post.add_argument("--category", required=True)
    jobs_post.add_argument("--location", required=True, help="Location label")
    jobs_post.add_argument("--budget", required=True, help='Budget label, e.g. "R800 - R1200"')
    jobs_post.add_argument(
        "--duration", type=validate_duration, required=True, help="Estimated hours"
    )
    jobs_post.add_argument(
        "--urgency", choices=[u.value for u in Urgency], default=Urgency.MEDIUM.value
    )
    jobs_post.add_argument("--lat", type=float, help="Job latitude")
    jobs_post.add_argument("--lon", type=float, help="Job longitude")

    jobs_history = jobs_sub.add_parser("history", help="Show a job's status history")
    jobs_history.add_argument("job_id", help="Job ID")

    # bids
    p_bids = subparsers.add_parser("bids", help="Submit and accept bids")
    bids_sub = p_bids.add_subparsers(dest="bids_action", required=True)

    bids_submit = bids_sub.add_parser("submit", help="Bid on a job")
    bids_submit.add_argument("job_id", help="Job ID")
    bids_submit.add_argument("--provider", required=True, help="Provider ID")
    bids_submit.add_argument("--amount", required=True, help='Bid amount, e.g. "R950"')
    bids_submit.add_argument("--message", required=True)
    bids_submit.add_argument(
        "--duration", type=validate_duration, required=True, help="Estimated hours"
    )

    bids_accept = bids_sub.add_parser("accept", help="Accept a pending bid")
    bids_accept.add_argument("bid_id", help="Bid ID")

    bids_list = bids_sub.add_parser("list", help="List bids on a job")
    bids_list.add_argument("job_id", help="Job ID")

    # providers
    p_providers = subparsers.add_parser("providers", help="Browse providers")
    providers_sub = p_providers.add_subparsers(dest="providers_action", required=True)

    providers_list = providers_sub.add_parser("list", help="List providers")
    _add_location_args(providers_list)

    providers_show = providers_sub.add_parser("show", help="Show a provider profile")
    providers_show.add_argument("provider_id", help="Provider ID")

    # safety
    p_safety = subparsers.add_parser("safety", help="Safety monitor")
    safety_sub = p_safety.add_subparsers(dest="safety_action", required=True)

    safety_check = safety_sub.add_parser(
        "check", help="Start a job and evaluate the monitor after some hours"
    )
    safety_check.add_argument("job_id", help="Job ID")
    safety_check.add_argument(
        "--elapsed", type=validate_hours, required=True, help="Hours since the job started"
    )

    # demo
    subparsers.add_parser("demo", help="Run a full job lifecycle end to end")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = MarketplaceConfig.from_env()
        if args.log_level:
            setup_piecejob_logging("cli", args.log_level)
        m = build_marketplace(config=config, instance_id="cli")
    except ValueError as e:
        logger.error(f"Failed to initialize marketplace: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        if args.command == "jobs":
            cmd_jobs(args, m)
        elif args.command == "bids":
            cmd_bids(args, m)
        elif args.command == "providers":
            cmd_providers(args, m)
        elif args.command == "safety":
            cmd_safety(args, m)
        elif args.command == "demo":
            cmd_demo(args, m)
    except MarketplaceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
