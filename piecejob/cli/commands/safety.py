"""Safety monitor commands for the PieceJob CLI."""

from datetime import timedelta
from typing import TYPE_CHECKING

from piecejob.cli.commands.helpers import print_json
from piecejob.marketplace.models import JobStatus
from piecejob.marketplace.service import InvalidStateError
from piecejob.notifications import NotificationType

if TYPE_CHECKING:
    from piecejob.marketplace import MarketplaceService


def _ensure_in_progress(m: "MarketplaceService", job_id: str):
    """Walk a job forward to in-progress, accepting its first pending bid if needed."""
    job = m.get_job(job_id)
    if job.status == JobStatus.POSTED.value:
        pending = [b for b in m.get_bids_for_job(job.id) if b.is_pending]
        if not pending:
            raise InvalidStateError(f"Job {job.id} has no bids to accept")
        job, _ = m.accept_bid(pending[0].id)
    if job.status == JobStatus.CONFIRMED.value:
        job = m.start_job(job.id)
    if job.status != JobStatus.IN_PROGRESS.value:
        raise InvalidStateError(f"Job {job.id} cannot be monitored (status: {job.status})")
    return job


def cmd_safety(args, m: "MarketplaceService"):
    """Simulate the safety monitor for a job."""
    action = getattr(args, "safety_action", None)

    if action == "check":
        if m.monitor is None:
            raise InvalidStateError("Safety monitoring is not enabled")
        job = _ensure_in_progress(m, args.job_id)
        status = m.monitor.evaluate(job.id, now=job.start_time + timedelta(hours=args.elapsed))

        alerts = []
        if m.notifications is not None:
            alerts = [
                n
                for n in reversed(m.notifications.get_notifications(job.customer_id))
                if n.type == NotificationType.SECURITY_ALERT.value
                and n.data.get("job_id") == job.id
            ]

        if args.json:
            print_json(
                {
                    "job_id": job.id,
                    "status": status.to_dict(),
                    "alerts": [a.to_dict() for a in alerts],
                }
            )
            return

        print(f"Safety check for {job.title} [{job.id}]")
        print(f"  Elapsed:  {status.elapsed_hours:.1f}h of {status.estimated_duration}h expected")
        print(f"  Alert:    {status.alert_level}")
        print(f"  Check-in: {status.check_in_status}")
        if status.check_in_prompt_open:
            print("  Customer has been asked to confirm their safety")
        if alerts:
            print()
            print("Alerts:")
            for alert in alerts:
                print(f"  - {alert.title}: {alert.message}")
