"""
Notifications for PieceJob.

Two concerns live here:

- ``NotificationSink``: the callback interface the safety monitor reports
  through. Sinks are fire-and-forget; a failing sink never blocks the
  monitor or a job transition.
- ``NotificationCenter``: an in-memory per-user inbox (bid received, bid
  accepted, job started, security alerts, ...).
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from piecejob.logging_config import log_safety_alert
from piecejob.utils import utc_now

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    BID_RECEIVED = "bid_received"
    BID_ACCEPTED = "bid_accepted"
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    MESSAGE = "message"
    SECURITY_ALERT = "security_alert"


@dataclass
class Notification:
    """An entry in a user's notification inbox."""

    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    read: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.type, NotificationType):
            self.type = self.type.value
        if self.type not in {t.value for t in NotificationType}:
            raise ValueError(f"Invalid notification type: {self.type}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": dict(self.data),
            "read": self.read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class NotificationSink(Protocol):
    """Receiver of safety monitor events."""

    def on_alert_level_changed(self, job_id: str, level: str) -> None: ...

    def on_emergency_check_required(self, job_id: str) -> None: ...

    def on_emergency_alert(self, job_id: str, elapsed_hours: float) -> None: ...

    def on_safety_confirmed(self, job_id: str, user_id: Optional[str] = None) -> None: ...

    def on_emergency_help_requested(self, job_id: str) -> None: ...


class LoggingNotificationSink:
    """Sink that records every safety event in the logs and event log."""

    def __init__(self, instance_id: str = "default", write_event_log: bool = True):
        self.instance_id = instance_id
        self.write_event_log = write_event_log

    def _record(self, job_id: str, alert: str, elapsed_hours: float = 0.0) -> None:
        if self.write_event_log:
            log_safety_alert(self.instance_id, job_id, alert, elapsed_hours)

    def on_alert_level_changed(self, job_id: str, level: str) -> None:
        logger.info("Safety alert level changed | job=%s | level=%s", job_id, level)
        self._record(job_id, f"level:{level}")

    def on_emergency_check_required(self, job_id: str) -> None:
        logger.warning("Emergency safety check required | job=%s", job_id)
        self._record(job_id, "emergency_check")

    def on_emergency_alert(self, job_id: str, elapsed_hours: float) -> None:
        logger.warning(
            "Emergency alert | job=%s | elapsed=%.1fh | dispatching security", job_id, elapsed_hours
        )
        self._record(job_id, "emergency_alert", elapsed_hours)

    def on_safety_confirmed(self, job_id: str, user_id: Optional[str] = None) -> None:
        logger.info("Safety confirmed | job=%s | by=%s", job_id, user_id or "unknown")
        self._record(job_id, "safety_confirmed")

    def on_emergency_help_requested(self, job_id: str) -> None:
        logger.warning("Emergency help requested | job=%s | dispatching security", job_id)
        self._record(job_id, "help_requested")


class FanOutSink:
    """Forward each event to several sinks, isolating their failures."""

    def __init__(self, *sinks: NotificationSink):
        self.sinks = list(sinks)

    def _forward(self, method: str, *args) -> None:
        for sink in self.sinks:
            try:
                getattr(sink, method)(*args)
            except Exception as e:
                logger.warning("Notification sink %s.%s failed: %s", type(sink).__name__, method, e)

    def on_alert_level_changed(self, job_id: str, level: str) -> None:
        self._forward("on_alert_level_changed", job_id, level)

    def on_emergency_check_required(self, job_id: str) -> None:
        self._forward("on_emergency_check_required", job_id)

    def on_emergency_alert(self, job_id: str, elapsed_hours: float) -> None:
        self._forward("on_emergency_alert", job_id, elapsed_hours)

    def on_safety_confirmed(self, job_id: str, user_id: Optional[str] = None) -> None:
        self._forward("on_safety_confirmed", job_id, user_id)

    def on_emergency_help_requested(self, job_id: str) -> None:
        self._forward("on_emergency_help_requested", job_id)


class NotificationCenter:
    """In-memory notification inbox, newest first per user."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._notifications: List[Notification] = []
        self._lock = threading.Lock()

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Create a notification for ``user_id``."""
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            created_at=self._clock(),
        )
        with self._lock:
            self._notifications.insert(0, notification)
        logger.debug("Notification %s -> %s: %s", notification.type, user_id, title)
        return notification

    def get_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        with self._lock:
            items = [n for n in self._notifications if n.user_id == user_id]
        if unread_only:
            items = [n for n in items if not n.read]
        return items

    def unread_count(self, user_id: str) -> int:
        return len(self.get_notifications(user_id, unread_only=True))

    def mark_as_read(self, notification_id: str) -> bool:
        """Mark one notification read. Returns False if it does not exist."""
        with self._lock:
            for notification in self._notifications:
                if notification.id == notification_id:
                    notification.read = True
                    return True
        return False


class SafetyAlertNotifier:
    """Sink that turns safety events into inbox notifications.

    Alerts go to the job's customer; emergency help requests are copied to
    the assigned provider as well. A job that stays critical produces one
    "Emergency Alert" entry until its alert level changes, however many
    sweeps repeat the alert.
    """

    def __init__(self, center: NotificationCenter, job_lookup: Callable[[str], Any]):
        self.center = center
        self.job_lookup = job_lookup
        self._critical_jobs: Set[str] = set()
        self._lock = threading.Lock()

    def _recipients(self, job_id: str, include_provider: bool = False) -> List[str]:
        job = self.job_lookup(job_id)
        if job is None:
            logger.debug("No job %s for safety notification", job_id)
            return []
        recipients = [job.customer_id]
        if include_provider and job.provider_id:
            recipients.append(job.provider_id)
        return recipients

    def _title_of(self, job_id: str) -> str:
        job = self.job_lookup(job_id)
        return job.title if job is not None else job_id

    def _alert(
        self,
        job_id: str,
        title: str,
        message: str,
        kind: str,
        recipients: Optional[List[str]] = None,
        **extra,
    ) -> None:
        if recipients is None:
            recipients = self._recipients(job_id, include_provider=kind == "emergency_help")
        for user_id in recipients:
            self.center.notify(
                user_id,
                NotificationType.SECURITY_ALERT,
                title,
                message,
                data={"job_id": job_id, "type": kind, **extra},
            )

    def on_alert_level_changed(self, job_id: str, level: str) -> None:
        if level != "critical":
            with self._lock:
                self._critical_jobs.discard(job_id)
        if level == "warning":
            self._alert(
                job_id,
                "Extended Duration",
                f'Job "{self._title_of(job_id)}" is taking longer than expected. '
                "Security team has been notified.",
                "alert_level",
                level=level,
            )

    def on_emergency_check_required(self, job_id: str) -> None:
        self._alert(
            job_id,
            "Emergency Check Required",
            f'Job "{self._title_of(job_id)}" has been running for several hours. '
            "Please confirm safety status.",
            "emergency_check",
        )

    def on_emergency_alert(self, job_id: str, elapsed_hours: float) -> None:
        with self._lock:
            if job_id in self._critical_jobs:
                return
            self._critical_jobs.add(job_id)
        self._alert(
            job_id,
            "Emergency Alert",
            "Emergency protocol activated. Security team is responding.",
            "emergency_alert",
            elapsed_hours=round(elapsed_hours, 2),
        )

    def on_safety_confirmed(self, job_id: str, user_id: Optional[str] = None) -> None:
        self._alert(
            job_id,
            "Safety Confirmed",
            "Thank you for confirming your safety. Monitoring continues.",
            "safety_confirmed",
            recipients=[user_id] if user_id else None,
        )

    def on_emergency_help_requested(self, job_id: str) -> None:
        self._alert(
            job_id,
            "Emergency Alert",
            "Emergency services and security partners have been contacted.",
            "emergency_help",
        )
