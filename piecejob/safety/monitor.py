"""
Safety monitoring for in-progress jobs.

Every job that is in progress gets an entry in a shared sweep. Each sweep
compares the time elapsed since the job started against its estimated
duration:

- elapsed >= emergency_check_hours (once per job): emergency safety check,
  opens a check-in prompt for the customer.
- elapsed > estimate + critical_grace_hours: critical, check-in overdue,
  emergency alert raised on every sweep.
- elapsed > estimate: warning, check-in overdue.
- otherwise: safe, check-in confirmed.

Alerting is advisory. The monitor never blocks or reverses a job
transition, and a failing sink is logged rather than raised.
"""

import asyncio
import contextlib
import dataclasses
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from piecejob.config import MarketplaceConfig
from piecejob.notifications import LoggingNotificationSink, NotificationSink
from piecejob.utils import utc_now

logger = logging.getLogger(__name__)


class AlertLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


class CheckInStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    OVERDUE = "overdue"


@dataclass
class MonitoredJob:
    """Safety state tracked for one in-progress job."""

    job_id: str
    start_time: Optional[datetime]
    estimated_duration: float
    alert_level: str = AlertLevel.SAFE.value
    check_in_status: str = CheckInStatus.PENDING.value
    emergency_check_triggered: bool = False
    check_in_prompt_open: bool = False
    elapsed_hours: float = 0.0
    emergency_alerts: int = 0
    last_evaluated_at: Optional[datetime] = None
    help_requested_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "estimated_duration": self.estimated_duration,
            "alert_level": self.alert_level,
            "check_in_status": self.check_in_status,
            "emergency_check_triggered": self.emergency_check_triggered,
            "check_in_prompt_open": self.check_in_prompt_open,
            "elapsed_hours": round(self.elapsed_hours, 2),
            "emergency_alerts": self.emergency_alerts,
            "last_evaluated_at": (
                self.last_evaluated_at.isoformat() if self.last_evaluated_at else None
            ),
            "help_requested_at": (
                self.help_requested_at.isoformat() if self.help_requested_at else None
            ),
        }


_Event = Tuple[str, tuple]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def elapsed_hours(start_time: Optional[datetime], now: datetime) -> float:
    """Hours between ``start_time`` and ``now``.

    A missing start time counts as zero elapsed time, as does a start time
    in the future.
    """
    if start_time is None:
        return 0.0
    seconds = (_as_utc(now) - _as_utc(start_time)).total_seconds()
    return max(0.0, seconds / 3600.0)


class SafetyMonitor:
    """Shared-sweep safety monitor for in-progress jobs."""

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
        config: Optional[MarketplaceConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sink = sink if sink is not None else LoggingNotificationSink()
        self.config = config or MarketplaceConfig()
        self._clock = clock
        self._jobs: Dict[str, MonitoredJob] = {}
        self._lock = threading.RLock()
        self._task: Optional[asyncio.Task] = None

    # === Registration ===

    def start_monitoring(self, job) -> MonitoredJob:
        """Begin monitoring ``job``. Calling again for the same job is a no-op."""
        with self._lock:
            state = self._jobs.get(job.id)
            if state is None:
                state = MonitoredJob(
                    job_id=job.id,
                    start_time=job.start_time,
                    estimated_duration=job.estimated_duration,
                )
                self._jobs[job.id] = state
                logger.info(
                    "Safety monitoring started | job=%s | expected=%sh",
                    job.id,
                    job.estimated_duration,
                )
            return dataclasses.replace(state)

    def stop_monitoring(self, job_id: str) -> bool:
        """Stop monitoring a job. Returns False if it was not monitored."""
        with self._lock:
            state = self._jobs.pop(job_id, None)
        if state is None:
            return False
        logger.info("Safety monitoring stopped | job=%s", job_id)
        return True

    def is_monitoring(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def active_job_ids(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def get_status(self, job_id: str) -> Optional[MonitoredJob]:
        """Snapshot of a job's safety state, or None if it is not monitored."""
        with self._lock:
            state = self._jobs.get(job_id)
            return dataclasses.replace(state) if state else None

    # === Evaluation ===

    def preview(self, job_id: str, now: Optional[datetime] = None) -> Optional[MonitoredJob]:
        """Current safety state as of ``now``, without recording anything.

        Neither the stored state nor the sink is touched, so reads never
        raise alerts. The one-shot emergency check and the alert counter
        only advance on ``evaluate`` and ``sweep``.
        """
        now = now or self._clock()
        with self._lock:
            state = self._jobs.get(job_id)
            if state is None:
                return None
            stored = dataclasses.replace(state)
        snapshot = dataclasses.replace(stored)
        self._assess(snapshot, now)
        snapshot.emergency_check_triggered = stored.emergency_check_triggered
        snapshot.check_in_prompt_open = stored.check_in_prompt_open
        snapshot.emergency_alerts = stored.emergency_alerts
        return snapshot

    def evaluate(self, job_id: str, now: Optional[datetime] = None) -> Optional[MonitoredJob]:
        """Re-assess one job. Returns None if the job is no longer monitored."""
        now = now or self._clock()
        with self._lock:
            state = self._jobs.get(job_id)
            if state is None:
                return None
            previous_level = state.alert_level
            events = self._assess(state, now)
            snapshot = dataclasses.replace(state)
        if snapshot.alert_level != previous_level:
            logger.info(
                "Alert level %s -> %s | job=%s | elapsed=%.2fh",
                previous_level,
                snapshot.alert_level,
                job_id,
                snapshot.elapsed_hours,
            )
        self._emit_all(events)
        return snapshot

    def sweep(self, now: Optional[datetime] = None) -> Dict[str, MonitoredJob]:
        """Evaluate every monitored job once."""
        now = now or self._clock()
        results: Dict[str, MonitoredJob] = {}
        for job_id in self.active_job_ids():
            status = self.evaluate(job_id, now)
            if status is not None:
                results[job_id] = status
        logger.debug("Safety sweep evaluated %d job(s)", len(results))
        return results

    def _assess(self, state: MonitoredJob, now: datetime) -> List[_Event]:
        events: List[_Event] = []
        previous_level = state.alert_level
        elapsed = elapsed_hours(state.start_time, now)
        state.elapsed_hours = elapsed
        state.last_evaluated_at = now

        if elapsed >= self.config.emergency_check_hours and not state.emergency_check_triggered:
            state.emergency_check_triggered = True
            state.check_in_prompt_open = True
            events.append(("on_emergency_check_required", (state.job_id,)))

        expected = state.estimated_duration
        if elapsed > expected + self.config.critical_grace_hours:
            state.alert_level = AlertLevel.CRITICAL.value
            state.check_in_status = CheckInStatus.OVERDUE.value
        elif elapsed > expected:
            state.alert_level = AlertLevel.WARNING.value
            state.check_in_status = CheckInStatus.OVERDUE.value
        else:
            state.alert_level = AlertLevel.SAFE.value
            state.check_in_status = CheckInStatus.CONFIRMED.value

        if state.alert_level != previous_level:
            events.append(("on_alert_level_changed", (state.job_id, state.alert_level)))

        # Repeats on every sweep while critical
        if state.alert_level == AlertLevel.CRITICAL.value:
            state.emergency_alerts += 1
            events.append(("on_emergency_alert", (state.job_id, elapsed)))
        return events

    # === Manual interactions ===

    def confirm_safety(self, job_id: str, user_id: Optional[str] = None) -> Optional[MonitoredJob]:
        """Record that the monitored party confirmed they are safe."""
        events: List[_Event] = []
        with self._lock:
            state = self._jobs.get(job_id)
            if state is None:
                logger.info("Safety confirmation for unmonitored job %s ignored", job_id)
                return None
            previous_level = state.alert_level
            state.check_in_status = CheckInStatus.CONFIRMED.value
            state.alert_level = AlertLevel.SAFE.value
            state.check_in_prompt_open = False
            if previous_level != AlertLevel.SAFE.value:
                events.append(("on_alert_level_changed", (job_id, AlertLevel.SAFE.value)))
            events.append(("on_safety_confirmed", (job_id, user_id)))
            snapshot = dataclasses.replace(state)
        logger.info("Safety confirmed | job=%s | by=%s", job_id, user_id or "unknown")
        self._emit_all(events)
        return snapshot

    def request_emergency_help(self, job_id: str, user_id: Optional[str] = None) -> None:
        """Dispatch emergency help immediately, regardless of the timer."""
        with self._lock:
            state = self._jobs.get(job_id)
            if state is not None:
                state.help_requested_at = self._clock()
        logger.warning("Emergency help requested | job=%s | by=%s", job_id, user_id or "unknown")
        self._emit_all([("on_emergency_help_requested", (job_id,))])

    # === Background sweep ===

    async def run(self, interval_seconds: Optional[float] = None) -> None:
        """Sweep forever on a fixed cadence until cancelled."""
        interval = interval_seconds or self.config.check_interval_seconds
        logger.info("Safety monitor loop running every %ss", interval)
        while True:
            try:
                self.sweep()
            except Exception:
                logger.exception("Safety sweep failed")
            await asyncio.sleep(interval)

    def start(self, interval_seconds: Optional[float] = None) -> asyncio.Task:
        """Schedule the sweep loop on the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run(interval_seconds))
        return self._task

    async def stop(self) -> None:
        """Cancel the sweep loop if it is running."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Safety monitor loop stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # === Internals ===

    def _emit_all(self, events: List[_Event]) -> None:
        for method, args in events:
            try:
                getattr(self.sink, method)(*args)
            except Exception as e:
                logger.warning("Safety sink %s failed for job %s: %s", method, args[0], e)
