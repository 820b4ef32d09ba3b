"""Safety monitoring subsystem for PieceJob.

Watches in-progress jobs and escalates when they overrun their estimate.

- SafetyMonitor: shared-sweep monitor with manual check-ins
- MonitoredJob: per-job safety state
- AlertLevel / CheckInStatus: monitor status values
"""

from piecejob.safety.monitor import (
    AlertLevel,
    CheckInStatus,
    MonitoredJob,
    SafetyMonitor,
    elapsed_hours,
)

__all__ = [
    "AlertLevel",
    "CheckInStatus",
    "MonitoredJob",
    "SafetyMonitor",
    "elapsed_hours",
]
