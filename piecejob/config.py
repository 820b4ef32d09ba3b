"""
Marketplace configuration.

Tunable thresholds for proximity search and safety monitoring, loaded from
environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass

DEFAULT_RADIUS_KM = 25.0
DEFAULT_CHECK_INTERVAL_SECONDS = 60
DEFAULT_EMERGENCY_CHECK_HOURS = 4.0
DEFAULT_CRITICAL_GRACE_HOURS = 2.0


@dataclass(frozen=True)
class MarketplaceConfig:
    """Container for marketplace tuning values."""

    # Radius applied by the CLI and API when the caller gives none
    default_radius_km: float = DEFAULT_RADIUS_KM
    # Safety monitor sweep cadence
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS
    # Elapsed hours after which a one-shot emergency check is raised
    emergency_check_hours: float = DEFAULT_EMERGENCY_CHECK_HOURS
    # Hours past the estimate before the alert level becomes critical
    critical_grace_hours: float = DEFAULT_CRITICAL_GRACE_HOURS
    log_level: str = "INFO"

    def __post_init__(self):
        if self.default_radius_km <= 0:
            raise ValueError("default_radius_km must be positive")
        if self.check_interval_seconds <= 0:
            raise ValueError("check_interval_seconds must be positive")
        if self.emergency_check_hours <= 0:
            raise ValueError("emergency_check_hours must be positive")
        if self.critical_grace_hours < 0:
            raise ValueError("critical_grace_hours cannot be negative")

    @classmethod
    def from_env(cls) -> "MarketplaceConfig":
        """Build a config from PIECEJOB_* environment variables."""
        return cls(
            default_radius_km=_env_float("PIECEJOB_DEFAULT_RADIUS_KM", DEFAULT_RADIUS_KM),
            check_interval_seconds=int(
                _env_float("PIECEJOB_CHECK_INTERVAL_SECONDS", DEFAULT_CHECK_INTERVAL_SECONDS)
            ),
            emergency_check_hours=_env_float(
                "PIECEJOB_EMERGENCY_CHECK_HOURS", DEFAULT_EMERGENCY_CHECK_HOURS
            ),
            critical_grace_hours=_env_float(
                "PIECEJOB_CRITICAL_GRACE_HOURS", DEFAULT_CRITICAL_GRACE_HOURS
            ),
            log_level=os.environ.get("PIECEJOB_LOG_LEVEL", "INFO").upper(),
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'")
