"""Utility functions shared across PieceJob modules."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def get_piecejob_home() -> Path:
    """Get the PieceJob data directory.

    Honors the PIECEJOB_DATA_DIR environment variable, falling back to
    ~/.piecejob.
    """
    env_dir = os.environ.get("PIECEJOB_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".piecejob"


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def format_time_ago(then: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a timestamp as a relative label ("Just now", "2 hours ago").

    Args:
        then: The moment to describe. None renders as "Just now".
        now: Reference time, defaults to the current UTC time.

    Returns:
        Human-readable label used for "time posted" / "time submitted".
    """
    if then is None:
        return "Just now"
    now = now or utc_now()
    seconds = int((now - then).total_seconds())
    if seconds < 60:
        return "Just now"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"

    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"
