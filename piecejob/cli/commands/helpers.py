"""Shared helper functions for CLI commands."""

import argparse
import json
import re
from typing import Any, Optional

from piecejob.geo import Coordinates


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    if len(value) > max_length:
        raise ValueError(f"{field_name} too long (max {max_length} characters)")

    # Remove null bytes and control characters except newlines
    sanitized = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)

    return sanitized


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def validate_radius(value: str) -> float:
    """Validate a search radius in kilometers."""
    try:
        fvalue = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Radius must be a number, got '{value}'")

    if fvalue <= 0:
        raise argparse.ArgumentTypeError(f"Radius must be positive, got {fvalue}")
    return fvalue


def validate_duration(value: str) -> int:
    """Validate an estimated duration in whole hours."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Duration must be a whole number of hours, got '{value}'")

    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"Duration must be positive, got {ivalue}")
    return ivalue


def validate_hours(value: str) -> float:
    """Validate a non-negative number of hours."""
    try:
        fvalue = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Hours must be a number, got '{value}'")

    if fvalue < 0:
        raise argparse.ArgumentTypeError(f"Hours cannot be negative, got {fvalue}")
    return fvalue


def caller_location(args) -> Optional[Coordinates]:
    """Coordinates from ``--lat``/``--lon``, or None when neither is given."""
    lat = getattr(args, "lat", None)
    lon = getattr(args, "lon", None)
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise ValueError("--lat and --lon must be given together")
    return Coordinates(latitude=lat, longitude=lon)
