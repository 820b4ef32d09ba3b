"""
Geolocation helpers.

Great-circle distances between WGS84 coordinates and the "450m away" /
"3.2km away" labels shown next to jobs and providers.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Coordinates"]:
        """Build coordinates from a mapping, or None if the mapping is empty."""
        if not data:
            return None
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


def calculate_distance(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance between two points in kilometers."""
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def is_within_radius(center: Coordinates, point: Coordinates, radius_km: float) -> bool:
    """Check whether ``point`` lies within ``radius_km`` of ``center`` (inclusive)."""
    return calculate_distance(center, point) <= radius_km


def format_distance(distance_km: float) -> str:
    """Format a distance for display.

    Under 1 km renders as rounded meters ("450m away"), otherwise with one
    decimal place ("3.2km away").
    """
    if distance_km < 1:
        # Half-up, so 450.5m renders as 451m
        return f"{math.floor(distance_km * 1000 + 0.5)}m away"
    return f"{distance_km:.1f}km away"
