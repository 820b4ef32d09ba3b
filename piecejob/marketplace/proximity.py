"""
Proximity ranking for job and provider listings.

Entities within the radius are sorted nearest-first and annotated with a
display distance. Entities without coordinates are never dropped; they
follow all located entities in their original order.
"""

import dataclasses
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from piecejob.geo import Coordinates, calculate_distance, format_distance

T = TypeVar("T")


def _coordinates_of(item) -> Optional[Coordinates]:
    return getattr(item, "coordinates", None)


def rank_by_distance(
    items: Sequence[T],
    origin: Coordinates,
    radius_km: float,
    coordinates_of: Callable[[T], Optional[Coordinates]] = _coordinates_of,
) -> List[T]:
    """Filter, annotate and sort entities by distance from ``origin``.

    Args:
        items: Jobs or providers (any dataclass with a ``distance`` field).
        origin: The caller's location.
        radius_km: Maximum distance (inclusive) for entities with coordinates.
        coordinates_of: Accessor for an entity's coordinates.

    Returns:
        Copies of the retained entities with ``distance`` filled in for
        located entities. The stored records are left untouched.
    """
    if radius_km is None or radius_km < 0:
        raise ValueError("radius_km must be a non-negative number")

    located: List[Tuple[float, int, T]] = []
    unknown: List[T] = []

    for index, item in enumerate(items):
        coords = coordinates_of(item)
        if coords is None:
            unknown.append(dataclasses.replace(item, distance=None))
            continue
        distance_km = calculate_distance(origin, coords)
        if distance_km <= radius_km:
            located.append((distance_km, index, item))

    # index breaks ties so equal distances keep input order
    located.sort(key=lambda entry: (entry[0], entry[1]))

    ranked = [
        dataclasses.replace(item, distance=format_distance(distance_km))
        for distance_km, _, item in located
    ]
    return ranked + unknown
