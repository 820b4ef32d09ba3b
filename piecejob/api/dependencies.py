"""Request dependencies shared by the API routes."""

from typing import Annotated, Optional

from fastapi import Depends, Header, Request

from piecejob.geo import Coordinates
from piecejob.marketplace.service import MarketplaceService, ValidationError


def get_marketplace(request: Request) -> MarketplaceService:
    """Get the marketplace instance owned by the running app."""
    return request.app.state.marketplace


def get_actor_id(x_actor_id: Annotated[Optional[str], Header()] = None) -> Optional[str]:
    """Identify the acting user from the ``X-Actor-Id`` header, if sent.

    There is no authentication layer; the header only scopes ownership
    checks such as "only the customer may accept a bid".
    """
    if x_actor_id is None or not x_actor_id.strip():
        return None
    return x_actor_id.strip()


Marketplace = Annotated[MarketplaceService, Depends(get_marketplace)]
Actor = Annotated[Optional[str], Depends(get_actor_id)]


def caller_search_area(
    m: MarketplaceService,
    lat: Optional[float],
    lon: Optional[float],
    radius_km: Optional[float],
) -> tuple[Optional[Coordinates], Optional[float]]:
    """Turn ``lat``/``lon``/``radius_km`` query values into a search area.

    Without a location no radius applies. With one, the radius defaults to
    the marketplace's configured default.
    """
    if lat is None and lon is None:
        return None, None
    if lat is None or lon is None:
        raise ValidationError("lat and lon must be given together")
    try:
        location = Coordinates(latitude=lat, longitude=lon)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return location, radius_km if radius_km is not None else m.config.default_radius_km
