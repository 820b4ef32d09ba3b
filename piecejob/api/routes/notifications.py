"""Notification inbox routes for the PieceJob API."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import BaseModel

from ..dependencies import Marketplace
from ..rate_limit import limiter

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: dict
    read: bool
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread: int


def _center(m):
    if m.notifications is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notifications are not enabled",
        )
    return m.notifications


@router.get("/{user_id}", response_model=NotificationListResponse)
@limiter.limit("60/minute")
async def list_notifications(
    request: Request,
    user_id: str,
    m: Marketplace,
    unread_only: bool = Query(False),
):
    """List a user's notifications, newest first."""
    center = _center(m)
    items = center.get_notifications(user_id, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n.to_dict()) for n in items],
        unread=center.unread_count(user_id),
    )


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def mark_notification_read(request: Request, notification_id: str, m: Marketplace):
    """Mark a notification as read."""
    if not _center(m).mark_as_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
