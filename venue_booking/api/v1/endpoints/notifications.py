# venue_booking/api/v1/endpoints/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.core.exceptions import NotFoundError
from venue_booking.crud import crud_notification
from venue_booking.schemas.notification import NotificationResponse
from venue_booking.schemas.token import TokenPayload

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_notification.get_for_recipient(
        db, recipient_id=current_user.sub, unread_only=unread_only, limit=limit
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    notification = crud_notification.mark_read(
        db, notification_id=notification_id, recipient_id=current_user.sub
    )
    if not notification:
        raise NotFoundError("Notisen hittades inte", resource="notification")
    return notification
