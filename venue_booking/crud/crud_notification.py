# venue_booking/crud/crud_notification.py
from typing import Optional, List
from sqlalchemy.orm import Session

from venue_booking.models.notification import Notification
from venue_booking.schemas.notification import NotificationPayload


def create(db: Session, *, payload: NotificationPayload) -> Notification:
    notification = Notification(
        recipient_id=payload.recipient,
        category=payload.category,
        headline=payload.headline,
        body=payload.body,
        reference_kind=payload.reference.kind if payload.reference else None,
        reference_id=payload.reference.id if payload.reference else None,
        author_id=payload.author,
        extra=payload.extra,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_for_recipient(
    db: Session, *, recipient_id: str, unread_only: bool = False, limit: int = 50
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def mark_read(db: Session, *, notification_id: str, recipient_id: str) -> Optional[Notification]:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == recipient_id)
        .first()
    )
    if not notification:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
