# venue_booking/services/notifications.py
"""
Fire-and-forget notification dispatch.

Called after the triggering state change has committed. A failure here is
logged and swallowed so it can never undo or fail the primary action.
"""
import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

from venue_booking.crud import crud_notification
from venue_booking.db.redis import redis_client
from venue_booking.models.notification import Notification
from venue_booking.schemas.notification import NotificationPayload

logger = logging.getLogger(__name__)


def _publish_inapp(recipient_id: str, notification: Notification) -> None:
    """Push the new notification to the recipient's live channel."""
    try:
        redis_client.publish(
            f"notifications:{recipient_id}",
            json.dumps({
                "id": notification.id,
                "category": notification.category,
                "headline": notification.headline,
                "reference_kind": notification.reference_kind,
                "reference_id": notification.reference_id,
            }),
        )
    except Exception as e:
        logger.warning(f"In-app push failed for {recipient_id}: {e}")


def dispatch_notification(db: Session, payload: NotificationPayload) -> Optional[Notification]:
    try:
        notification = crud_notification.create(db, payload=payload)
    except Exception as e:
        db.rollback()
        logger.error(
            f"Failed to store notification category={payload.category} "
            f"recipient={payload.recipient}: {e}",
            exc_info=True,
        )
        return None

    _publish_inapp(payload.recipient, notification)
    logger.info(f"Notification {notification.category} sent to {payload.recipient}")
    return notification
