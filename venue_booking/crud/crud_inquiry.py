# venue_booking/crud/crud_inquiry.py
import logging
from typing import Optional
from sqlalchemy.orm import Session

from venue_booking.models.inquiry import Inquiry

logger = logging.getLogger(__name__)


def get(db: Session, inquiry_id: str) -> Optional[Inquiry]:
    return db.query(Inquiry).filter(Inquiry.id == inquiry_id).first()


def link_to_booking(db: Session, *, inquiry_id: str, booking_id: str) -> Optional[Inquiry]:
    """Mark an open inquiry as converted into ``booking_id``."""
    inquiry = get(db, inquiry_id)
    if not inquiry:
        logger.warning(f"Inquiry {inquiry_id} not found, nothing to link")
        return None
    if inquiry.status == "linked" and inquiry.booking_request_id == booking_id:
        return inquiry
    inquiry.status = "linked"
    inquiry.booking_request_id = booking_id
    db.commit()
    db.refresh(inquiry)
    return inquiry
