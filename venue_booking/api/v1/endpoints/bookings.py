# venue_booking/api/v1/endpoints/bookings.py
"""Booking request endpoints (customer + venue owner)."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.crud import crud_availability, crud_booking_request
from venue_booking.schemas.booking import (
    BatchAvailabilityRequest,
    BatchAvailabilityResponse,
    BookingActionResult,
    BookingCreate,
    BookingCreateResult,
    BookingDecision,
    BookingRequestResponse,
)
from venue_booking.schemas.token import TokenPayload
from venue_booking.services import booking_lifecycle
from venue_booking.services.booking_creator import create_booking

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Bookings"])


@router.post(
    "/bookings",
    response_model=BookingCreateResult,
    status_code=status.HTTP_201_CREATED,
)
def create_booking_request(
    booking_in: BookingCreate,
    request: Request,
    db: Session = Depends(deps.get_db),
    current_user: Optional[TokenPayload] = Depends(deps.get_current_user_optional),
):
    """
    Create a booking request for a published venue.

    The date is claimed atomically; a lost race answers 409 ``date_booked``.
    """
    return create_booking(
        db,
        obj_in=booking_in,
        customer=current_user,
        client_key=deps.get_client_key(request),
    )


@router.get("/bookings", response_model=List[BookingRequestResponse])
def list_my_bookings(
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_booking_request.get_for_customer(db, current_user.sub)


@router.get("/bookings/confirmation/{token}", response_model=BookingRequestResponse)
def get_booking_confirmation(token: str, db: Session = Depends(deps.get_db)):
    """Confirmation page lookup by verification token, no login needed."""
    return booking_lifecycle.get_booking_by_token(db, token=token)


@router.get("/bookings/{booking_id}", response_model=BookingRequestResponse)
def get_booking(
    booking_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return booking_lifecycle.get_booking_for_party(db, booking_id=booking_id, user=current_user)


@router.post("/bookings/{booking_id}/accept", response_model=BookingActionResult)
def accept_booking(
    booking_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking_lifecycle.accept_booking(db, booking_id=booking_id, user=current_user)
    return BookingActionResult()


@router.post("/bookings/{booking_id}/decline", response_model=BookingActionResult)
def decline_booking(
    booking_id: str,
    decision: BookingDecision,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking_lifecycle.decline_booking(
        db, booking_id=booking_id, user=current_user, reason=decision.reason
    )
    return BookingActionResult()


@router.post("/bookings/{booking_id}/cancel", response_model=BookingActionResult)
def cancel_booking(
    booking_id: str,
    decision: BookingDecision,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking_lifecycle.cancel_booking(
        db, booking_id=booking_id, user=current_user, reason=decision.reason
    )
    return BookingActionResult()


@router.post("/venues/availability", response_model=BatchAvailabilityResponse)
def batch_availability(
    request_in: BatchAvailabilityRequest,
    db: Session = Depends(deps.get_db),
):
    """Open dates per venue among the requested dates. Public, read-only."""
    availability = crud_availability.batch_availability(
        db, venue_ids=request_in.venue_ids, dates=request_in.dates
    )
    return BatchAvailabilityResponse(availability=availability)
