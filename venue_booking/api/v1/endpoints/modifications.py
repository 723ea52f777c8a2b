# venue_booking/api/v1/endpoints/modifications.py
"""Change proposals on a booking: propose, accept, decline, withdraw."""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.crud import crud_booking_modification
from venue_booking.schemas.modification import (
    ModificationActionResult,
    ModificationDecline,
    ModificationPropose,
    ModificationProposeResult,
    ModificationResponse,
)
from venue_booking.schemas.token import TokenPayload
from venue_booking.services import booking_lifecycle, modification_service

router = APIRouter(tags=["Booking Modifications"])


@router.post(
    "/bookings/{booking_id}/modifications",
    response_model=ModificationProposeResult,
    status_code=status.HTTP_201_CREATED,
)
def propose_modification(
    booking_id: str,
    changes: ModificationPropose,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    modification = modification_service.propose(
        db, booking_id=booking_id, changes=changes, user=current_user
    )
    return ModificationProposeResult(modification_id=modification.id)


@router.get(
    "/bookings/{booking_id}/modifications",
    response_model=List[ModificationResponse],
)
def list_modifications(
    booking_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    booking_lifecycle.get_booking_for_party(db, booking_id=booking_id, user=current_user)
    return crud_booking_modification.list_for_booking(db, booking_id)


@router.post("/modifications/{modification_id}/accept", response_model=ModificationActionResult)
def accept_modification(
    modification_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    modification_service.accept(db, modification_id=modification_id, user=current_user)
    return ModificationActionResult()


@router.post("/modifications/{modification_id}/decline", response_model=ModificationActionResult)
def decline_modification(
    modification_id: str,
    decision: ModificationDecline,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    modification_service.decline(
        db, modification_id=modification_id, user=current_user, reason=decision.reason
    )
    return ModificationActionResult()


@router.post("/modifications/{modification_id}/cancel", response_model=ModificationActionResult)
def cancel_modification(
    modification_id: str,
    db: Session = Depends(deps.get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    modification_service.cancel(db, modification_id=modification_id, user=current_user)
    return ModificationActionResult()
