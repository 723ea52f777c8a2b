# venue_booking/schemas/modification.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from enum import Enum


class ModificationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class ModificationPropose(BaseModel):
    proposed_event_date: Optional[date] = None
    proposed_start_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    proposed_end_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    proposed_guest_count: Optional[int] = None
    proposed_base_price: Optional[int] = None
    reason: Optional[str] = None


class ModificationDecline(BaseModel):
    reason: Optional[str] = None


class ModificationProposeResult(BaseModel):
    success: bool = True
    modification_id: str


class ModificationActionResult(BaseModel):
    success: bool = True


class ModificationResponse(BaseModel):
    id: str
    booking_request_id: str
    proposed_by: str
    proposer_role: str
    status: ModificationStatus
    proposed_event_date: Optional[date] = None
    proposed_start_time: Optional[str] = None
    proposed_end_time: Optional[str] = None
    proposed_guest_count: Optional[int] = None
    proposed_base_price: Optional[int] = None
    proposed_platform_fee: Optional[int] = None
    proposed_total_price: Optional[int] = None
    proposed_venue_payout: Optional[int] = None
    reason: Optional[str] = None
    response_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
