# venue_booking/schemas/booking.py
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PAID_OUT = "paid_out"


class EventType(str, Enum):
    AW = "aw"
    KONFERENS = "konferens"
    FEST = "fest"
    WORKSHOP = "workshop"
    MIDDAG = "middag"
    FORETAG = "foretag"
    PRIVAT = "privat"
    ANNAT = "annat"


VALID_EVENT_TYPES = {e.value for e in EventType}


# --- Create ---

class BookingCreate(BaseModel):
    """
    Booking form input. Fields are loose on purpose: the booking service
    checks them in a fixed order and answers with one message per rule.
    """
    venue_id: Optional[str] = None
    event_date: Optional[date] = None
    start_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    event_type: Optional[str] = None
    guest_count: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_email: Optional[str] = Field(None, max_length=320)
    customer_phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=200)
    event_description: Optional[str] = Field(None, max_length=5000)
    inquiry_id: Optional[str] = None


class BookingCreateResult(BaseModel):
    success: bool = True
    booking_id: str
    verification_token: str


class BookingDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingActionResult(BaseModel):
    success: bool = True


# --- Response ---

class BookingRequestResponse(BaseModel):
    id: str
    venue_id: str
    customer_id: Optional[str] = None
    event_date: date
    start_time: str
    end_time: str
    event_type: str
    event_description: Optional[str] = None
    guest_count: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    company_name: Optional[str] = None
    base_price: int
    platform_fee: int
    total_price: int
    venue_payout: int
    status: BookingStatus
    decline_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# --- Availability ---

class BatchAvailabilityRequest(BaseModel):
    venue_ids: List[str] = Field(..., min_length=1, max_length=100)
    dates: List[date] = Field(..., min_length=1, max_length=366)


class BatchAvailabilityResponse(BaseModel):
    availability: Dict[str, List[date]]
