# venue_booking/schemas/agent.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
import datetime as dt


class ConversationStatus:
    ACTIVE = "active"
    WAITING_FOR_OWNER = "waiting_for_owner"
    COMPLETED = "completed"


class ToolCallRecord(BaseModel):
    name: str
    args: Dict[str, Any] = {}


class ToolResultRecord(BaseModel):
    name: str
    result: Dict[str, Any] = {}


class AgentConversationMessage(BaseModel):
    id: str
    role: Literal["user", "agent", "system"]
    content: str
    tool_calls: Optional[List[ToolCallRecord]] = None
    tool_results: Optional[List[ToolResultRecord]] = None
    timestamp: str


class BookingSummary(BaseModel):
    """Draft booking the customer must confirm before it reaches the owner."""
    venue_id: str
    date: dt.date
    start_time: str
    end_time: str
    guest_count: int
    event_type: str
    base_price: int
    platform_fee: int
    total_price: int
    customer_note: Optional[str] = None
    status: Literal["draft", "sent", "approved", "declined", "modified"] = "draft"


class AgentMessageRequest(BaseModel):
    conversation_id: Optional[str] = None
    venue_id: Optional[str] = None
    message: Optional[str] = None


class AgentMessageResponse(BaseModel):
    conversation_id: str
    message: str
    booking_summary: Optional[BookingSummary] = None
    status: str


class ConfirmBookingRequest(BaseModel):
    summary: BookingSummary
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_email: Optional[str] = Field(None, max_length=320)
    customer_phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=200)


class ConfirmBookingResponse(BaseModel):
    success: bool = True
    booking_id: str
    verification_token: str
    action_id: str


# --- Owner actions ---

class DeclineActionRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ModifyActionRequest(BaseModel):
    adjusted_price: Optional[int] = Field(None, gt=0)
    suggested_date: Optional[dt.date] = None
    suggested_start_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    suggested_end_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    note: Optional[str] = Field(None, max_length=500)


class ReplyToEscalationRequest(BaseModel):
    response: str = Field(..., min_length=1, max_length=2000)


class AgentActionResult(BaseModel):
    success: bool = True
    booking_id: Optional[str] = None
    modification_id: Optional[str] = None
