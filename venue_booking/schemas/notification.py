# venue_booking/schemas/notification.py
from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime


class NotificationReference(BaseModel):
    kind: Literal["booking", "inquiry", "agent_action"]
    id: str


class NotificationPayload(BaseModel):
    """Dispatch contract handed to the notification subsystem."""
    recipient: str
    category: str
    headline: str = Field(..., max_length=200)
    body: str
    reference: Optional[NotificationReference] = None
    author: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    category: str
    headline: str
    body: str
    reference_kind: Optional[str] = None
    reference_id: Optional[str] = None
    author_id: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
