# venue_booking/services/agent/tools.py
"""
Tools the booking agent may call.

Each tool is a ToolName with one pydantic argument model; the same model
validates the LLM's arguments and produces the JSON schema declared to it.
"""
import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ToolName(str, Enum):
    CHECK_AVAILABILITY = "check_availability"
    CALCULATE_PRICE = "calculate_price"
    GET_VENUE_INFO = "get_venue_info"
    PROPOSE_BOOKING = "propose_booking"
    ESCALATE_TO_OWNER = "escalate_to_owner"


class CheckAvailabilityArgs(BaseModel):
    date: dt.date = Field(..., description="Datum att kontrollera (YYYY-MM-DD)")


class CalculatePriceArgs(BaseModel):
    guest_count: int = Field(..., ge=1, description="Antal gäster")
    date: Optional[dt.date] = Field(None, description="Datum för evenemanget (YYYY-MM-DD)")
    package_id: Optional[str] = Field(None, description="Id för ett paket, om kunden valt ett")
    hours: Optional[float] = Field(None, gt=0, le=24, description="Evenemangets längd i timmar")


class GetVenueInfoArgs(BaseModel):
    topic: str = Field(..., min_length=1, description="Ämne, t.ex. parkering, kapacitet, teknik")


class ProposeBookingArgs(BaseModel):
    date: dt.date = Field(..., description="Datum (YYYY-MM-DD)")
    start_time: str = Field(..., pattern=_TIME_PATTERN, description="Starttid HH:MM")
    end_time: str = Field(..., pattern=_TIME_PATTERN, description="Sluttid HH:MM")
    guest_count: int = Field(..., ge=1, description="Antal gäster")
    event_type: str = Field(
        ...,
        description="En av: aw, konferens, fest, workshop, middag, foretag, privat, annat",
    )
    customer_note: Optional[str] = Field(None, max_length=1000, description="Kundens önskemål")


class EscalateToOwnerArgs(BaseModel):
    reason: str = Field(..., min_length=1, description="Varför ägaren behöver svara")
    question: str = Field(..., min_length=1, description="Kundens fråga eller önskemål")


TOOL_ARGS: Dict[ToolName, Type[BaseModel]] = {
    ToolName.CHECK_AVAILABILITY: CheckAvailabilityArgs,
    ToolName.CALCULATE_PRICE: CalculatePriceArgs,
    ToolName.GET_VENUE_INFO: GetVenueInfoArgs,
    ToolName.PROPOSE_BOOKING: ProposeBookingArgs,
    ToolName.ESCALATE_TO_OWNER: EscalateToOwnerArgs,
}

TOOL_DESCRIPTIONS: Dict[ToolName, str] = {
    ToolName.CHECK_AVAILABILITY: (
        "Kontrollera om lokalen är ledig ett visst datum. Returnerar upp till tre "
        "lediga alternativ i närheten om datumet är upptaget."
    ),
    ToolName.CALCULATE_PRICE: (
        "Räkna ut pris för ett evenemang utifrån antal gäster, längd och eventuellt paket. "
        "Plattformsavgiften ingår i totalpriset."
    ),
    ToolName.GET_VENUE_INFO: "Slå upp information om lokalen inom ett visst ämne.",
    ToolName.PROPOSE_BOOKING: (
        "Skapa ett bokningsförslag som kunden själv får bekräfta. Skickar ingenting till ägaren."
    ),
    ToolName.ESCALATE_TO_OWNER: (
        "Skicka en fråga till lokalägaren när du inte kan svara eller kunden har särskilda önskemål."
    ),
}


def _schema(model: Type[BaseModel]) -> Dict[str, Any]:
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


def tool_declarations() -> List[Dict[str, Any]]:
    """Anthropic ``tools`` parameter."""
    return [
        {
            "name": name.value,
            "description": TOOL_DESCRIPTIONS[name],
            "input_schema": _schema(model),
        }
        for name, model in TOOL_ARGS.items()
    ]
