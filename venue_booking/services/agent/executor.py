# venue_booking/services/agent/executor.py
"""
Executes the booking agent's tool calls.

``execute_tool`` never raises: bad names, bad arguments and failing tools all
come back as ``{"error": ...}`` so the model can answer the customer.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as ArgsValidationError
from sqlalchemy.orm import Session

from venue_booking.core.exceptions import AppError, DATE_BLOCKED
from venue_booking.crud import (
    crud_agent_action,
    crud_agent_conversation,
    crud_availability,
    crud_venue,
)
from venue_booking.models.venue import Venue
from venue_booking.models.venue_agent_config import VenueAgentConfig
from venue_booking.schemas.agent import BookingSummary, ConversationStatus
from venue_booking.schemas.booking import VALID_EVENT_TYPES
from venue_booking.schemas.notification import NotificationPayload, NotificationReference
from venue_booking.services.notifications import dispatch_notification
from venue_booking.services.pricing import (
    DEFAULT_BOOKING_HOURS,
    base_price_for_venue,
    calculate_pricing,
    format_price,
    quote_price,
)
from venue_booking.services.agent.tools import (
    TOOL_ARGS,
    CalculatePriceArgs,
    CheckAvailabilityArgs,
    EscalateToOwnerArgs,
    GetVenueInfoArgs,
    ProposeBookingArgs,
    ToolName,
)

logger = logging.getLogger(__name__)

NO_INFO_ANSWER = (
    "Jag har tyvärr inte specifik information om det ämnet. "
    "Vill du att jag kontaktar lokalägaren?"
)


@dataclass
class ToolContext:
    db: Session
    venue: Venue
    conversation_id: str
    config: Optional[VenueAgentConfig] = None
    customer_id: Optional[str] = None
    today: date = field(default_factory=date.today)


def _hours_between(start: str, end: str) -> float:
    sh, sm = (int(p) for p in start.split(":"))
    eh, em = (int(p) for p in end.split(":"))
    return ((eh * 60 + em) - (sh * 60 + sm)) / 60


# ---------------------------------------------------------------------------
# check_availability
# ---------------------------------------------------------------------------

def check_availability(ctx: ToolContext, args: CheckAvailabilityArgs) -> Dict[str, Any]:
    if args.date <= ctx.today:
        return {
            "date": args.date.isoformat(),
            "available": False,
            "status": "past",
            "message": "Datumet har passerat. Bokningar måste gälla ett framtida datum.",
        }

    result = crud_availability.check_date(
        ctx.db, venue_id=ctx.venue.id, on=args.date, today=ctx.today
    )
    if result.available:
        return {"date": args.date.isoformat(), "available": True, "status": "available"}

    alternatives = crud_availability.find_alternative_dates(
        ctx.db,
        venue_id=ctx.venue.id,
        target=args.date,
        today=ctx.today + timedelta(days=1),
    )
    payload = {
        "date": args.date.isoformat(),
        "available": False,
        "status": "blocked" if result.reason == DATE_BLOCKED else "booked",
        "alternatives": [day.isoformat() for day in alternatives],
    }
    if result.blocked_reason:
        payload["note"] = result.blocked_reason
    return payload


# ---------------------------------------------------------------------------
# calculate_price
# ---------------------------------------------------------------------------

def calculate_price(ctx: ToolContext, args: CalculatePriceArgs) -> Dict[str, Any]:
    package = None
    if args.package_id:
        package = crud_venue.get_package(ctx.db, venue_id=ctx.venue.id, package_id=args.package_id)
        if package is None:
            return {"error": "Paketet finns inte"}

    minimum_spend = ctx.config.minimum_spend if ctx.config else None
    quote = quote_price(
        ctx.venue,
        guest_count=args.guest_count,
        duration_hours=args.hours or DEFAULT_BOOKING_HOURS,
        package=package,
        minimum_spend=minimum_spend,
    )
    if quote is None:
        return {"error": "Lokalen saknar prisuppgifter, eskalera till ägaren"}

    result = quote.to_dict()
    result["guest_count"] = args.guest_count
    result["total_formatted"] = format_price(quote.total_price)
    if args.date:
        result["date"] = args.date.isoformat()
    max_capacity = ctx.venue.max_capacity
    if max_capacity and args.guest_count > max_capacity:
        result["warning"] = f"Lokalen har max {max_capacity} gäster"
    return result


# ---------------------------------------------------------------------------
# get_venue_info
# ---------------------------------------------------------------------------

def _faq_match(topic: str, entries: List[dict]) -> Optional[str]:
    topic_words = [w for w in topic.split() if len(w) > 2]
    for entry in entries:
        question = (entry.get("question") or "").lower()
        if not question:
            continue
        if topic in question or question in topic:
            return entry.get("answer")
        question_words = [w for w in question.split() if len(w) > 2]
        hits = [w for w in topic_words if any(w in q or q in w for q in question_words)]
        if hits and len(hits) >= len(topic_words) * 0.5:
            return entry.get("answer")
    return None


def _info_capacity(ctx: ToolContext) -> Optional[str]:
    venue = ctx.venue
    parts = []
    if venue.capacity_standing:
        parts.append(f"{venue.capacity_standing} stående")
    if venue.capacity_seated:
        parts.append(f"{venue.capacity_seated} sittande")
    if venue.capacity_conference:
        parts.append(f"{venue.capacity_conference} i konferensuppställning")
    if not parts and venue.max_capacity:
        parts.append(f"max {venue.max_capacity} gäster")
    return f"Lokalen rymmer {', '.join(parts)}." if parts else None


def _info_amenities(ctx: ToolContext) -> Optional[str]:
    amenities = ctx.venue.amenities or []
    return f"Lokalen erbjuder: {', '.join(amenities)}." if amenities else None


def _info_parking(ctx: ToolContext) -> Optional[str]:
    amenities = [a.lower() for a in ctx.venue.amenities or []]
    if any("parkering" in a or "parking" in a for a in amenities):
        return "Ja, det finns parkering vid lokalen."
    return "Det finns ingen uppgift om parkering. Kontakta lokalägaren för mer information."


def _info_pricing(ctx: ToolContext) -> Optional[str]:
    venue = ctx.venue
    prices = []
    if venue.price_per_hour:
        prices.append(f"{format_price(venue.price_per_hour)}/timme")
    if venue.price_half_day:
        prices.append(f"{format_price(venue.price_half_day)} halvdag")
    if venue.price_full_day:
        prices.append(f"{format_price(venue.price_full_day)} heldag")
    if venue.price_evening:
        prices.append(f"{format_price(venue.price_evening)} kväll")
    if not prices:
        return None
    answer = f"Priser: {', '.join(prices)}. Plattformsavgift tillkommer."
    notes = (ctx.config.pricing_notes if ctx.config else None) or venue.price_notes
    return f"{answer} {notes}" if notes else answer


def _info_location(ctx: ToolContext) -> Optional[str]:
    venue = ctx.venue
    place = ", ".join(p for p in (venue.address, venue.area, venue.city) if p)
    return f"Lokalen ligger på {place}." if place else None


def _info_rules(ctx: ToolContext) -> Optional[str]:
    if ctx.config and ctx.config.house_rules:
        return ctx.config.house_rules
    return None


_TOPIC_HANDLERS: Dict[str, Callable[[ToolContext], Optional[str]]] = {
    "kapacitet": _info_capacity,
    "capacity": _info_capacity,
    "gäster": _info_capacity,
    "faciliteter": _info_amenities,
    "amenities": _info_amenities,
    "utrustning": _info_amenities,
    "teknik": _info_amenities,
    "parkering": _info_parking,
    "parking": _info_parking,
    "pris": _info_pricing,
    "pricing": _info_pricing,
    "kostnad": _info_pricing,
    "adress": _info_location,
    "plats": _info_location,
    "location": _info_location,
    "regler": _info_rules,
    "rules": _info_rules,
    "villkor": _info_rules,
}


def get_venue_info(ctx: ToolContext, args: GetVenueInfoArgs) -> Dict[str, Any]:
    topic = args.topic.strip().lower()

    entries = (ctx.config.faq_entries if ctx.config else None) or []
    answer = _faq_match(topic, entries)
    if answer:
        return {"found": True, "answer": answer}

    handler = _TOPIC_HANDLERS.get(topic)
    if handler is None:
        handler = next((h for key, h in _TOPIC_HANDLERS.items() if key in topic), None)
    answer = handler(ctx) if handler else None
    if answer:
        return {"found": True, "answer": answer}
    return {"found": False, "answer": NO_INFO_ANSWER}


# ---------------------------------------------------------------------------
# propose_booking
# ---------------------------------------------------------------------------

def propose_booking(ctx: ToolContext, args: ProposeBookingArgs) -> Dict[str, Any]:
    """
    Build a draft for the customer to confirm. Nothing is written; the date is
    only claimed when the customer confirms.
    """
    venue = ctx.venue
    event_type = args.event_type.strip().lower()
    if event_type not in VALID_EVENT_TYPES:
        return {"error": f"Ogiltig eventtyp. Välj en av: {', '.join(sorted(VALID_EVENT_TYPES))}"}
    if _hours_between(args.start_time, args.end_time) <= 0:
        return {"error": "Sluttiden måste vara efter starttiden"}
    if args.date <= ctx.today:
        return {"error": "Datumet måste vara i framtiden"}

    min_guests = max(venue.min_guests or 1, 1)
    if args.guest_count < min_guests:
        return {"error": f"Minsta antal gäster för denna lokal är {min_guests}"}
    max_capacity = venue.max_capacity
    if max_capacity and args.guest_count > max_capacity:
        return {"error": f"Lokalen har max {max_capacity} gäster"}

    availability = check_availability(ctx, CheckAvailabilityArgs(date=args.date))
    if not availability["available"]:
        return {"error": "Datumet är inte tillgängligt", **availability}

    base_price = base_price_for_venue(venue)
    if base_price <= 0:
        return {"error": "Lokalen saknar prisuppgifter, eskalera till ägaren"}
    pricing = calculate_pricing(base_price)

    summary = BookingSummary(
        venue_id=venue.id,
        date=args.date,
        start_time=args.start_time,
        end_time=args.end_time,
        guest_count=args.guest_count,
        event_type=event_type,
        base_price=pricing.base_price,
        platform_fee=pricing.platform_fee,
        total_price=pricing.total_price,
        customer_note=args.customer_note,
    )
    return {
        "success": True,
        "booking_summary": summary.model_dump(mode="json"),
        "message": "Förslaget visas för kunden, som måste bekräfta det innan det skickas till ägaren.",
    }


# ---------------------------------------------------------------------------
# escalate_to_owner
# ---------------------------------------------------------------------------

def escalate_to_owner(ctx: ToolContext, args: EscalateToOwnerArgs) -> Dict[str, Any]:
    action = crud_agent_action.create(
        ctx.db,
        obj_in={
            "conversation_id": ctx.conversation_id,
            "venue_id": ctx.venue.id,
            "customer_id": ctx.customer_id,
            "action_type": "escalation",
            "summary": {"reason": args.reason, "question": args.question},
        },
        commit=False,
    )
    crud_agent_conversation.set_status(
        ctx.db, ctx.conversation_id, ConversationStatus.WAITING_FOR_OWNER, commit=False
    )
    ctx.db.commit()

    dispatch_notification(
        ctx.db,
        NotificationPayload(
            recipient=ctx.venue.owner_id,
            category="agent_escalation",
            headline="Agenten behöver din hjälp",
            body=f"En kund har en förfrågan som kräver ditt svar: {args.question}",
            reference=NotificationReference(kind="agent_action", id=action.id),
            extra={
                "conversation_id": ctx.conversation_id,
                "venue_id": ctx.venue.id,
                "reason": args.reason,
            },
        ),
    )
    logger.info(f"Conversation {ctx.conversation_id} escalated to owner (action {action.id})")
    return {
        "success": True,
        "action_id": action.id,
        "message": "Frågan är skickad till lokalägaren, som svarar så snart som möjligt.",
    }


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def _run(ctx: ToolContext, tool: ToolName, args) -> Dict[str, Any]:
    match tool:
        case ToolName.CHECK_AVAILABILITY:
            return check_availability(ctx, args)
        case ToolName.CALCULATE_PRICE:
            return calculate_price(ctx, args)
        case ToolName.GET_VENUE_INFO:
            return get_venue_info(ctx, args)
        case ToolName.PROPOSE_BOOKING:
            return propose_booking(ctx, args)
        case ToolName.ESCALATE_TO_OWNER:
            return escalate_to_owner(ctx, args)
    raise AssertionError(f"Unhandled tool {tool}")


def execute_tool(name: str, raw_args: Optional[Dict[str, Any]], ctx: ToolContext) -> Dict[str, Any]:
    try:
        tool = ToolName(name)
    except ValueError:
        logger.warning(f"Model called unknown tool {name!r}")
        return {"error": f"Okänt verktyg: {name}"}

    try:
        args = TOOL_ARGS[tool].model_validate(raw_args or {})
    except ArgsValidationError as e:
        return {
            "error": "Ogiltiga argument",
            "details": [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ],
        }

    try:
        return _run(ctx, tool, args)
    except AppError as e:
        ctx.db.rollback()
        return {"error": e.message}
    except Exception as e:
        ctx.db.rollback()
        logger.error(f"Tool {tool.value} failed: {e}", exc_info=True)
        return {"error": "Verktyget misslyckades, försök igen eller eskalera till ägaren"}
