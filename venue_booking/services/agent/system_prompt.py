# venue_booking/services/agent/system_prompt.py
"""Fixed per-venue context for the booking agent."""
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from venue_booking.core.config import settings
from venue_booking.crud import crud_availability, crud_venue
from venue_booking.models.venue import Venue, VenuePackage
from venue_booking.models.venue_agent_config import VenueAgentConfig
from venue_booking.services.pricing import format_price

CALENDAR_WINDOW_DAYS = 90

# Sent as the assistant's first turn so the prompt reads as accepted context
ACKNOWLEDGEMENT = (
    "Uppfattat. Jag är bokningsassistent för lokalen och följer reglerna ovan."
)


def _identity(venue: Venue, config: Optional[VenueAgentConfig], today: date) -> List[str]:
    lines = [
        "# Identitet & Beteende",
        f'Du är en bokningsassistent för eventlokalen "{venue.name}". Du hjälper '
        "potentiella kunder med frågor och guidar dem genom bokningsprocessen.",
        "",
        "## Regler",
        "- Varm, kompetent och professionell ton",
        "- Håll svaren korta och fokuserade",
        "- BEKRÄFTA ALDRIG en bokning på egen hand. Alla bokningar kräver ägarens godkännande",
        "- HITTA INTE PÅ INFORMATION. Om du är osäker, eskalera till ägaren",
        "- Ta reda på datum, tid, antal gäster och typ av evenemang under samtalets gång",
        "- Föreslå alternativ när ett önskat datum inte är tillgängligt",
        "- Svara alltid på det språk kunden skriver på",
        f"Dagens datum: {today.isoformat()}",
    ]
    if config and config.tone:
        lines.append(f"Tonläge: {config.tone}")
    return lines


def _profile(venue: Venue) -> List[str]:
    location = f"{venue.area}, {venue.city}" if venue.area else (venue.city or "")
    lines = ["# Lokalprofil", f"**Lokal:** {venue.name}"]
    if location:
        lines.append(f"**Plats:** {location}")
    if venue.address:
        lines.append(f"**Adress:** {venue.address}")
    if venue.description:
        lines.append(f"**Beskrivning:** {venue.description}")

    capacities = []
    if venue.capacity_standing:
        capacities.append(f"{venue.capacity_standing} stående")
    if venue.capacity_seated:
        capacities.append(f"{venue.capacity_seated} sittande")
    if venue.capacity_conference:
        capacities.append(f"{venue.capacity_conference} konferens")
    if capacities:
        lines.append(f"**Kapacitet:** {', '.join(capacities)}")
    if venue.max_capacity:
        lines.append(f"**Max antal gäster:** {venue.max_capacity}")
    if venue.min_guests and venue.min_guests > 1:
        lines.append(f"**Minsta antal gäster:** {venue.min_guests}")
    if venue.amenities:
        lines.append(f"**Faciliteter:** {', '.join(venue.amenities)}")
    if venue.venue_types:
        lines.append(f"**Passar för:** {', '.join(venue.venue_types)}")
    return lines


def _pricing(venue: Venue, config: Optional[VenueAgentConfig],
             packages: List[VenuePackage]) -> List[str]:
    fee_percent = round(settings.PLATFORM_FEE_RATE * 100)
    lines = ["# Prissättning", f"**OBS:** En plattformsavgift på {fee_percent}% tillkommer på alla priser."]
    prices = []
    if venue.price_per_hour:
        prices.append(f"{format_price(venue.price_per_hour)}/timme")
    if venue.price_half_day:
        prices.append(f"{format_price(venue.price_half_day)} halvdag")
    if venue.price_full_day:
        prices.append(f"{format_price(venue.price_full_day)} heldag")
    if venue.price_evening:
        prices.append(f"{format_price(venue.price_evening)} kväll")
    if prices:
        lines.append(f"**Priser:** {', '.join(prices)}")
    if config and config.minimum_spend:
        lines.append(f"**Minimibelopp:** {format_price(config.minimum_spend)}")
    if packages:
        lines.append("**Paket:**")
        for package in packages:
            if package.price_per_person:
                price = f"{format_price(package.price_per_person)}/person"
            else:
                price = format_price(package.base_price or 0)
            suffix = f" ({package.description})" if package.description else ""
            lines.append(f"- {package.name} [id {package.id}]: {price}{suffix}")
    notes = (config.pricing_notes if config else None) or venue.price_notes
    if notes:
        lines.append(f"**Prisinfo:** {notes}")
    return lines


def _calendar(db: Session, venue: Venue, today: date) -> List[str]:
    end = today + timedelta(days=CALENDAR_WINDOW_DAYS)
    blocked = sorted(
        row.blocked_date
        for row in crud_venue.get_blocked_dates(db, venue_id=venue.id, start=today, end=end)
    )
    taken = crud_availability.unavailable_dates(db, [venue.id], today, end)[venue.id]
    booked = sorted(set(taken) - set(blocked))

    def fmt(days: List[date]) -> str:
        return ", ".join(d.isoformat() for d in days) if days else "Inga"

    return [
        "# Kalender (nästa 3 månader)",
        f"**Blockerade datum:** {fmt(blocked)}",
        f"**Bokade datum:** {fmt(booked)}",
        "",
        "Använd verktyget `check_availability` för att verifiera ett datum innan du "
        "lovar något till kunden.",
    ]


def _owner_config(config: Optional[VenueAgentConfig]) -> List[str]:
    if config is None:
        return []
    lines = []
    if config.house_rules:
        lines += ["# Ordningsregler", config.house_rules]
    if config.faq_entries:
        lines.append("# Vanliga frågor")
        for entry in config.faq_entries:
            lines.append(f"**F: {entry.get('question', '')}**")
            lines.append(f"S: {entry.get('answer', '')}")
    if config.custom_instructions:
        lines += ["# Instruktioner från lokalägaren", config.custom_instructions]
    return lines


WORKFLOW = [
    "# Bokningsflöde",
    "1. Kontrollera datumet med `check_availability`.",
    "2. Räkna fram priset med `calculate_price`.",
    "3. När datum, tider, antal gäster och typ av evenemang är kända: anropa "
    "`propose_booking`. Kunden bekräftar själv förslaget innan det skickas till ägaren.",
    "4. Använd `escalate_to_owner` för specialönskemål, klagomål eller frågor du inte "
    "kan besvara.",
]


def build_system_prompt(
    db: Session,
    venue: Venue,
    config: Optional[VenueAgentConfig] = None,
    today: Optional[date] = None,
) -> str:
    today = today or date.today()
    packages = crud_venue.get_active_packages(db, venue.id)
    sections = [
        _identity(venue, config, today),
        _profile(venue),
        _pricing(venue, config, packages),
        _calendar(db, venue, today),
        _owner_config(config),
        WORKFLOW,
    ]
    return "\n\n".join("\n".join(section) for section in sections if section)
