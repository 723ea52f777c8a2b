"""
Booking price calculation.

Fee model:
- platform_fee = base_price * PLATFORM_FEE_RATE, rounded half up to whole SEK
- total_price = base_price + platform_fee (what the customer pays)
- venue_payout = base_price (what the owner receives)

Every price stored on a booking or modification is computed here on the
server; client-supplied totals are never trusted.
"""

from dataclasses import asdict, dataclass
from typing import Optional
import math

from venue_booking.core.config import settings

PLATFORM_FEE_RATE = settings.PLATFORM_FEE_RATE

# Hours assumed when a venue only has an hourly rate
DEFAULT_BOOKING_HOURS = 8


@dataclass(frozen=True)
class Pricing:
    base_price: int
    platform_fee: int
    total_price: int
    venue_payout: int

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_pricing(base_price: int, fee_rate: float = PLATFORM_FEE_RATE) -> Pricing:
    """Split ``base_price`` into fee, total and payout. Pure."""
    if base_price <= 0:
        raise ValueError("base_price must be positive")
    platform_fee = math.floor(base_price * fee_rate + 0.5)
    return Pricing(
        base_price=base_price,
        platform_fee=platform_fee,
        total_price=base_price + platform_fee,
        venue_payout=base_price,
    )


def base_price_for_venue(venue) -> int:
    """
    Base price for a whole booking from the venue's tiers.

    Preference: full day, half day, evening, then hourly x 8. Returns 0
    when the venue has no usable price.
    """
    for tier in (venue.price_full_day, venue.price_half_day, venue.price_evening):
        if tier:
            return tier
    if venue.price_per_hour:
        return venue.price_per_hour * DEFAULT_BOOKING_HOURS
    return 0


def base_price_for_duration(venue, duration_hours: float) -> int:
    """
    Base price for an event of a known length, used by the agent when quoting.

    Short events (up to 4 h) use the hourly rate, up to 5 h the half-day rate,
    up to 6 h the evening rate, otherwise the full-day rate. Falls back to
    whatever tier exists.
    """
    hourly = venue.price_per_hour
    if duration_hours <= 4 and hourly:
        return math.ceil(hourly * duration_hours)
    if duration_hours <= 5 and venue.price_half_day:
        return venue.price_half_day
    if duration_hours <= 6 and venue.price_evening:
        return venue.price_evening
    if venue.price_full_day:
        return venue.price_full_day
    if venue.price_evening:
        return venue.price_evening
    if venue.price_half_day:
        return venue.price_half_day
    if hourly:
        return math.ceil(hourly * duration_hours)
    return 0


@dataclass
class Quote:
    """Agent-facing price breakdown."""
    base_price: int
    platform_fee: int
    total_price: int
    venue_payout: int
    package_name: Optional[str] = None
    package_cost: Optional[int] = None
    minimum_spend_applied: bool = False

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


def quote_price(
    venue,
    guest_count: int,
    duration_hours: float,
    package=None,
    minimum_spend: Optional[int] = None,
) -> Optional[Quote]:
    """
    Price an event for the agent.

    A matching package wins (per person x guests, else its flat price), then
    the venue tiers for the duration. A configured minimum spend lifts the
    base price. Returns None when nothing is priced.
    """
    base_price = 0
    package_cost = None
    if package is not None:
        if package.price_per_person:
            package_cost = package.price_per_person * guest_count
        elif package.base_price:
            package_cost = package.base_price
        base_price = package_cost or 0

    if base_price == 0:
        base_price = base_price_for_duration(venue, duration_hours)

    minimum_applied = False
    if minimum_spend and base_price < minimum_spend:
        base_price = minimum_spend
        minimum_applied = True

    if base_price <= 0:
        return None

    pricing = calculate_pricing(base_price)
    return Quote(
        package_name=package.name if package is not None and package_cost else None,
        package_cost=package_cost,
        minimum_spend_applied=minimum_applied,
        **pricing.to_dict(),
    )


def format_price(amount: int) -> str:
    """18000 -> '18 000 kr'"""
    return f"{amount:,}".replace(",", " ") + " kr"
