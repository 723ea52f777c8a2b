# venue_booking/models/__init__.py
# Import all models so Base.metadata knows every table

from venue_booking.db.base_class import Base
from venue_booking.models.venue import Venue, VenueBlockedDate, VenuePackage
from venue_booking.models.venue_agent_config import VenueAgentConfig
from venue_booking.models.inquiry import Inquiry
from venue_booking.models.booking_request import BookingRequest, ACTIVE_BOOKING_STATUSES
from venue_booking.models.booking_modification import BookingModification
from venue_booking.models.agent_conversation import AgentConversation
from venue_booking.models.agent_action import AgentAction
from venue_booking.models.notification import Notification
