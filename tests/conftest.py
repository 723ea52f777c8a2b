# tests/conftest.py

import secrets
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from venue_booking.api import deps
from venue_booking.core.circuit_breaker import llm_circuit_breaker, redis_circuit_breaker
from venue_booking.core.llm_client import LLMResponse, get_llm_client
from venue_booking.core.rate_limiter import agent_rate_limiter, booking_rate_limiter
from venue_booking.db.session import make_engine
from venue_booking.main import app
from venue_booking.models import Base, BookingRequest, Venue, VenueAgentConfig
from venue_booking.schemas.token import TokenPayload
from venue_booking.services import notifications, realtime
from venue_booking.services.pricing import calculate_pricing

OWNER_ID = "owner_1"
CUSTOMER_ID = "customer_1"


# --- Database Setup ---
# A throwaway SQLite file per test: the partial unique indexes and the
# cross-thread claims need a real database, not a mock.
@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'venue_booking_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Shared state that outlives a single test ---
@pytest.fixture(autouse=True)
def reset_process_state():
    booking_rate_limiter.reset()
    agent_rate_limiter.reset()
    llm_circuit_breaker.reset()
    redis_circuit_breaker.reset()
    yield
    booking_rate_limiter.reset()
    agent_rate_limiter.reset()


@pytest.fixture(autouse=True)
def redis_publish(monkeypatch):
    """Captures every publish instead of talking to a Redis server."""
    client = MagicMock()
    monkeypatch.setattr(realtime, "redis_client", client)
    monkeypatch.setattr(notifications, "redis_client", client)
    return client.publish


# --- Domain fixtures ---
@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def future_date(today):
    return today + timedelta(days=30)


@pytest.fixture
def owner():
    return TokenPayload(sub=OWNER_ID, email="agare@ljusgarden.se", name="Lena Ägare")


@pytest.fixture
def customer():
    return TokenPayload(sub=CUSTOMER_ID, email="anna@example.se", name="Anna Svensson")


@pytest.fixture
def stranger():
    return TokenPayload(sub="someone_else", email="x@example.se", name="Okänd")


@pytest.fixture
def venue(db):
    venue = Venue(
        owner_id=OWNER_ID,
        name="Ljusgården",
        description="Ljus festlokal med takterrass",
        area="Södermalm",
        city="Stockholm",
        address="Götgatan 1",
        min_guests=1,
        max_guests=60,
        amenities=["Projektor", "Högtalare", "Parkering"],
        venue_types=["fest", "konferens"],
        price_full_day=18000,
        contact_email="agare@ljusgarden.se",
        status="published",
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@pytest.fixture
def agent_config(db, venue):
    config = VenueAgentConfig(
        venue_id=venue.id,
        is_enabled=True,
        tone="vänlig",
        house_rules="Musiken ska vara avstängd senast 01:00.",
        faq_entries=[
            {"question": "Finns det parkering?", "answer": "Ja, 20 platser i garaget under huset."},
        ],
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


@pytest.fixture
def make_booking(db, venue):
    """Inserts a booking row directly, bypassing rate limits and validation."""

    def _make(event_date, status="pending", customer_id=CUSTOMER_ID, base_price=18000):
        booking = BookingRequest(
            venue_id=venue.id,
            customer_id=customer_id,
            event_date=event_date,
            start_time="18:00",
            end_time="23:00",
            event_type="fest",
            guest_count=40,
            customer_name="Anna Svensson",
            customer_email="anna@example.se",
            status=status,
            verification_token=secrets.token_hex(8),
            **calculate_pricing(base_price).to_dict(),
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def fake_llm():
    llm = MagicMock()
    llm.is_configured = True
    llm.complete = AsyncMock(return_value=LLMResponse(text="Hej! Hur kan jag hjälpa dig?"))
    return llm


# --- Test Client Fixtures ---
class AuthState:
    """Which user the overridden auth dependencies report; None is anonymous."""

    def __init__(self):
        self.user = None


@pytest.fixture
def auth():
    return AuthState()


@pytest.fixture(scope="function")
def test_client(session_factory, auth, fake_llm):
    """
    TestClient wired to the per-test SQLite database, with authentication
    and the LLM client replaced.
    """

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_current_user():
        if auth.user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return auth.user

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = override_get_current_user
    app.dependency_overrides[deps.get_current_user_optional] = lambda: auth.user
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
