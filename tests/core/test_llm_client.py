# tests/core/test_llm_client.py

from unittest.mock import AsyncMock

import anthropic
import httpx
import pytest

from venue_booking.core import retry
from venue_booking.core.circuit_breaker import CircuitBreaker, CircuitState, llm_circuit_breaker
from venue_booking.core.llm_client import LLMClient


def api_error(cls, status_code):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status_code, request=request)
    return cls("upstream error", response=response, body=None)


@pytest.fixture
def llm_client(monkeypatch):
    monkeypatch.setattr(retry.settings, "LLM_RETRY_BASE_DELAY", 0.0)
    client = LLMClient(api_key="test-key")
    client.client.messages.create = AsyncMock()
    return client


class TestLLMCircuitBreaker:
    @pytest.mark.asyncio
    async def test_bad_requests_do_not_open_circuit(self, llm_client):
        llm_client.client.messages.create.side_effect = api_error(anthropic.BadRequestError, 400)

        for _ in range(4):
            with pytest.raises(anthropic.BadRequestError):
                await llm_client.complete(messages=[{"role": "user", "content": "Hej"}])

        assert llm_client.client.messages.create.await_count == 4
        assert llm_circuit_breaker.state == CircuitState.CLOSED
        assert llm_client.is_available()

    @pytest.mark.asyncio
    async def test_overloaded_upstream_opens_circuit(self, llm_client):
        llm_client.client.messages.create.side_effect = api_error(anthropic.InternalServerError, 529)

        with pytest.raises(anthropic.InternalServerError):
            await llm_client.complete(messages=[{"role": "user", "content": "Hej"}])

        assert llm_client.client.messages.create.await_count == 3
        assert llm_circuit_breaker.state == CircuitState.OPEN
        assert not llm_client.is_available()


def test_breaker_ignores_errors_rejected_by_filter():
    breaker = CircuitBreaker("test", failure_threshold=1, is_failure=lambda e: not isinstance(e, ValueError))

    with pytest.raises(ValueError):
        with breaker:
            raise ValueError("bad input")
    assert breaker.state == CircuitState.CLOSED

    with pytest.raises(RuntimeError):
        with breaker:
            raise RuntimeError("down")
    assert breaker.state == CircuitState.OPEN
