"""
LLM Client for Anthropic Claude
Handles tool-use conversations with retry, timeout and circuit breaker protection
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic
from anthropic.types import Message

from venue_booking.core.config import get_settings
from venue_booking.core.circuit_breaker import (
    llm_circuit_breaker,
    CircuitBreakerError,
    CircuitState,
)
from venue_booking.core.retry import with_retry

logger = logging.getLogger(__name__)
settings = get_settings()


class LLMNotConfiguredError(RuntimeError):
    """Raised when a completion is requested without an API key."""


@dataclass
class ToolUse:
    id: str
    name: str
    input: Dict[str, Any]


@dataclass
class LLMResponse:
    """A single assistant turn."""
    text: str
    tool_uses: List[ToolUse] = field(default_factory=list)
    # Assistant content blocks, replayed verbatim when the loop continues
    content: List[Dict[str, Any]] = field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_uses)


def parse_message(response: Message) -> LLMResponse:
    text_parts: List[str] = []
    tool_uses: List[ToolUse] = []
    content: List[Dict[str, Any]] = []
    for block in response.content:
        if block.type == "text":
            text_parts.append(block.text)
            content.append({"type": "text", "text": block.text})
        elif block.type == "tool_use":
            tool_uses.append(ToolUse(id=block.id, name=block.name, input=dict(block.input or {})))
            content.append(
                {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
            )
    return LLMResponse(
        text="".join(text_parts).strip(),
        tool_uses=tool_uses,
        content=content,
        stop_reason=response.stop_reason,
    )


class LLMClient:
    """
    Async client for the Anthropic Messages API with tool declarations.

    Each request is retried on transient failures (see core.retry) and every
    attempt passes through the shared LLM circuit breaker.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.LLM_MODEL
        if not self.api_key:
            logger.warning("No Anthropic API key configured - the booking agent will be disabled")
            self.client = None
        else:
            self.client = AsyncAnthropic(api_key=self.api_key)

        self._circuit_breaker = llm_circuit_breaker

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def is_available(self) -> bool:
        """API key present and circuit not open"""
        if not self.client:
            return False
        return self._circuit_breaker.state != CircuitState.OPEN

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Run one Messages API call.

        Raises:
            LLMNotConfiguredError: no API key
            CircuitBreakerError: breaker is open
            asyncio.TimeoutError / anthropic.APIError: after retries are exhausted
        """
        if not self.client:
            raise LLMNotConfiguredError("LLM client not initialized - API key missing")

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
            "messages": messages,
        }
        if tools:
            kwargs["tools"] = tools
        if system:
            kwargs["system"] = [
                {"type": "text", "text": system, "cache_control": {"type": "ephemeral"}}
            ]
        timeout = timeout or settings.LLM_TIMEOUT_SECONDS

        async def _attempt() -> Message:
            async with self._circuit_breaker:
                return await asyncio.wait_for(
                    self.client.messages.create(**kwargs), timeout=timeout
                )

        start_time = time.time()
        try:
            response = await with_retry(_attempt)
        except CircuitBreakerError as e:
            logger.warning(f"LLM circuit breaker open: {e}")
            raise
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            logger.error(f"LLM call failed after {latency_ms:.0f}ms: {type(e).__name__}: {e}")
            raise

        latency_ms = (time.time() - start_time) * 1000
        usage = response.usage
        logger.info(
            f"LLM call ok: {self.model} - {latency_ms:.0f}ms - "
            f"tokens {usage.input_tokens}in/{usage.output_tokens}out - stop={response.stop_reason}"
        )
        return parse_message(response)


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Shared client instance, created on first use."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
