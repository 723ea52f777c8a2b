"""
Circuit breaker guarding the service's external dependencies.

The LLM API and Redis are both optional for the primary booking flows:
when either keeps failing we stop calling it for a while and let the
caller degrade (static agent apology, skipped broadcast) instead of
stacking up timeouts.

States:
- CLOSED: calls pass through
- OPEN: calls fail immediately with CircuitBreakerError
- HALF_OPEN: a few trial calls decide whether to close again
"""

import time
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from venue_booking.core.retry import is_retryable

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerStats:
    name: str
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    opened_at: Optional[float] = None
    total_calls: int = 0
    total_failures: int = 0

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
        }


class CircuitBreakerError(Exception):
    """Raised when a call is short-circuited"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"[{name}] circuit is open")


class CircuitBreaker:
    """
    Failure counter with a cool-down.

    Usable as a sync or async context manager; exceptions raised inside the
    block count as failures when they match ``expected_exceptions`` (and
    ``is_failure``, when given) and are always re-raised.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        success_threshold: int = 1,
        expected_exceptions: tuple = (Exception,),
        is_failure: Optional[Callable[[BaseException], bool]] = None,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self.expected_exceptions = expected_exceptions
        self.is_failure = is_failure
        self._stats = CircuitBreakerStats(name=name)
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._stats.state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _maybe_half_open(self) -> None:
        if (
            self._stats.state == CircuitState.OPEN
            and self._stats.opened_at is not None
            and time.monotonic() - self._stats.opened_at >= self.recovery_timeout
        ):
            self._stats.state = CircuitState.HALF_OPEN
            self._stats.success_count = 0
            logger.info(f"Circuit breaker '{self.name}' is HALF_OPEN")

    def _before_call(self) -> None:
        with self._lock:
            self._maybe_half_open()
            if self._stats.state == CircuitState.OPEN:
                raise CircuitBreakerError(self.name)
            self._stats.total_calls += 1

    def _on_success(self) -> None:
        with self._lock:
            if self._stats.state == CircuitState.HALF_OPEN:
                self._stats.success_count += 1
                if self._stats.success_count < self.success_threshold:
                    return
                logger.info(f"Circuit breaker '{self.name}' CLOSED")
            self._stats.state = CircuitState.CLOSED
            self._stats.failure_count = 0

    def _on_failure(self, exc: BaseException) -> None:
        with self._lock:
            self._stats.failure_count += 1
            self._stats.total_failures += 1
            trip = (
                self._stats.state == CircuitState.HALF_OPEN
                or self._stats.failure_count >= self.failure_threshold
            )
            if trip and self._stats.state != CircuitState.OPEN:
                self._stats.state = CircuitState.OPEN
                self._stats.opened_at = time.monotonic()
                logger.warning(
                    f"Circuit breaker '{self.name}' OPENED after "
                    f"{self._stats.failure_count} failures: {exc}"
                )

    def _after_call(self, exc: Optional[BaseException]) -> None:
        if exc is None:
            self._on_success()
        elif isinstance(exc, self.expected_exceptions):
            if self.is_failure is None or self.is_failure(exc):
                self._on_failure(exc)

    def __enter__(self):
        self._before_call()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._after_call(exc_val)
        return False

    async def __aenter__(self):
        self._before_call()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._after_call(exc_val)
        return False

    def reset(self) -> None:
        with self._lock:
            self._stats = CircuitBreakerStats(name=self.name)


_circuit_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_circuit_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Get or create the single breaker registered under ``name``."""
    with _registry_lock:
        if name not in _circuit_breakers:
            _circuit_breakers[name] = CircuitBreaker(name=name, **kwargs)
        return _circuit_breakers[name]


def get_all_circuit_breaker_stats() -> Dict[str, Dict]:
    with _registry_lock:
        return {name: cb.stats.to_dict() for name, cb in _circuit_breakers.items()}


# Only transient LLM errors count toward opening
llm_circuit_breaker = get_circuit_breaker(
    "llm", failure_threshold=3, recovery_timeout=60.0, is_failure=is_retryable
)

redis_circuit_breaker = get_circuit_breaker(
    "redis", failure_threshold=5, recovery_timeout=30.0
)
