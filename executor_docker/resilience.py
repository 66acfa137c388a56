"""
Circuit breaker for container runtime calls.

One breaker guards every call an executor makes against the runtime, across
all builds. It keeps request statistics, enforces a per-call timeout, and
stops calling the runtime after repeated consecutive failures:

- CLOSED: normal operation, calls pass through
- OPEN: the runtime is failing, calls are rejected with CircuitOpenError
- HALF_OPEN: the recovery timeout elapsed, trial calls decide the next state

The clock is injectable so state transitions can be driven in tests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from .errors import CircuitOpenError, RuntimeTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass(frozen=True, slots=True)
class BreakerSnapshot:
    """Point-in-time copy of the breaker's state and counters."""

    state: CircuitState
    consecutive_failures: int
    last_failure_time: float | None
    total: int
    success: int
    failure: int
    timeouts: int
    concurrent: int
    average_time_ms: float

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def to_dict(self) -> dict[str, Any]:
        """Render in the stats shape the calling orchestrator reads."""
        return {
            "requests": {
                "total": self.total,
                "timeouts": self.timeouts,
                "success": self.success,
                "failure": self.failure,
                "concurrent": self.concurrent,
                "averageTime": self.average_time_ms,
            },
            "breaker": {
                "isClosed": self.is_closed,
            },
        }


@dataclass
class CircuitBreaker:
    """
    Circuit breaker with request statistics and call timeouts.

    Example:
        breaker = CircuitBreaker(name="docker", failure_threshold=10)
        containers = await breaker.call(
            lambda: runtime.list_containers(label),
            operation_name="list_containers",
        )
    """

    name: str = "circuit"
    failure_threshold: int = 10  # Consecutive failures before opening
    recovery_timeout: float = 30.0  # Seconds before half-open
    call_timeout: float | None = 300.0  # Seconds per call, None disables
    half_open_max_calls: int = 1  # Trial calls in half-open
    clock: Callable[[], float] = time.monotonic

    # Internal state (mutable)
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _half_open_successes: int = field(default=0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _last_failure_time: float | None = field(default=None, init=False)
    _opened_at: float | None = field(default=None, init=False)
    # Bumped on every move to OPEN or HALF_OPEN and on reset(); only calls
    # admitted in the current generation may change the state.
    _generation: int = field(default=0, init=False)

    # Request statistics
    _total: int = field(default=0, init=False)
    _success: int = field(default=0, init=False)
    _failure: int = field(default=0, init=False)
    _timeouts: int = field(default=0, init=False)
    _concurrent: int = field(default=0, init=False)
    _average_time_ms: float = field(default=0.0, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state (may transition to half-open)."""
        if self._state == CircuitState.OPEN and self._should_attempt_reset():
            self._transition_to_half_open()
        return self._state

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt recovery."""
        if self._opened_at is None:
            return False
        return self.clock() - self._opened_at >= self.recovery_timeout

    def _reset_after(self) -> float:
        if self._opened_at is None:
            return self.recovery_timeout
        return max(0.0, self.recovery_timeout - (self.clock() - self._opened_at))

    def _transition_to_half_open(self) -> None:
        logger.info(f"Circuit '{self.name}': OPEN -> HALF_OPEN")
        self._state = CircuitState.HALF_OPEN
        self._generation += 1
        self._half_open_calls = 0
        self._half_open_successes = 0

    def _transition_to_open(self) -> None:
        logger.warning(
            f"Circuit '{self.name}': {self._state.value} -> OPEN "
            f"(failures={self._failure_count})"
        )
        self._state = CircuitState.OPEN
        self._generation += 1
        self._opened_at = self.clock()

    def _transition_to_closed(self) -> None:
        logger.info(f"Circuit '{self.name}': HALF_OPEN -> CLOSED")
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_calls = 0
        self._half_open_successes = 0
        self._opened_at = None

    def _is_stale(self, generation: int | None) -> bool:
        return generation is not None and generation != self._generation

    def record_success(self, elapsed_ms: float, *, generation: int | None = None) -> None:
        """
        Record a successful call and fold its latency into the average.

        A call admitted before the last move to OPEN or HALF_OPEN only
        counts towards the statistics.
        """
        self._success += 1
        self._average_time_ms += (elapsed_ms - self._average_time_ms) / self._success

        if self._is_stale(generation):
            return

        if self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.half_open_max_calls:
                self._transition_to_closed()
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self, *, timed_out: bool = False, generation: int | None = None) -> None:
        """Record a failed call."""
        self._failure += 1
        if timed_out:
            self._timeouts += 1

        if self._is_stale(generation):
            return

        self._failure_count += 1
        self._last_failure_time = self.clock()

        if self._state == CircuitState.HALF_OPEN:
            # Any failure in half-open reopens circuit
            self._transition_to_open()
        elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
            self._transition_to_open()

    def _admit(self) -> int:
        """Reject the call if the circuit does not allow it, else return its generation."""
        state = self.state  # May transition to half-open

        if state == CircuitState.OPEN:
            raise CircuitOpenError(self.name, self._reset_after())

        if state == CircuitState.HALF_OPEN:
            self._half_open_calls += 1
            if self._half_open_calls > self.half_open_max_calls:
                raise CircuitOpenError(self.name, self._reset_after())

        return self._generation

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str = "operation",
    ) -> T:
        """
        Execute operation through the circuit breaker.

        Raises:
            CircuitOpenError: If the circuit is open (operation not invoked)
            RuntimeTimeoutError: If the operation exceeds call_timeout
            Exception: Any exception from the operation, unchanged
        """
        self._total += 1
        try:
            generation = self._admit()
        except CircuitOpenError:
            self._failure += 1
            logger.debug(f"Circuit '{self.name}': rejected {operation_name}")
            raise

        self._concurrent += 1
        started = self.clock()
        deadline = asyncio.timeout(self.call_timeout)
        try:
            async with deadline:
                result = await operation()
        except TimeoutError as e:
            if not deadline.expired():
                # Raised by the operation itself
                self.record_failure(generation=generation)
                raise
            self.record_failure(timed_out=True, generation=generation)
            raise RuntimeTimeoutError(operation_name, self.call_timeout) from e
        except Exception:
            self.record_failure(generation=generation)
            raise
        else:
            self.record_success((self.clock() - started) * 1000.0, generation=generation)
            return result
        finally:
            self._concurrent -= 1

    def reset(self) -> None:
        """Reset circuit state; statistics are kept."""
        self._generation += 1
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_calls = 0
        self._half_open_successes = 0
        self._last_failure_time = None
        self._opened_at = None

    def snapshot(self) -> BreakerSnapshot:
        return BreakerSnapshot(
            state=self.state,
            consecutive_failures=self._failure_count,
            last_failure_time=self._last_failure_time,
            total=self._total,
            success=self._success,
            failure=self._failure,
            timeouts=self._timeouts,
            concurrent=self._concurrent,
            average_time_ms=self._average_time_ms,
        )

    def stats(self) -> dict[str, Any]:
        """Get request statistics and breaker state."""
        return self.snapshot().to_dict()


__all__ = [
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitState",
]
