"""Circuit breaker guarding the remote appointment store.

Purpose: fail fast while the store is down instead of stacking up
timed-out requests from every booking screen.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Store failing, calls fail immediately
- HALF_OPEN: Cooldown elapsed, one trial call decides; other calls
  fail fast until it finishes
"""
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open (fail fast)."""

    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after


class CircuitBreaker:
    """Thread-safe circuit breaker for store calls."""

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60,
        clock: Callable[[], float] = time.monotonic,
        name: str = "store",
        is_failure: Callable[[Exception], bool] = lambda exc: True
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening
            timeout: Seconds to stay open before a half-open trial
            clock: Monotonic seconds source (injectable for tests)
            name: Label used in log lines
            is_failure: Decides whether a raised exception counts against
                        the circuit (client errors usually should not)
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name
        self._clock = clock
        self._is_failure = is_failure
        self._lock = threading.Lock()
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._trial_in_flight = False

    @property
    def state(self) -> str:
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute func under circuit protection.

        Raises:
            CircuitBreakerOpen: If the circuit is open
            Exception: Whatever func raises (counted as a failure)
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._retry_in() > 0:
                    raise CircuitBreakerOpen(
                        f"Circuit '{self.name}' is OPEN. Retry after {self._retry_in():.1f}s",
                        retry_after=self._retry_in()
                    )
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit %s transitioning to HALF_OPEN", self.name)
            elif self._state == CircuitState.HALF_OPEN and self._trial_in_flight:
                raise CircuitBreakerOpen(
                    f"Circuit '{self.name}' is HALF_OPEN with a trial call in flight",
                    retry_after=0.0
                )
            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = True

        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            if self._is_failure(exc):
                self._on_failure()
            else:
                self._on_success()
            raise

        self._on_success()
        return result

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self.failure_count = 0
            self.last_failure_time = None
            self._trial_in_flight = False

    def _retry_in(self) -> float:
        if self.last_failure_time is None:
            return 0
        return max(0.0, self.timeout - (self._clock() - self.last_failure_time))

    def _on_success(self):
        with self._lock:
            self._trial_in_flight = False
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("Circuit %s closed after successful trial call", self.name)

    def _on_failure(self):
        with self._lock:
            self._trial_in_flight = False
            self.failure_count += 1
            self.last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("Circuit %s re-opened after failed trial call", self.name)
            elif self.failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.error(
                    "Circuit %s opened after %d failures. Timeout: %ss",
                    self.name, self.failure_count, self.timeout
                )
