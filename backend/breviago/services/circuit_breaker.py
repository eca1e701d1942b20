"""
Breviago Backend — Circuit Breaker
===================================

What:  Fail-fast guard around a remote dependency (the OpenFGA API).
How:   Counts consecutive failures. Once `failure_threshold` is reached the
       circuit OPENs and every call is rejected with CircuitBreakerOpenError
       until `recovery_timeout` seconds have passed; then one probe call is
       let through (HALF_OPEN). A successful probe CLOSEs the circuit, a
       failed one re-OPENs it and restarts the timer.

State Machine:
    CLOSED ──(failures ≥ threshold)──► OPEN
    OPEN ──(recovery_timeout elapsed)──► HALF_OPEN
    HALF_OPEN ──(success)──► CLOSED
    HALF_OPEN ──(failure)──► OPEN

Concurrency:
    Plain counters, no locks. All callers run on one event loop inside one
    process, so state changes never interleave mid-update. Each worker process
    keeps its own breaker.
"""

import logging
import time
from typing import Callable, Optional

from breviago.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            name:              Label used in log lines ("openfga")
            failure_threshold: Consecutive failures before the circuit opens
            recovery_timeout:  Seconds the circuit stays open before a probe
            clock:             Time source; tests pass a fake one
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None

    def seconds_until_retry(self) -> int:
        if self.state != self.OPEN or self.opened_at is None:
            return 0
        remaining = self.recovery_timeout - (self._clock() - self.opened_at)
        return max(0, int(remaining + 0.999))

    def before_call(self) -> None:
        """
        Gate a call.

        Raises:
            CircuitBreakerOpenError: the circuit is OPEN and the recovery
                timeout has not elapsed yet.
        """
        if self.state != self.OPEN:
            return

        remaining = self.seconds_until_retry()
        if remaining > 0:
            raise CircuitBreakerOpenError(
                recovery_time=remaining,
                context={"dependency": self.name},
            )

        logger.info("Circuit breaker [%s] HALF_OPEN: letting one probe through", self.name)
        self.state = self.HALF_OPEN

    def record_success(self) -> None:
        if self.state != self.CLOSED:
            logger.info("Circuit breaker [%s] CLOSED: dependency recovered", self.name)
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker [%s] re-OPENED: probe failed", self.name)
            self._open()
        elif self.state == self.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker [%s] OPENED after %d consecutive failures",
                self.name,
                self.failure_count,
            )
            self._open()

    def reset(self) -> None:
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None

    def _open(self) -> None:
        self.state = self.OPEN
        self.opened_at = self._clock()
