"""
Breviago Backend — Circuit Breaker Unit Tests
==============================================

What we test:
    ✅ CLOSED → OPEN after the failure threshold
    ✅ OPEN rejects calls with the remaining recovery time
    ✅ OPEN → HALF_OPEN once the recovery timeout elapses
    ✅ HALF_OPEN probe success closes, probe failure re-opens
"""

import pytest

from breviago.exceptions import CircuitBreakerOpenError
from breviago.services.circuit_breaker import CircuitBreaker


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCircuitBreaker:
    def setup_method(self):
        self.clock = FakeClock()
        self.cb = CircuitBreaker("openfga", failure_threshold=3, recovery_timeout=30, clock=self.clock)

    def test_initial_state_is_closed(self):
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.failure_count == 0
        self.cb.before_call()

    def test_stays_closed_under_threshold(self):
        for _ in range(2):
            self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.CLOSED
        self.cb.before_call()

    def test_opens_at_threshold(self):
        for _ in range(3):
            self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN

    def test_open_circuit_rejects_calls(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(10)

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            self.cb.before_call()
        assert exc_info.value.recovery_time == 20
        assert exc_info.value.context["dependency"] == "openfga"

    def test_success_resets_failure_count(self):
        self.cb.record_failure()
        self.cb.record_failure()
        self.cb.record_success()
        assert self.cb.failure_count == 0
        assert self.cb.state == CircuitBreaker.CLOSED

    def test_half_open_after_recovery_timeout(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(30)

        self.cb.before_call()
        assert self.cb.state == CircuitBreaker.HALF_OPEN

    def test_probe_success_closes(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(31)
        self.cb.before_call()

        self.cb.record_success()
        assert self.cb.state == CircuitBreaker.CLOSED
        assert self.cb.seconds_until_retry() == 0

    def test_probe_failure_reopens(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(31)
        self.cb.before_call()

        self.cb.record_failure()
        assert self.cb.state == CircuitBreaker.OPEN
        assert self.cb.seconds_until_retry() == 30

    def test_reset(self):
        for _ in range(3):
            self.cb.record_failure()
        self.cb.reset()
        assert self.cb.state == CircuitBreaker.CLOSED
        self.cb.before_call()
