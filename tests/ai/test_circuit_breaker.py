"""
Tests for finguard.ai.circuit_breaker.CircuitBreaker.

Covers:
1. CLOSED -> OPEN after threshold failures inside the window
2. Failures outside the trailing window do not count
3. OPEN -> HALF_OPEN after retry_after_ms; single trial call admitted
4. HALF_OPEN -> CLOSED on success, HALF_OPEN -> OPEN with doubled cool-down on failure
5. Excluded errors are not counted
6. is_open <=> state == OPEN; manual reset
"""

from finguard.ai.circuit_breaker import CircuitBreaker, CircuitState
from finguard.ai.errors import AIServiceError, CircuitOpenError, RateLimitError, ValidationError


def _breaker(clock, **kwargs):
    params = {"failure_threshold": 3, "retry_after_ms": 10000, "window_ms": 60000, "clock": clock}
    params.update(kwargs)
    return CircuitBreaker(**params)


def _fail(breaker, times=1):
    for _ in range(times):
        breaker.record_failure(AIServiceError("boom"))


class TestClosedState:
    def test_initial_state_is_closed(self, clock):
        breaker = _breaker(clock)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.is_open() is False
        assert breaker.allow_request() is True

    def test_opens_at_threshold(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 2)
        assert breaker.is_open() is False

        _fail(breaker)

        status = breaker.get_status()
        assert status.is_open is True
        assert status.state == CircuitState.OPEN
        assert status.failures == 3
        assert breaker.allow_request() is False

    def test_failures_outside_window_are_forgotten(self, clock):
        breaker = _breaker(clock, window_ms=1000)
        _fail(breaker, 2)
        clock.advance(2)
        _fail(breaker)

        assert breaker.is_open() is False
        assert breaker.get_status().failures == 1

    def test_success_clears_failure_count(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 2)
        breaker.record_success()
        _fail(breaker, 2)

        assert breaker.is_open() is False

    def test_excluded_errors_do_not_count(self, clock):
        breaker = _breaker(clock, failure_threshold=1)

        assert breaker.record_failure(ValidationError("bad")) is False
        assert breaker.record_failure(RateLimitError("slow down")) is False
        assert breaker.record_failure(CircuitOpenError(100)) is False
        assert breaker.is_open() is False


class TestRecovery:
    def test_half_open_after_cool_down(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        assert breaker.time_until_retry_ms() == 10000

        clock.advance_ms(4000)
        assert breaker.time_until_retry_ms() == 6000
        assert breaker.state == CircuitState.OPEN

        clock.advance_ms(6000)
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.is_open() is False
        assert breaker.time_until_retry_ms() is None

    def test_half_open_admits_single_trial(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        clock.advance(10)

        assert breaker.allow_request() is True
        assert breaker.allow_request() is False

    def test_trial_success_closes(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        clock.advance(10)
        breaker.allow_request()

        assert breaker.record_success() is True

        status = breaker.get_status()
        assert status.state == CircuitState.CLOSED
        assert status.failures == 0
        assert status.retry_after_ms == 10000

    def test_trial_failure_reopens_with_backoff(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        clock.advance(10)
        breaker.allow_request()

        _fail(breaker)

        status = breaker.get_status()
        assert status.state == CircuitState.OPEN
        assert status.retry_after_ms == 20000

    def test_backoff_is_capped(self, clock):
        breaker = _breaker(clock, max_backoff_multiplier=4)
        _fail(breaker, 3)
        for _ in range(5):
            clock.advance_ms(breaker.get_status().retry_after_ms)
            assert breaker.allow_request() is True
            _fail(breaker)

        assert breaker.get_status().retry_after_ms == 40000

    def test_excluded_trial_error_releases_slot(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        clock.advance(10)
        breaker.allow_request()

        breaker.record_failure(ValidationError("bad payload"))

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request() is True


    def test_released_slot_admits_next_call(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)
        clock.advance(10)
        assert breaker.allow_request() is True

        breaker.release_slot()

        status = breaker.get_status()
        assert status.state == CircuitState.HALF_OPEN
        assert status.failures == 3
        assert breaker.allow_request() is True
        assert breaker.allow_request() is False

    def test_release_in_closed_state_is_harmless(self, clock):
        breaker = _breaker(clock)
        breaker.release_slot()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request() is True

class TestResetAndStatus:
    def test_reset_forces_closed(self, clock):
        breaker = _breaker(clock)
        _fail(breaker, 3)

        breaker.reset()

        status = breaker.get_status()
        assert status.is_open is False
        assert status.state == CircuitState.CLOSED
        assert status.failures == 0
        assert status.opened_at is None

    def test_is_open_matches_state(self, clock):
        breaker = _breaker(clock)
        for step in range(4):
            status = breaker.get_status()
            assert status.is_open == (status.state == CircuitState.OPEN)
            _fail(breaker)
            clock.advance(step)

    def test_to_dict_keys(self, clock):
        data = _breaker(clock).get_status().to_dict()

        assert data["state"] == "closed"
        assert {"isOpen", "failures", "timeUntilRetry", "retryAfterMs"} <= set(data)
