# apps/campaigns/circuit_breaker.py
import time
from enum import Enum
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Failure counter shared through the cache, so every worker skips a dead
    dependency once enough failures pile up.
    """

    def __init__(self, name, failure_threshold=5, recovery_timeout=60, clock=time.time):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock

    @property
    def cache_key(self):
        return f"circuit_breaker:{self.name}"

    def _closed_state(self):
        return {
            'state': CircuitState.CLOSED.value,
            'failure_count': 0,
            'last_failure_time': None,
        }

    def _get_state(self):
        return cache.get(self.cache_key) or self._closed_state()

    def _set_state(self, state_data):
        # Outlive the recovery window so an open circuit is not forgotten early
        cache.set(self.cache_key, state_data, max(300, self.recovery_timeout * 2))

    def _should_attempt_reset(self, state_data):
        if state_data['state'] != CircuitState.OPEN.value:
            return False
        return self.clock() - state_data['last_failure_time'] >= self.recovery_timeout

    def allow_request(self) -> bool:
        state_data = self._get_state()
        if state_data['state'] != CircuitState.OPEN.value:
            return True
        if not self._should_attempt_reset(state_data):
            logger.warning(f"Circuit breaker OPEN for {self.name}")
            return False

        state_data['state'] = CircuitState.HALF_OPEN.value
        self._set_state(state_data)
        return True

    def record_success(self):
        state_data = self._get_state()
        if state_data['state'] != CircuitState.CLOSED.value or state_data['failure_count']:
            self._set_state(self._closed_state())
            if state_data['state'] != CircuitState.CLOSED.value:
                logger.info(f"Circuit breaker CLOSED for {self.name}")

    def record_failure(self, error=None):
        state_data = self._get_state()
        state_data['failure_count'] += 1
        state_data['last_failure_time'] = self.clock()
        logger.error(f"Circuit breaker failure in {self.name}: {error}")

        # A failed probe while half-open re-opens immediately
        if (state_data['failure_count'] >= self.failure_threshold
                or state_data['state'] == CircuitState.HALF_OPEN.value):
            if state_data['state'] != CircuitState.OPEN.value:
                logger.error(f"Circuit breaker OPENED for {self.name}")
            state_data['state'] = CircuitState.OPEN.value

        self._set_state(state_data)

    def reset(self):
        cache.delete(self.cache_key)

    def status(self) -> dict:
        state_data = self._get_state()
        return {
            'name': self.name,
            'state': state_data['state'],
            'failure_count': state_data['failure_count'],
            'last_failure_time': state_data['last_failure_time'],
        }
