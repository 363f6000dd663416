# apps/analytics/performance.py
from functools import wraps
import time
import logging
from django.conf import settings

logger = logging.getLogger(__name__)


def monitor_query_performance(func):
    """Log a warning when the wrapped repository call exceeds SLOW_QUERY_THRESHOLD seconds."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.monotonic()
        try:
            return func(*args, **kwargs)
        finally:
            execution_time = time.monotonic() - start_time
            threshold = getattr(settings, 'SLOW_QUERY_THRESHOLD', 1.0)
            if execution_time > threshold:
                logger.warning(
                    f"Slow query: {func.__qualname__} took {execution_time:.2f}s",
                    extra={'operation': func.__qualname__, 'duration': execution_time},
                )
    return wrapper
