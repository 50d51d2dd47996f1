"""
rate_limit.py

Exponential backoff for provider calls that hit HTTP 429.
"""
import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

class RateLimitExceeded(Exception):
    """Raised by a provider call when the remote API answered 429."""

    def __init__(self, message: str, service: str = None, retry_after: Optional[float] = None):
        super().__init__(message)
        self.service = service
        self.retry_after = retry_after

async def with_backoff(func, *args, max_retries: int = 4, service: str = None, base_delay: float = 1.0, max_delay: float = 30.0, **kwargs):
    """Execute ``func`` retrying on RateLimitExceeded with exponential backoff.

    A ``Retry-After`` hint from the server wins over the computed delay (still
    capped at ``max_delay``). Other exceptions propagate immediately.
    """
    max_retries = max(1, max_retries)
    delay = base_delay
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func(*args, **kwargs)
        except RateLimitExceeded as e:
            last_exception = e
            if attempt == max_retries - 1:
                break
            wait = min(e.retry_after if e.retry_after is not None else delay, max_delay)
            logger.warning(f"Rate limited by {service or 'remote API'} on attempt {attempt + 1}/{max_retries}, sleeping {wait}s")
            await asyncio.sleep(wait)
            delay = min(delay * 2, max_delay)

    raise last_exception or RateLimitExceeded(f"Max retries ({max_retries}) exceeded", service=service)
