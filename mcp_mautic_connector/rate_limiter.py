"""
Rate Limiter Module for MCP Mautic Connector

This module contains the RateLimiter class responsible for throttling
requests sent to a Mautic instance and retrying the ones it rejects
with HTTP 429.
"""

import asyncio
import time
from typing import Optional
import logging


class RateLimiter:
    """Rate limiter for Mautic API calls"""

    def __init__(
        self,
        calls_per_second: int = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        enabled: bool = True,
    ):
        """
        Initialize the rate limiter

        Args:
            calls_per_second: Maximum number of API calls per second
            max_retries: Maximum number of retry attempts on HTTP 429
            retry_delay: Base delay between retries in seconds
            enabled: When False, wait_if_needed never sleeps
        """
        self.calls_per_second = max(1, calls_per_second)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.enabled = enabled
        self.last_call_time: Optional[float] = None
        self.call_count = 0
        self.window_start = time.time()
        self.logger = logging.getLogger(__name__)

    async def wait_if_needed(self) -> None:
        """Wait if necessary to respect rate limits"""
        current_time = time.time()

        if current_time - self.window_start >= 1.0:
            self.call_count = 0
            self.window_start = current_time

        if self.enabled and self.call_count >= self.calls_per_second:
            wait_time = 1.0 - (current_time - self.window_start)
            if wait_time > 0:
                self.logger.debug(f"Rate limit reached, waiting {wait_time:.2f} seconds")
                await asyncio.sleep(wait_time)
            self.call_count = 0
            self.window_start = time.time()

        self.call_count += 1
        self.last_call_time = time.time()

    async def execute_with_retry(self, operation, *args, **kwargs):
        """Execute an operation, retrying with exponential backoff while Mautic answers 429"""

        for attempt in range(self.max_retries + 1):
            try:
                await self.wait_if_needed()
                return await operation(*args, **kwargs)

            except Exception as e:
                if self._is_rate_limit_error(e) and attempt < self.max_retries:
                    retry_delay = self.retry_delay * (2**attempt)
                    self.logger.warning(
                        f"Mautic rate limit hit, retrying in {retry_delay} seconds (attempt {attempt + 1})"
                    )
                    await asyncio.sleep(retry_delay)
                    continue
                raise

    def _is_rate_limit_error(self, error: Exception) -> bool:
        """Only HTTP 429 responses count as rate limit errors"""
        return getattr(error, "status_code", None) == 429

    def reset(self) -> None:
        """Reset the rate limiter state"""

        self.call_count = 0
        self.window_start = time.time()
        self.last_call_time = None
        self.logger.debug("Rate limiter reset")

    def get_stats(self) -> dict:
        """Get current rate limiter statistics"""

        return {
            "enabled": self.enabled,
            "calls_per_second_limit": self.calls_per_second,
            "current_calls_in_window": self.call_count,
            "window_duration": time.time() - self.window_start,
            "last_call_time": self.last_call_time,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
        }
