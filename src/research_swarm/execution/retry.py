"""Retry logic with exponential backoff for agent invocations."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryManager:
    """
    Retry manager with exponential backoff.

    Delay before retry n (0-indexed) is base_delay * backoff_factor**n,
    capped at max_delay.
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        max_delay: float = 30.0,
        base_delay: float = 1.0,
    ):
        """
        Initialize retry manager.

        Args:
            max_retries: Maximum number of attempts
            backoff_factor: Exponential backoff multiplier
            max_delay: Maximum delay between attempts (seconds)
            base_delay: Delay before the first retry (seconds)
        """
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.base_delay = base_delay

    async def execute_with_retry(
        self,
        func: Callable[..., Awaitable[T]],
        *args,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        **kwargs,
    ) -> T:
        """
        Execute an async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments
            retry_on: Exception types that trigger a retry
            **kwargs: Keyword arguments

        Returns:
            Function result

        Raises:
            Exception: The last error once every attempt has failed
        """
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_retries):
            try:
                return await func(*args, **kwargs)

            except retry_on as e:
                last_error = e

                if attempt < self.max_retries - 1:
                    delay = self.calculate_delay(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{self.max_retries} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)

        if self.max_retries > 1:
            logger.error(f"All {self.max_retries} attempts failed: {last_error}")
        raise last_error

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate retry delay for given attempt.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        return min(self.base_delay * self.backoff_factor**attempt, self.max_delay)
