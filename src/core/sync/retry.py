"""
Retry policy for per-record remote operations.

Only failures classified as retryable are attempted again; the last error is
re-raised once the retry budget is exhausted.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from core.observation.logger import get_logger

logger = get_logger(__name__)

R = TypeVar('R')


class RetryConfig:
    """Retry configuration"""

    def __init__(
        self,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        exponential_backoff: bool = True,
        max_delay: float = 10.0,
        jitter: bool = True,
        backoff_multiplier: float = 2.0,
    ):
        """
        Initialize retry configuration

        Args:
            max_retries: Maximum number of retries (0 disables retrying)
            retry_delay: Initial retry delay time (seconds)
            exponential_backoff: Whether to use exponential backoff
            max_delay: Maximum delay time (seconds)
            jitter: Whether to add random jitter
            backoff_multiplier: Exponential backoff multiplier
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.exponential_backoff = exponential_backoff
        self.max_delay = max_delay
        self.jitter = jitter
        self.backoff_multiplier = backoff_multiplier

    @classmethod
    def disabled(cls) -> 'RetryConfig':
        return cls(max_retries=0)

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_retries={self.max_retries}, retry_delay={self.retry_delay}, "
            f"exponential_backoff={self.exponential_backoff}, max_delay={self.max_delay})"
        )


def calculate_retry_delay(attempt: int, retry_config: RetryConfig) -> float:
    """
    Calculate retry delay with support for exponential backoff and jitter

    Args:
        attempt: Current retry count (starting from 0)
        retry_config: Retry configuration

    Returns:
        float: Delay time in seconds
    """
    if retry_config.exponential_backoff:
        delay = retry_config.retry_delay * (retry_config.backoff_multiplier**attempt)
    else:
        delay = retry_config.retry_delay

    delay = min(delay, retry_config.max_delay)

    if retry_config.jitter:
        # Random between 50% to 150%
        delay = delay * (0.5 + random.random())

    return delay


async def call_with_retry(
    operation: Callable[[], Awaitable[R]],
    retry_config: RetryConfig,
    is_retryable: Callable[[Exception], bool],
    description: str = "operation",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> R:
    """
    Run `operation` until it succeeds, fails with a non-retryable error, or
    the retry budget is exhausted

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        retry_config: Retry configuration
        is_retryable: Classifier for raised exceptions
        description: Label used in log messages
        sleep: Sleep function, asyncio.sleep by default

    Returns:
        The operation result
    """
    sleep = sleep or asyncio.sleep
    total_attempts = retry_config.max_retries + 1

    for attempt in range(total_attempts):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise

            if attempt >= retry_config.max_retries:
                logger.error(
                    "%s failed after %d attempts: %s", description, total_attempts, e
                )
                raise

            delay = calculate_retry_delay(attempt, retry_config)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                description,
                attempt + 1,
                total_attempts,
                delay,
                e,
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RuntimeError(f"{description} exhausted retries without result")
