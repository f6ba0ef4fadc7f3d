# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Retry + timeout combinator for step invocations.

Each attempt is bounded by the step timeout. Failures (timeouts included)
are retried up to max_retries additional times with a delay chosen by a
BackoffStrategy:

    FixedBackoff          1000ms, 1000ms, 1000ms     (default)
    ExponentialBackoff    1000ms, 2000ms, 4000ms ... capped

asyncio.CancelledError is never caught, so cancelling the run task
interrupts an in-flight attempt.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .exceptions import RetryExhaustedError, StepTimeoutError
from .models import BackoffStrategyName


class BackoffStrategy:
    """Delay before a retry attempt (attempt numbers start at 1 for the first retry)"""

    def delay_ms(self, attempt: int, backoff_ms: int) -> float:
        raise NotImplementedError


class FixedBackoff(BackoffStrategy):
    def delay_ms(self, attempt: int, backoff_ms: int) -> float:
        return backoff_ms


class ExponentialBackoff(BackoffStrategy):
    def __init__(self, multiplier: float = 2.0, max_delay_ms: int = 1_800_000):
        self.multiplier = multiplier
        self.max_delay_ms = max_delay_ms

    def delay_ms(self, attempt: int, backoff_ms: int) -> float:
        return min(backoff_ms * self.multiplier ** (attempt - 1), self.max_delay_ms)


def get_backoff_strategy(
    name: Union[BackoffStrategyName, str, None],
    max_delay_ms: int = 1_800_000
) -> BackoffStrategy:
    if name is None or BackoffStrategyName(name) == BackoffStrategyName.FIXED:
        return FixedBackoff()
    return ExponentialBackoff(max_delay_ms=max_delay_ms)


@dataclass
class RetryOutcome:
    value: Any
    attempts: int


async def call_with_retry(
    operation: Callable[[], Awaitable[Any]],
    *,
    step_slug: str,
    max_retries: int = 0,
    backoff_ms: int = 0,
    timeout_seconds: Optional[float] = None,
    strategy: Optional[BackoffStrategy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
) -> RetryOutcome:
    """
    Run operation until it succeeds or 1 + max_retries attempts have failed.

    Raises RetryExhaustedError carrying the last error once every attempt
    has failed.
    """
    strategy = strategy or FixedBackoff()
    total_attempts = max_retries + 1
    last_error: Optional[Exception] = None

    for attempt in range(1, total_attempts + 1):
        if attempt > 1:
            delay = strategy.delay_ms(attempt - 1, backoff_ms)
            if on_retry:
                on_retry(attempt, last_error, delay)
            if delay > 0:
                await sleep(delay / 1000)

        try:
            if timeout_seconds is None:
                value = await operation()
            else:
                value = await asyncio.wait_for(operation(), timeout=timeout_seconds)
            return RetryOutcome(value=value, attempts=attempt)
        except asyncio.TimeoutError:
            last_error = StepTimeoutError(step_slug, timeout_seconds)
        except Exception as e:
            last_error = e

    raise RetryExhaustedError(step_slug, total_attempts, last_error)
