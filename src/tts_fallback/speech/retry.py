"""
Bounded Retry Policy.

A small, reusable policy for "try up to N times, wait a fixed delay
between attempts, stop at the first acceptable result". The voice
catalog uses it to wait for platforms that report their voices late.

The sleep function is injectable so tests can record the delays instead
of waiting on the clock.

Example:
    policy = RetryPolicy(max_attempts=3, delay_s=1.0)
    result = await policy.run(catalog.load, accept=bool)
    if not result.succeeded:
        ...  # degraded mode
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class RetryResult(Generic[T]):
    """
    Outcome of a retried operation.

    Attributes:
        value: Result of the last attempt (None if no attempt ran).
        attempts: Number of attempts actually made.
        succeeded: Whether the last value was accepted.
    """
    value: Optional[T]
    attempts: int
    succeeded: bool


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-delay bounded retry.

    Attributes:
        max_attempts: Upper bound on attempts (>= 1).
        delay_s: Fixed delay between two consecutive attempts.
        sleep: Awaitable sleep used for the delay.
    """
    max_attempts: int
    delay_s: float = 1.0
    sleep: SleepFn = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be non-negative, got {self.delay_s}")

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        accept: Callable[[T], bool],
        on_reject: Optional[Callable[[int, T], None]] = None,
    ) -> RetryResult[T]:
        """
        Run operation until accept(value) holds or attempts run out.

        Args:
            operation: Zero-argument coroutine function to call.
            accept: Predicate deciding whether a value ends the loop.
            on_reject: Optional hook called with (attempt, value) after
                each rejected attempt, before the delay.

        Returns:
            RetryResult with the last value and the attempt count.
        """
        value: Optional[T] = None
        for attempt in range(1, self.max_attempts + 1):
            value = await operation()
            if accept(value):
                return RetryResult(value=value, attempts=attempt, succeeded=True)
            if on_reject is not None:
                on_reject(attempt, value)
            if attempt < self.max_attempts:
                await self.sleep(self.delay_s)
        return RetryResult(value=value, attempts=self.max_attempts, succeeded=False)
