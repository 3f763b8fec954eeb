"""
Utility functions for logship.

Includes time helpers, name-provider resolution and retry delay calculation.
"""

import random
import time
from typing import Callable, Union

NameOrProvider = Union[str, Callable[[], str]]


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def resolve_name(name: NameOrProvider) -> str:
    """Return `name`, calling it first when it is a zero-argument provider."""
    value = name() if callable(name) else name
    if not isinstance(value, str):
        raise TypeError(f"name provider returned {type(value).__name__}, expected str")
    return value


def calculate_retry_delay(
    attempt: int, base_delay_ms: int = 1000, max_delay_ms: int = 30000, jitter: bool = True
) -> float:
    """
    Calculate retry delay with exponential backoff and optional jitter.

    Args:
        attempt: Current attempt number (0-based)
        base_delay_ms: Base delay in milliseconds; 0 disables the delay
        max_delay_ms: Maximum delay in milliseconds
        jitter: Add random jitter to prevent thundering herd

    Returns:
        Delay in seconds
    """
    if base_delay_ms <= 0:
        return 0.0

    delay_ms = min(base_delay_ms * (2**attempt), max_delay_ms)

    if jitter:
        # ±25%
        jitter_range = delay_ms * 0.25
        delay_ms += random.uniform(-jitter_range, jitter_range)

    return max(0, delay_ms / 1000.0)
