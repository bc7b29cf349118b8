from __future__ import annotations

import asyncio
import random


def compute_backoff(
    attempt: int, base: float = 1.5, jitter: float = 0.5, max_delay: float = 30.0
) -> float:
    """Compute exponential backoff with jitter, capped at ``max_delay``."""
    delay = min(base ** attempt, max_delay)
    return delay + random.uniform(0, jitter)


async def wait_before_retry(attempt: int, base: float) -> None:
    """Sleep for the backoff delay of ``attempt`` before re-invoking a step."""
    delay = compute_backoff(attempt, base=base)
    await asyncio.sleep(delay)
