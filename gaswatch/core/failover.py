# /gaswatch/core/failover.py
# Pure helpers for endpoint rotation and reconnect backoff.
from typing import List


def next_endpoint_index(count: int, index: int) -> int:
    """Cursor position after a failed attempt on `index` in a cyclic list of `count`."""
    if count <= 0:
        raise ValueError("endpoint list is empty")
    return (index + 1) % count


def endpoint_order(count: int, start: int) -> List[int]:
    """Indices visited by one connect() pass: each endpoint once, starting at the cursor."""
    if count <= 0:
        return []
    order = []
    index = start % count
    for _ in range(count):
        order.append(index)
        index = next_endpoint_index(count, index)
    return order


def backoff_delay_ms(base_delay_ms: int, attempt: int) -> int:
    """Linear backoff: the n-th reconnect waits n * base."""
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")
    return base_delay_ms * attempt


def backoff_schedule(base_delay_ms: int, max_attempts: int) -> List[int]:
    return [backoff_delay_ms(base_delay_ms, n) for n in range(1, max_attempts + 1)]
