import asyncio
import itertools
import pytest


@pytest.fixture
def eventually():
    """Polls a predicate until it holds; watcher listeners run as background tasks."""
    async def wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.01)
    return wait


@pytest.fixture
def clock():
    """Monotonic fake wall clock, one second per reading."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(ticks)
