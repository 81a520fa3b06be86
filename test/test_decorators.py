import pytest

from gaswatch.core.decorators import retriable_network_call


@pytest.mark.asyncio
async def test_transient_errors_are_retried():
    calls = []

    @retriable_network_call
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionResetError("reset by peer")
        return "block"

    assert await flaky() == "block"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_three_attempts():
    calls = []

    @retriable_network_call
    async def down():
        calls.append(1)
        raise ConnectionRefusedError("refused")

    with pytest.raises(ConnectionRefusedError):
        await down()
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_bad_responses_are_not_retried():
    calls = []

    @retriable_network_call
    async def garbage():
        calls.append(1)
        raise ValueError("cannot decode")

    with pytest.raises(ValueError):
        await garbage()
    assert len(calls) == 1
