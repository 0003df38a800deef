"""Unit tests for conductor.core.cancellation module."""

import asyncio

import pytest

from conductor.core.cancellation import CancellationToken
from conductor.errors import OperationCancelled


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initially_not_cancelled(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel_sets_reason_once(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled
        assert token.reason == "first"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled, match="Aborted by user"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_race_returns_result(self):
        token = CancellationToken()

        async def work():
            return 42

        assert await token.race(work()) == 42

    @pytest.mark.asyncio
    async def test_race_propagates_errors(self):
        token = CancellationToken()

        async def work():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await token.race(work())

    @pytest.mark.asyncio
    async def test_race_interrupted_by_cancel(self):
        token = CancellationToken()
        started = asyncio.Event()
        finished = False

        async def slow():
            nonlocal finished
            started.set()
            await asyncio.sleep(10)
            finished = True

        async def cancel_soon():
            await started.wait()
            token.cancel()

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(OperationCancelled):
            await token.race(slow())
        await canceller
        assert finished is False

    @pytest.mark.asyncio
    async def test_race_on_cancelled_token_raises_immediately(self):
        token = CancellationToken()
        token.cancel()

        async def work():
            return 1

        coro = work()
        with pytest.raises(OperationCancelled):
            await token.race(coro)
        coro.close()

    @pytest.mark.asyncio
    async def test_sleep_wakes_early(self):
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, token.cancel)
        start = loop.time()
        with pytest.raises(OperationCancelled):
            await token.sleep(5)
        assert loop.time() - start < 1
