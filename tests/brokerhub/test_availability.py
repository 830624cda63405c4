import asyncio

import pytest

from brokerhub.availability import AvailabilitySignal, SignalState

pytestmark = pytest.mark.asyncio


async def test_starts_pending():
    signal = AvailabilitySignal("svc")
    assert signal.state == SignalState.PENDING
    assert not signal.is_set()


async def test_set_is_one_shot():
    signal = AvailabilitySignal("svc")
    assert signal.set() is True
    assert signal.set() is False
    assert signal.set() is False
    assert signal.state == SignalState.SIGNALED


async def test_wait_suspends_until_set():
    signal = AvailabilitySignal("svc")
    waiter = asyncio.create_task(signal.wait())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    signal.set()
    await asyncio.wait_for(waiter, timeout=1)


async def test_all_waiters_released():
    signal = AvailabilitySignal("svc")
    waiters = [asyncio.create_task(signal.wait()) for _ in range(3)]
    await asyncio.sleep(0)
    signal.set()
    await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)


async def test_wait_after_set_returns_immediately():
    signal = AvailabilitySignal("svc")
    signal.set()
    await asyncio.wait_for(signal.wait(), timeout=0.01)
    await asyncio.wait_for(signal.wait(), timeout=0.01)


async def test_wait_timeout():
    signal = AvailabilitySignal("svc")
    with pytest.raises(asyncio.TimeoutError):
        await signal.wait(timeout=0.01)
    assert signal.state == SignalState.PENDING


async def test_repr_shows_state():
    signal = AvailabilitySignal("svc")
    assert "PENDING" in repr(signal)
    signal.set()
    assert "SIGNALED" in repr(signal)
