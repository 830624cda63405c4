"""Bounded polling for state that changes without telling anyone."""
import asyncio
import inspect
import logging

_LOGGER = logging.getLogger(__name__)


class PollTimeoutError(Exception):
    """The check never held within the allotted duration.

    ``last_error`` is the failure raised by the final check.
    """

    def __init__(self, last_error):
        super().__init__(
            f"Polling did not succeed within the allotted duration: {last_error}"
        )
        self.last_error = last_error


async def _resolve(value):
    if inspect.isawaitable(value):
        return await value
    return value


async def wait_until(produce_value, duration, interval, check, *, sleep_func=asyncio.sleep):
    """Poll ``produce_value`` until ``check`` accepts the value.

    ``check`` passes by returning and fails by raising (usually
    AssertionError). Both callables may be coroutine functions. The value is
    re-read every ``interval`` seconds for at most ``duration`` seconds; a
    duration of zero or less gives exactly one try.

    Raises PollTimeoutError carrying the last check failure.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    remaining = duration
    cycle = 0
    while True:
        cycle += 1
        value = await _resolve(produce_value())
        try:
            await _resolve(check(value))
            _LOGGER.debug("Check passed after %d cycle(s)", cycle)
            return
        except Exception as ex:  # noqa: BLE001
            last_error = ex

        # rounded so that 0.5 / 0.1 gives five cycles, not six
        remaining = round(remaining - interval, 9)
        if remaining <= 0:
            break
        _LOGGER.debug("Check failed (cycle %d): %s; retrying in %s", cycle, repr(last_error), interval)
        await sleep_func(interval)

    raise PollTimeoutError(last_error) from last_error


async def wait_for_condition(predicate, *, timeout=0.5, interval=0.002, fail_msg="condition not met"):
    """Poll a boolean ``predicate`` until True or ``timeout`` seconds pass."""

    def check(result):
        if not result:
            raise AssertionError(fail_msg)

    await wait_until(predicate, timeout, interval, check)
