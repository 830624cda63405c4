"""Call a brokered service that may not be registered yet.

The invoker makes one immediate attempt. If the service is missing or the
call fails it waits, without polling, until the broker announces that the
service's availability changed, then tries exactly once more. A failure on
that second attempt is a broken invariant and raises FatalInconsistencyError.
"""
import asyncio
import contextlib
import logging
from enum import Enum, auto

from .availability import AvailabilitySignal
from .broker.events import ServiceMoniker

_LOGGER = logging.getLogger(__name__)


class AttemptOutcome(Enum):
    SUCCEEDED = auto()
    UNAVAILABLE = auto()  # broker had no proxy for the service
    CALL_FAILED = auto()  # proxy obtained, the call raised


class FatalInconsistencyError(AssertionError):
    """The service was announced as available but still could not be called.

    This is a programming-invariant violation, not a transient condition:
    callers must not catch it to retry.
    """

    def __init__(self, moniker, outcome, attempts=2):
        super().__init__(
            f"Was not able to get a response from {moniker} after it became available "
            f"({outcome.name.lower()})"
        )
        self.moniker = moniker
        self.outcome = outcome
        self.attempts = attempts


class HandshakeCancelledError(Exception):
    """The caller's cancellation token fired while waiting for the service."""

    def __init__(self, moniker):
        super().__init__(f"Cancelled while waiting for {moniker} to become available")
        self.moniker = moniker


@contextlib.asynccontextmanager
async def _released(proxy):
    """Release ``proxy`` on exit, whether it supports aclose() or close()."""
    try:
        yield proxy
    finally:
        try:
            aclose = getattr(proxy, "aclose", None)
            if aclose is not None:
                await aclose()
            elif hasattr(proxy, "close"):
                proxy.close()
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("Unable to release proxy %r: %s", proxy, repr(ex))


class AvailabilityGatedInvoker:
    """Invoke ``invoke(proxy)`` on the service named by ``moniker``.

    The availability listener stays subscribed for the lifetime of the
    invoker; call ``close`` to detach it from the broker.
    """

    def __init__(self, broker, moniker: ServiceMoniker, invoke):
        self._broker = broker
        self.moniker = moniker
        self._invoke = invoke
        self.signal = AvailabilitySignal(str(moniker))
        self.attempts = 0
        self._closed = False

        self._broker.subscribe_availability_changed(self._on_availability_changed)

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._broker.unsubscribe_availability_changed(self._on_availability_changed)

    def _on_availability_changed(self, broker, event):
        if self.moniker not in event.impacted_services:
            return
        if self.signal.set():
            _LOGGER.info("%s became available", self.moniker)

    async def perform_handshake(self, cancellation: asyncio.Event | None = None):
        """Call the service, waiting for it to show up if the first attempt fails.

        Raises HandshakeCancelledError if ``cancellation`` is set while
        waiting and FatalInconsistencyError if the retry fails too.
        """
        if await self._try_invoke(1) is AttemptOutcome.SUCCEEDED:
            return

        await self._wait_until_available(cancellation)
        if cancellation is not None and cancellation.is_set():
            raise HandshakeCancelledError(self.moniker)

        outcome = await self._try_invoke(2)
        if outcome is not AttemptOutcome.SUCCEEDED:
            raise FatalInconsistencyError(self.moniker, outcome, attempts=2)

    async def _wait_until_available(self, cancellation):
        if self.signal.is_set():
            return
        _LOGGER.info("Waiting for %s to become available", self.moniker)
        if cancellation is None:
            await self.signal.wait()
            return
        if cancellation.is_set():
            raise HandshakeCancelledError(self.moniker)

        available = asyncio.create_task(self.signal.wait())
        cancelled = asyncio.create_task(cancellation.wait())
        try:
            done, _pending = await asyncio.wait(
                {available, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (available, cancelled):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if cancelled in done:
            _LOGGER.info("Stopped waiting for %s: cancelled", self.moniker)
            raise HandshakeCancelledError(self.moniker)

    async def _try_invoke(self, attempt: int) -> AttemptOutcome:
        # concurrent handshakes each count their own attempts; this only
        # records the most recent one
        self.attempts = attempt
        proxy = await self._broker.get_proxy(self.moniker)
        if proxy is None:
            _LOGGER.info("%s is not available (attempt %d)", self.moniker, attempt)
            return AttemptOutcome.UNAVAILABLE

        async with _released(proxy):
            try:
                response = await self._invoke(proxy)
            except Exception as ex:  # noqa: BLE001
                _LOGGER.error(
                    "Got exception when invoking %s (attempt %d): %s",
                    self.moniker,
                    attempt,
                    repr(ex),
                )
                return AttemptOutcome.CALL_FAILED

        _LOGGER.info("Callback from remote %s: %s", self.moniker, response)
        return AttemptOutcome.SUCCEEDED
