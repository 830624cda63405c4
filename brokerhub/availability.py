import asyncio
import logging
from enum import Enum, auto

_LOGGER = logging.getLogger(__name__)


class SignalState(Enum):
    PENDING = auto()
    SIGNALED = auto()  # terminal


class AvailabilitySignal:
    """One-shot completion cell.

    ``set`` moves the cell from PENDING to SIGNALED exactly once; later calls
    are no-ops. ``wait`` suspends until the cell is signaled and returns
    immediately for every waiter once it is.
    """

    def __init__(self, name=None):
        self._name = name
        self._state = SignalState.PENDING
        self._event = asyncio.Event()

    @property
    def state(self) -> SignalState:
        return self._state

    def is_set(self) -> bool:
        return self._state == SignalState.SIGNALED

    def set(self) -> bool:
        """Signal the cell. Returns False if it was already signaled."""
        if self._state == SignalState.SIGNALED:
            return False
        self._state = SignalState.SIGNALED
        self._event.set()
        _LOGGER.debug("Signal %s: PENDING -> SIGNALED", self._name)
        return True

    async def wait(self, timeout=None):
        if self._state == SignalState.SIGNALED:
            return
        await asyncio.wait_for(self._event.wait(), timeout)

    def __repr__(self):
        return f"<AvailabilitySignal {self._name} {self._state.name}>"
