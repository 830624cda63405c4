"""Service identity and availability notifications shared by all brokers."""
import inspect
import logging
from typing import NamedTuple

_LOGGER = logging.getLogger(__name__)


class ServiceMoniker(NamedTuple):
    """Opaque name of a brokered service."""

    name: str
    version: str | None = None

    def __str__(self):
        return f"{self.name} ({self.version})" if self.version else self.name

    def to_dict(self):
        return {"Name": self.name, "Version": self.version}

    @classmethod
    def from_dict(cls, data):
        return cls(data["Name"], data.get("Version"))


class AvailabilityChangedEvent(NamedTuple):
    impacted_services: frozenset

    def __contains__(self, moniker):
        return moniker in self.impacted_services


class ListenerRegistry:
    """Availability-changed listeners of a single broker.

    Listeners are called as ``listener(broker, event)`` and may be plain
    callables or coroutine functions. A failing listener is logged and does
    not stop delivery to the others.
    """

    def __init__(self, broker):
        self._broker = broker
        self._listeners = []

    def __len__(self):
        return len(self._listeners)

    def subscribe(self, listener):
        self._listeners.append(listener)

    def unsubscribe(self, listener):
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def fire(self, event: AvailabilityChangedEvent):
        for listener in list(self._listeners):
            try:
                if inspect.iscoroutinefunction(listener):
                    await listener(self._broker, event)
                else:
                    listener(self._broker, event)
            except Exception as ex:  # noqa: BLE001
                _LOGGER.exception(
                    "Availability listener %r failed: %s", listener, repr(ex)
                )
