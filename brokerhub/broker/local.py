import asyncio
import inspect
import logging

from .events import AvailabilityChangedEvent, ListenerRegistry, ServiceMoniker
from .rpc import BrokerError

_LOGGER = logging.getLogger(__name__)


class LocalBroker:
    """In-process broker.

    Services are registered as factories; every ``get_proxy`` call builds a
    fresh proxy from the factory so callers own (and release) what they get.
    Registering and unregistering notify availability listeners.
    """

    def __init__(self):
        self._factories = {}
        self._listeners = ListenerRegistry(self)
        self._lock = asyncio.Lock()

    def subscribe_availability_changed(self, listener):
        self._listeners.subscribe(listener)

    def unsubscribe_availability_changed(self, listener):
        self._listeners.unsubscribe(listener)

    def is_registered(self, moniker: ServiceMoniker) -> bool:
        return moniker in self._factories

    async def register(self, moniker: ServiceMoniker, factory):
        async with self._lock:
            if moniker in self._factories:
                raise BrokerError({"code": -32600, "message": f"{moniker} already registered"})
            self._factories[moniker] = factory
        _LOGGER.info("Registered %s", moniker)
        await self._listeners.fire(AvailabilityChangedEvent(frozenset([moniker])))

    async def unregister(self, moniker: ServiceMoniker):
        async with self._lock:
            if self._factories.pop(moniker, None) is None:
                raise BrokerError({"code": 1, "message": f"{moniker} is not registered"})
        _LOGGER.info("Unregistered %s", moniker)
        await self._listeners.fire(AvailabilityChangedEvent(frozenset([moniker])))

    async def notify(self, *monikers):
        """Broadcast an availability change without touching the registry."""
        await self._listeners.fire(AvailabilityChangedEvent(frozenset(monikers)))

    async def get_proxy(self, moniker: ServiceMoniker):
        factory = self._factories.get(moniker)
        if factory is None:
            _LOGGER.debug("%s is not registered", moniker)
            return None
        proxy = factory()
        if inspect.isawaitable(proxy):
            proxy = await proxy
        return proxy
