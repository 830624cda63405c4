"""Brokers resolve service monikers to proxies and announce availability changes.

Any object with the following surface can be handed to the invoker:

- ``await get_proxy(moniker)`` returning a proxy or None when the service is
  not currently registered
- ``subscribe_availability_changed(listener)`` and
  ``unsubscribe_availability_changed(listener)``, listeners being called as
  ``listener(broker, AvailabilityChangedEvent)``
"""
from .events import AvailabilityChangedEvent, ServiceMoniker
from .local import LocalBroker
from .rpc import BrokerError, RemoteBroker, ServiceProxy

__all__ = [
    "AvailabilityChangedEvent",
    "BrokerError",
    "LocalBroker",
    "RemoteBroker",
    "ServiceMoniker",
    "ServiceProxy",
]
