"""Configuration schema for brokerhub."""
import logging

import voluptuous as vol

from .broker.events import ServiceMoniker
from .broker.rpc import PORT, RemoteBroker
from .const import *

_LOGGER = logging.getLogger(__name__)

_positive = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

BROKER_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): str,
        vol.Optional(CONF_PORT, default=PORT): vol.All(vol.Coerce(int), vol.Range(min=1, max=65535)),
        vol.Optional(CONF_RECONNECT_DELAY, default=1.0): _positive,
        vol.Optional(CONF_CONNECT_TIMEOUT, default=5.0): _positive,
        vol.Optional(CONF_REQUEST_TIMEOUT, default=None): vol.Any(None, _positive),
    }
)

SERVICE_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_SERVICE_NAME, default=DEFAULT_SERVICE_NAME): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_SERVICE_VERSION, default=DEFAULT_SERVICE_VERSION): vol.Any(None, str),
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BROKER): BROKER_SCHEMA,
        vol.Optional(CONF_SERVICE, default={}): SERVICE_SCHEMA,
    }
)


def validate_config(config):
    """Validate ``config`` and fill in defaults; raises vol.Invalid."""
    return CONFIG_SCHEMA(config)


def moniker_from_config(config) -> ServiceMoniker:
    service = config[CONF_SERVICE]
    return ServiceMoniker(service[CONF_SERVICE_NAME], service[CONF_SERVICE_VERSION])


def remote_broker_from_config(config) -> RemoteBroker:
    broker = config[CONF_BROKER]
    _LOGGER.debug("Creating remote broker for %s:%d", broker[CONF_HOST], broker[CONF_PORT])
    return RemoteBroker(
        broker[CONF_HOST],
        broker[CONF_PORT],
        reconnect_delay=broker[CONF_RECONNECT_DELAY],
        connect_timeout=broker[CONF_CONNECT_TIMEOUT],
        request_timeout=broker[CONF_REQUEST_TIMEOUT],
    )
