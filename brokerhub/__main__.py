"""Run the availability handshake against a remote broker.

Usage: python -m brokerhub HOST [SERVICE_NAME [SERVICE_VERSION]]
"""
import asyncio
import logging
import sys

import voluptuous as vol

from .broker.events import ServiceMoniker
from .config import moniker_from_config, remote_broker_from_config, validate_config
from .const import *
from .invoker import AvailabilityGatedInvoker, FatalInconsistencyError

_LOGGER = logging.getLogger(__name__)

LOCAL_MONIKER = ServiceMoniker(LOCAL_SERVICE_NAME, DEFAULT_SERVICE_VERSION)


async def call_me(proxy):
    """Ask the remote service to call back into the local one."""
    return await proxy.call(METHOD_CALL_ME, LOCAL_MONIKER.to_dict())


def config_from_argv(argv):
    if not argv:
        raise vol.Invalid("missing broker host")
    service = {}
    if len(argv) > 1:
        service[CONF_SERVICE_NAME] = argv[1]
    if len(argv) > 2:
        service[CONF_SERVICE_VERSION] = argv[2]
    return validate_config({CONF_BROKER: {CONF_HOST: argv[0]}, CONF_SERVICE: service})


async def main(argv):
    config = config_from_argv(argv)
    broker = remote_broker_from_config(config)
    invoker = AvailabilityGatedInvoker(broker, moniker_from_config(config), call_me)
    broker.start()
    try:
        await invoker.perform_handshake()
        _LOGGER.info("Handshake with %s completed", invoker.moniker)
        return 0
    except FatalInconsistencyError as ex:
        _LOGGER.error("%s", ex)
        return 1
    finally:
        invoker.close()
        await broker.stop()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        sys.exit(asyncio.run(main(sys.argv[1:])))
    except vol.Invalid as ex:
        print(f"{ex}\n{__doc__}", file=sys.stderr)
        sys.exit(2)
