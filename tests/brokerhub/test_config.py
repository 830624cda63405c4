import pytest
import voluptuous as vol

from brokerhub.broker.events import ServiceMoniker
from brokerhub.broker.rpc import PORT, RemoteBroker
from brokerhub.config import (
    moniker_from_config,
    remote_broker_from_config,
    validate_config,
)
from brokerhub.const import *


def test_defaults_filled_in():
    config = validate_config({CONF_BROKER: {CONF_HOST: "broker.local"}})

    assert config[CONF_BROKER] == {
        CONF_HOST: "broker.local",
        CONF_PORT: PORT,
        CONF_RECONNECT_DELAY: 1.0,
        CONF_CONNECT_TIMEOUT: 5.0,
        CONF_REQUEST_TIMEOUT: None,
    }
    assert config[CONF_SERVICE] == {
        CONF_SERVICE_NAME: DEFAULT_SERVICE_NAME,
        CONF_SERVICE_VERSION: DEFAULT_SERVICE_VERSION,
    }


def test_values_coerced():
    config = validate_config(
        {
            CONF_BROKER: {
                CONF_HOST: "broker.local",
                CONF_PORT: "1800",
                CONF_RECONNECT_DELAY: "0.5",
                CONF_REQUEST_TIMEOUT: "2.5",
            },
        }
    )
    assert config[CONF_BROKER][CONF_PORT] == 1800
    assert config[CONF_BROKER][CONF_REQUEST_TIMEOUT] == 2.5
    assert config[CONF_BROKER][CONF_RECONNECT_DELAY] == 0.5


@pytest.mark.parametrize(
    "config",
    [
        {},
        {CONF_BROKER: {}},
        {CONF_BROKER: {CONF_HOST: "h", CONF_PORT: 0}},
        {CONF_BROKER: {CONF_HOST: "h", CONF_CONNECT_TIMEOUT: 0}},
        {CONF_BROKER: {CONF_HOST: "h", CONF_RECONNECT_DELAY: 0}},
        {CONF_BROKER: {CONF_HOST: "h"}, CONF_SERVICE: {CONF_SERVICE_NAME: ""}},
        {CONF_BROKER: {CONF_HOST: "h"}, "polling": {"poll_interval": 0.1}},
        {CONF_BROKER: {CONF_HOST: "h"}, "unexpected": True},
    ],
)
def test_invalid_config_rejected(config):
    with pytest.raises(vol.Invalid):
        validate_config(config)


def test_moniker_from_config():
    config = validate_config(
        {
            CONF_BROKER: {CONF_HOST: "h"},
            CONF_SERVICE: {CONF_SERVICE_NAME: "Custom.IService", CONF_SERVICE_VERSION: None},
        }
    )
    assert moniker_from_config(config) == ServiceMoniker("Custom.IService", None)


def test_remote_broker_from_config():
    config = validate_config(
        {CONF_BROKER: {CONF_HOST: "broker.local", CONF_PORT: 1800, CONF_RECONNECT_DELAY: 3}}
    )
    broker = remote_broker_from_config(config)

    assert isinstance(broker, RemoteBroker)
    assert broker._host == "broker.local"
    assert broker._port == 1800
    assert broker._reconnect_delay == 3.0
    assert broker._request_timeout is None
