"""Constants for brokerhub."""

CONF_BROKER = "broker"
CONF_HOST = "host"
CONF_PORT = "port"
CONF_RECONNECT_DELAY = "reconnect_delay"
CONF_CONNECT_TIMEOUT = "connect_timeout"
CONF_REQUEST_TIMEOUT = "request_timeout"

CONF_SERVICE = "service"
CONF_SERVICE_NAME = "name"
CONF_SERVICE_VERSION = "version"

DEFAULT_SERVICE_NAME = "Brokerhub.IHelloWorld"
DEFAULT_SERVICE_VERSION = "0.1"
LOCAL_SERVICE_NAME = "Brokerhub.Local.IHelloWorld"

METHOD_CALL_ME = "CallMe"
