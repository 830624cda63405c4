import asyncio
import contextlib
import json
import logging

from .events import AvailabilityChangedEvent, ListenerRegistry, ServiceMoniker

_LOGGER = logging.getLogger(__name__)

DELIMITER = b"\0"

PORT = 1720

NOTIFICATION_AVAILABILITY_CHANGED = "Broker.AvailabilityChanged"

error_codes = {
    -32700: "Parse error. Invalid JSON was received by the server.",
    -32600: "Invalid request. The JSON sent is not a valid Request object.",
    -32601: "Method not found.",
    -32602: "Invalid params.",
    -32603: "Server error.",
    1: "Unknown service",
    2: "Service unavailable",
    3: "Unknown proxy",
    4: "Service method failed",
}

ERROR_DISCONNECTED = -1
ERROR_SERVICE_UNAVAILABLE = 2


class BrokerError(Exception):
    def __init__(self, err):
        super().__init__(err.get("message") or error_codes.get(err.get("code"), "unknown error"))
        self.error = err


def _encode(message):
    message.setdefault("jsonrpc", "2.0")
    return json.dumps(message).encode("utf8") + DELIMITER


def _impacted_services(params):
    """Monikers named by an availability notification, skipping bad entries."""
    entries = params.get("ImpactedServices") if isinstance(params, dict) else None
    if not isinstance(entries, list):
        _LOGGER.warning("Availability notification without a service list: %r", params)
        return frozenset()
    impacted = set()
    for entry in entries:
        try:
            impacted.add(ServiceMoniker.from_dict(entry))
        except (KeyError, TypeError, AttributeError):
            _LOGGER.warning("Skipping malformed service entry: %r", entry)
    return frozenset(impacted)


class RemoteBroker:
    """Broker living in another process, reached over a JSON-RPC socket.

    ``start`` keeps a connection open in the background and reconnects
    ``reconnect_delay`` seconds after it drops. Calls made while offline wait
    for the next connection. Notifications sent while offline are lost, so
    after every reconnect the services that last failed to resolve are looked
    up again and the ones that resolve now are announced to listeners.
    """

    def __init__(
        self,
        host,
        port: int = PORT,
        *,
        reconnect_delay: float = 1.0,
        connect_timeout: float = 5.0,
        request_timeout: float | None = None,
    ):
        self._host = host
        self._port = port
        self._reconnect_delay = reconnect_delay
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout

        self._online = asyncio.Event()
        self._stopping = asyncio.Event()
        self._task = None
        self._writer = None

        self._last_id = 0
        self._replies = {}  # request id -> future

        self._listeners = ListenerRegistry(self)
        self._unresolved = set()

    @property
    def connected(self) -> bool:
        return self._online.is_set()

    def subscribe_availability_changed(self, listener):
        self._listeners.subscribe(listener)

    def unsubscribe_availability_changed(self, listener):
        self._listeners.unsubscribe(listener)

    async def wait_until_connected(self, timeout=None):
        await asyncio.wait_for(self._online.wait(), timeout)

    def start(self):
        if self._task and not self._task.done():
            return self._task
        self._stopping.clear()
        self._task = asyncio.create_task(self._keep_connected())
        return self._task

    async def stop(self):
        self._stopping.set()
        task, self._task = self._task, None
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _keep_connected(self):
        while not self._stopping.is_set():
            try:
                await self._session()
            except (OSError, EOFError, TimeoutError) as ex:
                _LOGGER.warning(
                    "Connection to broker at %s:%d lost: %s", self._host, self._port, repr(ex)
                )
            except Exception as ex:  # noqa: BLE001
                _LOGGER.exception(
                    "Unexpected error talking to broker at %s:%d: %s", self._host, self._port, repr(ex)
                )
            _LOGGER.debug("Reconnecting in %.3f seconds", self._reconnect_delay)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), self._reconnect_delay)
        _LOGGER.info("Broker connection to %s:%d stopped", self._host, self._port)

    async def _session(self):
        """Serve one connection until it drops."""
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(self._host, self._port), self._connect_timeout
        )
        _LOGGER.info("Connected to broker at %s:%d", self._host, self._port)
        self._writer = writer
        self._online.set()
        recheck = asyncio.create_task(self._recheck_unresolved()) if self._unresolved else None
        try:
            while True:
                frame = await reader.readuntil(DELIMITER)
                try:
                    message = json.loads(frame[:-1])
                except ValueError:
                    _LOGGER.warning("Dropping undecodable frame: %r", frame)
                    continue
                await self._dispatch(message)
        finally:
            self._online.clear()
            self._writer = None
            if recheck:
                recheck.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await recheck
            self._fail_replies()
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as ex:
                _LOGGER.debug("Error while closing connection: %s", repr(ex))

    def _fail_replies(self):
        replies, self._replies = self._replies, {}
        for future in replies.values():
            if not future.done():
                future.set_exception(BrokerError({"code": ERROR_DISCONNECTED, "message": "disconnected"}))

    async def _recheck_unresolved(self):
        resolved = set()
        for moniker in list(self._unresolved):
            try:
                proxy = await self.get_proxy(moniker)
            except BrokerError as ex:
                _LOGGER.warning("Unable to look up %s after reconnect: %s", moniker, repr(ex))
                continue
            if proxy is not None:
                await proxy.aclose()
                resolved.add(moniker)
        if resolved:
            _LOGGER.info("Resolvable after reconnect: %s", ", ".join(map(str, resolved)))
            await self._listeners.fire(AvailabilityChangedEvent(frozenset(resolved)))

    async def _dispatch(self, message):
        if "id" in message:
            future = self._replies.pop(message["id"], None)
            if future is None or future.done():
                _LOGGER.debug("Reply to unknown request: %s", message)
            elif "error" in message:
                future.set_exception(BrokerError(message["error"]))
            else:
                future.set_result(message)
        elif message.get("method") == NOTIFICATION_AVAILABILITY_CHANGED:
            impacted = _impacted_services(message.get("params"))
            if impacted:
                await self._listeners.fire(AvailabilityChangedEvent(impacted))
        else:
            _LOGGER.info("Ignoring notification: %s", message.get("method"))

    async def call(self, method, params=None):
        """Send a request and return the reply, waiting for a connection first."""
        await self._online.wait()
        self._last_id = (self._last_id + 1) % 65535
        id_ = self._last_id
        future = asyncio.get_running_loop().create_future()
        self._replies[id_] = future
        try:
            _LOGGER.debug("Calling %s (%d): %s", method, id_, params)
            self._writer.write(_encode({"method": method, "params": params or {}, "id": id_}))
            return await asyncio.wait_for(future, self._request_timeout)
        finally:
            self._replies.pop(id_, None)

    async def get_proxy(self, moniker: ServiceMoniker):
        """Resolve ``moniker`` to a proxy, or None if it is not registered."""
        try:
            response = await self.call("Broker.GetProxy", moniker.to_dict())
        except BrokerError as ex:
            if ex.error.get("code") != ERROR_SERVICE_UNAVAILABLE:
                raise
            response = {}
        result = response.get("result")
        if not result:
            self._unresolved.add(moniker)
            return None
        self._unresolved.discard(moniker)
        return ServiceProxy(self, moniker, result["Id"])


class ServiceProxy:
    """Handle to a service instance held by the remote broker.

    Release it with ``aclose`` (or ``async with``) once done.
    """

    def __init__(self, broker: RemoteBroker, moniker: ServiceMoniker, id_: int):
        self._broker = broker
        self.moniker = moniker
        self.id = id_
        self.closed = False

    async def call(self, method, params=None):
        if self.closed:
            raise BrokerError({"code": 3, "message": f"proxy {self.id} already released"})
        response = await self._broker.call(
            "Service.Invoke",
            params={"Id": self.id, "Method": method, "Params": params or {}},
        )
        return response.get("result")

    async def aclose(self):
        if self.closed:
            return
        self.closed = True
        try:
            await self._broker.call("Service.Release", params={"Id": self.id})
        except Exception as ex:  # noqa: BLE001
            _LOGGER.warning("Unable to release proxy %s for %s: %s", self.id, self.moniker, repr(ex))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
