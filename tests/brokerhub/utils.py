import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

from brokerhub.broker.rpc import DELIMITER, NOTIFICATION_AVAILABILITY_CHANGED, BrokerError


class FakeBrokerHost:
    """Server side of a RemoteBroker connection.

    Frames written by the client are decoded and answered through the
    StreamReader the client reads from. ``handlers`` maps a method name to a
    callable taking the request params; raising BrokerError sends an error
    response.
    """

    def __init__(self):
        self.reader = asyncio.StreamReader()
        self.writer = MagicMock()
        self.writer.wait_closed = AsyncMock()
        self.writer.write.side_effect = self._on_write
        self.requests = []
        self.handlers = {}
        self._buffer = b""

    def methods(self):
        return [request["method"] for request in self.requests]

    def _on_write(self, data):
        self._buffer += data
        while DELIMITER in self._buffer:
            frame, _, self._buffer = self._buffer.partition(DELIMITER)
            request = json.loads(frame)
            self.requests.append(request)
            self._answer(request)

    def _answer(self, request):
        handler = self.handlers.get(request["method"])
        if handler is None:
            self.send({"id": request["id"], "error": {"code": -32601, "message": "Method not found."}})
            return
        try:
            result = handler(request["params"])
        except BrokerError as ex:
            self.send({"id": request["id"], "error": ex.error})
        else:
            self.send({"id": request["id"], "result": result})

    def send(self, message):
        message.setdefault("jsonrpc", "2.0")
        self.reader.feed_data(json.dumps(message).encode("utf8") + DELIMITER)

    def announce(self, *monikers):
        self.send(
            {
                "method": NOTIFICATION_AVAILABILITY_CHANGED,
                "params": {"ImpactedServices": [moniker.to_dict() for moniker in monikers]},
            }
        )
