from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from anyio import EndOfStream
from anyio.abc import AnyByteStream, ObjectStream

from ._exceptions import RESPParseError
from ._resp import ProtocolVersion, RESPParser, RESPValue, serialize_value

logger = logging.getLogger("respwire")


class RESPStream(ObjectStream[RESPValue]):
    """
    Sends and receives RESP values over an AnyIO byte stream.

    Outgoing values are serialized like :meth:`RESPWriter.write` does; incoming data is
    parsed with :class:`RESPParser`. Errors from the transport are propagated as-is and
    nothing is ever retried, as resending a partially written value would corrupt the
    stream.
    """

    def __init__(
        self,
        transport: AnyByteStream,
        version: ProtocolVersion = ProtocolVersion.V3,
    ):
        """
        :param transport: the byte stream to wrap
        :param version: the protocol version to use in both directions

        """
        self.transport = transport
        self._parser = RESPParser()
        self._version = ProtocolVersion(version)
        self._parser.set_version(self._version)

    @property
    def version(self) -> ProtocolVersion:
        return self._version

    def set_version(self, version: ProtocolVersion) -> None:
        """
        Switch the wire dialect for subsequently sent and received values.

        :param version: the protocol version to switch to

        """
        self._version = ProtocolVersion(version)
        self._parser.set_version(self._version)

    async def send(self, item: RESPValue) -> None:
        payload = serialize_value(item, self._version)
        await self.transport.send(payload)
        logger.debug("Sent data: %r", payload)

    async def receive(self) -> RESPValue:
        while True:
            try:
                return next(self._parser)
            except StopIteration:
                pass

            try:
                data = await self.transport.receive()
            except EndOfStream:
                if self._parser.has_pending_data:
                    raise RESPParseError(
                        "The stream ended in the middle of a value"
                    ) from None

                raise

            logger.debug("Received data: %r", data)
            self._parser.feed_bytes(data)

    async def send_eof(self) -> None:
        await self.transport.send_eof()

    async def aclose(self) -> None:
        await self.transport.aclose()

    @property
    def extra_attributes(self) -> Mapping[Any, Callable[[], Any]]:
        return self.transport.extra_attributes
