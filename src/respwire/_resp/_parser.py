from __future__ import annotations

import sys
from dataclasses import dataclass, field

from .._exceptions import RESPParseError
from ._types import (
    Attributes,
    BlobError,
    ProtocolVersion,
    PushData,
    RESPEnd,
    RESPValue,
    SimpleError,
    VerbatimString,
)

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

#: Type indicators that only exist in the RESP3 dialect
RESP3_TYPE_INDICATORS = frozenset(
    [b"_", b",", b"(", b"#", b"!", b"=", b"~", b"%", b".", b">", b"|"]
)


def parse_length(value_buffer: bytes, kind: str) -> int:
    try:
        length = int(value_buffer)
    except ValueError:
        raise RESPParseError(f"Invalid {kind} length: {value_buffer!r}") from None

    if length < 0:
        raise RESPParseError(f"Invalid {kind} length: {value_buffer!r}")

    return length


@dataclass
class RESPParser:
    """
    Incremental parser that turns a byte stream into RESP values.

    Feed incoming data with :meth:`feed_bytes`, then iterate over the parser to get
    every value that has been completely received so far. Iteration stops when more
    data is needed; partially received values are kept until the next feed.
    """

    _buffer: bytes = field(init=False, default=b"")
    _subparser: RESPParser | None = field(init=False, default=None)
    version: ProtocolVersion = field(init=False, default=ProtocolVersion.V3)

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> RESPValue:
        if self._subparser:
            return self._get_next_subparser_item()

        type_indicator, value_buffer = self._parse_next_token()
        if self.version < ProtocolVersion.V3:
            if type_indicator in RESP3_TYPE_INDICATORS:
                raise RESPParseError(
                    f"Type indicator {type_indicator!r} is not supported by "
                    f"protocol version {self.version.value}"
                )
            elif type_indicator in (b"$", b"*") and (
                value_buffer == b"?" or value_buffer.startswith(b"EOF:")
            ):
                raise RESPParseError(
                    f"Streamed aggregates are not supported by protocol version "
                    f"{self.version.value}"
                )

        if type_indicator == b"_":  # Null
            return None
        elif type_indicator == b"+":  # Simple string
            return value_buffer
        elif type_indicator == b"$":  # Blob string
            if value_buffer == b"?":
                return self._start_subparser(StreamedStringParser())
            elif value_buffer.startswith(b"EOF:"):
                marker = value_buffer[4:]
                if not marker:
                    raise RESPParseError("Invalid streamed string: empty marker")

                return self._start_subparser(MarkedStringParser(marker))
            elif value_buffer == b"-1":  # RESP2 null bulk string
                return None
            else:
                string_length = parse_length(value_buffer, "blob string")
                return self._start_subparser(BlobStringParser(string_length + 2))
        elif type_indicator == b"=":  # Verbatim string
            string_length = parse_length(value_buffer, "verbatim string")
            return self._start_subparser(VerbatimStringParser(string_length + 2))
        elif type_indicator == b":":  # Integer
            try:
                return int(value_buffer)
            except ValueError:
                raise RESPParseError(
                    f"Invalid integer value: {value_buffer!r}"
                ) from None
        elif type_indicator == b",":  # Double
            # Negative NaN is forbidden as of RESP3 v1.4
            if value_buffer == b"-nan":
                raise RESPParseError(f"Invalid double value: {value_buffer!r}")

            try:
                return float(value_buffer)
            except ValueError:
                raise RESPParseError(
                    f"Invalid double value: {value_buffer!r}"
                ) from None
        elif type_indicator == b"(":  # Big number
            try:
                return int(value_buffer)
            except ValueError:
                raise RESPParseError(
                    f"Invalid big number value: {value_buffer!r}"
                ) from None
        elif type_indicator == b"#":  # Boolean
            if value_buffer == b"t":
                return True
            elif value_buffer == b"f":
                return False
            else:
                raise RESPParseError(f"Invalid boolean value: {value_buffer!r}")
        elif type_indicator == b"-":  # Simple error
            code, sep, message = value_buffer.decode("utf-8").partition(" ")
            if not sep:
                return SimpleError("", code)

            return SimpleError(code, message)
        elif type_indicator == b"!":  # Blob error
            blob_length = parse_length(value_buffer, "blob error")
            return self._start_subparser(BlobErrorParser(blob_length + 2))
        elif type_indicator == b"*":  # Array
            if value_buffer == b"?":
                return self._start_subparser(StreamedArrayParser())
            elif value_buffer == b"-1":  # RESP2 null array
                return None
            else:
                array_length = parse_length(value_buffer, "array")
                if array_length:
                    return self._start_subparser(ArrayParser(array_length))
                else:
                    return []
        elif type_indicator == b"~":  # Set
            if value_buffer == b"?":
                return self._start_subparser(StreamedSetParser())
            else:
                set_length = parse_length(value_buffer, "set")
                if set_length:
                    return self._start_subparser(SetParser(set_length))
                else:
                    return set()
        elif type_indicator == b"%":  # Map
            if value_buffer == b"?":
                return self._start_subparser(StreamedMapParser())
            else:
                map_length = parse_length(value_buffer, "map")
                if map_length:
                    return self._start_subparser(MapParser(map_length * 2))
                else:
                    return {}
        elif type_indicator == b".":  # End of stream
            return RESPEnd()
        elif type_indicator == b">":  # Push data
            data_length = parse_length(value_buffer, "push data")
            if not data_length:
                raise RESPParseError("Invalid push data: no push type present")

            array_parser = ArrayParser(data_length)
            return self._start_subparser(PushDataParser(array_parser))
        elif type_indicator == b"|":  # Attribute
            attribute_length = parse_length(value_buffer, "attribute")
            if not attribute_length:
                return Attributes()

            map_parser = MapParser(attribute_length * 2)
            return self._start_subparser(AttributeParser(map_parser))

        raise RESPParseError(f"Unrecognized type indicator: {type_indicator!r}")

    def _parse_next_token(self) -> tuple[bytes, bytes]:
        end = self._buffer.find(b"\r\n")
        if end < 0:
            raise StopIteration
        elif end == 0:
            raise RESPParseError("Got an empty line in the data stream")

        token = self._buffer[:end]
        self._buffer = self._buffer[end + 2 :]
        return token[:1], token[1:]

    def _read_payload(self, bytes_needed: int, kind: str) -> bytes:
        # bytes_needed includes the trailing CRLF
        if len(self._buffer) < bytes_needed:
            raise StopIteration

        if self._buffer[bytes_needed - 2 : bytes_needed] != b"\r\n":
            raise RESPParseError(
                f"Invalid {kind}: CRLF not found after reading {bytes_needed} bytes"
            )

        payload = self._buffer[: bytes_needed - 2]
        self._buffer = self._buffer[bytes_needed:]
        return payload

    def _start_subparser(self, subparser: RESPParser) -> RESPValue:
        subparser.set_version(self.version)
        self._subparser = subparser
        self._subparser.feed_bytes(self._buffer)
        self._buffer = b""
        return self._get_next_subparser_item()

    def _get_next_subparser_item(self) -> RESPValue:
        assert self._subparser is not None
        item = next(self._subparser)
        self._buffer = self._subparser._buffer
        self._subparser = None
        return item

    @property
    def has_pending_data(self) -> bool:
        """``True`` if a value has been partially received."""
        return bool(self._buffer) or self._subparser is not None

    def set_version(self, version: ProtocolVersion) -> None:
        """
        Switch the wire dialect used to interpret subsequently parsed values.

        :param version: the protocol version to accept

        """
        self.version = ProtocolVersion(version)
        if self._subparser:
            self._subparser.set_version(self.version)

    def feed_bytes(self, data: bytes) -> None:
        if self._subparser:
            self._subparser.feed_bytes(data)
        else:
            self._buffer += data


@dataclass
class BlobStringParser(RESPParser):
    bytes_needed: int  # len(payload + \r\n)

    def __next__(self) -> bytes:
        return self._read_payload(self.bytes_needed, "blob string")


@dataclass
class VerbatimStringParser(RESPParser):
    bytes_needed: int

    def __next__(self) -> VerbatimString:
        payload = self._read_payload(self.bytes_needed, "verbatim string")
        if payload[3:4] != b":":
            raise RESPParseError(
                f"Invalid verbatim string: missing ':' delimiter in {payload!r}"
            )

        return VerbatimString(payload[:3], payload[4:])


@dataclass
class BlobErrorParser(RESPParser):
    bytes_needed: int

    def __next__(self) -> BlobError:
        payload = self._read_payload(self.bytes_needed, "blob error")
        code, sep, message = payload.partition(b" ")
        if not sep:
            return BlobError(b"", code)

        return BlobError(code, message)


@dataclass
class StreamedStringParser(RESPParser):
    _next_length: int | None = field(init=False, default=None)
    _string: bytes = field(default=b"")

    def __next__(self) -> bytes:
        while self._next_length != 2:  # actual indicated length + 2
            if self._next_length is None:
                type_indicator, value_buffer = self._parse_next_token()
                if type_indicator != b";":
                    raise RESPParseError(
                        f"Unexpected type indicator when parsing a streamed string: "
                        f"{type_indicator!r}"
                    )

                self._next_length = parse_length(value_buffer, "streamed chunk") + 2
            else:
                self._string += self._read_payload(
                    self._next_length, "chunk in streamed string"
                )
                self._next_length = None

        return self._string


@dataclass
class MarkedStringParser(RESPParser):
    """
    Parses a string sent as ``$EOF:<marker>``, followed by any number of blob string
    chunks and terminated by the bare marker.
    """

    marker: bytes
    _next_length: int | None = field(init=False, default=None)
    _string: bytes = field(init=False, default=b"")

    def __next__(self) -> bytes:
        while True:
            if self._next_length is not None:
                self._string += self._read_payload(
                    self._next_length, "chunk in streamed string"
                )
                self._next_length = None
            elif self._buffer.startswith(self.marker):
                self._buffer = self._buffer[len(self.marker) :]
                return self._string
            elif self.marker.startswith(self._buffer):
                # Either nothing or only a part of the end marker has arrived
                raise StopIteration
            else:
                type_indicator, value_buffer = self._parse_next_token()
                if type_indicator != b"$":
                    raise RESPParseError(
                        f"Unexpected type indicator when parsing a streamed string: "
                        f"{type_indicator!r}"
                    )

                self._next_length = parse_length(value_buffer, "streamed chunk") + 2


@dataclass
class ArrayParser(RESPParser):
    remaining_items: int
    _items: list[RESPValue] = field(init=False, default_factory=list)

    def __next__(self) -> list[RESPValue]:
        for _ in range(self.remaining_items):
            self._items.append(super().__next__())
            self.remaining_items -= 1

        return self._items


@dataclass
class StreamedArrayParser(RESPParser):
    _items: list[RESPValue] = field(init=False, default_factory=list)

    def __next__(self) -> list[RESPValue]:
        while True:
            item = super().__next__()
            if isinstance(item, RESPEnd):
                return self._items

            self._items.append(item)


@dataclass
class SetParser(RESPParser):
    remaining_items: int
    _items: set[RESPValue] = field(init=False, default_factory=set)

    def __next__(self) -> set[RESPValue]:
        for _ in range(self.remaining_items):
            self._items.add(super().__next__())
            self.remaining_items -= 1

        return self._items


@dataclass
class StreamedSetParser(RESPParser):
    _items: set[RESPValue] = field(init=False, default_factory=set)

    def __next__(self) -> set[RESPValue]:
        while True:
            item = super().__next__()
            if isinstance(item, RESPEnd):
                return self._items

            self._items.add(item)


@dataclass
class MapParser(RESPParser):
    remaining_items: int
    _items: dict[RESPValue, RESPValue] = field(init=False, default_factory=dict)
    _key: RESPValue = field(init=False)

    def __next__(self) -> dict[RESPValue, RESPValue]:
        for _ in range(self.remaining_items):
            item = super().__next__()
            self.remaining_items -= 1
            if hasattr(self, "_key"):
                self._items[self._key] = item
                del self._key
            else:
                self._key = item

        return self._items


@dataclass
class StreamedMapParser(RESPParser):
    _items: dict[RESPValue, RESPValue] = field(init=False, default_factory=dict)
    _key: RESPValue = field(init=False)

    def __next__(self) -> dict[RESPValue, RESPValue]:
        while True:
            item = super().__next__()
            if isinstance(item, RESPEnd):
                return self._items

            if hasattr(self, "_key"):
                self._items[self._key] = item
                del self._key
            else:
                self._key = item


class PushDataParser(RESPParser):
    def __init__(self, array_parser: ArrayParser):
        super().__init__()
        self._subparser = array_parser
        self._array_parser = array_parser

    def __next__(self) -> PushData:
        item = next(self._array_parser)
        self._buffer = self._array_parser._buffer
        if not isinstance(item[0], bytes):
            raise RESPParseError(
                f"Invalid push data: first element must be a bytestring; got: "
                f"{item[0]!r}"
            )

        return PushData(item[0].decode("utf-8"), item[1:])


class AttributeParser(RESPParser):
    def __init__(self, map_parser: MapParser):
        super().__init__()
        self._subparser = map_parser
        self._map_parser = map_parser

    def __next__(self) -> Attributes:
        item = next(self._map_parser)
        self._buffer = self._map_parser._buffer
        return Attributes(item)
