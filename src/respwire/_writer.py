from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

from ._exceptions import ProtocolUsageError
from ._resp import (
    ProtocolVersion,
    serialize_aggregate_header,
    serialize_bignumber,
    serialize_blob_error,
    serialize_boolean,
    serialize_bulk_string,
    serialize_double,
    serialize_error,
    serialize_int,
    serialize_null,
    serialize_simple_string,
    serialize_streamed_string_start,
    serialize_value,
    serialize_verbatim_string,
)
from ._types import ByteSink
from ._utils import generate_marker

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

logger = logging.getLogger("respwire")


@dataclass(eq=False)
class AggregateBuilder:
    """
    Collects the elements of an array, set or push aggregate.

    The header is only written once the builder is finished, so the declared element
    count always matches the number of elements that follow it. Leaving the ``with``
    block normally finishes the builder; leaving it with an exception discards
    everything that was added.

    Elements are serialized using the protocol version that was active when the
    builder was created. Nested builders inherit the version of their parent.
    """

    type_indicator: bytes
    _writer: RESPWriter = field(repr=False)
    _parent: AggregateBuilder | None = field(default=None, repr=False)
    version: ProtocolVersion = field(init=False)
    _items: list[bytes] = field(init=False, default_factory=list)
    _child: AggregateBuilder | None = field(init=False, default=None, repr=False)
    _finished: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        if self._parent is not None:
            self.version = self._parent.version
        else:
            self.version = self._writer.version

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.finish()
        elif not self._finished:
            self.discard()

    def __len__(self) -> int:
        return len(self._items)

    def _check_open(self) -> None:
        if self._finished:
            raise ProtocolUsageError("This aggregate has already been finished")

        if self._child is not None:
            raise ProtocolUsageError(
                "Cannot add to an aggregate while a nested aggregate is open"
            )

    def _add_encoded(self, data: bytes) -> None:
        self._check_open()
        self._items.append(data)

    def _nest(self, builder: AggregateBuilder) -> Any:
        self._check_open()
        self._child = builder
        return builder

    def _child_finished(self, data: bytes | None) -> None:
        self._child = None
        if data is not None:
            self._items.append(data)

    def add(self, value: object) -> None:
        """
        Serialize and append one element.

        :param value: any value accepted by :meth:`RESPWriter.write`

        """
        self._add_encoded(serialize_value(value, self.version))

    def array(self) -> AggregateBuilder:
        """Start a nested array that becomes the next element of this aggregate."""
        return self._nest(AggregateBuilder(b"*", self._writer, self))

    def set(self) -> AggregateBuilder:
        """Start a nested set that becomes the next element of this aggregate."""
        return self._nest(AggregateBuilder(b"~", self._writer, self))

    def push(self, type_: str) -> AggregateBuilder:
        """Start nested push data that becomes the next element of this aggregate."""
        builder = self._nest(AggregateBuilder(b">", self._writer, self))
        builder.add(type_)
        return builder

    def map(self) -> MapBuilder:
        """Start a nested map that becomes the next element of this aggregate."""
        return self._nest(MapBuilder(b"%", self._writer, self))

    def attribute(self) -> MapBuilder:
        """Start nested attributes that become the next element of this aggregate."""
        return self._nest(MapBuilder(b"|", self._writer, self))

    def header(self) -> bytes:
        if self.version >= ProtocolVersion.V3:
            return serialize_aggregate_header(self.type_indicator, len(self._items))

        return serialize_aggregate_header(b"*", len(self._items))

    def finish(self) -> None:
        """
        Write the header and all collected elements.

        For a nested builder the encoded aggregate becomes an element of its parent.

        :raises ProtocolUsageError: if the builder was already finished or a nested
            builder is still open

        """
        if self._child is not None and not self._finished:
            # The open nested builders can never be finished now
            child: AggregateBuilder | None = self._child
            while child is not None:
                child._finished = True
                child = child._child

            self.discard()
            raise ProtocolUsageError(
                "Cannot finish an aggregate while a nested aggregate is open"
            )

        self._check_open()
        try:
            data = self.header() + b"".join(self._items)
        except ProtocolUsageError:
            self.discard()
            raise

        self._finished = True
        if self._parent is not None:
            self._parent._child_finished(data)
        else:
            self._writer._builder_finished(data)

    def discard(self) -> None:
        """Drop everything collected so far without writing anything."""
        self._finished = True
        self._items.clear()
        if self._parent is not None:
            self._parent._child_finished(None)
        else:
            self._writer._builder_finished(None)


@dataclass(eq=False)
class MapBuilder(AggregateBuilder):
    """
    Collects the key/value pairs of a map or attribute aggregate.

    Under RESP2 the pairs are flattened into an array of twice the length. Nested
    builders started from a map count as a single key or value.
    """

    def add(self, key: object, value: object) -> None:  # type: ignore[override]
        """
        Serialize and append one key/value pair.

        :param key: the key
        :param value: the value

        """
        self._check_open()
        self._items.append(serialize_value(key, self.version))
        self._items.append(serialize_value(value, self.version))

    def add_key(self, key: object) -> None:
        """
        Serialize and append a lone key whose value is given by a nested builder.

        :param key: the key

        """
        self._add_encoded(serialize_value(key, self.version))

    def header(self) -> bytes:
        if len(self._items) % 2:
            raise ProtocolUsageError("Cannot finish a map: the last key has no value")

        if self.version >= ProtocolVersion.V3:
            return serialize_aggregate_header(
                self.type_indicator, len(self._items) // 2
            )

        return serialize_aggregate_header(b"*", len(self._items))


class RESPWriter:
    """
    Writes values to a byte sink using the framing of the selected protocol version.

    Every write method emits its output with a single call to the sink's ``write()``
    method before returning. Errors raised by the sink are propagated as-is; after
    such an error the state of the output is undefined.

    The writer owns the sink: :meth:`close` (or leaving the ``with`` block) closes it.

    Instances are not safe to share between threads.
    """

    def __init__(
        self,
        sink: ByteSink,
        version: ProtocolVersion = ProtocolVersion.V2,
        *,
        marker_length: int = 40,
    ):
        """
        :param sink: the sink to write to
        :param version: the protocol version to start with
        :param marker_length: length of the markers generated for streamed strings

        """
        self._sink = sink
        self._version = ProtocolVersion(version)
        self.marker_length = marker_length
        self._marker: str | None = None
        self._open_builder: AggregateBuilder | None = None
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(sink={self._sink!r}, "
            f"version={self._version!r})"
        )

    @property
    def version(self) -> ProtocolVersion:
        """The protocol version used for subsequent writes."""
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def streamed_string_marker(self) -> str | None:
        """The marker of the currently open streamed string, if any."""
        return self._marker

    def set_version(self, version: ProtocolVersion) -> None:
        """
        Switch the wire dialect for all subsequent writes.

        Output that has already been written is not affected, and neither are
        aggregate builders that are already open.

        :param version: the protocol version to switch to

        """
        self._version = ProtocolVersion(version)

    def close(self) -> None:
        """
        Close the underlying sink.

        :raises ProtocolUsageError: if the writer has already been closed

        """
        if self._closed:
            raise ProtocolUsageError("This writer has already been closed")

        self._closed = True
        self._sink.close()

    def _check_writable(self, *, chunk: bool = False) -> None:
        if self._closed:
            raise ProtocolUsageError("This writer has been closed")
        elif self._open_builder is not None:
            raise ProtocolUsageError(
                "Cannot write directly to the sink while an aggregate builder is open"
            )
        elif self._marker is not None and not chunk:
            raise ProtocolUsageError(
                "Only bulk string chunks can be written while a streamed string is "
                "open"
            )

    def _write(self, data: bytes) -> None:
        self._sink.write(data)
        logger.debug("Wrote data to sink: %r", data)

    def _builder_finished(self, data: bytes | None) -> None:
        self._open_builder = None
        if data is not None:
            self._check_writable()
            self._write(data)

    def _start_builder(self, builder: AggregateBuilder) -> Any:
        self._check_writable()
        self._open_builder = builder
        return builder

    #
    # Typed value dispatch
    #

    def write(self, value: object) -> None:
        """
        Write an application value, choosing its wire representation by type.

        Under RESP2 (``V1``/``V2``) the RESP3-only types degrade: floats, booleans and
        big numbers become bulk strings of their text, ``None`` becomes an empty bulk
        string, maps become flattened arrays and sets become arrays. Values of
        unsupported types are written as the bulk string of their ``str()``.

        :param value: the value to write

        """
        self._check_writable()
        self._write(serialize_value(value, self._version))

    #
    # Primitive wire units
    #

    def write_simple_string(self, value: str | bytes) -> None:
        self._check_writable()
        self._write(serialize_simple_string(value))

    def write_bulk_string(self, value: str | bytes) -> None:
        self._check_writable(chunk=True)
        self._write(serialize_bulk_string(value))

    def write_integer(self, value: int) -> None:
        self._check_writable()
        self._write(serialize_int(value))

    def write_error(self, value: str | bytes) -> None:
        self._check_writable()
        self._write(serialize_error(value))

    def write_null(self) -> None:
        """Write a null (an empty bulk string under RESP2)."""
        self._check_writable()
        self._write(serialize_null(self._version))

    def write_double(self, value: float) -> None:
        self._check_writable()
        self._write(serialize_double(value))

    def write_boolean(self, value: bool) -> None:
        self._check_writable()
        self._write(serialize_boolean(value))

    def write_blob_error(self, value: str | bytes) -> None:
        self._check_writable()
        self._write(serialize_blob_error(value))

    def write_verbatim_string(self, type_: str | bytes, value: str | bytes) -> None:
        """
        Write a verbatim string.

        :param type_: three letter format of the string (``txt`` or ``mkd``)
        :param value: the string itself

        """
        self._check_writable()
        self._write(serialize_verbatim_string(type_, value))

    def write_big_number(self, value: int | str) -> None:
        self._check_writable()
        self._write(serialize_bignumber(value))

    #
    # Raw aggregate headers
    #

    def _start_aggregate(self, type_indicator: bytes, length: int) -> None:
        self._check_writable()
        self._write(serialize_aggregate_header(type_indicator, length))

    def start_array(self, length: int) -> None:
        self._start_aggregate(b"*", length)

    def start_map(self, length: int) -> None:
        """Write a map header; ``length`` is the number of key/value pairs."""
        self._start_aggregate(b"%", length)

    def start_set(self, length: int) -> None:
        self._start_aggregate(b"~", length)

    def start_attribute(self, length: int) -> None:
        """Write an attribute header; ``length`` is the number of key/value pairs."""
        self._start_aggregate(b"|", length)

    def start_push(self, length: int) -> None:
        self._start_aggregate(b">", length)

    #
    # Aggregate builders
    #

    def array(self) -> AggregateBuilder:
        """
        Start building an array.

        Usage::

            with writer.array() as array:
                array.add(1)
                with array.map() as nested:
                    nested.add("key", "value")

        """
        return self._start_builder(AggregateBuilder(b"*", self))

    def set(self) -> AggregateBuilder:
        """Start building a set (an array under RESP2)."""
        return self._start_builder(AggregateBuilder(b"~", self))

    def push(self, type_: str) -> AggregateBuilder:
        """
        Start building out-of-band push data (an array under RESP2).

        :param type_: the push type, written as the first element

        """
        builder = self._start_builder(AggregateBuilder(b">", self))
        builder.add(type_)
        return builder

    def map(self) -> MapBuilder:
        """Start building a map (a flattened array under RESP2)."""
        return self._start_builder(MapBuilder(b"%", self))

    def attribute(self) -> MapBuilder:
        """Start building attributes (a flattened array under RESP2)."""
        return self._start_builder(MapBuilder(b"|", self))

    #
    # Streamed strings
    #

    def begin_streamed_string(self, marker: str | None = None) -> str:
        """
        Start a streamed string of unknown length.

        Write the payload with :meth:`write_chunk` and finish it with
        :meth:`end_streamed_string`.

        :param marker: the marker to delimit the string with (a random alphanumeric
            marker is generated if omitted)
        :return: the marker
        :raises ProtocolUsageError: if a streamed string is already open

        """
        if self._marker is not None:
            raise ProtocolUsageError("A streamed string is already open")

        if marker is None:
            marker = generate_marker(self.marker_length)
        elif not marker:
            raise ProtocolUsageError("The streamed string marker cannot be empty")

        self._check_writable()
        self._write(serialize_streamed_string_start(marker))
        self._marker = marker
        return marker

    def write_chunk(self, data: str | bytes) -> None:
        """
        Write one chunk of the open streamed string.

        :param data: the chunk
        :raises ProtocolUsageError: if no streamed string is open

        """
        if self._marker is None:
            raise ProtocolUsageError("No streamed string is open")

        self.write_bulk_string(data)

    def end_streamed_string(self) -> str:
        """
        Finish the open streamed string by writing its bare marker.

        :return: the marker
        :raises ProtocolUsageError: if no streamed string is open

        """
        if self._marker is None:
            raise ProtocolUsageError("No streamed string is open")

        self._check_writable(chunk=True)
        marker = self._marker
        self._write(marker.encode("utf-8"))
        self._marker = None
        return marker
