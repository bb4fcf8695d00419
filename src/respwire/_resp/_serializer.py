"""Contains functions for serializing objects into RESP wire units."""
from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, time
from decimal import Decimal
from numbers import Real
from typing import Any

from .._exceptions import ProtocolUsageError
from ._types import (
    Attributes,
    BigNumber,
    BlobError,
    ProtocolVersion,
    PushData,
    SimpleError,
    SimpleString,
    VerbatimString,
)

SERIALIZED_NULL = b"_\r\n"
SERIALIZED_RESP2_NULL = b"$0\r\n\r\n"
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
AGGREGATE_TYPES = frozenset([b"*", b"%", b"~", b"|", b">"])

logger = logging.getLogger("respwire")


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def serialize_simple_string(value: str | bytes) -> bytes:
    return b"+%s\r\n" % _as_bytes(value)


def serialize_bytestring(value: bytes) -> bytes:
    return b"$%d\r\n%s\r\n" % (len(value), value)


def serialize_bulk_string(value: str | bytes) -> bytes:
    return serialize_bytestring(_as_bytes(value))


def serialize_int(value: int) -> bytes:
    return f":{value}\r\n".encode()


def serialize_error(value: str | bytes) -> bytes:
    return b"-%s\r\n" % _as_bytes(value)


def serialize_null(version: ProtocolVersion = ProtocolVersion.V3) -> bytes:
    # RESP2 has no null type of its own
    return SERIALIZED_NULL if version >= ProtocolVersion.V3 else SERIALIZED_RESP2_NULL


def format_double(value: float) -> str:
    if math.isnan(value):
        return "nan"
    elif math.isinf(value):
        return "inf" if value > 0 else "-inf"

    return repr(value)


def serialize_double(value: float) -> bytes:
    return f",{format_double(value)}\r\n".encode()


def serialize_boolean(value: bool) -> bytes:
    return b"#t\r\n" if value else b"#f\r\n"


def serialize_blob_error(value: str | bytes) -> bytes:
    payload = _as_bytes(value)
    return b"!%d\r\n%s\r\n" % (len(payload), payload)


def serialize_verbatim_string(type_: str | bytes, value: str | bytes) -> bytes:
    type_bytes = _as_bytes(type_)
    payload = _as_bytes(value)
    length = len(payload) + len(type_bytes) + 1
    return b"=%d\r\n%s:%s\r\n" % (length, type_bytes, payload)


def serialize_bignumber(value: int | str) -> bytes:
    return f"({value}\r\n".encode()


def serialize_aggregate_header(type_indicator: bytes, length: int) -> bytes:
    """
    Serialize the header of an aggregate (array, map, set, attribute or push data).

    :param type_indicator: one of ``*``, ``%``, ``~``, ``|`` or ``>``
    :param length: number of elements (or key/value pairs for maps and attributes)
        that follow the header
    :raises ProtocolUsageError: if the length is negative

    """
    if type_indicator not in AGGREGATE_TYPES:
        raise ProtocolUsageError(
            f"Unknown aggregate type indicator: {type_indicator!r}"
        )

    if length < 0:
        raise ProtocolUsageError(f"Aggregate length cannot be negative; got {length}")

    return b"%s%d\r\n" % (type_indicator, length)


def serialize_streamed_string_start(marker: str | bytes) -> bytes:
    return b"$EOF:%s\r\n" % _as_bytes(marker)


def serialize_array(
    value: Iterable[Any], version: ProtocolVersion = ProtocolVersion.V3
) -> bytes:
    items = [serialize_value(item, version) for item in value]
    return serialize_aggregate_header(b"*", len(items)) + b"".join(items)


def serialize_set(
    value: Iterable[Any], version: ProtocolVersion = ProtocolVersion.V3
) -> bytes:
    items = [serialize_value(item, version) for item in value]
    type_indicator = b"~" if version >= ProtocolVersion.V3 else b"*"
    return serialize_aggregate_header(type_indicator, len(items)) + b"".join(items)


def serialize_map(
    value: Mapping[Any, Any],
    version: ProtocolVersion = ProtocolVersion.V3,
    *,
    type_indicator: bytes = b"%",
) -> bytes:
    encoded_items: list[bytes] = []
    for key, val in value.items():
        encoded_items.append(serialize_value(key, version))
        encoded_items.append(serialize_value(val, version))

    items_as_bytes = b"".join(encoded_items)
    if version >= ProtocolVersion.V3:
        header = serialize_aggregate_header(type_indicator, len(value))
    else:
        # RESP2 peers get the pairs flattened into a plain array
        header = serialize_aggregate_header(b"*", len(encoded_items))

    return header + items_as_bytes


def serialize_push_data(
    value: PushData, version: ProtocolVersion = ProtocolVersion.V3
) -> bytes:
    items = [serialize_bulk_string(value.type)]
    items.extend(serialize_value(item, version) for item in value.data)
    type_indicator = b">" if version >= ProtocolVersion.V3 else b"*"
    return serialize_aggregate_header(type_indicator, len(items)) + b"".join(items)


def _serialize_text_fallback(value: object) -> bytes:
    typename = type(value).__qualname__
    logger.debug("Serializing a value of type %s as its text rendering", typename)
    return serialize_bulk_string(str(value))


def serialize_value(
    value: Any, version: ProtocolVersion = ProtocolVersion.V3
) -> bytes:
    """
    Serialize an application value using the wire dialect of the given version.

    Values without a dedicated encoding are written as the bulk string of their
    ``str()`` rendering.

    :param value: the value to serialize
    :param version: the protocol version whose framing rules to apply
    :return: the encoded wire unit(s)

    """
    resp3 = version >= ProtocolVersion.V3
    if value is None:
        return serialize_null(version)
    elif isinstance(value, SimpleString):
        return serialize_simple_string(value)
    elif isinstance(value, VerbatimString):
        if resp3:
            return serialize_verbatim_string(value.type, bytes(value))

        return serialize_bytestring(bytes(value))
    elif isinstance(value, SimpleError):
        if value.code:
            return serialize_error(f"{value.code} {value.message}")

        return serialize_error(value.message)
    elif isinstance(value, BlobError):
        if value.code:
            payload = b"%s %s" % (value.code, value.message)
        else:
            payload = value.message

        if resp3:
            return serialize_blob_error(payload)

        return serialize_bytestring(payload)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        return serialize_bytestring(bytes(value))
    elif isinstance(value, str):
        return serialize_bulk_string(value)
    elif isinstance(value, bool):
        if resp3:
            return serialize_boolean(value)

        return serialize_bulk_string(str(value))
    elif isinstance(value, int):
        if isinstance(value, BigNumber) or not INT64_MIN <= value <= INT64_MAX:
            if resp3:
                return serialize_bignumber(int(value))

            return serialize_bulk_string(str(int(value)))

        return serialize_int(value)
    elif isinstance(value, Decimal) and value.is_snan():
        return _serialize_text_fallback(value)
    elif isinstance(value, (float, Decimal, Real)):
        number = float(value)
        if resp3:
            return serialize_double(number)

        return serialize_bulk_string(format_double(number))
    elif isinstance(value, (date, time)):
        return serialize_bulk_string(value.isoformat())
    elif isinstance(value, PushData):
        return serialize_push_data(value, version)
    elif isinstance(value, Attributes):
        return serialize_map(value, version, type_indicator=b"|")
    elif isinstance(value, Mapping):
        return serialize_map(value, version)
    elif isinstance(value, (set, frozenset)):
        return serialize_set(value, version)
    elif isinstance(value, Iterable):
        return serialize_array(value, version)

    return _serialize_text_fallback(value)


def serialize_command(command: str, *args: object) -> bytes:
    """
    Serialize a command and its arguments as an array of bulk strings.

    :param command: name of the command to send
    :param args: arguments for the command
    :return: the bytes to be sent to the server

    """
    return serialize_array(
        [command.encode("utf-8")]
        + [arg if isinstance(arg, bytes) else str(arg).encode("utf-8") for arg in args]
    )

