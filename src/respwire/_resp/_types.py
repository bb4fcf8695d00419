from __future__ import annotations

import sys
from collections.abc import MutableSequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Set, Union

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

if sys.version_info >= (3, 10):
    from typing import TypeAlias
else:
    from typing_extensions import TypeAlias

RESPValue: TypeAlias = Union[
    None,
    str,
    bytes,
    int,
    float,
    bool,
    "SimpleString",
    "VerbatimString",
    "BigNumber",
    "PushData",
    "Attributes",
    "SimpleError",
    "BlobError",
    List["RESPValue"],
    Set["RESPValue"],
    Dict["RESPValue", "RESPValue"],
    "RESPEnd",
]


class ProtocolVersion(IntEnum):
    """
    Selects the wire dialect.

    ``V1`` and ``V2`` share the same (RESP2) framing. ``V3`` enables the richer RESP3
    type set: nulls, doubles, booleans, big numbers, maps, sets, attributes and push
    data.
    """

    V1 = 1
    V2 = 2
    V3 = 3


class RESPEnd:
    """End-of-stream marker."""


@dataclass
class PushData:
    """
    Encapsulates out-of-band push data (e.g. pub-sub messages or ``MONITOR`` output).

    .. attribute:: type
        :type: str
        Type of the push data being sent. Typically ``monitor`` or ``pubsub``.

    .. attribute:: data
        :type: MutableSequence[RESPValue]
        Type-dependent payload of the push data.
    """

    type: str
    data: MutableSequence[RESPValue]


class Attributes(Dict[RESPValue, RESPValue]):
    """A map of auxiliary reply info, transmitted as out-of-band data."""


class SimpleString(str):
    """A short, non binary safe status string (``+OK``)."""


class BigNumber(int):
    """An integer that is always framed as a big number under RESP3."""


class VerbatimString(bytes):
    """
    A string with embedded formatting information.

    .. attribute:: type
        :type: bytes

        Specifies the formatting of the string; either ``txt`` for plain text, or
        ``mkd`` for Markdown.
    """

    type: bytes

    def __new__(cls, type_: bytes, value: bytes) -> Self:
        instance = super().__new__(cls, value)
        instance.type = type_
        return instance


@dataclass
class SimpleError:
    """
    Represents a (unicode) error reply.

    .. attribute:: code
        :type: str

        The "code" part (e.g. ``ERR`` or ``NOPROTO``) of the error. Empty if the error
        line had no space in it.

    .. attribute:: message
        :type: str

        The description part of the error message.
    """

    code: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class BlobError:
    """
    Represents a binary safe error reply.

    .. attribute:: code
        :type: bytes

        The "code" part (e.g. ``ERR`` or ``NOPROTO``) of the error.

    .. attribute:: message
        :type: bytes

        The description part of the error message.
    """

    code: bytes
    message: bytes

    def __str__(self) -> str:
        return self.message.decode("utf-8", errors="replace")
