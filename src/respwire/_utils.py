from __future__ import annotations

import random
import string

from ._resp import Attributes, PushData, RESPValue

MARKER_ALPHABET = string.ascii_uppercase + string.digits


def generate_marker(length: int = 40) -> str:
    """
    Generate a random marker for delimiting a streamed string.

    The marker is not cryptographically unique; collisions with the payload are
    considered negligible.

    """
    if length < 1:
        raise ValueError(f"Marker length must be positive; got {length}")

    return "".join(random.choices(MARKER_ALPHABET, k=length))


def decode_value(value: RESPValue) -> RESPValue:
    """
    Recursively decode all byte strings in a parsed value as UTF-8 text.

    Attributes stay :class:`Attributes`. Verbatim strings are byte strings, so they
    are decoded to plain :class:`str` and lose their format tag.

    """
    if isinstance(value, bytes):
        return value.decode("utf-8")
    elif isinstance(value, list):
        return [decode_value(x) for x in value]
    elif isinstance(value, set):
        return {decode_value(x) for x in value}
    elif isinstance(value, Attributes):
        return Attributes(
            {decode_value(k): decode_value(v) for k, v in value.items()}
        )
    elif isinstance(value, dict):
        return {decode_value(k): decode_value(v) for k, v in value.items()}
    elif isinstance(value, PushData):
        return PushData(value.type, [decode_value(x) for x in value.data])

    return value
