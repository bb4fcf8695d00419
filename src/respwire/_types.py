from __future__ import annotations

from typing import Protocol


class ByteSink(Protocol):
    """
    The output side of a writer: an ordered, append-only byte sink.

    Binary files, sockets wrapped with :meth:`~socket.socket.makefile` and
    :class:`io.BytesIO` all satisfy this protocol.
    """

    def write(self, data: bytes, /) -> object: ...

    def close(self) -> object: ...
