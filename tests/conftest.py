from __future__ import annotations

import pytest

from piratectl.core.errors import TransportError, TransportTimeoutError

TIMEOUT = object()


class ScriptedTransport:
    """In-memory link: each ``read_exact`` call consumes one scripted reply.

    A reply is either bytes, ``TIMEOUT``, or an exception instance to raise.
    Once the script is exhausted every read times out.
    """

    TIMEOUT = TIMEOUT

    def __init__(self, replies=(), *, timeout: float | None = 1.0) -> None:
        self.replies = list(replies)
        self.writes: list[bytes] = []
        self.reads: list[int] = []
        self.timeout = timeout
        self.timeout_history: list[float | None] = []
        self.closed = False

    def write_all(self, data: bytes) -> None:
        if self.closed:
            raise TransportError("write on closed transport")
        self.writes.append(bytes(data))

    def read_exact(self, size: int) -> bytes:
        if self.closed:
            raise TransportError("read on closed transport")
        self.reads.append(size)
        if not self.replies:
            raise TransportTimeoutError("no scripted reply")
        reply = self.replies.pop(0)
        if reply is TIMEOUT:
            raise TransportTimeoutError("scripted timeout")
        if isinstance(reply, Exception):
            raise reply
        assert len(reply) == size, f"read of {size} bytes scripted with {reply!r}"
        return reply

    def get_timeout(self) -> float | None:
        return self.timeout

    def set_timeout(self, timeout_s: float | None) -> None:
        self.timeout = timeout_s
        self.timeout_history.append(timeout_s)

    def close(self) -> None:
        self.closed = True

    @property
    def zero_writes(self) -> int:
        return sum(1 for data in self.writes if data == b"\x00")


@pytest.fixture
def scripted():
    return ScriptedTransport
