"""Shared command shapes for the binary-mode codecs.

Every command is an immutable value with three faces:

* ``encode()`` gives the bytes written to the instrument,
* ``reply_length()`` gives how many bytes the instrument answers with,
* ``decode(read_exact)`` pulls the reply through the supplied reader and
  turns it into a result, raising ``ProtocolMismatchError`` on bytes the
  firmware never sends.

Commands whose reply length depends on the reply itself (write-then-read)
override ``decode`` and read in stages.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from piratectl.core.errors import InvalidArgumentError, ProtocolMismatchError

ReadExact = Callable[[int], bytes]

OK = b"\x01"


class Command:
    def encode(self) -> bytes:
        raise NotImplementedError

    def reply_length(self) -> int:
        return 0

    def parse(self, reply: bytes) -> Any:
        return reply

    def decode(self, read_exact: ReadExact) -> Any:
        size = self.reply_length()
        if size == 0:
            return None
        return self.parse(read_exact(size))


@dataclass(frozen=True)
class FixedReply(Command):
    """Single opcode answered by a literal byte string."""

    name: str
    opcode: int
    reply: bytes

    def encode(self) -> bytes:
        return bytes([self.opcode])

    def expected_reply(self) -> bytes:
        return self.reply

    def reply_length(self) -> int:
        return len(self.reply)

    def parse(self, reply: bytes) -> None:
        check_reply(self.reply, reply, self.name)


@dataclass(frozen=True)
class SendOnly(Command):
    """Opcode with no verifiable fixed-length reply."""

    name: str
    opcode: int

    def encode(self) -> bytes:
        return bytes([self.opcode])


def check_reply(expected: bytes, received: bytes, context: str) -> None:
    if bytes(received) != expected:
        raise ProtocolMismatchError(expected, received, context)


def pack_flags(*flags: bool) -> int:
    """Pack booleans most-significant first: ``pack_flags(a, b, c)`` -> ``0b abc``."""
    value = 0
    for flag in flags:
        value = (value << 1) | int(bool(flag))
    return value


def unpack_flags(value: int, count: int) -> tuple[bool, ...]:
    return tuple(bool(value & (1 << bit)) for bit in reversed(range(count)))


def require_range(value: int, low: int, high: int, *, context: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise InvalidArgumentError(f"{context} must be between {low} and {high}, got {value!r}")
