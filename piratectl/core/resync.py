"""Force an instrument in an unknown state into binary bitbang mode.

The user terminal may be sitting in a configuration menu, and some terminals
emit a stray NULL on start-up, so the firmware only enters bitbang mode after
a run of 0x00 bytes. The sequence is: press enter ten times and send ``#`` to
get back to the command line, drain whatever the terminal printed, then send
single 0x00 bytes until ``BBIO1`` comes back.

Each attempt ends one of three ways. A timeout means the instrument has not
switched yet and the next attempt follows. The magic means success. Any other
five bytes are a real reply that more zeros will not fix, so the resync stops.
"""

from __future__ import annotations

import logging
from enum import Enum

from piratectl.core.errors import (
    PirateError,
    ProtocolMismatchError,
    ResyncExhaustedError,
    TransportTimeoutError,
)
from piratectl.core.model import BinModeVersion
from piratectl.core.modes import BitbangSession
from piratectl.core.session import UnknownSession
from piratectl.protocols import bitbang
from piratectl.transports.base import Transport

DEFAULT_ATTEMPTS = 40
DEFAULT_ATTEMPT_TIMEOUT_S = 0.02

LOGGER = logging.getLogger(__name__)


class _Attempt(Enum):
    CONTINUE = "continue"
    SUCCEED = "succeed"


def _drain(transport: Transport) -> int:
    drained = 0
    while True:
        try:
            transport.read_exact(1)
        except TransportTimeoutError:
            return drained
        drained += 1


def _attempt(transport: Transport, magic: bytes) -> _Attempt:
    transport.write_all(b"\x00")
    try:
        reply = transport.read_exact(len(magic))
    except TransportTimeoutError:
        return _Attempt.CONTINUE
    if reply != magic:
        raise ProtocolMismatchError(magic, reply, "entering bitbang mode")
    return _Attempt.SUCCEED


def enter_bitbang(
    session: UnknownSession,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT_S,
) -> BitbangSession:
    """Consume ``session`` and return a bitbang session on protocol version 1.

    Raises ``ProtocolMismatchError`` on a wrong reply, ``ResyncExhaustedError``
    when every attempt timed out, and ``TransportError`` on link failures. The
    raised error carries the link back as ``error.session``.
    """
    transport = session.release()
    try:
        return _resync(transport, attempts, attempt_timeout)
    except PirateError as exc:
        exc.session = UnknownSession(transport)
        raise


def _resync(transport: Transport, attempts: int, attempt_timeout: float) -> BitbangSession:
    magic = bitbang.magic_for(BinModeVersion.ONE)

    transport.write_all(bitbang.ESCAPE_SEQUENCE)
    drained = _drain(transport)
    LOGGER.debug("Drained %d terminal bytes", drained)

    original_timeout = transport.get_timeout()
    transport.set_timeout(attempt_timeout)
    try:
        for attempt in range(1, attempts + 1):
            if _attempt(transport, magic) is _Attempt.SUCCEED:
                LOGGER.debug("Entered bitbang mode on attempt %d", attempt)
                break
        else:
            raise ResyncExhaustedError(attempts)
    finally:
        transport.set_timeout(original_timeout)
    return BitbangSession(transport, BinModeVersion.ONE)
