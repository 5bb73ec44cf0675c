"""Mode transitions: send an entry command, expect an exact magic reply."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from piratectl.core.errors import PirateError
from piratectl.core.session import Session, UnknownSession
from piratectl.protocols.base import FixedReply, SendOnly, check_reply
from piratectl.transports.base import Transport

S = TypeVar("S", bound=Session)

LOGGER = logging.getLogger(__name__)


def enter_mode(session: Session, command: FixedReply, build: Callable[[Transport], S]) -> S:
    """Consume ``session`` and return ``build(transport)`` once the magic matches.

    On any failure the raised error carries the link as an ``UnknownSession``
    in ``error.session``. No retry is attempted here.
    """
    payload = command.encode()
    expected = command.expected_reply()
    transport = session.release()
    try:
        transport.write_all(payload)
        reply = transport.read_exact(len(expected))
        check_reply(expected, reply, command.name)
    except PirateError as exc:
        exc.session = UnknownSession(transport)
        raise
    target = build(transport)
    LOGGER.debug("%s -> %s", session.mode.value, target.mode.value)
    return target


def enter_mode_unverified(session: Session, command: SendOnly, build: Callable[[Transport], S]) -> S:
    """Fire-and-forget variant for entries without a documented reply."""
    payload = command.encode()
    transport = session.release()
    try:
        transport.write_all(payload)
    except PirateError as exc:
        exc.session = UnknownSession(transport)
        raise
    target = build(transport)
    LOGGER.debug("%s -> %s (unverified)", session.mode.value, target.mode.value)
    return target
