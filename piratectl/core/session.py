"""Session handles binding a transport to the negotiated protocol mode.

A session owns its transport exclusively. Mode transitions release the
transport from the source session before a single byte is exchanged, so a
session can never be used again once a transition has been attempted on it.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, ClassVar

from piratectl.core.errors import SessionStateError
from piratectl.core.model import Mode
from piratectl.protocols.base import Command
from piratectl.transports.base import Transport


class Session:
    mode: ClassVar[Mode] = Mode.UNKNOWN

    def __init__(self, transport: Transport) -> None:
        self._transport: Transport | None = transport

    def __repr__(self) -> str:
        state = "consumed" if self._transport is None else "open"
        return f"{type(self).__name__}(mode={self.mode.value}, {state})"

    def __enter__(self) -> Session:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def consumed(self) -> bool:
        return self._transport is None

    def _link(self) -> Transport:
        if self._transport is None:
            raise SessionStateError(
                f"{type(self).__name__} is no longer usable: it was consumed by a mode transition or closed"
            )
        return self._transport

    def release(self) -> Transport:
        """Hand the transport over; this session is unusable afterwards."""
        transport = self._link()
        self._transport = None
        return transport

    def close(self) -> None:
        if self._transport is None:
            return
        transport, self._transport = self._transport, None
        transport.close()

    def execute(self, command: Command) -> Any:
        """Run one command/reply round-trip in the current mode."""
        transport = self._link()
        payload = command.encode()
        transport.write_all(payload)
        return command.decode(transport.read_exact)


class UnknownSession(Session):
    """Freshly opened link, or one whose protocol state is not known."""

    mode = Mode.UNKNOWN
