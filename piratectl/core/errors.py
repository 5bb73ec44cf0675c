"""Domain-specific errors for piratectl."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from piratectl.core.session import UnknownSession


class PirateError(Exception):
    """Base error for piratectl.

    Errors raised while a session was being consumed by a mode transition
    carry the recovered link as ``session`` (an ``UnknownSession``), so the
    caller can decide whether to resync.
    """

    session: UnknownSession | None = None


class ProfileValidationError(PirateError):
    """Raised when a profile file does not conform to schema or semantics."""


class ProfileLoadError(PirateError):
    """Raised when loading profile sources fails."""


class DeviceSelectionError(PirateError):
    """Raised when no attached device matches the requested pattern."""


class DeviceDiscoveryError(PirateError):
    """Raised when serial port enumeration fails."""


class InvalidArgumentError(PirateError):
    """Raised when command parameters fall outside documented bounds."""


class SessionStateError(PirateError):
    """Raised when a session is used after a transition consumed it."""


class TransportError(PirateError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when a serial port cannot be opened or configured."""


class TransportTimeoutError(TransportError):
    """Raised when a read does not complete within the active timeout."""


class ProtocolError(PirateError):
    """Base error for replies that break the binary protocol."""


class ProtocolMismatchError(ProtocolError):
    """Raised when a reply arrives but differs from the expected bytes."""

    def __init__(self, expected: bytes | str, received: bytes, context: str = "") -> None:
        self.expected = expected
        self.received = bytes(received)
        where = f" while {context}" if context else ""
        wanted = expected.hex() if isinstance(expected, bytes) else expected
        super().__init__(
            f"Unexpected reply{where}: expected {wanted}, got {self.received.hex() or '<empty>'}"
        )


class ResyncExhaustedError(ProtocolError):
    """Raised when every resync attempt timed out without a bitbang reply."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"No bitbang reply after {attempts} attempts. "
            "Check that the instrument is attached and idle, then retry."
        )
