"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    def write_all(self, data: bytes) -> None:
        """Write every byte of ``data`` or raise ``TransportError``."""

    def read_exact(self, size: int) -> bytes:
        """Read exactly ``size`` bytes or raise ``TransportTimeoutError``."""

    def get_timeout(self) -> float | None:
        ...

    def set_timeout(self, timeout_s: float | None) -> None:
        ...

    def close(self) -> None:
        ...
