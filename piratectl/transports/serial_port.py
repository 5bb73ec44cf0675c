"""Serial transport implementation using pyserial."""

from __future__ import annotations

import logging
from typing import Any

import serial

from piratectl.core.errors import (
    TransportConnectError,
    TransportError,
    TransportTimeoutError,
)
from piratectl.core.model import SerialSettings

LOGGER = logging.getLogger(__name__)

_PARITY_MAP = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
}

_STOPBITS_MAP = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}

_BYTESIZE_MAP = {
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}


class SerialTransport:
    """Blocking byte stream over an already-configured ``serial.Serial``."""

    def __init__(self, port: Any) -> None:
        self._port = port

    @classmethod
    def open(cls, path: str, settings: SerialSettings | None = None) -> SerialTransport:
        settings = settings or SerialSettings()
        try:
            port = serial.Serial(
                path,
                baudrate=settings.baudrate,
                bytesize=_BYTESIZE_MAP[settings.bytesize],
                parity=_PARITY_MAP[settings.parity],
                stopbits=_STOPBITS_MAP[settings.stopbits],
                timeout=settings.timeout_s,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except KeyError as exc:
            raise TransportConnectError(f"Unsupported serial setting {exc} for {path}") from exc
        except (serial.SerialException, OSError) as exc:
            raise TransportConnectError(f"Could not open serial port {path}: {exc}") from exc
        LOGGER.debug("Opened %s at %d baud", path, settings.baudrate)
        return cls(port)

    @property
    def name(self) -> str:
        return str(getattr(self._port, "port", "<serial>"))

    def write_all(self, data: bytes) -> None:
        try:
            written = self._port.write(data)
            self._port.flush()
        except serial.SerialTimeoutException as exc:
            raise TransportTimeoutError(f"Serial write timed out on {self.name}") from exc
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Serial write failed on {self.name}: {exc}") from exc
        if written is not None and written != len(data):
            raise TransportError(
                f"Short serial write on {self.name}: {written} of {len(data)} bytes"
            )

    def read_exact(self, size: int) -> bytes:
        try:
            data = self._port.read(size)
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Serial read failed on {self.name}: {exc}") from exc
        if len(data) < size:
            raise TransportTimeoutError(
                f"Timed out reading {size} bytes from {self.name} (got {len(data)})"
            )
        return bytes(data)

    def get_timeout(self) -> float | None:
        return self._port.timeout

    def set_timeout(self, timeout_s: float | None) -> None:
        try:
            self._port.timeout = timeout_s
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(f"Could not set timeout on {self.name}: {exc}") from exc

    def close(self) -> None:
        try:
            self._port.close()
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Could not close {self.name}: {exc}") from exc
