"""Core data models used across loader, sessions, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class Mode(str, Enum):
    UNKNOWN = "unknown"
    BITBANG = "bitbang"
    SPI = "spi"
    I2C = "i2c"
    UART = "uart"
    ONEWIRE = "1-wire"
    RAWWIRE = "raw-wire"
    JTAG = "jtag"


class BinModeVersion(IntEnum):
    ONE = 1


@dataclass(frozen=True)
class UsbId:
    vid: int
    pid: int

    def __str__(self) -> str:
        return f"{self.vid:04X}:{self.pid:04X}"


@dataclass(frozen=True)
class SerialSettings:
    baudrate: int = 115200
    bytesize: int = 8
    parity: str = "N"
    stopbits: int = 1
    timeout_s: float = 1.0


@dataclass(frozen=True)
class ResyncSettings:
    attempts: int = 40
    attempt_timeout_s: float = 0.02


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    usb_ids: tuple[UsbId, ...]
    serial: SerialSettings
    resync: ResyncSettings


@dataclass(frozen=True)
class DeviceRecord:
    path: str
    hwid: str


@dataclass(frozen=True)
class ProbeResult:
    device: DeviceRecord
    version: BinModeVersion


@dataclass(frozen=True)
class I2CTransactionResult:
    device: DeviceRecord
    acked: bool
    written_hex: str
    data_hex: str
