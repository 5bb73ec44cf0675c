"""Attached-instrument catalog built from USB serial port enumeration."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from serial.tools import list_ports

from piratectl.core.errors import DeviceDiscoveryError
from piratectl.core.model import DeviceRecord, SerialSettings, UsbId
from piratectl.core.session import UnknownSession
from piratectl.transports.serial_port import SerialTransport

BUS_PIRATE_V3 = UsbId(vid=0x04D8, pid=0xFB00)


def _is_instrument(port: Any, usb_ids: frozenset[UsbId]) -> bool:
    if port.vid is None or port.pid is None:
        return False
    return UsbId(vid=port.vid, pid=port.pid) in usb_ids


class DeviceCatalog:
    def __init__(self, records: Iterable[DeviceRecord] = ()) -> None:
        self._records = list(records)

    @classmethod
    def detect(
        cls,
        usb_ids: Iterable[UsbId] = (BUS_PIRATE_V3,),
        *,
        comports: Callable[[], Iterable[Any]] = list_ports.comports,
    ) -> DeviceCatalog:
        wanted = frozenset(usb_ids)
        try:
            ports = list(comports())
        except OSError as exc:
            raise DeviceDiscoveryError(f"Serial port enumeration failed: {exc}") from exc
        return cls(
            DeviceRecord(path=port.device, hwid=port.hwid)
            for port in ports
            if _is_instrument(port, wanted)
        )

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DeviceRecord]:
        return iter(self._records)

    def default(self) -> DeviceRecord | None:
        return self._records[0] if self._records else None

    def find(self, pattern: str) -> DeviceRecord | None:
        for record in self._records:
            if pattern in record.path or pattern in record.hwid:
                return record
        return None

    def find_or_default(self, pattern: str | None = None) -> DeviceRecord | None:
        if pattern is not None:
            return self.find(pattern)
        return self.default()

    def sort(self) -> None:
        self._records.sort(key=lambda record: record.path)

    def sort_by(self, key: Callable[[DeviceRecord], Any]) -> None:
        self._records.sort(key=key)


def open_device(record: DeviceRecord, settings: SerialSettings | None = None) -> UnknownSession:
    return UnknownSession(SerialTransport.open(record.path, settings))
