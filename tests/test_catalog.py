from __future__ import annotations

from types import SimpleNamespace

import pytest

from piratectl.core import catalog as catalog_module
from piratectl.core.catalog import BUS_PIRATE_V3, DeviceCatalog, open_device
from piratectl.core.errors import DeviceDiscoveryError
from piratectl.core.model import DeviceRecord, SerialSettings, UsbId
from piratectl.core.session import UnknownSession


def _port(device: str, hwid: str, vid: int | None = 0x04D8, pid: int | None = 0xFB00) -> SimpleNamespace:
    return SimpleNamespace(device=device, hwid=hwid, vid=vid, pid=pid)


def _catalog() -> DeviceCatalog:
    return DeviceCatalog(
        [
            DeviceRecord(path="/dev/ttyUSB1", hwid="USB VID:PID=04D8:FB00 SER=A1"),
            DeviceRecord(path="/dev/ttyUSB0", hwid="USB VID:PID=04D8:FB00 SER=B2"),
            DeviceRecord(path="/dev/ttyACM0", hwid="USB VID:PID=04D8:FB00 SER=usb0-C3"),
        ]
    )


def test_detect_filters_by_usb_id() -> None:
    ports = [
        _port("/dev/ttyUSB0", "USB VID:PID=04D8:FB00 SER=A1"),
        _port("/dev/ttyUSB1", "USB VID:PID=0403:6001 SER=FTDI", vid=0x0403, pid=0x6001),
        _port("/dev/ttyS0", "PNP0501", vid=None, pid=None),
    ]

    found = DeviceCatalog.detect(comports=lambda: ports)

    assert [record.path for record in found] == ["/dev/ttyUSB0"]


def test_detect_with_alternate_identity() -> None:
    ports = [
        _port("/dev/ttyUSB0", "pirate"),
        _port("/dev/ttyUSB1", "clone", vid=0x1234, pid=0x5678),
    ]

    found = DeviceCatalog.detect([UsbId(0x1234, 0x5678)], comports=lambda: ports)

    assert [record.hwid for record in found] == ["clone"]


def test_detect_wraps_enumeration_failure() -> None:
    def broken():
        raise OSError("udev unavailable")

    with pytest.raises(DeviceDiscoveryError):
        DeviceCatalog.detect([BUS_PIRATE_V3], comports=broken)


def test_default_is_first_in_catalog_order() -> None:
    catalog = _catalog()

    assert catalog.default() == DeviceRecord(path="/dev/ttyUSB1", hwid="USB VID:PID=04D8:FB00 SER=A1")
    assert catalog.find_or_default(None) == catalog.default()


def test_default_on_empty_catalog() -> None:
    assert DeviceCatalog().default() is None
    assert DeviceCatalog().find_or_default(None) is None


def test_find_matches_path() -> None:
    record = _catalog().find("ttyUSB0")

    assert record is not None
    assert record.path == "/dev/ttyUSB0"


def test_find_falls_back_to_hwid() -> None:
    record = _catalog().find("SER=B2")

    assert record is not None
    assert record.path == "/dev/ttyUSB0"


def test_find_usb0_matches_first_record_by_path_or_hwid() -> None:
    catalog = DeviceCatalog(
        [
            DeviceRecord(path="/dev/ttyACM0", hwid="SER=usb0-C3"),
            DeviceRecord(path="/dev/ttyusb0", hwid="SER=A1"),
        ]
    )

    assert catalog.find("usb0") == DeviceRecord(path="/dev/ttyACM0", hwid="SER=usb0-C3")
    assert catalog.find_or_default("usb0") == catalog.find("usb0")


def test_find_absent_pattern() -> None:
    assert _catalog().find("ttyAMA0") is None
    assert _catalog().find_or_default("ttyAMA0") is None


def test_sort_by_path_and_custom_key() -> None:
    catalog = _catalog()

    catalog.sort()
    assert [record.path for record in catalog] == ["/dev/ttyACM0", "/dev/ttyUSB0", "/dev/ttyUSB1"]

    catalog.sort_by(lambda record: record.hwid)
    assert [record.hwid[-2:] for record in catalog] == ["A1", "B2", "C3"]
    assert len(catalog) == 3


def test_open_device_uses_serial_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_open(path, settings):
        calls.append((path, settings))
        return object()

    monkeypatch.setattr(catalog_module.SerialTransport, "open", fake_open)
    settings = SerialSettings(timeout_s=0.5)

    session = open_device(DeviceRecord(path="/dev/ttyUSB0", hwid="x"), settings)

    assert isinstance(session, UnknownSession)
    assert calls == [("/dev/ttyUSB0", settings)]
