from __future__ import annotations

from pathlib import Path

import pytest

from piratectl.api import BitbangSession, Client, DeviceCatalog, DeviceRecord, Speed, UnknownSession

RECORD = DeviceRecord(path="/dev/ttyUSB0", hwid="USB VID:PID=04D8:FB00 SER=A1")


@pytest.fixture(autouse=True)
def _isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


def _client(monkeypatch: pytest.MonkeyPatch, transport) -> Client:
    client = Client(opener=lambda record, profile: UnknownSession(transport))
    monkeypatch.setattr(client._service, "list_devices", lambda: DeviceCatalog([RECORD]))
    return client


def test_public_client_profile_defaults(monkeypatch: pytest.MonkeyPatch, scripted) -> None:
    client = _client(monkeypatch, scripted([]))

    assert client.profile.id == "buspirate_v3"
    assert client.load_warnings == ()
    assert client.resolve_device(device_hint="ttyUSB0") == RECORD


def test_public_client_connect_and_drive_i2c(monkeypatch: pytest.MonkeyPatch, scripted) -> None:
    transport = scripted([scripted.TIMEOUT, b"BBIO1", b"I2C1", b"\x01", b"\x01\x00"])
    client = _client(monkeypatch, transport)

    bitbang = client.connect(device_hint="ttyUSB0")
    assert isinstance(bitbang, BitbangSession)

    with bitbang.enter_i2c() as i2c:
        i2c.set_speed(Speed.HZ_50000)
        result = i2c.bulk_write(b"\xa0")

    assert result.all_acked
    assert transport.closed


def test_public_client_i2c_transaction(monkeypatch: pytest.MonkeyPatch, scripted) -> None:
    transport = scripted(
        [scripted.TIMEOUT, b"BBIO1", b"I2C1", b"\x01", b"\x01", b"\x01", b"\x42", b"BBIO1"]
    )
    client = _client(monkeypatch, transport)

    result = client.i2c_transaction(b"\xa1", 1)

    assert result.acked
    assert result.data_hex == "42"
