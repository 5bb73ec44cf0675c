from __future__ import annotations

from typer.testing import CliRunner

from piratectl import cli
from piratectl.core.catalog import DeviceCatalog
from piratectl.core.model import BinModeVersion, DeviceRecord, I2CTransactionResult, ProbeResult

RECORD = DeviceRecord(path="/dev/ttyUSB0", hwid="USB VID:PID=04D8:FB00 SER=A1")


class FakeService:
    def __init__(self, profile_id=None) -> None:
        self.profile_id = profile_id
        self.load_warnings = ()
        self.calls: list[tuple] = []

    def list_devices(self):
        return DeviceCatalog([RECORD, DeviceRecord(path="/dev/ttyUSB1", hwid="SER=B2")])

    def probe(self, device_hint=None):
        return ProbeResult(device=RECORD, version=BinModeVersion.ONE)

    def i2c_transaction(self, write, read_count, *, device_hint=None, speed=None, power=False, pullups=False):
        FakeService.last_call = (write, read_count, device_hint, speed, power, pullups)
        return I2CTransactionResult(device=RECORD, acked=True, written_hex=write.hex(), data_hex="beef")


runner = CliRunner()


def test_list_command(monkeypatch):
    monkeypatch.setattr(cli, "PirateService", FakeService)
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 0
    assert "(1) /dev/ttyUSB0 (USB VID:PID=04D8:FB00 SER=A1)" in result.stdout
    assert "(2) /dev/ttyUSB1" in result.stdout


def test_list_command_without_devices(monkeypatch):
    class EmptyService(FakeService):
        def list_devices(self):
            return DeviceCatalog()

    monkeypatch.setattr(cli, "PirateService", EmptyService)
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 1
    assert "No bus pirates found." in result.stdout


def test_test_command(monkeypatch):
    monkeypatch.setattr(cli, "PirateService", FakeService)
    result = runner.invoke(cli.app, ["test", "--device", "ttyUSB0"])
    assert result.exit_code == 0
    assert "Good pirate at /dev/ttyUSB0: bitbang protocol version 1" in result.stdout


def test_i2c_command(monkeypatch):
    monkeypatch.setattr(cli, "PirateService", FakeService)
    result = runner.invoke(
        cli.app,
        ["i2c", "--write", "a0 00", "--read", "2", "--speed", "400k", "--power", "--pullups"],
    )
    assert result.exit_code == 0
    assert "read=beef" in result.stdout
    write, read_count, _, speed, power, pullups = FakeService.last_call
    assert write == b"\xa0\x00"
    assert read_count == 2
    assert speed == cli.Speed.HZ_400000
    assert power and pullups


def test_i2c_command_rejects_bad_hex(monkeypatch):
    monkeypatch.setattr(cli, "PirateService", FakeService)
    result = runner.invoke(cli.app, ["i2c", "--write", "zz"])
    assert result.exit_code == 1
    assert "Error: --write must be hex bytes" in result.stderr


def test_i2c_command_reports_nack(monkeypatch):
    class NackService(FakeService):
        def i2c_transaction(self, write, read_count, **kwargs):
            return I2CTransactionResult(device=RECORD, acked=False, written_hex=write.hex(), data_hex="")

    monkeypatch.setattr(cli, "PirateService", NackService)
    result = runner.invoke(cli.app, ["i2c", "--write", "a1", "--read", "1"])
    assert result.exit_code == 1
    assert "NACK: write a1 was not acknowledged" in result.stderr


def test_test_command_error_is_clean(monkeypatch):
    class FailingService(FakeService):
        def probe(self, device_hint=None):
            from piratectl.core.errors import ResyncExhaustedError

            raise ResyncExhaustedError(40)

    monkeypatch.setattr(cli, "PirateService", FailingService)
    result = runner.invoke(cli.app, ["test"])
    assert result.exit_code == 1
    assert "Error: No bitbang reply after 40 attempts" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self, profile_id=None) -> None:
            super().__init__(profile_id)
            self.load_warnings = ("User profile 'buspirate_v3' overrides packaged profile",)

    monkeypatch.setattr(cli, "PirateService", WarnService)
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 0
    assert "Warning: User profile 'buspirate_v3' overrides packaged profile" in result.stderr


def test_list_command_sorts_by_path(monkeypatch):
    class UnsortedService(FakeService):
        def list_devices(self):
            return DeviceCatalog(
                [DeviceRecord(path="/dev/ttyUSB1", hwid="SER=B2"), DeviceRecord(path="/dev/ttyACM0", hwid="SER=C3")]
            )

    monkeypatch.setattr(cli, "PirateService", UnsortedService)
    result = runner.invoke(cli.app, ["list"])
    assert result.exit_code == 0
    assert "(1) /dev/ttyACM0 (SER=C3)" in result.stdout
    assert "(2) /dev/ttyUSB1 (SER=B2)" in result.stdout
