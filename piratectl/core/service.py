"""Service layer used by CLI and the public client."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from piratectl.core.catalog import DeviceCatalog, open_device
from piratectl.core.errors import DeviceSelectionError, PirateError
from piratectl.core.model import DeviceRecord, I2CTransactionResult, ProbeResult, Profile
from piratectl.core.modes import BitbangSession
from piratectl.core.profile_loader import DEFAULT_PROFILE_ID, load_profiles
from piratectl.core.resync import enter_bitbang
from piratectl.core.session import UnknownSession
from piratectl.protocols.i2c import Speed, WriteThenRead

LOGGER = logging.getLogger(__name__)

Opener = Callable[[DeviceRecord, Profile], UnknownSession]


def _open_serial(record: DeviceRecord, profile: Profile) -> UnknownSession:
    return open_device(record, profile.serial)


class PirateService:
    def __init__(
        self,
        *,
        profile_id: str | None = None,
        opener: Opener | None = None,
    ) -> None:
        loaded = load_profiles()
        self.profiles = loaded.profiles
        self.load_warnings = loaded.warnings
        wanted = profile_id or DEFAULT_PROFILE_ID
        profile = self.profiles.get(wanted)
        if profile is None:
            available = ", ".join(sorted(self.profiles))
            raise DeviceSelectionError(f"Unknown profile '{wanted}'. Available: {available}")
        self.profile = profile
        self.opener = opener or _open_serial

    def list_devices(self) -> DeviceCatalog:
        return DeviceCatalog.detect(self.profile.usb_ids)

    def resolve_device(self, device_hint: str | None = None) -> DeviceRecord:
        catalog = self.list_devices()
        if len(catalog) == 0:
            raise DeviceSelectionError(
                f"No {self.profile.name} found. Ensure the instrument is plugged in."
            )
        record = catalog.find_or_default(device_hint)
        if record is None:
            raise DeviceSelectionError(f"No device found matching '{device_hint}'")
        return record

    def connect(self, device_hint: str | None = None) -> tuple[DeviceRecord, BitbangSession]:
        record = self.resolve_device(device_hint)
        session = self.opener(record, self.profile)
        LOGGER.debug("Resyncing %s", record.path)
        with _closing_recovered():
            bitbang = enter_bitbang(
                session,
                attempts=self.profile.resync.attempts,
                attempt_timeout=self.profile.resync.attempt_timeout_s,
            )
        return record, bitbang

    def probe(self, device_hint: str | None = None) -> ProbeResult:
        record, session = self.connect(device_hint)
        with session:
            return ProbeResult(device=record, version=session.version)

    def i2c_transaction(
        self,
        write: bytes,
        read_count: int,
        *,
        device_hint: str | None = None,
        speed: Speed = Speed.HZ_100000,
        power: bool = False,
        pullups: bool = False,
    ) -> I2CTransactionResult:
        command = WriteThenRead(bytes(write), read_count)
        command.encode()
        record, bitbang = self.connect(device_hint)
        with _closing_recovered():
            i2c = bitbang.enter_i2c()
        with i2c:
            i2c.set_speed(speed)
            i2c.configure_peripherals(power=power, pullups=pullups)
            result = i2c.write_then_read(command.data, command.read_count)
            with _closing_recovered():
                i2c.exit_to_bitbang().close()
        return I2CTransactionResult(
            device=record,
            acked=result.acked,
            written_hex=bytes(write).hex(),
            data_hex=result.data.hex(),
        )


@contextmanager
def _closing_recovered() -> Iterator[None]:
    """Close the link a failed transition hands back before re-raising."""
    try:
        yield
    except PirateError as exc:
        if exc.session is not None:
            exc.session.close()
        raise
