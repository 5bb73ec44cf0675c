"""Stable public API for building tooling on top of piratectl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from piratectl.core.catalog import DeviceCatalog, open_device
from piratectl.core.errors import (
    DeviceDiscoveryError,
    DeviceSelectionError,
    InvalidArgumentError,
    PirateError,
    ProfileLoadError,
    ProfileValidationError,
    ProtocolError,
    ProtocolMismatchError,
    ResyncExhaustedError,
    SessionStateError,
    TransportConnectError,
    TransportError,
    TransportTimeoutError,
)
from piratectl.core.model import (
    BinModeVersion,
    DeviceRecord,
    I2CTransactionResult,
    Mode,
    ProbeResult,
    Profile,
)
from piratectl.core.modes import BitbangSession, I2CSession, JTAGSession, ModeSession
from piratectl.core.resync import enter_bitbang
from piratectl.core.service import Opener, PirateService
from piratectl.core.session import UnknownSession
from piratectl.protocols.i2c import Speed

__all__ = [
    "PirateError",
    "DeviceDiscoveryError",
    "DeviceSelectionError",
    "InvalidArgumentError",
    "ProfileLoadError",
    "ProfileValidationError",
    "ProtocolError",
    "ProtocolMismatchError",
    "ResyncExhaustedError",
    "SessionStateError",
    "TransportError",
    "TransportConnectError",
    "TransportTimeoutError",
    "BinModeVersion",
    "DeviceRecord",
    "I2CTransactionResult",
    "Mode",
    "ProbeResult",
    "Profile",
    "DeviceCatalog",
    "open_device",
    "enter_bitbang",
    "UnknownSession",
    "BitbangSession",
    "ModeSession",
    "I2CSession",
    "JTAGSession",
    "Speed",
    "Client",
]


class Client:
    """Public client for interacting with piratectl core capabilities.

    A `Client` instance wraps profile loading, device detection, the bitbang
    resync, and I2C transactions behind a stable API intended for third-party
    tools (GUI/TUI/services/scripts). For step-by-step bus control use
    `connect()` and drive the returned `BitbangSession` directly.
    """

    def __init__(
        self,
        *,
        profile_id: str | None = None,
        opener: Opener | None = None,
    ) -> None:
        self._service = PirateService(profile_id=profile_id, opener=opener)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def profile(self) -> Profile:
        return self._service.profile

    def list_devices(self) -> DeviceCatalog:
        return self._service.list_devices()

    def resolve_device(self, *, device_hint: str | None = None) -> DeviceRecord:
        return self._service.resolve_device(device_hint)

    def connect(self, *, device_hint: str | None = None) -> BitbangSession:
        _, session = self._service.connect(device_hint)
        return session

    def probe(self, *, device_hint: str | None = None) -> ProbeResult:
        return self._service.probe(device_hint)

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
        return self._service.i2c_transaction(
            write,
            read_count,
            device_hint=device_hint,
            speed=speed,
            power=power,
            pullups=pullups,
        )
