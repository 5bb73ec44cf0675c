"""Binary bitbang (BBIO) mode command codec.

The bitbang mode is reached from the user terminal by sending 0x00 twenty
or more times; the instrument answers every 0x00 with ``BBIOx`` where x is
the protocol version. From here the sub-protocol modes are entered:

    00000000  reset, replies BBIO1
    00000001  enter SPI, replies SPI1
    00000010  enter I2C, replies I2C1
    00000011  enter UART, replies ART1
    00000100  enter 1-Wire, replies 1W01
    00000101  enter raw-wire, replies RAW1
    00000110  enter OpenOCD JTAG (no documented reply)
    00001111  reset the instrument, replies 0x01 then reboots to the terminal
    00010010  PWM setup, 5 configuration bytes follow, replies 0x01
    00010011  clear PWM, replies 0x01
    00010100  voltage probe, replies 2 byte ADC value (high byte first)
    00010110  AUX frequency, replies 4 byte count (most significant first)
    010xxxxx  pin direction, 1=input: AUX|MOSI|CLK|MISO|CS
    1xxxxxxx  pin on/off: POWER|PULLUP|AUX|MOSI|CLK|MISO|CS

Both pin commands reply with one byte holding the current pin state in the
same layout as the command.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from piratectl.core.errors import InvalidArgumentError
from piratectl.core.model import BinModeVersion, Mode
from piratectl.protocols.base import (
    OK,
    Command,
    FixedReply,
    SendOnly,
    check_reply,
    pack_flags,
    require_range,
    unpack_flags,
)

MAGIC_PREFIX = b"BBIO"
BBIO_V1 = MAGIC_PREFIX + b"1"

ESCAPE_SEQUENCE = b"\n" * 10 + b"#\n"

_PIN_DIRECTION = 0b0100_0000
_PIN_DIRECTION_MASK = 0b1110_0000
_PIN_ON_OFF = 0b1000_0000

# ADC full scale maps to 6.6 V through the probe's divider.
_PROBE_SCALE = 6.6 / 1024

RESET_TO_BITBANG = FixedReply("resetting to bitbang mode", 0x00, BBIO_V1)
RESET_DEVICE = FixedReply("resetting instrument", 0x0F, OK)
CLEAR_PWM = FixedReply("clearing PWM", 0x13, OK)

MODE_ENTRIES: dict[Mode, FixedReply] = {
    Mode.SPI: FixedReply("entering SPI mode", 0x01, b"SPI1"),
    Mode.I2C: FixedReply("entering I2C mode", 0x02, b"I2C1"),
    Mode.UART: FixedReply("entering UART mode", 0x03, b"ART1"),
    Mode.ONEWIRE: FixedReply("entering 1-Wire mode", 0x04, b"1W01"),
    Mode.RAWWIRE: FixedReply("entering raw-wire mode", 0x05, b"RAW1"),
}

ENTER_JTAG = SendOnly("entering OpenOCD JTAG mode", 0x06)


def magic_for(version: BinModeVersion) -> bytes:
    return MAGIC_PREFIX + str(int(version)).encode("ascii")


def entry_for(mode: Mode) -> FixedReply:
    try:
        return MODE_ENTRIES[mode]
    except KeyError:
        raise InvalidArgumentError(f"Mode '{mode.value}' has no verified entry command") from None


@dataclass(frozen=True)
class PinState:
    power: bool = False
    pullup: bool = False
    aux: bool = False
    mosi: bool = False
    clk: bool = False
    miso: bool = False
    cs: bool = False

    @classmethod
    def from_byte(cls, value: int) -> PinState:
        power, pullup, aux, mosi, clk, miso, cs = unpack_flags(value, 7)
        return cls(power=power, pullup=pullup, aux=aux, mosi=mosi, clk=clk, miso=miso, cs=cs)


@dataclass(frozen=True)
class ConfigurePins(Command):
    """Pin direction; ``True`` makes the pin an input."""

    aux: bool = False
    mosi: bool = False
    clk: bool = False
    miso: bool = False
    cs: bool = False

    name: ClassVar[str] = "configuring pin direction"

    def encode(self) -> bytes:
        return bytes([_PIN_DIRECTION | pack_flags(self.aux, self.mosi, self.clk, self.miso, self.cs)])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> PinState:
        return PinState.from_byte(reply[0])

    @classmethod
    def from_byte(cls, value: int) -> ConfigurePins:
        if value & _PIN_DIRECTION_MASK != _PIN_DIRECTION:
            raise InvalidArgumentError(f"0x{value:02x} is not a pin direction byte")
        aux, mosi, clk, miso, cs = unpack_flags(value, 5)
        return cls(aux=aux, mosi=mosi, clk=clk, miso=miso, cs=cs)


@dataclass(frozen=True)
class SetPins(Command):
    power: bool = False
    pullup: bool = False
    aux: bool = False
    mosi: bool = False
    clk: bool = False
    miso: bool = False
    cs: bool = False

    name: ClassVar[str] = "setting pins"

    def encode(self) -> bytes:
        flags = pack_flags(self.power, self.pullup, self.aux, self.mosi, self.clk, self.miso, self.cs)
        return bytes([_PIN_ON_OFF | flags])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> PinState:
        return PinState.from_byte(reply[0])

    @classmethod
    def from_byte(cls, value: int) -> SetPins:
        if not value & _PIN_ON_OFF:
            raise InvalidArgumentError(f"0x{value:02x} is not a pin on/off byte")
        power, pullup, aux, mosi, clk, miso, cs = unpack_flags(value, 7)
        return cls(power=power, pullup=pullup, aux=aux, mosi=mosi, clk=clk, miso=miso, cs=cs)


@dataclass(frozen=True)
class SetupPWM(Command):
    """PWM on the AUX pin; registers as in the PIC24F output compare manual."""

    prescaler: int
    duty_cycle: int
    period: int

    name: ClassVar[str] = "setting up PWM"

    def encode(self) -> bytes:
        require_range(self.prescaler, 0, 0b11, context="PWM prescaler")
        require_range(self.duty_cycle, 0, 0xFFFF, context="PWM duty cycle")
        require_range(self.period, 0, 0xFFFF, context="PWM period")
        return (
            bytes([0x12, self.prescaler])
            + self.duty_cycle.to_bytes(2, "big")
            + self.period.to_bytes(2, "big")
        )

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> None:
        check_reply(OK, reply, self.name)


@dataclass(frozen=True)
class ProbeVoltage(Command):
    name: ClassVar[str] = "probing voltage"

    def encode(self) -> bytes:
        return bytes([0x14])

    def reply_length(self) -> int:
        return 2

    def parse(self, reply: bytes) -> float:
        return int.from_bytes(reply, "big") * _PROBE_SCALE


@dataclass(frozen=True)
class MeasureFrequency(Command):
    name: ClassVar[str] = "measuring AUX frequency"

    def encode(self) -> bytes:
        return bytes([0x16])

    def reply_length(self) -> int:
        return 4

    def parse(self, reply: bytes) -> int:
        return int.from_bytes(reply, "big")
