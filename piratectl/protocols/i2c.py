"""Binary I2C mode command codec.

Opcode layout as documented by the Bus Pirate firmware:

    00000000  exit to bitbang, replies BBIO1
    00000001  mode version, replies I2C1
    00000010  start bit, replies 0x01
    00000011  stop bit, replies 0x01
    00000100  read byte, replies the byte (ACK/NACK must follow)
    00000110  ACK bit, replies 0x01
    00000111  NACK bit, replies 0x01
    00001000  write then read
    00001111  start/stop bus sniffer
    0001xxxx  bulk write of xxxx+1 bytes
    0100wxyz  peripherals: w=power x=pullups y=AUX z=CS
    010100xy  pull-up voltage select (v4 only): x=5V y=3.3V
    011000xx  bus speed
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from piratectl.core.errors import InvalidArgumentError, ProtocolMismatchError
from piratectl.protocols.base import (
    OK,
    Command,
    FixedReply,
    ReadExact,
    SendOnly,
    check_reply,
    pack_flags,
    unpack_flags,
)

MODE_MAGIC = b"I2C1"
BITBANG_MAGIC = b"BBIO1"

BULK_WRITE_MAX = 16
WRITE_THEN_READ_MAX = 4096

_BULK_WRITE = 0b0001_0000
_CONFIGURE = 0b0100_0000
_PULLUP_SELECT = 0b0101_0000
_SET_SPEED = 0b0110_0000
_WRITE_THEN_READ = 0x08

ACK = 0x00
NACK = 0x01

EXIT_TO_BITBANG = FixedReply("exiting I2C mode", 0x00, BITBANG_MAGIC)
QUERY_VERSION = FixedReply("querying I2C mode version", 0x01, MODE_MAGIC)
START_BIT = FixedReply("sending I2C start bit", 0x02, OK)
STOP_BIT = FixedReply("sending I2C stop bit", 0x03, OK)
ACK_BIT = FixedReply("sending I2C ACK bit", 0x06, OK)
NACK_BIT = FixedReply("sending I2C NACK bit", 0x07, OK)
START_BUS_SNIFFER = SendOnly("starting bus sniffer", 0x0F)
EXIT_BUS_SNIFFER = SendOnly("stopping bus sniffer", 0x0F)


class Speed(IntEnum):
    HZ_5000 = 0b00
    HZ_50000 = 0b01
    HZ_100000 = 0b10
    HZ_400000 = 0b11


class PullupVoltage(IntEnum):
    NONE = 0b00
    V3_3 = 0b01
    V5 = 0b10


_SPEED_HZ = {
    Speed.HZ_5000: 5_000,
    Speed.HZ_50000: 50_000,
    Speed.HZ_100000: 100_000,
    Speed.HZ_400000: 400_000,
}

# Eight data bits plus the ACK/NACK clock per byte.
_BITS_PER_BYTE = 9


def speed_hz(speed: Speed) -> int:
    return _SPEED_HZ[_member(Speed, speed, "I2C speed")]


def _member(enum_type, value, context: str):
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(str(int(member)) for member in enum_type)
        raise InvalidArgumentError(f"{context} must be one of {choices}, got {value!r}") from None


@dataclass(frozen=True)
class ReadByte(Command):
    name: ClassVar[str] = "reading I2C byte"

    def encode(self) -> bytes:
        return bytes([0x04])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> int:
        return reply[0]


@dataclass(frozen=True)
class BulkWriteResult:
    acks: tuple[bool, ...]

    @property
    def all_acked(self) -> bool:
        return all(self.acks)


@dataclass(frozen=True)
class BulkWrite(Command):
    data: bytes

    name: ClassVar[str] = "bulk writing I2C bytes"

    def encode(self) -> bytes:
        size = len(self.data)
        if size == 0 or size > BULK_WRITE_MAX:
            raise InvalidArgumentError(
                f"Bulk write takes 1 to {BULK_WRITE_MAX} bytes, got {size}"
            )
        return bytes([_BULK_WRITE | ((size - 1) & 0b0001_1111)]) + bytes(self.data)

    def reply_length(self) -> int:
        return 1 + len(self.data)

    def parse(self, reply: bytes) -> BulkWriteResult:
        check_reply(OK, reply[:1], self.name)
        acks: list[bool] = []
        for value in reply[1:]:
            if value not in (ACK, NACK):
                raise ProtocolMismatchError("00 or 01 per byte", reply, self.name)
            acks.append(value == ACK)
        return BulkWriteResult(acks=tuple(acks))


@dataclass(frozen=True)
class ConfigurePeripherals(Command):
    power: bool = False
    pullups: bool = False
    aux: bool = False
    cs: bool = False

    name: ClassVar[str] = "configuring I2C peripherals"

    def encode(self) -> bytes:
        return bytes([_CONFIGURE | pack_flags(self.power, self.pullups, self.aux, self.cs)])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> None:
        check_reply(OK, reply, self.name)

    @classmethod
    def from_byte(cls, value: int) -> ConfigurePeripherals:
        if value & 0b1111_0000 != _CONFIGURE:
            raise InvalidArgumentError(f"0x{value:02x} is not a peripheral configuration byte")
        power, pullups, aux, cs = unpack_flags(value, 4)
        return cls(power=power, pullups=pullups, aux=aux, cs=cs)


@dataclass(frozen=True)
class SelectPullupVoltage(Command):
    voltage: PullupVoltage

    name: ClassVar[str] = "selecting pull-up voltage"

    def encode(self) -> bytes:
        return bytes([_PULLUP_SELECT | _member(PullupVoltage, self.voltage, "Pull-up voltage")])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> None:
        if reply == b"\x00":
            raise ProtocolMismatchError(
                OK, reply, f"{self.name} (voltage present on VEXTERN, rail not connected)"
            )
        check_reply(OK, reply, self.name)


@dataclass(frozen=True)
class SetSpeed(Command):
    speed: Speed

    name: ClassVar[str] = "setting I2C speed"

    def encode(self) -> bytes:
        return bytes([_SET_SPEED | _member(Speed, self.speed, "I2C speed")])

    def reply_length(self) -> int:
        return 1

    def parse(self, reply: bytes) -> None:
        check_reply(OK, reply, self.name)

    @classmethod
    def from_byte(cls, value: int) -> SetSpeed:
        if value & 0b1111_1100 != _SET_SPEED:
            raise InvalidArgumentError(f"0x{value:02x} is not an I2C speed byte")
        return cls(speed=Speed(value & 0b11))


@dataclass(frozen=True)
class WriteThenReadResult:
    acked: bool
    data: bytes


@dataclass(frozen=True)
class WriteThenRead(Command):
    """Start, write, read with internal ACK/NACK, stop; all in one exchange."""

    data: bytes = b""
    read_count: int = 0

    name: ClassVar[str] = "running I2C write-then-read"

    def bus_time_s(self, speed: Speed) -> float:
        """Clock time the instrument spends on the bus before it replies."""
        return (len(self.data) + self.read_count) * _BITS_PER_BYTE / speed_hz(speed)

    def _validate(self) -> None:
        if len(self.data) > WRITE_THEN_READ_MAX:
            raise InvalidArgumentError(
                f"Write-then-read writes at most {WRITE_THEN_READ_MAX} bytes, got {len(self.data)}"
            )
        if self.read_count < 0 or self.read_count > WRITE_THEN_READ_MAX:
            raise InvalidArgumentError(
                f"Write-then-read reads 0 to {WRITE_THEN_READ_MAX} bytes, got {self.read_count}"
            )

    def encode(self) -> bytes:
        self._validate()
        header = bytes([_WRITE_THEN_READ])
        header += len(self.data).to_bytes(2, "big")
        header += self.read_count.to_bytes(2, "big")
        return header + bytes(self.data)

    def reply_length(self) -> int:
        return 1 + self.read_count

    def parse(self, reply: bytes) -> WriteThenReadResult:
        status = reply[:1]
        if status == b"\x00":
            return WriteThenReadResult(acked=False, data=b"")
        check_reply(OK, status, self.name)
        data = bytes(reply[1:])
        if len(data) != self.read_count:
            raise ProtocolMismatchError(f"{self.read_count} data bytes", data, self.name)
        return WriteThenReadResult(acked=True, data=data)

    def decode(self, read_exact: ReadExact) -> WriteThenReadResult:
        status = read_exact(1)
        if status != OK or self.read_count == 0:
            return self.parse(status)
        return self.parse(status + read_exact(self.read_count))
