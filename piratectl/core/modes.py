"""Sessions for bitbang mode and the protocol modes entered from it."""

from __future__ import annotations

from typing import ClassVar

from piratectl.core.errors import InvalidArgumentError
from piratectl.core.model import BinModeVersion, Mode
from piratectl.core.session import Session, UnknownSession
from piratectl.core.transition import enter_mode, enter_mode_unverified
from piratectl.protocols import bitbang, i2c
from piratectl.protocols.base import FixedReply
from piratectl.transports.base import Transport

_QUERY_VERSION_OPCODE = 0x01


class BitbangSession(Session):
    mode = Mode.BITBANG

    def __init__(self, transport: Transport, version: BinModeVersion = BinModeVersion.ONE) -> None:
        super().__init__(transport)
        self.version = version

    def __repr__(self) -> str:
        state = "consumed" if self.consumed else "open"
        return f"BitbangSession(version={int(self.version)}, {state})"

    def enter(self, mode: Mode) -> ModeSession:
        session_type = _MODE_SESSIONS.get(mode)
        if session_type is None:
            raise InvalidArgumentError(f"Cannot enter '{mode.value}' mode from bitbang mode")
        return enter_mode(self, bitbang.entry_for(mode), session_type)

    def enter_spi(self) -> SPISession:
        return enter_mode(self, bitbang.entry_for(Mode.SPI), SPISession)

    def enter_i2c(self) -> I2CSession:
        return enter_mode(self, bitbang.entry_for(Mode.I2C), I2CSession)

    def enter_uart(self) -> UARTSession:
        return enter_mode(self, bitbang.entry_for(Mode.UART), UARTSession)

    def enter_onewire(self) -> OneWireSession:
        return enter_mode(self, bitbang.entry_for(Mode.ONEWIRE), OneWireSession)

    def enter_rawwire(self) -> RawWireSession:
        return enter_mode(self, bitbang.entry_for(Mode.RAWWIRE), RawWireSession)

    def enter_jtag(self) -> JTAGSession:
        """Send the OpenOCD entry byte. Success is not verified."""
        return enter_mode_unverified(self, bitbang.ENTER_JTAG, JTAGSession)

    def reset_device(self) -> UnknownSession:
        """Reboot the instrument; it comes back in its user terminal."""
        return enter_mode(self, bitbang.RESET_DEVICE, UnknownSession)

    def query_version(self) -> BinModeVersion:
        self.execute(bitbang.RESET_TO_BITBANG)
        return BinModeVersion.ONE

    def configure_pins(
        self,
        *,
        aux: bool = False,
        mosi: bool = False,
        clk: bool = False,
        miso: bool = False,
        cs: bool = False,
    ) -> bitbang.PinState:
        return self.execute(bitbang.ConfigurePins(aux=aux, mosi=mosi, clk=clk, miso=miso, cs=cs))

    def set_pins(
        self,
        *,
        power: bool = False,
        pullup: bool = False,
        aux: bool = False,
        mosi: bool = False,
        clk: bool = False,
        miso: bool = False,
        cs: bool = False,
    ) -> bitbang.PinState:
        return self.execute(
            bitbang.SetPins(
                power=power, pullup=pullup, aux=aux, mosi=mosi, clk=clk, miso=miso, cs=cs
            )
        )

    def setup_pwm(self, prescaler: int, duty_cycle: int, period: int) -> None:
        self.execute(bitbang.SetupPWM(prescaler=prescaler, duty_cycle=duty_cycle, period=period))

    def clear_pwm(self) -> None:
        self.execute(bitbang.CLEAR_PWM)

    def probe_voltage(self) -> float:
        return self.execute(bitbang.ProbeVoltage())

    def measure_frequency(self) -> int:
        return self.execute(bitbang.MeasureFrequency())


class ModeSession(Session):
    """Commands every binary protocol mode shares."""

    exit_command: ClassVar[FixedReply] = FixedReply("returning to bitbang mode", 0x00, bitbang.BBIO_V1)

    @classmethod
    def version_command(cls) -> FixedReply:
        magic = bitbang.entry_for(cls.mode).expected_reply()
        return FixedReply(f"querying {cls.mode.value} mode version", _QUERY_VERSION_OPCODE, magic)

    def query_version(self) -> bytes:
        command = self.version_command()
        self.execute(command)
        return command.expected_reply()

    def exit_to_bitbang(self) -> BitbangSession:
        return enter_mode(self, self.exit_command, BitbangSession)


class SPISession(ModeSession):
    mode = Mode.SPI


class UARTSession(ModeSession):
    mode = Mode.UART


class OneWireSession(ModeSession):
    mode = Mode.ONEWIRE


class RawWireSession(ModeSession):
    mode = Mode.RAWWIRE


class I2CSession(ModeSession):
    mode = Mode.I2C
    exit_command = i2c.EXIT_TO_BITBANG

    def __init__(self, transport: Transport) -> None:
        super().__init__(transport)
        self.speed: i2c.Speed | None = None

    @classmethod
    def version_command(cls) -> FixedReply:
        return i2c.QUERY_VERSION

    def start_bit(self) -> None:
        self.execute(i2c.START_BIT)

    def stop_bit(self) -> None:
        self.execute(i2c.STOP_BIT)

    def read_byte(self) -> int:
        """Read one byte; follow with ``ack()`` or ``nack()``."""
        return self.execute(i2c.ReadByte())

    def ack(self) -> None:
        self.execute(i2c.ACK_BIT)

    def nack(self) -> None:
        self.execute(i2c.NACK_BIT)

    def bulk_write(self, data: bytes) -> i2c.BulkWriteResult:
        return self.execute(i2c.BulkWrite(bytes(data)))

    def configure_peripherals(
        self,
        *,
        power: bool = False,
        pullups: bool = False,
        aux: bool = False,
        cs: bool = False,
    ) -> None:
        self.execute(i2c.ConfigurePeripherals(power=power, pullups=pullups, aux=aux, cs=cs))

    def select_pullup_voltage(self, voltage: i2c.PullupVoltage) -> None:
        self.execute(i2c.SelectPullupVoltage(voltage))

    def set_speed(self, speed: i2c.Speed) -> None:
        command = i2c.SetSpeed(speed)
        self.execute(command)
        self.speed = i2c.Speed(command.speed)

    def write_then_read(self, data: bytes, read_count: int) -> i2c.WriteThenReadResult:
        """Run one write-then-read exchange.

        The status byte arrives only after the whole bus transaction, so the
        read timeout is stretched by the clock time of every byte moved. An
        unset speed is budgeted at the slowest rate.
        """
        command = i2c.WriteThenRead(bytes(data), read_count)
        command.encode()
        transport = self._link()
        previous = transport.get_timeout()
        if previous is None:
            return self.execute(command)
        transport.set_timeout(previous + command.bus_time_s(i2c.Speed.HZ_5000 if self.speed is None else self.speed))
        try:
            return self.execute(command)
        finally:
            transport.set_timeout(previous)

    def start_sniffer(self) -> None:
        """Start the bus sniffer. Send-only: the escaped traffic stream is left to the caller."""
        self.execute(i2c.START_BUS_SNIFFER)

    def exit_sniffer(self) -> None:
        self.execute(i2c.EXIT_BUS_SNIFFER)


class JTAGSession(Session):
    """OpenOCD mode; its command set is documented only in firmware source."""

    mode = Mode.JTAG


_MODE_SESSIONS: dict[Mode, type[ModeSession]] = {
    Mode.SPI: SPISession,
    Mode.I2C: I2CSession,
    Mode.UART: UARTSession,
    Mode.ONEWIRE: OneWireSession,
    Mode.RAWWIRE: RawWireSession,
}
