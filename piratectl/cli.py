"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from enum import Enum

import typer

from piratectl.core.errors import PirateError
from piratectl.core.service import PirateService
from piratectl.protocols.i2c import Speed

app = typer.Typer(help="Bus Pirate binary-mode control")


class SpeedChoice(str, Enum):
    khz5 = "5k"
    khz50 = "50k"
    khz100 = "100k"
    khz400 = "400k"


_SPEEDS = {
    SpeedChoice.khz5: Speed.HZ_5000,
    SpeedChoice.khz50: Speed.HZ_50000,
    SpeedChoice.khz100: Speed.HZ_100000,
    SpeedChoice.khz400: Speed.HZ_400000,
}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol traffic to stderr"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _build_service(profile: str | None) -> PirateService:
    service = PirateService(profile_id=profile)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.command("list")
def list_devices(
    profile: str | None = typer.Option(None, "--profile", help="Instrument profile ID"),
) -> None:
    """List attached instruments."""
    try:
        service = _build_service(profile)
        catalog = service.list_devices()
        catalog.sort()
        devices = list(catalog)
        if not devices:
            typer.echo("No bus pirates found.")
            raise typer.Exit(code=1)

        for index, device in enumerate(devices, start=1):
            typer.echo(f"({index}) {device.path} ({device.hwid})")
    except PirateError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("test")
def test_device(
    device: str | None = typer.Option(None, "--device", "-d", help="Substring of port path or hardware id"),
    profile: str | None = typer.Option(None, "--profile", help="Instrument profile ID"),
) -> None:
    """Open an instrument and bring it into binary bitbang mode."""
    try:
        service = _build_service(profile)
        result = service.probe(device_hint=device)
        typer.echo(f"Good pirate at {result.device.path}: bitbang protocol version {int(result.version)}")
    except PirateError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("i2c")
def i2c_transaction(
    write: str = typer.Option("", "--write", "-w", help="Hex bytes to write, e.g. 'a0 00'"),
    read: int = typer.Option(0, "--read", "-r", min=0, help="Number of bytes to read"),
    speed: SpeedChoice = typer.Option(SpeedChoice.khz100, "--speed", help="Bus speed"),
    power: bool = typer.Option(False, "--power/--no-power", help="Enable the power supplies"),
    pullups: bool = typer.Option(False, "--pullups/--no-pullups", help="Enable on-board pull-ups"),
    device: str | None = typer.Option(None, "--device", "-d", help="Substring of port path or hardware id"),
    profile: str | None = typer.Option(None, "--profile", help="Instrument profile ID"),
) -> None:
    """Run one I2C write-then-read transaction."""
    try:
        payload = bytes.fromhex(write)
    except ValueError:
        typer.echo(f"Error: --write must be hex bytes, got '{write}'", err=True)
        raise typer.Exit(code=1) from None

    try:
        service = _build_service(profile)
        result = service.i2c_transaction(
            payload,
            read,
            device_hint=device,
            speed=_SPEEDS[speed],
            power=power,
            pullups=pullups,
        )
    except PirateError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if not result.acked:
        typer.echo(f"NACK: write {result.written_hex or '<none>'} was not acknowledged", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"ACK on {result.device.path}")
    if result.data_hex:
        typer.echo(f"read={result.data_hex}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
