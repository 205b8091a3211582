"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from pathlib import Path

import typer

from gattecho.core.codec import EchoRequest, VersionRequest, decode, describe, encode
from gattecho.core.config_loader import load_config
from gattecho.core.errors import GattEchoError
from gattecho.core.model import PeripheralSnapshot
from gattecho.core.peripheral import Peripheral
from gattecho.transports.bless_server import BlessRadio

app = typer.Typer(help="Emulated BLE peripheral speaking the version/echo protocol")


def _status_lines(snapshot: PeripheralSnapshot) -> Iterator[str]:
    yield f"Status: {snapshot.status_text}"
    if snapshot.last_error:
        yield f"Error: {snapshot.last_error}"


class _Printer:
    """Prints what changed between two published snapshots."""

    def __init__(self) -> None:
        self._previous: PeripheralSnapshot | None = None

    def __call__(self, snapshot: PeripheralSnapshot) -> None:
        previous = self._previous
        self._previous = snapshot
        if (
            previous is None
            or previous.status_text != snapshot.status_text
            or previous.last_error != snapshot.last_error
        ):
            for line in _status_lines(snapshot):
                typer.echo(line)

        known = {s.identity for s in previous.sessions} if previous else set()
        for session in snapshot.sessions:
            if session.identity not in known:
                typer.echo(f"+ {session.name} connected")
        logged = len(previous.echo_log) if previous else 0
        if len(snapshot.echo_log) < logged:
            typer.echo("Echo log cleared")
            logged = 0
        for entry in snapshot.echo_log[logged:]:
            typer.echo(f"[{entry.timestamp:%H:%M:%S}] {entry.device_name}: {entry.text}")


@app.command("run")
def run_peripheral(
    config: Path | None = typer.Option(None, "--config", help="YAML file overriding packaged defaults"),
    advertise: bool = typer.Option(True, "--advertise/--no-advertise", help="Start advertising immediately"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run the peripheral until interrupted."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        loaded = load_config(config)
        for warning in loaded.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        peripheral = Peripheral(loaded.config, BlessRadio())
        peripheral.subscribe(_Printer())
        if advertise:
            peripheral.start_advertising()
        asyncio.run(peripheral.run())
    except GattEchoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        typer.echo("Stopped")


@app.command("config")
def show_config(
    config: Path | None = typer.Option(None, "--config", help="YAML file overriding packaged defaults"),
) -> None:
    """Print the effective configuration."""
    try:
        loaded = load_config(config)
    except GattEchoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    cfg = loaded.config
    typer.echo(f"device_name: {cfg.device_name}")
    typer.echo(f"firmware_version: {cfg.firmware_version}")
    typer.echo(f"service_uuid: {cfg.service_uuid}")
    typer.echo(f"characteristic_uuid: {cfg.characteristic_uuid}")
    typer.echo(f"retry_delay_s: {cfg.retry_delay_s}")
    typer.echo(f"event_queue_size: {cfg.event_queue_size}")


@app.command("decode")
def decode_frame(frame: str = typer.Argument(..., help="Frame as hex, spaces allowed")) -> None:
    """Decode one protocol frame."""
    try:
        data = bytes.fromhex(frame.replace(" ", ""))
    except ValueError:
        typer.echo(f"Error: '{frame}' is not valid hex", err=True)
        raise typer.Exit(code=1) from None
    try:
        typer.echo(describe(decode(data)))
    except GattEchoError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("encode")
def encode_request(
    kind: str = typer.Argument(..., help="'version' or 'echo'"),
    text: str = typer.Argument("", help="Echo text (UTF-8)"),
) -> None:
    """Print the hex frame a central would write for a request."""
    if kind == "version":
        typer.echo(encode(VersionRequest()).hex())
        return
    if kind != "echo":
        typer.echo(f"Error: unknown request kind '{kind}' (expected version or echo)", err=True)
        raise typer.Exit(code=1)
    try:
        typer.echo(encode(EchoRequest(payload=text.encode("utf-8"))).hex())
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
