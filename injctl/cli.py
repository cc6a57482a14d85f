"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer

from injctl.api import connect
from injctl.core.config_loader import load_config
from injctl.core.errors import InjctlError
from injctl.core.model import (
    ErrorTextEvent,
    Event,
    ParseFailureEvent,
    ResultEvent,
    RigConfig,
    StatusEvent,
)
from injctl.core.session import InjectorSession
from injctl.core.store import format_number
from injctl.transports.uart import enumerate_ports

app = typer.Typer(help="Serial control for the four-channel fuel injector test rig")

PortOption = typer.Option(None, "--port", help="Serial device, e.g. /dev/ttyACM0 or COM3")
ConfigOption = typer.Option(None, "--config", help="Config file used instead of the user config")
ListenOption = typer.Option(1.0, "--listen", min=0.0, help="Seconds to keep printing device output")

Action = Callable[[InjectorSession], Awaitable[None]]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None) -> RigConfig:
    loaded = load_config(config_path)
    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return loaded.config


def _build_session(port: str | None, config_path: Path | None) -> InjectorSession:
    return connect(port, config=_load_config(config_path))


def render_event(event: Event) -> tuple[str, bool]:
    """Return the console text for an event and whether it belongs on stderr."""
    if isinstance(event, StatusEvent):
        return f"Status: Pulse={format_number(event.pulse_width_ms)}ms, SD={event.sd_state}", False
    if isinstance(event, ResultEvent):
        return (
            f"Injector {event.injector_id} ({event.mode}): "
            f"Peak={event.peak_current_a:.2f}A, Avg={event.avg_current_a:.2f}A"
        ), False
    if isinstance(event, ErrorTextEvent):
        return f"Device error: {event.text}", True
    if isinstance(event, ParseFailureEvent):
        return f"Unparseable line: {event.raw}", True
    return event.text, False


def _print_event(event: Event) -> None:
    text, err = render_event(event)
    typer.echo(text, err=err)


async def _drive(session: InjectorSession, action: Action | None, listen_s: float | None) -> None:
    remove = session.add_listener(_print_event)
    try:
        async with session:
            if action is not None:
                await action(session)
            if listen_s is None:
                await session.wait_closed()
            else:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(session.wait_closed(), timeout=listen_s)
            if not session.connected:
                typer.echo("Connection closed by device", err=True)
    finally:
        remove()


def _run(session: InjectorSession, action: Action | None, listen_s: float | None) -> None:
    try:
        asyncio.run(_drive(session, action, listen_s))
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)


@app.command("ports")
def list_serial_ports() -> None:
    """List serial ports that could host the rig."""
    ports = enumerate_ports()
    if not ports:
        typer.echo("No serial ports found")
        return
    for device, description in ports:
        typer.echo(f"{device} {description}")


@app.command("commands")
def list_commands(config: Path | None = ConfigOption) -> None:
    """List named rig commands and their tokens."""
    try:
        rig = _load_config(config)
        if not rig.commands:
            typer.echo("No commands configured")
            raise typer.Exit(code=1)
        for name, spec in sorted(rig.commands.items()):
            typer.echo(f"{name} [{spec.token}]: {spec.description}")
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("send")
def send_token(
    token: str,
    port: str | None = PortOption,
    config: Path | None = ConfigOption,
    listen: float = ListenOption,
) -> None:
    """Send a raw command token, e.g. '1' to fire injector 1."""

    async def _action(session: InjectorSession) -> None:
        await session.send(token)
        typer.echo(f"> {token.strip()}")

    try:
        _run(_build_session(port, config), _action, listen)
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("run")
def run_command(
    name: str,
    port: str | None = PortOption,
    config: Path | None = ConfigOption,
    listen: float = ListenOption,
) -> None:
    """Send a named command from the command table (see 'commands')."""

    async def _action(session: InjectorSession) -> None:
        spec = await session.run(name)
        typer.echo(f"> {spec.token} ({spec.name})")

    try:
        _run(_build_session(port, config), _action, listen)
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("pulse-width")
def set_pulse_width(
    value: float,
    port: str | None = PortOption,
    config: Path | None = ConfigOption,
    listen: float = ListenOption,
) -> None:
    """Set the injector pulse width in milliseconds (0.1 - 100)."""

    async def _action(session: InjectorSession) -> None:
        sequence = await session.set_pulse_width(value)
        typer.echo(f"> p, {sequence.value_token}")

    try:
        _run(_build_session(port, config), _action, listen)
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("status")
def show_status(
    port: str | None = PortOption,
    config: Path | None = ConfigOption,
    timeout: float = typer.Option(3.0, "--timeout", min=0.0, help="Seconds to wait for a status line"),
) -> None:
    """Connect, wait for the rig's status report, and print the parameters."""
    received = False

    async def _action(session: InjectorSession) -> None:
        nonlocal received
        got_status = asyncio.Event()
        remove = session.add_listener(
            lambda event: got_status.set() if isinstance(event, StatusEvent) else None
        )
        try:
            await asyncio.wait_for(
                got_status.wait(),
                timeout=session.config.status_poll_delay_s + timeout,
            )
            received = True
        except asyncio.TimeoutError:
            return
        finally:
            remove()
        snapshot = session.snapshot()
        typer.echo(f"Pulse width:    {snapshot.pulse_width}")
        typer.echo(f"Peak time:      {snapshot.peak_time}")
        typer.echo(f"Hold frequency: {snapshot.hold_freq}")
        typer.echo(f"Hold duty:      {snapshot.hold_duty}")

    try:
        _run(_build_session(port, config), _action, 0.0)
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    if not received:
        typer.echo("Error: No status received from device", err=True)
        raise typer.Exit(code=1)


@app.command("monitor")
def monitor(
    port: str | None = PortOption,
    config: Path | None = ConfigOption,
    duration: float | None = typer.Option(None, "--duration", min=0.0, help="Stop after N seconds"),
) -> None:
    """Print everything the rig sends until interrupted."""
    try:
        _run(_build_session(port, config), None, duration)
    except InjctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
