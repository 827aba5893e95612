"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import typer

from hikctl.api import Client
from hikctl.core.errors import HikctlError, InvalidArgumentError

app = typer.Typer(help="Hikvision DVR/NVR sessions, snapshots and recording downloads")

INPUT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

DeviceOpt = typer.Option(None, "--device", "-d", help="Configured device name")
HostOpt = typer.Option(None, "--host", help="Device address")
PortOpt = typer.Option(8000, "--port", help="SDK port")
UserOpt = typer.Option("admin", "--user", "-u", help="Username")
PasswordOpt = typer.Option(None, "--password", "-p", help="Password")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")


def _build_client() -> Client:
    client = Client()
    for warning in getattr(client.settings, "warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return client


def _connect(
    client: Client,
    device: str | None,
    host: str | None,
    port: int,
    user: str,
    password: str | None,
) -> str:
    if device:
        return client.login_profile(device)
    if not host:
        raise InvalidArgumentError("Pass --device NAME or --host ADDRESS")
    return client.login(host, port, user, password or "")


def _parse_time(value: str, name: str) -> datetime:
    try:
        return datetime.strptime(value, INPUT_TIME_FORMAT)
    except ValueError:
        raise InvalidArgumentError(f"Invalid {name} format. Use: YYYY-MM-DD HH:MM:SS") from None


@app.command("devices")
def list_devices() -> None:
    """List device profiles from the configuration file."""
    try:
        client = _build_client()
        devices = client.settings.devices
        if not devices:
            typer.echo("No devices configured")
            return
        for name, profile in devices.items():
            typer.echo(f"{name}: {profile.username}@{profile.host}:{profile.port}")
    except HikctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("info")
def show_info(
    device: str | None = DeviceOpt,
    host: str | None = HostOpt,
    port: int = PortOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
) -> None:
    """Log in and print the device descriptor."""
    try:
        with _build_client() as client:
            session_id = _connect(client, device, host, port, user, password)
            info = client.device_info(session_id)
            typer.echo(f"Session: {session_id}")
            typer.echo(f"Serial: {info.serial_number}")
            typer.echo(f"Analog channels: {info.analog_channel_count} (start {info.start_analog_channel})")
            typer.echo(f"IP channels: {info.ip_channel_count} (start {info.start_digital_channel})")
            typer.echo(f"Disks: {info.disk_count}")
    except HikctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("channels")
def list_channels(
    device: str | None = DeviceOpt,
    host: str | None = HostOpt,
    port: int = PortOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
) -> None:
    """List logic and IP channels."""
    try:
        with _build_client() as client:
            session_id = _connect(client, device, host, port, user, password)
            channels = client.list_channels(session_id)
            if not channels:
                typer.echo("No channels reported")
                return
            for channel in channels:
                state = "enabled" if channel.enabled else "disabled"
                line = f"{channel.kind:<5} {channel.number:>3} {state}"
                if channel.kind == "ip":
                    line += f" {channel.ipv4_address or '-'}"
                typer.echo(line)
    except HikctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("capture")
def capture(
    channel: int,
    output_dir: Path | None = typer.Option(None, "--out", "-o", help="Directory for the image"),
    device: str | None = DeviceOpt,
    host: str | None = HostOpt,
    port: int = PortOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
) -> None:
    """Capture a JPEG snapshot from CHANNEL."""
    try:
        with _build_client() as client:
            session_id = _connect(client, device, host, port, user, password)
            path = client.capture(session_id, channel, output_dir)
            typer.echo(f"Saved {path}")
    except HikctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("download")
def download(
    channel: int,
    start: str = typer.Argument(..., help="Start time, YYYY-MM-DD HH:MM:SS (device local time)"),
    end: str = typer.Argument(..., help="End time, YYYY-MM-DD HH:MM:SS (device local time)"),
    output_dir: Path | None = typer.Option(None, "--out", "-o", help="Directory for the recording"),
    device: str | None = DeviceOpt,
    host: str | None = HostOpt,
    port: int = PortOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
) -> None:
    """Download the recording of CHANNEL between START and END.

    Blocks until the device reports completion; Ctrl-C cancels the transfer.
    """
    try:
        start_time = _parse_time(start, "start_time")
        end_time = _parse_time(end, "end_time")
        with _build_client() as client:
            session_id = _connect(client, device, host, port, user, password)
            job = client.download(
                session_id,
                channel,
                start_time,
                end_time,
                output_dir=output_dir,
                on_progress=lambda progress: typer.echo(f"progress {progress}%"),
            )
            typer.echo(f"Downloading {job.download_id}")
            try:
                while not job.wait(0.2):
                    pass
            except KeyboardInterrupt:
                job.cancel()
                typer.echo("Cancelled", err=True)
                raise typer.Exit(code=130) from None
            if job.monitor.error is not None:
                raise job.monitor.error
            typer.echo(f"Saved {job.path}")
    except HikctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
