"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import TypeVar

import typer

from lightsync.api import Client
from lightsync.core.codec import format_timestamp
from lightsync.core.config import AppConfig, load_config
from lightsync.core.errors import LightsyncError
from lightsync.core.model import Device, DeviceColor

app = typer.Typer(help="Mirror and edit smart-light state shared with the host application")

T = TypeVar("T")


class Power(str, Enum):
    on = "on"
    off = "off"


@dataclass
class CliState:
    config_path: Path | None = None
    verbose: bool = False


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _load_config(state: CliState) -> AppConfig:
    config = load_config(state.config_path)
    level = logging.DEBUG if state.verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    return config


def _run(ctx: typer.Context, operation: Callable[[Client], Awaitable[T]]) -> T:
    state = _state(ctx)

    async def _main() -> T:
        client = Client(_load_config(state))
        try:
            await client.start()
            return await operation(client)
        finally:
            await client.close()

    try:
        return asyncio.run(_main())
    except LightsyncError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def _format_device(device: Device) -> str:
    power = "on" if device.power_state else "off"
    online = "online" if device.is_online else "offline"
    color = f"rgb({device.color.red},{device.color.green},{device.color.blue})"
    if device.color.kelvin is not None:
        color += f" {device.color.kelvin}K"
    group = f" group={device.group_id}" if device.group_id else ""
    return f"{device.id} {device.name} [{device.model}] {online} power={power} brightness={device.brightness} {color}{group}"


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    ctx.obj = CliState(config_path=config, verbose=verbose)


@app.command("status")
def show_status(ctx: typer.Context) -> None:
    """Show transport connectivity and storage diagnostics."""

    async def _op(client: Client) -> None:
        status = client.status
        typer.echo(status.connection_summary)
        typer.echo(f"Status: {status.status_message}")
        last_sync = format_timestamp(status.last_sync_time) if status.last_sync_time else "never"
        typer.echo(f"Last sync: {last_sync}")
        enabled = ", ".join(t.value for t in status.enabled_transports) or "none"
        typer.echo(f"Enabled transports: {enabled}")
        typer.echo(client.sync.storage_info)

    _run(ctx, _op)


@app.command("devices")
def list_devices(
    ctx: typer.Context,
    online_only: bool = typer.Option(False, "--online-only", help="Hide offline devices"),
) -> None:
    """List devices known to the shared store."""

    async def _op(client: Client) -> None:
        settings = await client.get_settings()
        include_offline = settings.show_offline_devices and not online_only
        devices = client.list_devices(include_offline=include_offline)
        if not devices:
            typer.echo("No devices found")
            return
        for device in devices:
            typer.echo(_format_device(device))

    _run(ctx, _op)


@app.command("groups")
def list_groups(ctx: typer.Context) -> None:
    """List device groups and their members."""

    async def _op(client: Client) -> None:
        groups = client.list_groups()
        if not groups:
            typer.echo("No groups found")
            return
        for group in groups:
            members = ", ".join(group.device_ids) or "<empty>"
            typer.echo(f"{group.id}: {group.name}")
            typer.echo(f"  devices: {members}")

    _run(ctx, _op)


@app.command("sync")
def sync_now(ctx: typer.Context) -> None:
    """Refresh every enabled transport."""

    async def _op(client: Client) -> None:
        status = await client.refresh()
        typer.echo(f"{status.status_message} ({status.connection_summary})")
        typer.echo(f"{len(client.list_devices())} device(s), {len(client.list_groups())} group(s)")

    _run(ctx, _op)


@app.command("power")
def set_power(ctx: typer.Context, device: str, state: Power) -> None:
    """Turn a device on or off."""

    async def _op(client: Client) -> None:
        updated = await client.set_power(device, state is Power.on)
        typer.echo(_format_device(updated))

    _run(ctx, _op)


@app.command("brightness")
def set_brightness(ctx: typer.Context, device: str, value: int) -> None:
    """Set device brightness (0-100)."""

    async def _op(client: Client) -> None:
        updated = await client.set_brightness(device, value)
        typer.echo(_format_device(updated))

    _run(ctx, _op)


@app.command("color")
def set_color(ctx: typer.Context, device: str, red: int, green: int, blue: int) -> None:
    """Set device RGB color (each channel 0-255)."""

    async def _op(client: Client) -> None:
        updated = await client.set_color(device, DeviceColor(red, green, blue))
        typer.echo(_format_device(updated))

    _run(ctx, _op)


@app.command("temperature")
def set_temperature(ctx: typer.Context, device: str, kelvin: int) -> None:
    """Set device color temperature (2000-9000K)."""

    async def _op(client: Client) -> None:
        updated = await client.set_color_temperature(device, kelvin)
        typer.echo(_format_device(updated))

    _run(ctx, _op)


@app.command("group-create")
def create_group(
    ctx: typer.Context,
    name: str,
    devices: list[str] = typer.Argument(..., help="Device IDs to include"),
    icon: str | None = typer.Option(None, "--icon", help="Icon tag"),
) -> None:
    """Create a group from existing devices."""

    async def _op(client: Client) -> None:
        group = await client.create_group(name, devices, icon=icon)
        typer.echo(f"Created group {group.id}: {group.name} ({len(group.device_ids)} device(s))")

    _run(ctx, _op)


@app.command("group-delete")
def delete_group(ctx: typer.Context, group: str) -> None:
    """Delete a group; member devices are kept."""

    async def _op(client: Client) -> None:
        await client.delete_group(group)
        typer.echo(f"Deleted group {group}")

    _run(ctx, _op)


@app.command("group-power")
def set_group_power(ctx: typer.Context, group: str, state: Power) -> None:
    """Turn every device in a group on or off."""

    async def _op(client: Client) -> None:
        await client.set_group_power(group, state is Power.on)
        typer.echo(f"Group {group} power {state.value}")

    _run(ctx, _op)


@app.command("settings")
def show_settings(ctx: typer.Context) -> None:
    """Show synced settings."""

    async def _op(client: Client) -> None:
        settings = await client.get_settings()
        typer.echo(f"cloud sync: {settings.cloud_sync_enabled}")
        typer.echo(f"shared storage: {settings.app_groups_enabled}")
        typer.echo(f"local network: {settings.local_network_enabled}")
        typer.echo(f"bluetooth: {settings.bluetooth_enabled}")
        typer.echo(f"auto refresh interval: {settings.auto_refresh_interval:g}s")
        typer.echo(f"show offline devices: {settings.show_offline_devices}")
        typer.echo(f"shared storage id: {settings.app_group_identifier}")
        typer.echo(f"remote container: {settings.cloud_container}")

    _run(ctx, _op)


@app.command("settings-set")
def update_settings(
    ctx: typer.Context,
    cloud: bool | None = typer.Option(None, "--cloud/--no-cloud", help="Remote store sync"),
    shared: bool | None = typer.Option(None, "--shared/--no-shared", help="Shared storage with the host app"),
    local_network: bool | None = typer.Option(None, "--local-network/--no-local-network"),
    bluetooth: bool | None = typer.Option(None, "--bluetooth/--no-bluetooth"),
    refresh_interval: float | None = typer.Option(None, "--refresh-interval", help="Seconds, 0 disables"),
    show_offline: bool | None = typer.Option(None, "--show-offline/--hide-offline"),
) -> None:
    """Update synced settings and apply transport toggles."""
    changes = {
        "cloud_sync_enabled": cloud,
        "app_groups_enabled": shared,
        "local_network_enabled": local_network,
        "bluetooth_enabled": bluetooth,
        "auto_refresh_interval": refresh_interval,
        "show_offline_devices": show_offline,
    }

    async def _op(client: Client) -> None:
        current = await client.get_settings()
        updated = replace(current, **{k: v for k, v in changes.items() if v is not None})
        await client.update_settings(updated)
        typer.echo(f"Settings saved. {client.status.connection_summary}")

    _run(ctx, _op)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
