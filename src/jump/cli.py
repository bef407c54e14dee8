"""Command-line interface for jump."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from jump import __version__
from jump.config.loader import DEFAULT_CONFIG_FILE, AppConfig

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_cfg(config: str) -> AppConfig:
    from jump.config.loader import ConfigError, read_app_config

    try:
        return read_app_config(Path(config))
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)


def _open_store(cfg: AppConfig):
    from jump.core.storage import DeviceStore, StorageError

    try:
        return DeviceStore.load(cfg.storage.file_path)
    except StorageError as exc:
        click.echo(f"Failed to load storage: {exc}", err=True)
        sys.exit(1)


def _resolve_device(store, ref: str):
    """Find a device by id, falling back to an exact name match."""
    device = store.get(ref)
    if device is None:
        device = next((d for d in store.get_all() if d.name == ref), None)
    if device is None:
        click.echo(f"Device '{ref}' not found.", err=True)
        sys.exit(1)
    return device


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="jump")
@click.option(
    "--config",
    "-c",
    default=str(DEFAULT_CONFIG_FILE),
    envvar="JUMP_CONFIG",
    show_default=True,
    help="Path to jump config.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str, verbose: bool) -> None:
    """jump — Wake-on-LAN device manager."""
    cfg = _load_cfg(config)
    _setup_logging("DEBUG" if verbose else cfg.server.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


# ── devices group ─────────────────────────────────────────────────────────────


@main.group()
def devices() -> None:
    """Manage stored devices."""


@devices.command("list")
@click.pass_context
def devices_list(ctx: click.Context) -> None:
    """List all stored devices."""
    store = _open_store(ctx.obj["config"])
    items = store.get_all()
    if not items:
        click.echo("No devices stored.")
        return
    click.echo(f"{'ID':<38} {'NAME':<20} {'MAC':<19} {'PORT':<6} {'IP'}")
    click.echo("─" * 100)
    for d in items:
        click.echo(f"{d.id:<38} {d.name:<20} {d.mac_address:<19} {d.port:<6} {d.ip_address or ''}")


@devices.command("add")
@click.argument("name")
@click.argument("mac_address")
@click.option("--ip", "ip_address", default=None, help="IP address (informational)")
@click.option("--port", type=int, default=None, help="WoL UDP port")
@click.option("--description", "-d", default=None, help="Free-text description")
@click.pass_context
def devices_add(
    ctx: click.Context,
    name: str,
    mac_address: str,
    ip_address: Optional[str],
    port: Optional[int],
    description: Optional[str],
) -> None:
    """Add a device."""
    from jump.core.devices import create_device
    from jump.core.errors import JumpError

    cfg: AppConfig = ctx.obj["config"]
    store = _open_store(cfg)
    try:
        device = create_device(
            store,
            name=name,
            mac_address=mac_address,
            ip_address=ip_address,
            port=port,
            description=description,
            default_port=cfg.wol.default_port,
        )
    except JumpError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓  Added '{device.name}' ({device.id})")


@devices.command("remove")
@click.argument("device_id")
@click.pass_context
def devices_remove(ctx: click.Context, device_id: str) -> None:
    """Remove a device by id."""
    from jump.core.devices import delete_device
    from jump.core.errors import JumpError

    store = _open_store(ctx.obj["config"])
    try:
        removed = delete_device(store, device_id)
    except JumpError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓  Removed '{removed.name}'")


@devices.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def devices_export(ctx: click.Context, output: Optional[Path]) -> None:
    """Export devices as portable JSON (stdout if no OUTPUT)."""
    from jump.core.devices import export_devices

    store = _open_store(ctx.obj["config"])
    text = json.dumps(export_devices(store), indent=2, ensure_ascii=False)
    if output is None:
        click.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"Exported {len(store)} device(s) to {output}")


@devices.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def devices_import(ctx: click.Context, source: Path) -> None:
    """Import devices from a JSON file produced by 'devices export'."""
    from jump.core.devices import import_devices
    from jump.core.errors import JumpError

    cfg: AppConfig = ctx.obj["config"]
    try:
        entries = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        click.echo(f"✗  {source} is not valid JSON: {exc}", err=True)
        sys.exit(1)
    if not isinstance(entries, list):
        click.echo(f"✗  {source} must contain a JSON list", err=True)
        sys.exit(1)

    store = _open_store(cfg)
    try:
        imported = import_devices(store, entries, default_port=cfg.wol.default_port)
    except JumpError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(1)
    click.echo(f"✓  Imported {len(imported)} device(s)")


# ── wake command ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("device")
@click.pass_context
def wake(ctx: click.Context, device: str) -> None:
    """Send a Wake-on-LAN packet to a device (by id or name)."""
    from jump.core.errors import JumpError
    from jump.core.wol import send_wol

    store = _open_store(ctx.obj["config"])
    match = _resolve_device(store, device)
    try:
        send_wol(match)
    except JumpError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(2)
    click.echo(f"WOL packet sent to {match.mac_address} ({match.name})")


# ── arp command ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("ip")
def arp(ip: str) -> None:
    """Look up the MAC address of IP in the local ARP table."""
    from jump.core.arp import ArpError, lookup_mac

    try:
        mac = lookup_mac(ip)
    except ArpError as exc:
        click.echo(f"✗  {exc}", err=True)
        sys.exit(1)
    click.echo(mac)


# ── openapi command ──────────────────────────────────────────────────────────


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to a file instead of stdout",
)
@click.pass_context
def openapi(ctx: click.Context, output: Optional[Path]) -> None:
    """Print the OpenAPI document for the HTTP API."""
    from jump.api.routes import create_app
    from jump.core.storage import DeviceStore

    cfg: AppConfig = ctx.obj["config"]
    # The schema does not depend on stored devices; skip reading the file.
    app = create_app(cfg, store=DeviceStore(cfg.storage.file_path))
    text = json.dumps(app.openapi(), indent=2)
    if output is None:
        click.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"Generated OpenAPI spec to: {output}")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default=None, help="Bind host (default: server.host)")
@click.option("--port", type=int, default=None, help="Bind port (default: server.port)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Start the jump API server."""
    import uvicorn

    from jump.api.routes import create_app

    cfg: AppConfig = ctx.obj["config"]
    store = _open_store(cfg)
    app = create_app(cfg, store=store)
    bind_host = host or cfg.server.host
    bind_port = port or cfg.server.port
    logger.info("Storage initialized from %s (%d device(s))", cfg.storage.file_path, len(store))
    click.echo(f"Starting jump at http://{bind_host}:{bind_port}")
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=cfg.server.log_level.lower())


if __name__ == "__main__":
    main()
