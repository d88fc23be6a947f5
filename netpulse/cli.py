"""CLI interface for netpulse.

Usage:
    netpulse run [--target HOST | --gateway] [--verbose]
    netpulse gateway
    netpulse wifi
    netpulse probe HOST [--timeout MS]
    netpulse target show|set HOST|clear
    netpulse ap list
    netpulse ap rename BSSID NAME
"""

import sys
import threading
from datetime import datetime
from typing import Optional

import typer
from loguru import logger

from netpulse.core.constants import APP_VERSION, PROBE_TIMEOUT_MS
from netpulse.core.errors import InitializationError
from netpulse.core.logger import setup_logging, shutdown_logging
from netpulse.core.types import Status
from netpulse.repositories.named_ap_repository import NamedAPRepository
from netpulse.services.host_resolver import HostResolver
from netpulse.services.probe_engine import ProbeEngine
from netpulse.services.wireless_info import WirelessQueryStatus, default_wireless_source
from netpulse.utils.network_interface import GatewayDiscovery

app = typer.Typer(
    name="netpulse",
    help="netpulse - network liveness and access point monitor",
    add_completion=False,
)
target_app = typer.Typer(help="Show or change the persisted custom probe target")
ap_app = typer.Typer(help="Manage named access points")
app.add_typer(target_app, name="target")
app.add_typer(ap_app, name="ap")


def _repository() -> NamedAPRepository:
    return NamedAPRepository()


def _init_cli_logging(verbose: bool = False):
    setup_logging(level="DEBUG" if verbose else "WARNING")


class ConsoleStatusSink:
    """Prints each published Status on one line."""

    def on_status_changed(self, status: Status) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        marker = "~" if status.is_transition else ("!" if status.is_error else " ")
        typer.echo(f"[{stamp}] {marker} {status.display_text:>6} | {' | '.join(status.tooltip_lines)}")


@app.command()
def run(
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Probe this host instead of the gateway"),
    gateway: bool = typer.Option(False, "--gateway", "-g", help="Probe the default gateway"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to the console"),
):
    """Monitor the network until interrupted."""
    if target and gateway:
        typer.echo("❌ Error: --target and --gateway are mutually exclusive", err=True)
        raise typer.Exit(2)

    setup_logging(level="DEBUG" if verbose else "INFO")

    # Imported late so one-shot commands never build the full engine
    from netpulse.core.container import ApplicationContainer

    container = ApplicationContainer()
    repository = container.named_ap_repository()

    if target:
        try:
            repository.set_last_custom_target(HostResolver.validate(target))
        except ValueError as e:
            typer.echo(f"❌ Error: {e}", err=True)
            raise typer.Exit(2)
    elif gateway:
        repository.set_last_custom_target(None)

    coordinator = container.status_coordinator(
        presentation=ConsoleStatusSink(),
        on_notification=lambda message: typer.echo(f"🔔 {message}"),
    )

    stop_event = threading.Event()
    try:
        coordinator.start()
        while not stop_event.wait(1.0):
            pass
    except InitializationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        typer.echo("\n⚠️  Interrupted by user")
    finally:
        coordinator.stop()
        shutdown_logging()


@app.command("gateway")
def show_gateway():
    """Discover and print the default gateway."""
    _init_cli_logging()
    address = GatewayDiscovery()()
    typer.echo(address or "none")


@app.command()
def wifi():
    """Query and print the current wireless association."""
    _init_cli_logging()
    result = default_wireless_source().query()

    if result.status == WirelessQueryStatus.PERMISSION_DENIED:
        typer.echo("❌ Wireless query denied (location permission or elevation required)", err=True)
        raise typer.Exit(1)
    if result.status == WirelessQueryStatus.NO_INTERFACE:
        typer.echo("ℹ️  No wireless interface")
        return
    if result.status == WirelessQueryStatus.FAILED:
        typer.echo(f"❌ Wireless query failed: {result.detail}", err=True)
        raise typer.Exit(1)

    reading = result.reading
    if reading is None or not reading.bssid:
        typer.echo("📶 Not connected")
        return

    repository = _repository()
    typer.echo("📶 Wireless Status:")
    typer.echo(f"   BSSID: {reading.bssid} ({repository.get_display_name(reading.bssid)})")
    typer.echo(f"   SSID: {reading.ssid or 'unknown'}")
    typer.echo(f"   Band: {reading.band or 'unknown'}")
    typer.echo(f"   Channel: {reading.channel}")
    typer.echo(f"   Signal: {reading.signal_percent}%")


@app.command()
def probe(
    host: str = typer.Argument(..., help="Host name or IP address"),
    timeout: int = typer.Option(PROBE_TIMEOUT_MS, "--timeout", help="Timeout in milliseconds"),
):
    """Send one probe and print the round-trip time."""
    _init_cli_logging()
    try:
        host = HostResolver.validate(host)
        if timeout <= 0:
            raise ValueError("--timeout must be positive")
    except ValueError as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(2)

    resolved = HostResolver().resolve(host)
    if resolved.resolution_error:
        typer.echo(f"⚠️  {host} could not be resolved, probing by name")

    engine = ProbeEngine()
    try:
        outcome = engine.probe(resolved.address, timeout)
    finally:
        engine.dispose()

    if outcome is not None and outcome.success:
        typer.echo(f"✅ {resolved.address}: {outcome.round_trip_ms}ms")
        return

    reason = outcome.failure_kind.value if outcome is not None else "busy"
    typer.echo(f"❌ {resolved.address}: {reason}")
    raise typer.Exit(1)


@target_app.command("show")
def target_show():
    """Print the persisted custom target."""
    stored = _repository().get_last_custom_target()
    typer.echo(stored or "gateway")


@target_app.command("set")
def target_set(host: str = typer.Argument(..., help="Host name or IP address")):
    """Persist a custom target for the next run."""
    try:
        host = HostResolver.validate(host)
    except ValueError as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(2)
    _repository().set_last_custom_target(host)
    typer.echo(f"✅ Target set to {host}")


@target_app.command("clear")
def target_clear():
    """Go back to probing the default gateway."""
    _repository().set_last_custom_target(None)
    typer.echo("✅ Target set to default gateway")


@ap_app.command("list")
def ap_list():
    """List known access points."""
    names = _repository().names()
    if not names:
        typer.echo("ℹ️  No known access points")
        return

    typer.echo(f"📋 Known access points ({len(names)}):")
    for bssid in sorted(names):
        typer.echo(f"  {bssid}  {names[bssid] or '-'}")


@ap_app.command("rename")
def ap_rename(
    bssid: str = typer.Argument(..., help="Access point BSSID"),
    name: str = typer.Argument(..., help="New name (empty to clear)"),
):
    """Give an access point a friendly name."""
    try:
        _repository().rename(bssid, name)
    except ValueError as e:
        typer.echo(f"❌ Error: {e}", err=True)
        raise typer.Exit(2)
    typer.echo(f"✅ {bssid.lower()} renamed to {name or bssid.lower()}")


@app.command()
def version():
    """Show netpulse version."""
    typer.echo(f"netpulse v{APP_VERSION}")


def main():
    """Entry point for CLI."""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("\n⚠️  Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error")
        typer.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
