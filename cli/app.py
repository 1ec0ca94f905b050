from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_devices, render_readings, render_report
from logging_config import configure_logging
from models.errors import IntegrationError
from models.records import Device
from services.extractor import ReadingExtractor
from services.integration import (
    IntegrationService,
    TelemetrySource,
    build_projector,
    build_telemetry_source,
    resolve_output_type,
)
from services.poller import Poller


@dataclass
class CLIState:
    config: CLIConfig
    source: TelemetrySource


app = typer.Typer(
    help="Synchronise Acoem air quality telemetry into a context broker or an LwM2M endpoint.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _fail(message: str, code: int = 1) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        _fail("CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Acoem API base URL (defaults to the ACOEM_BASEURL env var).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between sweeps when looping (defaults to POLL_INTERVAL_SECONDS).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(base_url=base_url, poll_interval=poll_interval)
    try:
        source = build_telemetry_source(config.settings, config.base_url)
    except ValueError as exc:
        _fail(str(exc), code=2)
    ctx.obj = CLIState(config=config, source=source)
    close = getattr(source, "close", None)
    if close is not None:
        ctx.call_on_close(close)


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List devices together with their active sensor labels."""
    state = _get_state(ctx)
    try:
        devices = state.source.list_devices()
    except IntegrationError as exc:
        _fail(f"Failed to retrieve devices: {exc}")

    rows: list[tuple[Device, str]] = []
    for device in devices:
        try:
            labels = state.source.list_active_sensor_labels(device.unique_id)
        except IntegrationError as exc:
            labels = f"unavailable ({exc})"
        rows.append((device, labels))
    render_devices(rows)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    device_id: int = typer.Argument(..., help="Unique id of the device to inspect."),
) -> None:
    """Show the canonical readings of a device's latest snapshot."""
    state = _get_state(ctx)
    device = Device(unique_id=device_id, device_name="")
    try:
        labels = state.source.list_active_sensor_labels(device_id)
        snapshots = state.source.fetch_latest_readings(device, labels)
    except IntegrationError as exc:
        _fail(f"Failed to retrieve readings for device {device_id}: {exc}")

    if not snapshots:
        typer.echo(f"No data returned for device {device_id}.")
        return

    extractor = ReadingExtractor()
    for snapshot in snapshots:
        render_readings(snapshot, extractor.extract(snapshot.channels, snapshot.timestamp))


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output type: lwm2m or fiware (defaults to OUTPUT_TYPE or the configured endpoint).",
    ),
    loop: bool = typer.Option(
        False,
        "--loop/--no-loop",
        help="Keep polling instead of running a single sweep.",
    ),
) -> None:
    """Push the latest readings of every device downstream."""
    state = _get_state(ctx)
    settings = state.config.settings
    try:
        selected = resolve_output_type(output, settings)
    except ValueError as exc:
        _fail(str(exc), code=2)

    projector = build_projector(selected, settings)
    close = getattr(projector, "close", None)
    if close is not None:
        ctx.call_on_close(close)
    service = IntegrationService(source=state.source, projector=projector)

    if loop:
        typer.echo(f"Polling every {state.config.poll_interval}s with output={selected}. Press Ctrl+C to stop.")
        poller = Poller(service=service, interval=state.config.poll_interval)
        try:
            poller.run()
        except KeyboardInterrupt:
            poller.stop()
        return

    try:
        report = service.run_once()
    except IntegrationError as exc:
        _fail(f"Failed to retrieve devices: {exc}")
    render_report(report)
    if not report.ok:
        raise typer.Exit(code=1)
