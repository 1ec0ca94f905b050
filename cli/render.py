from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from models.records import CanonicalReading, Device, DeviceSnapshot
from services.integration import SweepReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_devices(devices: Sequence[tuple[Device, str]]) -> None:
    echo_heading("Devices")
    if not devices:
        typer.echo("No devices available.")
        return
    for device, labels in devices:
        typer.echo(f"  - {device.unique_id} {device.device_name or '-'}: {labels or 'no active sensors'}")


def render_readings(snapshot: DeviceSnapshot, readings: Sequence[CanonicalReading]) -> None:
    echo_heading("Snapshot")
    echo_key_values(
        [
            ("device_id", snapshot.device.unique_id),
            ("observed_at", snapshot.timestamp),
            ("location", f"{snapshot.location.latitude}, {snapshot.location.longitude}"),
            ("channels", len(snapshot.channels)),
        ]
    )
    typer.echo()
    echo_heading("Readings")
    if not readings:
        typer.echo("No recognised readings.")
        return
    for reading in readings:
        typer.echo(f"  - {reading.canonical_name}: {reading.value} {reading.unit_code or ''}".rstrip())


def render_report(report: SweepReport) -> None:
    echo_heading("Sweep Result")
    echo_key_values(
        [
            ("devices", report.device_count),
            ("synced", len(report.synced_devices)),
            ("errors", len(report.errors)),
        ]
    )
    if report.errors:
        typer.echo()
        echo_heading("Errors")
        for error in report.errors:
            typer.echo(f"  - {type(error).__name__}: {error}")
