"""Device sweep orchestration: source -> projector."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Protocol, Sequence

from clients.acoem import AcoemClient, build_basic_credentials
from clients.context_broker import ContextBrokerClient
from models.errors import IntegrationError
from models.records import Device, DeviceSnapshot
from services.extractor import ReadingExtractor
from services.fiware import FiwareProjector
from services.lwm2m import HttpPackSender, LwM2MProjector
from services.mapping import DEFAULT_MAPPING
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

OUTPUT_LWM2M = "lwm2m"
OUTPUT_FIWARE = "fiware"
OUTPUT_TYPES = (OUTPUT_LWM2M, OUTPUT_FIWARE)


class TelemetrySource(Protocol):
    def list_devices(self) -> List[Device]: ...

    def list_active_sensor_labels(self, device_id: int) -> str: ...

    def fetch_latest_readings(self, device: Device, sensor_labels: str) -> List[DeviceSnapshot]: ...


class Projector(Protocol):
    name: str

    def project(self, device: Device, snapshots: Sequence[DeviceSnapshot]) -> List[Exception]: ...


@dataclass
class SweepReport:
    """Outcome of one pass over every device."""

    device_count: int = 0
    synced_devices: List[int] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise ExceptionGroup(
                f"Sweep finished with {len(self.errors)} error(s)", list(self.errors)
            )


class IntegrationService:
    """Runs sequential sweeps, isolating failures per device."""

    def __init__(self, source: TelemetrySource, projector: Projector) -> None:
        self.source = source
        self.projector = projector

    def close(self) -> None:
        """Release the HTTP clients held by the source and the projector."""
        for resource in (self.source, self.projector):
            close = getattr(resource, "close", None)
            if close is not None:
                close()

    def run_once(self) -> SweepReport:
        """Pull every device once and hand its snapshots to the projector.

        A failure to list devices is raised. Per-device failures are logged,
        collected on the report and never stop the sweep.
        """
        devices = self.source.list_devices()
        report = SweepReport(device_count=len(devices))
        logger.info(
            "Retrieved devices",
            extra={"device_count": len(devices), "output": self.projector.name},
        )

        for device in devices:
            errors = self._sync_device(device)
            if errors:
                report.errors.extend(errors)
            else:
                report.synced_devices.append(device.unique_id)

        if report.errors:
            logger.warning(
                "Sweep finished with errors",
                extra={"device_count": report.device_count, "error_count": len(report.errors)},
            )
        else:
            logger.info("Sweep finished", extra={"device_count": report.device_count})
        return report

    def _sync_device(self, device: Device) -> List[Exception]:
        log_extra = {"device_id": device.unique_id}
        try:
            sensor_labels = self.source.list_active_sensor_labels(device.unique_id)
        except IntegrationError as exc:
            logger.error("Failed to retrieve sensor labels: %s", exc, extra=log_extra)
            return [exc]

        logger.info("Retrieving data", extra={**log_extra, "sensor_labels": sensor_labels})
        try:
            snapshots = self.source.fetch_latest_readings(device, sensor_labels)
        except IntegrationError as exc:
            logger.error("Failed to retrieve sensor data: %s", exc, extra=log_extra)
            return [exc]

        return self.projector.project(device, snapshots)


def resolve_output_type(requested: Optional[str], settings: Settings) -> str:
    """Pick the output, preferring lwm2m when only endpoints are configured."""
    output = (requested or settings.output_type or "").strip().lower()
    if output == OUTPUT_LWM2M and not settings.lwm2m_endpoint_url:
        raise ValueError("No URL to lwm2m endpoint specified using env. var LWM2M_ENDPOINT_URL.")
    if output == OUTPUT_FIWARE and not settings.context_broker_url:
        raise ValueError("No URL to context broker specified using env. var CONTEXT_BROKER_URL.")
    if output in OUTPUT_TYPES:
        return output
    if output:
        raise ValueError(f"Unknown output type {output!r}, expected one of {', '.join(OUTPUT_TYPES)}.")
    if settings.lwm2m_endpoint_url:
        return OUTPUT_LWM2M
    if settings.context_broker_url:
        return OUTPUT_FIWARE
    raise ValueError("No output type selected.")


def build_telemetry_source(settings: Settings, base_url: Optional[str] = None) -> AcoemClient:
    url = base_url or settings.acoem_base_url
    if not url:
        raise ValueError("No Acoem base URL specified using env. var ACOEM_BASEURL.")
    if not settings.acoem_account_id or not settings.acoem_account_key:
        raise ValueError("ACOEM_ACCOUNT_ID and ACOEM_ACCOUNT_KEY must both be set.")
    return AcoemClient(
        base_url=url,
        authorization=build_basic_credentials(settings.acoem_account_id, settings.acoem_account_key),
        timeout=settings.http_timeout,
    )


def build_projector(output: str, settings: Settings) -> Projector:
    if output == OUTPUT_FIWARE:
        broker = ContextBrokerClient(settings.context_broker_url or "", timeout=settings.http_timeout)
        return FiwareProjector(broker=broker, extractor=ReadingExtractor(DEFAULT_MAPPING))
    sender = HttpPackSender(timeout=settings.http_timeout, verify=not settings.tls_skip_verify)
    return LwM2MProjector(sender=sender, url=settings.lwm2m_endpoint_url or "")


@lru_cache
def build_default_integration(
    output: Optional[str] = None,
    base_url: Optional[str] = None,
) -> IntegrationService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    selected = resolve_output_type(output, settings)
    return IntegrationService(
        source=build_telemetry_source(settings, base_url),
        projector=build_projector(selected, settings),
    )
