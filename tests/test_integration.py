from __future__ import annotations

import dataclasses
from typing import Dict, List, Sequence

import pytest

from clients.acoem import AcoemClient
from models.errors import DecodeError, TransportError, ValidationError
from models.records import Device, DeviceSnapshot, Location
from services.fiware import FiwareProjector
from services.integration import (
    IntegrationService,
    SweepReport,
    build_default_integration,
    resolve_output_type,
)
from services.lwm2m import LwM2MProjector
from settings import Settings

BASE_SETTINGS = Settings(
    acoem_base_url="https://acoem.test",
    acoem_account_id="user",
    acoem_account_key="pass",
    context_broker_url=None,
    lwm2m_endpoint_url=None,
    output_type=None,
    poll_interval=300.0,
    http_timeout=30.0,
    tls_skip_verify=False,
    sync_on_startup=False,
    log_level="INFO",
)


def _settings(**overrides) -> Settings:
    return dataclasses.replace(BASE_SETTINGS, **overrides)


class StubSource:
    def __init__(self, devices: List[Device]) -> None:
        self.devices = devices
        self.label_errors: Dict[int, Exception] = {}
        self.reading_errors: Dict[int, Exception] = {}
        self.fetched: List[int] = []
        self.list_error: Exception | None = None

    def list_devices(self) -> List[Device]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.devices)

    def list_active_sensor_labels(self, device_id: int) -> str:
        if device_id in self.label_errors:
            raise self.label_errors[device_id]
        return "NO2+NOx"

    def fetch_latest_readings(self, device: Device, sensor_labels: str) -> List[DeviceSnapshot]:
        self.fetched.append(device.unique_id)
        if device.unique_id in self.reading_errors:
            raise self.reading_errors[device.unique_id]
        return [
            DeviceSnapshot(
                device=device,
                timestamp="2023-08-27T22:08:00+00:00",
                location=Location(latitude=1.0, longitude=2.0),
            )
        ]


class RecordingProjector:
    name = "recording"

    def __init__(self, failing: Sequence[int] = ()) -> None:
        self.projected: List[int] = []
        self.failing = set(failing)

    def project(self, device: Device, snapshots: Sequence[DeviceSnapshot]) -> List[Exception]:
        self.projected.append(device.unique_id)
        if device.unique_id in self.failing:
            return [TransportError("send failed", status_code=500)]
        return []


DEVICES = [Device(1, "one"), Device(2, "two"), Device(3, "three")]


def test_run_once_projects_every_device() -> None:
    projector = RecordingProjector()
    report = IntegrationService(source=StubSource(DEVICES), projector=projector).run_once()

    assert report.ok
    assert report.device_count == 3
    assert report.synced_devices == [1, 2, 3]
    assert projector.projected == [1, 2, 3]
    report.raise_for_errors()


def test_source_failures_skip_only_that_device() -> None:
    source = StubSource(DEVICES)
    source.label_errors[1] = TransportError("setup unavailable", status_code=502)
    source.reading_errors[2] = DecodeError("Failed to decode response", "<html>")
    projector = RecordingProjector()

    report = IntegrationService(source=source, projector=projector).run_once()

    assert source.fetched == [2, 3]
    assert projector.projected == [3]
    assert report.synced_devices == [3]
    assert [type(error) for error in report.errors] == [TransportError, DecodeError]


def test_projector_errors_are_aggregated() -> None:
    projector = RecordingProjector(failing=[1, 3])

    report = IntegrationService(source=StubSource(DEVICES), projector=projector).run_once()

    assert projector.projected == [1, 2, 3]
    assert report.synced_devices == [2]
    with pytest.raises(ExceptionGroup) as excinfo:
        report.raise_for_errors()
    assert len(excinfo.value.exceptions) == 2


def test_device_list_failure_is_raised() -> None:
    source = StubSource(DEVICES)
    source.list_error = TransportError("down", status_code=503)

    with pytest.raises(TransportError):
        IntegrationService(source=source, projector=RecordingProjector()).run_once()


def test_empty_labels_surface_as_validation_errors() -> None:
    class EmptyLabelSource(StubSource):
        def list_active_sensor_labels(self, device_id: int) -> str:
            return ""

        def fetch_latest_readings(self, device: Device, sensor_labels: str) -> List[DeviceSnapshot]:
            if not sensor_labels:
                raise ValidationError("sensor labels are empty")
            return super().fetch_latest_readings(device, sensor_labels)

    report = IntegrationService(
        source=EmptyLabelSource(DEVICES[:1]), projector=RecordingProjector()
    ).run_once()

    assert isinstance(report.errors[0], ValidationError)


def test_sweep_report_defaults() -> None:
    report = SweepReport()

    assert report.ok
    report.raise_for_errors()


@pytest.mark.parametrize(
    ("requested", "overrides", "expected"),
    [
        ("lwm2m", {"lwm2m_endpoint_url": "http://lwm2m"}, "lwm2m"),
        ("FIWARE", {"context_broker_url": "http://cb"}, "fiware"),
        (None, {"lwm2m_endpoint_url": "http://lwm2m", "context_broker_url": "http://cb"}, "lwm2m"),
        (None, {"context_broker_url": "http://cb"}, "fiware"),
        (None, {"output_type": "fiware", "context_broker_url": "http://cb", "lwm2m_endpoint_url": "http://lwm2m"}, "fiware"),
    ],
)
def test_resolve_output_type(requested, overrides, expected) -> None:
    assert resolve_output_type(requested, _settings(**overrides)) == expected


@pytest.mark.parametrize(
    ("requested", "overrides"),
    [
        ("lwm2m", {"context_broker_url": "http://cb"}),
        ("fiware", {"lwm2m_endpoint_url": "http://lwm2m"}),
        ("mqtt", {"lwm2m_endpoint_url": "http://lwm2m"}),
        (None, {}),
    ],
)
def test_resolve_output_type_rejects_misconfiguration(requested, overrides) -> None:
    with pytest.raises(ValueError):
        resolve_output_type(requested, _settings(**overrides))


def test_build_default_integration_from_environment(clean_settings) -> None:
    clean_settings.setenv("ACOEM_BASEURL", "https://acoem.test/api/")
    clean_settings.setenv("ACOEM_ACCOUNT_ID", "user")
    clean_settings.setenv("ACOEM_ACCOUNT_KEY", "pass")
    clean_settings.setenv("CONTEXT_BROKER_URL", "http://cb")
    build_default_integration.cache_clear()

    try:
        service = build_default_integration()
        assert isinstance(service.projector, FiwareProjector)
        assert isinstance(service.source, AcoemClient)
        assert service.source.base_url == "https://acoem.test/api"
    finally:
        build_default_integration.cache_clear()


def test_build_default_integration_selects_lwm2m(clean_settings) -> None:
    clean_settings.setenv("ACOEM_BASEURL", "https://acoem.test")
    clean_settings.setenv("ACOEM_ACCOUNT_ID", "user")
    clean_settings.setenv("ACOEM_ACCOUNT_KEY", "pass")
    clean_settings.setenv("LWM2M_ENDPOINT_URL", "http://lwm2m/api/v0/messages")
    build_default_integration.cache_clear()

    try:
        service = build_default_integration()
        assert isinstance(service.projector, LwM2MProjector)
        assert service.projector.url == "http://lwm2m/api/v0/messages"
    finally:
        build_default_integration.cache_clear()


def test_build_default_integration_requires_credentials(clean_settings) -> None:
    clean_settings.setenv("ACOEM_BASEURL", "https://acoem.test")
    clean_settings.setenv("LWM2M_ENDPOINT_URL", "http://lwm2m")
    build_default_integration.cache_clear()

    try:
        with pytest.raises(ValueError):
            build_default_integration()
    finally:
        build_default_integration.cache_clear()


def test_close_releases_source_and_projector() -> None:
    closed: List[str] = []

    class ClosingSource(StubSource):
        def close(self) -> None:
            closed.append("source")

    class ClosingProjector(RecordingProjector):
        def close(self) -> None:
            closed.append("projector")

    IntegrationService(source=ClosingSource(DEVICES), projector=ClosingProjector()).close()

    assert closed == ["source", "projector"]
