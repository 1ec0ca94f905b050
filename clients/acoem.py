"""HTTP client for the Acoem device telemetry API."""

from __future__ import annotations

import base64
import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
import pydantic
from pydantic import TypeAdapter

from clients.schemas import DeviceDataPayload, DevicePayload, SensorSetupPayload
from models.errors import DecodeError, TransportError, ValidationError
from models.records import Device, DeviceSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

LABEL_SEPARATOR = "+"
TELEMETRY_TYPE = "data"


def build_basic_credentials(account_id: str, account_key: str) -> str:
    """Return a ready-to-use ``Authorization`` header value."""
    token = base64.b64encode(f"{account_id}:{account_key}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class AcoemClient:
    """Telemetry source backed by the Acoem REST API.

    Every call is a blocking request on a shared :class:`httpx.Client`.
    """

    def __init__(
        self,
        base_url: str,
        authorization: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "Authorization": authorization},
        )

    def __enter__(self) -> "AcoemClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def list_devices(self) -> List[Device]:
        payload = self._get_json("/devices", List[DevicePayload])
        return [item.to_device() for item in payload]

    def list_active_sensor_labels(self, device_id: int) -> str:
        """Return the ``+``-joined labels of active telemetry sensors."""
        if not device_id:
            raise ValidationError("A device id is required to list sensor labels.")
        setup = self._get_json(f"/devices/setup/{device_id}", List[SensorSetupPayload])
        labels = [
            sensor.sensor_label
            for sensor in setup
            if sensor.active and sensor.type == TELEMETRY_TYPE
        ]
        return LABEL_SEPARATOR.join(labels)

    def fetch_latest_readings(self, device: Device, sensor_labels: str) -> List[DeviceSnapshot]:
        if not device.unique_id or not sensor_labels:
            raise ValidationError(
                "Cannot retrieve sensor data as either the device id or sensor labels are empty."
            )
        payload = self._get_json(
            f"/devicedata/{device.unique_id}/latest/1/300/data/{sensor_labels}",
            List[DeviceDataPayload],
            headers={"TimeConvention": "TimeBeginning"},
        )
        return [item.to_snapshot(device) for item in payload]

    def _get_json(self, path: str, schema: Type[T], headers: Optional[dict] = None) -> T:
        try:
            response = self._client.get(path, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {path} failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise TransportError(
                f"Request to {path} failed, expected status code 200 but got {response.status_code}.",
                status_code=response.status_code,
            )

        body = response.text
        try:
            return TypeAdapter(schema).validate_json(body)
        except pydantic.ValidationError as exc:
            logger.debug("Unexpected response body from %s", path, extra={"url": str(response.url)})
            raise DecodeError(f"Failed to decode response from {path}", body) from exc
