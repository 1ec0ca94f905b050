from __future__ import annotations

from typing import List

import pytest
from pydantic import TypeAdapter

from clients.schemas import DeviceDataPayload
from models.records import Device, DeviceSnapshot
from settings import get_settings

DEVICE_DATA_RESPONSE = """
[
  {
    "Channels": [
      {
        "Channel": 11,
        "DataRate": 60,
        "Offset": 0,
        "PreScaled": {"Flags": null, "Reading": 3.888, "ValidPercentage": 100},
        "RedactedPercentage": 0,
        "Scaled": {"Flags": null, "Reading": 3.888, "ValidPercentage": 100},
        "SensorLabel": "NO2",
        "SensorName": "Nitrogen Dioxide",
        "Slope": 1,
        "UniqueId": 888100,
        "UnitName": "Parts Per Billion"
      },
      {
        "Channel": 12,
        "DataRate": 60,
        "Offset": 0,
        "PreScaled": {"Flags": null, "Reading": 5.421, "ValidPercentage": 100},
        "RedactedPercentage": 0,
        "Scaled": {"Flags": null, "Reading": 5.421, "ValidPercentage": 100},
        "SensorLabel": "NOx",
        "SensorName": "Nitrogen Oxides",
        "Slope": 1,
        "UniqueId": 888100,
        "UnitName": "Parts Per Billion"
      }
    ],
    "Location": {"Altitude": null, "Latitude": 62.388618, "Longitude": 17.308968},
    "Timestamp": {"Convention": "TimeBeginning", "Timestamp": "2023-08-27T22:08:00+00:00"}
  }
]
"""


@pytest.fixture()
def device() -> Device:
    return Device(unique_id=888100, device_name="abc")


@pytest.fixture()
def device_data_body() -> str:
    return DEVICE_DATA_RESPONSE


@pytest.fixture()
def sample_snapshots(device: Device) -> List[DeviceSnapshot]:
    payload = TypeAdapter(List[DeviceDataPayload]).validate_json(DEVICE_DATA_RESPONSE)
    return [item.to_snapshot(device) for item in payload]


@pytest.fixture()
def clean_settings(monkeypatch):
    """Clear integration env vars and the settings cache around a test."""
    for name in (
        "ACOEM_BASEURL",
        "ACOEM_ACCOUNT_ID",
        "ACOEM_ACCOUNT_KEY",
        "CONTEXT_BROKER_URL",
        "LWM2M_ENDPOINT_URL",
        "OUTPUT_TYPE",
        "POLL_INTERVAL_SECONDS",
        "HTTP_TIMEOUT_SECONDS",
        "TLS_SKIP_VERIFY",
        "SYNC_ON_STARTUP",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
