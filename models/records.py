"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class Device:
    """A monitoring station as listed by the telemetry vendor."""

    unique_id: int
    device_name: str


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float
    altitude: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Channel:
    """One physical sensor channel reading from a device."""

    sensor_name: str
    sensor_label: str
    unit_name: str
    scaled_value: float
    pre_scaled_value: float
    flags: Tuple[str, ...] = ()
    channel: Optional[int] = None


@dataclass(frozen=True, slots=True)
class DeviceSnapshot:
    """Latest readings of a device at a single observation time.

    ``timestamp`` is kept exactly as the vendor sent it.
    """

    device: Device
    timestamp: str
    location: Location
    channels: Tuple[Channel, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class CanonicalReading:
    """A reading normalised to a canonical property name and unit code."""

    canonical_name: str
    value: float
    unit_code: Optional[str]
    observed_at: str
