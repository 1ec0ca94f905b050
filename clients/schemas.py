"""Pydantic schemas for the Acoem telemetry API payloads."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from models.records import Channel, Device, DeviceSnapshot, Location


class AcoemModel(BaseModel):
    """Base model accepting the vendor's PascalCase keys."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )


class DevicePayload(AcoemModel):
    unique_id: int
    device_name: str = ""

    def to_device(self) -> Device:
        return Device(unique_id=self.unique_id, device_name=self.device_name)


class SensorSetupPayload(AcoemModel):
    """One entry of a device setup listing."""

    sensor_label: str
    sensor_name: Optional[str] = None
    active: bool = False
    type: str = ""


class ReadingPayload(AcoemModel):
    reading: float
    flags: Optional[List[str]] = None
    valid_percentage: Optional[float] = None


class ChannelPayload(AcoemModel):
    channel: Optional[int] = None
    sensor_name: str
    sensor_label: str = ""
    unit_name: str = ""
    pre_scaled: ReadingPayload
    scaled: ReadingPayload

    def to_channel(self) -> Channel:
        return Channel(
            sensor_name=self.sensor_name,
            sensor_label=self.sensor_label,
            unit_name=self.unit_name,
            scaled_value=self.scaled.reading,
            pre_scaled_value=self.pre_scaled.reading,
            flags=tuple(self.scaled.flags or ()),
            channel=self.channel,
        )


class LocationPayload(AcoemModel):
    latitude: float
    longitude: float
    altitude: Optional[float] = None


class TimestampPayload(AcoemModel):
    convention: Optional[str] = None
    timestamp: str = Field(..., description="Observation time as ISO-8601 text.")


class DeviceDataPayload(AcoemModel):
    """A single entry of the latest-readings response."""

    timestamp: TimestampPayload
    location: LocationPayload
    channels: List[ChannelPayload] = Field(default_factory=list)

    def to_snapshot(self, device: Device) -> DeviceSnapshot:
        return DeviceSnapshot(
            device=device,
            timestamp=self.timestamp.timestamp,
            location=Location(
                latitude=self.location.latitude,
                longitude=self.location.longitude,
                altitude=self.location.altitude,
            ),
            channels=tuple(channel.to_channel() for channel in self.channels),
        )
