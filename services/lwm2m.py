"""Projection of device snapshots onto LwM2M objects encoded as SenML packs."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from models.errors import EncodeError, IntegrationError, TimestampParseError, TransportError
from models.records import Channel, Device, DeviceSnapshot

logger = logging.getLogger(__name__)

AIR_QUALITY_URN = "urn:oma:lwm2m:ext:3428"
HUMIDITY_URN = "urn:oma:lwm2m:ext:3304"
TEMPERATURE_URN = "urn:oma:lwm2m:ext:3303"

SENML_CONTENT_TYPE = "application/senml+json"


class SenMLRecord(BaseModel):
    """A single SenML record. Unset fields are left out of the JSON."""

    model_config = ConfigDict(populate_by_name=True)

    base_name: Optional[str] = Field(default=None, alias="bn")
    base_time: Optional[int] = Field(default=None, alias="bt")
    name: Optional[str] = Field(default=None, alias="n")
    unit: Optional[str] = Field(default=None, alias="u")
    value: Optional[float] = Field(default=None, alias="v")
    string_value: Optional[str] = Field(default=None, alias="vs")
    time: Optional[int] = Field(default=None, alias="t")


Pack = List[SenMLRecord]

_PACK_ADAPTER = TypeAdapter(List[SenMLRecord])


def encode_pack(pack: Pack) -> bytes:
    """Serialise a pack; non-finite values cannot be represented in JSON."""
    for record in pack:
        if record.value is not None and not math.isfinite(record.value):
            raise EncodeError(f"Record {record.name!r} has non-finite value {record.value}.")
    return _PACK_ADAPTER.dump_json(pack, by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ObjectResource:
    """Where a vendor sensor lands inside an LwM2M object."""

    urn: str
    resource: str
    unit: str
    # Only the air quality object collects several resources per pack.
    appendable: bool = False


_OBJECT_RESOURCES: Dict[str, ObjectResource] = {
    "temperature": ObjectResource(TEMPERATURE_URN, "5700", "Cel"),
    "humidity": ObjectResource(HUMIDITY_URN, "5700", "%RH"),
    "particulate matter (pm 10)": ObjectResource(AIR_QUALITY_URN, "1", "ug/m3", True),
    "particulate matter (pm 2.5)": ObjectResource(AIR_QUALITY_URN, "3", "ug/m3", True),
    "particulate matter (pm 1)": ObjectResource(AIR_QUALITY_URN, "5", "ug/m3", True),
    "nitrogen dioxide": ObjectResource(AIR_QUALITY_URN, "15", "ppm", True),
    "nitric oxide": ObjectResource(AIR_QUALITY_URN, "19", "ppm", True),
}


def resource_for(sensor_name: str) -> Optional[ObjectResource]:
    return _OBJECT_RESOURCES.get(sensor_name.casefold())


def parse_rfc3339(value: str) -> datetime:
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise TimestampParseError(value) from exc
    if parsed.tzinfo is None:
        raise TimestampParseError(value)
    return parsed


def new_record(name: str, value: float, unit: str, timestamp: datetime) -> SenMLRecord:
    return SenMLRecord(name=name, value=value, unit=unit, time=int(timestamp.timestamp()))


def new_pack(
    device_id: int,
    resource: ObjectResource,
    value: float,
    timestamp: datetime,
) -> Pack:
    object_id = resource.urn.rsplit(":", 1)[-1]
    anchor = SenMLRecord(
        base_name=f"{device_id}/{object_id}/",
        base_time=int(timestamp.timestamp()),
        name="0",
        string_value=resource.urn,
    )
    return [anchor, new_record(resource.resource, value, resource.unit, timestamp)]


class PackSender(Protocol):
    def send(self, url: str, pack: Pack) -> None: ...


class HttpPackSender:
    """Delivers packs with a POST; anything but ``201 Created`` is an error."""

    def __init__(
        self,
        timeout: float = 30.0,
        verify: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(timeout=timeout, verify=verify, transport=transport)

    def close(self) -> None:
        self._client.close()

    def send(self, url: str, pack: Pack) -> None:
        try:
            response = self._client.post(
                url,
                content=encode_pack(pack),
                headers={"Content-Type": SENML_CONTENT_TYPE},
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Sending pack to {url} failed: {exc}") from exc
        if response.status_code != httpx.codes.CREATED:
            raise TransportError(
                f"Unexpected response code {response.status_code}.",
                status_code=response.status_code,
            )


class LwM2MProjector:
    """Sends one SenML pack per LwM2M object found in each snapshot.

    Pack values come from the pre-scaled readings.
    """

    name = "lwm2m"

    def __init__(self, sender: PackSender, url: str) -> None:
        self.sender = sender
        self.url = url

    def close(self) -> None:
        close = getattr(self.sender, "close", None)
        if close is not None:
            close()

    def build_packs(self, device: Device, snapshot: DeviceSnapshot) -> Dict[str, Pack]:
        """Group the snapshot channels into packs keyed by object URN."""
        timestamp = parse_rfc3339(snapshot.timestamp)
        packs: Dict[str, Pack] = {}
        for channel in snapshot.channels:
            self._add_channel(packs, device, channel, timestamp)
        return packs

    def project(self, device: Device, snapshots: Sequence[DeviceSnapshot]) -> List[Exception]:
        errors: List[Exception] = []
        for snapshot in snapshots:
            try:
                packs = self.build_packs(device, snapshot)
            except TimestampParseError as exc:
                logger.error(
                    "Could not parse timestamp: %s", exc, extra={"device_id": device.unique_id}
                )
                errors.append(exc)
                continue

            for urn, pack in packs.items():
                try:
                    self.sender.send(self.url, pack)
                except IntegrationError as exc:
                    logger.error(
                        "Could not send pack: %s",
                        exc,
                        extra={"device_id": device.unique_id, "object_urn": urn, "url": self.url},
                    )
                    errors.append(exc)
                else:
                    logger.debug(
                        "Sent pack",
                        extra={"device_id": device.unique_id, "object_urn": urn},
                    )
        return errors

    @staticmethod
    def _add_channel(
        packs: Dict[str, Pack],
        device: Device,
        channel: Channel,
        timestamp: datetime,
    ) -> None:
        resource = resource_for(channel.sensor_name)
        if resource is None:
            return
        pack = packs.get(resource.urn)
        if pack is None:
            packs[resource.urn] = new_pack(
                device.unique_id, resource, channel.pre_scaled_value, timestamp
            )
        elif resource.appendable:
            pack.append(
                new_record(resource.resource, channel.pre_scaled_value, resource.unit, timestamp)
            )
