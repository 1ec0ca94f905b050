"""Projection of device snapshots onto NGSI-LD AirQualityObserved entities."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from models.errors import EntityNotFoundError, IntegrationError
from models.records import CanonicalReading, Device, DeviceSnapshot
from services.extractor import ReadingExtractor

logger = logging.getLogger(__name__)

AIR_QUALITY_OBSERVED_TYPE = "AirQualityObserved"
AIR_QUALITY_OBSERVED_ID_PREFIX = f"urn:ngsi-ld:{AIR_QUALITY_OBSERVED_TYPE}:"
DEFAULT_CONTEXT_URL = (
    "https://raw.githubusercontent.com/diwise/context-broker/main/"
    "assets/jsonldcontexts/default-context.jsonld"
)
LD_HEADERS: Mapping[str, str] = {"Content-Type": "application/ld+json"}

Decorator = Callable[[Dict[str, Any]], None]


class EntitySink(Protocol):
    def merge_entity(
        self, entity_id: str, fragment: Dict[str, Any], headers: Mapping[str, str]
    ) -> None: ...

    def create_entity(self, entity: Dict[str, Any], headers: Mapping[str, str]) -> None: ...


def default_context() -> Decorator:
    def decorate(entity: Dict[str, Any]) -> None:
        entity["@context"] = [DEFAULT_CONTEXT_URL]

    return decorate


def text(name: str, value: str) -> Decorator:
    def decorate(entity: Dict[str, Any]) -> None:
        entity[name] = {"type": "Property", "value": value}

    return decorate


def location(latitude: float, longitude: float) -> Decorator:
    def decorate(entity: Dict[str, Any]) -> None:
        entity["location"] = {
            "type": "GeoProperty",
            "value": {"type": "Point", "coordinates": [longitude, latitude]},
        }

    return decorate


def date_time(name: str, value: str) -> Decorator:
    def decorate(entity: Dict[str, Any]) -> None:
        entity[name] = {
            "type": "Property",
            "value": {"@type": "DateTime", "@value": value},
        }

    return decorate


def number(name: str, value: float, unit_code: Optional[str], observed_at: str) -> Decorator:
    def decorate(entity: Dict[str, Any]) -> None:
        prop: Dict[str, Any] = {"type": "Property", "value": value}
        if unit_code:
            prop["unitCode"] = unit_code
        prop["observedAt"] = observed_at
        entity[name] = prop

    return decorate


def reading_decorators(readings: Sequence[CanonicalReading]) -> List[Decorator]:
    return [
        number(r.canonical_name, r.value, r.unit_code, r.observed_at) for r in readings
    ]


def new_fragment(decorators: Sequence[Decorator]) -> Dict[str, Any]:
    fragment: Dict[str, Any] = {}
    for decorate in decorators:
        decorate(fragment)
    return fragment


def new_entity(entity_id: str, entity_type: str, decorators: Sequence[Decorator]) -> Dict[str, Any]:
    entity: Dict[str, Any] = {"id": entity_id, "type": entity_type}
    for decorate in decorators:
        decorate(entity)
    return entity


def entity_id_for(device: Device) -> str:
    return f"{AIR_QUALITY_OBSERVED_ID_PREFIX}{device.unique_id}"


class FiwareProjector:
    """Upserts one AirQualityObserved entity per device and sweep."""

    name = "fiware"

    def __init__(self, broker: EntitySink, extractor: ReadingExtractor) -> None:
        self.broker = broker
        self.extractor = extractor

    def close(self) -> None:
        close = getattr(self.broker, "close", None)
        if close is not None:
            close()

    def build_decorators(self, device: Device, snapshots: Sequence[DeviceSnapshot]) -> List[Decorator]:
        decorators: List[Decorator] = [default_context(), text("areaServed", device.device_name)]
        for snapshot in snapshots:
            decorators.append(location(snapshot.location.latitude, snapshot.location.longitude))
            decorators.append(date_time("dateObserved", snapshot.timestamp))
            readings = self.extractor.extract(snapshot.channels, snapshot.timestamp)
            decorators.extend(reading_decorators(readings))
        return decorators

    def project(self, device: Device, snapshots: Sequence[DeviceSnapshot]) -> List[Exception]:
        """Merge the device entity, creating it when the broker lacks it.

        Only a not-found merge falls back to create. Any other failure is
        logged and returned so the sweep can move on to the next device.
        """
        decorators = self.build_decorators(device, snapshots)
        entity_id = entity_id_for(device)
        log_extra = {"device_id": device.unique_id, "entity_id": entity_id}

        try:
            self.broker.merge_entity(entity_id, new_fragment(decorators), LD_HEADERS)
        except EntityNotFoundError:
            logger.debug("Entity not found, creating it", extra=log_extra)
        except IntegrationError as exc:
            logger.error("Failed to merge entity: %s", exc, extra=log_extra)
            return [exc]
        else:
            logger.info("Updated entity", extra=log_extra)
            return []

        entity = new_entity(entity_id, AIR_QUALITY_OBSERVED_TYPE, decorators)
        try:
            self.broker.create_entity(entity, LD_HEADERS)
        except IntegrationError as exc:
            logger.error("Failed to post entity to context broker: %s", exc, extra=log_extra)
            return [exc]

        logger.info("Created entity", extra=log_extra)
        return []
