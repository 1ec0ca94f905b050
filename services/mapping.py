"""Lookup tables translating vendor sensor and unit names."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


_SENSOR_NAMES = {
    "Humidity": "relativeHumidity",
    "Temperature": "temperature",
    "Air Pressure": "atmosphericPressure",
    "Particulate Matter (PM 1)": "PM1",
    "PM 4": "PM4",
    "Particulate Matter (PM 10)": "PM10",
    "Particulate Matter (PM 2.5)": "PM25",
    "Total Suspended Particulate": "totalSuspendedParticulate",
    "Voltage": "voltage",
    "Nitric Oxide": "NO",
    "Nitrogen Dioxide": "NO2",
    "Nitrogen Oxides": "NOx",
}

# UN/CEFACT common codes.
_UNIT_CODES = {
    "Micrograms Per Cubic Meter": "GQ",
    "Volts": "VLT",
    "Celsius": "CEL",
    "Percent": "P1",
    "Hectopascals": "A97",
    "Parts Per Billion": "61",
    "Pressure (mbar)": "MBR",
}


@dataclass(frozen=True)
class SensorMapping:
    """Read-only allow-list of vendor sensor names and their unit codes.

    Lookups are exact and case-sensitive. A miss returns ``None``: sensors
    that are not listed are simply not synchronised downstream.
    """

    sensor_names: Mapping[str, str]
    unit_codes: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "sensor_names", MappingProxyType(dict(self.sensor_names)))
        object.__setattr__(self, "unit_codes", MappingProxyType(dict(self.unit_codes)))

    def canonical_name(self, sensor_name: str) -> Optional[str]:
        return self.sensor_names.get(sensor_name)

    def unit_code(self, unit_name: str) -> Optional[str]:
        return self.unit_codes.get(unit_name)


DEFAULT_MAPPING = SensorMapping(sensor_names=_SENSOR_NAMES, unit_codes=_UNIT_CODES)
