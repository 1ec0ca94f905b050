"""Conversion of raw channel readings into canonical readings."""

from __future__ import annotations

from typing import Iterable, List

from models.records import CanonicalReading, Channel
from services.mapping import DEFAULT_MAPPING, SensorMapping


class ReadingExtractor:
    """Pure extraction component that can be unit tested in isolation."""

    def __init__(self, mapping: SensorMapping = DEFAULT_MAPPING) -> None:
        self.mapping = mapping

    def extract(self, channels: Iterable[Channel], observed_at: str) -> List[CanonicalReading]:
        """Return one reading per recognised channel, in input order.

        Values are the scaled readings. Flags and numeric ranges are not
        inspected.
        """
        readings: List[CanonicalReading] = []
        for channel in channels:
            name = self.mapping.canonical_name(channel.sensor_name)
            if name is None:
                continue
            readings.append(
                CanonicalReading(
                    canonical_name=name,
                    value=channel.scaled_value,
                    unit_code=self.mapping.unit_code(channel.unit_name),
                    observed_at=observed_at,
                )
            )
        return readings
