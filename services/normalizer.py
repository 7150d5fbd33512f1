"""Normalization of raw feed records into sensor readings."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from models.feed import RawFeedRecord
from models.readings import SensorKind, SensorReading
from services.channel_map import DEFAULT_MAPPING, ChannelMapping, map_fields
from services.parser import FieldParser, parse_number

logger = logging.getLogger(__name__)

# The node occasionally drops the decimal separator (34.36 arrives as 3436).
TEMPERATURE_CORRECTION_THRESHOLD = 3000.0
TEMPERATURE_CORRECTION_DIVISOR = 100.0


class ReadingNormalizer:
    """Combines channel mapping and field parsing into ``SensorReading`` objects."""

    def __init__(
        self,
        mapping: ChannelMapping = DEFAULT_MAPPING,
        parser: Optional[FieldParser] = None,
        correction_threshold: float = TEMPERATURE_CORRECTION_THRESHOLD,
    ) -> None:
        self.mapping = mapping
        self.parser = parser or FieldParser()
        self.correction_threshold = correction_threshold

    def normalize(self, record: RawFeedRecord) -> SensorReading:
        raw = map_fields(record, self.mapping)
        values = {}
        for kind, raw_value in raw.items():
            if kind is SensorKind.temperature:
                value = self._temperature(raw_value, record)
            else:
                value = self.parser.parse(raw_value, kind)
            if value is None and parse_number(raw_value) is not None:
                logger.debug(
                    "Dropped implausible field value",
                    extra={"entry_id": record.entry_id, "kind": kind.value, "raw_value": raw_value},
                )
            values[kind.value] = value
        return SensorReading(timestamp=record.created_at, entry_id=record.entry_id, **values)

    def normalize_many(self, records: Iterable[RawFeedRecord]) -> List[SensorReading]:
        return [self.normalize(record) for record in records]

    def _temperature(self, raw_value: Optional[str], record: RawFeedRecord) -> Optional[float]:
        value = parse_number(raw_value)
        if value is not None and value > self.correction_threshold:
            corrected = value / TEMPERATURE_CORRECTION_DIVISOR
            logger.debug(
                "Rescaled temperature with missing decimal separator",
                extra={"entry_id": record.entry_id, "kind": "temperature", "raw_value": raw_value},
            )
            value = corrected
        return self.parser.check(value, SensorKind.temperature)
