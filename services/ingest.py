"""Validated write path for readings pushed by sensor nodes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional
from uuid import uuid4

from app.schemas import IngestPayload, StoredReading, StoredReadingOut
from datastore.reading_store import ReadingStore, build_default_store
from models.readings import SensorKind, SensorReading, format_timestamp
from services.parser import INGEST_RANGES, FieldParser
from services.risk import RiskClassifier

logger = logging.getLogger(__name__)

_LABELS = {
    SensorKind.temperature: "temperature",
    SensorKind.humidity: "humidity",
    SensorKind.co2: "CO2",
    SensorKind.co: "carbon monoxide",
    SensorKind.h2: "H2",
}


class IngestService:
    """Range-checks pushed readings and stores them."""

    def __init__(
        self,
        store: ReadingStore,
        ingest_parser: Optional[FieldParser] = None,
        display_parser: Optional[FieldParser] = None,
        classifier: Optional[RiskClassifier] = None,
    ) -> None:
        self.store = store
        self.ingest_parser = ingest_parser or FieldParser(INGEST_RANGES)
        self.display_parser = display_parser or FieldParser()
        self.classifier = classifier or RiskClassifier()

    def record(self, payload: IngestPayload) -> StoredReading:
        """Store ``payload``; raises ``ValueError`` naming the first invalid field."""
        values = {
            SensorKind.temperature: payload.temperature,
            SensorKind.humidity: payload.humidity,
            SensorKind.co2: payload.co2,
            SensorKind.co: payload.carbon_monoxide,
            SensorKind.h2: payload.h2,
        }
        for kind, value in values.items():
            if not self.ingest_parser.in_range(value, kind):
                bounds = self.ingest_parser.ranges[kind]
                raise ValueError(
                    f"Invalid {_LABELS[kind]} value (must be number between "
                    f"{bounds.low:g} and {bounds.high:g})"
                )

        created_at = payload.created_at or datetime.now(timezone.utc)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        item = StoredReading(
            id=str(uuid4()),
            temperature=payload.temperature,
            humidity=payload.humidity,
            co2=payload.co2,
            co=payload.carbon_monoxide,
            h2=payload.h2,
            fire_detected=payload.fire_detected,
            created_at=created_at.astimezone(timezone.utc),
        )
        self.store.put(item)
        logger.info("Stored ingested reading", extra={"entry_id": item.id, "source": "ingest"})
        return item

    def to_sensor_reading(self, item: StoredReading) -> SensorReading:
        """Project a stored reading onto the display ranges; wider ingest values become null."""
        return SensorReading(
            temperature=self.display_parser.check(item.temperature, SensorKind.temperature),
            humidity=self.display_parser.check(item.humidity, SensorKind.humidity),
            co2=self.display_parser.check(item.co2, SensorKind.co2),
            co=self.display_parser.check(item.co, SensorKind.co),
            h2=self.display_parser.check(item.h2, SensorKind.h2),
            timestamp=format_timestamp(item.created_at),
        )

    def recent(self, limit: int = 50) -> List[StoredReadingOut]:
        return [
            StoredReadingOut(
                **item.model_dump(),
                risk_level=self.classifier.classify(self.to_sensor_reading(item)),
            )
            for item in self.store.recent(limit)
        ]


@lru_cache
def build_default_ingest() -> IngestService:
    """Factory that wires the ingestion service with the default store."""
    return IngestService(store=build_default_store())
