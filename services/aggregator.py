"""Aggregation logic for sensor reading histories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable

from models.readings import SensorKind, SensorReading


@dataclass
class KindSummary:
    """Statistics for one sensor kind; missing values are not counted."""

    count: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None


@dataclass
class AggregationSummary:
    """Computed statistics for a batch of sensor readings."""

    reading_count: int = 0
    per_kind: Dict[SensorKind, KindSummary] = field(
        default_factory=lambda: {kind: KindSummary() for kind in SensorKind}
    )


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, readings: Iterable[SensorReading]) -> AggregationSummary:
        summary = AggregationSummary()
        totals = {kind: 0.0 for kind in SensorKind}

        for reading in readings:
            summary.reading_count += 1
            for kind, value in reading.values().items():
                if value is None:
                    continue
                stats = summary.per_kind[kind]
                stats.count += 1
                totals[kind] += value

                if stats.min_value is None or value < stats.min_value:
                    stats.min_value = value
                if stats.max_value is None or value > stats.max_value:
                    stats.max_value = value

        for kind, stats in summary.per_kind.items():
            if stats.count:
                stats.mean_value = totals[kind] / stats.count

        return summary
