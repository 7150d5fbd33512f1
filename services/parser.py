"""Field value parsing with per-kind plausibility ranges."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from models.readings import SensorKind

_MISSING_LITERALS = frozenset({"", "null", "undefined"})
# Plain decimal notation with an optional exponent; no underscores, inf or hex.
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class ValueRange:
    low: float
    high: float

    def __contains__(self, value: float) -> bool:
        return self.low <= value <= self.high


# Canonical ranges for everything the dashboard displays. Where older call
# sites disagreed, the tighter bound is used.
DEFAULT_RANGES: Mapping[SensorKind, ValueRange] = MappingProxyType(
    {
        SensorKind.temperature: ValueRange(-50.0, 100.0),
        SensorKind.humidity: ValueRange(0.0, 100.0),
        SensorKind.co2: ValueRange(0.0, 10000.0),
        SensorKind.co: ValueRange(0.0, 100.0),
        SensorKind.h2: ValueRange(0.0, 100.0),
    }
)

# Ranges accepted by the direct ingestion endpoint.
INGEST_RANGES: Mapping[SensorKind, ValueRange] = MappingProxyType(
    {
        SensorKind.temperature: ValueRange(-50.0, 150.0),
        SensorKind.humidity: ValueRange(0.0, 100.0),
        SensorKind.co2: ValueRange(0.0, 10000.0),
        SensorKind.co: ValueRange(0.0, 1000.0),
        SensorKind.h2: ValueRange(0.0, 1000.0),
    }
)


def parse_number(raw: Optional[str]) -> Optional[float]:
    """Parse ``raw`` as a float, treating missing markers and NaN as absent."""
    if raw is None:
        return None
    candidate = raw.strip()
    if candidate.lower() in _MISSING_LITERALS:
        return None
    if not _DECIMAL_PATTERN.fullmatch(candidate):
        return None
    value = float(candidate)
    if not math.isfinite(value):
        return None
    return value


class FieldParser:
    """Turns raw feed strings into range-checked readings."""

    def __init__(self, ranges: Mapping[SensorKind, ValueRange] = DEFAULT_RANGES) -> None:
        missing = [kind.value for kind in SensorKind if kind not in ranges]
        if missing:
            raise ValueError(f"Range table missing kinds: {', '.join(missing)}")
        self.ranges = ranges

    def in_range(self, value: float, kind: SensorKind) -> bool:
        return value in self.ranges[kind]

    def check(self, value: Optional[float], kind: SensorKind) -> Optional[float]:
        """Return ``value`` if it is plausible for ``kind``, otherwise None."""
        if value is None or not self.in_range(value, kind):
            return None
        return value

    def parse(self, raw: Optional[str], kind: SensorKind) -> Optional[float]:
        return self.check(parse_number(raw), kind)
