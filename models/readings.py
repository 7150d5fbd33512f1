"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Tuple


class SensorKind(str, Enum):
    """Semantic sensor categories, independent of wire field numbering."""

    temperature = "temperature"
    humidity = "humidity"
    co2 = "co2"
    co = "co"
    h2 = "h2"


class RiskLevel(str, Enum):
    """Categorical fire-risk classification."""

    safe = "safe"
    warning = "warning"
    danger = "danger"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {RiskLevel.safe: 0, RiskLevel.warning: 1, RiskLevel.danger: 2}


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One normalized sample; out-of-range values are stored as ``None``."""

    temperature: Optional[float]
    humidity: Optional[float]
    co2: Optional[float]
    co: Optional[float]
    h2: Optional[float]
    timestamp: str
    entry_id: Optional[int] = None

    def value(self, kind: SensorKind) -> Optional[float]:
        return getattr(self, kind.value)

    def values(self) -> Dict[SensorKind, Optional[float]]:
        return {kind: self.value(kind) for kind in SensorKind}

    def is_empty(self) -> bool:
        """True when none of the five sensor values is present."""
        return all(value is None for value in self.values().values())


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp format: {value!r}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def reading_time(reading: SensorReading) -> datetime:
    """Ordering key; unparseable timestamps sort before everything else."""
    try:
        return parse_timestamp(reading.timestamp)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)


def reading_order(reading: SensorReading) -> Tuple[datetime, int]:
    """Sort key; feed entries sharing a timestamp are ordered by entry id."""
    entry_id = reading.entry_id if reading.entry_id is not None else -1
    return reading_time(reading), entry_id


@dataclass(frozen=True)
class ReadingHistory:
    """Time-ascending readings bounded to the most recent ``limit`` entries.

    Instances are never mutated; ``merge`` returns a new history. Readings
    are identified by timestamp and feed entry id; a repeated reading is
    replaced by the incoming one, entries sharing a timestamp are ordered by
    entry id, and readings whose timestamp cannot be parsed sort first so they are the
    first to be truncated.
    """

    limit: int = 100
    readings: Tuple[SensorReading, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError("History limit must be positive.")

    def merge(self, incoming: Iterable[SensorReading]) -> "ReadingHistory":
        by_key: Dict[Tuple[str, Optional[int]], SensorReading] = {
            (reading.timestamp, reading.entry_id): reading for reading in self.readings
        }
        for reading in incoming:
            by_key[(reading.timestamp, reading.entry_id)] = reading
        ordered = sorted(by_key.values(), key=reading_order)
        return ReadingHistory(limit=self.limit, readings=tuple(ordered[-self.limit :]))

    @property
    def latest(self) -> Optional[SensorReading]:
        return self.readings[-1] if self.readings else None

    def __iter__(self) -> Iterator[SensorReading]:
        return iter(self.readings)

    def __len__(self) -> int:
        return len(self.readings)
