"""Risk classification from sensor readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple, Union

from models.readings import RiskLevel, SensorKind, SensorReading

# Per-sensor limits used to count how many readings are out of bounds.
DEFAULT_THRESHOLDS: Mapping[SensorKind, float] = MappingProxyType(
    {
        SensorKind.temperature: 35.0,
        SensorKind.humidity: 70.0,
        SensorKind.co2: 1000.0,
        SensorKind.co: 50.0,
        SensorKind.h2: 40.0,
    }
)


@dataclass(frozen=True)
class RiskRules:
    """Hard cutoffs plus per-sensor thresholds.

    The co cutoff (25 ppm) and the co threshold (50 ppm) come from two
    different rule sets and are both applied as-is.
    """

    danger_temperature: float = 40.0
    danger_co: float = 25.0
    warning_temperature: float = 30.0
    danger_over_count: int = 2
    thresholds: Mapping[SensorKind, float] = field(default_factory=lambda: DEFAULT_THRESHOLDS)


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel
    over_threshold: Tuple[SensorKind, ...] = ()
    reasons: Tuple[str, ...] = ()


class RiskClassifier:
    """Stateless safe/warning/danger classification."""

    def __init__(self, rules: RiskRules = RiskRules()) -> None:
        self.rules = rules

    def assess(self, reading: SensorReading) -> RiskAssessment:
        rules = self.rules
        exceeded: list[SensorKind] = []
        for kind, limit in rules.thresholds.items():
            value = reading.value(kind)
            if value is not None and value > limit:
                exceeded.append(kind)
        over = tuple(exceeded)
        temperature = reading.temperature
        co = reading.co

        danger: list[str] = []
        if temperature is not None and temperature > rules.danger_temperature:
            danger.append(f"temperature above {rules.danger_temperature:g}")
        if co is not None and co > rules.danger_co:
            danger.append(f"co above {rules.danger_co:g}")
        if len(over) >= rules.danger_over_count:
            danger.append(f"{len(over)} sensors over threshold")
        if danger:
            return RiskAssessment(RiskLevel.danger, over, tuple(danger))

        warning: list[str] = []
        if temperature is not None and temperature > rules.warning_temperature:
            warning.append(f"temperature above {rules.warning_temperature:g}")
        if over:
            warning.append(f"{over[0].value} over threshold")
        if warning:
            return RiskAssessment(RiskLevel.warning, over, tuple(warning))

        return RiskAssessment(RiskLevel.safe, over)

    def classify(
        self, reading_or_batch: Union[SensorReading, Iterable[SensorReading]]
    ) -> RiskLevel:
        """Level of a reading, or the most severe level across a batch (safe if empty)."""
        if isinstance(reading_or_batch, SensorReading):
            return self.assess(reading_or_batch).level
        level = RiskLevel.safe
        for reading in reading_or_batch:
            candidate = self.assess(reading).level
            if candidate.severity > level.severity:
                level = candidate
        return level
