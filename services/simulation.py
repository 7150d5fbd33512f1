"""Synthetic sensor readings for when live data is unusable."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from models.readings import SensorKind, SensorReading, format_timestamp


@dataclass(frozen=True)
class WalkBounds:
    low: float
    high: float
    step: float

    def clamp(self, value: float) -> float:
        return max(self.low, min(value, self.high))


SIMULATION_BOUNDS: Dict[SensorKind, WalkBounds] = {
    SensorKind.temperature: WalkBounds(15.0, 35.0, 0.5),
    SensorKind.humidity: WalkBounds(30.0, 90.0, 1.0),
    SensorKind.co2: WalkBounds(350.0, 1200.0, 10.0),
    SensorKind.co: WalkBounds(0.0, 25.0, 0.3),
    SensorKind.h2: WalkBounds(0.0, 10.0, 0.2),
}

# Amplitude of the daily temperature swing, peaking mid-afternoon.
DAILY_TEMPERATURE_SWING = 5.0
HUMIDITY_COUPLING = 0.7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimulationGenerator:
    """Bounded random walk per sensor kind.

    Each call advances the walk one step, so consecutive readings drift
    rather than jump. Pass a seeded ``random.Random`` and a fixed clock to
    make output reproducible.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.rng = rng or random.Random()
        self.clock = clock
        self._base = {
            SensorKind.temperature: self.rng.uniform(22.0, 27.0),
            SensorKind.humidity: self.rng.uniform(50.0, 60.0),
            SensorKind.co2: self.rng.uniform(400.0, 500.0),
            SensorKind.co: self.rng.uniform(5.0, 8.0),
            SensorKind.h2: self.rng.uniform(2.0, 4.0),
        }

    def generate_reading(self) -> SensorReading:
        return self._step(self.clock())

    def generate_history(
        self, count: int, step: timedelta = timedelta(hours=1)
    ) -> List[SensorReading]:
        """``count`` readings ending now, oldest first."""
        if count < 0:
            raise ValueError("count must not be negative.")
        now = self.clock()
        return [self._step(now - step * offset) for offset in range(count - 1, -1, -1)]

    def _step(self, at: datetime) -> SensorReading:
        for kind, bounds in SIMULATION_BOUNDS.items():
            drift = (self.rng.random() - 0.5) * bounds.step
            self._base[kind] = bounds.clamp(self._base[kind] + drift)

        hour = at.hour + at.minute / 60.0
        daily = math.sin((hour - 6.0) * math.pi / 12.0) * DAILY_TEMPERATURE_SWING

        values = {
            SensorKind.temperature: self._base[SensorKind.temperature] + daily,
            SensorKind.humidity: self._base[SensorKind.humidity] - daily * HUMIDITY_COUPLING,
            SensorKind.co2: self._base[SensorKind.co2],
            SensorKind.co: self._base[SensorKind.co],
            SensorKind.h2: self._base[SensorKind.h2],
        }
        return SensorReading(
            timestamp=format_timestamp(at),
            **{
                kind.value: round(SIMULATION_BOUNDS[kind].clamp(value), 2)
                for kind, value in values.items()
            },
        )
