"""Reading sources handed explicitly to feed consumers."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Protocol, Tuple

from models.readings import ReadingHistory, SensorReading
from services.poller import PollerState
from services.simulation import SimulationGenerator


class ReadingSource(Protocol):
    name: str

    def latest(self) -> Optional[SensorReading]: ...

    def history(self) -> Tuple[SensorReading, ...]: ...


class LiveSource:
    """View over one published poller state."""

    name = "live"

    def __init__(self, state: PollerState) -> None:
        self.state = state

    def latest(self) -> Optional[SensorReading]:
        return self.state.latest_reading

    def history(self) -> Tuple[SensorReading, ...]:
        return self.state.history.readings


class SimulatedSource:
    """Synthetic readings, advanced one step per refresh cycle."""

    name = "simulated"

    def __init__(
        self,
        generator: Optional[SimulationGenerator] = None,
        history_size: int = 24,
        step: timedelta = timedelta(hours=1),
    ) -> None:
        self.generator = generator or SimulationGenerator()
        self.step = step
        self._history = ReadingHistory(limit=history_size)

    def advance(self) -> Optional[SensorReading]:
        if not self._history.readings:
            seed = self.generator.generate_history(self._history.limit, step=self.step)
            self._history = self._history.merge(seed)
        else:
            self._history = self._history.merge([self.generator.generate_reading()])
        return self._history.latest

    def latest(self) -> Optional[SensorReading]:
        return self._history.latest

    def history(self) -> Tuple[SensorReading, ...]:
        return self._history.readings
