"""Live versus simulated data decision."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.readings import SensorReading

logger = logging.getLogger(__name__)


class FallbackReason(str, Enum):
    live_data = "live_data"
    fetch_error = "fetch_error"
    no_reading = "no_reading"
    empty_reading = "empty_reading"


@dataclass(frozen=True)
class FallbackState:
    using_simulated_data: bool
    reason: FallbackReason


def fallback_reason(
    latest: Optional[SensorReading], error: Optional[str]
) -> FallbackReason:
    if error:
        return FallbackReason.fetch_error
    if latest is None:
        return FallbackReason.no_reading
    if latest.is_empty():
        return FallbackReason.empty_reading
    return FallbackReason.live_data


def should_use_fallback(latest: Optional[SensorReading], error: Optional[str]) -> bool:
    """True when live data is erroring, absent, or carries no sensor values."""
    return fallback_reason(latest, error) is not FallbackReason.live_data


class FallbackDecider:
    """Evaluates the fallback rule once per poll cycle.

    With ``recovery_cycles`` above 1, leaving simulated mode requires that
    many consecutive healthy cycles, which keeps a flapping feed from
    toggling the banner on every poll. Entering simulated mode is always
    immediate. The default of 1 applies the rule with no memory at all.
    """

    def __init__(self, recovery_cycles: int = 1) -> None:
        if recovery_cycles < 1:
            raise ValueError("recovery_cycles must be at least 1.")
        self.recovery_cycles = recovery_cycles
        self._healthy_streak = 0
        self._simulating = False

    def evaluate(
        self, latest: Optional[SensorReading], error: Optional[str]
    ) -> FallbackState:
        reason = fallback_reason(latest, error)
        if reason is not FallbackReason.live_data:
            self._healthy_streak = 0
            if not self._simulating:
                logger.info("Switching to simulated data", extra={"reason": reason.value})
            self._simulating = True
            return FallbackState(using_simulated_data=True, reason=reason)

        self._healthy_streak += 1
        if self._simulating and self._healthy_streak < self.recovery_cycles:
            return FallbackState(using_simulated_data=True, reason=FallbackReason.live_data)

        if self._simulating:
            logger.info("Live data recovered", extra={"reason": reason.value})
        self._simulating = False
        return FallbackState(using_simulated_data=False, reason=reason)
