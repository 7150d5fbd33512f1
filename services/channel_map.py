"""Versioned mapping from provider field slots to sensor kinds."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from models.feed import FIELD_SLOTS, RawFeedRecord
from models.readings import SensorKind
from services.errors import ConfigError


@dataclass(frozen=True)
class ChannelMapping:
    """Which feed slot carries each sensor kind for one device wiring.

    The table must cover every sensor kind exactly once; anything else is a
    wiring description we cannot trust and is rejected at construction.
    """

    version: str
    slots: Mapping[SensorKind, str]

    def __post_init__(self) -> None:
        missing = [kind.value for kind in SensorKind if kind not in self.slots]
        if missing:
            raise ConfigError(
                f"Channel mapping {self.version!r} is missing kinds: {', '.join(missing)}"
            )
        unknown = sorted(slot for slot in self.slots.values() if slot not in FIELD_SLOTS)
        if unknown:
            raise ConfigError(
                f"Channel mapping {self.version!r} uses unknown slots: {', '.join(unknown)}"
            )
        seen: Dict[str, SensorKind] = {}
        for kind, slot in self.slots.items():
            if slot in seen:
                raise ConfigError(
                    f"Channel mapping {self.version!r} assigns {slot} to both "
                    f"{seen[slot].value} and {kind.value}"
                )
            seen[slot] = kind
        object.__setattr__(self, "slots", MappingProxyType(dict(self.slots)))

    def slot_for(self, kind: SensorKind) -> str:
        return self.slots[kind]

    def describe(self) -> Dict[str, str]:
        """Slot per kind in sensor-kind order, for diagnostics."""
        return {kind.value: self.slots[kind] for kind in SensorKind}


# Physical wiring of the deployed node: gas sensors on the first three slots,
# the DHT pair on 4 and 5.
DEFAULT_MAPPING = ChannelMapping(
    version="thingspeak-3111993-v2",
    slots={
        SensorKind.co2: "field1",
        SensorKind.co: "field2",
        SensorKind.h2: "field3",
        SensorKind.temperature: "field4",
        SensorKind.humidity: "field5",
    },
)


def parse_mapping(spec: str, version: Optional[str] = None) -> ChannelMapping:
    """Build a mapping from ``"temperature=field4,humidity=field5,..."``."""
    slots: Dict[SensorKind, str] = {}
    for part in spec.split(","):
        item = part.strip()
        if not item:
            continue
        name, sep, slot = item.partition("=")
        if not sep:
            raise ConfigError(f"Invalid channel mapping entry {item!r}; expected kind=fieldN.")
        try:
            kind = SensorKind(name.strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown sensor kind {name.strip()!r} in channel mapping.") from exc
        if kind in slots:
            raise ConfigError(f"Sensor kind {kind.value!r} mapped more than once.")
        slots[kind] = slot.strip().lower()
    return ChannelMapping(version=version or "custom", slots=slots)


def map_fields(record: RawFeedRecord, mapping: ChannelMapping) -> Dict[SensorKind, Optional[str]]:
    """Pull each kind's raw string from the slot the mapping assigns it."""
    return {kind: record.slot(mapping.slot_for(kind)) for kind in SensorKind}
