"""Wire models for the telemetry channel feed."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIELD_SLOTS = tuple(f"field{index}" for index in range(1, 9))


class RawFeedRecord(BaseModel):
    """One feed entry as the provider sends it, fields left as opaque strings."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    created_at: str
    entry_id: Optional[int] = None
    field1: Optional[str] = None
    field2: Optional[str] = None
    field3: Optional[str] = None
    field4: Optional[str] = None
    field5: Optional[str] = None
    field6: Optional[str] = None
    field7: Optional[str] = None
    field8: Optional[str] = None

    @field_validator(*FIELD_SLOTS, mode="before")
    @classmethod
    def _stringify_numbers(cls, value: Any) -> Any:
        # some channels emit bare JSON numbers instead of strings
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def slot(self, name: str) -> Optional[str]:
        if name not in FIELD_SLOTS:
            raise KeyError(f"Unknown field slot {name!r}.")
        return getattr(self, name)


class FeedPayload(BaseModel):
    """Response body of ``GET /channels/{id}/feeds.json``."""

    model_config = ConfigDict(extra="ignore")

    channel: Dict[str, Any] = Field(default_factory=dict)
    feeds: List[RawFeedRecord] = Field(default_factory=list)
