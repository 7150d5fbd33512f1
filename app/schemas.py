"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.readings import RiskLevel, SensorKind


class SensorReadingOut(BaseModel):
    """A normalized reading; absent or implausible values are null."""

    model_config = ConfigDict(from_attributes=True)

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    co2: Optional[float] = None
    co: Optional[float] = None
    h2: Optional[float] = None
    timestamp: str


class RiskOut(BaseModel):
    level: RiskLevel
    over_threshold: List[SensorKind] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)


class LatestResponse(BaseModel):
    """Latest reading of the active source with its derived risk."""

    source: str
    using_simulated_data: bool
    fallback_reason: str
    reading: Optional[SensorReadingOut] = None
    risk: Optional[RiskOut] = None
    loading: bool = False
    last_updated: Optional[datetime] = None


class HistoryResponse(BaseModel):
    source: str
    using_simulated_data: bool
    readings: List[SensorReadingOut] = Field(default_factory=list)
    risk_level: RiskLevel = Field(
        ..., description="Most severe level across the returned readings."
    )


class KindAggregate(BaseModel):
    count: int = Field(..., ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None


class SummaryResponse(BaseModel):
    """Aggregate metrics computed over the active history."""

    source: str
    reading_count: int = Field(..., ge=0)
    per_kind: Dict[SensorKind, KindAggregate] = Field(default_factory=dict)


class RiskResponse(BaseModel):
    source: str
    using_simulated_data: bool
    timestamp: Optional[str] = None
    risk: Optional[RiskOut] = None
    history_level: RiskLevel


class MappingResponse(BaseModel):
    version: str
    slots: Dict[SensorKind, str]


class DiagnosticsResponse(BaseModel):
    """Debug view, including raw error text hidden from the main views."""

    source: str
    fallback_reason: str
    error: Optional[str] = None
    live_configured: bool
    live_loading: bool
    live_latest: Optional[SensorReadingOut] = None
    live_history_count: int = Field(..., ge=0)
    live_last_updated: Optional[datetime] = None
    mapping_version: str


class IngestPayload(BaseModel):
    """Reading pushed directly by a sensor node."""

    model_config = ConfigDict(populate_by_name=True)

    temperature: float = Field(..., strict=True)
    humidity: float = Field(..., strict=True)
    co2: float = Field(..., strict=True)
    carbon_monoxide: float = Field(..., alias="carbonMonoxide", strict=True)
    h2: float = Field(..., strict=True)
    fire_detected: bool = Field(..., alias="fireDetected", strict=True)
    created_at: Optional[datetime] = None


class StoredReading(BaseModel):
    """Full record of an ingested reading; risk is derived on read."""

    id: str
    temperature: float
    humidity: float
    co2: float
    co: float
    h2: float
    fire_detected: bool
    created_at: datetime


class StoredReadingOut(StoredReading):
    risk_level: RiskLevel


class IngestResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: datetime
