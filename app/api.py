"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import ValidationError

from app.schemas import (
    DiagnosticsResponse,
    HistoryResponse,
    IngestPayload,
    IngestResponse,
    KindAggregate,
    LatestResponse,
    MappingResponse,
    RiskOut,
    RiskResponse,
    SensorReadingOut,
    StoredReadingOut,
    SummaryResponse,
)
from models.readings import SensorReading
from services.aggregator import Aggregator
from services.feed import DashboardFeed, FeedSnapshot, build_default_feed
from services.ingest import IngestService, build_default_ingest
from services.risk import RiskAssessment

router = APIRouter()


def get_feed() -> DashboardFeed:
    return build_default_feed()


def get_ingest() -> IngestService:
    return build_default_ingest()


def _reading_out(reading: Optional[SensorReading]) -> Optional[SensorReadingOut]:
    if reading is None:
        return None
    return SensorReadingOut.model_validate(reading)


def _risk_out(assessment: Optional[RiskAssessment]) -> Optional[RiskOut]:
    if assessment is None:
        return None
    return RiskOut(
        level=assessment.level,
        over_threshold=list(assessment.over_threshold),
        reasons=list(assessment.reasons),
    )


def _latest_response(snapshot: FeedSnapshot) -> LatestResponse:
    return LatestResponse(
        source=snapshot.source,
        using_simulated_data=snapshot.fallback.using_simulated_data,
        fallback_reason=snapshot.fallback.reason.value,
        reading=_reading_out(snapshot.latest_reading),
        risk=_risk_out(snapshot.risk),
        loading=snapshot.loading,
        last_updated=snapshot.last_updated,
    )


@router.get(
    "/readings/latest",
    response_model=LatestResponse,
    summary="Latest reading of the active source with its risk level.",
)
async def latest_reading(feed: DashboardFeed = Depends(get_feed)) -> LatestResponse:
    return _latest_response(feed.snapshot)


@router.get(
    "/readings/history",
    response_model=HistoryResponse,
    summary="Time-ascending reading history of the active source.",
)
async def reading_history(feed: DashboardFeed = Depends(get_feed)) -> HistoryResponse:
    snapshot = feed.snapshot
    return HistoryResponse(
        source=snapshot.source,
        using_simulated_data=snapshot.fallback.using_simulated_data,
        readings=[SensorReadingOut.model_validate(reading) for reading in snapshot.history],
        risk_level=feed.classifier.classify(snapshot.history),
    )


@router.get(
    "/readings/summary",
    response_model=SummaryResponse,
    summary="Per-sensor aggregates over the active history.",
)
async def reading_summary(feed: DashboardFeed = Depends(get_feed)) -> SummaryResponse:
    snapshot = feed.snapshot
    summary = Aggregator().aggregate(snapshot.history)
    return SummaryResponse(
        source=snapshot.source,
        reading_count=summary.reading_count,
        per_kind={
            kind: KindAggregate(
                count=stats.count,
                min_value=stats.min_value,
                max_value=stats.max_value,
                mean_value=stats.mean_value,
            )
            for kind, stats in summary.per_kind.items()
        },
    )


@router.get(
    "/risk",
    response_model=RiskResponse,
    summary="Risk assessment of the latest reading and of the history.",
)
async def current_risk(feed: DashboardFeed = Depends(get_feed)) -> RiskResponse:
    snapshot = feed.snapshot
    latest = snapshot.latest_reading
    return RiskResponse(
        source=snapshot.source,
        using_simulated_data=snapshot.fallback.using_simulated_data,
        timestamp=latest.timestamp if latest is not None else None,
        risk=_risk_out(snapshot.risk),
        history_level=feed.classifier.classify(snapshot.history),
    )


@router.post(
    "/refresh",
    response_model=LatestResponse,
    summary="Poll the telemetry feed now.",
)
async def refresh(feed: DashboardFeed = Depends(get_feed)) -> LatestResponse:
    snapshot = await feed.refresh()
    return _latest_response(snapshot)


@router.get(
    "/diagnostics",
    response_model=DiagnosticsResponse,
    summary="Raw live-source state for debugging.",
)
async def diagnostics(feed: DashboardFeed = Depends(get_feed)) -> DiagnosticsResponse:
    snapshot = feed.snapshot
    live = snapshot.live
    return DiagnosticsResponse(
        source=snapshot.source,
        fallback_reason=snapshot.fallback.reason.value,
        error=snapshot.error,
        live_configured=feed.poller is not None,
        live_loading=live.loading,
        live_latest=_reading_out(live.latest_reading),
        live_history_count=len(live.history),
        live_last_updated=live.last_updated,
        mapping_version=feed.mapping.version,
    )


@router.get(
    "/mapping",
    response_model=MappingResponse,
    summary="Channel field slot assigned to each sensor kind.",
)
async def channel_mapping(feed: DashboardFeed = Depends(get_feed)) -> MappingResponse:
    return MappingResponse(version=feed.mapping.version, slots=dict(feed.mapping.slots))


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Store a reading pushed by a sensor node.",
)
def ingest_reading(
    body: Dict[str, Any] = Body(...),
    service: IngestService = Depends(get_ingest),
) -> IngestResponse:
    try:
        payload = IngestPayload.model_validate(body)
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing or invalid fields: {', '.join(fields)}",
        ) from exc
    try:
        item = service.record(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return IngestResponse(message="Sensor data recorded successfully", timestamp=item.created_at)


@router.get(
    "/ingest/readings",
    response_model=List[StoredReadingOut],
    summary="Most recent ingested readings with their risk level.",
)
def ingested_readings(
    limit: int = Query(50, ge=1, le=1000),
    service: IngestService = Depends(get_ingest),
) -> List[StoredReadingOut]:
    return service.recent(limit)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
