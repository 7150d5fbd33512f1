"""One dashboard feed per logical data source."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, List, Optional, Tuple

from models.readings import SensorReading
from services.channel_map import DEFAULT_MAPPING, ChannelMapping, parse_mapping
from services.errors import ConfigError
from services.fallback import FallbackDecider, FallbackState
from services.normalizer import ReadingNormalizer
from services.poller import PollerState, PollingClient
from services.risk import RiskAssessment, RiskClassifier
from services.simulation import SimulationGenerator
from services.sources import LiveSource, ReadingSource, SimulatedSource
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSnapshot:
    """Everything a consumer needs for one refresh cycle."""

    source: str
    fallback: FallbackState
    latest_reading: Optional[SensorReading]
    history: Tuple[SensorReading, ...]
    risk: Optional[RiskAssessment]
    loading: bool
    error: Optional[str]
    last_updated: Optional[datetime]
    live: PollerState


SnapshotListener = Callable[[FeedSnapshot], None]


class DashboardFeed:
    """Selects live or simulated data each cycle and classifies the result.

    The feed subscribes to its polling client and rebuilds its snapshot
    whenever a poll cycle completes. Without a polling client (live source
    not configured) it runs on its own timer and always serves simulated
    data.
    """

    def __init__(
        self,
        poller: Optional[PollingClient],
        simulated: SimulatedSource,
        decider: Optional[FallbackDecider] = None,
        classifier: Optional[RiskClassifier] = None,
        mapping: ChannelMapping = DEFAULT_MAPPING,
        interval: float = 2.0,
        config_error: Optional[str] = None,
    ) -> None:
        if poller is None and not config_error:
            config_error = "Live telemetry source is not configured."
        self.poller = poller
        self.simulated = simulated
        self.decider = decider or FallbackDecider()
        self.classifier = classifier or RiskClassifier()
        self.mapping = mapping
        self.interval = poller.interval if poller is not None else interval
        self.config_error = config_error
        self._listeners: List[SnapshotListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._snapshot = self._build(self._live_state())
        if poller is not None:
            self._unsubscribe = poller.subscribe(self._on_state)

    @property
    def snapshot(self) -> FeedSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        if self.poller is not None:
            await self.poller.start()
            return
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._run_simulated(), name="feed-simulated")

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.poller is not None:
            await self.poller.stop()
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            await asyncio.gather(self._timer, return_exceptions=True)
        self._timer = None
        self._listeners.clear()

    async def refresh(self) -> FeedSnapshot:
        if self.poller is not None:
            await self.poller.refresh()
        else:
            self._publish(self._build(self._live_state()))
        return self._snapshot

    def _live_state(self) -> PollerState:
        if self.poller is not None:
            return self.poller.state
        return PollerState(error=self.config_error)

    def _on_state(self, state: PollerState) -> None:
        if state.loading:
            self._publish(replace(self._snapshot, loading=True, live=state))
            return
        self._publish(self._build(state))

    async def _run_simulated(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._publish(self._build(self._live_state()))

    def _build(self, state: PollerState) -> FeedSnapshot:
        fallback = self.decider.evaluate(state.latest_reading, state.error)
        source: ReadingSource
        if fallback.using_simulated_data:
            self.simulated.advance()
            source = self.simulated
            last_updated: Optional[datetime] = datetime.now(timezone.utc)
        else:
            source = LiveSource(state)
            last_updated = state.last_updated

        latest = source.latest()
        return FeedSnapshot(
            source=source.name,
            fallback=fallback,
            latest_reading=latest,
            history=source.history(),
            risk=self.classifier.assess(latest) if latest is not None else None,
            loading=state.loading,
            error=state.error,
            last_updated=last_updated,
            live=state,
        )

    def _publish(self, snapshot: FeedSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001 - one bad subscriber must not stop the others
                logger.exception("Feed listener failed", extra={"source": snapshot.source})


def load_mapping(settings: Settings) -> ChannelMapping:
    if not settings.channel_mapping:
        return DEFAULT_MAPPING
    return parse_mapping(settings.channel_mapping, settings.channel_mapping_version)


def build_feed(settings: Settings) -> DashboardFeed:
    """Wire a feed from settings; live configuration problems only disable the live source."""
    simulated = SimulatedSource(
        SimulationGenerator(), step=timedelta(seconds=settings.poll_interval)
    )
    decider = FallbackDecider(recovery_cycles=settings.fallback_recovery_cycles)
    try:
        mapping = load_mapping(settings)
        poller = PollingClient(
            channel_id=settings.telemetry_channel_id,
            api_key=settings.telemetry_api_key,
            normalizer=ReadingNormalizer(mapping=mapping),
            base_url=settings.telemetry_base_url,
            results=settings.telemetry_results,
            history_limit=settings.history_limit,
            interval=settings.poll_interval,
            timeout=settings.telemetry_timeout,
        )
    except ConfigError as exc:
        logger.warning("Live telemetry disabled; serving simulated data", extra={"error": exc})
        return DashboardFeed(
            poller=None,
            simulated=simulated,
            decider=decider,
            interval=settings.poll_interval,
            config_error=str(exc),
        )

    logger.info(
        "Live telemetry configured",
        extra={"channel_id": settings.telemetry_channel_id, "mapping_version": mapping.version},
    )
    return DashboardFeed(poller=poller, simulated=simulated, decider=decider, mapping=mapping)


@lru_cache
def build_default_feed() -> DashboardFeed:
    """Factory that wires the feed from environment settings."""
    return build_feed(get_settings())
