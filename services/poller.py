"""Periodic polling of the telemetry channel feed."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

import httpx

from models.feed import FeedPayload, RawFeedRecord
from models.readings import ReadingHistory, SensorReading
from services.errors import (
    ConfigError,
    EmptyFeedError,
    FeedError,
    MalformedFeedError,
    NetworkError,
)
from services.normalizer import ReadingNormalizer

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.thingspeak.com"


@dataclass(frozen=True)
class PollerState:
    """Snapshot published after every change; replaced, never mutated."""

    latest_reading: Optional[SensorReading] = None
    history: ReadingHistory = field(default_factory=ReadingHistory)
    loading: bool = False
    error: Optional[str] = None
    last_updated: Optional[datetime] = None


StateListener = Callable[[PollerState], None]


class PollingClient:
    """Fetches the most recent feed records on an interval.

    At most one fetch is in flight per instance. Timer ticks that land while a
    fetch is running are skipped; a manual ``refresh`` cancels the running
    fetch and issues a new one. Results are applied only when they belong to
    the newest issued fetch and the client has not been stopped, so a slow
    response can never overwrite fresher data.
    """

    def __init__(
        self,
        channel_id: Optional[str],
        api_key: Optional[str] = None,
        normalizer: Optional[ReadingNormalizer] = None,
        http: Optional[httpx.AsyncClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        results: int = 10,
        history_limit: int = 100,
        interval: float = 2.0,
        timeout: float = 10.0,
        name: str = "thingspeak",
    ) -> None:
        if not channel_id:
            raise ConfigError("Telemetry channel id is not configured.")
        if results <= 0:
            raise ConfigError("Feed result count must be positive.")
        if interval <= 0:
            raise ConfigError("Poll interval must be positive.")
        self.name = name
        self.channel_id = channel_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.results = results
        self.interval = interval
        self.normalizer = normalizer or ReadingNormalizer()
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._state = PollerState(history=ReadingHistory(limit=history_limit))
        self._listeners: List[StateListener] = []
        self._inflight: Optional[asyncio.Task[None]] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._sequence = 0
        self._closed = False

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def feed_url(self) -> str:
        return f"{self.base_url}/channels/{self.channel_id}/feeds.json"

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for every published state; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        """Begin polling immediately and then every ``interval`` seconds."""
        self._ensure_open()
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._run(), name=f"poller-{self.name}")

    async def stop(self) -> None:
        """Cancel the timer and any in-flight fetch; later results are discarded."""
        self._closed = True
        pending = [
            task for task in (self._timer, self._inflight) if task is not None and not task.done()
        ]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._timer = None
        self._inflight = None
        self._listeners.clear()
        if self._owns_http:
            await self._http.aclose()

    async def refresh(self) -> PollerState:
        """Fetch now, superseding any in-flight fetch, and return the resulting state."""
        self._ensure_open()
        task = self._issue()
        while True:
            await asyncio.wait({task})
            if not task.cancelled():
                task.result()
            successor = self._inflight
            if successor is None or successor is task or successor.done():
                return self._state
            task = successor

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Polling client {self.name!r} has been stopped.")

    def _issue(self) -> asyncio.Task[None]:
        previous = self._inflight
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug(
                "Superseding in-flight fetch",
                extra={"source": self.name, "sequence": self._sequence},
            )
        self._sequence += 1
        task = asyncio.create_task(self._poll(self._sequence))
        task.add_done_callback(self._report_failure)
        self._inflight = task
        return task

    async def _run(self) -> None:
        while not self._closed:
            if self._inflight is None or self._inflight.done():
                self._issue()
            else:
                logger.debug(
                    "Skipping tick while a fetch is in flight",
                    extra={"source": self.name, "sequence": self._sequence},
                )
            await asyncio.sleep(self.interval)

    def _is_current(self, sequence: int) -> bool:
        return not self._closed and sequence == self._sequence

    async def _poll(self, sequence: int) -> None:
        self._publish(replace(self._state, loading=True))
        try:
            records = await self._fetch()
        except FeedError as exc:
            if not self._is_current(sequence):
                return
            logger.warning(
                "Feed poll failed",
                extra={
                    "source": self.name,
                    "channel_id": self.channel_id,
                    "sequence": sequence,
                    "error": exc,
                },
            )
            self._publish(replace(self._state, loading=False, error=str(exc)))
            return

        if not self._is_current(sequence):
            logger.debug(
                "Discarding stale feed response",
                extra={"source": self.name, "sequence": sequence},
            )
            return

        readings = self.normalizer.normalize_many(records)
        history = self._state.history.merge(readings)
        self._publish(
            PollerState(
                latest_reading=history.latest,
                history=history,
                loading=False,
                error=None,
                last_updated=datetime.now(timezone.utc),
            )
        )
        logger.debug(
            "Feed poll succeeded",
            extra={"source": self.name, "sequence": sequence, "record_count": len(readings)},
        )

    async def _fetch(self) -> List[RawFeedRecord]:
        params: Dict[str, Union[str, int]] = {"results": self.results}
        if self.api_key:
            params["api_key"] = self.api_key
        try:
            response = await self._http.get(self.feed_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkError(
                f"Feed request failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Feed request failed: {exc}") from exc

        try:
            payload = FeedPayload.model_validate(response.json())
        except ValueError as exc:
            raise MalformedFeedError("Feed response is not a valid channel feed.") from exc

        if not payload.feeds:
            raise EmptyFeedError("No data available from the telemetry feed.")
        return payload.feeds

    def _publish(self, state: PollerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # noqa: BLE001 - one bad subscriber must not stop the others
                logger.exception("Poller listener failed", extra={"source": self.name})

    def _report_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unexpected error while polling",
                exc_info=exc,
                extra={"source": self.name},
            )
