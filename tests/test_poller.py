import asyncio
from typing import Any, Dict, List

import httpx
import pytest

from services.errors import ConfigError
from services.poller import PollerState, PollingClient


def _entry(created_at: str, temperature: str = "24.0", entry_id: int = 1) -> Dict[str, Any]:
    return {
        "created_at": created_at,
        "entry_id": entry_id,
        "field1": "600.00",
        "field2": "3.00",
        "field3": "1.00",
        "field4": temperature,
        "field5": "50.00",
    }


def _feed(*entries: Dict[str, Any]) -> Dict[str, Any]:
    return {"channel": {"id": 123, "name": "node"}, "feeds": list(entries)}


def _client(handler, **kwargs: Any) -> PollingClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PollingClient(channel_id="123", api_key="read-key", http=http, **kwargs)


async def _close(client: PollingClient) -> None:
    await client.stop()
    await client._http.aclose()  # type: ignore[attr-defined]


def test_missing_channel_id_is_config_error() -> None:
    with pytest.raises(ConfigError):
        PollingClient(channel_id=None)


def test_refresh_normalizes_feed_into_state() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=_feed(
                _entry("2024-01-01T00:00:00Z", "21.0", entry_id=1),
                _entry("2024-01-01T00:01:00Z", "3650", entry_id=2),
            ),
        )

    async def scenario() -> PollerState:
        client = _client(handler, results=2)
        try:
            return await client.refresh()
        finally:
            await _close(client)

    state = asyncio.run(scenario())

    assert state.error is None
    assert state.loading is False
    assert state.last_updated is not None
    assert state.latest_reading is not None
    assert state.latest_reading.timestamp == "2024-01-01T00:01:00Z"
    assert state.latest_reading.temperature == pytest.approx(36.5)
    assert [r.timestamp for r in state.history] == [
        "2024-01-01T00:00:00Z",
        "2024-01-01T00:01:00Z",
    ]
    assert requests[0].url.path == "/channels/123/feeds.json"
    assert requests[0].url.params["results"] == "2"
    assert requests[0].url.params["api_key"] == "read-key"


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(500, text="boom"), "status 500"),
        (httpx.Response(200, json=_feed()), "No data available"),
        (httpx.Response(200, text="<html>"), "not a valid channel feed"),
        (httpx.Response(200, json={"feeds": "nope"}), "not a valid channel feed"),
    ],
)
def test_failure_keeps_previous_data(response: httpx.Response, message: str) -> None:
    responses = [httpx.Response(200, json=_feed(_entry("2024-01-01T00:00:00Z"))), response]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    async def scenario() -> tuple[PollerState, PollerState]:
        client = _client(handler)
        try:
            first = await client.refresh()
            second = await client.refresh()
            return first, second
        finally:
            await _close(client)

    first, second = asyncio.run(scenario())

    assert first.error is None
    assert second.error is not None and message in second.error
    assert second.loading is False
    assert second.latest_reading == first.latest_reading
    assert second.history == first.history
    assert second.last_updated == first.last_updated


def test_transport_error_is_reported_as_state() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario() -> PollerState:
        client = _client(handler)
        try:
            return await client.refresh()
        finally:
            await _close(client)

    state = asyncio.run(scenario())

    assert state.latest_reading is None
    assert state.error is not None and "connection refused" in state.error


def test_overlapping_refresh_never_applies_stale_response() -> None:
    calls: List[httpx.Request] = []
    release_first = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            await release_first.wait()
            return httpx.Response(200, json=_feed(_entry("2024-01-01T00:00:00Z", "20.0")))
        return httpx.Response(200, json=_feed(_entry("2024-01-01T00:05:00Z", "25.0")))

    async def scenario() -> tuple[PollerState, PollerState, PollerState]:
        client = _client(handler)
        try:
            first = asyncio.create_task(client.refresh())
            while not calls:
                await asyncio.sleep(0)
            second_state = await client.refresh()
            release_first.set()
            first_state = await first
            return first_state, second_state, client.state
        finally:
            await _close(client)

    first_state, second_state, final = asyncio.run(scenario())

    assert len(calls) == 2
    assert second_state.latest_reading is not None
    assert second_state.latest_reading.temperature == 25.0
    assert first_state == second_state
    assert final.latest_reading == second_state.latest_reading
    assert [r.timestamp for r in final.history] == ["2024-01-01T00:05:00Z"]


def test_stop_discards_in_flight_result() -> None:
    calls: List[httpx.Request] = []
    release = asyncio.Event()
    published: List[PollerState] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await release.wait()
        return httpx.Response(200, json=_feed(_entry("2024-01-01T00:00:00Z")))

    async def scenario() -> PollerState:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = PollingClient(channel_id="123", http=http)
        client.subscribe(published.append)
        task = asyncio.create_task(client.refresh())
        while not calls:
            await asyncio.sleep(0)
        await client.stop()
        release.set()
        state = await task
        with pytest.raises(RuntimeError):
            await client.refresh()
        await http.aclose()
        return state

    state = asyncio.run(scenario())

    assert state.latest_reading is None
    assert all(item.latest_reading is None for item in published)


def test_timer_skips_ticks_while_fetch_in_flight() -> None:
    calls: List[httpx.Request] = []
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await release.wait()
        return httpx.Response(200, json=_feed(_entry("2024-01-01T00:00:00Z")))

    async def scenario() -> int:
        client = _client(handler, interval=0.01)
        try:
            await client.start()
            await asyncio.sleep(0.1)
            in_flight_calls = len(calls)
            release.set()
            return in_flight_calls
        finally:
            await _close(client)

    assert asyncio.run(scenario()) == 1


def test_subscribers_see_loading_then_result_until_unsubscribed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_feed(_entry("2024-01-01T00:00:00Z")))

    seen: List[PollerState] = []

    async def scenario() -> None:
        client = _client(handler)
        try:
            unsubscribe = client.subscribe(seen.append)
            await client.refresh()
            unsubscribe()
            await client.refresh()
        finally:
            await _close(client)

    asyncio.run(scenario())

    assert [state.loading for state in seen] == [True, False]
    assert seen[-1].latest_reading is not None


def test_entries_sharing_a_timestamp_are_all_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=_feed(
                _entry("2024-01-01T00:00:00Z", "20.0", entry_id=1),
                _entry("2024-01-01T00:00:00Z", "21.0", entry_id=2),
            ),
        )

    async def scenario() -> PollerState:
        client = _client(handler)
        try:
            await client.refresh()
            return await client.refresh()
        finally:
            await _close(client)

    state = asyncio.run(scenario())

    assert [r.temperature for r in state.history] == [20.0, 21.0]
    assert state.latest_reading is not None
    assert state.latest_reading.temperature == 21.0
    assert state.latest_reading == state.history.latest
