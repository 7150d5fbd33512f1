from __future__ import annotations

from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig

LATEST: Dict[str, Any] = {
    "source": "live",
    "using_simulated_data": False,
    "fallback_reason": "live_data",
    "reading": {
        "temperature": 36.5,
        "humidity": 45.0,
        "co2": 650.0,
        "co": None,
        "h2": 1.0,
        "timestamp": "2024-06-01T10:00:00Z",
    },
    "risk": {"level": "warning", "over_threshold": ["temperature"], "reasons": ["temperature above 30"]},
    "loading": False,
    "last_updated": "2024-06-01T10:00:02Z",
}


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.latest: Dict[str, Any] = dict(LATEST)
        self.watch_calls: List[tuple[float, float]] = []
        self.refreshed = False
        self.closed = False

    def get_latest(self) -> Dict[str, Any]:
        return self.latest

    def get_history(self) -> Dict[str, Any]:
        return {
            "source": "simulated",
            "using_simulated_data": True,
            "readings": [LATEST["reading"]],
            "risk_level": "warning",
        }

    def get_summary(self) -> Dict[str, Any]:
        return {
            "source": "simulated",
            "reading_count": 1,
            "per_kind": {
                "temperature": {
                    "count": 1,
                    "min_value": 36.5,
                    "max_value": 36.5,
                    "mean_value": 36.5,
                }
            },
        }

    def get_risk(self) -> Dict[str, Any]:
        return {
            "source": "live",
            "using_simulated_data": False,
            "timestamp": "2024-06-01T10:00:00Z",
            "risk": LATEST["risk"],
            "history_level": "danger",
        }

    def get_mapping(self) -> Dict[str, Any]:
        return {"version": "site-a", "slots": {"temperature": "field4", "co2": "field1"}}

    def refresh(self) -> Dict[str, Any]:
        self.refreshed = True
        return self.latest

    def watch(self, interval: float, timeout: float, on_update) -> List[Dict[str, Any]]:
        self.watch_calls.append((interval, timeout))
        on_update(self.latest)
        return [self.latest]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_latest_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "Latest Reading" in result.stdout
    assert "temperature: 36.5 °C" in result.stdout
    assert "co: n/a" in result.stdout
    assert "risk: warning" in result.stdout
    assert "simulated" not in result.stdout
    assert stub.closed is True


def test_latest_command_flags_simulated_data(stub: StubClient, runner: CliRunner) -> None:
    stub.latest = dict(LATEST, source="simulated", using_simulated_data=True, reading=None)

    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "Using simulated data (live feed unavailable)" in result.stdout
    assert "No reading available." in result.stdout


def test_history_command_with_summary(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["history", "--summary"])

    assert result.exit_code == 0
    assert "History (simulated, 1 readings)" in result.stdout
    assert "Summary" in result.stdout
    assert "temperature: count=1" in result.stdout
    assert "humidity: count=0" in result.stdout


def test_risk_and_mapping_commands(stub: StubClient, runner: CliRunner) -> None:
    risk = runner.invoke(app, ["risk"])
    mapping = runner.invoke(app, ["mapping"])

    assert risk.exit_code == 0
    assert "over threshold: temperature" in risk.stdout
    assert "history: danger" in risk.stdout
    assert mapping.exit_code == 0
    assert "Channel Mapping (site-a)" in mapping.stdout
    assert mapping.stdout.index("field1: co2") < mapping.stdout.index("field4: temperature")


def test_refresh_uses_base_url_option(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["--base-url", "http://sensors.local:9000/", "refresh"])

    assert result.exit_code == 0
    assert "Refreshing http://sensors.local:9000 ..." in result.stdout
    assert stub.refreshed is True
    assert stub.config.base_url == "http://sensors.local:9000"


def test_watch_command_overrides(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["watch", "--poll-interval", "0.5", "--timeout", "3"])

    assert result.exit_code == 0
    assert stub.watch_calls == [(0.5, 3.0)]
    assert "1 update(s) received." in result.stdout


def _api_client(handler) -> ApiClient:
    client = ApiClient(CLIConfig(base_url="http://service.test"))
    client.close()
    client._client = httpx.Client(  # type: ignore[attr-defined]
        base_url="http://service.test", transport=httpx.MockTransport(handler)
    )
    return client


def test_watch_reports_only_new_readings() -> None:
    stamps = ["2024-06-01T10:00:00Z", "2024-06-01T10:00:00Z", "2024-06-01T10:00:05Z"]

    def handler(request: httpx.Request) -> httpx.Response:
        stamp = stamps.pop(0) if len(stamps) > 1 else stamps[0]
        return httpx.Response(200, json={"source": "live", "reading": {"timestamp": stamp}})

    client = _api_client(handler)
    updates: List[Dict[str, Any]] = []
    try:
        seen = client.watch(interval=0.01, timeout=0.2, on_update=updates.append)
    finally:
        client.close()

    assert [item["reading"]["timestamp"] for item in seen] == [
        "2024-06-01T10:00:00Z",
        "2024-06-01T10:00:05Z",
    ]
    assert updates == seen


def test_http_error_exits_with_detail(capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "maintenance"})

    client = _api_client(handler)
    try:
        with pytest.raises(typer.Exit):
            client.get_latest()
    finally:
        client.close()

    assert "Request failed with status 503: maintenance" in capsys.readouterr().err
