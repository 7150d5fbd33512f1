from __future__ import annotations

import time
from typing import Any, Callable, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor feed service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def get_latest(self) -> Dict[str, Any]:
        return self._request("GET", "/readings/latest")

    def get_history(self) -> Dict[str, Any]:
        return self._request("GET", "/readings/history")

    def get_summary(self) -> Dict[str, Any]:
        return self._request("GET", "/readings/summary")

    def get_risk(self) -> Dict[str, Any]:
        return self._request("GET", "/risk")

    def get_mapping(self) -> Dict[str, Any]:
        return self._request("GET", "/mapping")

    def refresh(self) -> Dict[str, Any]:
        return self._request("POST", "/refresh")

    def watch(
        self,
        interval: float,
        timeout: float,
        on_update: Callable[[Dict[str, Any]], None],
    ) -> List[Dict[str, Any]]:
        """Fetch the latest reading every ``interval`` seconds until ``timeout`` elapses."""
        deadline = time.monotonic() + timeout
        seen: List[Dict[str, Any]] = []
        last_stamp: Any = object()
        while True:
            payload = self.get_latest()
            reading = payload.get("reading") or {}
            stamp = (payload.get("source"), reading.get("timestamp"))
            if stamp != last_stamp:
                seen.append(payload)
                on_update(payload)
                last_stamp = stamp
            if time.monotonic() + interval > deadline:
                return seen
            time.sleep(interval)

    def _request(self, method: str, path: str) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
