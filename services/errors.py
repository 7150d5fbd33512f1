"""Error taxonomy for the telemetry pipeline."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for pipeline errors."""


class ConfigError(TelemetryError):
    """Required configuration is missing or invalid for one collaborator."""


class FeedError(TelemetryError):
    """A poll cycle could not produce records."""


class NetworkError(FeedError):
    """Transport failure or non-2xx response from the feed endpoint."""


class EmptyFeedError(FeedError):
    """The feed answered but contained zero records."""


class MalformedFeedError(FeedError):
    """The feed body is not JSON or does not have the expected shape."""
