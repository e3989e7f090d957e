"""Core module

Settings, logging, cancellation and the exception hierarchy shared by the
ingestion pipeline.
"""

from fleetview.core.cancellation import CancellationToken
from fleetview.core.exceptions import (
    ConfigurationError,
    FleetViewError,
    IngestError,
    MalformedInputError,
    ParseCancelledError,
    WorkerTransportError,
)
from fleetview.core.settings import IngestSettings, get_settings

__all__ = [
    "CancellationToken",
    "ConfigurationError",
    "FleetViewError",
    "IngestError",
    "IngestSettings",
    "MalformedInputError",
    "ParseCancelledError",
    "WorkerTransportError",
    "get_settings",
]
