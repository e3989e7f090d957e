"""
fleetview - Device inventory ingestion and normalization
Decode, normalize and validate heterogeneous machine inventory exports.
"""

__version__ = "0.3.0"


def __getattr__(name: str):
    """Lazy import so that `import fleetview` stays cheap for the CLI."""
    if name in ("IngestionOrchestrator", "parse_sources"):
        from fleetview.ingest.orchestrator import IngestionOrchestrator, parse_sources

        return locals()[name]

    if name in ("DeviceRecord", "DeviceCategory", "LocationMapping"):
        from fleetview.models.device import DeviceCategory, DeviceRecord, LocationMapping

        return locals()[name]

    if name == "CancellationToken":
        from fleetview.core.cancellation import CancellationToken

        return CancellationToken

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "CancellationToken",
    "DeviceCategory",
    "DeviceRecord",
    "IngestionOrchestrator",
    "LocationMapping",
    "parse_sources",
    "__version__",
]
