"""Exception hierarchy for fleetview.

Batch-level failures derive from ``IngestError`` so callers can catch every
ingestion failure at once, while still telling a cancellation apart from a
genuine problem (e.g. to suppress error toasts when the user aborted).
Field-level anomalies never raise; they degrade to typed defaults.
"""


class FleetViewError(Exception):
    """Root of the fleetview exception hierarchy."""


class ConfigurationError(FleetViewError):
    """A lookup table or location mapping file could not be loaded."""


class IngestError(FleetViewError):
    """Batch-level ingestion failure. No partial results accompany it."""


class MalformedInputError(IngestError):
    """A source did not contain parseable JSON."""

    def __init__(self, source_name: str, detail: str = "") -> None:
        self.source_name = source_name
        self.detail = detail
        message = f"Invalid JSON format in file: {source_name}."
        if detail:
            message = f"{message} Original error: {detail}"
        super().__init__(message)


class ParseCancelledError(IngestError):
    """The cancellation token fired before ingestion completed."""

    def __init__(self, message: str = "Parsing cancelled") -> None:
        super().__init__(message)


class WorkerTransportError(IngestError):
    """The worker process failed or exited without a terminal message."""
