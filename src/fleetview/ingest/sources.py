"""Inventory sources: where byte buffers come from.

A source turns some input (local paths today; a sync collaborator can plug
in the same way) into canonical records by way of the orchestrator.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from fleetview.core.cancellation import CancellationToken
from fleetview.ingest.orchestrator import IngestionOrchestrator
from fleetview.ingest.pipeline import SourceFile
from fleetview.models.device import DeviceRecord, LocationMapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceProgress:
    processed: int
    total: int | None
    phase: str
    file_name: str | None = None


@dataclass
class InventorySourceContext:
    cancel_token: CancellationToken | None = None
    progress: Callable[[SourceProgress], None] | None = None
    location_mapping: LocationMapping | None = None


@dataclass
class InventorySourceResult:
    devices: list[DeviceRecord]
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class InventorySource(Protocol):
    id: str

    def can_handle(self, input: Any) -> bool: ...

    async def load(
        self, input: Any, ctx: InventorySourceContext | None = None
    ) -> InventorySourceResult: ...


class LocalFileSource:
    """Reads inventory exports from local paths."""

    id = "local-files"

    def __init__(self, orchestrator: IngestionOrchestrator | None = None) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> IngestionOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = IngestionOrchestrator()
        return self._orchestrator

    def can_handle(self, input: Any) -> bool:
        if isinstance(input, (str, os.PathLike)):
            return True
        return (
            isinstance(input, (list, tuple))
            and len(input) > 0
            and all(isinstance(item, (str, os.PathLike)) for item in input)
        )

    async def load(
        self, input: Any, ctx: InventorySourceContext | None = None
    ) -> InventorySourceResult:
        if not self.can_handle(input):
            msg = "Unsupported input for LocalFileSource"
            raise ValueError(msg)
        ctx = ctx or InventorySourceContext()

        paths = [input] if isinstance(input, (str, os.PathLike)) else list(input)
        logger.debug(f"Loading {len(paths)} local file(s)")
        sources = [SourceFile.from_path(Path(p)) for p in paths]

        def report(current: int, total: int, file_name: str | None) -> None:
            if ctx.progress is not None:
                ctx.progress(
                    SourceProgress(processed=current, total=total, phase="parsing", file_name=file_name)
                )

        devices = await self.orchestrator.parse_sources(
            sources,
            ctx.location_mapping,
            cancel_token=ctx.cancel_token,
            on_progress=report,
        )
        return InventorySourceResult(
            devices=devices,
            metadata={"source": self.id, "retrieved_at": datetime.now(), "raw_count": len(devices)},
        )


_SOURCES: list[InventorySource] = [LocalFileSource()]


def resolve_inventory_source(input: Any) -> InventorySource | None:
    """First registered source able to handle ``input``."""
    return next((source for source in _SOURCES if source.can_handle(input)), None)
