"""
Ingestion orchestrator: inline or worker-process parsing of named byte buffers.

Small batches are parsed inline on the calling event loop, one source at a
time, yielding between sources. Large batches (combined size or source count
over the configured thresholds) go to a ``ParserWorker`` so the caller's loop
stays responsive. Both paths report progress after each completed source and
return records in source order, then document order within a source.

Usage:
    orchestrator = IngestionOrchestrator()
    records = await orchestrator.parse_sources(
        [SourceFile.from_path("export.json")],
        location_mapping,
        cancel_token=token,
        on_progress=lambda current, total, name: print(current, total, name),
    )
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from fleetview.core.cancellation import CancellationToken
from fleetview.core.settings import IngestSettings, get_settings
from fleetview.ingest.lookups import LookupTables, load_default_tables
from fleetview.ingest.normalizer import RecordNormalizer
from fleetview.ingest.pipeline import SourceFile, parse_source
from fleetview.ingest.worker import ParserWorker, ProgressCallback
from fleetview.models.device import DeviceRecord, LocationMapping

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[], ParserWorker]


@dataclass(frozen=True)
class ParseProgress:
    """Emitted once per completed source."""

    current: int
    total: int
    file_name: str | None = None


class IngestionOrchestrator:
    """Chooses the execution path and drives the per-source pipeline."""

    def __init__(
        self,
        tables: LookupTables | None = None,
        settings: IngestSettings | None = None,
        worker_factory: WorkerFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.tables = tables if tables is not None else load_default_tables()
        self.normalizer = RecordNormalizer(self.tables)
        self._worker_factory = worker_factory or self._default_worker

    def _default_worker(self) -> ParserWorker:
        return ParserWorker(
            start_method=self.settings.worker_start_method,
            poll_interval=self.settings.worker_poll_interval,
        )

    def should_offload(self, sources: list[SourceFile]) -> bool:
        """Worker path when combined bytes or source count exceed the thresholds."""
        if not self.settings.worker_enabled:
            return False
        total_bytes = sum(source.size for source in sources)
        return (
            total_bytes > self.settings.offload_byte_threshold
            or len(sources) > self.settings.offload_file_threshold
        )

    async def parse_sources(
        self,
        sources: Iterable[SourceFile],
        location_mapping: LocationMapping | None = None,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[DeviceRecord]:
        """Parse every source into canonical records.

        Raises:
            ParseCancelledError: the token fired before completion
            MalformedInputError: a source is not valid JSON (names the source)
            WorkerTransportError: the worker process failed
        """
        batch = list(sources)
        total_bytes = sum(source.size for source in batch)

        if self.should_offload(batch):
            logger.info(f"Parsing {len(batch)} source(s), {total_bytes} bytes in worker process")
            worker = self._worker_factory()
            records = await worker.run(
                batch,
                location_mapping,
                self.tables,
                cancel_token=cancel_token,
                on_progress=on_progress,
            )
        else:
            logger.info(f"Parsing {len(batch)} source(s), {total_bytes} bytes inline")
            records = await self._parse_inline(batch, location_mapping, cancel_token, on_progress)

        logger.info(f"Parsed {len(records)} device record(s) from {total_bytes} bytes")
        return records

    async def _parse_inline(
        self,
        batch: list[SourceFile],
        location_mapping: LocationMapping | None,
        cancel_token: CancellationToken | None,
        on_progress: ProgressCallback | None,
    ) -> list[DeviceRecord]:
        total = len(batch)
        records: list[DeviceRecord] = []
        for index, source in enumerate(batch, start=1):
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(f"Parsing cancelled before {source.name} ({index - 1}/{total} done)")
                cancel_token.raise_if_cancelled()

            records.extend(parse_source(source, self.normalizer, location_mapping))
            progress = ParseProgress(current=index, total=total, file_name=source.name)
            if on_progress is not None:
                on_progress(progress.current, progress.total, progress.file_name)
            # Let other tasks run between sources
            await asyncio.sleep(0)
        return records


async def parse_sources(
    sources: Iterable[SourceFile],
    location_mapping: LocationMapping | None = None,
    *,
    cancel_token: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[DeviceRecord]:
    """Convenience wrapper using the default tables and settings."""
    return await IngestionOrchestrator().parse_sources(
        sources,
        location_mapping,
        cancel_token=cancel_token,
        on_progress=on_progress,
    )
