"""
Unit tests for IngestionOrchestrator.
"""

import json

import pytest

from fleetview.core.cancellation import CancellationToken
from fleetview.core.exceptions import MalformedInputError, ParseCancelledError
from fleetview.core.settings import IngestSettings
from fleetview.ingest.orchestrator import IngestionOrchestrator
from fleetview.ingest.pipeline import SourceFile
from fleetview.models.device import DeviceCategory, LocationMapping


class FakeWorker:
    """Stands in for ParserWorker and records what it was handed."""

    def __init__(self):
        self.calls = []

    async def run(self, files, location_mapping=None, tables=None, *, cancel_token=None, on_progress=None):
        self.calls.append([f.name for f in files])
        return []


@pytest.fixture
def fake_worker():
    return FakeWorker()


def _settings(**overrides) -> IngestSettings:
    return IngestSettings(_env_file=None, **overrides)


class TestInlinePath:
    """Parsing on the calling event loop."""

    @pytest.mark.asyncio
    async def test_records_in_source_order(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        sources = [
            make_source("a.json", [{"ComputerName": "A1"}, {"ComputerName": "A2"}]),
            make_source("b.json", {"ComputerName": "B1"}),
        ]
        records = await orchestrator.parse_sources(sources)
        assert [r.computer_name for r in records] == ["A1", "A2", "B1"]

    @pytest.mark.asyncio
    async def test_progress_after_each_source(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        events = []
        await orchestrator.parse_sources(
            [make_source("a.json", {}), make_source("b.json", {})],
            on_progress=lambda current, total, name: events.append((current, total, name)),
        )
        assert events == [(1, 2, "a.json"), (2, 2, "b.json")]

    @pytest.mark.asyncio
    async def test_empty_batch(self, tables, inline_settings):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        assert await orchestrator.parse_sources([]) == []

    @pytest.mark.asyncio
    async def test_location_mapping_applied(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        mapping = LocationMapping(generic_to_real={"Site 1A": "Amsterdam HQ"})
        records = await orchestrator.parse_sources(
            [make_source("a.json", {"Location": "Site 1A", "Model": "OptiPlex 7070"})],
            mapping,
        )
        assert records[0].location == "Amsterdam HQ"
        assert records[0].category == DeviceCategory.DESKTOP

    @pytest.mark.asyncio
    async def test_utf16_source(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        source = SourceFile(
            name="export.json",
            data=b"\xff\xfe" + json.dumps({"ComputerName": "PC-Ü"}).encode("utf-16-le"),
        )
        records = await orchestrator.parse_sources([source])
        assert records[0].computer_name == "PC-Ü"


class TestCancellation:
    """Cooperative cancellation on the inline path."""

    @pytest.mark.asyncio
    async def test_pre_cancelled_token(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        token = CancellationToken()
        token.cancel()
        events = []
        with pytest.raises(ParseCancelledError):
            await orchestrator.parse_sources(
                [make_source("a.json", {})],
                cancel_token=token,
                on_progress=lambda *args: events.append(args),
            )
        assert events == []

    @pytest.mark.asyncio
    async def test_cancel_between_sources(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        token = CancellationToken()
        events = []

        def on_progress(current, total, name):
            events.append(current)
            token.cancel("user abort")

        with pytest.raises(ParseCancelledError):
            await orchestrator.parse_sources(
                [make_source("a.json", {}), make_source("b.json", {})],
                cancel_token=token,
                on_progress=on_progress,
            )
        assert events == [1]


class TestMalformedInput:
    """A source with invalid JSON aborts the whole batch."""

    @pytest.mark.asyncio
    async def test_error_names_the_source(self, tables, inline_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        sources = [
            make_source("good.json", {"ComputerName": "OK"}),
            SourceFile(name="broken.json", data=b"{not json"),
        ]
        with pytest.raises(MalformedInputError) as exc_info:
            await orchestrator.parse_sources(sources)
        assert exc_info.value.source_name == "broken.json"
        assert "Invalid JSON format in file: broken.json." in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_deeply_nested_input_names_the_source(self, tables, inline_settings):
        orchestrator = IngestionOrchestrator(tables=tables, settings=inline_settings)
        sources = [SourceFile(name="nested.json", data=b"[" * 100_000)]
        with pytest.raises(MalformedInputError) as exc_info:
            await orchestrator.parse_sources(sources)
        assert exc_info.value.source_name == "nested.json"
        assert isinstance(exc_info.value.__cause__, RecursionError)


class TestOffloadDecision:
    """Choosing between the inline and worker paths."""

    def _sources(self, count, size=10):
        return [SourceFile(name=f"{i}.json", data=b"[]".ljust(size)) for i in range(count)]

    def test_small_batch_inline(self, tables, default_settings):
        orchestrator = IngestionOrchestrator(tables=tables, settings=default_settings)
        assert not orchestrator.should_offload(self._sources(3))

    def test_file_count_threshold(self, tables, default_settings):
        orchestrator = IngestionOrchestrator(tables=tables, settings=default_settings)
        assert orchestrator.should_offload(self._sources(4))

    def test_byte_threshold(self, tables):
        orchestrator = IngestionOrchestrator(tables=tables, settings=_settings(offload_byte_threshold=100))
        assert not orchestrator.should_offload(self._sources(1, size=100))
        assert orchestrator.should_offload(self._sources(1, size=101))

    def test_worker_disabled(self, tables):
        orchestrator = IngestionOrchestrator(tables=tables, settings=_settings(worker_enabled=False))
        assert not orchestrator.should_offload(self._sources(10))

    @pytest.mark.asyncio
    async def test_large_batch_uses_worker(self, tables, default_settings, make_source, fake_worker):
        orchestrator = IngestionOrchestrator(
            tables=tables, settings=default_settings, worker_factory=lambda: fake_worker
        )
        sources = [make_source(f"{i}.json", {}) for i in range(5)]
        await orchestrator.parse_sources(sources)
        assert fake_worker.calls == [[f"{i}.json" for i in range(5)]]

    @pytest.mark.asyncio
    async def test_small_batch_skips_worker(self, tables, default_settings, make_source, fake_worker):
        orchestrator = IngestionOrchestrator(
            tables=tables, settings=default_settings, worker_factory=lambda: fake_worker
        )
        records = await orchestrator.parse_sources([make_source("a.json", {"ComputerName": "A"})])
        assert fake_worker.calls == []
        assert records[0].computer_name == "A"


@pytest.mark.slow
class TestWorkerPath:
    """End-to-end through a real spawned worker process."""

    @pytest.mark.asyncio
    async def test_five_files_offloaded(self, tables, default_settings, make_source):
        orchestrator = IngestionOrchestrator(tables=tables, settings=default_settings)
        sources = [
            make_source(f"{i}.json", {"ComputerName": f"PC-{i}", "InternalIP": "10.53.0.1"})
            for i in range(5)
        ]
        events = []
        records = await orchestrator.parse_sources(
            sources, on_progress=lambda current, total, name: events.append((current, total, name))
        )
        assert [r.computer_name for r in records] == [f"PC-{i}" for i in range(5)]
        assert all(r.location == "Site 2B" for r in records)
        assert events == [(i, 5, f"{i - 1}.json") for i in range(1, 6)]
