"""
Parser worker: runs the ingestion pipeline in a separate process.

The host side (``ParserWorker``) starts a process, hands it one
``ParseRequest`` and then waits for messages, forwarding progress to the
caller until a terminal ``parsed`` or ``error`` message arrives. A fired
cancellation token terminates the process at once (through a token
callback) and is re-checked around every message wait, so the run raises
``ParseCancelledError`` no matter how much progress had been reported.

The worker side (``worker_main``) catches every exception and relays it as an
``ErrorMessage`` so a failure never takes down the host.
"""

import asyncio
import logging
import multiprocessing
import queue
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from fleetview.core.cancellation import CancellationToken
from fleetview.core.exceptions import (
    MalformedInputError,
    ParseCancelledError,
    WorkerTransportError,
)
from fleetview.ingest.lookups import LookupTables, load_default_tables
from fleetview.ingest.messages import (
    ErrorMessage,
    ParsedMessage,
    ParseRequest,
    ProgressMessage,
    WorkerFile,
    parse_message,
)
from fleetview.ingest.normalizer import RecordNormalizer
from fleetview.ingest.pipeline import SourceFile, parse_source
from fleetview.models.device import DeviceRecord, LocationMapping

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str | None], None]

TERMINATE_TIMEOUT = 2.0


# =============================================================================
# Worker side
# =============================================================================


def handle_request(request: ParseRequest, post: Callable[[dict[str, Any]], None]) -> None:
    """Process one parse request, posting progress and exactly one terminal message."""
    try:
        mapping = (
            LocationMapping.model_validate(request.location_mapping)
            if request.location_mapping
            else None
        )
        tables = LookupTables.from_dict(request.tables) if request.tables else load_default_tables()
        normalizer = RecordNormalizer(tables)

        total = len(request.files)
        devices: list[dict[str, Any]] = []
        for index, file in enumerate(request.files, start=1):
            records = parse_source(SourceFile(name=file.name, data=file.buffer), normalizer, mapping)
            devices.extend(record.to_dict() for record in records)
            post(ProgressMessage(current=index, total=total, file_name=file.name).model_dump())

        post(ParsedMessage(devices=devices).model_dump())
    except MalformedInputError as e:
        post(
            ErrorMessage(
                error=str(e),
                kind="malformed_input",
                source_name=e.source_name,
                detail=e.detail,
            ).model_dump()
        )
    except Exception as e:
        logger.exception("Parser worker failed")
        post(ErrorMessage(error=str(e) or type(e).__name__).model_dump())


def worker_main(inbox: Any, outbox: Any) -> None:
    """Process entry point: read one request, answer it, exit."""
    raw = inbox.get()
    if not isinstance(raw, dict) or raw.get("type") != "parse":
        outbox.put(ErrorMessage(error=f"Unsupported worker request: {raw!r:.80}").model_dump())
        return
    try:
        request = ParseRequest.model_validate(raw)
    except ValidationError as e:
        outbox.put(ErrorMessage(error=f"Invalid parse request: {e}").model_dump())
        return
    handle_request(request, outbox.put)


# =============================================================================
# Host side
# =============================================================================


def _error_from_message(message: ErrorMessage) -> Exception:
    if message.kind == "malformed_input" and message.source_name:
        return MalformedInputError(message.source_name, message.detail)
    return WorkerTransportError(message.error or "Worker parsing failed")


class ParserWorker:
    """Host-side harness around one worker process per ``run`` call.

    ``target`` is the process entry point; it receives the inbox and outbox
    queues and must be importable under the configured start method.
    """

    def __init__(
        self,
        start_method: str = "spawn",
        poll_interval: float = 0.05,
        target: Callable[[Any, Any], None] = worker_main,
    ) -> None:
        self.start_method = start_method
        self.poll_interval = poll_interval
        self.target = target

    async def run(
        self,
        files: list[SourceFile],
        location_mapping: LocationMapping | None = None,
        tables: LookupTables | None = None,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[DeviceRecord]:
        """Parse ``files`` in a worker process.

        The ``files`` list is consumed: its buffers are handed to the worker
        and the list is cleared, so the caller must not reuse it.
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        context = multiprocessing.get_context(self.start_method)
        inbox = context.Queue()
        outbox = context.Queue()
        process = context.Process(
            target=self.target,
            args=(inbox, outbox),
            name="fleetview-parser",
            daemon=True,
        )
        process.start()
        logger.debug(f"Started parser worker pid={process.pid} for {len(files)} file(s)")

        def terminate_on_cancel() -> None:
            if process.is_alive():
                process.terminate()

        # The token may fire from another thread; stop the process right away
        if cancel_token is not None:
            cancel_token.add_callback(terminate_on_cancel)

        loop = asyncio.get_running_loop()
        try:
            request = ParseRequest(
                files=[WorkerFile(name=f.name, buffer=f.data) for f in files],
                location_mapping=location_mapping.to_dict() if location_mapping else None,
                tables=tables.to_dict() if tables else None,
            )
            inbox.put(request.model_dump())
            # Ownership of the buffers moves to the worker
            del request
            files.clear()

            return await self._await_result(process, outbox, cancel_token, on_progress)
        finally:
            if cancel_token is not None:
                cancel_token.remove_callback(terminate_on_cancel)
            await loop.run_in_executor(None, self._teardown, process, inbox, outbox)

    async def _await_result(
        self,
        process: Any,
        outbox: Any,
        cancel_token: CancellationToken | None,
        on_progress: ProgressCallback | None,
    ) -> list[DeviceRecord]:
        loop = asyncio.get_running_loop()
        while True:
            self._check_cancelled(cancel_token)

            try:
                raw = await loop.run_in_executor(None, outbox.get, True, self.poll_interval)
            except queue.Empty:
                raw = None

            # A message read after cancellation is discarded, even a terminal one
            self._check_cancelled(cancel_token)

            if raw is None:
                if process.is_alive():
                    continue
                # Process is gone; give an in-flight terminal message one last chance
                try:
                    raw = await loop.run_in_executor(None, outbox.get, True, self.poll_interval)
                except queue.Empty:
                    msg = (
                        f"Parser worker exited with code {process.exitcode} "
                        "before reporting a result"
                    )
                    raise WorkerTransportError(msg) from None

            try:
                message = parse_message(raw)
            except ValidationError as e:
                msg = f"Unexpected message from parser worker: {e}"
                raise WorkerTransportError(msg) from e

            if isinstance(message, ProgressMessage):
                if on_progress is not None:
                    on_progress(message.current, message.total, message.file_name)
            elif isinstance(message, ParsedMessage):
                return [DeviceRecord.from_dict(device) for device in message.devices]
            else:
                logger.error(f"Parser worker reported an error: {message.error}")
                raise _error_from_message(message)

    @staticmethod
    def _check_cancelled(cancel_token: CancellationToken | None) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            logger.info("Parsing cancelled; terminating parser worker")
            raise ParseCancelledError()

    @staticmethod
    def _teardown(process: Any, inbox: Any, outbox: Any) -> None:
        if process.is_alive():
            process.terminate()
        process.join(TERMINATE_TIMEOUT)
        if process.is_alive():
            logger.warning(f"Parser worker pid={process.pid} ignored terminate; killing")
            process.kill()
            process.join(TERMINATE_TIMEOUT)

        for q in (inbox, outbox):
            q.cancel_join_thread()
            q.close()
