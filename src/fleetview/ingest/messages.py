"""
Message protocol between the ingestion host and the parser worker.

    host   -> worker : ParseRequest   {type: "parse", files, location_mapping, tables}
    worker -> host   : ProgressMessage {type: "progress", current, total, file_name}   (one per file)
    worker -> host   : ParsedMessage   {type: "parsed", devices}                      (terminal)
    worker -> host   : ErrorMessage    {type: "error", error, kind, ...}              (terminal)

Messages travel over multiprocessing queues as plain dicts (``model_dump()``)
and are re-validated on receipt with ``parse_message``.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class WorkerFile(BaseModel):
    name: str
    buffer: bytes


class ParseRequest(BaseModel):
    type: Literal["parse"] = "parse"
    files: list[WorkerFile]
    location_mapping: dict[str, dict[str, str]] | None = None
    tables: dict[str, Any] | None = None


class ProgressMessage(BaseModel):
    type: Literal["progress"] = "progress"
    current: int
    total: int
    file_name: str | None = None


class ParsedMessage(BaseModel):
    type: Literal["parsed"] = "parsed"
    devices: list[dict[str, Any]] = Field(default_factory=list)


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    error: str
    kind: Literal["malformed_input", "internal"] = "internal"
    source_name: str | None = None
    detail: str = ""


WorkerMessage = Annotated[
    ProgressMessage | ParsedMessage | ErrorMessage,
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[ProgressMessage | ParsedMessage | ErrorMessage] = TypeAdapter(
    WorkerMessage
)


def parse_message(data: dict[str, Any]) -> ProgressMessage | ParsedMessage | ErrorMessage:
    """Validate an inbound worker message (raises pydantic.ValidationError)."""
    return _message_adapter.validate_python(data)
