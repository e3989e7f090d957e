"""Per-source ingestion steps shared by the inline and worker paths.

decode -> JSON parse -> normalize -> validate, for one named byte buffer.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from fleetview.core.exceptions import MalformedInputError
from fleetview.ingest.decoder import decode_inventory_buffer
from fleetview.ingest.normalizer import RecordNormalizer
from fleetview.models.device import DeviceRecord, LocationMapping

logger = logging.getLogger(__name__)


@dataclass
class SourceFile:
    """A named byte buffer, regardless of where the bytes came from."""

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path | str) -> "SourceFile":
        path = Path(path)
        return cls(name=path.name, data=path.read_bytes())


def parse_json_text(name: str, text: str) -> object:
    """Parse decoded text, naming the source on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(name, str(e)) from e
    except RecursionError as e:
        # Pathologically nested input exhausts the decoder's stack
        raise MalformedInputError(name, f"nesting too deep: {e}") from e


def parse_source(
    source: SourceFile,
    normalizer: RecordNormalizer,
    location_mapping: LocationMapping | None = None,
) -> list[DeviceRecord]:
    """Run the whole pipeline for one source."""
    text = decode_inventory_buffer(source.data)
    document = parse_json_text(source.name, text)
    records = normalizer.normalize_document(document, location_mapping, source_name=source.name)
    logger.debug(f"{source.name}: {len(records)} record(s) from {source.size} bytes")
    return records
