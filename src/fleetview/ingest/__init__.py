"""Ingestion pipeline: decode, normalize, validate, orchestrate."""

from fleetview.ingest.decoder import decode_inventory_buffer, detect_encoding, safe_decode
from fleetview.ingest.lookups import (
    IpRange,
    LookupTables,
    load_default_tables,
    load_location_mapping,
)
from fleetview.ingest.normalizer import RecordNormalizer, determine_category, determine_location
from fleetview.ingest.orchestrator import IngestionOrchestrator, ParseProgress, parse_sources
from fleetview.ingest.pipeline import SourceFile, parse_source
from fleetview.ingest.timestamps import normalize_legacy_date

__all__ = [
    "IngestionOrchestrator",
    "IpRange",
    "LookupTables",
    "ParseProgress",
    "RecordNormalizer",
    "SourceFile",
    "decode_inventory_buffer",
    "detect_encoding",
    "determine_category",
    "determine_location",
    "load_default_tables",
    "load_location_mapping",
    "normalize_legacy_date",
    "parse_source",
    "parse_sources",
    "safe_decode",
]
