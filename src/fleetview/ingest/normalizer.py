"""
Record normalization: raw export objects -> canonical device records.

Exports come from several generations of collection scripts. Security state
may be nested (``TPMInfo.TPMVersion``, ``SecureBootStatus.SecureBootEnabled``)
or flat, dates may be ISO strings, ``/Date(ms)/`` wrappers or objects with
several representations, and any property may be missing. The normalizer
resolves each canonical field with a fixed precedence and hands the result to
the schema for coercion. Every source key that is not canonical is kept as a
passthrough field.
"""

import logging
from collections.abc import Mapping
from typing import Any

from fleetview.ingest.lookups import LookupTables, load_default_tables
from fleetview.ingest.timestamps import normalize_legacy_date
from fleetview.models.device import (
    DeviceCategory,
    DeviceRecord,
    LocationMapping,
    coerce_bool,
    coerce_float,
    validate_device,
)

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"

# Checked in this exact order; the first non-blank string wins.
COLLECTION_DATE_PATHS: tuple[tuple[str, ...], ...] = (
    ("CollectionDate", "DateTime"),
    ("CollectionDate", "Date"),
    ("CollectionDate",),
    ("collectionDate",),
    ("LogDate",),
    ("CreationDate",),
    ("DateTime",),
    ("Date",),
    ("Timestamp",),
    ("RunDate",),
    ("GeneratedDate",),
)

LOCATION_FIELDS: tuple[str, ...] = ("location", "Location", "Site", "Office")

WINDOWS_11_MARKER = "windows 11"


def _lookup_path(raw: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    value: Any = raw
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _non_blank_string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _nested(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def resolve_collection_date(raw: Mapping[str, Any]) -> str:
    """First non-blank date among the known aliases, as a display string."""
    for path in COLLECTION_DATE_PATHS:
        value = _non_blank_string(_lookup_path(raw, path))
        if value is not None:
            return normalize_legacy_date(value)
    return ""


def resolve_last_boot(raw: Mapping[str, Any], collection_date: str) -> str:
    """Explicit last-boot time, else the collection date, else empty."""
    value = raw.get("LastBootUpTime")
    if isinstance(value, Mapping):
        # ConvertTo-Json of a DateTime object: {value, DisplayHint, DateTime}
        value = _non_blank_string(value.get("DateTime")) or _non_blank_string(value.get("value"))
    explicit = _non_blank_string(value)
    if explicit is not None:
        return normalize_legacy_date(explicit)
    return collection_date or ""


def resolve_tpm_version(raw: Mapping[str, Any]) -> Any:
    return _nested(raw, "TPMInfo").get("TPMVersion") or raw.get("TPMVersion") or ""


def resolve_secure_boot(raw: Mapping[str, Any]) -> bool:
    status = _nested(raw, "SecureBootStatus")
    # An explicit nested value wins even when it is False
    if "SecureBootEnabled" in status:
        return coerce_bool(status["SecureBootEnabled"])
    return coerce_bool(raw.get("SecureBootEnabled"))


def is_windows_11_ready(raw: Mapping[str, Any]) -> bool:
    for key in ("OSName", "WindowsVersion"):
        value = raw.get(key)
        if isinstance(value, str) and WINDOWS_11_MARKER in value.lower():
            return True
    return coerce_bool(raw.get("canUpgradeToWin11"))


def determine_category(model: Any, tables: LookupTables) -> DeviceCategory:
    """Exact model-string lookup; unmatched models are ``Other``."""
    if not isinstance(model, str):
        return DeviceCategory.OTHER
    return DeviceCategory.coerce(tables.category_for(model))


def determine_location(
    raw: Mapping[str, Any],
    location_mapping: LocationMapping | None,
    tables: LookupTables,
) -> str:
    """Resolve a location label.

    Order: explicit location field (through ``generic_to_real`` when
    mapped), caller IP-prefix mapping, built-in IP-prefix table, "Unknown".
    """
    explicit = next(
        (value for value in (_non_blank_string(raw.get(key)) for key in LOCATION_FIELDS) if value),
        None,
    )
    if explicit is not None:
        if location_mapping is not None:
            return location_mapping.generic_to_real.get(explicit) or explicit
        return explicit

    ip = raw.get("InternalIP")
    if not isinstance(ip, str) or not ip:
        return UNKNOWN_LOCATION

    if location_mapping is not None:
        for prefix, real_location in location_mapping.ip_range_mapping.items():
            if prefix and ip.startswith(prefix):
                return real_location

    return tables.location_for_ip(ip) or UNKNOWN_LOCATION


class RecordNormalizer:
    """Maps raw export objects onto the canonical record shape."""

    def __init__(self, tables: LookupTables | None = None) -> None:
        self.tables = tables if tables is not None else load_default_tables()

    def build_candidate(
        self,
        raw: Mapping[str, Any],
        location_mapping: LocationMapping | None = None,
    ) -> dict[str, Any]:
        """Resolve canonical fields and merge them over the passthrough keys."""
        collection_date = resolve_collection_date(raw)
        os_name = raw.get("OSName") or ""
        windows_version = raw.get("WindowsVersion") or ""
        issues = raw.get("issues")

        canonical = {
            "ComputerName": raw.get("ComputerName") or "",
            "Manufacturer": raw.get("Manufacturer") or "",
            "Model": raw.get("Model") or "",
            "OSName": os_name,
            "WindowsVersion": windows_version,
            "WindowsEdition": raw.get("WindowsEdition") or "",
            "TotalRAMGB": coerce_float(raw.get("TotalRAMGB")),
            "TotalStorageGB": coerce_float(raw.get("TotalStorageGB")),
            "FreeStorageGB": coerce_float(raw.get("FreeStorageGB")),
            "HardDriveType": raw.get("HardDriveType") or "",
            "TPMVersion": resolve_tpm_version(raw),
            "SecureBootEnabled": resolve_secure_boot(raw),
            "JoinType": raw.get("JoinType") or "None",
            "InternalIP": raw.get("InternalIP") or "",
            "LastBootUpTime": resolve_last_boot(raw, collection_date),
            "HardwareHash": raw.get("HardwareHash") or "",
            "SerialNumber": raw.get("SerialNumber") or "",
            "canUpgradeToWin11": is_windows_11_ready(raw),
            "issues": list(issues) if isinstance(issues, list) else [],
            "location": determine_location(raw, location_mapping, self.tables),
            "CollectionDate": collection_date,
            "category": determine_category(raw.get("Model"), self.tables),
        }

        candidate = dict(raw)
        candidate.update(canonical)
        return candidate

    def normalize(
        self,
        raw: Mapping[str, Any],
        location_mapping: LocationMapping | None = None,
    ) -> DeviceRecord:
        """Normalize and validate one raw record."""
        return validate_device(self.build_candidate(raw, location_mapping))

    def normalize_document(
        self,
        document: Any,
        location_mapping: LocationMapping | None = None,
        source_name: str | None = None,
    ) -> list[DeviceRecord]:
        """Normalize a parsed JSON document (one object or an array of objects).

        Elements that are not objects cannot describe a device and are skipped.
        """
        elements = document if isinstance(document, list) else [document]
        records: list[DeviceRecord] = []
        for index, element in enumerate(elements):
            if not isinstance(element, Mapping):
                logger.warning(
                    f"Skipping non-object element #{index} in {source_name or 'document'}: "
                    f"{type(element).__name__}"
                )
                continue
            records.append(self.normalize(element, location_mapping))
        return records
