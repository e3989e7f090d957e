"""
Canonical device record and its schema.

Defines:
- DeviceCategory: fixed classification derived from the model string
- LocationMapping: optional alias table supplied by the caller
- DeviceRecord: validated, fully defaulted record with an open passthrough bag

The schema coerces loosely typed scalars instead of rejecting them, so that
every consumer can rely on the canonical fields having the right primitive
type. Unknown keys are preserved in ``extra`` and re-emitted by ``to_dict``.
"""

import math
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_FALSE_STRINGS = frozenset({"", "false", "no", "off", "0", "n", "none", "null", "disabled"})


class DeviceCategory(str, Enum):
    """Device classification derived from the model lookup table."""

    DESKTOP = "Desktop"
    LAPTOP = "Laptop"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> "DeviceCategory":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.OTHER


# =============================================================================
# Scalar coercion
# =============================================================================


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Parse a leading number the way loose exporters expect ("16 GB" -> 16.0)."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT_RE.match(value)
        if not match:
            return default
        try:
            number = float(match.group(1))
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def coerce_bool(value: Any) -> bool:
    """Interpret stringy and numeric flags ("true", "False", 1, "yes")."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return bool(value)


def coerce_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return default


# =============================================================================
# Location mapping
# =============================================================================


class LocationMapping(BaseModel):
    """Alias table translating generic labels and IP prefixes to real locations."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    generic_to_real: dict[str, str] = Field(default_factory=dict, alias="genericToReal")
    ip_range_mapping: dict[str, str] = Field(default_factory=dict, alias="ipRangeMapping")

    def to_dict(self) -> dict[str, dict[str, str]]:
        return self.model_dump(by_alias=True)


# =============================================================================
# Canonical record
# =============================================================================


class DeviceRecord(BaseModel):
    """Canonical device record.

    Attribute names are snake_case; JSON keys (aliases) follow the exports.
    Any key that is not canonical lands in ``extra``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    # Identity
    computer_name: str = Field("", alias="ComputerName")
    serial_number: str = Field("", alias="SerialNumber")
    hardware_hash: str = Field("", alias="HardwareHash")

    # Hardware
    manufacturer: str = Field("", alias="Manufacturer")
    model: str = Field("", alias="Model")
    total_ram_gb: float = Field(0.0, alias="TotalRAMGB")
    total_storage_gb: float = Field(0.0, alias="TotalStorageGB")
    free_storage_gb: float = Field(0.0, alias="FreeStorageGB")
    hard_drive_type: str = Field("", alias="HardDriveType")

    # Operating system
    os_name: str = Field("", alias="OSName")
    windows_version: str = Field("", alias="WindowsVersion")
    windows_edition: str = Field("", alias="WindowsEdition")
    can_upgrade_to_win11: bool = Field(False, alias="canUpgradeToWin11")

    # Security posture
    tpm_version: str = Field("", alias="TPMVersion")
    secure_boot_enabled: bool = Field(False, alias="SecureBootEnabled")

    # Network / join
    join_type: str = Field("None", alias="JoinType")
    internal_ip: str = Field("", alias="InternalIP")

    # Timestamps (display strings)
    last_boot_up_time: str = Field("", alias="LastBootUpTime")
    collection_date: str = Field("", alias="CollectionDate")

    # Derived
    category: DeviceCategory = Field(DeviceCategory.OTHER, alias="category")
    location: str = Field("Unknown", alias="location")
    issues: list[str] = Field(default_factory=list, alias="issues")

    # Passthrough bag
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def split_passthrough(cls, data: Any) -> Any:
        """Separate canonical keys from passthrough keys."""
        if not isinstance(data, Mapping):
            return data

        canonical: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_TO_FIELD.get(key)
            if name is None:
                extra[key] = value
            elif value is not None:
                canonical[name] = value
        canonical["extra"] = extra
        return canonical

    @field_validator(
        "computer_name",
        "serial_number",
        "hardware_hash",
        "manufacturer",
        "model",
        "hard_drive_type",
        "os_name",
        "windows_version",
        "windows_edition",
        "tpm_version",
        "join_type",
        "internal_ip",
        "last_boot_up_time",
        "collection_date",
        mode="before",
    )
    @classmethod
    def coerce_string_fields(cls, value: Any, info: ValidationInfo) -> str:
        return coerce_str(value, cls.model_fields[info.field_name].default)

    @field_validator("total_ram_gb", "total_storage_gb", "free_storage_gb", mode="before")
    @classmethod
    def coerce_capacity_fields(cls, value: Any) -> float:
        return coerce_float(value)

    @field_validator("secure_boot_enabled", "can_upgrade_to_win11", mode="before")
    @classmethod
    def coerce_flag_fields(cls, value: Any) -> bool:
        return coerce_bool(value)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: Any) -> DeviceCategory:
        return DeviceCategory.coerce(value)

    @field_validator("location", mode="before")
    @classmethod
    def coerce_location(cls, value: Any) -> str:
        text = coerce_str(value).strip()
        return text or "Unknown"

    @field_validator("issues", mode="before")
    @classmethod
    def coerce_issues(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [coerce_str(item, str(item)) for item in value if item is not None]

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON-serializable object: canonical keys, then passthrough keys."""
        data = self.model_dump(by_alias=True, exclude={"extra"}, mode="json")
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeviceRecord":
        return cls.model_validate(data)


# Only JSON keys are canonical; a raw lowercase "model" key stays passthrough
_KEY_TO_FIELD: dict[str, str] = {
    field.alias: name for name, field in DeviceRecord.model_fields.items() if field.alias
}

CANONICAL_KEYS: tuple[str, ...] = tuple(
    field.alias or name for name, field in DeviceRecord.model_fields.items() if name != "extra"
)


def validate_device(candidate: Mapping[str, Any]) -> DeviceRecord:
    """Coerce and validate a candidate record against the canonical schema."""
    return DeviceRecord.model_validate(candidate)
