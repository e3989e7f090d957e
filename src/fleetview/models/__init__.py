"""Data models for fleetview."""

from fleetview.models.device import (
    CANONICAL_KEYS,
    DeviceCategory,
    DeviceRecord,
    LocationMapping,
    validate_device,
)

__all__ = [
    "CANONICAL_KEYS",
    "DeviceCategory",
    "DeviceRecord",
    "LocationMapping",
    "validate_device",
]
