"""Device filtering over canonical records.

Every criterion defaults to "all"; a record is kept only if it passes every
active criterion.
"""

from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, Field

from fleetview.models.device import DeviceRecord

LOW_STORAGE_THRESHOLD_GB = 30


class FilterState(BaseModel):
    windows11_ready: Literal["all", "ready", "not-ready"] = "all"
    tpm_present: Literal["all", "present", "missing"] = "all"
    secure_boot_enabled: Literal["all", "enabled", "disabled"] = "all"
    low_storage: Literal["all", "low", "sufficient"] = "all"
    join_type: str = "all"  # "Hybrid", "AzureAD", "OnPremAD", "None"
    device_category: Literal["all", "Desktop", "Laptop", "Other"] = "all"
    hash_present: Literal["all", "present", "missing"] = "all"
    device_model: str = "all"
    location: list[str] = Field(default_factory=list)
    search_term: str = ""


def _tri_state(setting: str, value: bool, positive: str) -> bool:
    if setting == "all":
        return True
    return value if setting == positive else not value


def matches(device: DeviceRecord, filters: FilterState) -> bool:
    has_tpm = bool(device.tpm_version) and device.tpm_version != "None"
    has_low_storage = device.free_storage_gb < LOW_STORAGE_THRESHOLD_GB
    has_hash = bool(device.hardware_hash.strip())

    if not _tri_state(filters.windows11_ready, device.can_upgrade_to_win11, "ready"):
        return False
    if not _tri_state(filters.tpm_present, has_tpm, "present"):
        return False
    if not _tri_state(filters.secure_boot_enabled, device.secure_boot_enabled, "enabled"):
        return False
    if not _tri_state(filters.low_storage, has_low_storage, "low"):
        return False
    if not _tri_state(filters.hash_present, has_hash, "present"):
        return False
    if filters.join_type != "all" and device.join_type != filters.join_type:
        return False
    if filters.device_category != "all" and device.category.value != filters.device_category:
        return False
    if filters.device_model != "all" and device.model != filters.device_model:
        return False
    if filters.location and device.location not in filters.location:
        return False

    term = filters.search_term.strip().lower()
    if term:
        haystacks = (device.computer_name.lower(), device.serial_number.lower())
        if not any(term in haystack for haystack in haystacks):
            return False
    return True


def filter_devices(devices: Iterable[DeviceRecord], filters: FilterState) -> list[DeviceRecord]:
    """Records passing every active filter, in input order."""
    return [device for device in devices if matches(device, filters)]
