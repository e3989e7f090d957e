"""Windows 11 upgrade recommendations over canonical records."""

from fleetview.models.device import DeviceRecord

MIN_RAM_GB = 4
MIN_FREE_STORAGE_GB = 64
LEGACY_OS_MARKERS = ("Windows 7", "Windows 8")

READY_MESSAGE = "This device meets all Windows 11 requirements and is ready for upgrade."
FALLBACK_MESSAGE = "Review the specific issues listed to determine upgrade path."


def get_upgrade_recommendations(device: DeviceRecord) -> list[str]:
    """Actionable steps toward Windows 11, most fundamental first.

    A ready device gets a single confirmation; a blocked device with no
    recognisable cause gets a pointer to its issues list.
    """
    if device.can_upgrade_to_win11:
        return [READY_MESSAGE]

    recommendations: list[str] = []

    if not device.tpm_version or device.tpm_version == "None":
        recommendations.append(
            "Enable TPM 2.0 in BIOS/UEFI settings or install a TPM module if supported."
        )
    elif device.tpm_version == "1.2":
        recommendations.append(
            "Upgrade TPM from version 1.2 to 2.0 (may require hardware replacement)."
        )

    if not device.secure_boot_enabled:
        recommendations.append("Enable Secure Boot in BIOS/UEFI settings.")

    if device.total_ram_gb < MIN_RAM_GB:
        recommendations.append(
            f"Upgrade RAM from {device.total_ram_gb:g}GB to at least {MIN_RAM_GB}GB "
            "(recommended: 8GB or more)."
        )

    if device.free_storage_gb < MIN_FREE_STORAGE_GB:
        recommendations.append(
            "Free up storage space or add more storage. "
            f"Need at least {MIN_FREE_STORAGE_GB}GB free (currently: {device.free_storage_gb:.1f}GB)."
        )

    if device.hard_drive_type == "HDD":
        recommendations.append("Consider upgrading to an SSD for better Windows 11 performance.")

    if any(marker in device.windows_version for marker in LEGACY_OS_MARKERS):
        recommendations.append(
            "Current OS is very old. Consider upgrading to Windows 10 first, then Windows 11."
        )

    if any("bios" in issue.lower() for issue in device.issues):
        recommendations.append("Update BIOS/UEFI to the latest version from the manufacturer.")

    return recommendations or [FALLBACK_MESSAGE]
