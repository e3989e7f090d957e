"""Pytest configuration and shared fixtures.

Adds `src/` to `sys.path` so tests can import the project package
without requiring installation.
"""

import json
import os
import sys
from collections.abc import Callable
from typing import Any

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from fleetview.core.settings import IngestSettings  # noqa: E402
from fleetview.ingest.lookups import IpRange, LookupTables  # noqa: E402
from fleetview.ingest.pipeline import SourceFile  # noqa: E402


@pytest.fixture
def tables() -> LookupTables:
    """Small, explicit lookup tables independent of the shipped YAML."""
    return LookupTables(
        model_categories={
            "OptiPlex 7070": "Desktop",
            "Latitude 5400": "Laptop",
        },
        ip_ranges=(
            IpRange(name="Site 1A", range="10.52."),
            IpRange(name="Site 2B", range="10.53."),
        ),
    )


@pytest.fixture
def inline_settings() -> IngestSettings:
    """Settings that never offload to the worker process."""
    return IngestSettings(_env_file=None, worker_enabled=False)


@pytest.fixture
def default_settings() -> IngestSettings:
    """Default thresholds, isolated from any .env file."""
    return IngestSettings(_env_file=None)


@pytest.fixture
def make_source() -> Callable[..., SourceFile]:
    """Build a SourceFile from a JSON-serializable payload."""

    def _make(name: str, payload: Any, encoding: str = "utf-8") -> SourceFile:
        return SourceFile(name=name, data=json.dumps(payload).encode(encoding))

    return _make


@pytest.fixture
def sample_device() -> dict[str, Any]:
    """A fully populated flat export record."""
    return {
        "ComputerName": "TEST-PC-001",
        "Manufacturer": "Dell Inc.",
        "Model": "OptiPlex 7070",
        "OSName": "Microsoft Windows 10 Pro",
        "WindowsVersion": "10.0.19044",
        "WindowsEdition": "Pro",
        "TotalRAMGB": 16,
        "TotalStorageGB": 512,
        "FreeStorageGB": 256,
        "HardDriveType": "SSD",
        "TPMVersion": "2.0",
        "SecureBootEnabled": True,
        "JoinType": "AzureAD",
        "InternalIP": "10.52.1.100",
        "LastBootUpTime": "/Date(1704067200000)/",
        "HardwareHash": "ABC123DEF456",
        "SerialNumber": "SN123456789",
    }
