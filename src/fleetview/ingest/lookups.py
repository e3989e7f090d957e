"""
Lookup tables and location mapping loading.

The model -> category table and the generic IP-prefix table ship as YAML
package data and are injected into the normalizer as an immutable
``LookupTables`` value, so tests and deployments can substitute their own.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError

from fleetview.core.exceptions import ConfigurationError
from fleetview.core.settings import PACKAGE_DATA_DIR, get_settings
from fleetview.models.device import LocationMapping

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_FILE = PACKAGE_DATA_DIR / "device_categories.yaml"
DEFAULT_IP_RANGE_FILE = PACKAGE_DATA_DIR / "ip_ranges.yaml"


@dataclass(frozen=True)
class IpRange:
    """A location label owned by every address starting with ``range``."""

    name: str
    range: str

    def matches(self, ip: str) -> bool:
        return bool(self.range) and ip.startswith(self.range)


@dataclass(frozen=True)
class LookupTables:
    """Immutable configuration consumed by the record normalizer."""

    model_categories: Mapping[str, str] = field(default_factory=dict)
    ip_ranges: tuple[IpRange, ...] = ()

    def __post_init__(self) -> None:
        # Freeze the caller's mapping so tables can be shared across calls
        object.__setattr__(self, "model_categories", MappingProxyType(dict(self.model_categories)))
        object.__setattr__(self, "ip_ranges", tuple(self.ip_ranges))

    def category_for(self, model: str) -> str | None:
        return self.model_categories.get(model)

    def location_for_ip(self, ip: str) -> str | None:
        for entry in self.ip_ranges:
            if entry.matches(ip):
                return entry.name
        return None

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form, picklable across the worker boundary."""
        return {
            "model_categories": dict(self.model_categories),
            "ip_ranges": [{"name": r.name, "range": r.range} for r in self.ip_ranges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LookupTables":
        return cls(
            model_categories=data.get("model_categories") or {},
            ip_ranges=tuple(_parse_ip_ranges(data.get("ip_ranges") or [], "<dict>")),
        )


# =============================================================================
# File loading
# =============================================================================


def _read_structured_file(path: Path) -> Any:
    """Read a JSON or YAML file (chosen by suffix)."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        msg = f"Cannot read {path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Malformed configuration file {path}: {e}"
        raise ConfigurationError(msg) from e


def _parse_ip_ranges(entries: Any, source: str) -> list[IpRange]:
    if isinstance(entries, Mapping):
        # Also accept the compact "prefix: label" form
        return [IpRange(name=str(name), range=str(prefix)) for prefix, name in entries.items()]
    if not isinstance(entries, list):
        msg = f"ip_ranges in {source} must be a list of {{name, range}} entries"
        raise ConfigurationError(msg)

    ranges = []
    for entry in entries:
        if not isinstance(entry, Mapping) or "name" not in entry or "range" not in entry:
            msg = f"Invalid ip range entry in {source}: {entry!r}"
            raise ConfigurationError(msg)
        ranges.append(IpRange(name=str(entry["name"]), range=str(entry["range"])))
    return ranges


def load_category_table(path: Path | str) -> dict[str, str]:
    """Load a model -> category table."""
    path = Path(path)
    data = _read_structured_file(path) or {}
    table = data.get("model_categories", data) if isinstance(data, Mapping) else None
    if not isinstance(table, Mapping):
        msg = f"Category table {path} must be a mapping of model to category"
        raise ConfigurationError(msg)
    return {str(model): str(category) for model, category in table.items()}


def load_ip_ranges(path: Path | str) -> list[IpRange]:
    """Load a generic IP-prefix table."""
    path = Path(path)
    data = _read_structured_file(path) or []
    entries = data.get("ip_ranges", data) if isinstance(data, Mapping) else data
    return _parse_ip_ranges(entries, str(path))


@lru_cache(maxsize=4)
def _load_tables(category_file: str, ip_range_file: str) -> LookupTables:
    categories = load_category_table(category_file)
    ip_ranges = load_ip_ranges(ip_range_file)
    logger.debug(
        f"Loaded {len(categories)} model categories from {category_file}, "
        f"{len(ip_ranges)} ip ranges from {ip_range_file}"
    )
    return LookupTables(model_categories=categories, ip_ranges=tuple(ip_ranges))


def load_default_tables() -> LookupTables:
    """Built-in tables, or the override files named in settings (cached)."""
    settings = get_settings()
    category_file = settings.category_map_file or str(DEFAULT_CATEGORY_FILE)
    ip_range_file = settings.ip_range_file or str(DEFAULT_IP_RANGE_FILE)
    return _load_tables(category_file, ip_range_file)


def load_location_mapping(path: Path | str | None) -> LocationMapping | None:
    """Load a ``{genericToReal, ipRangeMapping}`` file.

    Returns None when no path is given or the file does not exist; a
    present but malformed file raises ConfigurationError.
    """
    if not path:
        return None
    path = Path(path)
    if not path.exists():
        logger.info(f"Location mapping not found at {path}; using generic locations")
        return None

    data = _read_structured_file(path) or {}
    if not isinstance(data, Mapping):
        msg = f"Location mapping {path} must be an object"
        raise ConfigurationError(msg)
    try:
        mapping = LocationMapping.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid location mapping {path}: {e}"
        raise ConfigurationError(msg) from e

    logger.info(
        f"Loaded location mapping from {path}: {len(mapping.generic_to_real)} aliases, "
        f"{len(mapping.ip_range_mapping)} ip prefixes"
    )
    return mapping
