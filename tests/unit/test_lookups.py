"""
Unit tests for lookup table and location mapping loading.
"""

import json

import pytest

from fleetview.core.exceptions import ConfigurationError
from fleetview.ingest import lookups
from fleetview.ingest.lookups import (
    IpRange,
    LookupTables,
    load_category_table,
    load_default_tables,
    load_ip_ranges,
    load_location_mapping,
)


class TestShippedTables:
    """The YAML tables packaged with fleetview."""

    def test_default_categories(self):
        tables = load_default_tables()
        assert tables.category_for("OptiPlex 7070") == "Desktop"
        assert tables.category_for("Latitude 5400") == "Laptop"

    def test_default_ip_ranges(self):
        tables = load_default_tables()
        assert tables.location_for_ip("10.52.1.100") == "Site 1A"
        assert tables.location_for_ip("10.53.12.34") == "Site 2B"
        assert tables.location_for_ip("8.8.8.8") is None

    def test_default_tables_are_cached(self):
        assert load_default_tables() is load_default_tables()


class TestLookupTables:
    """Tests for the LookupTables value object."""

    def test_tables_are_read_only(self):
        source = {"A": "Desktop"}
        tables = LookupTables(model_categories=source)
        source["B"] = "Laptop"
        assert tables.category_for("B") is None
        with pytest.raises(TypeError):
            tables.model_categories["C"] = "Other"  # type: ignore[index]

    def test_dict_round_trip(self, tables):
        assert LookupTables.from_dict(tables.to_dict()) == tables

    def test_empty_prefix_never_matches(self):
        assert not IpRange(name="All", range="").matches("10.0.0.1")


class TestTableFiles:
    """Loading override tables from disk."""

    def test_category_yaml(self, tmp_path):
        path = tmp_path / "categories.yaml"
        path.write_text("model_categories:\n  Box 1: Desktop\n", encoding="utf-8")
        assert load_category_table(path) == {"Box 1": "Desktop"}

    def test_category_json_flat(self, tmp_path):
        path = tmp_path / "device-category.json"
        path.write_text(json.dumps({"Box 2": "Laptop"}), encoding="utf-8")
        assert load_category_table(path) == {"Box 2": "Laptop"}

    def test_ip_ranges_json_list(self, tmp_path):
        path = tmp_path / "ip-range-generic.json"
        path.write_text(json.dumps([{"name": "Lab", "range": "10.9."}]), encoding="utf-8")
        assert load_ip_ranges(path) == [IpRange(name="Lab", range="10.9.")]

    def test_ip_ranges_compact_mapping(self, tmp_path):
        path = tmp_path / "ranges.yaml"
        path.write_text('"10.9.": Lab\n', encoding="utf-8")
        assert load_ip_ranges(path) == [IpRange(name="Lab", range="10.9.")]

    def test_invalid_ip_range_entry(self, tmp_path):
        path = tmp_path / "ranges.json"
        path.write_text(json.dumps([{"name": "Lab"}]), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_ip_ranges(path)

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "categories.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Malformed"):
            load_category_table(path)

    def test_settings_override(self, tmp_path, monkeypatch):
        categories = tmp_path / "c.yaml"
        categories.write_text("model_categories:\n  Box: Laptop\n", encoding="utf-8")
        ranges = tmp_path / "r.yaml"
        ranges.write_text("ip_ranges:\n  - name: Lab\n    range: '10.9.'\n", encoding="utf-8")

        class FakeSettings:
            category_map_file = str(categories)
            ip_range_file = str(ranges)

        monkeypatch.setattr(lookups, "get_settings", lambda: FakeSettings())
        tables = load_default_tables()
        assert tables.category_for("Box") == "Laptop"
        assert tables.location_for_ip("10.9.1.1") == "Lab"


class TestLoadLocationMapping:
    """Tests for load_location_mapping."""

    def test_none_path(self):
        assert load_location_mapping(None) is None

    def test_missing_file(self, tmp_path):
        assert load_location_mapping(tmp_path / "absent.json") is None

    def test_json_file(self, tmp_path):
        path = tmp_path / "location-mapping.json"
        path.write_text(
            json.dumps({"genericToReal": {"Site 1A": "Amsterdam HQ"}, "ipRangeMapping": {"10.60.": "Berlin"}}),
            encoding="utf-8",
        )
        mapping = load_location_mapping(path)
        assert mapping.generic_to_real == {"Site 1A": "Amsterdam HQ"}
        assert mapping.ip_range_mapping == {"10.60.": "Berlin"}

    def test_json_file_with_bom(self, tmp_path):
        path = tmp_path / "location-mapping.json"
        path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"genericToReal": {"A": "B"}}).encode("utf-8"))
        assert load_location_mapping(path).generic_to_real == {"A": "B"}

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "mapping.yaml"
        path.write_text("ipRangeMapping:\n  '10.60.': Berlin\n", encoding="utf-8")
        assert load_location_mapping(path).ip_range_mapping == {"10.60.": "Berlin"}

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps(["not", "an", "object"]), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_location_mapping(path)

    def test_wrong_value_types(self, tmp_path):
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps({"genericToReal": "nope"}), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_location_mapping(path)
