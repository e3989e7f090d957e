"""
Unit tests for IngestSettings.
"""

import pytest
from pydantic import ValidationError

from fleetview.core.settings import IngestSettings


def test_defaults(default_settings):
    assert default_settings.offload_byte_threshold == 1_000_000
    assert default_settings.offload_file_threshold == 3
    assert default_settings.worker_enabled is True
    assert default_settings.worker_start_method == "spawn"
    assert default_settings.log_level == "INFO"
    assert default_settings.category_map_file == ""


def test_environment_override(monkeypatch):
    monkeypatch.setenv("FLEETVIEW_OFFLOAD_FILE_THRESHOLD", "10")
    monkeypatch.setenv("FLEETVIEW_WORKER_ENABLED", "false")
    monkeypatch.setenv("FLEETVIEW_LOG_LEVEL", "debug")
    settings = IngestSettings(_env_file=None)
    assert settings.offload_file_threshold == 10
    assert settings.worker_enabled is False
    assert settings.log_level == "DEBUG"


def test_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("FLEETVIEW_OFFLOAD_BYTE_THRESHOLD=2048\n", encoding="utf-8")
    assert IngestSettings(_env_file=env_file).offload_byte_threshold == 2048


def test_negative_thresholds_clamped():
    settings = IngestSettings(_env_file=None, offload_byte_threshold=-5, offload_file_threshold=-1)
    assert settings.offload_byte_threshold == 0
    assert settings.offload_file_threshold == 0


def test_non_positive_poll_interval_reset():
    assert IngestSettings(_env_file=None, worker_poll_interval=0).worker_poll_interval == 0.05


def test_blank_log_level():
    assert IngestSettings(_env_file=None, log_level="  ").log_level == "INFO"


def test_invalid_start_method():
    with pytest.raises(ValidationError):
        IngestSettings(_env_file=None, worker_start_method="thread")
