"""Tests for settings loading, env overrides and validation."""
import json
import os

import pytest

from config.config_manager import ConfigManager, EngineSettings
from config.constants import DEFAULT_BUMPERS, DEFAULT_FALLBACK_TIMEOUT_MS


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    # Push the mtime forward so the change is visible regardless of fs resolution
    stamp = os.path.getmtime(path) + 10
    os.utime(path, (stamp, stamp))


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings.json"


class TestDefaults:

    def test_creates_default_file(self, settings_path):
        manager = ConfigManager(str(settings_path))
        assert settings_path.exists()
        assert manager.validate_config()
        assert manager.get_settings()["bumpers"] == list(DEFAULT_BUMPERS)

    def test_new_file_is_not_reported_as_changed(self, settings_path):
        manager = ConfigManager(str(settings_path))
        assert not manager.has_config_changed()

    def test_engine_settings_defaults(self, settings_path):
        settings = ConfigManager(str(settings_path)).engine_settings()
        assert settings == EngineSettings()
        assert settings.fallback_timeout_ms == DEFAULT_FALLBACK_TIMEOUT_MS

    def test_missing_keys_fall_back(self, settings_path):
        _write(settings_path, {"advance_floor_ms": 2000})
        settings = ConfigManager(str(settings_path)).engine_settings()
        assert settings.advance_floor_ms == 2000
        assert settings.bumpers == DEFAULT_BUMPERS
        assert settings.forbidden_category == ""


class TestOverrides:

    def test_env_overrides_json(self, settings_path, monkeypatch):
        _write(settings_path, {"forbidden_category": "Deportes", "excluded_item_id": 5})
        monkeypatch.setenv("CHANNEL_FORBIDDEN_CATEGORY", "Politica")
        settings = ConfigManager(str(settings_path)).engine_settings()
        assert settings.forbidden_category == "Politica"
        assert settings.excluded_item_id == "5"

    def test_content_source_override(self, settings_path, monkeypatch):
        monkeypatch.setenv("CHANNEL_CONTENT_SOURCE", "https://api.example.com/pool")
        assert ConfigManager(str(settings_path)).content_source == "https://api.example.com/pool"


class TestChanges:

    def test_detects_file_change(self, settings_path):
        manager = ConfigManager(str(settings_path))
        _write(settings_path, {"pool_refresh_seconds": 60})

        assert manager.has_config_changed()
        assert not manager.has_config_changed()
        assert manager.pool_refresh_seconds == 60


class TestValidation:

    @pytest.mark.parametrize("data", [
        {"fallback_timeout_ms": 0},
        {"advance_floor_ms": -1},
        {"slide_duration_seconds": "long"},
        {"bumpers": []},
        {"bumpers": "intro.mp4"},
        {"bumpers": [""]},
        {"slide_bumper": ""},
        {"slide_cover_lead_ms": -1},
        {"deep_link_delay_ms": "later"},
        {"sim_bumper_seconds": -0.5},
    ])
    def test_rejects_bad_settings(self, settings_path, data):
        _write(settings_path, data)
        assert not ConfigManager(str(settings_path)).validate_config()

    def test_rejects_unreadable_file(self, settings_path):
        settings_path.write_text("{broken", encoding="utf-8")
        assert not ConfigManager(str(settings_path)).validate_config()
