"""Tests for core.settings module.

Covers:
- TrackwaySettings defaults
- Environment variable override with the TRACKWAY_ prefix
- log_level validation
- get_settings caching
"""

import pytest
from pydantic import ValidationError

from trackway.core.settings import TrackwaySettings, get_settings


class TestTrackwaySettingsDefaults:
    def test_default_log_level(self):
        assert TrackwaySettings().log_level == "INFO"

    def test_default_json_logs_auto(self):
        assert TrackwaySettings().json_logs is None

    def test_values_not_logged_by_default(self):
        assert TrackwaySettings().log_values is False

    def test_trace_off_by_default(self):
        assert TrackwaySettings().trace_steps is False

    def test_default_service(self):
        assert TrackwaySettings().service == "trackway"


class TestTrackwaySettingsEnvOverride:
    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("TRACKWAY_LOG_LEVEL", "debug")
        assert TrackwaySettings().log_level == "DEBUG"

    def test_flags_from_env(self, monkeypatch):
        monkeypatch.setenv("TRACKWAY_LOG_VALUES", "true")
        monkeypatch.setenv("TRACKWAY_TRACE_STEPS", "1")
        s = TrackwaySettings()
        assert s.log_values is True
        assert s.trace_steps is True

    def test_unprefixed_env_ignored(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert TrackwaySettings().log_level == "INFO"


class TestValidation:
    def test_rejects_unknown_level(self):
        with pytest.raises(ValidationError):
            TrackwaySettings(log_level="LOUD")


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TRACKWAY_SERVICE", "login-api")
        assert get_settings().service == "login-api"
