"""
Tests for settings read from the environment.
"""

import io

import pytest

from tram import Settings
from tram.config import DEFAULT_MAX_CALL_DEPTH


class FakeTty(io.StringIO):
    def isatty(self):
        return True


class TestSettings:
    """Test Settings defaults and validation."""

    def test_defaults(self):
        settings = Settings()
        assert settings.max_call_depth == DEFAULT_MAX_CALL_DEPTH == 200
        assert settings.color is True

    def test_rejects_non_positive_depth(self):
        with pytest.raises(ValueError):
            Settings(max_call_depth=0)


class TestFromEnv:
    """Test Settings.from_env()."""

    def test_empty_environment(self):
        settings = Settings.from_env({}, stream=io.StringIO())
        assert settings.max_call_depth == DEFAULT_MAX_CALL_DEPTH
        assert settings.color is False

    def test_color_on_for_terminals(self):
        assert Settings.from_env({}, stream=FakeTty()).color is True

    def test_max_call_depth(self):
        settings = Settings.from_env({"TRAM_MAX_CALL_DEPTH": "50"}, stream=io.StringIO())
        assert settings.max_call_depth == 50

    def test_invalid_max_call_depth(self):
        for raw in ["lots", "0", "-3"]:
            with pytest.raises(ValueError, match="TRAM_MAX_CALL_DEPTH"):
                Settings.from_env({"TRAM_MAX_CALL_DEPTH": raw}, stream=io.StringIO())

    def test_no_color(self):
        assert Settings.from_env({"NO_COLOR": "1"}, stream=FakeTty()).color is False

    def test_tram_color_switch(self):
        assert Settings.from_env({"TRAM_COLOR": "0"}, stream=FakeTty()).color is False
        assert Settings.from_env({"TRAM_COLOR": "yes"}, stream=io.StringIO()).color is True

    def test_no_color_wins(self):
        env = {"TRAM_COLOR": "1", "NO_COLOR": "1"}
        assert Settings.from_env(env, stream=FakeTty()).color is False

    def test_invalid_tram_color(self):
        with pytest.raises(ValueError, match="TRAM_COLOR"):
            Settings.from_env({"TRAM_COLOR": "sometimes"}, stream=io.StringIO())

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("TRAM_MAX_CALL_DEPTH", "12")
        assert Settings.from_env(stream=io.StringIO()).max_call_depth == 12
