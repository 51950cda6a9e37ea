"""Tests for configuration loading.

**Feature: trade-journal**
"""

from pathlib import Path

import pytest

from tradejournal.config import (
    DB_FILENAME,
    DEFAULT_CONFIG,
    ConfigError,
    get_config_dir,
    get_config_path,
    get_db_path,
    load_config,
    time_convention,
)


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("TRADEJOURNAL_HOME", str(tmp_path))
    return tmp_path


class TestConfigLocation:
    def test_home_override(self, home):
        assert get_config_dir() == home
        assert get_config_path() == home / "config.toml"

    def test_default_location(self, monkeypatch):
        monkeypatch.delenv("TRADEJOURNAL_HOME", raising=False)
        assert get_config_dir() == Path.home() / ".config" / "tradejournal"

    def test_default_db_path(self, home):
        assert get_db_path(load_config()) == home / DB_FILENAME

    def test_configured_db_path(self, home):
        assert get_db_path({"database": {"path": "/data/journal.db"}}) == Path("/data/journal.db")


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, home):
        config = load_config()

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_values_merge_over_defaults(self, home):
        (home / "config.toml").write_text('[analytics]\ntimezone = "Europe/London"\n')

        config = load_config()

        assert config["analytics"]["timezone"] == "Europe/London"
        assert config["analytics"]["base_risk"] == 10.0
        assert config["limits"]["max_trades_per_day"] == 3

    def test_sessions_replace_defaults(self, home):
        (home / "config.toml").write_text("[sessions]\nNight = 0\nDay = 12\n")

        convention = time_convention(load_config())

        assert convention.session_starts == (("Night", 0), ("Day", 12))

    def test_invalid_toml(self, home):
        (home / "config.toml").write_text("[analytics\ntimezone = ")

        with pytest.raises(ConfigError, match="Failed to read"):
            load_config()

    @pytest.mark.parametrize("content", ["sessions = 5\n", "analytics = \"x\"\n", "limits = [1, 2]\n"])
    def test_section_must_be_table(self, home, content):
        (home / "config.toml").write_text(content)

        with pytest.raises(ConfigError, match="must be a table"):
            load_config()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "other.toml"
        path.write_text("[limits]\nmax_trades_per_day = 5\n")

        assert load_config(path)["limits"]["max_trades_per_day"] == 5


class TestTimeConvention:
    def test_default_convention(self):
        convention = time_convention(DEFAULT_CONFIG)

        assert convention.tz_name == "UTC"
        assert [name for name, _ in convention.session_starts] == ["Asia", "London", "NewYork"]

    def test_sessions_sorted_by_hour(self):
        config = {"analytics": {"timezone": "UTC"}, "sessions": {"NewYork": 16, "Asia": 0, "London": 8}}
        assert time_convention(config).session_starts[0] == ("Asia", 0)

    @pytest.mark.parametrize(
        "config",
        [
            {"analytics": {"timezone": "Nowhere/City"}},
            {"analytics": {"timezone": "UTC"}, "sessions": {"London": 8}},
            {"analytics": {"timezone": "UTC"}, "sessions": {"Asia": "midnight"}},
            {"analytics": "x"},
            {"analytics": {"timezone": "UTC"}, "sessions": 5},
        ],
    )
    def test_invalid_settings(self, config):
        with pytest.raises(ConfigError, match="Invalid analytics settings"):
            time_convention(config)
