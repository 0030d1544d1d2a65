"""
Tests for shiptracker/config/settings.py - YAML + environment configuration.
"""

from pathlib import Path

import pytest

from shiptracker.config.settings import (
    DEFAULT_PORT_URL,
    DEFAULT_REQUEST_DELAY_SECONDS,
    ConfigError,
    TrackerConfig,
    build_config,
    load_tracker_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SHIPTRACKER_LEDGER_PATH", "SHIPTRACKER_PORT_URL", "SHIPTRACKER_CONFIG"):
        monkeypatch.delenv(name, raising=False)


def write_yaml(tmp_path, text):
    path = tmp_path / "tracker.yaml"
    path.write_text(text)
    return path


class TestLoadTrackerConfig:
    """Tests for locating and parsing the YAML file."""

    def test_explicit_file(self, tmp_path):
        """Test that an explicit path is loaded."""
        path = write_yaml(tmp_path, "ledger:\n  path: data/ledger.csv\n")
        assert load_tracker_config(path) == {"ledger": {"path": "data/ledger.csv"}}

    def test_env_file(self, tmp_path, monkeypatch):
        """Test that SHIPTRACKER_CONFIG names the file to load."""
        path = write_yaml(tmp_path, "arrivals:\n  min_voyage_days: 5\n")
        monkeypatch.setenv("SHIPTRACKER_CONFIG", str(path))
        assert load_tracker_config()["arrivals"]["min_voyage_days"] == 5

    def test_empty_file(self, tmp_path):
        """Test that an empty file loads as an empty dict."""
        assert load_tracker_config(write_yaml(tmp_path, "")) == {}

    def test_missing_explicit_file(self, tmp_path):
        """Test that a missing explicit file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_tracker_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        """Test that invalid YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="Failed to load"):
            load_tracker_config(write_yaml(tmp_path, "http: [unclosed\n"))


class TestBuildConfig:
    """Tests for precedence and validation."""

    def test_defaults(self, tmp_path):
        """Test the built-in defaults."""
        config = build_config(write_yaml(tmp_path, ""))

        assert config.port_url == DEFAULT_PORT_URL
        assert config.request_delay_seconds == DEFAULT_REQUEST_DELAY_SECONDS
        assert config.listing_timeout_seconds == 15
        assert config.detail_timeout_seconds == 10
        assert config.min_voyage_days == 3
        assert config.ledger_path is None
        assert config.default_capacity_cbm is None

    def test_yaml_values(self, tmp_path):
        """Test that YAML values override the defaults."""
        path = write_yaml(tmp_path, """
source:
  port_url: https://www.vesselfinder.com/ports/AUGLT001
http:
  request_delay_seconds: 5
retry:
  max_retries: 4
ledger:
  path: data/ledger.csv
  default_capacity_cbm: 174000
""")
        config = build_config(path)

        assert config.port_url.endswith("AUGLT001")
        assert config.request_delay_seconds == 5.0
        assert config.max_retries == 4
        assert config.ledger_path == Path("data/ledger.csv")
        assert config.default_capacity_cbm == 174000

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        """Test that environment variables override YAML."""
        path = write_yaml(tmp_path, "ledger:\n  path: from-yaml.csv\n")
        monkeypatch.setenv("SHIPTRACKER_LEDGER_PATH", "from-env.csv")
        monkeypatch.setenv("SHIPTRACKER_PORT_URL", "https://example.test/ports/X")

        config = build_config(path)
        assert config.ledger_path == Path("from-env.csv")
        assert config.port_url == "https://example.test/ports/X"

    def test_argument_overrides_env(self, tmp_path, monkeypatch):
        """Test that explicit arguments override the environment."""
        monkeypatch.setenv("SHIPTRACKER_LEDGER_PATH", "from-env.csv")
        config = build_config(write_yaml(tmp_path, ""), ledger_path="from-cli.csv")
        assert config.ledger_path == Path("from-cli.csv")

    def test_invalid_number(self, tmp_path):
        """Test that a non-numeric setting raises ConfigError."""
        path = write_yaml(tmp_path, "http:\n  request_delay_seconds: soon\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            build_config(path)


class TestTrackerConfig:
    """Tests for config helpers."""

    def test_require_ledger_path(self):
        """Test that a missing ledger path raises ConfigError."""
        with pytest.raises(ConfigError, match="No ledger configured"):
            TrackerConfig().require_ledger_path()
        assert TrackerConfig(ledger_path=Path("x.csv")).require_ledger_path() == Path("x.csv")

    def test_vessel_url(self):
        """Test that the vessel URL template is filled with the IMO."""
        assert TrackerConfig().vessel_url("9123456") == "https://www.vesselfinder.com/vessels/details/9123456"
