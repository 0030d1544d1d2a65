"""
Run configuration for the shipment tracker.

Values come from ``config/tracker.yaml`` with environment overrides. A
``.env`` file at the repo root (or the working directory) is loaded on
import, so deployments can keep the ledger location out of the YAML.

Usage:
    from shiptracker.config.settings import build_config

    config = build_config()          # raises ConfigError on a bad file
    ledger_path = config.require_ledger_path()

Environment:
    SHIPTRACKER_CONFIG       path to an alternative YAML file
    SHIPTRACKER_LEDGER_PATH  ledger CSV location (required for a run)
    SHIPTRACKER_PORT_URL     port listing page to scrape
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

_current = Path(__file__).resolve()
_repo_root = _current.parent.parent.parent  # shiptracker/config/settings.py -> repo root
_env_path = _repo_root / ".env"

if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()


DEFAULT_CONFIG_PATH = Path("config/tracker.yaml")

DEFAULT_BASE_URL = "https://www.vesselfinder.com"
DEFAULT_PORT_URL = f"{DEFAULT_BASE_URL}/ports/CAKTM001"
DEFAULT_VESSEL_URL_TEMPLATE = DEFAULT_BASE_URL + "/vessels/details/{imo}"

DEFAULT_REQUEST_DELAY_SECONDS = 2.0
DEFAULT_LISTING_TIMEOUT_SECONDS = 15
DEFAULT_DETAIL_TIMEOUT_SECONDS = 10

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF_SECONDS = 2
DEFAULT_BACKOFF_MULTIPLIER = 2

DEFAULT_MIN_VOYAGE_DAYS = 3


class ConfigError(Exception):
    """Raised when required configuration is missing or unreadable."""
    pass


@dataclass
class TrackerConfig:
    """Settings for one scrape-reconcile-check cycle.

    Created once per run and handed to each component; nothing reads
    configuration from module globals after this point.
    """
    port_url: str = DEFAULT_PORT_URL
    base_url: str = DEFAULT_BASE_URL
    vessel_url_template: str = DEFAULT_VESSEL_URL_TEMPLATE
    request_delay_seconds: float = DEFAULT_REQUEST_DELAY_SECONDS
    listing_timeout_seconds: float = DEFAULT_LISTING_TIMEOUT_SECONDS
    detail_timeout_seconds: float = DEFAULT_DETAIL_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff_seconds: float = DEFAULT_INITIAL_BACKOFF_SECONDS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    ledger_path: Optional[Path] = None
    default_capacity_cbm: Optional[int] = None
    min_voyage_days: int = DEFAULT_MIN_VOYAGE_DAYS

    def require_ledger_path(self) -> Path:
        """
        Get the configured ledger location.

        Raises:
            ConfigError: If no ledger path is configured
        """
        if self.ledger_path is None or not str(self.ledger_path).strip():
            raise ConfigError(
                "No ledger configured. Set SHIPTRACKER_LEDGER_PATH "
                "or ledger.path in config/tracker.yaml."
            )
        return Path(self.ledger_path)

    def vessel_url(self, imo: str) -> str:
        """Detail page URL for a vessel identified by IMO number."""
        return self.vessel_url_template.format(imo=imo)


def load_tracker_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the raw YAML configuration.

    Args:
        config_path: Explicit file; falls back to SHIPTRACKER_CONFIG, then
            config/tracker.yaml in the working directory or repo root

    Returns:
        Config dict, or empty dict if no file was found

    Raises:
        ConfigError: If an explicitly named file is missing or unparseable
    """
    explicit = config_path or os.environ.get("SHIPTRACKER_CONFIG")
    if explicit:
        candidates = [Path(explicit)]
    else:
        candidates = [DEFAULT_CONFIG_PATH, _repo_root / DEFAULT_CONFIG_PATH]

    for path in candidates:
        if not path.exists():
            continue
        try:
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if explicit:
        raise ConfigError(f"Config file not found: {explicit}")
    return {}


def build_config(
    config_path: Optional[Path] = None,
    ledger_path: Optional[str] = None,
) -> TrackerConfig:
    """
    Build the run configuration from YAML, environment and CLI overrides.

    Precedence (highest first): ``ledger_path`` argument, environment
    variables, YAML file, built-in defaults.

    Args:
        config_path: Optional YAML file path
        ledger_path: Optional ledger location override

    Returns:
        TrackerConfig
    """
    raw = load_tracker_config(config_path)

    source = raw.get("source", {}) or {}
    http = raw.get("http", {}) or {}
    retry = raw.get("retry", {}) or {}
    ledger = raw.get("ledger", {}) or {}
    arrivals = raw.get("arrivals", {}) or {}

    resolved_ledger = (
        ledger_path
        or os.environ.get("SHIPTRACKER_LEDGER_PATH", "").strip()
        or ledger.get("path")
    )
    default_capacity = ledger.get("default_capacity_cbm")

    try:
        return TrackerConfig(
            port_url=os.environ.get("SHIPTRACKER_PORT_URL", "").strip()
            or source.get("port_url", DEFAULT_PORT_URL),
            base_url=source.get("base_url", DEFAULT_BASE_URL),
            vessel_url_template=source.get("vessel_url_template", DEFAULT_VESSEL_URL_TEMPLATE),
            request_delay_seconds=float(http.get("request_delay_seconds", DEFAULT_REQUEST_DELAY_SECONDS)),
            listing_timeout_seconds=float(http.get("listing_timeout_seconds", DEFAULT_LISTING_TIMEOUT_SECONDS)),
            detail_timeout_seconds=float(http.get("detail_timeout_seconds", DEFAULT_DETAIL_TIMEOUT_SECONDS)),
            max_retries=int(retry.get("max_retries", DEFAULT_MAX_RETRIES)),
            initial_backoff_seconds=float(retry.get("initial_backoff_seconds", DEFAULT_INITIAL_BACKOFF_SECONDS)),
            backoff_multiplier=float(retry.get("backoff_multiplier", DEFAULT_BACKOFF_MULTIPLIER)),
            ledger_path=Path(resolved_ledger) if resolved_ledger else None,
            default_capacity_cbm=int(default_capacity) if default_capacity is not None else None,
            min_voyage_days=int(arrivals.get("min_voyage_days", DEFAULT_MIN_VOYAGE_DAYS)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e
