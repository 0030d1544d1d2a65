"""Configuration loading for the shipment tracker."""

from .settings import ConfigError, TrackerConfig, build_config, load_tracker_config

__all__ = ["ConfigError", "TrackerConfig", "build_config", "load_tracker_config"]
