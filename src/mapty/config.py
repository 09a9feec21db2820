"""Configuration management for mapty.

Handles loading configuration from TOML files, environment variables,
and command-line options with proper precedence.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from mapty.models.activity import Coordinates
from mapty.services.geolocation import DEFAULT_LOOKUP_URL

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "mapty" / "config.toml"
LOCAL_CONFIG_NAME = ".mapty.toml"
DEFAULT_DATA_DIR = Path("./data")
DEFAULT_ZOOM = 13
DEFAULT_STORAGE_KEY = "workouts"

LOCATION_SOURCES = ("auto", "fixed", "ip", "none")


@dataclass
class DataConfig:
    """Data storage configuration."""

    directory: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)


@dataclass
class MapConfig:
    """Map display configuration."""

    zoom: int = DEFAULT_ZOOM
    home_lat: float | None = None
    home_lng: float | None = None

    @property
    def home(self) -> Coordinates | None:
        """Configured home position, if both components are set."""
        if self.home_lat is None or self.home_lng is None:
            return None
        return Coordinates.coerce((self.home_lat, self.home_lng))


@dataclass
class LocationConfig:
    """Position source configuration."""

    source: str = "auto"
    url: str = DEFAULT_LOOKUP_URL
    timeout: float = 10


@dataclass
class StorageConfig:
    """Persisted storage configuration."""

    key: str = DEFAULT_STORAGE_KEY


@dataclass
class Config:
    """Main configuration container."""

    data: DataConfig = field(default_factory=DataConfig)
    map: MapConfig = field(default_factory=MapConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    config_path: Path | None = None


def _get_env_value(key: str, default: str = "") -> str:
    """Get environment variable value."""
    return os.environ.get(key, default)


def _get_env_float(key: str) -> float | None:
    """Get environment variable as float, None if unset."""
    value = os.environ.get(key, "")
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{key} must be a number, got {value!r}") from e


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    Args:
        config_path: Path to configuration file. If None, uses $MAPTY_CONFIG,
            then ./.mapty.toml, then the default location.

    Returns:
        Populated Config object.
    """
    config = Config()

    # Determine config path
    if config_path is None:
        env_config = _get_env_value("MAPTY_CONFIG")
        if env_config:
            config_path = Path(env_config)
        elif Path(LOCAL_CONFIG_NAME).exists():
            config_path = Path(LOCAL_CONFIG_NAME)
        else:
            config_path = DEFAULT_CONFIG_PATH

    config.config_path = config_path

    # Load from file if exists
    if config_path.exists():
        config = _load_from_file(config_path, config)

    # Override with environment variables
    config = _apply_env_overrides(config)

    if config.location.source not in LOCATION_SOURCES:
        raise ValueError(
            f"Unknown location source {config.location.source!r} "
            f"(expected one of: {', '.join(LOCATION_SOURCES)})"
        )

    return config


def _load_from_file(path: Path, config: Config) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to TOML file.
        config: Existing config to update.

    Returns:
        Updated Config object.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    # Data section
    if "data" in data:
        data_section = data["data"]
        if "directory" in data_section:
            config.data.directory = Path(data_section["directory"])

    # Map section
    if "map" in data:
        map_section = data["map"]
        config.map.zoom = int(map_section.get("zoom", config.map.zoom))
        config.map.home_lat = map_section.get("home_lat", config.map.home_lat)
        config.map.home_lng = map_section.get("home_lng", config.map.home_lng)

    # Location section
    if "location" in data:
        location = data["location"]
        config.location.source = location.get("source", config.location.source)
        config.location.url = location.get("url", config.location.url)
        config.location.timeout = location.get("timeout", config.location.timeout)

    # Storage section
    if "storage" in data:
        config.storage.key = data["storage"].get("key", config.storage.key)

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    if data_dir := _get_env_value("MAPTY_DATA_DIR"):
        config.data.directory = Path(data_dir)

    if (home_lat := _get_env_float("MAPTY_HOME_LAT")) is not None:
        config.map.home_lat = home_lat
    if (home_lng := _get_env_float("MAPTY_HOME_LNG")) is not None:
        config.map.home_lng = home_lng
    if (zoom := _get_env_float("MAPTY_ZOOM")) is not None:
        config.map.zoom = int(zoom)

    if source := _get_env_value("MAPTY_LOCATION_SOURCE"):
        config.location.source = source

    return config


def ensure_data_dir(config: Config) -> Path:
    """Ensure data directory exists and return its path.

    Args:
        config: Configuration with data directory setting.

    Returns:
        Path to data directory.
    """
    data_dir = config.data.directory.resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
