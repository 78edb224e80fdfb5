"""
AVONLEA Configuration System

Configuration for the installation using pydantic for validation and YAML
for human-readable config files.

Configuration loading priority:
1. Environment variables (AVONLEA_*)
2. Config file passed explicitly (e.g. --config on the CLI)
3. ./avonlea.yaml (current directory)
4. ~/.avonlea/config.yaml (user home)
5. Built-in defaults

Usage:
    from avonlea.config import load_config

    config = load_config()
    print(config.site.utc_offset_hours)
    print(config.view.fov)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from avonlea import constants
from avonlea.exceptions import ConfigurationError

__all__ = [
    "AvonleaConfig",
    "SiteConfig",
    "ViewConfig",
    "MoonConfig",
    "WeatherConfig",
    "MappingConfig",
    "DisplayConfig",
    "load_config",
    "get_config_paths",
]


# =============================================================================
# Configuration Sections
# =============================================================================


class SiteConfig(BaseModel):
    """Fixed observation point."""

    name: str = Field(default=constants.SITE_NAME, description="Human-readable site name")
    latitude: float = Field(
        default=constants.SITE_LATITUDE_DEG,
        ge=-90.0,
        le=90.0,
        description="Site latitude in decimal degrees (positive = North)",
    )
    longitude: float = Field(
        default=constants.SITE_LONGITUDE_DEG,
        ge=-180.0,
        le=180.0,
        description="Site longitude in decimal degrees (positive = East)",
    )
    elevation: float = Field(
        default=constants.SITE_ELEVATION_M,
        ge=-500.0,
        le=9000.0,
        description="Site elevation in meters",
    )
    utc_offset_hours: float = Field(
        default=constants.SITE_UTC_OFFSET_HOURS,
        ge=-14.0,
        le=14.0,
        description="Fixed offset of local wall-clock time from UTC",
    )


class ViewConfig(BaseModel):
    """Viewing direction and the canvas the sky is projected onto."""

    view_azimuth: float = Field(
        default=constants.VIEW_AZIMUTH_DEG,
        ge=0.0,
        lt=360.0,
        description="Azimuth at the centre of the view (180 = South)",
    )
    fov: float = Field(
        default=constants.FIELD_OF_VIEW_DEG,
        gt=0.0,
        le=360.0,
        description="Horizontal field of view in degrees",
    )
    canvas_width: int = Field(default=constants.CANVAS_WIDTH_PX, gt=0)
    canvas_height: int = Field(default=constants.CANVAS_HEIGHT_PX, gt=0)


class MoonConfig(BaseModel):
    """Moon drawing size and the date/time shown at startup."""

    diameter: int = Field(
        default=constants.MOON_DIAMETER_PX,
        ge=1,
        le=64,
        description="Moon diameter in pixels",
    )
    year: int = Field(default=2024, ge=1, le=9999)
    month: int = Field(default=5, ge=1, le=12)
    day: int = Field(default=20, ge=1, le=31)
    hour: int = Field(default=22, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    use_current_time: bool = Field(
        default=False,
        description="Start from the wall clock instead of the date above",
    )


class WeatherConfig(BaseModel):
    """Automatic weather condition source."""

    source: Literal["simulator", "fixed"] = Field(
        default="simulator",
        description="Condition source type",
    )
    scenario: str = Field(
        default="clear",
        description="Simulator scenario name",
    )
    fixed_state: Literal["clear", "cloudy", "rainy", "snowy"] = Field(
        default="clear",
        description="State reported by the fixed source",
    )
    noise: bool = Field(default=True, description="Add variation to simulated readings")
    poll_interval: float = Field(
        default=constants.WEATHER_POLL_INTERVAL_SEC,
        ge=10.0,
        le=3600.0,
        description="Seconds between automatic weather polls",
    )
    initial_condition: Literal["clear", "cloudy", "rainy", "snowy"] = Field(
        default="clear",
        description="Assumed condition until the first successful poll",
    )

    @field_validator("scenario")
    @classmethod
    def validate_scenario(cls, v: str) -> str:
        """Normalize scenario names."""
        return v.strip().lower().replace("-", "_").replace(" ", "_")


class MappingConfig(BaseModel):
    """Ranges for mapping moon data onto synth parameters."""

    depth_min: float = Field(default=constants.DEPTH_MIN, ge=0.0, le=1.0)
    depth_max: float = Field(default=constants.DEPTH_MAX, ge=0.0, le=1.0)
    glint_min: float = Field(default=constants.GLINT_MIN, ge=0.0, le=1.0)
    glint_max: float = Field(default=constants.GLINT_MAX, ge=0.0, le=1.0)
    altitude_max: float = Field(
        default=constants.SCREEN_ALTITUDE_MAX_DEG,
        gt=0.0,
        le=90.0,
        description="Altitude mapped onto glint_max",
    )

    @model_validator(mode="after")
    def validate_ranges(self) -> "MappingConfig":
        """Ensure each output range is ordered low to high."""
        if self.depth_min > self.depth_max:
            raise ValueError("depth_min must not exceed depth_max")
        if self.glint_min > self.glint_max:
            raise ValueError("glint_min must not exceed glint_max")
        return self


class DisplayConfig(BaseModel):
    """Redraw cadence and on-screen overlays."""

    redraw_hz: float = Field(default=constants.REDRAW_HZ, gt=0.0, le=60.0)
    overlay_duration: float = Field(
        default=constants.OVERLAY_DURATION_SEC,
        ge=0.0,
        le=10.0,
        description="Seconds the weather mode label stays on screen",
    )


# =============================================================================
# Master Configuration
# =============================================================================


class AvonleaConfig(BaseModel):
    """Top-level configuration aggregating all sections."""

    model_config = ConfigDict(extra="ignore")

    site: SiteConfig = Field(default_factory=SiteConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    moon: MoonConfig = Field(default_factory=MoonConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Global logging level",
    )


# =============================================================================
# Configuration Loading
# =============================================================================


def get_config_paths() -> list[Path]:
    """Config file paths to search, in priority order (first found wins)."""
    home = Path.home()
    return [
        Path("./avonlea.yaml"),
        Path("./avonlea.yml"),
        home / ".avonlea" / "config.yaml",
        home / ".avonlea" / "config.yml",
        Path("/etc/avonlea/config.yaml"),
    ]


def _apply_env_overrides(config_dict: dict) -> dict:
    """Apply environment variable overrides.

    Variables take the form AVONLEA_SECTION_KEY, e.g.
    AVONLEA_SITE_UTC_OFFSET_HOURS=-4 sets site.utc_offset_hours.
    AVONLEA_LOG_LEVEL sets the top-level log level.
    """
    prefix = "AVONLEA_"

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        name = key[len(prefix) :].lower()
        if name == "log_level":
            config_dict["log_level"] = value.upper()
            continue

        parts = name.split("_")
        if len(parts) < 2:
            continue

        section = parts[0]
        setting = "_".join(parts[1:])

        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        else:
            try:
                value = int(value)
            except ValueError:
                try:
                    value = float(value)
                except ValueError:
                    pass  # Keep as string

        section_dict = config_dict.setdefault(section, {})
        if not isinstance(section_dict, dict):
            raise ConfigurationError(f"Cannot apply {key}: '{section}' is not a section")
        section_dict[setting] = value

    return config_dict


def load_config(config_path: Optional[str | Path] = None) -> AvonleaConfig:
    """Load configuration from file with validation.

    Args:
        config_path: Explicit config file path, or None for auto-discovery

    Returns:
        Validated AvonleaConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    config_dict: dict = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        config_files = [path]
    else:
        config_files = get_config_paths()

    for path in config_files:
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config_dict = yaml.safe_load(f) or {}
                break
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigurationError("Config file must contain a mapping at the top level")

    config_dict = _apply_env_overrides(config_dict)

    try:
        return AvonleaConfig(**config_dict)
    except Exception as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e
