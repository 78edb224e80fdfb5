"""
AVONLEA Ephemeris Service

Simplified Moon geometry: Julian Date, phase, sky position, screen
projection and phase silhouette.
"""

from .moon_calculator import (
    CalendarTime,
    SkyPosition,
    ScreenPoint,
    MoonShapeMask,
    to_julian_date,
    phase_fraction,
    illumination,
    phase_name,
    simplified_position,
    wrap_angle,
    project,
    generate_mask,
    linlin,
)

__all__ = [
    "CalendarTime",
    "SkyPosition",
    "ScreenPoint",
    "MoonShapeMask",
    "to_julian_date",
    "phase_fraction",
    "illumination",
    "phase_name",
    "simplified_position",
    "wrap_angle",
    "project",
    "generate_mask",
    "linlin",
]
