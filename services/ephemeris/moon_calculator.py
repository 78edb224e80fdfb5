"""
AVONLEA Moon Calculator

Cheap, deterministic Moon geometry for a single fixed observation point:
- Calendar date/time (fixed UTC offset) -> Julian Date
- Julian Date -> phase fraction of the synodic month
- Simplified azimuth/altitude from Julian Date, month and hour
- Azimuth/altitude -> screen coordinates for a viewing direction and FOV
- Phase -> rasterized silhouette mask (crescent/gibbous)

This is not an ephemeris. Positions come from a smooth periodic heuristic
that looks right from Prince Edward Island, not from orbital mechanics.
Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace as dataclass_replace
from datetime import datetime, timedelta, timezone
from typing import Tuple

from avonlea import constants
from avonlea.exceptions import InvalidConfiguration

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


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class CalendarTime:
    """Local wall-clock reading at a fixed UTC offset.

    Fields are not validated or normalized; day=31 in a 30-day month is
    passed straight through the Julian Day arithmetic.
    """

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    utc_offset_hours: float = constants.SITE_UTC_OFFSET_HOURS

    @classmethod
    def from_datetime(
        cls,
        dt: datetime,
        utc_offset_hours: float = constants.SITE_UTC_OFFSET_HOURS,
    ) -> "CalendarTime":
        """Read an aware datetime as wall-clock time at a fixed offset.

        Naive datetimes are taken to already be local wall-clock time.
        """
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone(timedelta(hours=utc_offset_hours)))
        return cls(
            year=dt.year,
            month=dt.month,
            day=dt.day,
            hour=dt.hour,
            minute=dt.minute,
            second=dt.second,
            utc_offset_hours=utc_offset_hours,
        )

    @classmethod
    def now(cls, utc_offset_hours: float = constants.SITE_UTC_OFFSET_HOURS) -> "CalendarTime":
        """Current wall-clock time at the given offset."""
        return cls.from_datetime(datetime.now(timezone.utc), utc_offset_hours)

    def replace(self, **changes) -> "CalendarTime":
        """Copy with some fields changed."""
        return dataclass_replace(self, **changes)

    @property
    def decimal_hour(self) -> float:
        """Hour of day including minutes and seconds."""
        return self.hour + self.minute / 60.0 + self.second / 3600.0

    def __str__(self) -> str:
        return (
            f"{self.year:04d}-{self.month:02d}-{self.day:02d} "
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d} "
            f"(UTC{self.utc_offset_hours:+g})"
        )


@dataclass(frozen=True)
class SkyPosition:
    """Apparent horizontal position."""

    azimuth_degrees: float  # Degrees from North, [0, 360)
    altitude_degrees: float  # Degrees above horizon, negative below

    @property
    def above_horizon(self) -> bool:
        return self.altitude_degrees > 0

    @property
    def compass_direction(self) -> str:
        """16-point compass direction string."""
        directions = ["N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
                      "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW"]
        index = round(self.azimuth_degrees / 22.5) % 16
        return directions[index]


@dataclass(frozen=True)
class ScreenPoint:
    """Projected position on the canvas."""

    x: float
    y: float
    visible: bool


@dataclass(frozen=True)
class MoonShapeMask:
    """Rasterized Moon silhouette.

    ``disc`` marks pixels inside the circle, ``lit`` the illuminated subset.
    Rows are indexed top to bottom, columns left to right.
    """

    size: int
    disc: Tuple[Tuple[bool, ...], ...]
    lit: Tuple[Tuple[bool, ...], ...]

    def is_disc(self, x: int, y: int) -> bool:
        return self.disc[y][x]

    def is_lit(self, x: int, y: int) -> bool:
        return self.lit[y][x]

    @property
    def disc_count(self) -> int:
        return sum(sum(row) for row in self.disc)

    @property
    def lit_count(self) -> int:
        return sum(sum(row) for row in self.lit)

    def mirrored(self) -> "MoonShapeMask":
        """Horizontal mirror image."""
        return MoonShapeMask(
            size=self.size,
            disc=tuple(tuple(reversed(row)) for row in self.disc),
            lit=tuple(tuple(reversed(row)) for row in self.lit),
        )

    def to_rows(self, lit_char: str = "#", dark_char: str = "+", empty_char: str = ".") -> list[str]:
        """Text rendering, one string per row."""
        rows = []
        for disc_row, lit_row in zip(self.disc, self.lit):
            rows.append("".join(
                lit_char if lit else dark_char if disc else empty_char
                for disc, lit in zip(disc_row, lit_row)
            ))
        return rows


# =============================================================================
# CalendarClock
# =============================================================================


def to_julian_date(time: CalendarTime) -> float:
    """Convert a wall-clock reading to a Julian Date.

    Standard Julian Day algorithm with the Gregorian correction; January and
    February count as months 13 and 14 of the previous year. The UTC offset
    is subtracted from the time of day (as a fraction of a day) so that a
    negative offset describes a zone west of Greenwich.

    Args:
        time: Wall-clock reading

    Returns:
        Julian Date (days)
    """
    year = time.year
    month = time.month
    if month <= 2:
        year -= 1
        month += 12

    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)

    day_fraction = (
        time.hour + time.minute / 60.0 + time.second / 3600.0 - time.utc_offset_hours
    ) / 24.0

    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + time.day
        + b
        - 1524.5
        + day_fraction
    )


# =============================================================================
# PhaseCalculator
# =============================================================================


def phase_fraction(jd: float) -> float:
    """Fraction of the synodic month elapsed since the last new moon.

    0 (and 1) is new moon, 0.5 is full moon. Dates before the reference
    epoch wrap correctly because Python's ``%`` is a true modulo.

    Args:
        jd: Julian Date

    Returns:
        Phase in [0, 1)
    """
    age = (jd - constants.REFERENCE_NEW_MOON_JD) % constants.SYNODIC_MONTH_DAYS
    phase = age / constants.SYNODIC_MONTH_DAYS
    # A tiny negative difference can round up to exactly one period
    if phase >= 1.0:
        return 0.0
    return phase


def illumination(phase: float) -> float:
    """Illuminated fraction of the disc for a phase (0 new, 1 full)."""
    return (1.0 - math.cos(2.0 * math.pi * phase)) / 2.0


def phase_name(phase: float) -> str:
    """Conventional name of the phase."""
    phase = phase % 1.0
    if phase < 0.0339 or phase >= 0.9661:
        return "New Moon"
    if phase < 0.2161:
        return "Waxing Crescent"
    if phase < 0.2839:
        return "First Quarter"
    if phase < 0.4661:
        return "Waxing Gibbous"
    if phase < 0.5339:
        return "Full Moon"
    if phase < 0.7161:
        return "Waning Gibbous"
    if phase < 0.7839:
        return "Last Quarter"
    return "Waning Crescent"


# =============================================================================
# PositionCalculator
# =============================================================================


def simplified_position(
    jd: float,
    month: int,
    hour: float,
    latitude: float = constants.SITE_LATITUDE_DEG,
) -> SkyPosition:
    """Approximate Moon azimuth/altitude.

    The model treats the Moon as culminating due south at local midnight
    and sweeping 15 degrees of hour angle per hour:

        H = 15 * (hour mod 24)
        azimuth = (180 + H) mod 360
        altitude = culmination * cos(H)

    so it rises in the east around 18h, crosses the meridian at 0h and sets
    in the west around 6h. The culmination altitude is the celestial
    equator's height (90 - latitude) swung by the obliquity with the
    calendar month (highest in December, lowest in June, as the winter full
    moon rides high) plus a small wobble over the tropical month:

        culmination = (90 - latitude)
                      + 23.44 * cos(2pi * (month - 12) / 12)
                      + 5.14 * sin(2pi * (jd - ref) / 27.321661)

    Altitude is not clamped; negative values mean below the horizon.

    Args:
        jd: Julian Date
        month: Calendar month (1-12)
        hour: Local hour of day, fractional hours allowed
        latitude: Observer latitude in degrees

    Returns:
        SkyPosition with azimuth in [0, 360)
    """
    hour_angle = 15.0 * (hour % 24.0)

    azimuth = (180.0 + hour_angle) % 360.0

    seasonal = constants.OBLIQUITY_DEG * math.cos(2.0 * math.pi * (month - 12) / 12.0)
    monthly = constants.LUNAR_INCLINATION_DEG * math.sin(
        2.0 * math.pi * (jd - constants.REFERENCE_NEW_MOON_JD) / constants.TROPICAL_MONTH_DAYS
    )
    culmination = max(-90.0, min(90.0, (90.0 - abs(latitude)) + seasonal + monthly))

    altitude = culmination * math.cos(math.radians(hour_angle))

    return SkyPosition(azimuth_degrees=azimuth, altitude_degrees=altitude)


# =============================================================================
# ScreenProjector
# =============================================================================


def wrap_angle(degrees: float) -> float:
    """Wrap an angle into [-180, 180)."""
    return (degrees + 180.0) % 360.0 - 180.0


def project(
    pos: SkyPosition,
    view_azimuth: float,
    fov: float,
    canvas_w: float,
    canvas_h: float,
    radius: float = 0.0,
) -> ScreenPoint:
    """Project a sky position onto the canvas.

    The signed azimuth offset from the view direction maps linearly from
    [-fov/2, fov/2] onto [0, canvas_w]; altitude maps from [0, 90] onto
    [canvas_h, 0] and is clamped there, with y kept at least ``radius``
    from the top and bottom edges so the disc stays on screen.

    The point is visible when the Moon is above the horizon and its offset
    lies within half the field of view, boundary included.

    Raises:
        InvalidConfiguration: fov outside (0, 360], non-positive canvas
            dimensions or a negative radius
    """
    if not 0.0 < fov <= 360.0:
        raise InvalidConfiguration(f"Field of view must be in (0, 360], got {fov}")
    if canvas_w <= 0 or canvas_h <= 0:
        raise InvalidConfiguration(f"Canvas must be positive, got {canvas_w}x{canvas_h}")
    if radius < 0:
        raise InvalidConfiguration(f"Radius must not be negative, got {radius}")

    half_fov = fov / 2.0
    offset = wrap_angle(pos.azimuth_degrees - view_azimuth)

    x = (offset + half_fov) / fov * canvas_w

    altitude = min(
        max(pos.altitude_degrees, constants.SCREEN_ALTITUDE_MIN_DEG),
        constants.SCREEN_ALTITUDE_MAX_DEG,
    )
    span = constants.SCREEN_ALTITUDE_MAX_DEG - constants.SCREEN_ALTITUDE_MIN_DEG
    y = canvas_h - (altitude - constants.SCREEN_ALTITUDE_MIN_DEG) / span * canvas_h
    if canvas_h >= 2 * radius:
        y = min(max(y, radius), canvas_h - radius)

    visible = pos.altitude_degrees > 0 and abs(offset) <= half_fov

    return ScreenPoint(x=x, y=y, visible=visible)


# =============================================================================
# ShapeGenerator
# =============================================================================


def generate_mask(phase: float, diameter: int) -> MoonShapeMask:
    """Rasterize the lit part of the Moon's disc.

    Each row of the disc has half-width w. The terminator crosses that row
    at x = w * cos(2pi * q), with q the distance of the phase from new
    moon (q = min(phase, 1 - phase)). While waxing the pixels right of the
    terminator are lit; while waning the same shape is mirrored, so
    mask(p) and mask(1 - p) are horizontal mirror images.

    Args:
        phase: Phase fraction, 0/1 new, 0.5 full
        diameter: Mask width and height in pixels

    Returns:
        MoonShapeMask of diameter x diameter pixels

    Raises:
        InvalidConfiguration: If diameter is not positive
    """
    if diameter <= 0:
        raise InvalidConfiguration(f"Diameter must be positive, got {diameter}")

    phase = phase % 1.0
    q = min(phase, 1.0 - phase)
    terminator = math.cos(2.0 * math.pi * q)
    waxing = phase < 0.5
    radius = diameter / 2.0

    disc_rows = []
    lit_rows = []
    for j in range(diameter):
        py = j + 0.5 - radius
        half_width_sq = radius * radius - py * py
        half_width = math.sqrt(half_width_sq) if half_width_sq > 0 else 0.0
        disc_row = []
        lit_row = []
        for i in range(diameter):
            px = i + 0.5 - radius
            in_disc = px * px + py * py <= radius * radius
            side = px if waxing else -px
            disc_row.append(in_disc)
            lit_row.append(in_disc and side > half_width * terminator)
        disc_rows.append(tuple(disc_row))
        lit_rows.append(tuple(lit_row))

    return MoonShapeMask(size=diameter, disc=tuple(disc_rows), lit=tuple(lit_rows))


# =============================================================================
# Parameter Mapping
# =============================================================================


def linlin(
    in_min: float,
    in_max: float,
    out_min: float,
    out_max: float,
    value: float,
    clamp: bool = True,
) -> float:
    """Linearly map value from [in_min, in_max] to [out_min, out_max].

    Input is clamped to the input range unless ``clamp`` is False.
    """
    if in_max == in_min:
        return out_min
    if clamp:
        lo, hi = min(in_min, in_max), max(in_min, in_max)
        value = min(max(value, lo), hi)
    return out_min + (value - in_min) / (in_max - in_min) * (out_max - out_min)
