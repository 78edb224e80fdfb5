"""
AVONLEA Shared Constants

Centralizes the numbers the installation is tuned around. Site and view
defaults describe the Green Gables area on Prince Edward Island, looking
south over the Lake of Shining Waters.

Constants are organized by category:
    - Version and identity
    - Site and view
    - Astronomy
    - Sound parameter mapping
    - Timing
"""

from typing import Final

# =============================================================================
# Version and Identity
# =============================================================================

AVONLEA_VERSION: Final[str] = "0.1.0"
AVONLEA_NAME: Final[str] = "AVONLEA"

# =============================================================================
# Site and View
# =============================================================================

SITE_NAME: Final[str] = "Green Gables"
SITE_LATITUDE_DEG: Final[float] = 46.49300
SITE_LONGITUDE_DEG: Final[float] = -63.38729  # West is negative
SITE_ELEVATION_M: Final[float] = 4.0
SITE_UTC_OFFSET_HOURS: Final[float] = -3.0  # ADT, fixed; no DST handling

VIEW_AZIMUTH_DEG: Final[float] = 180.0  # Looking south
FIELD_OF_VIEW_DEG: Final[float] = 120.0

CANVAS_WIDTH_PX: Final[int] = 128
CANVAS_HEIGHT_PX: Final[int] = 64
MOON_DIAMETER_PX: Final[int] = 6

# =============================================================================
# Astronomy
# =============================================================================

# New moon of 2000-01-06 18:14 UTC
REFERENCE_NEW_MOON_JD: Final[float] = 2451550.1
SYNODIC_MONTH_DAYS: Final[float] = 29.530588853
TROPICAL_MONTH_DAYS: Final[float] = 27.321661

OBLIQUITY_DEG: Final[float] = 23.44  # Seasonal swing of culmination altitude
LUNAR_INCLINATION_DEG: Final[float] = 5.14  # Monthly wobble on top of it

# Altitude range mapped onto the canvas height
SCREEN_ALTITUDE_MIN_DEG: Final[float] = 0.0
SCREEN_ALTITUDE_MAX_DEG: Final[float] = 90.0

# =============================================================================
# Sound Parameter Mapping
# =============================================================================

DEPTH_MIN: Final[float] = 0.3
DEPTH_MAX: Final[float] = 0.8
GLINT_MIN: Final[float] = 0.2
GLINT_MAX: Final[float] = 0.8

# =============================================================================
# Timing
# =============================================================================

REDRAW_HZ: Final[float] = 15.0
WEATHER_POLL_INTERVAL_SEC: Final[float] = 300.0
OVERLAY_DURATION_SEC: Final[float] = 1.0
ENGINE_SETTLE_SEC: Final[float] = 0.5  # Delay before first weather push
