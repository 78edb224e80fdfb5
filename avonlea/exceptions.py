"""
AVONLEA Exception Hierarchy

All errors raised by the installation derive from AvonleaError so callers can
catch the whole family at once.

    AvonleaError
    +-- ConfigurationError
    |   +-- InvalidConfiguration
    +-- ConditionSourceError
"""

__all__ = [
    "AvonleaError",
    "ConfigurationError",
    "InvalidConfiguration",
    "ConditionSourceError",
]


class AvonleaError(Exception):
    """Base class for all AVONLEA errors."""


class ConfigurationError(AvonleaError):
    """Configuration file could not be found, parsed or validated."""


class InvalidConfiguration(ConfigurationError, ValueError):
    """Degenerate geometry passed to a calculation (fov, canvas, diameter)."""


class ConditionSourceError(AvonleaError):
    """Weather condition source unreachable or returned an unusable reading."""
