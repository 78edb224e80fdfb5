"""
AVONLEA

Ambient installation sonifying the Moon over Green Gables: its phase and
sky position, shaded by the weather.
"""

from avonlea.constants import AVONLEA_VERSION

__version__ = AVONLEA_VERSION
