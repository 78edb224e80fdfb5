"""
AVONLEA Test Fixtures Package.

Provides mock collaborators so the installation can be tested without a
synth engine, screen or live weather feed.

Available fixtures:
- MockConditionSource: scripted weather source with outage injection
- RecordingSink: records mapped parameters and weather pushes
- RecordingSurface: records drawn frames

Usage:
    from tests.fixtures import MockConditionSource, RecordingSink
"""

from tests.fixtures.mock_weather import MockConditionSource, cycle_of
from tests.fixtures.mock_engine import RecordingSink, RecordingSurface

__all__ = [
    "MockConditionSource",
    "cycle_of",
    "RecordingSink",
    "RecordingSurface",
]
