"""
AVONLEA Weather Service

Resolves the weather condition driving the installation's sound:
- WeatherResolver: manual override layered over automatic polling
- Condition sources: fixed and simulated
"""

from .resolver import (
    WeatherState,
    WeatherResolver,
    ConditionSource,
    CONCRETE_STATES,
    MODE_CYCLE,
)
from .sources import (
    WeatherScenario,
    WeatherReadings,
    ConditionThresholds,
    FixedConditionSource,
    SimulatedConditionSource,
    create_condition_source,
)

__all__ = [
    # Resolver
    "WeatherState",
    "WeatherResolver",
    "ConditionSource",
    "CONCRETE_STATES",
    "MODE_CYCLE",
    # Sources
    "WeatherScenario",
    "WeatherReadings",
    "ConditionThresholds",
    "FixedConditionSource",
    "SimulatedConditionSource",
    "create_condition_source",
]
