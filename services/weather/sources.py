"""
AVONLEA Weather Condition Sources

Sources feeding WeatherResolver.update(). Each one answers a single
question: which of Clear, Cloudy, Rainy or Snowy is it right now?

- ConditionThresholds: classify raw readings into a concrete state
- FixedConditionSource: always the same state
- SimulatedConditionSource: scenario presets with realistic variation
"""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from avonlea.exceptions import ConfigurationError
from avonlea.logging_config import get_logger
from services.weather.resolver import WeatherState

if TYPE_CHECKING:
    from avonlea.config import WeatherConfig

logger = get_logger("weather.sources")

__all__ = [
    "WeatherScenario",
    "WeatherReadings",
    "ConditionThresholds",
    "FixedConditionSource",
    "SimulatedConditionSource",
    "create_condition_source",
]


class WeatherScenario(Enum):
    """Pre-defined weather scenarios."""
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    RAIN = "rain"
    SNOW = "snow"
    STORM = "storm"


@dataclass(frozen=True)
class WeatherReadings:
    """Raw readings a condition is classified from."""
    temperature_c: float = 15.0
    cloud_cover_percent: float = 0.0
    precipitation_mmh: float = 0.0


@dataclass
class ConditionThresholds:
    """
    Thresholds for collapsing readings into a concrete weather state.

    Precipitation wins over cloud cover; temperature decides rain vs snow.
    """
    precipitation_mmh: float = 0.1     # Above this it is raining or snowing
    snow_temperature_c: float = 1.0    # At or below this precipitation is snow
    cloudy_percent: float = 60.0       # Cloud cover at or above this is cloudy

    def classify(self, readings: WeatherReadings) -> WeatherState:
        """Classify readings into Clear, Cloudy, Rainy or Snowy."""
        if readings.precipitation_mmh > self.precipitation_mmh:
            if readings.temperature_c <= self.snow_temperature_c:
                return WeatherState.SNOWY
            return WeatherState.RAINY
        if readings.cloud_cover_percent >= self.cloudy_percent:
            return WeatherState.CLOUDY
        return WeatherState.CLEAR


class FixedConditionSource:
    """Reports the same condition on every poll."""

    def __init__(self, state: WeatherState = WeatherState.CLEAR):
        if not state.is_concrete:
            raise ValueError("FixedConditionSource needs a concrete weather state")
        self.state = state

    def get_condition(self) -> WeatherState:
        return self.state


class SimulatedConditionSource:
    """
    Simulated weather for running the installation without a live feed.

    Features:
    - Pre-defined scenarios
    - Gaussian variation of readings on every poll
    - Classification through ConditionThresholds
    """

    SCENARIO_PRESETS: Dict[WeatherScenario, WeatherReadings] = {
        WeatherScenario.CLEAR: WeatherReadings(
            temperature_c=14.0, cloud_cover_percent=5.0, precipitation_mmh=0.0,
        ),
        WeatherScenario.PARTLY_CLOUDY: WeatherReadings(
            temperature_c=13.0, cloud_cover_percent=40.0, precipitation_mmh=0.0,
        ),
        WeatherScenario.CLOUDY: WeatherReadings(
            temperature_c=11.0, cloud_cover_percent=90.0, precipitation_mmh=0.0,
        ),
        WeatherScenario.RAIN: WeatherReadings(
            temperature_c=9.0, cloud_cover_percent=100.0, precipitation_mmh=5.0,
        ),
        WeatherScenario.SNOW: WeatherReadings(
            temperature_c=-6.0, cloud_cover_percent=100.0, precipitation_mmh=2.0,
        ),
        WeatherScenario.STORM: WeatherReadings(
            temperature_c=7.0, cloud_cover_percent=100.0, precipitation_mmh=25.0,
        ),
    }

    def __init__(
        self,
        scenario: WeatherScenario = WeatherScenario.CLEAR,
        noise_amplitude: float = 0.0,
        thresholds: Optional[ConditionThresholds] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the simulator.

        Args:
            scenario: Starting scenario
            noise_amplitude: Fraction of a reading used as Gaussian sigma
                (0 disables variation)
            thresholds: Classification thresholds
            rng: Random generator, injectable for reproducible runs
        """
        self.noise_amplitude = noise_amplitude
        self.thresholds = thresholds or ConditionThresholds()
        self._rng = rng or random.Random()
        self._scenario = scenario
        self._readings = self.SCENARIO_PRESETS[scenario]

    @property
    def scenario(self) -> WeatherScenario:
        return self._scenario

    @property
    def readings(self) -> WeatherReadings:
        """Readings from the most recent poll."""
        return self._readings

    def set_scenario(self, scenario: WeatherScenario | str) -> None:
        """Switch to another preset scenario."""
        if isinstance(scenario, str):
            scenario = WeatherScenario(scenario)
        self._scenario = scenario
        self._readings = self.SCENARIO_PRESETS[scenario]
        logger.info(f"Simulated weather scenario: {scenario.value}")

    def _sample(self) -> WeatherReadings:
        """Preset readings with variation added."""
        preset = self.SCENARIO_PRESETS[self._scenario]
        if self.noise_amplitude <= 0:
            return preset

        amp = self.noise_amplitude
        return replace(
            preset,
            temperature_c=preset.temperature_c + self._rng.gauss(0, amp * 2),
            cloud_cover_percent=max(
                0.0, min(100.0, preset.cloud_cover_percent + self._rng.gauss(0, amp * 10))
            ),
            precipitation_mmh=max(
                0.0, preset.precipitation_mmh + self._rng.gauss(0, amp * preset.precipitation_mmh)
            ),
        )

    def get_condition(self) -> WeatherState:
        self._readings = self._sample()
        return self.thresholds.classify(self._readings)


def create_condition_source(
    weather_config: "WeatherConfig",
) -> FixedConditionSource | SimulatedConditionSource:
    """
    Build the condition source described by a WeatherConfig.

    Args:
        weather_config: Weather section of the installation config

    Raises:
        ConfigurationError: Unknown source type or scenario
    """
    if weather_config.source == "fixed":
        return FixedConditionSource(WeatherState.from_name(weather_config.fixed_state))

    if weather_config.source == "simulator":
        try:
            scenario = WeatherScenario(weather_config.scenario)
        except ValueError as e:
            known = ", ".join(s.value for s in WeatherScenario)
            raise ConfigurationError(
                f"Unknown weather scenario '{weather_config.scenario}' (known: {known})"
            ) from e
        return SimulatedConditionSource(
            scenario=scenario,
            noise_amplitude=0.1 if weather_config.noise else 0.0,
        )

    raise ConfigurationError(f"Unknown weather source: {weather_config.source}")
