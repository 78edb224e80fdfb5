"""
AVONLEA Weather Resolver

Layers a manually cycled override on top of an automatically polled weather
condition and exposes the resolved ("effective") state used for sound
mapping.

Modes cycle Auto -> Clear -> Cloudy -> Rainy -> Snowy -> Auto. In Auto mode
the effective state is the last polled condition; in any other mode it is
the override. The effective state is never Auto.

Mutations (initialize, cycle_manual, update, force_update) are serialized by
a lock. Each one polls before writing anything and then stores every field
once, so lock-free readers never see a half-applied change. A condition source outage is logged and leaves the
last known condition in place.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

from avonlea.exceptions import ConditionSourceError
from avonlea.logging_config import get_logger, log_exception

logger = get_logger("weather")

__all__ = [
    "WeatherState",
    "CONCRETE_STATES",
    "MODE_CYCLE",
    "ConditionSource",
    "WeatherResolver",
]


class WeatherState(Enum):
    """Weather mode selector and concrete conditions."""
    AUTO = "Auto"
    CLEAR = "Clear"
    CLOUDY = "Cloudy"
    RAINY = "Rainy"
    SNOWY = "Snowy"

    @property
    def is_concrete(self) -> bool:
        return self is not WeatherState.AUTO

    @classmethod
    def from_name(cls, name: str) -> "WeatherState":
        """Look up a state by case-insensitive name ("rainy", "Rainy")."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown weather state: {name!r}") from None


CONCRETE_STATES = (
    WeatherState.CLEAR,
    WeatherState.CLOUDY,
    WeatherState.RAINY,
    WeatherState.SNOWY,
)

MODE_CYCLE = (WeatherState.AUTO,) + CONCRETE_STATES


class ConditionSource(Protocol):
    """Anything that can report the current concrete weather condition."""

    def get_condition(self) -> WeatherState:
        ...


class WeatherResolver:
    """
    Manual/automatic weather state machine.

    Usage:
        resolver = WeatherResolver(source)
        resolver.initialize()
        resolver.effective_state()   # WeatherState.CLEAR, say
        resolver.cycle_manual()      # WeatherState.CLEAR (manual override)
        resolver.update()            # periodic poll, override untouched
    """

    def __init__(
        self,
        source: ConditionSource,
        initial_condition: WeatherState = WeatherState.CLEAR,
    ):
        """
        Initialize the resolver.

        Args:
            source: Condition source polled by update()/force_update()
            initial_condition: Condition assumed until the first good poll
        """
        if not initial_condition.is_concrete:
            raise ValueError("initial_condition must be a concrete weather state")

        self.source = source
        self._initial_condition = initial_condition
        self._lock = threading.Lock()

        self._manual_override: Optional[WeatherState] = None
        self._auto_condition: WeatherState = initial_condition
        self._last_poll_time: Optional[datetime] = None
        self._last_error: Optional[str] = None

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def manual_override(self) -> Optional[WeatherState]:
        """Active override, or None in Auto mode."""
        return self._manual_override

    @property
    def auto_condition(self) -> WeatherState:
        """Most recent successfully polled condition."""
        return self._auto_condition

    @property
    def mode(self) -> WeatherState:
        """Nominal mode: AUTO or the override."""
        return self._manual_override or WeatherState.AUTO

    @property
    def last_poll_time(self) -> Optional[datetime]:
        """Time of the last successful poll."""
        return self._last_poll_time

    @property
    def last_error(self) -> Optional[str]:
        """Message of the last failed poll, cleared by a successful one."""
        return self._last_error

    def effective_state(self) -> WeatherState:
        """Resolved concrete state fed to sound mapping. Never AUTO."""
        override = self._manual_override
        if override is not None and override.is_concrete:
            return override
        return self._auto_condition

    def display_state(self) -> str:
        """Label of the nominal mode for on-screen feedback."""
        mode = self.mode
        if mode is WeatherState.AUTO:
            return "Weather: Auto"
        return f"Weather: {mode.value}"

    # =========================================================================
    # Mutators
    # =========================================================================

    def initialize(self) -> WeatherState:
        """
        Reset to Auto mode and seed the automatic condition.

        Returns:
            Effective state after the initial poll
        """
        with self._lock:
            condition = self._fetch_locked()
            self._manual_override = None
            if condition is not None:
                self._store_locked(condition)
        logger.info(f"Weather resolver initialized: {self.effective_state().value}")
        return self.effective_state()

    def cycle_manual(self) -> WeatherState:
        """
        Advance the manual mode: Auto -> Clear -> Cloudy -> Rainy -> Snowy -> Auto.

        Returns:
            The new nominal mode
        """
        with self._lock:
            current = self._manual_override or WeatherState.AUTO
            index = MODE_CYCLE.index(current)
            new_mode = MODE_CYCLE[(index + 1) % len(MODE_CYCLE)]
            self._manual_override = None if new_mode is WeatherState.AUTO else new_mode
        logger.info(f"Weather mode: {new_mode.value}")
        return new_mode

    def update(self) -> bool:
        """
        Re-poll the condition source (periodic cadence).

        Returns:
            True if the effective state changed
        """
        with self._lock:
            before = self.effective_state()
            condition = self._fetch_locked()
            if condition is not None:
                self._store_locked(condition)
            after = self.effective_state()
        if before is not after:
            logger.info(f"Weather changed: {before.value} -> {after.value}")
        return before is not after

    def force_update(self) -> bool:
        """
        Re-poll on demand, outside the periodic cadence.

        Returns:
            True if the effective state changed
        """
        logger.debug("Forced weather update")
        return self.update()

    def _fetch_locked(self) -> Optional[WeatherState]:
        """Poll the source. Caller holds the lock.

        Returns:
            The polled condition, or None if the poll failed
        """
        try:
            condition = self.source.get_condition()
            if not isinstance(condition, WeatherState) or not condition.is_concrete:
                raise ConditionSourceError(f"Unusable condition from source: {condition!r}")
        except Exception as e:
            self._last_error = str(e) or type(e).__name__
            log_exception(
                logger,
                f"Weather poll failed, keeping {self._auto_condition.value}",
                e,
                level=logging.WARNING,
                include_traceback=False,
            )
            return None
        return condition

    def _store_locked(self, condition: WeatherState) -> None:
        """Record a good poll. Caller holds the lock."""
        self._auto_condition = condition
        self._last_poll_time = datetime.now()
        self._last_error = None
        logger.debug(f"Polled weather condition: {condition.value}")
