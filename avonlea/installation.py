"""
AVONLEA Installation
Ties the Moon calculator and weather resolver to the outside world.

The Installation is responsible for:
- Holding the currently displayed date/time and recomputing the Moon from it
- Mapping Moon phase and altitude onto synth parameters
- Routing the manual weather button and the refresh button
- Building frames for the rendering surface
- Running the redraw and weather-poll loops

Architecture:
    +-----------------+     +-----------------+
    | CalendarTime    |     | ConditionSource |
    +-------+---------+     +-------+---------+
            |                       |
    +-------v---------+     +-------v---------+
    | Moon calculator |     | WeatherResolver |
    +-------+---------+     +-------+---------+
            |                       |
    +-------v-----------------------v---------+
    |              Installation               |
    +-------+-----------------------+---------+
            |                       |
    +-------v---------+     +-------v---------+
    | ParameterSink   |     | RenderSurface   |
    +-----------------+     +-----------------+

Usage:
    from avonlea.config import load_config
    from avonlea.installation import Installation
    from services.weather import create_condition_source

    config = load_config()
    installation = Installation(config, create_condition_source(config.weather))
    await installation.start()
    ...
    installation.cycle_weather()   # weather button
    installation.refresh()         # refresh button
    ...
    await installation.shutdown()
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol

from avonlea import constants
from avonlea.config import AvonleaConfig
from avonlea.exceptions import AvonleaError
from avonlea.logging_config import get_logger, log_timing
from services.ephemeris.moon_calculator import (
    CalendarTime,
    MoonShapeMask,
    generate_mask,
    illumination,
    linlin,
    phase_fraction,
    phase_name,
    project,
    simplified_position,
    to_julian_date,
)
from services.weather.resolver import ConditionSource, WeatherResolver, WeatherState

logger = get_logger("installation")


__all__ = [
    "Installation",
    "MoonState",
    "Frame",
    "ParameterSink",
    "RenderSurface",
    "NullParameterSink",
    "NullSurface",
]


# =============================================================================
# Collaborator Protocols
# =============================================================================


class ParameterSink(Protocol):
    """Receives mapped control values (the synth engine)."""

    def set_param(self, name: str, value: float) -> None:
        ...

    def set_weather(self, state: WeatherState) -> None:
        ...


class RenderSurface(Protocol):
    """Paints frames (the screen)."""

    def draw(self, frame: "Frame") -> None:
        ...


class NullParameterSink:
    """Sink that only logs what it receives."""

    def set_param(self, name: str, value: float) -> None:
        logger.debug(f"param {name} = {value:.3f}")

    def set_weather(self, state: WeatherState) -> None:
        logger.debug(f"weather -> {state.value}")


class NullSurface:
    """Surface that discards frames."""

    def draw(self, frame: "Frame") -> None:
        pass


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class MoonState:
    """Everything derived from one CalendarTime."""
    time: CalendarTime
    julian_date: float
    phase: float
    azimuth: float
    altitude: float
    x: float
    y: float
    visible: bool
    shape: MoonShapeMask

    @property
    def phase_name(self) -> str:
        return phase_name(self.phase)

    @property
    def illumination(self) -> float:
        """Lit fraction of the disc."""
        return illumination(self.phase)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": str(self.time),
            "julian_date": round(self.julian_date, 5),
            "phase": round(self.phase, 4),
            "phase_name": self.phase_name,
            "illumination": round(self.illumination, 4),
            "azimuth": round(self.azimuth, 2),
            "altitude": round(self.altitude, 2),
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "visible": self.visible,
        }


@dataclass(frozen=True)
class Frame:
    """One redraw's worth of data for the rendering surface."""
    moon: MoonState
    weather: WeatherState
    overlay_text: Optional[str] = None


class Installation:
    """
    The running installation.

    Owns the displayed CalendarTime, the WeatherResolver and the background
    loops. Derived Moon data is recomputed from scratch on every change.
    """

    def __init__(
        self,
        config: AvonleaConfig,
        source: ConditionSource,
        sink: Optional[ParameterSink] = None,
        surface: Optional[RenderSurface] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the installation.

        Args:
            config: Installation configuration
            source: Automatic weather condition source
            sink: Receiver of mapped parameters (defaults to a logging sink)
            surface: Receiver of frames (defaults to a no-op surface)
            clock: Monotonic seconds function used for overlay timing
        """
        self.config = config
        self.sink: ParameterSink = sink or NullParameterSink()
        self.surface: RenderSurface = surface or NullSurface()
        self._clock = clock or time.monotonic

        self.weather = WeatherResolver(
            source,
            initial_condition=WeatherState.from_name(config.weather.initial_condition),
        )

        moon = config.moon
        self._time = CalendarTime(
            year=moon.year,
            month=moon.month,
            day=moon.day,
            hour=moon.hour,
            minute=moon.minute,
            second=0,
            utc_offset_hours=config.site.utc_offset_hours,
        )
        self._moon: Optional[MoonState] = None

        self._overlay_text: Optional[str] = None
        self._overlay_shown_at = 0.0

        self._running = False
        self._redraw_task: Optional[asyncio.Task] = None
        self._weather_task: Optional[asyncio.Task] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_time(self) -> CalendarTime:
        return self._time

    @property
    def moon(self) -> MoonState:
        """Current Moon state, computed on first access."""
        if self._moon is None:
            return self.update_moon_data()
        return self._moon

    # =========================================================================
    # Moon
    # =========================================================================

    def update_moon_data(self) -> MoonState:
        """
        Recompute the Moon from the current time and push mapped parameters.

        Returns:
            The new MoonState
        """
        with log_timing(logger, "moon_update"):
            state = self._compute_moon(self._time)
        self._moon = state

        mapping = self.config.mapping
        depth = linlin(0.0, 1.0, mapping.depth_min, mapping.depth_max, state.phase)
        glint = linlin(
            0.0, mapping.altitude_max, mapping.glint_min, mapping.glint_max,
            max(0.0, state.altitude),
        )
        self.sink.set_param("depth", depth)
        self.sink.set_param("glint", glint)

        logger.info(
            f"Moon at {state.time}: phase {state.phase:.2f} ({state.phase_name}, "
            f"{state.illumination:.0%} lit), "
            f"az {state.azimuth:.2f}, alt {state.altitude:.2f}, "
            f"screen ({state.x:.1f}, {state.y:.1f}) {'visible' if state.visible else 'hidden'}"
        )
        logger.debug(f"Julian Date {state.julian_date:.5f}; depth {depth:.2f}, glint {glint:.2f}")
        return state

    def _compute_moon(self, when: CalendarTime) -> MoonState:
        site = self.config.site
        view = self.config.view
        diameter = self.config.moon.diameter

        jd = to_julian_date(when)
        phase = phase_fraction(jd)
        position = simplified_position(jd, when.month, when.decimal_hour, latitude=site.latitude)
        point = project(
            position,
            view.view_azimuth,
            view.fov,
            view.canvas_width,
            view.canvas_height,
            diameter / 2.0,
        )
        return MoonState(
            time=when,
            julian_date=jd,
            phase=phase,
            azimuth=position.azimuth_degrees,
            altitude=position.altitude_degrees,
            x=point.x,
            y=point.y,
            visible=point.visible,
            shape=generate_mask(phase, diameter),
        )

    def set_time(self, **fields: int) -> MoonState:
        """
        Change one or more date/time fields and recompute once.

        Example:
            installation.set_time(hour=3, minute=30)
        """
        self._time = self._time.replace(**fields)
        return self.update_moon_data()

    def sync_to_clock(self, now: Optional[datetime] = None) -> MoonState:
        """
        Jump to the current wall-clock time at the site's UTC offset.

        Args:
            now: Aware datetime to use instead of the system clock
        """
        offset = self.config.site.utc_offset_hours
        if now is None:
            self._time = CalendarTime.now(offset)
        else:
            self._time = CalendarTime.from_datetime(now, offset)
        logger.info(f"Clock synced: {self._time}")
        return self.update_moon_data()

    # =========================================================================
    # Weather
    # =========================================================================

    def push_weather(self) -> WeatherState:
        """Send the effective weather state to the sink."""
        state = self.weather.effective_state()
        self.sink.set_weather(state)
        return state

    def cycle_weather(self) -> WeatherState:
        """
        Manual weather button: advance the mode, push it, show the label.

        Returns:
            The new nominal mode
        """
        mode = self.weather.cycle_manual()
        self.push_weather()
        self._show_overlay(self.weather.display_state())
        return mode

    def refresh(self, now: Optional[datetime] = None) -> MoonState:
        """
        Refresh button: resync the clock and force a weather poll.

        Args:
            now: Aware datetime to use instead of the system clock
        """
        state = self.sync_to_clock(now)
        self.weather.force_update()
        self.push_weather()
        logger.info("Time and weather updated")
        return state

    def poll_weather(self) -> bool:
        """
        Periodic weather poll; pushes to the sink only on change.

        Returns:
            True if the effective state changed
        """
        changed = self.weather.update()
        if changed:
            self.push_weather()
        return changed

    # =========================================================================
    # Rendering
    # =========================================================================

    def _show_overlay(self, text: str) -> None:
        self._overlay_text = text
        self._overlay_shown_at = self._clock()

    def build_frame(self) -> Frame:
        """Current frame, expiring the overlay once its duration has passed."""
        overlay = self._overlay_text
        if overlay is not None:
            if self._clock() - self._overlay_shown_at > self.config.display.overlay_duration:
                self._overlay_text = None
                overlay = None
        return Frame(
            moon=self.moon,
            weather=self.weather.effective_state(),
            overlay_text=overlay,
        )

    def render(self) -> Frame:
        """Build a frame and hand it to the surface."""
        frame = self.build_frame()
        self.surface.draw(frame)
        return frame

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> bool:
        """
        Initialize weather, compute the Moon and start background loops.

        Returns:
            True once running
        """
        if self._running:
            logger.warning("Installation already running")
            return True

        logger.info(f"Starting {constants.AVONLEA_NAME} at {self.config.site.name}")

        if self.config.moon.use_current_time:
            self.sync_to_clock()
        else:
            self.update_moon_data()
        self.weather.initialize()

        self._running = True
        self._redraw_task = asyncio.create_task(self._redraw_loop())
        self._weather_task = asyncio.create_task(self._weather_loop())
        logger.info("Installation started")
        return True

    async def shutdown(self) -> None:
        """Cancel background loops."""
        if not self._running:
            return

        logger.info("Shutting down installation...")
        self._running = False
        for task in (self._redraw_task, self._weather_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._redraw_task = None
        self._weather_task = None
        logger.info("Installation shutdown complete")

    async def _redraw_loop(self):
        """Redraw at the configured rate."""
        interval = 1.0 / self.config.display.redraw_hz
        while self._running:
            try:
                self.render()
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Redraw error: {e}")
                await asyncio.sleep(interval)

    async def _weather_loop(self):
        """Push the first weather once the engine settles, then poll."""
        try:
            await asyncio.sleep(constants.ENGINE_SETTLE_SEC)
            self.push_weather()
            while self._running:
                await asyncio.sleep(self.config.weather.poll_interval)
                try:
                    self.poll_weather()
                except AvonleaError as e:
                    logger.error(f"Weather poll error: {e}")
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # Status
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the installation state."""
        last_poll = self.weather.last_poll_time
        return {
            "running": self._running,
            "site": self.config.site.name,
            "moon": self.moon.to_dict(),
            "weather": {
                "mode": self.weather.mode.value,
                "effective": self.weather.effective_state().value,
                "auto_condition": self.weather.auto_condition.value,
                "last_poll": last_poll.isoformat() if last_poll else None,
                "last_error": self.weather.last_error,
            },
        }
