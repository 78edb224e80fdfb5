"""
AVONLEA Installation Tests

Tests for the installation: Moon recomputation and parameter mapping, the
weather and refresh buttons, frame building and the background loops.

Run:
    pytest tests/unit/test_installation.py -v
"""

import asyncio
from datetime import datetime, timezone

import pytest

from avonlea.config import AvonleaConfig
from avonlea.installation import Frame, Installation, MoonState
from services.ephemeris.moon_calculator import illumination
from services.weather.resolver import WeatherState
from tests.fixtures import MockConditionSource, RecordingSink, RecordingSurface


START_JD = 2460451.5 + 1.0 / 24.0  # 2024-05-20 22:00 at UTC-3


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config():
    return AvonleaConfig()


@pytest.fixture
def source():
    return MockConditionSource(WeatherState.CLOUDY)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def installation(config, source, sink, surface, clock):
    return Installation(config, source, sink=sink, surface=surface, clock=clock)


# =============================================================================
# Moon
# =============================================================================


class TestMoonUpdate:
    """Tests for update_moon_data() and the time setters."""

    def test_configured_start_time(self, installation):
        state = installation.update_moon_data()
        assert isinstance(state, MoonState)
        assert state.julian_date == pytest.approx(START_JD, abs=1e-6)
        assert state.phase_name == "Waxing Gibbous"

    def test_start_moon_on_screen(self, installation):
        """22:00 puts the Moon 30 degrees east of south."""
        state = installation.update_moon_data()
        assert state.azimuth == pytest.approx(150.0)
        assert state.altitude > 0
        assert state.visible is True
        assert state.x == pytest.approx(32.0)

    def test_pushes_mapped_params(self, installation, sink):
        state = installation.update_moon_data()
        assert sink.params["depth"] == pytest.approx(0.3 + 0.5 * state.phase)
        assert sink.params["glint"] == pytest.approx(0.2 + 0.6 * state.altitude / 90.0)

    def test_glint_floor_below_horizon(self, installation, sink):
        state = installation.set_time(hour=10)
        assert state.altitude < 0
        assert sink.params["glint"] == pytest.approx(0.2)

    def test_mapping_ranges_from_config(self, source, sink):
        config = AvonleaConfig(mapping={"depth_min": 0.0, "depth_max": 1.0})
        state = Installation(config, source, sink=sink).update_moon_data()
        assert sink.params["depth"] == pytest.approx(state.phase)

    def test_set_time_recomputes_once(self, installation, sink):
        installation.update_moon_data()
        sink.history.clear()
        state = installation.set_time(day=21, hour=3, minute=30)
        assert installation.current_time.day == 21
        assert state.time.minute == 30
        assert [name for name, _ in sink.history] == ["depth", "glint"]

    def test_moon_property_lazy(self, installation, sink):
        assert sink.params == {}
        state = installation.moon
        assert installation.moon is state
        assert "depth" in sink.params

    def test_shape_uses_configured_diameter(self, source):
        config = AvonleaConfig(moon={"diameter": 10})
        state = Installation(config, source).update_moon_data()
        assert state.shape.size == 10

    def test_sync_to_clock_with_aware_datetime(self, installation):
        state = installation.sync_to_clock(datetime(2024, 5, 21, 1, 0, tzinfo=timezone.utc))
        assert (state.time.day, state.time.hour) == (20, 22)
        assert state.julian_date == pytest.approx(START_JD, abs=1e-6)

    def test_sync_to_clock_uses_system_clock(self, installation):
        before = datetime.now(timezone.utc)
        state = installation.sync_to_clock()
        assert abs(state.time.year - before.year) <= 1

    def test_to_dict(self, installation):
        data = installation.update_moon_data().to_dict()
        assert data["phase_name"] == "Waxing Gibbous"
        assert data["visible"] is True
        assert set(data) >= {"julian_date", "phase", "azimuth", "altitude", "x", "y"}

    def test_illumination_near_full(self, installation):
        """Five days before full moon the disc is mostly lit."""
        state = installation.update_moon_data()
        assert state.illumination == pytest.approx(illumination(state.phase))
        assert 0.9 < state.illumination < 1.0
        assert state.to_dict()["illumination"] == round(state.illumination, 4)


# =============================================================================
# Buttons
# =============================================================================


class TestWeatherButton:
    """Tests for cycle_weather()."""

    def test_cycles_and_pushes(self, installation, sink):
        installation.weather.initialize()
        assert installation.cycle_weather() is WeatherState.CLEAR
        assert sink.weather_pushes == [WeatherState.CLEAR]

    def test_back_to_auto_pushes_polled(self, installation, sink):
        installation.weather.initialize()
        for _ in range(5):
            installation.cycle_weather()
        assert sink.weather_pushes[-1] is WeatherState.CLOUDY

    def test_overlay_shown_then_expires(self, installation, clock):
        installation.weather.initialize()
        installation.cycle_weather()

        clock.advance(0.5)
        assert installation.build_frame().overlay_text == "Weather: Clear"

        clock.advance(0.6)
        assert installation.build_frame().overlay_text is None
        clock.advance(-1.0)
        assert installation.build_frame().overlay_text is None

    def test_overlay_restarts_on_each_press(self, installation, clock):
        installation.weather.initialize()
        installation.cycle_weather()
        clock.advance(0.9)
        installation.cycle_weather()
        clock.advance(0.9)
        assert installation.build_frame().overlay_text == "Weather: Cloudy"


class TestRefreshButton:
    """Tests for refresh()."""

    def test_resyncs_and_forces_poll(self, installation, source, sink):
        installation.weather.initialize()
        source.set_condition(WeatherState.SNOWY)
        state = installation.refresh(datetime(2024, 5, 21, 1, 0, tzinfo=timezone.utc))

        assert state.julian_date == pytest.approx(START_JD, abs=1e-6)
        assert installation.weather.auto_condition is WeatherState.SNOWY
        assert sink.weather_pushes[-1] is WeatherState.SNOWY

    def test_refresh_keeps_manual_override(self, installation, source, sink):
        installation.weather.initialize()
        installation.cycle_weather()  # Clear
        source.set_condition(WeatherState.RAINY)
        installation.refresh(datetime(2024, 12, 1, tzinfo=timezone.utc))
        assert sink.weather_pushes[-1] is WeatherState.CLEAR

    def test_refresh_survives_outage(self, installation, source, sink):
        installation.weather.initialize()
        source.set_outage(True)
        installation.refresh(datetime(2024, 5, 21, 1, 0, tzinfo=timezone.utc))
        assert sink.weather_pushes[-1] is WeatherState.CLOUDY


class TestPollWeather:
    """Tests for poll_weather()."""

    def test_push_only_on_change(self, installation, source, sink):
        installation.weather.initialize()
        assert installation.poll_weather() is False
        assert sink.weather_pushes == []

        source.set_condition(WeatherState.RAINY)
        assert installation.poll_weather() is True
        assert sink.weather_pushes == [WeatherState.RAINY]


# =============================================================================
# Rendering and Status
# =============================================================================


class TestRendering:
    """Tests for build_frame() and render()."""

    def test_render_draws_frame(self, installation, surface):
        installation.weather.initialize()
        frame = installation.render()
        assert isinstance(frame, Frame)
        assert surface.frames == [frame]
        assert frame.weather is WeatherState.CLOUDY
        assert frame.overlay_text is None

    def test_frame_weather_is_effective_state(self, installation):
        installation.weather.initialize()
        installation.cycle_weather()
        installation.cycle_weather()
        installation.cycle_weather()
        assert installation.build_frame().weather is WeatherState.RAINY

    def test_status(self, installation):
        installation.weather.initialize()
        status = installation.get_status()
        assert status["running"] is False
        assert status["weather"]["mode"] == "Auto"
        assert status["weather"]["effective"] == "Cloudy"
        assert status["weather"]["last_poll"] is not None
        assert status["moon"]["phase_name"] == "Waxing Gibbous"


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for start()/shutdown() and the background loops."""

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, installation, sink, source):
        assert await installation.start() is True
        assert installation.is_running
        assert source.poll_count == 1
        assert "depth" in sink.params

        await installation.shutdown()
        assert not installation.is_running

    @pytest.mark.asyncio
    async def test_start_twice(self, installation, source):
        await installation.start()
        assert await installation.start() is True
        assert source.poll_count == 1
        await installation.shutdown()

    @pytest.mark.asyncio
    async def test_redraw_loop_draws(self, installation, surface):
        await installation.start()
        await asyncio.sleep(0.2)
        await installation.shutdown()
        assert len(surface.frames) >= 2

    @pytest.mark.asyncio
    async def test_initial_weather_pushed_after_settle(self, installation, sink):
        await installation.start()
        assert sink.weather_pushes == []
        await asyncio.sleep(0.7)
        await installation.shutdown()
        assert sink.weather_pushes == [WeatherState.CLOUDY]

    @pytest.mark.asyncio
    async def test_start_from_wall_clock(self, source):
        config = AvonleaConfig(moon={"use_current_time": True})
        installation = Installation(config, source)
        await installation.start()
        await installation.shutdown()
        assert installation.current_time.year >= 2024

    @pytest.mark.asyncio
    async def test_shutdown_when_not_running(self, installation):
        await installation.shutdown()
        assert not installation.is_running
