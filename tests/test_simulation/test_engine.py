"""Tests for simulation engine."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta

import pytest

from smartgarden_sim.controllers.pest_control import PestControlSystem
from smartgarden_sim.core.errors import InvalidCommandError
from smartgarden_sim.core.events import EventBus, EventType
from smartgarden_sim.core.state import Position, Weather
from smartgarden_sim.model.catalog import PlantType
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.simulation.engine import (
    SimulationConfig,
    SimulationEngine,
    SimulationStats,
    SimulationStatus,
)
from smartgarden_sim.simulation.scenarios import create_single_plant_scenario
from smartgarden_sim.simulation.weather import ForcedWeatherStrategy

ORIGIN = Position(0, 0)


@pytest.fixture
def engine(planted_garden: Garden, fast_config: SimulationConfig) -> SimulationEngine:
    """Headless engine over the default four plants."""
    return SimulationEngine(planted_garden, config=fast_config, seed=42)


@pytest.fixture
def quiet_engine(planted_garden: Garden, fast_config: SimulationConfig) -> SimulationEngine:
    """Headless engine without random pests or weather changes."""
    bus = EventBus()
    engine = SimulationEngine(
        planted_garden,
        config=fast_config,
        pest_control=PestControlSystem(
            "pest_control", planted_garden, auto_spawn=False, event_bus=bus
        ),
        seed=42,
        event_bus=bus,
    )
    engine.weather.strategy = ForcedWeatherStrategy(Weather.SUNNY, duration=120)
    return engine


class TestSimulationConfig:
    """Tests for SimulationConfig."""

    def test_default_config(self) -> None:
        """Default configuration values."""
        config = SimulationConfig()
        assert config.tick_interval == 1.0
        assert config.speed == 1
        assert config.minutes_per_tick == 1
        assert config.ticks_per_day == 1440
        assert config.duration_ticks is None
        assert config.emit_interval == 60

    def test_custom_config(self, start_time: datetime) -> None:
        """Custom configuration values."""
        config = SimulationConfig(
            tick_interval=0.5, speed=4, start_time=start_time, duration_ticks=10
        )
        assert config.speed == 4
        assert config.start_time == start_time
        assert config.duration_ticks == 10

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tick_interval": -1.0},
            {"speed": 0},
            {"speed": 11},
            {"ticks_per_day": 0},
            {"emit_interval": 0},
        ],
    )
    def test_invalid_config(self, kwargs: dict) -> None:
        """Out-of-range values are rejected."""
        with pytest.raises(ValueError):
            SimulationConfig(**kwargs)


class TestSimulationStats:
    """Tests for SimulationStats."""

    def test_avg_tick_time(self) -> None:
        """Average is reported in milliseconds."""
        stats = SimulationStats(ticks_completed=4, wall_time=timedelta(seconds=2))
        assert stats.avg_tick_time == 500.0

    def test_avg_tick_time_zero_ticks(self) -> None:
        """No ticks means no average."""
        assert SimulationStats().avg_tick_time == 0.0


class TestSimulationEngineInit:
    """Tests for engine construction."""

    def test_initial_state(self, engine: SimulationEngine, start_time: datetime) -> None:
        """A new engine is stopped at tick zero on day one."""
        assert engine.status is SimulationStatus.STOPPED
        assert not engine.is_running
        assert engine.current_time == start_time
        assert engine.elapsed_ticks == 0
        assert engine.day == 1
        assert engine.simulated_seconds() == 0.0
        assert not engine.scheduler_active

    def test_default_subsystems(self, engine: SimulationEngine) -> None:
        """Missing subsystems are created in tick order."""
        assert engine.systems == [
            engine.watering,
            engine.thermal,
            engine.pest_control,
            engine.weather,
        ]

    def test_empty_thermal_sequence(
        self, planted_garden: Garden, fast_config: SimulationConfig
    ) -> None:
        """An empty thermal list disables regulation."""
        engine = SimulationEngine(planted_garden, config=fast_config, thermal=[])
        assert engine.thermal is None

        engine.set_ambient_temperature(7)

        assert {zone.temperature for zone in planted_garden.zones.values()} == {7}

    def test_tick_period_follows_speed(self, planted_garden: Garden) -> None:
        """Speed shortens the wall interval."""
        engine = SimulationEngine(planted_garden, config=SimulationConfig(tick_interval=1.0))
        engine.set_speed(4)
        assert engine.tick_period == 0.25


class TestLifecycle:
    """Tests for start, pause, resume and stop."""

    def test_start_and_stop(self, engine: SimulationEngine) -> None:
        """Starting and stopping publish lifecycle events."""
        assert engine.start(background=False)
        assert engine.status is SimulationStatus.RUNNING

        engine.stop()

        assert engine.status is SimulationStatus.STOPPED
        types = [e.event_type for e in engine.event_bus.get_history()]
        assert EventType.SIMULATION_START in types
        assert EventType.SIMULATION_STOP in types

    def test_start_twice(
        self, engine: SimulationEngine, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A second start is a warning, not an error."""
        engine.start(background=False)

        with caplog.at_level(logging.WARNING, logger="smartgarden_sim.simulation.engine"):
            assert not engine.start(background=False)

        assert "already running" in caplog.text

    def test_start_empty_garden(self, garden: Garden, fast_config: SimulationConfig) -> None:
        """A garden with nothing alive cannot start."""
        engine = SimulationEngine(garden, config=fast_config)
        with pytest.raises(InvalidCommandError, match="no living plants"):
            engine.start(background=False)
        assert engine.status is SimulationStatus.STOPPED

    def test_pause_and_resume(self, engine: SimulationEngine) -> None:
        """Pause and resume toggle between RUNNING and PAUSED."""
        engine.start(background=False)

        assert engine.pause()
        assert engine.status is SimulationStatus.PAUSED
        assert not engine.pause()

        assert engine.resume()
        assert engine.status is SimulationStatus.RUNNING
        assert not engine.resume()

        toggles = {EventType.SIMULATION_PAUSE, EventType.SIMULATION_RESUME}
        history = [e.event_type for e in engine.event_bus.get_history() if e.event_type in toggles]
        assert history == [EventType.SIMULATION_PAUSE, EventType.SIMULATION_RESUME]

    def test_start_while_paused(self, engine: SimulationEngine) -> None:
        """A paused simulation must be resumed, not started."""
        engine.start(background=False)
        engine.pause()
        with pytest.raises(InvalidCommandError, match="resume"):
            engine.start(background=False)

    def test_pause_when_stopped(self, engine: SimulationEngine) -> None:
        """Pausing a stopped engine does nothing."""
        assert not engine.pause()
        assert engine.status is SimulationStatus.STOPPED

    def test_stop_idempotent(self, engine: SimulationEngine) -> None:
        """Stopping twice publishes one stop event."""
        engine.start(background=False)
        first = engine.stop()
        second = engine.stop()

        assert first is second
        assert len(engine.event_bus.get_history(event_type=EventType.SIMULATION_STOP)) == 1

    def test_stop_turns_sprinklers_off(self, engine: SimulationEngine) -> None:
        """No sprinkler keeps running after a stop."""
        engine.start(background=False)
        engine.watering.sprinklers[5].activate()

        engine.stop()

        assert not any(s.is_active for s in engine.watering.sprinklers.values())


class TestSpeed:
    """Tests for set_speed."""

    def test_valid_speed(self, engine: SimulationEngine) -> None:
        """Speeds within 1-10 are accepted."""
        engine.set_speed(10)
        assert engine.config.speed == 10

    @pytest.mark.parametrize("speed", [0, 11, -3, True])
    def test_invalid_speed(self, engine: SimulationEngine, speed: int) -> None:
        """Speeds outside 1-10 are invalid commands."""
        with pytest.raises(InvalidCommandError, match="outside valid range"):
            engine.set_speed(speed)
        assert engine.config.speed == 1


class TestTicks:
    """Tests for step, run and the tick order."""

    def test_step_advances_clock(self, engine: SimulationEngine, start_time: datetime) -> None:
        """A step ticks even while stopped."""
        engine.step()

        assert engine.elapsed_ticks == 1
        assert engine.current_time == start_time + timedelta(minutes=1)
        assert engine.simulated_seconds() == 60.0
        assert engine.weather.remaining == 59

    def test_run_fixed_ticks(self, engine: SimulationEngine) -> None:
        """run() ticks the requested count and stops."""
        stats = engine.run(100)

        assert stats.ticks_completed == 100
        assert stats.simulation_time == timedelta(minutes=100)
        assert engine.elapsed_ticks == 100
        assert engine.status is SimulationStatus.STOPPED

    def test_run_uses_configured_duration(
        self, planted_garden: Garden, start_time: datetime
    ) -> None:
        """Without an argument run() uses duration_ticks."""
        config = SimulationConfig(tick_interval=0.0, start_time=start_time, duration_ticks=30)
        engine = SimulationEngine(planted_garden, config=config, seed=1)

        assert engine.run().ticks_completed == 30

    @pytest.mark.parametrize("ticks", [None, -1])
    def test_run_needs_tick_count(self, engine: SimulationEngine, ticks: int | None) -> None:
        """A missing or negative count is an invalid command."""
        with pytest.raises(InvalidCommandError, match="tick count"):
            engine.run(ticks)

    def test_run_zero_ticks(self, engine: SimulationEngine) -> None:
        """Zero ticks starts and stops without ticking."""
        assert engine.run(0).ticks_completed == 0
        assert engine.status is SimulationStatus.STOPPED

    def test_tick_events_every_interval(self, engine: SimulationEngine) -> None:
        """Tick events are published every emit_interval ticks."""
        engine.run(130)

        events = engine.event_bus.get_history(event_type=EventType.SIMULATION_TICK)
        assert [e.data["tick"] for e in events] == [60, 120]
        assert events[0].timestamp == engine.config.start_time + timedelta(minutes=60)

    def test_tick_events_disabled(self, planted_garden: Garden, start_time: datetime) -> None:
        """emit_events=False silences tick events."""
        config = SimulationConfig(tick_interval=0.0, start_time=start_time, emit_events=False)
        engine = SimulationEngine(planted_garden, config=config, seed=1)

        engine.run(60)

        assert engine.event_bus.get_history(event_type=EventType.SIMULATION_TICK) == []

    def test_plants_consume_water(self, quiet_engine: SimulationEngine) -> None:
        """Each plant loses a unit of water every fifth tick."""
        quiet_engine.watering.enabled = False
        tomato = quiet_engine.garden.get_plant(Position(3, 3))

        quiet_engine.run(10)

        assert tomato.water_level == 58

    def test_day_rollover(self, quiet_engine: SimulationEngine) -> None:
        """After 1440 ticks the day advances and plants age."""
        stats = quiet_engine.run(1440)

        assert stats.days_completed == 1
        assert quiet_engine.day == 2
        event = quiet_engine.event_bus.get_history(event_type=EventType.DAY_ADVANCED)[-1]
        assert event.data["day"] == 2
        assert event.data["living_plants"] == 4
        assert all(plant.days_alive == 1 for plant in quiet_engine.garden.plants)

    def test_speed_does_not_shorten_day(self, quiet_engine: SimulationEngine) -> None:
        """A day is 1440 ticks at any speed."""
        quiet_engine.set_speed(10)

        quiet_engine.run(1439)
        assert quiet_engine.day == 1

        quiet_engine.step()
        assert quiet_engine.day == 2

    def test_short_days(self, planted_garden: Garden, start_time: datetime) -> None:
        """ticks_per_day controls the rollover period."""
        config = SimulationConfig(tick_interval=0.0, start_time=start_time, ticks_per_day=10)
        engine = SimulationEngine(planted_garden, config=config, seed=1)

        engine.run(35)

        assert engine.day == 4

    def test_stops_when_everything_dies(self, quiet_engine: SimulationEngine) -> None:
        """The living count is kept current after each tick."""
        for plant in quiet_engine.garden.plants:
            plant.health_level = 1
            plant.water_level = 0

        quiet_engine.run(5)

        assert quiet_engine.garden.living_plant_count == 0
        assert quiet_engine.snapshot().statistics["dead_plants"] == 4


class TestTickErrors:
    """Tests for failure isolation inside a tick."""

    def test_failing_subsystem_counted(
        self,
        engine: SimulationEngine,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A raising subsystem skips the tick but not the run."""

        def explode() -> None:
            msg = "sensor bus offline"
            raise RuntimeError(msg)

        monkeypatch.setattr(engine.watering, "update", explode)

        with caplog.at_level(logging.ERROR, logger="smartgarden_sim.simulation.engine"):
            stats = engine.run(3)

        assert stats.tick_errors == 3
        assert stats.ticks_completed == 3
        assert "Tick 1 failed" in caplog.text
        errors = engine.event_bus.get_history(event_type=EventType.SIMULATION_ERROR)
        assert len(errors) == 3
        assert errors[0].data["error"] == "sensor bus offline"


class TestWeatherCoupling:
    """Tests for weather-driven ambient temperature."""

    @pytest.mark.parametrize(
        ("weather", "temperature"),
        [(Weather.SNOWY, 5), (Weather.RAINY, 10), (Weather.SUNNY, 20)],
    )
    def test_weather_sets_ambient(
        self, engine: SimulationEngine, weather: Weather, temperature: int
    ) -> None:
        """Known weather temperatures reach every zone."""
        engine.weather.set_weather(Weather.WINDY)
        engine.weather.set_weather(weather)

        zones = engine.garden.zones.values()
        assert {zone.temperature for zone in zones} == {temperature}

    def test_coupling_disabled(self, planted_garden: Garden, start_time: datetime) -> None:
        """Without coupling zone temperatures are left alone."""
        config = SimulationConfig(
            tick_interval=0.0, start_time=start_time, temperature_coupling=False
        )
        engine = SimulationEngine(planted_garden, config=config)

        engine.weather.set_weather(Weather.SNOWY)

        assert {zone.temperature for zone in planted_garden.zones.values()} == {20}


class TestGardenEdits:
    """Tests for plant_seed and remove_plant."""

    def test_plant_seed(self, engine: SimulationEngine) -> None:
        """Seeds are planted and announced."""
        assert engine.plant_seed("Rose", Position(6, 6))

        plant = engine.garden.get_plant(Position(6, 6))
        assert plant is not None
        assert plant.plant_type is PlantType.ROSE
        event = engine.event_bus.get_history(event_type=EventType.PLANT_ADDED)[-1]
        assert event.data["plant"] == "Rose"
        assert event.data["position"] == Position(6, 6)

    def test_plant_seed_rejected_cells(self, engine: SimulationEngine) -> None:
        """Occupied or off-grid cells return False."""
        assert not engine.plant_seed(PlantType.ROSE, Position(3, 3))
        assert not engine.plant_seed(PlantType.ROSE, Position(9, 0))
        assert engine.event_bus.get_history(event_type=EventType.PLANT_ADDED) == []

    def test_plant_seed_unknown_type(self, engine: SimulationEngine) -> None:
        """Unknown plant names are invalid commands."""
        with pytest.raises(InvalidCommandError):
            engine.plant_seed("Cactus", Position(6, 6))

    def test_remove_plant(self, engine: SimulationEngine) -> None:
        """Removing frees the cell and is announced."""
        assert engine.remove_plant(Position(3, 3))
        assert engine.garden.get_plant(Position(3, 3)) is None
        assert not engine.remove_plant(Position(3, 3))
        assert len(engine.event_bus.get_history(event_type=EventType.PLANT_REMOVED)) == 1


class TestSnapshot:
    """Tests for the read model."""

    def test_snapshot_contents(self, engine: SimulationEngine) -> None:
        """Snapshots cover clock, weather, plants, zones and systems."""
        engine.step()
        snapshot = engine.snapshot()

        assert snapshot.status == "stopped"
        assert snapshot.elapsed_ticks == 1
        assert snapshot.day == 1
        assert snapshot.weather is Weather.SUNNY
        assert snapshot.weather_remaining == 59
        assert len(snapshot.plants) == 4
        assert len(snapshot.zones) == 9
        assert snapshot.statistics["living_plants"] == 4
        assert snapshot.systems.water_supply == 10_000
        assert snapshot.systems.pesticide_stock == 50
        assert snapshot.systems.thermal_mode == "off"

    def test_snapshot_is_a_copy(self, engine: SimulationEngine) -> None:
        """Later ticks do not change an earlier snapshot."""
        before = engine.snapshot()
        engine.run(10)
        assert before.elapsed_ticks == 0
        assert before.plant_at(Position(3, 3)).water_level == 60

    def test_heating_visible_in_snapshot(self, engine: SimulationEngine) -> None:
        """An active thermal mode is reported."""
        engine.set_ambient_temperature(4)
        engine.step()

        systems = engine.snapshot().systems
        assert systems.heating_active
        assert systems.thermal_mode == "heating_high"


class TestBackgroundScheduler:
    """Tests for the scheduler thread and command routing."""

    def test_runs_to_configured_duration(
        self, planted_garden: Garden, start_time: datetime
    ) -> None:
        """The scheduler ticks until duration_ticks, then exits."""
        config = SimulationConfig(tick_interval=0.0, start_time=start_time, duration_ticks=50)
        engine = SimulationEngine(planted_garden, config=config, seed=3)

        assert engine.start()
        assert engine.join(timeout=10)

        assert engine.elapsed_ticks == 50
        assert engine.status is SimulationStatus.STOPPED
        assert not engine.scheduler_active

    def test_commands_run_on_scheduler_thread(
        self, planted_garden: Garden, start_time: datetime
    ) -> None:
        """execute() hands work to the owning thread."""
        config = SimulationConfig(tick_interval=0.01, start_time=start_time)
        engine = SimulationEngine(planted_garden, config=config, seed=3)
        engine.start()
        try:
            name = engine.execute(lambda: threading.current_thread().name)
            snapshot = engine.snapshot()
        finally:
            engine.stop()

        assert name == "garden-scheduler"
        assert snapshot.status == "running"
        assert engine.status is SimulationStatus.STOPPED
        assert not engine.scheduler_active

    def test_command_errors_reach_caller(
        self, planted_garden: Garden, start_time: datetime
    ) -> None:
        """Exceptions raised on the scheduler are re-raised in the caller."""
        config = SimulationConfig(tick_interval=0.01, start_time=start_time)
        engine = SimulationEngine(planted_garden, config=config, seed=3)
        engine.start()
        try:
            with pytest.raises(InvalidCommandError):
                engine.set_speed(0)
        finally:
            engine.stop()

    def test_run_rejected_while_scheduler_active(
        self, planted_garden: Garden, start_time: datetime
    ) -> None:
        """Headless runs and the scheduler are exclusive."""
        config = SimulationConfig(tick_interval=0.01, start_time=start_time)
        engine = SimulationEngine(planted_garden, config=config, seed=3)
        engine.start()
        try:
            with pytest.raises(InvalidCommandError, match="scheduler"):
                engine.run(5)
        finally:
            engine.stop()

    def test_restart_after_stop(self, planted_garden: Garden, start_time: datetime) -> None:
        """A stopped engine can be started again."""
        config = SimulationConfig(tick_interval=0.0, start_time=start_time, duration_ticks=5)
        engine = SimulationEngine(planted_garden, config=config, seed=3)

        engine.start()
        engine.join(timeout=10)
        engine.start()
        engine.join(timeout=10)

        assert engine.elapsed_ticks == 10


class TestSinglePlant:
    """A lone tomato left to itself."""

    def test_survives_with_auto_watering(self) -> None:
        """With default irrigation the plant stays alive and healthy."""
        engine = create_single_plant_scenario(seed=42)
        tomato = engine.garden.get_plant(ORIGIN)

        engine.run(100)

        assert not tomato.is_dead
        assert tomato.health_level >= 50
        assert tomato.water_level > 0

    def test_water_decreases_without_irrigation(self) -> None:
        """Without irrigation or rain the water level only goes down."""
        engine = create_single_plant_scenario(seed=42)
        engine.watering.enabled = False
        engine.weather.strategy = ForcedWeatherStrategy(Weather.SUNNY, duration=120)
        tomato = engine.garden.get_plant(ORIGIN)
        levels = [tomato.water_level]

        engine.start(background=False)
        for _ in range(100):
            engine.step()
            levels.append(tomato.water_level)
        engine.stop()

        assert all(later <= earlier for earlier, later in zip(levels, levels[1:], strict=False))
        assert levels[50] < levels[0]
        assert levels[100] < levels[50]
        assert levels[100] == 40
        assert not tomato.is_dead
