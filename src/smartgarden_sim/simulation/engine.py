"""Garden simulation engine.

The engine owns the garden and its control subsystems and advances them in
one-minute ticks:
1. Advance the simulated clock
2. Update every plant
3. Run watering, thermal regulation and pest control
4. Advance the weather
5. Roll the day over after ticks_per_day ticks
6. Recompute the garden's living count

Exactly one thread mutates an engine's state. In the background mode
start() spawns a scheduler thread that owns the garden; every public
command is routed through execute(), which hands it to the scheduler over
a command queue and waits for the result. Without a scheduler, commands
run inline under the engine lock.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple, TypeVar

import numpy as np

from smartgarden_sim.controllers.pest_control import PestControlSystem
from smartgarden_sim.controllers.thermal import ThermalLoop, ThermalMode, ThermalRegulator
from smartgarden_sim.controllers.watering import WateringSystem
from smartgarden_sim.core.errors import InvalidCommandError
from smartgarden_sim.core.events import Event, EventBus, EventType
from smartgarden_sim.core.state import GardenSnapshot, Position, SystemsSnapshot
from smartgarden_sim.model.catalog import PlantType
from smartgarden_sim.model.plant import Plant
from smartgarden_sim.simulation.weather import WEATHER_TEMPERATURES, WeatherSystem

if TYPE_CHECKING:
    from numpy.random import Generator

    from smartgarden_sim.core.base import ControlSystem
    from smartgarden_sim.model.catalog import PlantProfile
    from smartgarden_sim.model.garden import Garden

logger = logging.getLogger(__name__)

T = TypeVar("T")
ThermalSystem = ThermalRegulator | ThermalLoop

MIN_SPEED = 1
MAX_SPEED = 10
MINUTES_PER_DAY = 1440
_JOIN_TIMEOUT = 5.0


class SimulationStatus(str, Enum):
    """Engine lifecycle states."""

    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class SimulationConfig:
    """Configuration for the simulation engine.

    Attributes:
        tick_interval: Wall seconds per tick at speed 1 (0 = as fast as
            possible).
        speed: Speed multiplier 1-10; shortens the wall interval only.
        start_time: Simulated datetime of tick zero.
        minutes_per_tick: Simulated minutes per tick.
        ticks_per_day: Ticks between day rollovers. A day is counted in
            simulated minutes, so speed does not shorten it; a faster
            speed only reaches the rollover sooner in wall time.
        duration_ticks: Ticks after which the engine stops itself (None
            for indefinite).
        temperature_coupling: Whether weather changes set the ambient
            zone temperature.
        emit_events: Whether to emit SIMULATION_TICK events.
        emit_interval: Emit a tick event every N ticks.
    """

    tick_interval: float = 1.0
    speed: int = 1
    start_time: datetime = field(
        default_factory=lambda: datetime.now(UTC).replace(
            hour=6, minute=0, second=0, microsecond=0
        )
    )
    minutes_per_tick: int = 1
    ticks_per_day: int = MINUTES_PER_DAY
    duration_ticks: int | None = None
    temperature_coupling: bool = True
    emit_events: bool = True
    emit_interval: int = 60

    def __post_init__(self) -> None:
        if self.tick_interval < 0:
            msg = f"tick_interval must be non-negative, got {self.tick_interval}"
            raise ValueError(msg)
        if not MIN_SPEED <= self.speed <= MAX_SPEED:
            msg = f"speed {self.speed} outside valid range [{MIN_SPEED}, {MAX_SPEED}]"
            raise ValueError(msg)
        if self.ticks_per_day <= 0 or self.minutes_per_tick <= 0:
            msg = "ticks_per_day and minutes_per_tick must be positive"
            raise ValueError(msg)
        if self.emit_interval <= 0:
            msg = f"emit_interval must be positive, got {self.emit_interval}"
            raise ValueError(msg)


@dataclass
class SimulationStats:
    """Statistics from one simulation run.

    Attributes:
        ticks_completed: Ticks executed.
        days_completed: Day rollovers.
        tick_errors: Ticks that raised and were skipped.
        simulation_time: Total simulated time.
        wall_time: Actual elapsed time.
    """

    ticks_completed: int = 0
    days_completed: int = 0
    tick_errors: int = 0
    simulation_time: timedelta = field(default_factory=timedelta)
    wall_time: timedelta = field(default_factory=timedelta)

    @property
    def avg_tick_time(self) -> float:
        """Average wall time per tick in milliseconds."""
        if self.ticks_completed == 0:
            return 0.0
        return self.wall_time.total_seconds() * 1000 / self.ticks_completed


class _Command(NamedTuple):
    fn: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    future: Future[Any]


class SimulationEngine:
    """Tick orchestrator and single owner of a garden.

    Subsystems not passed in are created with defaults, sharing the
    engine's random generator and event bus.
    """

    def __init__(
        self,
        garden: Garden,
        *,
        config: SimulationConfig | None = None,
        weather: WeatherSystem | None = None,
        watering: WateringSystem | None = None,
        thermal: ThermalSystem | Sequence[ThermalSystem] | None = None,
        pest_control: PestControlSystem | None = None,
        rng: Generator | None = None,
        seed: int | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize simulation engine.

        Args:
            garden: Garden to simulate.
            config: Engine configuration.
            weather: Weather process.
            watering: Irrigation system.
            thermal: Thermal system, or several run in order (an empty
                sequence disables thermal regulation).
            pest_control: Pest control system.
            rng: Random generator shared by default subsystems.
            seed: Seed for a new generator when rng is None.
            event_bus: Bus for all engine and subsystem events (a private
                bus if None).
        """
        self._garden = garden
        self._config = config or SimulationConfig()
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._event_bus = event_bus if event_bus is not None else EventBus()

        self._status = SimulationStatus.STOPPED
        self._current_time = self._config.start_time
        self._elapsed_ticks = 0
        self._ticks_today = 0
        self._day = 1
        self._stats = SimulationStats()
        self._run_started: float | None = None
        self._event_bus.set_clock(lambda: self._current_time)

        self.weather = weather or WeatherSystem(
            "weather", garden, rng=self._rng, event_bus=self._event_bus
        )
        self.watering = watering or WateringSystem(
            "watering", garden, weather=self.weather, event_bus=self._event_bus
        )
        if thermal is None:
            self.thermal_systems: list[ThermalSystem] = [
                ThermalRegulator("thermal", garden, event_bus=self._event_bus)
            ]
        elif isinstance(thermal, ThermalRegulator | ThermalLoop):
            self.thermal_systems = [thermal]
        else:
            self.thermal_systems = list(thermal)
        self.pest_control = pest_control or PestControlSystem(
            "pest_control",
            garden,
            rng=self._rng,
            clock=self.simulated_seconds,
            event_bus=self._event_bus,
        )
        self._event_bus.subscribe(EventType.WEATHER_CHANGED, self._on_weather_changed)

        self._lock = threading.RLock()
        self._queue_lock = threading.Lock()
        self._commands: queue.Queue[_Command] = queue.Queue()
        self._accepting = False
        self._stop_requested = False
        self._thread: threading.Thread | None = None
        self._next_tick = 0.0

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def garden(self) -> Garden:
        return self._garden

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def status(self) -> SimulationStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is SimulationStatus.RUNNING

    @property
    def current_time(self) -> datetime:
        """Current simulated time."""
        return self._current_time

    @property
    def day(self) -> int:
        return self._day

    @property
    def elapsed_ticks(self) -> int:
        return self._elapsed_ticks

    @property
    def stats(self) -> SimulationStats:
        return self._stats

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def rng(self) -> Generator:
        return self._rng

    @property
    def thermal(self) -> ThermalSystem | None:
        """Primary thermal system."""
        return self.thermal_systems[0] if self.thermal_systems else None

    @property
    def systems(self) -> list[ControlSystem | WeatherSystem]:
        """Subsystems in tick order."""
        return [self.watering, *self.thermal_systems, self.pest_control, self.weather]

    @property
    def tick_period(self) -> float:
        """Wall seconds between ticks at the current speed."""
        return self._config.tick_interval / self._config.speed

    @property
    def scheduler_active(self) -> bool:
        """Whether a background scheduler thread owns the engine."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def simulated_seconds(self) -> float:
        """Simulated seconds since tick zero."""
        return (self._current_time - self._config.start_time).total_seconds()

    # =========================================================================
    # Command routing
    # =========================================================================

    def execute(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Run a command on the thread that owns the engine.

        With a background scheduler the command is queued and executed
        between ticks; the caller blocks until it completes. Exceptions
        raised by the command are re-raised in the caller.

        Args:
            fn: Callable to run.
            *args: Positional arguments for fn.
            **kwargs: Keyword arguments for fn.

        Returns:
            Whatever fn returns.
        """
        if threading.current_thread() is not self._thread:
            future: Future[T] | None = None
            with self._queue_lock:
                if self._accepting:
                    future = Future()
                    self._commands.put(_Command(fn, args, kwargs, future))
            if future is not None:
                return future.result()

        with self._lock:
            return fn(*args, **kwargs)

    def _run_command(self, command: _Command) -> None:
        if not command.future.set_running_or_notify_cancel():
            return
        try:
            with self._lock:
                result = command.fn(*command.args, **command.kwargs)
        except Exception as exc:
            command.future.set_exception(exc)
        else:
            command.future.set_result(result)

    def _drain_commands(self) -> None:
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            self._run_command(command)

    def _scheduler_loop(self) -> None:
        logger.debug("Scheduler thread started")
        try:
            while not self._stop_requested:
                wait: float | None = None
                if self._status is SimulationStatus.RUNNING:
                    wait = max(0.0, self._next_tick - time.perf_counter())
                try:
                    command = self._commands.get(block=wait is None or wait > 0, timeout=wait)
                except queue.Empty:
                    command = None

                if command is not None:
                    self._run_command(command)
                    continue

                if self._status is SimulationStatus.RUNNING:
                    with self._lock:
                        self._tick()
                        self._check_duration()
                    self._next_tick = max(
                        self._next_tick + self.tick_period, time.perf_counter()
                    )
        finally:
            with self._queue_lock:
                self._accepting = False
            self._drain_commands()
            logger.debug("Scheduler thread exited")

    def _spawn_scheduler(self) -> None:
        with self._queue_lock:
            self._accepting = True
            self._stop_requested = False
        self._next_tick = time.perf_counter() + self.tick_period
        self._thread = threading.Thread(
            target=self._scheduler_loop, name="garden-scheduler", daemon=True
        )
        self._thread.start()

    def _reap_scheduler(self) -> None:
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=_JOIN_TIMEOUT)
        if thread.is_alive():
            logger.error("Scheduler thread did not exit within %.1fs", _JOIN_TIMEOUT)
            return
        self._thread = None

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background scheduler to exit.

        Returns:
            True if no scheduler is running afterwards.
        """
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return not self.scheduler_active

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, *, background: bool = True) -> bool:
        """Start the simulation.

        Args:
            background: Spawn the scheduler thread that ticks at
                tick_period. With False the caller drives ticks through
                step() or run().

        Returns:
            True if started, False if it was already running.

        Raises:
            InvalidCommandError: If paused (use resume()) or the garden has
                no living plants.
        """
        if self._thread is not None and not self._accepting:
            self._reap_scheduler()
        started = self.execute(self._start)
        if started and background:
            self._spawn_scheduler()
        return started

    def _start(self) -> bool:
        if self._status is SimulationStatus.RUNNING:
            logger.warning("Simulation already running")
            return False
        if self._status is SimulationStatus.PAUSED:
            msg = "Simulation is paused; use resume()"
            raise InvalidCommandError(msg)
        if self._garden.update_living_count() == 0:
            msg = "Cannot start a garden with no living plants"
            raise InvalidCommandError(msg)

        self._status = SimulationStatus.RUNNING
        self._stats = SimulationStats()
        self._run_started = time.perf_counter()
        logger.info(
            "Simulation started at %s with %d living plants (speed %dx)",
            self._current_time.isoformat(),
            self._garden.living_plant_count,
            self._config.speed,
        )
        self._event_bus.emit_simple(
            EventType.SIMULATION_START,
            source="engine",
            message=f"Simulation started at {self._current_time.isoformat()}",
            speed=self._config.speed,
        )
        return True

    def pause(self) -> bool:
        """Pause ticking; False if not running."""
        return self.execute(self._pause)

    def _pause(self) -> bool:
        if self._status is not SimulationStatus.RUNNING:
            logger.warning("Cannot pause a %s simulation", self._status.value)
            return False
        self._status = SimulationStatus.PAUSED
        logger.info("Simulation paused at tick %d", self._elapsed_ticks)
        self._event_bus.emit_simple(
            EventType.SIMULATION_PAUSE, source="engine", message="Simulation paused"
        )
        return True

    def resume(self) -> bool:
        """Resume a paused simulation; False if not paused."""
        return self.execute(self._resume)

    def _resume(self) -> bool:
        if self._status is not SimulationStatus.PAUSED:
            logger.warning("Cannot resume a %s simulation", self._status.value)
            return False
        self._status = SimulationStatus.RUNNING
        self._next_tick = time.perf_counter() + self.tick_period
        logger.info("Simulation resumed at tick %d", self._elapsed_ticks)
        self._event_bus.emit_simple(
            EventType.SIMULATION_RESUME, source="engine", message="Simulation resumed"
        )
        return True

    def stop(self) -> SimulationStats:
        """Stop the simulation and the scheduler thread.

        Idempotent: final statistics are logged once per run.

        Returns:
            Statistics of the run.
        """
        stats = self.execute(self._stop)
        self._reap_scheduler()
        return stats

    def _stop(self) -> SimulationStats:
        self._stop_requested = True
        if self._status is SimulationStatus.STOPPED:
            logger.debug("Simulation already stopped")
            return self._stats

        self._status = SimulationStatus.STOPPED
        self.watering.stop_all_sprinklers()
        if self._run_started is not None:
            self._stats.wall_time = timedelta(seconds=time.perf_counter() - self._run_started)
            self._run_started = None

        stats = self._garden.statistics()
        logger.info(
            "Simulation stopped after %d ticks (day %d): %d/%d plants alive, "
            "%d litres water left, %d pesticide treatments left, %d tick errors",
            self._stats.ticks_completed,
            self._day,
            stats["living_plants"],
            stats["total_plants"],
            self.watering.water_supply,
            self.pest_control.pesticide_stock,
            self._stats.tick_errors,
        )
        self._event_bus.emit_simple(
            EventType.SIMULATION_STOP,
            source="engine",
            message=f"Simulation stopped after {self._stats.ticks_completed} ticks",
            ticks=self._stats.ticks_completed,
            days=self._stats.days_completed,
            tick_errors=self._stats.tick_errors,
            garden=stats,
        )
        return self._stats

    def set_speed(self, speed: int) -> None:
        """Change the speed multiplier.

        Raises:
            InvalidCommandError: If speed is outside [1, 10].
        """
        self.execute(self._set_speed, speed)

    def _set_speed(self, speed: int) -> None:
        if isinstance(speed, bool) or not MIN_SPEED <= speed <= MAX_SPEED:
            msg = f"Speed {speed} outside valid range [{MIN_SPEED}, {MAX_SPEED}]"
            raise InvalidCommandError(msg)
        self._config.speed = int(speed)
        logger.info("Simulation speed set to %dx", speed)

    def step(self) -> None:
        """Execute a single tick regardless of the lifecycle state."""
        self.execute(self._tick)

    def run(self, ticks: int | None = None) -> SimulationStats:
        """Run the simulation synchronously on the calling thread.

        Ticks are paced at tick_period (no pacing when it is 0).

        Args:
            ticks: Number of ticks (defaults to config.duration_ticks).

        Returns:
            Statistics of the run.

        Raises:
            InvalidCommandError: If the background scheduler is active, no
                tick count is known, or the simulation cannot start.
        """
        if self.scheduler_active:
            msg = "Cannot run headless while the background scheduler is active"
            raise InvalidCommandError(msg)
        limit = ticks if ticks is not None else self._config.duration_ticks
        if limit is None or limit < 0:
            msg = "run() needs a non-negative tick count or config.duration_ticks"
            raise InvalidCommandError(msg)

        with self._lock:
            if self._status is not SimulationStatus.RUNNING:
                self._start()
        try:
            for _ in range(limit):
                with self._lock:
                    if self._status is not SimulationStatus.RUNNING:
                        break
                    self._tick()
                if self.tick_period > 0:
                    time.sleep(self.tick_period)
        finally:
            stats = self.execute(self._stop)
        return stats

    def _check_duration(self) -> None:
        limit = self._config.duration_ticks
        if limit is not None and self._stats.ticks_completed >= limit:
            logger.info("Configured duration of %d ticks reached", limit)
            self._stop()

    # =========================================================================
    # Tick
    # =========================================================================

    def _tick(self) -> None:
        try:
            self._advance()
        except Exception as exc:
            self._stats.tick_errors += 1
            logger.exception("Tick %d failed", self._elapsed_ticks)
            self._event_bus.emit_simple(
                EventType.SIMULATION_ERROR,
                source="engine",
                message=f"Tick {self._elapsed_ticks} failed: {exc}",
                tick=self._elapsed_ticks,
                error=str(exc),
            )

    def _advance(self) -> None:
        minutes = self._config.minutes_per_tick
        self._current_time += timedelta(minutes=minutes)
        self._elapsed_ticks += 1
        self._ticks_today += 1
        self._stats.ticks_completed += 1
        self._stats.simulation_time += timedelta(minutes=minutes)

        for plant in self._garden.plants:
            plant.update()
        for system in self.systems:
            system.update()

        if self._ticks_today >= self._config.ticks_per_day:
            self._advance_day()

        self._garden.update_living_count()
        self._emit_tick()

    def _advance_day(self) -> None:
        self._ticks_today = 0
        for plant in self._garden.plants:
            plant.advance_day()
        self._day += 1
        self._stats.days_completed += 1
        living = self._garden.update_living_count()
        logger.info(
            "Day %d begins: %d of %d plants alive",
            self._day,
            living,
            self._garden.total_plants,
        )
        self._event_bus.emit_simple(
            EventType.DAY_ADVANCED,
            source="engine",
            message=f"Day {self._day}",
            day=self._day,
            living_plants=living,
        )

    def _emit_tick(self) -> None:
        if not self._config.emit_events:
            return
        if self._elapsed_ticks % self._config.emit_interval != 0:
            return
        self._event_bus.emit_simple(
            EventType.SIMULATION_TICK,
            source="engine",
            message=f"Tick {self._elapsed_ticks}",
            tick=self._elapsed_ticks,
            day=self._day,
            weather=self.weather.current_weather,
            living_plants=self._garden.living_plant_count,
        )

    # =========================================================================
    # Environment
    # =========================================================================

    def set_ambient_temperature(self, temperature: int) -> None:
        """Set every zone temperature directly."""
        if not self.thermal_systems:
            for zone in self._garden.zones.values():
                zone.set_temperature(temperature)
            return
        for system in self.thermal_systems:
            system.set_ambient_temperature(temperature)

    def _on_weather_changed(self, event: Event) -> None:
        if not self._config.temperature_coupling:
            return
        temperature = WEATHER_TEMPERATURES.get(event.data.get("current"))
        if temperature is not None:
            self.set_ambient_temperature(temperature)

    # =========================================================================
    # Garden edits
    # =========================================================================

    def plant_seed(
        self,
        plant_type: PlantType | str,
        position: Position,
        *,
        profile: PlantProfile | None = None,
    ) -> bool:
        """Plant a new seed.

        Returns:
            False if the cell is out of range or occupied.

        Raises:
            InvalidCommandError: If the plant type is unknown.
        """
        return self.execute(self._plant_seed, plant_type, position, profile)

    def _plant_seed(
        self,
        plant_type: PlantType | str,
        position: Position,
        profile: PlantProfile | None,
    ) -> bool:
        try:
            resolved = PlantType.from_name(plant_type)
        except ValueError as exc:
            raise InvalidCommandError(str(exc)) from exc

        plant = Plant(resolved, position, profile=profile)
        if not self._garden.add_plant(plant):
            return False
        self._event_bus.emit_simple(
            EventType.PLANT_ADDED,
            source="engine",
            message=f"{plant.name} planted at {position}",
            plant=plant.name,
            position=position,
        )
        return True

    def remove_plant(self, position: Position) -> bool:
        """Remove the plant on a cell; False if the cell is empty."""
        return self.execute(self._remove_plant, position)

    def _remove_plant(self, position: Position) -> bool:
        plant = self._garden.get_plant(position)
        if plant is None or not self._garden.remove_plant(position):
            return False
        self._event_bus.emit_simple(
            EventType.PLANT_REMOVED,
            source="engine",
            message=f"{plant.name} removed from {position}",
            plant=plant.name,
            position=position,
        )
        return True

    # =========================================================================
    # Read model
    # =========================================================================

    def snapshot(self) -> GardenSnapshot:
        """Consistent read-only copy of the whole simulation."""
        return self.execute(self._build_snapshot)

    def _build_snapshot(self) -> GardenSnapshot:
        active_modes = [
            system.mode for system in self.thermal_systems if system.mode is not ThermalMode.OFF
        ]
        systems = SystemsSnapshot(
            water_supply=self.watering.water_supply,
            total_water_used=self.watering.total_water_used,
            thermal_mode=(active_modes[0] if active_modes else ThermalMode.OFF).value,
            heating_active=any(system.heating_active for system in self.thermal_systems),
            cooling_active=any(system.cooling_active for system in self.thermal_systems),
            energy_consumption=sum(system.energy_consumption for system in self.thermal_systems),
            pesticide_stock=self.pest_control.pesticide_stock,
            pesticide_used=self.pest_control.pesticide_used,
            active_pests=self.pest_control.harmful_pest_count,
            pending_treatments=tuple(sorted(self.pest_control.pending_treatments)),
        )
        return GardenSnapshot(
            status=self._status.value,
            simulation_time=self._current_time,
            day=self._day,
            elapsed_ticks=self._elapsed_ticks,
            weather=self.weather.current_weather,
            weather_remaining=self.weather.remaining,
            statistics=self._garden.statistics(),
            systems=systems,
            plants=self._garden.plant_snapshots(),
            zones=tuple(zone.snapshot() for zone in self._garden.zones.values()),
        )
