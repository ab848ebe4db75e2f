"""External control surface for a running garden simulation.

GardenSimulationAPI is what a test harness, a UI or a scripted scenario
talks to. It wraps one SimulationEngine and routes every call through
SimulationEngine.execute(), so commands are safe to issue from any thread
while the background scheduler is ticking.

The environmental injections (rain, temperature, parasite) act on the
garden immediately and do not run a control cycle; the automated systems
react on the following ticks.

Example:
    >>> api = GardenSimulationAPI.from_config(SimulationConfig(seed=7))
    >>> api.initialize_garden()
    4
    >>> api.parasite("Red Mite")
    4
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from smartgarden_sim.controllers.pests import HarmfulPest
from smartgarden_sim.core.errors import InvalidCommandError
from smartgarden_sim.core.journal import EventJournal
from smartgarden_sim.core.state import GardenSnapshot, Position, Weather
from smartgarden_sim.model.catalog import DEFAULT_VULNERABILITIES, PlantType
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.simulation.engine import SimulationEngine, SimulationStats
from smartgarden_sim.simulation.factory import create_engine_from_config
from smartgarden_sim.simulation.scenarios import DEFAULT_PLANTINGS

if TYPE_CHECKING:
    from smartgarden_sim.core.config import SimulationConfig
    from smartgarden_sim.core.events import EventBus

logger = logging.getLogger(__name__)

DEFAULT_WATER_REFILL = 5000
DEFAULT_PESTICIDE_REFILL = 25
MIN_FAHRENHEIT = 40
MAX_FAHRENHEIT = 120
HOT_FAHRENHEIT = 100
COLD_FAHRENHEIT = 45

PositionLike = Position | tuple[int, int]


def fahrenheit_to_celsius(fahrenheit: float) -> int:
    """Convert to whole degrees Celsius."""
    return round((fahrenheit - 32) * 5 / 9)


def weather_for_fahrenheit(fahrenheit: float) -> Weather:
    """Weather implied by an injected temperature."""
    if fahrenheit > HOT_FAHRENHEIT:
        return Weather.SUNNY
    if fahrenheit < COLD_FAHRENHEIT:
        return Weather.SNOWY
    return Weather.CLOUDY


def _to_position(position: PositionLike) -> Position:
    if isinstance(position, Position):
        return position
    row, column = position
    return Position(row, column)


class GardenSimulationAPI:
    """Thread-safe facade over one simulation engine.

    Attributes:
        day_count: Environmental injections received so far.
    """

    def __init__(
        self,
        engine: SimulationEngine | None = None,
        *,
        vulnerabilities: Mapping[PlantType, Iterable[str]] | None = None,
        plantings: Iterable[tuple[PlantType | str, PositionLike]] | None = None,
        journal: EventJournal | None = None,
    ) -> None:
        """Initialize the API.

        Args:
            engine: Engine to control (a 9x9 garden with default
                subsystems if None).
            vulnerabilities: Plant type -> pest names it is attacked by.
            plantings: Plantings used by initialize_garden() when called
                without arguments.
            journal: Journal attached to the package logger, detached by
                close().
        """
        self._engine = engine if engine is not None else SimulationEngine(Garden(9, 9))
        table = vulnerabilities if vulnerabilities is not None else DEFAULT_VULNERABILITIES
        self._vulnerabilities = {
            plant_type: tuple(pests) for plant_type, pests in table.items()
        }
        self._plantings = list(plantings) if plantings is not None else list(DEFAULT_PLANTINGS)
        self._journal = journal
        self.day_count = 0

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        *,
        event_bus: EventBus | None = None,
    ) -> GardenSimulationAPI:
        """Build an API around an engine assembled from configuration.

        Configured plantings are not seeded up front; they become the
        default list of initialize_garden(). A configured log_file gets an
        attached EventJournal.

        Args:
            config: Validated simulation configuration.
            event_bus: Bus for the engine (a private bus if None).

        Returns:
            GardenSimulationAPI ready for initialize_garden().
        """
        engine = create_engine_from_config(
            config.model_copy(update={"plantings": []}), event_bus=event_bus
        )
        plantings = [(p.plant_type, p.position) for p in config.plantings] or None
        journal = EventJournal(config.log_file).attach() if config.log_file else None
        return cls(
            engine,
            vulnerabilities=config.vulnerabilities(),
            plantings=plantings,
            journal=journal,
        )

    def __enter__(self) -> GardenSimulationAPI:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def engine(self) -> SimulationEngine:
        return self._engine

    @property
    def journal(self) -> EventJournal | None:
        return self._journal

    @property
    def vulnerabilities(self) -> dict[PlantType, tuple[str, ...]]:
        return dict(self._vulnerabilities)

    def close(self) -> None:
        """Stop the simulation and detach the journal."""
        self._engine.stop()
        if self._journal is not None:
            self._journal.detach()
            self._journal.close()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, *, background: bool = True) -> bool:
        """Start ticking (in a scheduler thread unless background is False)."""
        return self._engine.start(background=background)

    def pause(self) -> bool:
        return self._engine.pause()

    def resume(self) -> bool:
        return self._engine.resume()

    def stop(self) -> SimulationStats:
        return self._engine.stop()

    def set_speed(self, speed: int) -> None:
        """Change the speed multiplier (1-10)."""
        self._engine.set_speed(speed)

    # =========================================================================
    # Garden edits
    # =========================================================================

    def initialize_garden(
        self,
        plantings: Iterable[tuple[PlantType | str, PositionLike]] | None = None,
    ) -> int:
        """Plant the initial garden and switch to API mode.

        In API mode the weather only changes through injections and no
        pests spawn on their own. The engine is not started; call start()
        or drive it with engine.step() or engine.run().

        Args:
            plantings: (plant type, position) pairs (the configured list if
                None).

        Returns:
            Number of plants seeded.
        """
        selected = list(plantings) if plantings is not None else self._plantings
        return self._engine.execute(self._initialize_garden, selected)

    def _initialize_garden(self, plantings: list[tuple[PlantType | str, PositionLike]]) -> int:
        planted = 0
        for plant_type, position in plantings:
            if self.plant_seed(plant_type, position):
                planted += 1
        self._engine.weather.automatic = False
        self._engine.pest_control.auto_spawn = False
        self.day_count = 0
        logger.info("Garden initialized with %d plants in API mode", planted)
        return planted

    def plant_seed(self, plant_type: PlantType | str, position: PositionLike) -> bool:
        """Plant a seed; False for an invalid or occupied cell.

        Raises:
            InvalidCommandError: If the plant type is unknown.
        """
        try:
            cell = _to_position(position)
        except ValueError:
            logger.warning("Cannot plant %s at invalid position %s", plant_type, position)
            return False
        return self._engine.plant_seed(plant_type, cell)

    def remove_plant(self, position: PositionLike) -> bool:
        try:
            cell = _to_position(position)
        except ValueError:
            return False
        return self._engine.remove_plant(cell)

    # =========================================================================
    # Manual overrides
    # =========================================================================

    def manual_water_zone(self, zone_id: int) -> bool:
        return self._engine.execute(self._engine.watering.manual_water, zone_id)

    def manual_treat_zone(self, zone_id: int) -> bool:
        return self._engine.execute(self._engine.pest_control.manual_treat, zone_id)

    def refill_water(self, amount: int = DEFAULT_WATER_REFILL) -> None:
        self._engine.execute(self._engine.watering.refill_water, amount)

    def refill_pesticide(self, amount: int = DEFAULT_PESTICIDE_REFILL) -> None:
        self._engine.execute(self._engine.pest_control.refill_pesticide, amount)

    # =========================================================================
    # Environmental injections
    # =========================================================================

    def rain(self, amount: int) -> None:
        """Make it rain and water every living plant.

        Raises:
            InvalidCommandError: If amount is negative.
        """
        if amount < 0:
            msg = f"Rain amount must be non-negative, got {amount}"
            raise InvalidCommandError(msg)
        self._engine.execute(self._rain, amount)

    def _rain(self, amount: int) -> None:
        self.day_count += 1
        logger.info("Rain injected: %d units", amount)
        self._engine.weather.set_weather(Weather.RAINY)
        for plant in self._engine.garden.living_plants():
            plant.water(amount)
            plant.apply_weather_effect(Weather.RAINY)

    def temperature(self, fahrenheit: float) -> int:
        """Impose an ambient temperature given in Fahrenheit.

        Values outside 40-120 F are clamped. The weather follows the
        temperature: above 100 F it turns sunny, below 45 F snowy, and
        cloudy otherwise.

        Returns:
            The applied temperature in degrees Celsius.
        """
        return self._engine.execute(self._temperature, fahrenheit)

    def _temperature(self, fahrenheit: float) -> int:
        self.day_count += 1
        if not MIN_FAHRENHEIT <= fahrenheit <= MAX_FAHRENHEIT:
            clamped = min(max(fahrenheit, MIN_FAHRENHEIT), MAX_FAHRENHEIT)
            logger.warning(
                "Temperature %s F outside [%d, %d] F, clamped to %s F",
                fahrenheit,
                MIN_FAHRENHEIT,
                MAX_FAHRENHEIT,
                clamped,
            )
            fahrenheit = clamped

        celsius = fahrenheit_to_celsius(fahrenheit)
        weather = weather_for_fahrenheit(fahrenheit)
        logger.info(
            "Temperature injected: %s F (%d C), weather %s", fahrenheit, celsius, weather.name
        )

        self._engine.weather.set_weather(weather)
        self._engine.set_ambient_temperature(celsius)
        for plant in self._engine.garden.living_plants():
            plant.apply_temperature_effect(celsius)
            plant.apply_weather_effect(weather)
        return celsius

    def parasite(self, name: str) -> int:
        """Release a pest on every living plant vulnerable to it.

        Each affected plant suffers one attack straight away; the pest is
        then registered with pest control, which may schedule a treatment.

        Returns:
            Number of plants attacked.
        """
        return self._engine.execute(self._parasite, name)

    def _parasite(self, name: str) -> int:
        self.day_count += 1
        pest_control = self._engine.pest_control
        attacked = 0
        for plant in self._engine.garden.living_plants():
            if name not in self._vulnerabilities.get(plant.plant_type, ()):
                continue
            pest = HarmfulPest(plant.position, name)
            pest.cause_damage(plant)
            pest_control.register_pest(pest)
            attacked += 1
        if attacked:
            logger.warning("Parasite %s attacked %d plants", name, attacked)
        else:
            logger.info("Parasite %s found no vulnerable plants", name)
        return attacked

    # =========================================================================
    # Read model
    # =========================================================================

    def snapshot(self) -> GardenSnapshot:
        return self._engine.snapshot()

    def plant_info(self) -> dict[str, list[Any]]:
        """Parallel lists describing every plant in the garden.

        Returns:
            Dictionary with "plants" (names), "water_requirement" and
            "parasites" (pest names each plant is vulnerable to).
        """
        return self._engine.execute(self._plant_info)

    def _plant_info(self) -> dict[str, list[Any]]:
        plants = self._engine.garden.plants
        return {
            "plants": [plant.name for plant in plants],
            "water_requirement": [plant.water_requirement for plant in plants],
            "parasites": [
                list(self._vulnerabilities.get(plant.plant_type, ())) for plant in plants
            ],
        }

    def log_state(self) -> GardenSnapshot:
        """Log a one-line summary of the garden and return its snapshot."""
        snap = self.snapshot()
        stats = snap.statistics
        logger.info(
            "Day %d, %s: %d/%d plants alive, %d litres water, %d pesticide, "
            "weather %s, %d injections",
            snap.day,
            snap.status,
            stats["living_plants"],
            stats["total_plants"],
            snap.systems.water_supply,
            snap.systems.pesticide_stock,
            snap.weather.name,
            self.day_count,
        )
        return snap
