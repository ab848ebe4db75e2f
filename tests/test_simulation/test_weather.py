"""Tests for the weather process."""

from __future__ import annotations

import numpy as np
import pytest

from smartgarden_sim.core.events import EventBus, EventType
from smartgarden_sim.core.state import Position, Weather
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.simulation.weather import (
    TRANSITION_TABLE,
    WEATHER_STRATEGIES,
    ForcedWeatherStrategy,
    MarkovWeatherStrategy,
    RotationWeatherStrategy,
    WeatherSystem,
)


class TestMarkovWeatherStrategy:
    """Tests for the default transition table strategy."""

    def test_table_rows_sum_to_one(self) -> None:
        """Every row of the default table is a distribution."""
        for row in TRANSITION_TABLE.values():
            assert sum(p for _, p in row) == pytest.approx(1.0)

    def test_invalid_table(self) -> None:
        """Rows that do not sum to 1 are rejected."""
        table = {Weather.SUNNY: ((Weather.SUNNY, 0.5), (Weather.RAINY, 0.2))}
        with pytest.raises(ValueError, match="sum to"):
            MarkovWeatherStrategy(table)

    def test_invalid_durations(self) -> None:
        """The duration range must be non-empty."""
        with pytest.raises(ValueError, match="Invalid duration range"):
            MarkovWeatherStrategy(min_duration=50, max_duration=10)

    def test_transitions_follow_table(self, rng: np.random.Generator) -> None:
        """Only listed successors are ever chosen."""
        strategy = MarkovWeatherStrategy()
        allowed = {w for w, _ in TRANSITION_TABLE[Weather.SUNNY]}

        for _ in range(500):
            weather, duration = strategy.next_weather(Weather.SUNNY, rng)
            assert weather in allowed
            assert 30 <= duration <= 120

    def test_sunny_mostly_stays_sunny(self, rng: np.random.Generator) -> None:
        """The most likely successor of SUNNY is SUNNY."""
        strategy = MarkovWeatherStrategy()
        draws = [strategy.next_weather(Weather.SUNNY, rng)[0] for _ in range(2000)]
        assert draws.count(Weather.SUNNY) / len(draws) == pytest.approx(0.6, abs=0.05)

    def test_reproducible(self) -> None:
        """Equal seeds give equal sequences."""
        strategy = MarkovWeatherStrategy()
        a = np.random.default_rng(9)
        b = np.random.default_rng(9)
        assert [strategy.next_weather(Weather.CLOUDY, a) for _ in range(20)] == [
            strategy.next_weather(Weather.CLOUDY, b) for _ in range(20)
        ]


class TestOtherStrategies:
    """Tests for forced and rotation strategies."""

    def test_forced(self, rng: np.random.Generator) -> None:
        """Forced weather never changes."""
        strategy = ForcedWeatherStrategy(Weather.SNOWY, duration=7)
        assert strategy.next_weather(Weather.SUNNY, rng) == (Weather.SNOWY, 7)

    def test_rotation(self, rng: np.random.Generator) -> None:
        """Rotation cycles through its sequence."""
        strategy = RotationWeatherStrategy([Weather.SUNNY, Weather.RAINY])
        assert strategy.next_weather(Weather.SUNNY, rng)[0] is Weather.RAINY
        assert strategy.next_weather(Weather.RAINY, rng)[0] is Weather.SUNNY
        assert strategy.next_weather(Weather.WINDY, rng)[0] is Weather.SUNNY

    def test_invalid_rotation(self) -> None:
        """Empty rotations and non-positive durations are rejected."""
        with pytest.raises(ValueError, match="must not be empty"):
            RotationWeatherStrategy([])
        with pytest.raises(ValueError, match="duration"):
            ForcedWeatherStrategy(duration=0)

    def test_registry_of_strategies(self) -> None:
        """Strategies are looked up by name."""
        assert set(WEATHER_STRATEGIES) == {"markov", "forced", "rotation"}


class TestWeatherSystem:
    """Tests for the WeatherSystem countdown."""

    def test_initial_state(self, garden: Garden, bus: EventBus) -> None:
        """Weather starts sunny for 60 minutes."""
        weather = WeatherSystem("weather", garden, event_bus=bus)
        assert weather.current_weather is Weather.SUNNY
        assert weather.remaining == 60
        assert not weather.is_raining
        assert weather.change_count == 0

    def test_countdown(self, garden: Garden, bus: EventBus) -> None:
        """Each update is one minute."""
        weather = WeatherSystem("weather", garden, event_bus=bus)
        weather.update()
        assert weather.remaining == 59

    def test_change_when_countdown_expires(self, planted_garden: Garden, bus: EventBus) -> None:
        """An expired countdown asks the strategy for the next weather."""
        weather = WeatherSystem(
            "weather",
            planted_garden,
            strategy=ForcedWeatherStrategy(Weather.RAINY, duration=5),
            initial_duration=1,
            event_bus=bus,
        )

        weather.update()

        assert weather.current_weather is Weather.RAINY
        assert weather.remaining == 5
        assert weather.change_count == 1
        event = bus.get_history(event_type=EventType.WEATHER_CHANGED)[-1]
        assert event.data["previous"] is Weather.SUNNY
        assert event.data["current"] is Weather.RAINY
        assert event.data["duration"] == 5

    def test_rain_applies_every_tick(self, planted_garden: Garden, bus: EventBus) -> None:
        """Rain waters plants and soil every minute."""
        weather = WeatherSystem(
            "weather", planted_garden, initial_weather=Weather.RAINY, event_bus=bus
        )

        weather.update()
        weather.update()

        assert planted_garden.zones[1].moisture_level == 60
        assert planted_garden.get_plant(Position(3, 3)).water_level == 66

    def test_sun_applies_every_tenth_minute(self, planted_garden: Garden, bus: EventBus) -> None:
        """Sun dries the soil only when the countdown hits a multiple of ten."""
        weather = WeatherSystem("weather", planted_garden, initial_duration=12, event_bus=bus)

        weather.update()
        assert planted_garden.zones[1].moisture_level == 50

        weather.update()
        assert planted_garden.zones[1].moisture_level == 48

    def test_same_weather_not_announced(self, garden: Garden, bus: EventBus) -> None:
        """Only real changes are published."""
        weather = WeatherSystem(
            "weather",
            garden,
            strategy=ForcedWeatherStrategy(Weather.SUNNY, duration=3),
            initial_duration=1,
            event_bus=bus,
        )

        weather.update()

        assert weather.remaining == 3
        assert weather.change_count == 0
        assert bus.get_history(event_type=EventType.WEATHER_CHANGED) == []

    def test_manual_mode_holds_weather(self, garden: Garden, bus: EventBus) -> None:
        """Without automatic transitions the countdown restarts at 60."""
        weather = WeatherSystem(
            "weather",
            garden,
            strategy=ForcedWeatherStrategy(Weather.SNOWY),
            initial_duration=1,
            automatic=False,
            event_bus=bus,
        )

        weather.update()

        assert weather.current_weather is Weather.SUNNY
        assert weather.remaining == 60

    def test_set_weather(self, garden: Garden, bus: EventBus) -> None:
        """Overrides restart the countdown and are announced."""
        weather = WeatherSystem("weather", garden, initial_duration=5, event_bus=bus)

        weather.set_weather(Weather.SNOWY)

        assert weather.current_weather is Weather.SNOWY
        assert weather.remaining == 60
        assert len(bus.get_history(event_type=EventType.WEATHER_CHANGED)) == 1

    def test_forecast_does_not_change_state(self, garden: Garden, bus: EventBus) -> None:
        """Forecasts are side-effect free."""
        weather = WeatherSystem("weather", garden, seed=4, event_bus=bus)

        for _ in range(10):
            assert weather.forecast() in Weather

        assert weather.current_weather is Weather.SUNNY
        assert weather.remaining == 60

    def test_seeded_runs_match(self, garden: Garden) -> None:
        """Equal seeds give equal weather histories."""
        histories = []
        for _ in range(2):
            weather = WeatherSystem("weather", garden, seed=11, event_bus=EventBus())
            history = []
            for _ in range(1000):
                weather.update()
                history.append(weather.current_weather)
            histories.append(history)
        assert histories[0] == histories[1]

    def test_disabled(self, garden: Garden, bus: EventBus) -> None:
        """A disabled weather system is frozen."""
        weather = WeatherSystem("weather", garden, enabled=False, event_bus=bus)
        weather.update()
        assert weather.remaining == 60

    def test_reset(self, garden: Garden, bus: EventBus) -> None:
        """Reset returns to sunny."""
        weather = WeatherSystem("weather", garden, initial_weather=Weather.WINDY, event_bus=bus)
        weather.reset()
        assert weather.current_weather is Weather.SUNNY
        assert weather.remaining == 60
