"""Tests for heating, cooling and the unified thermal regulator."""

from __future__ import annotations

import pytest

from smartgarden_sim.controllers.thermal import (
    CoolingSystem,
    HeatingSystem,
    PowerLevel,
    ThermalMode,
    ThermalRegulator,
    apply_temperature_effects,
)
from smartgarden_sim.core.events import EventBus, EventType
from smartgarden_sim.core.state import Position
from smartgarden_sim.model.garden import Garden


def zone_temperatures(garden: Garden) -> set[int]:
    return {zone.temperature for zone in garden.zones.values()}


class TestModes:
    """Tests for the power level and mode enums."""

    def test_level_deltas(self) -> None:
        """Each level moves temperatures by a fixed amount."""
        assert [level.delta for level in PowerLevel] == [0, 1, 2, 3]

    def test_mode_projection(self) -> None:
        """Levels project onto the single mode axis."""
        assert ThermalMode.heating(PowerLevel.HIGH) is ThermalMode.HEATING_HIGH
        assert ThermalMode.cooling(PowerLevel.LOW) is ThermalMode.COOLING_LOW
        assert ThermalMode.heating(PowerLevel.OFF) is ThermalMode.OFF
        assert ThermalMode.cooling(PowerLevel.OFF) is ThermalMode.OFF


class TestHeatingSystem:
    """Tests for HeatingSystem."""

    def test_sets_ambient_on_creation(self, garden: Garden, bus: EventBus) -> None:
        """Zones start at the ambient temperature."""
        HeatingSystem("heating", garden, ambient_temperature=12, event_bus=bus)
        assert zone_temperatures(garden) == {12}

    def test_off_in_range(self, garden: Garden, bus: EventBus) -> None:
        """No heating inside the comfort range."""
        heating = HeatingSystem("heating", garden, event_bus=bus)
        assert heating.regulate() is PowerLevel.OFF
        assert heating.energy_consumption == 0

    @pytest.mark.parametrize(
        ("ambient", "level", "after"),
        [(4, PowerLevel.HIGH, 7), (8, PowerLevel.MEDIUM, 10), (12, PowerLevel.LOW, 13)],
    )
    def test_power_from_error(
        self, garden: Garden, bus: EventBus, ambient: int, level: PowerLevel, after: int
    ) -> None:
        """The larger the shortfall, the higher the power."""
        heating = HeatingSystem("heating", garden, ambient_temperature=ambient, event_bus=bus)

        assert heating.regulate() is level
        assert zone_temperatures(garden) == {after}
        assert heating.energy_consumption == level.delta
        assert heating.heating_active
        assert heating.mode is ThermalMode.heating(level)

    def test_heats_up_to_target_min(self, garden: Garden, bus: EventBus) -> None:
        """Heating raises zones to target_min and no further."""
        heating = HeatingSystem("heating", garden, ambient_temperature=4, event_bus=bus)

        for _ in range(20):
            heating.regulate()

        assert zone_temperatures(garden) == {15}
        assert heating.energy_consumption == 11

    def test_holds_level_inside_deadband(self, garden: Garden, bus: EventBus) -> None:
        """Inside the band the level stays latched without heating."""
        heating = HeatingSystem("heating", garden, ambient_temperature=14, event_bus=bus)

        trace = []
        for _ in range(4):
            level = heating.regulate()
            trace.append((level, min(zone_temperatures(garden)), heating.energy_consumption))

        assert trace == [(PowerLevel.LOW, 15, 1)] * 4
        assert heating.is_active

    def test_releases_at_band_top(self, garden: Garden, bus: EventBus) -> None:
        """The latched level drops once the average reaches the band top."""
        heating = HeatingSystem("heating", garden, ambient_temperature=14, event_bus=bus)
        heating.regulate()

        for zone in garden.zones.values():
            zone.set_temperature(17)

        assert heating.regulate() is PowerLevel.OFF
        assert heating.energy_consumption == 1

    def test_stays_off_above_target_max(self, garden: Garden, bus: EventBus) -> None:
        """A hot garden is never heated."""
        heating = HeatingSystem("heating", garden, ambient_temperature=35, event_bus=bus)
        assert heating.regulate() is PowerLevel.OFF

    def test_invalid_target_range(self, garden: Garden, bus: EventBus) -> None:
        """target_min must be below target_max."""
        heating = HeatingSystem("heating", garden, event_bus=bus)
        with pytest.raises(ValueError, match="must be below"):
            heating.set_target_range(20, 20)

    def test_faulted_sensors_excluded(self, garden: Garden, bus: EventBus) -> None:
        """Only valid readings enter the average."""
        heating = HeatingSystem("heating", garden, event_bus=bus)
        for zone_id, sensor in heating.sensors.items():
            if zone_id != 1:
                sensor.inject_fault()
        garden.zones[1].set_temperature(10)

        assert heating.average_temperature() == 10

    def test_no_valid_sensor_uses_ambient(self, garden: Garden, bus: EventBus) -> None:
        """Without any valid reading the ambient default is used."""
        heating = HeatingSystem("heating", garden, ambient_temperature=18, event_bus=bus)
        for sensor in heating.sensors.values():
            sensor.inject_fault()
        garden.zones[1].set_temperature(0)

        assert heating.average_temperature() == 18

    def test_average_truncates_toward_zero(self, garden: Garden, bus: EventBus) -> None:
        """Sub-zero averages round toward zero like positive ones."""
        heating = HeatingSystem("heating", garden, ambient_temperature=0, event_bus=bus)
        garden.zones[1].set_temperature(-5)

        assert heating.average_temperature() == 0

        garden.zones[2].set_temperature(-5)
        assert heating.average_temperature() == -1

    def test_mode_change_events(self, garden: Garden, bus: EventBus) -> None:
        """Level changes are published."""
        heating = HeatingSystem("heating", garden, ambient_temperature=4, event_bus=bus)
        heating.regulate()

        event = bus.get_history(event_type=EventType.THERMAL_MODE_CHANGED)[-1]
        assert event.data["kind"] == "heating"
        assert event.data["previous"] is PowerLevel.OFF
        assert event.data["current"] is PowerLevel.HIGH


class TestCoolingSystem:
    """Tests for CoolingSystem."""

    def test_threshold_from_living_plants(self, planted_garden: Garden, bus: EventBus) -> None:
        """Threshold is the highest max_temperature among living plants."""
        cooling = CoolingSystem("cooling", planted_garden, event_bus=bus)
        assert cooling.cooling_threshold() == 30

        for plant in planted_garden.plants:
            if plant.name != "Carrot":
                plant.die()
        assert cooling.cooling_threshold() == 28

    def test_cools_down_to_threshold(self, planted_garden: Garden, bus: EventBus) -> None:
        """Cooling lowers zones to the threshold and no further."""
        cooling = CoolingSystem("cooling", planted_garden, event_bus=bus)
        cooling.set_ambient_temperature(45)

        assert cooling.regulate() is PowerLevel.HIGH
        assert zone_temperatures(planted_garden) == {42}

        for _ in range(30):
            cooling.regulate()

        assert zone_temperatures(planted_garden) == {30}
        assert cooling.level is PowerLevel.LOW
        assert cooling.energy_consumption == 15

    def test_holds_level_inside_deadband(self, planted_garden: Garden, bus: EventBus) -> None:
        """Between threshold - hysteresis and the threshold nothing is cooled."""
        for plant in planted_garden.plants:
            if plant.name != "Tomato":
                plant.die()
        cooling = CoolingSystem("cooling", planted_garden, event_bus=bus)
        cooling.set_ambient_temperature(29)

        for _ in range(4):
            cooling.regulate()

        assert zone_temperatures(planted_garden) == {28}
        assert cooling.cooling_active
        assert cooling.energy_consumption == 1

        for zone in planted_garden.zones.values():
            zone.set_temperature(26)
        assert cooling.regulate() is PowerLevel.OFF

    def test_no_living_plants(self, garden: Garden, bus: EventBus) -> None:
        """With nothing alive, cooling stays off."""
        cooling = CoolingSystem("cooling", garden, event_bus=bus)
        cooling.set_ambient_temperature(45)

        assert cooling.regulate() is PowerLevel.OFF
        assert zone_temperatures(garden) == {45}


class TestThermalRegulator:
    """Tests for the unified ThermalRegulator."""

    def test_heating_holds_cooling_off(self, planted_garden: Garden, bus: EventBus) -> None:
        """In the cold only heating acts."""
        regulator = ThermalRegulator(
            "thermal", planted_garden, ambient_temperature=3, event_bus=bus
        )

        regulator.update()

        assert regulator.mode is ThermalMode.HEATING_HIGH
        assert regulator.heating_active
        assert not regulator.cooling_active
        assert regulator.energy_consumption == 3

    def test_cooling_when_hot(self, planted_garden: Garden, bus: EventBus) -> None:
        """In the heat only cooling acts."""
        regulator = ThermalRegulator("thermal", planted_garden, event_bus=bus)
        regulator.set_ambient_temperature(40)

        regulator.update()

        assert regulator.mode is ThermalMode.COOLING_MEDIUM
        assert not regulator.heating_active
        assert zone_temperatures(planted_garden) == {38}

    def test_never_both_active(self, planted_garden: Garden, bus: EventBus) -> None:
        """Heating and cooling never run in the same tick."""
        regulator = ThermalRegulator("thermal", planted_garden, event_bus=bus)
        for ambient in (0, 45, 10, 50, 20):
            regulator.set_ambient_temperature(ambient)
            for _ in range(5):
                regulator.update()
                assert not (regulator.heating_active and regulator.cooling_active)

    def test_converges_into_comfort_band(self, planted_garden: Garden, bus: EventBus) -> None:
        """From the cold the garden is brought back into range."""
        regulator = ThermalRegulator(
            "thermal", planted_garden, ambient_temperature=4, event_bus=bus
        )

        for _ in range(15):
            regulator.update()

        assert zone_temperatures(planted_garden) == {15}
        assert regulator.mode is ThermalMode.HEATING_LOW
        assert not regulator.cooling_active

    def test_plants_feel_zone_temperature(self, planted_garden: Garden, bus: EventBus) -> None:
        """update() applies temperature effects to living plants."""
        regulator = ThermalRegulator("thermal", planted_garden, event_bus=bus)
        regulator.enabled = False
        planted_garden.zones[5].set_temperature(2)

        apply_temperature_effects(planted_garden)

        assert planted_garden.get_plant(Position(3, 3)).health_level == 98
        assert planted_garden.get_plant(Position(1, 1)).health_level == 100

    def test_disabled(self, planted_garden: Garden, bus: EventBus) -> None:
        """A disabled regulator does nothing."""
        regulator = ThermalRegulator(
            "thermal", planted_garden, ambient_temperature=0, event_bus=bus
        )
        regulator.enabled = False
        regulator.update()
        assert regulator.mode is ThermalMode.OFF
        assert zone_temperatures(planted_garden) == {0}

    def test_reset(self, planted_garden: Garden, bus: EventBus) -> None:
        """Reset clears mode and energy."""
        regulator = ThermalRegulator(
            "thermal", planted_garden, ambient_temperature=0, event_bus=bus
        )
        regulator.update()
        regulator.reset()
        assert regulator.mode is ThermalMode.OFF
        assert regulator.energy_consumption == 0
