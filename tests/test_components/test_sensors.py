"""Tests for sensor components."""

from __future__ import annotations

import numpy as np
import pytest

from smartgarden_sim.components.sensors import MoistureSensor, TemperatureSensor
from smartgarden_sim.core.base import SensorStatus
from smartgarden_sim.core.state import Position
from smartgarden_sim.model.zone import Zone


@pytest.fixture
def zone() -> Zone:
    """A one-cell zone with known readings."""
    zone = Zone(3, [Position(0, 0)])
    zone.moisture_level = 42
    zone.temperature = 18
    return zone


class TestMoistureSensor:
    """Tests for MoistureSensor."""

    def test_reads_zone_moisture(self, zone: Zone) -> None:
        """Noise-free sensors report the zone value."""
        sensor = MoistureSensor("MOISTURE-3", zone)
        assert sensor.measure() == 42
        assert sensor.last_reading == 42
        assert sensor.sensor_id == "MOISTURE-3"

    def test_reading_clamped(self, zone: Zone) -> None:
        """Noisy readings stay on the percent scale."""
        zone.moisture_level = 100
        sensor = MoistureSensor("m", zone, noise_std_dev=50.0, seed=1)
        for _ in range(50):
            assert 0 <= sensor.measure() <= 100

    def test_fault_reports_error_value(self, zone: Zone) -> None:
        """A faulted moisture sensor reports -1."""
        sensor = MoistureSensor("m", zone)
        sensor.inject_fault()

        assert sensor.is_faulted
        assert sensor.status is SensorStatus.ERROR
        assert sensor.last_reading == -1
        assert sensor.measure() is None

    def test_calibrate_clears_fault(self, zone: Zone) -> None:
        """Calibration returns the sensor to service."""
        sensor = MoistureSensor("m", zone)
        sensor.inject_fault()
        sensor.calibrate()

        assert sensor.status is SensorStatus.ACTIVE
        assert sensor.measure() == 42

    def test_disabled_sensor(self, zone: Zone) -> None:
        """Disabled sensors yield nothing."""
        sensor = MoistureSensor("m", zone, enabled=False)
        assert sensor.status is SensorStatus.INACTIVE
        assert sensor.measure() is None


class TestTemperatureSensor:
    """Tests for TemperatureSensor."""

    def test_reads_zone_temperature(self, zone: Zone) -> None:
        """Temperature is read in degrees Celsius."""
        sensor = TemperatureSensor("TEMP-3", zone)
        sensor.update()
        assert sensor.last_reading == 18

    def test_negative_temperatures(self, zone: Zone) -> None:
        """Temperature readings are not clamped."""
        zone.temperature = -12
        assert TemperatureSensor("t", zone).measure() == -12

    def test_fault_reports_error_value(self, zone: Zone) -> None:
        """A faulted temperature sensor reports -999."""
        sensor = TemperatureSensor("t", zone)
        sensor.inject_fault()
        assert sensor.last_reading == -999

    def test_noise_reproducible(self, zone: Zone) -> None:
        """Seeded noise is reproducible."""
        a = TemperatureSensor("a", zone, noise_std_dev=2.0, rng=np.random.default_rng(7))
        b = TemperatureSensor("b", zone, noise_std_dev=2.0, rng=np.random.default_rng(7))
        assert [a.measure() for _ in range(10)] == [b.measure() for _ in range(10)]

    def test_read_failure_faults_sensor(self, zone: Zone) -> None:
        """An exception while reading puts the sensor into ERROR."""

        class BrokenSensor(TemperatureSensor):
            def read(self) -> int:
                raise RuntimeError("wire cut")

        sensor = BrokenSensor("broken", zone)
        assert sensor.measure() is None
        assert sensor.is_faulted

    def test_report_status(self, zone: Zone) -> None:
        """Status line names the sensor, zone and reading."""
        sensor = TemperatureSensor("TEMP-3", zone)
        sensor.measure()
        assert sensor.report_status() == "TEMP-3 in zone 3: ACTIVE (last reading 18)"

    def test_reset(self, zone: Zone) -> None:
        """Reset clears readings and faults."""
        sensor = TemperatureSensor("t", zone)
        sensor.measure()
        sensor.inject_fault()
        sensor.reset()
        assert sensor.last_reading is None
        assert not sensor.is_faulted
