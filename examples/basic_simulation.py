#!/usr/bin/env python3
"""Basic garden simulation example.

This script demonstrates how to run garden simulations using the pre-built
scenarios and how to drive a garden through the external API.

Run with: python examples/basic_simulation.py
"""

from smartgarden_sim.api import GardenSimulationAPI
from smartgarden_sim.core.config import SimulationConfig
from smartgarden_sim.core.events import Event, EventType
from smartgarden_sim.simulation.scenarios import create_mixed_garden_scenario, run_scenario


def run_mixed_garden() -> None:
    """Run three simulated days of a garden with one plant of every type."""
    print("=" * 60)
    print("MIXED GARDEN: one plant of every type on a 9x9 grid")
    print("=" * 60)

    engine = create_mixed_garden_scenario(seed=42)
    print(f"Start time: {engine.current_time.strftime('%Y-%m-%d %H:%M %Z')}")
    print(f"Plants: {engine.garden.total_plants}")
    print()

    # Track weather changes and daily survivors
    weather_log: list[str] = []
    daily_living: list[tuple[int, int]] = []

    def on_weather(event: Event) -> None:
        weather_log.append(f"{event.timestamp:%d %H:%M} {event.data['current'].name}")

    def on_day(event: Event) -> None:
        daily_living.append((event.data["day"], event.data["living_plants"]))

    engine.event_bus.subscribe(EventType.WEATHER_CHANGED, on_weather)
    engine.event_bus.subscribe(EventType.DAY_ADVANCED, on_day)

    print("Running simulation...")
    result = run_scenario("mixed", engine, ticks=3 * 1440)
    print(f"Completed {result.ticks_completed} ticks ({result.days_completed} days)")
    print(f"Avg tick time: {engine.stats.avg_tick_time:.3f}ms")
    print()

    print("Weather changes:")
    for line in weather_log:
        print(f"  {line}")
    print()

    print(f"{'Day':>4} {'Living':>8}")
    print("-" * 14)
    for day, living in daily_living:
        print(f"{day:>4} {living:>8}")
    print("-" * 14)
    print(f"Water used: {result.water_used} L, treatments: {result.pesticide_used}")
    print()


def run_api_session() -> None:
    """Drive a garden by hand through environmental injections."""
    print("=" * 60)
    print("API SESSION: injections on the default garden")
    print("=" * 60)

    with GardenSimulationAPI.from_config(SimulationConfig(seed=7, tick_interval=0.0)) as api:
        planted = api.initialize_garden()
        print(f"Planted {planted} plants: {api.plant_info()['plants']}")

        api.rain(20)
        celsius = api.temperature(95)
        attacked = api.parasite("Red Mite")
        print(f"Rain, then 95F ({celsius}C), then Red Mite on {attacked} plants")

        for _ in range(10):
            api.engine.step()

        snapshot = api.log_state()
        for plant in snapshot.plants:
            print(
                f"  {plant.name:<12} health {plant.health_level:>3} "
                f"water {plant.water_level:>3} attacks {plant.pest_attacks}"
            )
        print(f"Treatments applied: {snapshot.systems.pesticide_used}")
    print()


def main() -> None:
    """Run garden simulation examples."""
    print()
    print("SMARTGARDEN-SIM: Smart Garden Simulation")
    print()

    run_mixed_garden()
    run_api_session()

    print("=" * 60)
    print("Simulations complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
