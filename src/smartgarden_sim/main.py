"""CLI interface for smartgarden-sim.

This module provides a command-line interface for running garden
simulations from YAML configuration files without writing code.

Usage:
    sgsim run my-garden.yaml
    sgsim run --scenario drought --ticks 2880
    sgsim list
    sgsim init "My Garden" -o my-garden.yaml
    sgsim validate my-garden.yaml
    sgsim plants
    sgsim components
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

if TYPE_CHECKING:
    from smartgarden_sim.simulation.engine import SimulationEngine, SimulationStats

from smartgarden_sim import __version__
from smartgarden_sim.core.config import (
    GardenConfig,
    PestControlConfig,
    PlantingConfig,
    SimulationConfig,
    WateringConfig,
    WeatherConfig,
    load_config,
    save_config,
)
from smartgarden_sim.core.journal import ROOT_LOGGER_NAME, EventJournal
from smartgarden_sim.core.registry import list_components
from smartgarden_sim.model.catalog import DEFAULT_VULNERABILITIES, PlantType
from smartgarden_sim.simulation.factory import (
    create_engine_from_config,
    ensure_components_registered,
)

app = typer.Typer(
    name="sgsim",
    help="Tick-based smart garden simulation.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

# Built-in scenario names
BUILTIN_SCENARIOS = ["basic", "drought", "cold-snap", "pest-outbreak"]

# Ticks run when neither --ticks nor duration_ticks is given (one day)
DEFAULT_RUN_TICKS = 1440


def get_scenarios_dir() -> Path:
    """Get the examples/scenarios directory.

    Looks for scenarios in:
    1. Relative to package root (development)
    2. Relative to current working directory
    """
    # Development: relative to package
    pkg_dir = Path(__file__).parent.parent.parent / "examples" / "scenarios"
    if pkg_dir.exists():
        return pkg_dir

    # CWD fallback
    cwd_dir = Path.cwd() / "examples" / "scenarios"
    if cwd_dir.exists():
        return cwd_dir

    return Path("examples/scenarios")


def configure_logging(level: str) -> None:
    """Route package log records to the console through rich.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR).
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setLevel(level.upper())
    logger.addHandler(handler)
    logger.setLevel(level.upper())


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sgsim {__version__}")
        raise typer.Exit


@app.callback()
def cli(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show the version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Smart garden simulation: irrigation, thermal and pest control loops."""


@app.command()
def run(
    config_path: Annotated[
        Path | None,
        typer.Argument(help="Path to YAML configuration file"),
    ] = None,
    scenario: Annotated[
        str | None,
        typer.Option("--scenario", "-s", help="Built-in scenario name"),
    ] = None,
    ticks: Annotated[
        int | None,
        typer.Option("--ticks", "-n", min=1, help="Number of one-minute ticks to run"),
    ] = None,
    speed: Annotated[
        int | None,
        typer.Option("--speed", min=1, max=10, help="Override speed multiplier"),
    ] = None,
    realtime: Annotated[
        bool,
        typer.Option(
            "--realtime/--fast",
            help="Pace ticks at the configured tick interval instead of running flat out",
        ),
    ] = False,
    journal_path: Annotated[
        Path | None,
        typer.Option("--journal", "-j", help="Append log records to this journal file"),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option("--log-level", "-l", help="Console log level"),
    ] = "WARNING",
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Output directory for results"),
    ] = None,
    format_: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: console, csv, json"),
    ] = "console",
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Run a garden simulation headless from configuration."""
    # Resolve config source
    if config_path and scenario:
        console.print("[red]Error:[/] Cannot specify both config file and --scenario")
        raise typer.Exit(1)

    if scenario:
        if scenario not in BUILTIN_SCENARIOS:
            console.print(f"[red]Error:[/] Unknown scenario '{scenario}'")
            console.print(f"Available: {', '.join(BUILTIN_SCENARIOS)}")
            raise typer.Exit(1)

        config_path = get_scenarios_dir() / f"{scenario}.yaml"
        if not config_path.exists():
            console.print(f"[red]Error:[/] Scenario file not found: {config_path}")
            raise typer.Exit(1)

    if not config_path:
        console.print("[red]Error:[/] Provide a config file or --scenario")
        raise typer.Exit(1)

    if format_ not in ("console", "csv", "json"):
        console.print(f"[red]Error:[/] Unknown output format '{format_}'")
        raise typer.Exit(1)

    if log_level.upper() not in logging.getLevelNamesMapping():
        console.print(f"[red]Error:[/] Unknown log level '{log_level}'")
        raise typer.Exit(1)

    # Load and validate config
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        console.print(f"[red]Error:[/] Config file not found: {config_path}")
        raise typer.Exit(1) from None
    except Exception as e:
        console.print(f"[red]Error:[/] Invalid configuration: {e}")
        raise typer.Exit(1) from None

    # Apply overrides
    updates: dict[str, float | int] = {}
    if speed is not None:
        updates["speed"] = speed
    if not realtime:
        updates["tick_interval"] = 0.0
    if updates:
        config = config.model_copy(update=updates)
    limit = ticks or config.duration_ticks or DEFAULT_RUN_TICKS

    configure_logging(log_level)
    journal = EventJournal(journal_path).attach() if journal_path else None

    try:
        # Create engine
        try:
            engine = create_engine_from_config(config)
        except KeyError as e:
            console.print(f"[red]Error:[/] Unknown component type: {e}")
            raise typer.Exit(1) from None
        except Exception as e:
            console.print(f"[red]Error:[/] Failed to create simulation: {e}")
            raise typer.Exit(1) from None

        if engine.garden.update_living_count() == 0:
            console.print("[red]Error:[/] The configuration plants nothing")
            raise typer.Exit(1)

        # Run simulation
        if not quiet:
            console.print(f"\n[bold]Running:[/] {config.name}")
            console.print(
                f"  Garden: {config.garden.rows}x{config.garden.columns}, "
                f"{engine.garden.total_plants} plants"
            )
            console.print(f"  Ticks: {limit} ({limit / 1440:.1f} days)\n")
            stats = _run_with_progress(engine, limit)
        else:
            stats = engine.run(limit)
    finally:
        if journal is not None:
            journal.detach()
            journal.close()

    # Output results
    _output_results(engine, stats, format_, output_dir, quiet)
    if journal is not None and not quiet:
        console.print(f"\n[dim]Journal: {len(journal.entries())} entries in {journal_path}[/]")


def _run_with_progress(engine: SimulationEngine, ticks: int) -> SimulationStats:
    """Drive the engine tick by tick behind a rich progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task = progress.add_task("Simulating...", total=ticks)
        engine.start(background=False)
        try:
            for _ in range(ticks):
                if not engine.is_running:
                    break
                engine.step()
                progress.advance(task)
        finally:
            stats = engine.stop()
        progress.update(task, description="[green]Complete!")
    return stats


@app.command("list")
def list_scenarios() -> None:
    """List available built-in scenarios."""
    scenarios_dir = get_scenarios_dir()

    table = Table(title="Available Scenarios")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Plants", justify="right")

    for name in BUILTIN_SCENARIOS:
        path = scenarios_dir / f"{name}.yaml"
        if path.exists():
            try:
                config = load_config(path)
                table.add_row(name, config.name, str(len(config.plantings)))
            except Exception:
                table.add_row(name, "[dim]Error loading[/]", "-")
        else:
            table.add_row(name, "[dim]Not found[/]", "-")

    console.print(table)
    console.print(f"\nScenarios directory: {scenarios_dir}")


@app.command()
def init(
    name: Annotated[str, typer.Argument(help="Name for the new scenario")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file path"),
    ] = None,
) -> None:
    """Generate a starter YAML configuration file."""
    config = SimulationConfig(
        name=name,
        seed=42,
        duration_ticks=1440 * 3,
        garden=GardenConfig(rows=9, columns=9),
        plantings=[
            PlantingConfig(plant="Strawberry", row=1, column=1),
            PlantingConfig(plant="Carrot", row=2, column=2),
            PlantingConfig(plant="Tomato", row=3, column=3),
            PlantingConfig(plant="Sunflower", row=4, column=4),
        ],
        weather=WeatherConfig(strategy="markov"),
        watering=WateringConfig(initial_supply=10_000),
        pest_control=PestControlConfig(spawn_probability=0.05),
    )

    # Generate filename from name if not specified
    if output is None:
        # Convert name to filename: "My Garden" -> "my-garden.yaml"
        filename = name.lower().replace(" ", "-") + ".yaml"
        output = Path(filename)

    save_config(config, output)
    console.print(f"[green]Created:[/] {output}")
    console.print("\nEdit this file to customize your simulation, then run:")
    console.print(f"  sgsim run {output}")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to YAML configuration")],
) -> None:
    """Validate a configuration file without running."""
    try:
        config = load_config(config_path)
        console.print(f"[green]Valid:[/] {config.name}")
        console.print(f"  Garden: {config.garden.rows}x{config.garden.columns}")
        console.print(f"  Plantings: {len(config.plantings)}")
        duration = config.duration_ticks
        console.print(f"  Duration: {f'{duration} ticks' if duration else 'indefinite'}")
        console.print(f"  Weather: {config.weather.strategy}")
        console.print(f"  Thermal: {config.thermal.mode if config.thermal.enabled else 'disabled'}")
        console.print(f"  Water supply: {config.watering.initial_supply} litres")
        console.print(f"  Pesticide stock: {config.pest_control.initial_stock}")
    except FileNotFoundError:
        console.print(f"[red]Error:[/] File not found: {config_path}")
        raise typer.Exit(1) from None
    except Exception as e:
        console.print(f"[red]Invalid:[/] {e}")
        raise typer.Exit(1) from None


@app.command()
def plants() -> None:
    """Show the plant catalog."""
    table = Table(title="Plant Catalog")
    table.add_column("Plant", style="cyan")
    table.add_column("Category")
    table.add_column("Water", justify="right")
    table.add_column("Temp (C)", justify="right")
    table.add_column("Lifespan", justify="right")
    table.add_column("Vulnerable to")

    for plant_type in PlantType:
        profile = plant_type.profile
        table.add_row(
            plant_type.display_name,
            plant_type.category.value,
            str(profile.water_requirement),
            f"{profile.min_temperature}..{profile.max_temperature}",
            f"{profile.max_lifespan}d",
            ", ".join(DEFAULT_VULNERABILITIES.get(plant_type, ())),
        )

    console.print(table)


@app.command()
def components() -> None:
    """List registered component types."""
    ensure_components_registered()
    table = Table(title="Registered Components")
    table.add_column("Category", style="cyan")
    table.add_column("Types")

    for category, types in sorted(list_components().items()):
        table.add_row(category, ", ".join(sorted(types)))

    console.print(table)


def _output_results(
    engine: SimulationEngine,
    stats: SimulationStats,
    format_: str,
    output_dir: Path | None,
    quiet: bool,
) -> None:
    """Output simulation results in requested format.

    Args:
        engine: The simulation engine after running.
        stats: Statistics from the simulation run.
        format_: Output format (console, csv, json).
        output_dir: Optional directory for file outputs.
        quiet: If True, suppress console output.
    """
    snapshot = engine.snapshot()
    garden = snapshot.statistics
    systems = snapshot.systems
    summary: dict[str, float | int | str] = {
        "ticks_completed": stats.ticks_completed,
        "days_completed": stats.days_completed,
        "tick_errors": stats.tick_errors,
        "simulation_time_seconds": stats.simulation_time.total_seconds(),
        "wall_time_seconds": stats.wall_time.total_seconds(),
        "living_plants": garden["living_plants"],
        "dead_plants": garden["dead_plants"],
        "weather": snapshot.weather.name,
        "water_supply": systems.water_supply,
        "water_used": systems.total_water_used,
        "pesticide_stock": systems.pesticide_stock,
        "pesticide_used": systems.pesticide_used,
        "energy_consumption": systems.energy_consumption,
    }

    # Console output
    if format_ == "console" and not quiet:
        table = Table(title="Simulation Complete")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        table.add_row("Ticks completed", str(stats.ticks_completed))
        table.add_row("Days completed", str(stats.days_completed))
        table.add_row("Simulated time", str(stats.simulation_time))
        table.add_row("Wall time", f"{stats.wall_time.total_seconds():.2f}s")
        table.add_row("Plants alive", f"{garden['living_plants']}/{garden['total_plants']}")
        table.add_row("Weather", snapshot.weather.name)
        table.add_row("Water supply", f"{systems.water_supply} L")
        table.add_row("Water used", f"{systems.total_water_used} L")
        table.add_row("Pesticide stock", str(systems.pesticide_stock))
        table.add_row("Treatments applied", str(systems.pesticide_used))
        table.add_row("Tick errors", str(stats.tick_errors))
        console.print()
        console.print(table)

        plants_table = Table(title="Plants")
        plants_table.add_column("Plant", style="cyan")
        plants_table.add_column("Cell")
        plants_table.add_column("Stage")
        plants_table.add_column("Health", justify="right")
        plants_table.add_column("Water", justify="right")
        plants_table.add_column("Status")
        for plant in snapshot.plants:
            plants_table.add_row(
                plant.name,
                str(plant.position),
                plant.growth_stage.name,
                str(plant.health_level),
                str(plant.water_level),
                "[red]dead[/]" if plant.is_dead else "[green]alive[/]",
            )
        console.print(plants_table)

    # File outputs
    if output_dir:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        if format_ == "json" or format_ == "console":
            result = {**summary, "final_state": snapshot.to_dict()}
            json_path = output_dir / "results.json"
            json_path.write_text(json.dumps(result, indent=2))
            if not quiet:
                console.print(f"\n[dim]Results saved to {json_path}[/]")

        if format_ == "csv":
            csv_path = output_dir / "results.csv"
            with csv_path.open("w") as f:
                f.write("metric,value\n")
                for key, value in summary.items():
                    f.write(f"{key},{value}\n")
            if not quiet:
                console.print(f"\n[dim]Results saved to {csv_path}[/]")
    elif format_ == "json" and not quiet:
        console.print_json(json.dumps(summary))


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success).
    """
    try:
        app()
        return 0
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1


if __name__ == "__main__":
    sys.exit(main())
