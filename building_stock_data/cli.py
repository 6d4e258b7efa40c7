"""
Building stock data CLI.

Command-line interface for processing the raw building stock data into
harmonized building archetype statistics.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import settings
from .core.errors import BuildingStockDataError
from .export.statistics_json import export_statistics
from .ingest.spine_json import load_repository
from .integrity import validate_repository
from .pipeline import create_processed_statistics
from .statistical.structure_statistics import add_light_structure_types
from .structural.catalog import build_catalog, find_design_u_value_deviations
from .utils.logging_config import setup_logging
from .utils.validation import ValidationError

app = typer.Typer(
    name="building-stock-data",
    help="Building stock data - harmonized building archetype properties from raw data",
    add_completion=False,
)
console = Console()


def _load(input_file: Path):
    """Load the raw data, exiting with code 1 on unreadable or malformed input."""
    try:
        return load_repository(input_file)
    except (OSError, ValueError) as e:
        # pydantic and json decoding errors are ValueErrors
        console.print(f"[red]Cannot load {input_file}:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def process(
    input_file: Path = typer.Argument(..., help="Raw data JSON export"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output JSON file (default: <output_dir>/processed_statistics.json)"
    ),
    thermal_conductivity_weight: Optional[float] = typer.Option(
        None, "--thermal-conductivity-weight", help="0 = min, 1 = max material conductivity"
    ),
    interior_node_depth: Optional[float] = typer.Option(
        None, "--interior-node-depth", help="Depth of the structure temperature node [0, 1]"
    ),
    variation_period: Optional[float] = typer.Option(
        None, "--variation-period", help="Period of variations [s] for effective thermal mass"
    ),
    num_location_ids: Optional[int] = typer.Option(
        None, "--num-locations", "-n", help="Only process the first N locations"
    ),
    max_workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads"),
    skip_missing: bool = typer.Option(
        False, "--skip-missing/--raise-missing", help="Skip cells without applicable data"
    ),
    strict: bool = typer.Option(
        False, "--strict/--no-strict", help="Abort on integrity violations"
    ),
    log_level: str = typer.Option("INFO", "--log-level", envvar="BSD_LOG_LEVEL", help="Log level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write the log to this file"),
):
    """
    Process raw building stock data into the output statistics.
    """
    setup_logging(level=log_level.upper(), log_file=log_file)
    console.print(Panel.fit(
        "[bold blue]Building Stock Data[/bold blue]\n"
        "Processing raw data into building archetype statistics",
        border_style="blue"
    ))

    settings.ensure_dirs()
    output = output or settings.output_dir / "processed_statistics.json"

    try:
        parameters = settings.processing_parameters(
            thermal_conductivity_weight=thermal_conductivity_weight,
            interior_node_depth=interior_node_depth,
            variation_period=variation_period,
            num_location_ids=num_location_ids,
            max_workers=max_workers,
            on_missing_data="skip" if skip_missing else "raise",
            strict_integrity=strict,
        )
    except ValueError as e:
        console.print(f"[red]Invalid parameters:[/red] {e}")
        raise typer.Exit(2)

    console.print(f"\n[cyan]Loading:[/cyan] {input_file}")
    repository = _load(input_file)

    try:
        statistics = create_processed_statistics(repository, parameters)
    except (BuildingStockDataError, ValidationError) as e:
        console.print(f"[red]Processing failed:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Processed Statistics")
    table.add_column("Relation", style="cyan")
    table.add_column("Entries", style="white", justify="right")
    for name, relation in statistics.relations().items():
        table.add_row(name, f"{len(relation):,}")
    table.add_row("structures catalogued", f"{len(statistics.catalog):,}")
    console.print(table)

    export_statistics(statistics, output)


@app.command()
def check(
    input_file: Path = typer.Argument(..., help="Raw data JSON export"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum violations to list"),
):
    """
    Check the integrity of raw building stock data.
    """
    repository = _load(input_file)
    report = validate_repository(repository)

    if report.ok:
        console.print(f"[green]No integrity violations ({len(report.checks_run)} checks)[/green]")
        return

    table = Table(title=f"Integrity Violations ({len(report)})")
    table.add_column("Category", style="yellow")
    table.add_column("Entity", style="cyan")
    table.add_column("Key", style="white")
    table.add_column("Message", style="white")
    for violation in report.violations[:limit]:
        table.add_row(violation.category.value, violation.entity, violation.key, violation.message)
    console.print(table)

    for category, count in sorted(report.summary().items()):
        console.print(f"  {category}: {count}")
    raise typer.Exit(1)


@app.command()
def diagnose(
    input_file: Path = typer.Argument(..., help="Raw data JSON export"),
    tolerance: float = typer.Option(
        0.1, "--tolerance", "-t", help="Relative excess over the design U-value to report"
    ),
):
    """
    List structures whose calculated U-value exceeds their design U-value.
    """
    repository = _load(input_file)
    add_light_structure_types(repository)
    try:
        catalog = build_catalog(repository, settings.processing_parameters())
    except (BuildingStockDataError, ValidationError) as e:
        console.print(f"[red]Catalog failed:[/red] {e}")
        raise typer.Exit(1)
    deviations = find_design_u_value_deviations(catalog, tolerance=tolerance)

    console.print(Panel.fit(
        f"[bold]{len(deviations)}[/bold] of {len(catalog)} structures exceed "
        f"their design U-value by {tolerance:.0%} or more",
        border_style="yellow" if deviations else "green"
    ))
    if not deviations:
        return

    table = Table(title="Design U-value Deviations")
    table.add_column("Structure", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Design U [W/m²K]", justify="right")
    table.add_column("Total U [W/m²K]", justify="right")
    table.add_column("Deviation", justify="right", style="yellow")
    for d in deviations:
        table.add_row(
            d.structure,
            d.structure_type,
            f"{d.design_U_value:.3f}",
            f"{d.total_U_value:.3f}",
            f"{d.relative_deviation:+.0%}",
        )
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from . import __version__
    console.print(f"Building Stock Data v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
