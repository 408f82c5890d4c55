# -*- coding: utf-8 -*-
"""
esgcore emissions - Scope 1/2/3 emissions from activity data files

Input files are JSON/YAML mappings of activity key -> quantity, e.g.::

    {"naturalGasKwh": 1000, "dieselLiters": 250}

``emissions total`` expects ``{"scope1": {...}, "scope2": {...}, "scope3": {...}}``.
"""

from typing import Any

import typer
from rich import box
from rich.table import Table

from esgcore.cli.inputs import console, load_input, print_json, print_warnings
from esgcore.config import get_config
from esgcore.emissions.activity import ActivityEmissionsCalculator
from esgcore.emissions.models import EmissionResult, Scope2Method, Scope2Result
from esgcore.exceptions import EsgCoreException

app = typer.Typer(no_args_is_help=True)


def _require_mapping(data: Any, input_file: str) -> dict:
    if not isinstance(data, dict):
        console.print(f"[red]{input_file} must contain a mapping of activity -> quantity[/red]")
        raise typer.Exit(1)
    return data


def _render(result: EmissionResult, as_json: bool) -> None:
    if as_json:
        print_json(result.to_dict())
        return

    table = Table(title=f"Scope {result.scope} Emissions", box=box.ROUNDED)
    table.add_column("Activity", style="cyan")
    places = get_config().reporting_decimal_places
    table.add_column("kg CO2e", justify="right")
    for activity, mass in result.breakdown.items():
        table.add_row(activity, f"{mass:,.{places}f}")
    table.add_row("[bold]Total[/bold]", f"[bold]{result.total_kg_co2e:,.{places}f}[/bold]")
    console.print(table)

    console.print(f"Total: [bold green]{result.total_tonnes_co2e:,.5f} tCO2e[/bold green]")
    console.print(f"Methodology: {result.methodology}")
    console.print(f"Uncertainty: ±{result.uncertainty_fraction * 100:.1f}%")
    if isinstance(result, Scope2Result):
        console.print(
            f"T&D losses (Scope 3, not in total): {result.td_losses_tonnes_co2e:,.5f} tCO2e"
        )
    if not result.data_available:
        console.print("[yellow]No data available[/yellow]")
    print_warnings(result.warnings)


def _run(scope: int, input_file: str, as_json: bool, method: str = "location-based") -> None:
    activities = _require_mapping(load_input(input_file), input_file)
    try:
        result = ActivityEmissionsCalculator().calculate(scope, activities, method=method)
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _render(result, as_json)


@app.command()
def scope1(
    input_file: str = typer.Option(..., "--input", "-I", help="Activity data file (JSON/YAML)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Direct emissions from fuel combustion"""
    _run(1, input_file, as_json)


@app.command()
def scope2(
    input_file: str = typer.Option(..., "--input", "-I", help="Activity data file (JSON/YAML)"),
    method: Scope2Method = typer.Option(
        Scope2Method.LOCATION_BASED, "--method", "-m", help="Scope 2 accounting method"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Indirect emissions from purchased electricity"""
    _run(2, input_file, as_json, method=method.value)


@app.command()
def scope3(
    input_file: str = typer.Option(..., "--input", "-I", help="Activity data file (JSON/YAML)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Value-chain emissions: travel, purchased goods, materials, waste, water"""
    _run(3, input_file, as_json)


@app.command()
def total(
    input_file: str = typer.Option(..., "--input", "-I", help="Scopes file (JSON/YAML)"),
    method: Scope2Method = typer.Option(
        Scope2Method.LOCATION_BASED, "--method", "-m", help="Scope 2 accounting method"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Scope 1 + 2 + 3 roll-up with percentage shares"""
    data = _require_mapping(load_input(input_file), input_file)
    try:
        summary = ActivityEmissionsCalculator().calculate_total(
            data.get("scope1"), data.get("scope2"), data.get("scope3"),
            scope2_method=method,
        )
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if as_json:
        print_json(summary.to_dict())
        return

    table = Table(title="Total Emissions", box=box.ROUNDED)
    table.add_column("Scope", style="cyan")
    table.add_column("tCO2e", justify="right")
    table.add_column("Share", justify="right")
    for name, tonnes in summary.breakdown.items():
        table.add_row(name, f"{tonnes:,.5f}", f"{summary.percentages[name]}%")
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total_tonnes_co2e:,.5f}[/bold]", "100%")
    console.print(table)
    print_warnings(summary.warnings)
