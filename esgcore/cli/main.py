# -*- coding: utf-8 -*-
"""
esgcore CLI
====================

Command-line front end for the emissions, compliance and forecasting engines.
"""

from typing import Optional

import typer
from rich import box
from rich.table import Table

from esgcore.cli.cmd_emissions import app as emissions_app
from esgcore.cli.cmd_factors import app as factors_app
from esgcore.cli.inputs import console, load_input, print_json, print_warnings
from esgcore.config import configure_logging, get_config
from esgcore.exceptions import EsgCoreException

app = typer.Typer(
    name="esgcore",
    help="esgcore: ESG emissions and compliance scoring engine",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def _root(
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """
    esgcore - ESG emissions and compliance scoring engine
    """
    configure_logging(get_config())
    if version:
        from esgcore._version import __version__

        console.print(f"esgcore v{__version__}")
        raise typer.Exit(0)


@app.command()
def version():
    """Show esgcore version"""
    from esgcore._version import __version__

    console.print(f"[bold green]esgcore v{__version__}[/bold green]")
    console.print("ESG emissions and compliance scoring engine")


@app.command()
def financed(
    input_file: str = typer.Option(..., "--input", "-I", help="Counterparty or portfolio file (JSON/YAML)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """PCAF financed emissions for one counterparty or a list of holdings"""
    from esgcore.emissions.financed import FinancedEmissionsCalculator

    data = load_input(input_file)
    calculator = FinancedEmissionsCalculator()
    try:
        if isinstance(data, list):
            results, summary = calculator.calculate_portfolio(data)
        elif isinstance(data, dict):
            results, summary = [calculator.calculate(data)], None
        else:
            console.print("[red]Input must be a counterparty mapping or a list of them[/red]")
            raise typer.Exit(1)
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid counterparty data: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        payload = {"results": [r.to_dict() for r in results]}
        if summary is not None:
            payload["portfolio"] = summary.to_dict()
        print_json(payload)
        return

    table = Table(title="Financed Emissions (PCAF)", box=box.ROUNDED)
    table.add_column("Counterparty", style="cyan")
    table.add_column("Basis")
    table.add_column("DQ", justify="center")
    table.add_column("Attribution", justify="right")
    table.add_column("Financed tCO2e", justify="right")
    table.add_column("tCO2e / $M", justify="right")
    for result in results:
        table.add_row(
            result.counterparty_name or "-",
            result.estimation_basis.value,
            str(result.data_quality_tier),
            f"{result.attribution_percent:.2f}%",
            f"{result.total_tonnes_co2e:,.4f}",
            f"{result.portfolio_carbon_intensity:,.4f}",
        )
    console.print(table)

    for result in results:
        print_warnings(result.warnings)

    if summary is not None:
        console.print(
            f"\nPortfolio: [bold green]{summary.total_financed_emissions_tonnes:,.4f} tCO2e[/bold green] "
            f"across {summary.asset_count} holdings"
        )
        console.print(f"Weighted carbon intensity: {summary.weighted_carbon_intensity:,.4f} tCO2e/$M")
        console.print(f"Exposure-weighted data quality: {summary.exposure_weighted_data_quality:.2f}")


@app.command()
def progress(
    framework: str = typer.Option(..., "--framework", "-f", help="Framework id (gri, tcfd, ...)"),
    input_file: str = typer.Option(..., "--input", "-I", help="Disclosure tree file (JSON/YAML)"),
    show_missing: bool = typer.Option(False, "--missing", help="List incomplete fields"),
):
    """Completion progress of a framework disclosure tree"""
    from esgcore.compliance.progress import FrameworkProgressTracker

    tree = load_input(input_file)
    try:
        tracker = FrameworkProgressTracker(framework)
        result = tracker.compute_progress(tree)
        missing = tracker.incomplete_fields(tree) if show_missing else []
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[bold]{tracker.framework_id.value.upper()}[/bold]: "
        f"[bold green]{result.percent}%[/bold green] "
        f"({result.completed_count}/{result.total_count} fields)"
    )
    for path in missing:
        console.print(f"  [yellow]-[/yellow] {path}")


@app.command()
def scores(
    input_file: str = typer.Option(..., "--input", "-I", help="Framework scores file (JSON/YAML)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Pillar and overall compliance scores from per-framework scores"""
    from esgcore.compliance.scoring import ComplianceScoreAggregator

    data = load_input(input_file)
    if not isinstance(data, dict):
        console.print("[red]Input must map framework id -> score[/red]")
        raise typer.Exit(1)
    try:
        result = ComplianceScoreAggregator().recompute_scores(data)
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if as_json:
        print_json(result.to_dict())
        return

    table = Table(title="Compliance Scores", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_row("Overall", str(result.overall))
    table.add_row("Environmental", str(result.environmental))
    table.add_row("Social", str(result.social))
    table.add_row("Governance", str(result.governance))
    console.print(table)


@app.command()
def forecast(
    input_file: str = typer.Option(..., "--input", "-I", help="Monthly totals or emission records (JSON/YAML)"),
    periods: Optional[int] = typer.Option(None, "--periods", "-n", help="Months to project"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Linear-trend projection of monthly emission totals"""
    from esgcore.analytics.forecast import TrendForecaster, monthly_totals_from_records

    data = load_input(input_file)
    try:
        if isinstance(data, dict) and "records" in data:
            history = monthly_totals_from_records(data["records"])
        elif isinstance(data, list):
            history = data
        else:
            console.print("[red]Input must be a list of monthly totals or {records: [...]}[/red]")
            raise typer.Exit(1)
        result = TrendForecaster().forecast(history, periods=periods)
    except EsgCoreException as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid history: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        print_json(result.model_dump(mode="json"))
        return

    table = Table(title="Emissions Trend", box=box.ROUNDED)
    table.add_column("Period", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Type")
    for point in result.historical:
        table.add_row(point.period, f"{point.total:,.2f}", "historical")
    for point in result.forecast:
        table.add_row(point.period, f"{point.total:,.2f}", "[magenta]forecast[/magenta]")
    console.print(table)

    if result.forecast_skipped:
        print_warnings([
            f"Not enough history to forecast ({len(result.historical)} points)"
        ])


app.add_typer(emissions_app, name="emissions", help="Scope 1/2/3 emissions from activity data")
app.add_typer(factors_app, name="factors", help="Inspect the emission factor registry")


def main():
    """Main entry point for the esgcore CLI"""
    app()


if __name__ == "__main__":
    main()
