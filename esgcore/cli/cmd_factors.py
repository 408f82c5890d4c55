# -*- coding: utf-8 -*-
"""
esgcore factors - Inspect the emission factor registry
"""

from typing import Optional

import typer
from rich import box
from rich.table import Table

from esgcore.cli.inputs import console
from esgcore.emissions.factors import get_default_table

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_factors(
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Only show one category (e.g. fuels)"
    ),
):
    """List emission factors with unit, scope, source and uncertainty"""
    table = get_default_table()
    categories = [category] if category else table.categories()
    if category and category not in table.categories():
        console.print(f"[red]Unknown category: {category}[/red]")
        console.print(f"Available: {', '.join(table.categories())}")
        raise typer.Exit(1)

    out = Table(title=f"Emission Factors ({table.version})", box=box.ROUNDED)
    out.add_column("Category", style="cyan")
    out.add_column("Key", style="white")
    out.add_column("Factor", justify="right")
    out.add_column("Unit")
    out.add_column("Scope", justify="center")
    out.add_column("Source")
    out.add_column("Uncertainty", justify="right")
    out.add_column("PCAF", justify="center")

    for name in categories:
        for key, factor in table.by_category(name).items():
            out.add_row(
                name,
                key,
                str(factor.factor_value),
                factor.unit.value,
                str(factor.scope),
                factor.source,
                f"±{factor.uncertainty_fraction * 100:.1f}%",
                str(factor.data_quality_tier or "-"),
            )

    console.print(out)
