# -*- coding: utf-8 -*-
"""Input file loading and shared output helpers for the esgcore CLI."""

import json
from pathlib import Path
from typing import Any, Iterable

import typer
import yaml
from rich.console import Console

console = Console()


def load_input(input_file: str) -> Any:
    """Load a JSON or YAML input file, exiting with status 1 on failure."""
    input_path = Path(input_file)
    if not input_path.exists():
        console.print(f"[red]Input file not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        if input_path.suffix == ".json":
            with open(input_path, encoding="utf-8") as f:
                return json.load(f)
        if input_path.suffix in [".yaml", ".yml"]:
            with open(input_path, encoding="utf-8") as f:
                return yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        console.print(f"[red]Could not parse {input_file}: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[red]Unsupported input format: {input_path.suffix}[/red]")
    console.print("[yellow]Use .json or .yaml files[/yellow]")
    raise typer.Exit(1)


def print_warnings(warnings: Iterable[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))
