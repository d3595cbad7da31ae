"""Command-line utilities for the tpg_evolution package."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import get_version
from .api import run_training
from .config import TrainingConfig, save_config
from .errors import ResourceError, StructuralError
from .export import load_graph_json

app = typer.Typer(help="Tangled Program Graph training utilities")
console = Console()


@app.command()
def version() -> None:
    """Print the installed package version."""
    typer.echo(get_version())


@app.command()
def run(
    config: Annotated[Path, typer.Argument(..., exists=True, readable=True)],
    generations: Annotated[int | None, typer.Option(min=1)] = None,
    seed: Annotated[int | None, typer.Option()] = None,
    out: Annotated[Path, typer.Option()] = Path("runs/graph.json"),
    dot: Annotated[Path | None, typer.Option(help="Also write a Graphviz DOT file.")] = None,
    keep_best: Annotated[
        bool, typer.Option(help="Drop every root except the best one before saving.")
    ] = False,
) -> None:
    """Train a TPG from a YAML/JSON config."""
    try:
        agent = run_training(
            config_path=config,
            generations=generations,
            seed=seed,
            out_path=out,
            dot_path=dot,
            keep_best=keep_best,
            console=console,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if agent.logger is not None:
        console.print(agent.logger.summary_table())


@app.command("init-config")
def init_config(
    path: Annotated[Path, typer.Argument(help="Destination config (.yaml or .json).")],
    agent: Annotated[str, typer.Option(help="sequential/parallel/classification/adversarial")] = (
        "classification"
    ),
) -> None:
    """Write a default training config."""
    data: dict = {"agent": agent}
    if agent == "adversarial":
        data["task"] = {"kind": "stick_game", "nb_players": 2}
    try:
        cfg = TrainingConfig(**data)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    path.parent.mkdir(parents=True, exist_ok=True)
    save_config(cfg, path)
    console.print(f"[bold green]Config written:[/] {path}")


@app.command("show-graph")
def show_graph(path: Annotated[Path, typer.Argument()] = Path("runs/graph.json")) -> None:
    """Print a summary of a saved graph."""
    if not path.exists():
        raise typer.BadParameter(f"{path} does not exist")
    try:
        graph = load_graph_json(path)
    except (ResourceError, StructuralError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    roots = graph.root_vertices()
    kinds = Counter(v.kind for v in graph.vertices)
    table = Table(title=f"Graph ({path})")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("teams", str(kinds.get("team", 0)))
    table.add_row("actions", str(kinds.get("action", 0)))
    table.add_row("edges", str(graph.nb_edges))
    table.add_row("programs", str(len(graph.programs())))
    table.add_row("team roots", str(sum(1 for r in roots if r.is_team)))
    console.print(table)


def main() -> None:
    """Entry point for `python -m tpg_evolution.cli`."""
    app()


if __name__ == "__main__":
    main()
