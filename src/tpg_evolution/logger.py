"""Per-generation training log on a rich console."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from .graph import TPGGraph
from .results import RootResults


def score_stats(results: RootResults | None) -> tuple[float, float, float] | None:
    if not results:
        return None
    scores = [res.score for res in results.per_root().values()]
    return min(scores), sum(scores) / len(scores), max(scores)


def mean_actions(results: RootResults | None) -> float | None:
    if not results:
        return None
    per_root = results.per_root().values()
    return sum(res.avg_actions for res in per_root) / len(per_root)


class TrainingLogger:
    """Prints one line per generation and keeps the rows for a final table."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.rows: list[dict[str, Any]] = []

    def log_header(self, summary: dict[str, Any]) -> None:
        parts = " ".join(f"{k}={v}" for k, v in summary.items())
        self.console.print(f"[bold cyan]Training[/] {parts}")

    def log_generation(
        self,
        generation: int,
        graph: TPGGraph,
        results: RootResults,
        validation: RootResults | None = None,
        timings: dict[str, float] | None = None,
    ) -> dict[str, Any]:
        row: dict[str, Any] = {
            "generation": generation,
            "vertices": graph.nb_vertices,
            "edges": graph.nb_edges,
            "roots": graph.nb_root_vertices(),
        }
        stats = score_stats(results)
        if stats is not None:
            row["min"], row["avg"], row["max"] = stats
        actions = mean_actions(results)
        if actions is not None:
            row["actions"] = actions
        vstats = score_stats(validation)
        if vstats is not None:
            row["val_min"], row["val_avg"], row["val_max"] = vstats
        row.update(timings or {})
        self.rows.append(row)

        line = (
            f"[cyan]gen {generation:>4}[/] V={row['vertices']} E={row['edges']} "
            f"R={row['roots']}"
        )
        if stats is not None:
            line += f" score min={stats[0]:.3f} avg={stats[1]:.3f} max={stats[2]:.3f}"
        if actions is not None:
            line += f" actions={actions:.1f}"
        if vstats is not None:
            line += f" | valid avg={vstats[1]:.3f} max={vstats[2]:.3f}"
        if timings:
            line += " | " + " ".join(f"{k}={v:.2f}s" for k, v in timings.items())
        self.console.print(line)
        return row

    def summary_table(self) -> Table:
        table = Table(title="Training summary")
        for column in ("Gen", "Vertices", "Roots", "Min", "Avg", "Max", "Actions"):
            table.add_column(column)
        for row in self.rows:
            table.add_row(
                str(row["generation"]),
                str(row["vertices"]),
                str(row["roots"]),
                f"{row.get('min', 0.0):.3f}",
                f"{row.get('avg', 0.0):.3f}",
                f"{row.get('max', 0.0):.3f}",
                f"{row.get('actions', 0.0):.1f}",
            )
        return table
