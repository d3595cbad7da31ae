"""Render a saved TPG JSON into a Mermaid graph (.mmd).

Input JSON shape (as produced by tpg_evolution.export.save_graph_json):
{
  "vertices": [{"id": 0, "kind": "action", "action_id": 0, "root": false}, ...],
  "edges": [{"id": 3, "source": 4, "destination": 0, "program": 1}, ...],
  "programs": [...]
}

Usage:
  python scripts/render_graph.py --graph runs/graph.json --out runs/graph.mmd
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import ujson as json

app = typer.Typer(help="Render TPG JSON to Mermaid graph")


@app.command()
def main(
    graph: Path = typer.Option(..., exists=True, readable=True),
    out: Path = typer.Option(...),
    title: Optional[str] = typer.Option(None),
    roots_only: bool = typer.Option(False, help="Keep only vertices reachable from roots."),
) -> None:
    data = json.loads(graph.read_text())
    vertices = {v["id"]: v for v in data.get("vertices", [])}
    edges = data.get("edges", [])
    if roots_only:
        reachable = {vid for vid, v in vertices.items() if v.get("root") and v.get("kind") == "team"}
        frontier = list(reachable)
        while frontier:
            current = frontier.pop()
            for e in edges:
                if e["source"] == current and e["destination"] not in reachable:
                    reachable.add(e["destination"])
                    frontier.append(e["destination"])
        vertices = {vid: v for vid, v in vertices.items() if vid in reachable}
    lines: list[str] = ["graph TD"]
    if title:
        lines.append(f"%% {title}")
    for vid, v in vertices.items():
        if v.get("kind") == "action":
            lines.append(f"  V{vid}[\"A{v.get('action_id')}\"]")
        else:
            lines.append(f"  V{vid}((\"T{vid}\"))")
    edge_count = 0
    for e in edges:
        if e["source"] in vertices and e["destination"] in vertices:
            lines.append(f"  V{e['source']} -- P{e['program']} --> V{e['destination']}")
            edge_count += 1
    out.write_text("\n".join(lines) + "\n")
    typer.echo(f"Wrote Mermaid graph with {len(vertices)} vertices and {edge_count} edges to {out}")


if __name__ == "__main__":
    app()
