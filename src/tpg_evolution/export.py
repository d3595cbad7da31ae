"""Persistence of trained graphs as JSON and Graphviz DOT."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import ujson as json

from .errors import ResourceError, StructuralError
from .graph import TPGGraph, Vertex
from .programs import LinearProgram


def graph_to_dict(graph: TPGGraph) -> dict[str, Any]:
    """JSON-friendly view of the graph; shared programs are stored once."""
    programs: dict[int, dict[str, Any]] = {}
    edges = []
    for edge in graph.edges:
        program = edge.program
        key = id(program)
        if key not in programs:
            payload = program.to_dict() if isinstance(program, LinearProgram) else {}
            payload["index"] = len(programs)
            programs[key] = payload
        edges.append(
            {
                "id": edge.ident,
                "source": edge.source.ident,
                "destination": edge.destination.ident,
                "program": programs[key]["index"],
            }
        )
    vertices = [
        {"id": v.ident, "kind": v.kind, "action_id": v.action_id, "root": not v.incoming}
        for v in graph.vertices
    ]
    return {
        "vertices": vertices,
        "edges": edges,
        "programs": sorted(programs.values(), key=lambda p: p["index"]),
    }


def graph_from_dict(data: dict[str, Any]) -> TPGGraph:
    """Rebuild a graph saved by ``graph_to_dict``.

    Vertex identifiers are reassigned; structure and program sharing are kept.
    """
    graph = TPGGraph()
    by_id: dict[int, Vertex] = {}
    for row in data.get("vertices", []):
        if row.get("kind") == "action":
            by_id[int(row["id"])] = graph.add_new_action(int(row["action_id"]))
        else:
            by_id[int(row["id"])] = graph.add_new_team()
    programs = [LinearProgram.from_dict(p) for p in data.get("programs", [])]
    for row in data.get("edges", []):
        try:
            src = by_id[int(row["source"])]
            dst = by_id[int(row["destination"])]
            program = programs[int(row["program"])]
        except (KeyError, IndexError) as exc:
            raise StructuralError(f"Edge {row.get('id')} references unknown data") from exc
        graph.add_new_edge(src, dst, program)
    return graph


def save_graph_json(graph: TPGGraph, path: str | Path) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(graph_to_dict(graph), indent=2))
    except OSError as exc:
        raise ResourceError(f"Cannot write graph to {path}") from exc


def load_graph_json(path: str | Path) -> TPGGraph:
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise ResourceError(f"Cannot read graph from {path}") from exc
    return graph_from_dict(json.loads(text))


def to_dot(graph: TPGGraph) -> str:
    lines = ["digraph TPG {"]
    for vertex in graph.vertices:
        if vertex.is_action:
            lines.append(f'  V{vertex.ident} [shape=box, label="A{vertex.action_id}"];')
        else:
            style = ", style=filled, fillcolor=lightblue" if not vertex.incoming else ""
            lines.append(f'  V{vertex.ident} [shape=circle, label="T{vertex.ident}"{style}];')
    program_index: dict[int, int] = {}
    for edge in graph.edges:
        idx = program_index.setdefault(id(edge.program), len(program_index))
        lines.append(f'  V{edge.source.ident} -> V{edge.destination.ident} [label="P{idx}"];')
    lines.append("}")
    return "\n".join(lines) + "\n"


def export_dot(graph: TPGGraph, path: str | Path) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(to_dot(graph))
    except OSError as exc:
        raise ResourceError(f"Cannot write DOT file {path}") from exc
