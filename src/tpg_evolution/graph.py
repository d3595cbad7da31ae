"""Graph store for Tangled Program Graphs.

The store owns every vertex and edge. Adjacency is kept on the vertices as
insertion-ordered edge sets so traversal order is stable, and root status is
always derived from the incoming set rather than cached.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal

from .errors import StructuralError
from .programs import Program

VertexKind = Literal["team", "action"]


@dataclass(eq=False)
class Vertex:
    """Team or Action vertex, told apart by ``kind``."""

    ident: int
    kind: VertexKind
    action_id: int | None = None
    incoming: dict[Edge, None] = field(default_factory=dict, repr=False)
    outgoing: dict[Edge, None] = field(default_factory=dict, repr=False)

    @property
    def is_team(self) -> bool:
        return self.kind == "team"

    @property
    def is_action(self) -> bool:
        return self.kind == "action"

    @property
    def incoming_edges(self) -> list[Edge]:
        return list(self.incoming)

    @property
    def outgoing_edges(self) -> list[Edge]:
        return list(self.outgoing)

    def _add_outgoing(self, edge: Edge) -> None:
        if not self.is_team:
            raise StructuralError(f"Action vertex {self.ident} cannot have outgoing edges.")
        self.outgoing[edge] = None


@dataclass(eq=False)
class Edge:
    """Directed edge from a Team to any vertex, guarded by a shared program."""

    ident: int
    source: Vertex
    destination: Vertex
    program: Program


class TPGGraph:
    """Owns vertices and edges and keeps them free of dangling references."""

    def __init__(self) -> None:
        self._vertices: dict[Vertex, None] = {}
        self._edges: dict[Edge, None] = {}
        self._vertex_ids = itertools.count()
        self._edge_ids = itertools.count()

    # ------------------------------------------------------------------ vertices
    def add_new_team(self) -> Vertex:
        vertex = Vertex(ident=next(self._vertex_ids), kind="team")
        self._vertices[vertex] = None
        return vertex

    def add_new_action(self, action_id: int) -> Vertex:
        vertex = Vertex(ident=next(self._vertex_ids), kind="action", action_id=int(action_id))
        self._vertices[vertex] = None
        return vertex

    @property
    def vertices(self) -> list[Vertex]:
        return list(self._vertices)

    @property
    def nb_vertices(self) -> int:
        return len(self._vertices)

    def has_vertex(self, vertex: Vertex) -> bool:
        return vertex in self._vertices

    def root_vertices(self) -> list[Vertex]:
        return [vertex for vertex in self._vertices if not vertex.incoming]

    def nb_root_vertices(self) -> int:
        return sum(1 for vertex in self._vertices if not vertex.incoming)

    def actions(self) -> list[Vertex]:
        return [vertex for vertex in self._vertices if vertex.is_action]

    def teams(self) -> list[Vertex]:
        return [vertex for vertex in self._vertices if vertex.is_team]

    def remove_vertex(self, vertex: Vertex) -> None:
        if vertex not in self._vertices:
            return
        # Copies: remove_edge mutates the adjacency sets being walked.
        for edge in list(vertex.incoming):
            self.remove_edge(edge)
        for edge in list(vertex.outgoing):
            self.remove_edge(edge)
        del self._vertices[vertex]

    # --------------------------------------------------------------------- edges
    def add_new_edge(self, src: Vertex, dst: Vertex, program: Program) -> Edge:
        if src not in self._vertices or dst not in self._vertices:
            raise StructuralError("Attempting to add an edge between vertices not present in the graph.")
        edge = Edge(ident=next(self._edge_ids), source=src, destination=dst, program=program)
        src._add_outgoing(edge)
        dst.incoming[edge] = None
        self._edges[edge] = None
        return edge

    def remove_edge(self, edge: Edge) -> None:
        if edge not in self._edges:
            return
        edge.source.outgoing.pop(edge, None)
        edge.destination.incoming.pop(edge, None)
        del self._edges[edge]

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    @property
    def nb_edges(self) -> int:
        return len(self._edges)

    def has_edge(self, edge: Edge) -> bool:
        return edge in self._edges

    def set_edge_destination(self, edge: Edge, dst: Vertex) -> None:
        if edge not in self._edges or dst not in self._vertices:
            raise StructuralError("Edge and new destination must both belong to the graph.")
        edge.destination.incoming.pop(edge, None)
        edge.destination = dst
        dst.incoming[edge] = None

    def programs(self) -> list[Program]:
        """Distinct programs still referenced by at least one edge."""
        seen: dict[int, Program] = {}
        for edge in self._edges:
            seen.setdefault(id(edge.program), edge.program)
        return list(seen.values())

    # --------------------------------------------------------------------- misc
    def clone_team(self, team: Vertex) -> Vertex:
        """Add a new root Team whose edges mirror ``team``'s, sharing programs."""
        if team not in self._vertices or not team.is_team:
            raise StructuralError("Only a Team of this graph can be cloned.")
        clone = self.add_new_team()
        for edge in team.outgoing:
            self.add_new_edge(clone, edge.destination, edge.program)
        return clone

    def clear(self) -> None:
        self._vertices.clear()
        self._edges.clear()

    def __iter__(self) -> Iterator[Vertex]:
        return iter(list(self._vertices))

    def __len__(self) -> int:
        return len(self._vertices)
