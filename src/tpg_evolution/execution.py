"""Bidding traversal of a TPG from a root to an action."""

from __future__ import annotations

import math
from typing import Protocol

from .archive import Archive
from .errors import StructuralError
from .graph import Edge, Vertex
from .programs import DataSources


class DataSourceProvider(Protocol):
    def data_sources(self) -> DataSources: ...


class ExecutionEngine:
    """Turns a root vertex into an action for the current data-source state.

    The archive is optional; when present every bid is recorded together with
    a snapshot of the inputs it was computed on.
    """

    def __init__(self, provider: DataSourceProvider, archive: Archive | None = None) -> None:
        self.provider = provider
        self.archive = archive

    def set_archive(self, archive: Archive | None) -> None:
        self.archive = archive

    def evaluate_edge(self, edge: Edge) -> float:
        sources = self.provider.data_sources()
        bid = float(edge.program.execute(sources))
        if math.isnan(bid):
            bid = -math.inf
        if self.archive is not None:
            self.archive.add_recording(edge.program, sources, bid)
        return bid

    def evaluate_team(self, team: Vertex) -> list[Edge]:
        """Return the three best outgoing edges, best first.

        Ties keep evaluation order. With fewer than three edges the lowest
        ranked edge is repeated.
        """
        edges = team.outgoing_edges
        if not edges:
            raise StructuralError(f"Team {team.ident} has no outgoing edge to follow.")
        bids = [self.evaluate_edge(edge) for edge in edges]
        order = sorted(range(len(edges)), key=lambda i: bids[i], reverse=True)
        ranked = [edges[i] for i in order[:3]]
        while len(ranked) < 3:
            ranked.append(ranked[-1])
        return ranked

    def execute_from_root(self, root: Vertex) -> list[Vertex]:
        """Walk from ``root`` to an action; the trace ends with that action.

        Each step appends the destinations of the third, second and best
        edges, in that order, and follows the best one.
        """
        current = root
        visited = [current]
        while current.is_team:
            best, second, third = self.evaluate_team(current)
            visited.append(third.destination)
            visited.append(second.destination)
            visited.append(best.destination)
            current = best.destination
        return visited

    def action_from_root(self, root: Vertex) -> int:
        action = self.execute_from_root(root)[-1]
        return int(action.action_id)  # type: ignore[arg-type]
