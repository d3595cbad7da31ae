"""Graph mutation: random initial graph and root-population regrowth.

New roots are clones of surviving roots followed by edge and program
mutations. Edges only ever leave a freshly created root towards vertices that
existed before the current populate call, so the graph stays acyclic.
"""

from __future__ import annotations

import math
import random

from .archive import Archive
from .config import MutationParameters
from .errors import StructuralError
from .graph import Edge, TPGGraph, Vertex
from .programs import LinearProgram


class GraphMutator:
    """Builds and regrows the root population of a ``TPGGraph``."""

    def __init__(
        self,
        params: MutationParameters,
        nb_inputs: int,
        rng: random.Random | None = None,
    ) -> None:
        self.params = params
        self.nb_inputs = nb_inputs
        self.rng = rng or random.Random(0)  # noqa: S311  # nosec B311 - seeded per run

    def seed(self, seed: int) -> None:
        self.rng.seed(seed)

    def new_program(self) -> LinearProgram:
        return LinearProgram.random(self.nb_inputs, self.rng, sparsity=self.params.sparsity)

    # ------------------------------------------------------------------ init
    def init_random_graph(self, graph: TPGGraph, nb_actions: int) -> None:
        if nb_actions < 2:
            raise StructuralError("A TPG needs at least two actions.")
        graph.clear()
        actions = [graph.add_new_action(idx) for idx in range(nb_actions)]
        nb_teams = self.params.init_nb_roots or nb_actions
        for _ in range(nb_teams):
            team = graph.add_new_team()
            upper = min(self.params.max_init_outgoing_edges, nb_actions)
            nb_edges = self.rng.randint(2, upper)
            for action in self.rng.sample(actions, nb_edges):
                graph.add_new_edge(team, action, self.new_program())

    # -------------------------------------------------------------- populate
    def populate(self, graph: TPGGraph, target_roots: int, archive: Archive | None = None) -> int:
        """Clone and mutate surviving roots until ``target_roots`` were reached.

        Returns the number of roots created. Creating edges towards existing
        roots absorbs them, so the final root count may fall short.
        """
        parents = [v for v in graph.root_vertices() if v.is_team]
        if not parents:
            raise StructuralError("Cannot regrow a graph without any team root.")
        nb_to_create = max(0, target_roots - len(parents))
        candidates = graph.vertices
        for _ in range(nb_to_create):
            parent = self.rng.choice(parents)
            child = graph.clone_team(parent)
            self.mutate_team(graph, child, candidates, archive)
        return nb_to_create

    def mutate_team(
        self,
        graph: TPGGraph,
        team: Vertex,
        candidates: list[Vertex],
        archive: Archive | None = None,
    ) -> None:
        p = self.params
        if len(team.outgoing) > 2 and self.rng.random() < p.p_edge_deletion:
            self._remove_random_edge(graph, team)
        if len(team.outgoing) < p.max_outgoing_edges and self.rng.random() < p.p_edge_addition:
            self._add_random_edge(graph, team, candidates)

        mutated = False
        while not mutated:
            for edge in team.outgoing_edges:
                if self.rng.random() < p.p_program_mutation:
                    edge.program = self.novel_program(edge.program, archive)
                    mutated = True
                if self.rng.random() < p.p_edge_destination_change:
                    mutated = self._change_destination(graph, edge, candidates) or mutated

    def _action_edges(self, team: Vertex) -> list[Edge]:
        return [edge for edge in team.outgoing if edge.destination.is_action]

    def _remove_random_edge(self, graph: TPGGraph, team: Vertex) -> None:
        edges = team.outgoing_edges
        action_edges = self._action_edges(team)
        if len(action_edges) == 1:
            edges = [edge for edge in edges if edge is not action_edges[0]]
        if edges:
            graph.remove_edge(self.rng.choice(edges))

    def _add_random_edge(self, graph: TPGGraph, team: Vertex, candidates: list[Vertex]) -> None:
        allowed = {id(v) for v in candidates if graph.has_vertex(v)}
        pool = [
            edge
            for edge in graph.edges
            if edge.source is not team
            and id(edge.destination) in allowed
            and all(own.program is not edge.program for own in team.outgoing)
        ]
        if not pool:
            return
        picked = self.rng.choice(pool)
        graph.add_new_edge(team, picked.destination, picked.program)

    def _change_destination(self, graph: TPGGraph, edge: Edge, candidates: list[Vertex]) -> bool:
        team = edge.source
        if edge.destination.is_action and len(self._action_edges(team)) == 1:
            return False
        live = [v for v in candidates if graph.has_vertex(v) and v is not team]
        if self.rng.random() < self.params.p_edge_destination_is_action:
            choices = [v for v in live if v.is_action]
        else:
            choices = [v for v in live if v.is_team] or [v for v in live if v.is_action]
        choices = [v for v in choices if v is not edge.destination]
        if not choices:
            return False
        graph.set_edge_destination(edge, self.rng.choice(choices))
        return True

    def novel_program(self, program: object, archive: Archive | None = None) -> LinearProgram:
        """Mutated copy of ``program`` whose archived bids differ from existing ones."""
        base = program if isinstance(program, LinearProgram) else self.new_program()
        candidate = base.mutated(self.rng, sigma=self.params.weight_sigma, sparsity=self.params.sparsity)
        if archive is None:
            return candidate
        snapshots = archive.snapshots()
        if not snapshots:
            return candidate
        for _ in range(self.params.max_novelty_attempts):
            bids = {}
            for key, snapshot in snapshots.items():
                bid = candidate.execute(snapshot)
                bids[key] = -math.inf if math.isnan(bid) else bid
            if archive.are_results_unique(bids):
                return candidate
            candidate = base.mutated(
                self.rng, sigma=self.params.weight_sigma, sparsity=self.params.sparsity
            )
        return candidate
