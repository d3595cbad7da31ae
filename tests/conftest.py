import numpy as np
import pytest

from tpg_evolution.config import LearningParameters, MutationParameters
from tpg_evolution.graph import TPGGraph
from tpg_evolution.tasks import GaussianClassificationTask, StickGame


class ConstantProgram:
    def __init__(self, bid: float) -> None:
        self.bid = bid
        self.calls = 0

    def execute(self, data_sources) -> float:
        self.calls += 1
        return self.bid


class StaticProvider:
    def __init__(self, values=(0.0, 1.0)) -> None:
        self.sources = (np.asarray(values, dtype=np.float64),)

    def data_sources(self):
        return self.sources


def _assert_sound(graph: TPGGraph) -> None:
    """No dangling edge and no cycle."""
    for edge in graph.edges:
        assert graph.has_vertex(edge.source)
        assert graph.has_vertex(edge.destination)
        assert edge in edge.source.outgoing
        assert edge in edge.destination.incoming
    for vertex in graph.vertices:
        for edge in list(vertex.incoming) + list(vertex.outgoing):
            assert graph.has_edge(edge)
    state: dict = {}

    def visit(vertex) -> None:
        state[vertex] = "open"
        for edge in vertex.outgoing:
            nxt = edge.destination
            assert state.get(nxt) != "open", "cycle detected"
            if nxt not in state:
                visit(nxt)
        state[vertex] = "done"

    for vertex in graph.vertices:
        if vertex not in state:
            visit(vertex)


@pytest.fixture()
def constant_program():
    return ConstantProgram


@pytest.fixture()
def provider() -> StaticProvider:
    return StaticProvider()


@pytest.fixture()
def assert_sound():
    return _assert_sound


@pytest.fixture()
def small_params() -> LearningParameters:
    return LearningParameters(
        nb_roots=12,
        ratio_deleted_roots=0.5,
        nb_iterations_per_policy_evaluation=2,
        max_nb_actions_per_eval=40,
        nb_generations=3,
        archive_size=40,
        archiving_probability=0.5,
        seed=7,
    )


@pytest.fixture()
def mutation_params() -> MutationParameters:
    return MutationParameters(max_init_outgoing_edges=3, max_outgoing_edges=4)


@pytest.fixture()
def classification_task() -> GaussianClassificationTask:
    return GaussianClassificationTask(nb_classes=3, nb_features=2, samples_per_episode=12)


@pytest.fixture()
def stick_game() -> StickGame:
    return StickGame(nb_players=2, initial_sticks=9)
