import pytest

from tpg_evolution.errors import TypeMismatch
from tpg_evolution.graph import TPGGraph
from tpg_evolution.results import ClassificationEvaluationResult, EvaluationResult, RootResults
from tpg_evolution.selection import decimate_per_class, decimate_worst_roots, roots_to_keep


def _graph_with_roots(constant_program, count: int):
    graph = TPGGraph()
    a0 = graph.add_new_action(0)
    a1 = graph.add_new_action(1)
    roots = []
    for _ in range(count):
        team = graph.add_new_team()
        graph.add_new_edge(team, a0, constant_program(0.0))
        graph.add_new_edge(team, a1, constant_program(1.0))
        roots.append(team)
    return graph, roots


def _team_roots(graph):
    return [root for root in graph.root_vertices() if root.is_team]


def test_ratio_scenario_keeps_six_of_ten(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    assert roots_to_keep(graph, 0.4) == (4, 6)
    results = RootResults()
    for idx, root in enumerate(roots):
        results.add(EvaluationResult(float(idx)), root)
    removed = decimate_worst_roots(graph, results, 0.4)
    assert set(removed) == set(roots[:4])
    assert set(_team_roots(graph)) == set(roots[4:])


def test_ties_at_the_cut_keep_exactly_to_keep(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    scores = [9.0, 8.0, 7.0, 6.0, 5.0, 5.0, 5.0, 1.0, 0.0, 0.0]
    results = RootResults()
    for root, score in zip(roots, scores):
        results.add(EvaluationResult(score), root)
    decimate_worst_roots(graph, results, 0.4)
    survivors = _team_roots(graph)
    assert len(survivors) == 6
    # Earlier insertion wins the tie at ranks 6/7.
    assert roots[5] in survivors
    assert roots[6] not in survivors


def test_actions_are_never_removed(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    lone_action = graph.add_new_action(2)
    results = RootResults()
    for idx, root in enumerate(roots):
        results.add(EvaluationResult(float(idx)), root)
    _, to_keep = roots_to_keep(graph, 0.4)
    assert to_keep == 7
    decimate_worst_roots(graph, results, 0.4)
    assert graph.has_vertex(lone_action)
    assert len(graph.actions()) == 3
    assert len(_team_roots(graph)) >= 6


def test_empty_results_are_rejected(constant_program):
    graph, _ = _graph_with_roots(constant_program, 3)
    with pytest.raises(TypeMismatch):
        decimate_worst_roots(graph, RootResults(), 0.5)
    with pytest.raises(TypeMismatch):
        decimate_per_class(graph, RootResults(), 0.5, 2)
    assert len(_team_roots(graph)) == 3


def test_per_class_requires_classification_results(constant_program):
    graph, roots = _graph_with_roots(constant_program, 4)
    results = RootResults()
    for root in roots:
        results.add(EvaluationResult(1.0), root)
    with pytest.raises(TypeMismatch):
        decimate_per_class(graph, results, 0.5, 2)
    assert len(_team_roots(graph)) == 4


def test_per_class_preserves_class_specialist(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    results = RootResults()
    specialist = roots[0]
    results.add(ClassificationEvaluationResult.from_scores([0.95, 0.0]), specialist)
    for k, root in enumerate(roots[1:]):
        value = 0.5 + 0.01 * k
        results.add(ClassificationEvaluationResult.from_scores([value, value]), root)
    decimate_per_class(graph, results, 0.4, 2)
    survivors = _team_roots(graph)
    assert len(survivors) == 6
    assert specialist in survivors


def test_per_class_does_not_double_reserve(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    champion, runner_up = roots[0], roots[1]
    results = RootResults()
    results.add(ClassificationEvaluationResult.from_scores([1.0, 1.0]), champion)
    results.add(ClassificationEvaluationResult.from_scores([0.0, 0.9]), runner_up)
    for k, root in enumerate(roots[2:]):
        value = 0.5 + 0.01 * k
        results.add(ClassificationEvaluationResult.from_scores([value, value]), root)
    decimate_per_class(graph, results, 0.4, 2)
    survivors = _team_roots(graph)
    assert len(survivors) == 6
    assert champion in survivors
    # Class 1's only slot went to the champion already reserved by class 0.
    assert runner_up not in survivors


def test_per_class_skipped_when_too_few_roots_kept(constant_program):
    graph, roots = _graph_with_roots(constant_program, 8)
    results = RootResults()
    specialist = roots[0]
    results.add(ClassificationEvaluationResult.from_scores([0.0, 0.0, 0.99]), specialist)
    for k, root in enumerate(roots[1:]):
        value = 0.5 + 0.01 * k
        results.add(ClassificationEvaluationResult.from_scores([value, value, value]), root)
    _, to_keep = roots_to_keep(graph, 0.4)
    assert to_keep == 5 < 2 * 3
    decimate_per_class(graph, results, 0.4, 3)
    survivors = _team_roots(graph)
    assert len(survivors) == 5
    assert specialist not in survivors


def test_per_class_tie_reserves_later_root(constant_program):
    graph, roots = _graph_with_roots(constant_program, 10)
    first, second = roots[0], roots[1]
    results = RootResults()
    results.add(ClassificationEvaluationResult.from_scores([1.0, 0.0]), first)
    results.add(ClassificationEvaluationResult.from_scores([1.0, 0.0]), second)
    for k, root in enumerate(roots[2:]):
        value = 0.6 + 0.01 * k
        results.add(ClassificationEvaluationResult.from_scores([value, value]), root)
    decimate_per_class(graph, results, 0.4, 2)
    survivors = _team_roots(graph)
    assert len(survivors) == 6
    # Class 0 has a single slot and both roots tie on it.
    assert second in survivors
    assert first not in survivors
