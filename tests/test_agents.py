import threading

import numpy as np
import pytest

from tpg_evolution.agents import (
    AdversarialLearningAgent,
    ClassificationLearningAgent,
    LearningAgent,
    ParallelLearningAgent,
    f1_scores,
)
from tpg_evolution.config import LearningParameters
from tpg_evolution.errors import StructuralError, TypeMismatch
from tpg_evolution.execution import ExecutionEngine
from tpg_evolution.jobs import Job, derive_seed
from tpg_evolution.results import ClassificationEvaluationResult
from tpg_evolution.tasks import StickGame


class EndlessTask:
    """Never terminal; scores the number of actions taken."""

    def __init__(self) -> None:
        self.count = 0
        self.seeds: list[int] = []

    @property
    def nb_actions(self) -> int:
        return 2

    def reset(self, seed: int = 0, mode: str = "training") -> None:
        self.count = 0
        self.seeds.append(seed)

    def is_terminal(self) -> bool:
        return False

    def do_action(self, action_id: int) -> None:
        self.count += 1

    def get_score(self) -> float:
        return float(self.count)

    def data_sources(self):
        return (np.array([1.0, float(self.count)]),)

    def clone(self) -> "EndlessTask":
        return EndlessTask()


class EndlessDuel(EndlessTask):
    """Two seats sharing one never-ending episode."""

    @property
    def nb_players(self) -> int:
        return 2

    def get_scores(self) -> list[float]:
        return [float(self.count), float(self.count)]

    def clone(self) -> "EndlessDuel":
        return EndlessDuel()


def _team_roots(agent):
    return [root for root in agent.graph.root_vertices() if root.is_team]


def test_init_builds_population(classification_task, small_params, mutation_params, assert_sound):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    roots = _team_roots(agent)
    assert 0 < len(roots) <= small_params.nb_roots
    assert len(agent.graph.actions()) == classification_task.nb_actions
    assert len(agent.archive) == 0
    assert_sound(agent.graph)


def test_action_budget_bounds_each_iteration(small_params, mutation_params):
    params = small_params.model_copy(update={"max_nb_actions_per_eval": 7})
    env = EndlessTask()
    agent = LearningAgent(env, params, mutation_params)
    agent.init()
    job = agent.make_jobs()[0]
    result = agent.evaluate_job(ExecutionEngine(env), job, 3, "training", env)
    assert result.score == 7.0
    assert result.avg_actions == 7.0
    assert result.nb_evaluations == params.nb_iterations_per_policy_evaluation
    assert env.seeds == [derive_seed(3, i) for i in range(job.nb_iterations)]


def test_evaluation_is_reproducible(classification_task, small_params, mutation_params):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    job = agent.make_jobs()[0]
    engine = ExecutionEngine(classification_task)
    first = agent.evaluate_job(engine, job, 5, "training", classification_task)
    second = agent.evaluate_job(engine, job, 5, "training", classification_task)
    assert first.score == second.score


def test_generation_keeps_graph_sound(classification_task, small_params, mutation_params, assert_sound):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    results = agent.train_one_generation(0)
    assert len(results) > 0
    assert agent.best_root is not None
    assert_sound(agent.graph)
    engine = ExecutionEngine(classification_task)
    for root in agent.graph.root_vertices():
        assert engine.execute_from_root(root)[-1].is_action


def test_surviving_roots_reuse_cached_results(classification_task, small_params, mutation_params):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    agent.train_one_generation(0)
    survivors = [root for root in _team_roots(agent) if root in agent.results_per_root]
    assert survivors
    cached = {root: agent.results_per_root[root] for root in survivors}
    results = agent.evaluate_all_roots(1, "training")
    by_root = {root: result for result, root in results}
    for root, result in cached.items():
        assert by_root[root] is result


def test_parallel_matches_sequential(classification_task, small_params, mutation_params):
    sequential = LearningAgent(classification_task, small_params, mutation_params)
    parallel = ParallelLearningAgent(
        classification_task.clone(),
        small_params.model_copy(update={"nb_threads": 4}),
        mutation_params,
    )
    sequential.init()
    parallel.init()
    seq_results = sequential.evaluate_all_roots(0)
    par_results = parallel.evaluate_all_roots(0)
    assert [(r.score, root.ident) for r, root in seq_results] == [
        (r.score, root.ident) for r, root in par_results
    ]


def test_classification_agent_scores_per_class(classification_task, small_params, mutation_params, assert_sound):
    agent = ClassificationLearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    results = agent.evaluate_all_roots(0)
    for result, _ in results:
        assert isinstance(result, ClassificationEvaluationResult)
        assert len(result.scores_per_class) == classification_task.nb_classes
        assert all(0.0 <= s <= 1.0 for s in result.scores_per_class)
    assert agent.train() == small_params.nb_generations
    assert_sound(agent.graph)


def test_classification_agent_rejects_plain_environment(small_params, mutation_params):
    with pytest.raises(TypeMismatch):
        ClassificationLearningAgent(EndlessTask(), small_params, mutation_params)


def test_f1_scores_from_table():
    assert f1_scores([[2, 0], [1, 1]]) == pytest.approx([0.8, 2 / 3])
    assert f1_scores([[0, 3], [0, 0]]) == [0.0, 0.0]


def test_adversarial_jobs_group_roots(stick_game, small_params, mutation_params):
    params = small_params.model_copy(update={"nb_roots": 7, "jobs_per_root": 3})
    agent = AdversarialLearningAgent(stick_game, params, mutation_params)
    agent.init()
    roots = _team_roots(agent)
    jobs = agent.make_jobs()
    assert all(len(job) == 2 for job in jobs)
    for root in roots:
        appearances = sum(job.roots.count(root) for job in jobs)
        assert appearances >= 3


def test_adversarial_results_merge_per_root(stick_game, small_params, mutation_params, assert_sound):
    agent = AdversarialLearningAgent(stick_game, small_params, mutation_params)
    agent.init()
    results = agent.evaluate_all_roots(0)
    assert len(results) == len(results.roots()) == len(_team_roots(agent))
    agent.train_one_generation(0)
    assert_sound(agent.graph)


def test_adversarial_job_scores_each_seat(stick_game, small_params, mutation_params):
    agent = AdversarialLearningAgent(stick_game, small_params, mutation_params)
    agent.init()
    first, second = _team_roots(agent)[:2]
    job = Job(roots=(first, second), index=0, nb_iterations=1)
    env = stick_game.clone()
    result = agent.evaluate_job(ExecutionEngine(env), job, 0, "training", env)
    assert len(result.scores) == 2
    assert sorted(result.scores) in ([StickGame.LOSS, StickGame.WIN], [StickGame.FORBIDDEN, StickGame.WIN])


def test_adversarial_agent_rejects_single_player_env(classification_task, small_params):
    with pytest.raises(TypeMismatch):
        AdversarialLearningAgent(classification_task, small_params)


def test_keep_best_policy_leaves_one_root(classification_task, small_params, mutation_params):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    with pytest.raises(StructuralError):
        agent.keep_best_policy()
    agent.train_one_generation(0)
    best = agent.keep_best_policy()
    assert _team_roots(agent) == [best]


def test_stop_event_halts_between_generations(classification_task, small_params, mutation_params):
    agent = LearningAgent(classification_task, small_params, mutation_params)
    agent.init()
    stop = threading.Event()
    stop.set()
    assert agent.train(stop_event=stop) == 0
    assert agent.generation == 0


def test_validation_does_not_touch_cache(classification_task, mutation_params):
    params = LearningParameters(nb_roots=6, nb_generations=1, do_validation=True, seed=1)
    agent = LearningAgent(classification_task, params, mutation_params)
    agent.init()
    agent.evaluate_all_roots(0, "validation")
    assert agent.results_per_root == {}


def test_action_budget_is_shared_by_every_seat(small_params, mutation_params):
    params = small_params.model_copy(update={"max_nb_actions_per_eval": 7})
    env = EndlessDuel()
    agent = AdversarialLearningAgent(env, params, mutation_params)
    agent.init()
    job = agent.make_jobs()[0]
    assert len(job) == 2
    result = agent.evaluate_job(ExecutionEngine(env), job, 0, "training", env)
    assert env.count == 7
    assert result.avg_actions == 7.0
