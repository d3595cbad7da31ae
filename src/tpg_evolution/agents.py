"""Learning agents: generational evaluation, decimation and regrowth of a TPG."""

from __future__ import annotations

import itertools
import random
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from .archive import Archive
from .config import LearningParameters, MutationParameters
from .environment import (
    AdversarialLearningEnvironment,
    ClassificationLearningEnvironment,
    LearningEnvironment,
    LearningMode,
)
from .errors import StructuralError, TypeMismatch
from .execution import ExecutionEngine
from .graph import TPGGraph, Vertex
from .jobs import Job, derive_seed
from .logger import TrainingLogger
from .mutator import GraphMutator
from .programs import flatten_sources
from .results import (
    AdversarialEvaluationResult,
    ClassificationEvaluationResult,
    EvaluationResult,
    RootResults,
)
from .selection import decimate_per_class, decimate_worst_roots


class LearningAgent:
    """Sequential baseline: one job per root, evaluated in order."""

    def __init__(
        self,
        env: LearningEnvironment,
        params: LearningParameters | None = None,
        mutation: MutationParameters | None = None,
        logger: TrainingLogger | None = None,
    ) -> None:
        self.env = env
        self.params = params or LearningParameters()
        self.mutation_params = mutation or MutationParameters()
        self.graph = TPGGraph()
        self.archive = Archive(self.params.archive_size)
        self.rng = random.Random(self.params.seed)  # noqa: S311  # nosec B311 - seeded per run
        nb_inputs = int(flatten_sources(env.data_sources()).shape[0])
        self.mutator = GraphMutator(
            self.mutation_params,
            nb_inputs,
            random.Random(self.params.seed),  # noqa: S311  # nosec B311
        )
        self.logger = logger
        self.results_per_root: dict[Vertex, EvaluationResult] = {}
        self.best_root: Vertex | None = None
        self.best_result: EvaluationResult | None = None
        self.generation = 0

    # ------------------------------------------------------------------ setup
    def init(self, seed: int | None = None) -> None:
        """Reset RNGs and the archive, then build and populate a random graph."""
        seed = self.params.seed if seed is None else seed
        self.rng.seed(seed)
        self.mutator.seed(seed)
        self.archive.clear()
        self.results_per_root.clear()
        self.best_root = None
        self.best_result = None
        self.generation = 0
        self.mutator.init_random_graph(self.graph, self.env.nb_actions)
        self.mutator.populate(self.graph, self.params.nb_roots, self.archive)

    # ------------------------------------------------------------------- jobs
    def eligible_roots(self) -> list[Vertex]:
        return [root for root in self.graph.root_vertices() if root.is_team]

    def make_jobs(self, mode: LearningMode = "training") -> list[Job]:
        return [
            Job(
                roots=(root,),
                index=idx,
                archive_seed=self.rng.getrandbits(32),
                nb_iterations=self.params.nb_iterations_per_policy_evaluation,
            )
            for idx, root in enumerate(self.eligible_roots())
        ]

    def _archive_for(self, job: Job, mode: LearningMode) -> Archive | None:
        if mode != "training":
            return None
        draw = random.Random(job.archive_seed).random()  # noqa: S311  # nosec B311
        return self.archive if draw < self.params.archiving_probability else None

    # ------------------------------------------------------------- evaluation
    def _play_episode(
        self, engine: ExecutionEngine, roots: Sequence[Vertex], env: LearningEnvironment
    ) -> int:
        """Let ``roots`` act in turn until the episode ends or the budget runs out.

        Every action counts against ``max_nb_actions_per_eval``, whichever root
        took it. Returns the number of actions taken.
        """
        budget = self.params.max_nb_actions_per_eval
        nb_actions = 0
        while not env.is_terminal() and nb_actions < budget:
            for root in roots:
                if env.is_terminal() or nb_actions >= budget:
                    break
                env.do_action(engine.action_from_root(root))
                nb_actions += 1
        return nb_actions

    def evaluate_job(
        self,
        engine: ExecutionEngine,
        job: Job,
        generation: int,
        mode: LearningMode,
        env: LearningEnvironment,
    ) -> EvaluationResult:
        """Average score of the job's root over ``job.nb_iterations`` episodes."""
        total = 0.0
        actions = 0
        for iteration in range(job.nb_iterations):
            env.reset(derive_seed(generation, iteration), mode)
            actions += self._play_episode(engine, job.roots, env)
            total += env.get_score()
        nb = job.nb_iterations
        return EvaluationResult(
            score=total / nb if nb else 0.0,
            nb_evaluations=nb,
            avg_actions=actions / nb if nb else 0.0,
        )

    def _run_jobs(
        self, jobs: list[Job], generation: int, mode: LearningMode
    ) -> list[EvaluationResult]:
        engine = ExecutionEngine(self.env)
        out = []
        for job in jobs:
            engine.set_archive(self._archive_for(job, mode))
            out.append(self.evaluate_job(engine, job, generation, mode, self.env))
        return out

    def _cached_result(self, job: Job, mode: LearningMode) -> EvaluationResult | None:
        if mode != "training":
            return None
        cached = self.results_per_root.get(job.root)
        if cached is None:
            return None
        if cached.nb_evaluations >= self.params.nb_iterations_per_policy_evaluation:
            return cached
        return None

    def _collect(
        self, job: Job, result: EvaluationResult, mode: LearningMode, results: RootResults
    ) -> None:
        if mode == "training":
            previous = self.results_per_root.get(job.root)
            if previous is not None:
                result = previous.merge(result)
            self.results_per_root[job.root] = result
        results.add(result, job.root)

    def evaluate_all_roots(self, generation: int, mode: LearningMode = "training") -> RootResults:
        jobs = self.make_jobs(mode)
        results = RootResults()
        pending: list[Job] = []
        for job in jobs:
            cached = self._cached_result(job, mode)
            if cached is not None:
                results.add(cached, job.root)
            else:
                pending.append(job)
        for job, result in zip(pending, self._run_jobs(pending, generation, mode)):
            self._collect(job, result, mode, results)
        return results

    # -------------------------------------------------------------- selection
    def decimate_worst_roots(self, results: RootResults) -> list[Vertex]:
        removed = decimate_worst_roots(self.graph, results, self.params.ratio_deleted_roots)
        self._forget(removed)
        return removed

    def _forget(self, removed: Sequence[Vertex]) -> None:
        for vertex in removed:
            self.results_per_root.pop(vertex, None)

    def update_evaluation_records(self, results: RootResults) -> None:
        if not results:
            return
        result, root = results.best_first()[0]
        if self.best_result is None or result.score > self.best_result.score:
            self.best_result = result
            self.best_root = root

    def keep_best_policy(self) -> Vertex:
        """Strip the graph down to the best root recorded so far.

        Removing a root can expose its children as new roots, so removal is
        repeated until the best root is the only team root left.
        """
        best = self.best_root
        if best is None or not self.graph.has_vertex(best):
            raise StructuralError("No recorded best root is present in the graph.")
        while True:
            others = [root for root in self.eligible_roots() if root is not best]
            if not others:
                break
            for root in others:
                self.graph.remove_vertex(root)
            self._forget(others)
        return best

    # --------------------------------------------------------------- training
    def train_one_generation(self, generation: int) -> RootResults:
        start = time.perf_counter()
        results = self.evaluate_all_roots(generation, "training")
        eval_time = time.perf_counter() - start
        self.update_evaluation_records(results)

        validation = None
        if self.params.do_validation:
            validation = self.evaluate_all_roots(generation, "validation")

        start = time.perf_counter()
        self.decimate_worst_roots(results)
        decimation_time = time.perf_counter() - start

        start = time.perf_counter()
        self.mutator.populate(self.graph, self.params.nb_roots, self.archive)
        mutation_time = time.perf_counter() - start

        if self.logger is not None:
            self.logger.log_generation(
                generation,
                self.graph,
                results,
                validation,
                {"eval": eval_time, "decim": decimation_time, "mutate": mutation_time},
            )
        return results

    def train(self, stop_event: threading.Event | None = None) -> int:
        """Run up to ``nb_generations`` generations; returns how many ran."""
        done = 0
        for generation in range(self.generation, self.params.nb_generations):
            if stop_event is not None and stop_event.is_set():
                break
            self.train_one_generation(generation)
            self.generation = generation + 1
            done += 1
        return done


class ParallelLearningAgent(LearningAgent):
    """Evaluates jobs on a thread pool, one environment clone per job.

    The graph is only read while jobs run; results are gathered in job order
    once every worker is done, so aggregation does not depend on scheduling.
    """

    def _evaluate_isolated(self, job: Job, generation: int, mode: LearningMode) -> EvaluationResult:
        env = self.env.clone()
        engine = ExecutionEngine(env, self._archive_for(job, mode))
        return self.evaluate_job(engine, job, generation, mode, env)

    def _run_jobs(
        self, jobs: list[Job], generation: int, mode: LearningMode
    ) -> list[EvaluationResult]:
        if self.params.nb_threads <= 1 or len(jobs) <= 1:
            return super()._run_jobs(jobs, generation, mode)
        with ThreadPoolExecutor(max_workers=self.params.nb_threads) as pool:
            return list(
                pool.map(
                    self._evaluate_isolated,
                    jobs,
                    itertools.repeat(generation),
                    itertools.repeat(mode),
                )
            )


def f1_scores(table: Sequence[Sequence[int]]) -> list[float]:
    """Per-class F1 from a ``[actual][predicted]`` count table."""
    scores = []
    for idx, row in enumerate(table):
        true_pos = row[idx]
        if true_pos == 0:
            scores.append(0.0)
            continue
        false_neg = sum(row) - true_pos
        false_pos = sum(other[idx] for other in table) - true_pos
        recall = true_pos / (true_pos + false_neg)
        precision = true_pos / (true_pos + false_pos)
        scores.append(2 * precision * recall / (precision + recall))
    return scores


class ClassificationLearningAgent(ParallelLearningAgent):
    """Scores roots per class (F1) and preserves the best roots of each class."""

    def __init__(
        self,
        env: ClassificationLearningEnvironment,
        params: LearningParameters | None = None,
        mutation: MutationParameters | None = None,
        logger: TrainingLogger | None = None,
    ) -> None:
        if not isinstance(env, ClassificationLearningEnvironment):
            raise TypeMismatch("ClassificationLearningAgent needs a classification environment.")
        super().__init__(env, params, mutation, logger)

    def evaluate_job(
        self,
        engine: ExecutionEngine,
        job: Job,
        generation: int,
        mode: LearningMode,
        env: LearningEnvironment,
    ) -> ClassificationEvaluationResult:
        totals = [0.0] * env.nb_actions
        actions = 0
        for iteration in range(job.nb_iterations):
            env.reset(derive_seed(generation, iteration), mode)
            actions += self._play_episode(engine, job.roots, env)
            table = env.classification_table()  # type: ignore[attr-defined]
            for idx, score in enumerate(f1_scores(table)):
                totals[idx] += score
        nb = job.nb_iterations
        scores = [total / nb if nb else 0.0 for total in totals]
        return ClassificationEvaluationResult.from_scores(
            scores, nb_evaluations=nb, avg_actions=actions / nb if nb else 0.0
        )

    def decimate_worst_roots(self, results: RootResults) -> list[Vertex]:
        removed = decimate_per_class(
            self.graph, results, self.params.ratio_deleted_roots, self.env.nb_actions
        )
        self._forget(removed)
        return removed


class AdversarialLearningAgent(ParallelLearningAgent):
    """Several roots play the same episodes; each root is scored on its seat.

    Roots are shuffled into jobs of ``agents_per_evaluation`` for
    ``jobs_per_root`` rounds, so a root takes part in several jobs and its
    results are merged before decimation.
    """

    def __init__(
        self,
        env: AdversarialLearningEnvironment,
        params: LearningParameters | None = None,
        mutation: MutationParameters | None = None,
        logger: TrainingLogger | None = None,
    ) -> None:
        if not isinstance(env, AdversarialLearningEnvironment):
            raise TypeMismatch("AdversarialLearningAgent needs an adversarial environment.")
        super().__init__(env, params, mutation, logger)
        self.agents_per_evaluation = self.params.agents_per_evaluation

    def make_jobs(self, mode: LearningMode = "training") -> list[Job]:
        roots = self.eligible_roots()
        if not roots:
            return []
        size = self.agents_per_evaluation
        jobs: list[Job] = []
        for _ in range(self.params.jobs_per_root):
            order = list(roots)
            self.rng.shuffle(order)
            for start in range(0, len(order), size):
                group = order[start : start + size]
                if len(group) < size:
                    group += list(itertools.islice(itertools.cycle(order), size - len(group)))
                jobs.append(
                    Job(
                        roots=tuple(group),
                        index=len(jobs),
                        archive_seed=self.rng.getrandbits(32),
                        nb_iterations=self.params.iterations_per_job,
                    )
                )
        return jobs

    def _cached_result(self, job: Job, mode: LearningMode) -> EvaluationResult | None:
        return None

    def evaluate_job(
        self,
        engine: ExecutionEngine,
        job: Job,
        generation: int,
        mode: LearningMode,
        env: LearningEnvironment,
    ) -> AdversarialEvaluationResult:
        totals = [0.0] * len(job)
        actions = 0
        for iteration in range(job.nb_iterations):
            env.reset(derive_seed(generation, iteration, job.index), mode)
            actions += self._play_episode(engine, job.roots, env)
            for pos, score in enumerate(env.get_scores()):  # type: ignore[attr-defined]
                if pos < len(totals):
                    totals[pos] += score
        nb = job.nb_iterations
        scores = [total / nb if nb else 0.0 for total in totals]
        return AdversarialEvaluationResult.from_scores(
            scores, nb_evaluations=nb, avg_actions=actions / nb if nb else 0.0
        )

    def _collect(
        self, job: Job, result: EvaluationResult, mode: LearningMode, results: RootResults
    ) -> None:
        if not isinstance(result, AdversarialEvaluationResult):
            raise TypeMismatch("Adversarial jobs must produce AdversarialEvaluationResult.")
        for pos, root in enumerate(job.roots):
            results.add(
                EvaluationResult(
                    score=result.score_of(pos),
                    nb_evaluations=result.nb_evaluations,
                    avg_actions=result.avg_actions,
                ),
                root,
            )

    def evaluate_all_roots(self, generation: int, mode: LearningMode = "training") -> RootResults:
        per_job = super().evaluate_all_roots(generation, mode)
        merged = RootResults()
        for root, result in per_job.per_root().items():
            merged.add(result, root)
        return merged
