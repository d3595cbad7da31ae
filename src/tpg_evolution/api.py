"""Public API for downstream modules."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from .agents import (
    AdversarialLearningAgent,
    ClassificationLearningAgent,
    LearningAgent,
    ParallelLearningAgent,
)
from .config import TaskConfig, TrainingConfig, load_config, save_config
from .environment import LearningEnvironment
from .export import export_dot, load_graph_json, save_graph_json
from .graph import TPGGraph
from .logger import TrainingLogger
from .tasks import GaussianClassificationTask, StickGame

__all__ = [
    "TrainingConfig",
    "load_config",
    "save_config",
    "build_environment",
    "build_agent",
    "run_training",
    "load_graph",
]


def build_environment(task: TaskConfig) -> LearningEnvironment:
    if task.kind == "classification":
        return GaussianClassificationTask(
            nb_classes=task.nb_classes,
            nb_features=task.nb_features,
            samples_per_episode=task.samples_per_episode,
            spread=task.spread,
            task_seed=task.task_seed,
        )
    if task.kind == "stick_game":
        return StickGame(nb_players=task.nb_players, initial_sticks=task.initial_sticks)
    raise ValueError(f"Unsupported task kind '{task.kind}'")


def build_agent(cfg: TrainingConfig, logger: TrainingLogger | None = None) -> LearningAgent:
    env = build_environment(cfg.task)
    if cfg.agent == "sequential":
        return LearningAgent(env, cfg.learning, cfg.mutation, logger)
    if cfg.agent == "parallel":
        return ParallelLearningAgent(env, cfg.learning, cfg.mutation, logger)
    if cfg.agent == "classification":
        return ClassificationLearningAgent(env, cfg.learning, cfg.mutation, logger)  # type: ignore[arg-type]
    if cfg.agent == "adversarial":
        return AdversarialLearningAgent(env, cfg.learning, cfg.mutation, logger)  # type: ignore[arg-type]
    raise ValueError(f"Unsupported agent '{cfg.agent}'")


def run_training(
    config_path: str | Path,
    generations: int | None = None,
    seed: int | None = None,
    out_path: str | Path | None = "runs/graph.json",
    dot_path: str | Path | None = None,
    keep_best: bool = False,
    console: Console | None = None,
) -> LearningAgent:
    """Entry point used by the CLI to train a graph from a config file."""
    cfg = load_config(config_path)
    if generations is not None:
        cfg.learning.nb_generations = generations
    if seed is not None:
        cfg.learning.seed = seed
    logger = TrainingLogger(console=console)
    logger.log_header(cfg.summary())
    agent = build_agent(cfg, logger)
    agent.init()
    agent.train()
    if keep_best:
        agent.keep_best_policy()
    if out_path is not None:
        save_graph_json(agent.graph, out_path)
        logger.console.print(f"[bold green]Graph written:[/] {out_path}")
    if dot_path is not None:
        export_dot(agent.graph, dot_path)
        logger.console.print(f"[bold green]DOT written:[/] {dot_path}")
    return agent


def load_graph(path: str | Path) -> TPGGraph:
    """Read a graph written by ``run_training``."""
    return load_graph_json(path)
