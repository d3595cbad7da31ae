"""Typed training configuration loaded from YAML or JSON."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import ujson as json
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class LearningParameters(BaseModel):
    """Knobs of the generational loop."""

    nb_roots: int = Field(default=100, gt=0)
    ratio_deleted_roots: float = Field(default=0.5, gt=0.0, le=1.0)
    nb_iterations_per_policy_evaluation: int = Field(default=5, gt=0)
    max_nb_actions_per_eval: int = Field(default=1000, gt=0)
    nb_generations: int = Field(default=50, gt=0)
    nb_threads: int = Field(default=1, ge=1)
    archive_size: int = Field(default=50, ge=0)
    archiving_probability: float = Field(default=0.05, ge=0.0, le=1.0)
    do_validation: bool = False
    # Adversarial agents
    agents_per_evaluation: int = Field(default=2, ge=1)
    iterations_per_job: int = Field(default=1, gt=0)
    jobs_per_root: int = Field(default=2, gt=0)
    seed: int = 0


class MutationParameters(BaseModel):
    """Structural and program mutation probabilities."""

    init_nb_roots: int = Field(default=0, ge=0)
    max_init_outgoing_edges: int = Field(default=3, ge=2)
    max_outgoing_edges: int = Field(default=5, ge=2)
    p_edge_deletion: float = Field(default=0.7, ge=0.0, le=1.0)
    p_edge_addition: float = Field(default=0.7, ge=0.0, le=1.0)
    p_program_mutation: float = Field(default=0.2, ge=0.0, le=1.0)
    p_edge_destination_change: float = Field(default=0.1, ge=0.0, le=1.0)
    p_edge_destination_is_action: float = Field(default=0.5, ge=0.0, le=1.0)
    weight_sigma: float = Field(default=0.5, gt=0.0)
    sparsity: float = Field(default=0.5, ge=0.0, lt=1.0)
    max_novelty_attempts: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def validate_edge_bounds(self) -> MutationParameters:
        if self.max_init_outgoing_edges > self.max_outgoing_edges:
            raise ValueError("mutation.max_init_outgoing_edges must be <= max_outgoing_edges")
        if self.p_program_mutation == 0.0 and self.p_edge_destination_change == 0.0:
            raise ValueError(
                "mutation.p_program_mutation or p_edge_destination_change must be > 0"
            )
        return self


class TaskConfig(BaseModel):
    """Reference task selection."""

    kind: Literal["classification", "stick_game"] = "classification"
    nb_classes: int = Field(default=3, ge=2)
    nb_features: int = Field(default=4, gt=0)
    samples_per_episode: int = Field(default=30, gt=0)
    spread: float = Field(default=0.6, gt=0.0)
    task_seed: int = 0
    nb_players: int = Field(default=2, ge=1, le=2)
    initial_sticks: int = Field(default=21, gt=0)


AgentKind = Literal["sequential", "parallel", "classification", "adversarial"]


class TrainingConfig(BaseModel):
    """Top-level training configuration."""

    agent: AgentKind = "classification"
    learning: LearningParameters = Field(default_factory=LearningParameters)
    mutation: MutationParameters = Field(default_factory=MutationParameters)
    task: TaskConfig = Field(default_factory=TaskConfig)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_agent_task(self) -> TrainingConfig:
        if self.agent == "classification" and self.task.kind != "classification":
            raise ValueError("agent=classification requires task.kind=classification")
        if self.agent == "adversarial":
            if self.task.kind != "stick_game":
                raise ValueError("agent=adversarial requires task.kind=stick_game")
            if self.task.nb_players != self.learning.agents_per_evaluation:
                raise ValueError("task.nb_players must equal learning.agents_per_evaluation")
        return self

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly summary for logging."""
        return {
            "agent": self.agent,
            "task": self.task.kind,
            "nb_roots": self.learning.nb_roots,
            "generations": self.learning.nb_generations,
            "threads": self.learning.nb_threads,
        }


def load_config(path: str | Path) -> TrainingConfig:
    """Load a training config from YAML or JSON."""
    path = Path(path)
    data: Any
    text = path.read_text()
    if path.suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    try:
        return TrainingConfig(**(data or {}))
    except ValidationError as exc:
        raise ValueError(f"Invalid config {path}") from exc


def save_config(cfg: TrainingConfig, path: str | Path) -> None:
    """Persist a config as YAML or JSON based on file suffix."""
    path = Path(path)
    if path.suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(cfg.model_dump(mode="python"), sort_keys=False))
    else:
        path.write_text(json.dumps(cfg.model_dump(mode="python"), indent=2))
