"""Interfaces the learning agents expect from a task."""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

from .programs import DataSources

LearningMode = Literal["training", "validation", "testing"]


@runtime_checkable
class LearningEnvironment(Protocol):
    """Single-agent task driven one action at a time."""

    @property
    def nb_actions(self) -> int: ...

    def reset(self, seed: int = 0, mode: LearningMode = "training") -> None: ...

    def is_terminal(self) -> bool: ...

    def do_action(self, action_id: int) -> None: ...

    def get_score(self) -> float: ...

    def data_sources(self) -> DataSources: ...

    def clone(self) -> LearningEnvironment: ...


@runtime_checkable
class ClassificationLearningEnvironment(LearningEnvironment, Protocol):
    """Task whose actions are class predictions."""

    def classification_table(self) -> list[list[int]]:
        """Counts indexed ``[actual][predicted]``."""
        ...


@runtime_checkable
class AdversarialLearningEnvironment(LearningEnvironment, Protocol):
    """Task played by several agents taking turns on one environment."""

    @property
    def nb_players(self) -> int: ...

    def get_scores(self) -> list[float]: ...
