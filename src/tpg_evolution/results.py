"""Evaluation results and the ordered result -> root mapping used by selection."""

from __future__ import annotations

import bisect
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import TypeMismatch
from .graph import Vertex


def _weighted_actions(a: EvaluationResult, b: EvaluationResult, total: int) -> float:
    return (a.avg_actions * a.nb_evaluations + b.avg_actions * b.nb_evaluations) / total


@dataclass(frozen=True, eq=False)
class EvaluationResult:
    """Mean score of a root over ``nb_evaluations`` iterations.

    ``avg_actions`` is the mean number of actions taken per iteration.
    """

    score: float
    nb_evaluations: int = 1
    avg_actions: float = 0.0

    def __lt__(self, other: EvaluationResult) -> bool:
        return self.score < other.score

    def __le__(self, other: EvaluationResult) -> bool:
        return self.score <= other.score

    def __gt__(self, other: EvaluationResult) -> bool:
        return self.score > other.score

    def __ge__(self, other: EvaluationResult) -> bool:
        return self.score >= other.score

    def merge(self, other: EvaluationResult) -> EvaluationResult:
        """Weighted average of both results by evaluation count."""
        if type(other) is not type(self):
            raise TypeMismatch(
                f"Cannot merge {type(other).__name__} into {type(self).__name__}."
            )
        total = self.nb_evaluations + other.nb_evaluations
        if total == 0:
            return self
        score = (self.score * self.nb_evaluations + other.score * other.nb_evaluations) / total
        return EvaluationResult(
            score=score, nb_evaluations=total, avg_actions=_weighted_actions(self, other, total)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "nb_evaluations": self.nb_evaluations,
            "avg_actions": self.avg_actions,
        }


@dataclass(frozen=True, eq=False)
class ClassificationEvaluationResult(EvaluationResult):
    """Per-class scores; ``score`` is their mean."""

    scores_per_class: tuple[float, ...] = ()

    @classmethod
    def from_scores(
        cls,
        scores_per_class: Sequence[float],
        nb_evaluations: int = 1,
        avg_actions: float = 0.0,
    ) -> ClassificationEvaluationResult:
        scores = tuple(float(s) for s in scores_per_class)
        mean = sum(scores) / len(scores) if scores else 0.0
        return cls(
            score=mean,
            nb_evaluations=nb_evaluations,
            avg_actions=avg_actions,
            scores_per_class=scores,
        )

    def merge(self, other: EvaluationResult) -> ClassificationEvaluationResult:
        if not isinstance(other, ClassificationEvaluationResult):
            raise TypeMismatch(
                f"Cannot merge {type(other).__name__} into ClassificationEvaluationResult."
            )
        if len(other.scores_per_class) != len(self.scores_per_class):
            raise TypeMismatch("Classification results have different class counts.")
        total = self.nb_evaluations + other.nb_evaluations
        if total == 0:
            return self
        scores = [
            (a * self.nb_evaluations + b * other.nb_evaluations) / total
            for a, b in zip(self.scores_per_class, other.scores_per_class)
        ]
        return ClassificationEvaluationResult.from_scores(
            scores, nb_evaluations=total, avg_actions=_weighted_actions(self, other, total)
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["scores_per_class"] = list(self.scores_per_class)
        return data


@dataclass(frozen=True, eq=False)
class AdversarialEvaluationResult(EvaluationResult):
    """Job-level result: one mean score per agent, in job order."""

    scores: tuple[float, ...] = ()

    @classmethod
    def from_scores(
        cls, scores: Sequence[float], nb_evaluations: int = 1, avg_actions: float = 0.0
    ) -> AdversarialEvaluationResult:
        values = tuple(float(s) for s in scores)
        mean = sum(values) / len(values) if values else 0.0
        return cls(
            score=mean, nb_evaluations=nb_evaluations, avg_actions=avg_actions, scores=values
        )

    def score_of(self, position: int) -> float:
        return self.scores[position]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["scores"] = list(self.scores)
        return data


@dataclass
class _Entry:
    result: EvaluationResult
    root: Vertex
    seq: int


class RootResults:
    """Ordered multi-valued mapping from result to root.

    Entries stay sorted by result score; equal scores keep insertion order.
    The same root may appear more than once.
    """

    def __init__(self) -> None:
        self._entries: list[_Entry] = []
        self._counter = 0

    def add(self, result: EvaluationResult, root: Vertex) -> None:
        entry = _Entry(result=result, root=root, seq=self._counter)
        self._counter += 1
        bisect.insort_right(self._entries, entry, key=lambda e: e.result.score)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[tuple[EvaluationResult, Vertex]]:
        return ((e.result, e.root) for e in self._entries)

    def items(self) -> list[tuple[EvaluationResult, Vertex]]:
        """Ascending by score, ties in insertion order."""
        return [(e.result, e.root) for e in self._entries]

    def best_first(self) -> list[tuple[EvaluationResult, Vertex]]:
        """Descending by score, ties in insertion order."""
        ordered = sorted(self._entries, key=lambda e: (-e.result.score, e.seq))
        return [(e.result, e.root) for e in ordered]

    def results(self) -> list[EvaluationResult]:
        return [e.result for e in self._entries]

    def roots(self) -> list[Vertex]:
        """Distinct roots in ascending score order."""
        seen: dict[Vertex, None] = {}
        for e in self._entries:
            seen.setdefault(e.root, None)
        return list(seen)

    def per_root(self) -> dict[Vertex, EvaluationResult]:
        """Merge every result of each root into one."""
        merged: dict[Vertex, EvaluationResult] = {}
        for e in sorted(self._entries, key=lambda e: e.seq):
            prev = merged.get(e.root)
            merged[e.root] = e.result if prev is None else prev.merge(e.result)
        return merged

    def best_first_by(
        self, key: Callable[[EvaluationResult], float]
    ) -> list[tuple[EvaluationResult, Vertex]]:
        """Descending by ``key(result)``; on equal keys the later insertion comes first."""
        ordered = sorted(self._entries, key=lambda e: (-key(e.result), -e.seq))
        return [(e.result, e.root) for e in ordered]
