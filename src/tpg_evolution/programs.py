"""Bidding programs executed on the edges of a TPG."""

from __future__ import annotations

import itertools
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np

from .errors import RangeError

DataSources = Sequence[np.ndarray]

_PROGRAM_IDS = itertools.count()


class Program(Protocol):
    """Deterministic scoring function over the data sources of a task."""

    def execute(self, data_sources: DataSources) -> float: ...


def flatten_sources(data_sources: DataSources) -> np.ndarray:
    """Concatenate every data source into one float vector."""
    if not data_sources:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate([np.ravel(np.asarray(src, dtype=np.float64)) for src in data_sources])


@dataclass(eq=False)
class LinearProgram:
    """Sparse affine bid: ``weights . inputs + bias``.

    A zero weight means the input is ignored, so sparsity is carried directly
    by the weight vector.
    """

    weights: np.ndarray
    bias: float = 0.0
    ident: int = field(default_factory=lambda: next(_PROGRAM_IDS))

    @property
    def nb_inputs(self) -> int:
        return int(self.weights.shape[0])

    def execute(self, data_sources: DataSources) -> float:
        inputs = flatten_sources(data_sources)
        if inputs.shape[0] != self.nb_inputs:
            msg = f"Program {self.ident} expects {self.nb_inputs} inputs, got {inputs.shape[0]}."
            raise RangeError(msg)
        with np.errstate(all="ignore"):
            return float(np.dot(self.weights, inputs) + self.bias)

    @classmethod
    def random(cls, nb_inputs: int, rng: random.Random, sparsity: float = 0.5) -> LinearProgram:
        gen = np.random.default_rng(rng.getrandbits(32))
        weights = gen.normal(0.0, 1.0, size=nb_inputs)
        mask = gen.random(nb_inputs) < sparsity
        weights[mask] = 0.0
        if nb_inputs and not np.any(weights):
            weights[gen.integers(nb_inputs)] = gen.normal(0.0, 1.0)
        return cls(weights=weights, bias=float(gen.normal(0.0, 1.0)))

    def mutated(self, rng: random.Random, sigma: float = 0.5, sparsity: float = 0.5) -> LinearProgram:
        """Return a perturbed copy; the original program is left untouched."""
        gen = np.random.default_rng(rng.getrandbits(32))
        weights = self.weights.copy()
        if weights.shape[0]:
            idx = int(gen.integers(weights.shape[0]))
            if weights[idx] == 0.0 or gen.random() >= sparsity:
                weights[idx] += gen.normal(0.0, sigma)
            else:
                weights[idx] = 0.0
        bias = self.bias + float(gen.normal(0.0, sigma / 2))
        return LinearProgram(weights=weights, bias=bias)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.ident,
            "weights": [float(w) for w in self.weights],
            "bias": float(self.bias),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LinearProgram:
        return cls(
            weights=np.asarray(data.get("weights", []), dtype=np.float64),
            bias=float(data.get("bias", 0.0)),
        )
