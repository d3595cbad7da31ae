"""Units of evaluation work handed to the learning agents' workers."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import RangeError
from .graph import Vertex

_MASK64 = (1 << 64) - 1


def _mix64(value: int) -> int:
    # splitmix64 finaliser
    value = (value + 0x9E3779B97F4A7C15) & _MASK64
    value = ((value ^ (value >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    value = ((value ^ (value >> 27)) * 0x94D049BB133111EB) & _MASK64
    return value ^ (value >> 31)


def derive_seed(generation: int, iteration: int, salt: int = 0) -> int:
    """Deterministic environment seed for one evaluation iteration."""
    if generation < 0 or iteration < 0:
        raise RangeError("generation and iteration must be >= 0")
    return _mix64(generation) ^ _mix64(iteration + 1) ^ _mix64(salt + 2)


@dataclass(frozen=True)
class Job:
    """One or more roots evaluated together in the same episodes."""

    roots: tuple[Vertex, ...]
    index: int = 0
    archive_seed: int = 0
    nb_iterations: int = 1

    def __post_init__(self) -> None:
        if not self.roots:
            raise RangeError("A job needs at least one root.")
        if self.nb_iterations < 0:
            raise RangeError("nb_iterations must be >= 0")

    @property
    def root(self) -> Vertex:
        return self.roots[0]

    def __len__(self) -> int:
        return len(self.roots)
