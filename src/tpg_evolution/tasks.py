"""Reference tasks used by the CLI and the test-suite."""

from __future__ import annotations

import copy
import random

import numpy as np

from .environment import LearningMode
from .errors import RangeError
from .programs import DataSources

_MODE_SALT: dict[str, int] = {"training": 0, "validation": 0x5F3759DF, "testing": 0x2545F491}


class GaussianClassificationTask:
    """Label samples drawn around fixed class centroids.

    Centroids depend only on ``task_seed``; samples are redrawn at every reset
    from the reset seed, so episodes are reproducible.
    """

    def __init__(
        self,
        nb_classes: int = 3,
        nb_features: int = 4,
        samples_per_episode: int = 30,
        spread: float = 0.6,
        task_seed: int = 0,
    ) -> None:
        if nb_classes < 2:
            raise ValueError("nb_classes must be >= 2")
        self.nb_classes = nb_classes
        self.nb_features = nb_features
        self.samples_per_episode = samples_per_episode
        self.spread = spread
        gen = np.random.default_rng(task_seed)
        self.centroids = gen.uniform(-2.0, 2.0, size=(nb_classes, nb_features))
        self._labels = np.zeros(0, dtype=np.int64)
        self._samples = np.zeros((0, nb_features))
        self._cursor = 0
        self._table = [[0] * nb_classes for _ in range(nb_classes)]
        self.reset(0)

    @property
    def nb_actions(self) -> int:
        return self.nb_classes

    def reset(self, seed: int = 0, mode: LearningMode = "training") -> None:
        gen = np.random.default_rng((seed ^ _MODE_SALT[mode]) & 0xFFFFFFFFFFFFFFFF)
        self._labels = gen.integers(0, self.nb_classes, size=self.samples_per_episode)
        noise = gen.normal(0.0, self.spread, size=(self.samples_per_episode, self.nb_features))
        self._samples = self.centroids[self._labels] + noise
        self._cursor = 0
        self._table = [[0] * self.nb_classes for _ in range(self.nb_classes)]

    def is_terminal(self) -> bool:
        return self._cursor >= self.samples_per_episode

    def do_action(self, action_id: int) -> None:
        if not 0 <= action_id < self.nb_classes:
            raise RangeError(f"action {action_id} outside [0, {self.nb_classes})")
        if self.is_terminal():
            return
        actual = int(self._labels[self._cursor])
        self._table[actual][action_id] += 1
        self._cursor += 1

    def get_score(self) -> float:
        total = sum(sum(row) for row in self._table)
        if total == 0:
            return 0.0
        correct = sum(self._table[idx][idx] for idx in range(self.nb_classes))
        return correct / total

    def classification_table(self) -> list[list[int]]:
        return [list(row) for row in self._table]

    def data_sources(self) -> DataSources:
        if self.is_terminal():
            return (np.zeros(self.nb_features),)
        return (self._samples[self._cursor],)

    def clone(self) -> GaussianClassificationTask:
        return copy.deepcopy(self)


class StickGame:
    """Players alternately take 1 to 3 sticks; taking the last stick loses.

    Action ``a`` removes ``a + 1`` sticks. Taking more sticks than remain is a
    forbidden move and loses immediately. With ``nb_players == 1`` the agent
    plays first against a random opponent seeded by ``reset``.
    """

    HISTORY = 4
    WIN = 1.0
    LOSS = 0.0
    FORBIDDEN = -1.0

    def __init__(self, nb_players: int = 2, initial_sticks: int = 21) -> None:
        if nb_players not in (1, 2):
            raise ValueError("StickGame supports one or two players")
        self._nb_players = nb_players
        self.initial_sticks = initial_sticks
        self.remaining = initial_sticks
        self.turn = 0
        self.history: list[int] = []
        self._scores = [0.0] * 2
        self._over = False
        self._rng = random.Random(0)  # noqa: S311  # nosec B311 - seeded opponent

    @property
    def nb_actions(self) -> int:
        return 3

    @property
    def nb_players(self) -> int:
        return self._nb_players

    def reset(self, seed: int = 0, mode: LearningMode = "training") -> None:
        self.remaining = self.initial_sticks
        self.turn = 0
        self.history = []
        self._scores = [0.0] * 2
        self._over = False
        self._rng = random.Random(seed ^ _MODE_SALT[mode])  # noqa: S311  # nosec B311

    def is_terminal(self) -> bool:
        return self._over

    def _finish(self, loser: int, forbidden: bool) -> None:
        self._over = True
        self._scores = [self.WIN, self.WIN]
        self._scores[loser] = self.FORBIDDEN if forbidden else self.LOSS

    def _play(self, player: int, nb_sticks: int) -> None:
        if nb_sticks > self.remaining:
            self._finish(player, forbidden=True)
            return
        self.remaining -= nb_sticks
        self.history.append(nb_sticks)
        if self.remaining == 0:
            self._finish(player, forbidden=False)
            return
        self.turn = 1 - player

    def do_action(self, action_id: int) -> None:
        if not 0 <= action_id < self.nb_actions:
            raise RangeError(f"action {action_id} outside [0, {self.nb_actions})")
        if self._over:
            return
        self._play(self.turn, action_id + 1)
        if self._nb_players == 1 and not self._over:
            self._play(1, self._rng.randint(1, min(3, self.remaining)))

    def get_scores(self) -> list[float]:
        return list(self._scores[: self._nb_players])

    def get_score(self) -> float:
        return self._scores[0]

    def data_sources(self) -> DataSources:
        recent = self.history[-self.HISTORY :]
        padded = [0] * (self.HISTORY - len(recent)) + recent
        return (
            np.array([float(self.remaining)]),
            np.array(padded, dtype=np.float64),
        )

    def clone(self) -> StickGame:
        return copy.deepcopy(self)
