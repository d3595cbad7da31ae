"""Bounded recording of program executions.

The mutator reads the archive to reject programs whose bids duplicate the
bids of programs already in the graph on recently seen inputs.
"""

from __future__ import annotations

import hashlib
import threading
from collections import deque
from dataclasses import dataclass

import numpy as np

from .programs import DataSources, Program


def hash_sources(snapshot: tuple[np.ndarray, ...]) -> str:
    digest = hashlib.blake2b(digest_size=16)
    for src in snapshot:
        digest.update(np.ascontiguousarray(src).tobytes())
        digest.update(b"|")
    return digest.hexdigest()


@dataclass(frozen=True, eq=False)
class ArchiveRecording:
    program: Program
    snapshot: tuple[np.ndarray, ...]
    data_hash: str
    result: float


class Archive:
    """Ring buffer of (program, input snapshot, bid) recordings.

    Appends are atomic under a lock; once ``capacity`` is reached the oldest
    recording is evicted first.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity < 0:
            raise ValueError("Archive capacity must be >= 0")
        self.capacity = capacity
        self._recordings: deque[ArchiveRecording] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def add_recording(self, program: Program, data_sources: DataSources, result: float) -> None:
        if self.capacity == 0:
            return
        snapshot = tuple(np.array(src, dtype=np.float64, copy=True) for src in data_sources)
        for src in snapshot:
            src.setflags(write=False)
        recording = ArchiveRecording(
            program=program,
            snapshot=snapshot,
            data_hash=hash_sources(snapshot),
            result=float(result),
        )
        with self._lock:
            self._recordings.append(recording)

    def clear(self) -> None:
        with self._lock:
            self._recordings.clear()

    @property
    def recordings(self) -> list[ArchiveRecording]:
        with self._lock:
            return list(self._recordings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._recordings)

    def snapshots(self) -> dict[str, tuple[np.ndarray, ...]]:
        """Distinct input snapshots currently archived, keyed by hash."""
        out: dict[str, tuple[np.ndarray, ...]] = {}
        for rec in self.recordings:
            out.setdefault(rec.data_hash, rec.snapshot)
        return out

    def are_results_unique(self, results: dict[str, float], tau: float = 1e-4) -> bool:
        """Return False when some archived program bids within ``tau`` on every input.

        ``results`` maps snapshot hashes to the bids of a candidate program.
        """
        if not results:
            return True
        per_program: dict[int, dict[str, float]] = {}
        for rec in self.recordings:
            if rec.data_hash in results:
                per_program.setdefault(id(rec.program), {})[rec.data_hash] = rec.result
        for bids in per_program.values():
            if len(bids) != len(results):
                continue
            if all(abs(bids[key] - results[key]) <= tau for key in results):
                return False
        return True
