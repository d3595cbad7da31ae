"""Decimation of the root population after each generation."""

from __future__ import annotations

import math

from .errors import TypeMismatch
from .graph import TPGGraph, Vertex
from .results import ClassificationEvaluationResult, RootResults


def roots_to_keep(graph: TPGGraph, ratio: float) -> tuple[int, int]:
    """Return ``(to_delete, to_keep)`` for the current root count."""
    total = graph.nb_root_vertices()
    to_delete = int(math.floor(ratio * total))
    return to_delete, total - to_delete


def _remove_unkept(graph: TPGGraph, keep: dict[Vertex, None]) -> list[Vertex]:
    removed = []
    for root in graph.root_vertices():
        # Actions are terminal nodes and always survive.
        if root.is_action or root in keep:
            continue
        graph.remove_vertex(root)
        removed.append(root)
    return removed


def _check_results(results: RootResults) -> None:
    if not results:
        raise TypeMismatch("Cannot decimate roots from an empty result mapping.")


def decimate_worst_roots(graph: TPGGraph, results: RootResults, ratio: float) -> list[Vertex]:
    """Keep the best scoring roots and remove the other non-action roots.

    Returns the removed vertices.
    """
    _check_results(results)
    _, to_keep = roots_to_keep(graph, ratio)
    keep: dict[Vertex, None] = {}
    for _, root in results.best_first():
        if len(keep) >= to_keep:
            break
        keep.setdefault(root, None)
    return _remove_unkept(graph, keep)


def decimate_per_class(
    graph: TPGGraph, results: RootResults, ratio: float, nb_classes: int
) -> list[Vertex]:
    """Preserve the best roots of every class, then fill on the general score.

    Each class reserves up to ``(to_keep // nb_classes) // 2`` roots. A root
    already reserved by another class is skipped but still consumes a slot of
    the current class. Within a class, the root added later wins a tie.
    Nothing is reserved when fewer than ``2 * nb_classes`` roots are kept.
    """
    _check_results(results)
    for result in results.results():
        if not isinstance(result, ClassificationEvaluationResult):
            raise TypeMismatch(
                "Per-class decimation needs ClassificationEvaluationResult, got "
                f"{type(result).__name__}."
            )
        if len(result.scores_per_class) != nb_classes:
            raise TypeMismatch(
                f"Expected {nb_classes} class scores, got {len(result.scores_per_class)}."
            )

    _, to_keep = roots_to_keep(graph, ratio)
    per_class = (to_keep // nb_classes) // 2

    keep: dict[Vertex, None] = {}
    for class_idx in range(nb_classes):
        ranking = results.best_first_by(
            lambda res, c=class_idx: res.scores_per_class[c]  # type: ignore[attr-defined]
        )
        for _, root in ranking[:per_class]:
            keep.setdefault(root, None)

    for _, root in results.best_first():
        if len(keep) >= to_keep:
            break
        keep.setdefault(root, None)

    return _remove_unkept(graph, keep)
