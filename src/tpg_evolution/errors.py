"""Error taxonomy shared by the graph, the agents and the selection code."""

from __future__ import annotations


class TPGError(Exception):
    """Base class for errors raised by tpg_evolution."""


class StructuralError(TPGError, ValueError):
    """A graph invariant would be violated (illegal edge, missing endpoint)."""


class RangeError(TPGError, IndexError):
    """An index or iteration count is outside its declared bounds."""


class TypeMismatch(TPGError, TypeError):
    """Evaluation results do not match the variant the selection policy needs."""


class ResourceError(TPGError, OSError):
    """A file or stream used by a collaborator could not be opened."""
