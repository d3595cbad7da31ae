"""
tpg_evolution
=============

Tangled Program Graphs: a graph of bidding programs trained by generational
evaluation, decimation and mutation.
"""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Return the installed package version or '0.0.0' when unavailable."""
    try:
        return version("tpg_evolution")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
