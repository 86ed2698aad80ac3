"""MPI process grid and block-cyclic distribution.

This package provides:
- ProcessGrid: row-major 2-D process mesh (MPI Cartesian topology)
- Collective: blocking reductions/gathers over the grid
- Distribution arithmetic: local_extent, global_indices, owner, describe
"""

from .collective import Collective
from .distribution import describe, global_indices, local_extent, owner
from .grid import ProcessGrid
from ..datastructures import GridLayout, MatrixDescriptor

__all__ = [
    "ProcessGrid",
    "Collective",
    "GridLayout",
    "MatrixDescriptor",
    "describe",
    "global_indices",
    "local_extent",
    "owner",
]
