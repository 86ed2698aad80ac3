"""Polar decomposition timing package.

A harness for measuring the performance and accuracy of distributed polar
decompositions (A = U H) of dense matrices laid out block-cyclically on a
2-D MPI process grid.

Components
----------
Distribution:
- ProcessGrid: row-major process mesh
- local_extent / describe: block-cyclic arithmetic and descriptors

Experiment:
- generate: synthetic matrices with a prescribed spectrum
- DecompositionInvoker: workspace query, allocation and compute
- TimingAggregator: grid-wide MAX timing statistics
- CorrectnessVerifier: orthogonality and factorization residuals
- ExperimentDriver: the size sweep
"""

from pathlib import Path

from .datastructures import (
    ExperimentConfig,
    GridLayout,
    MatrixDescriptor,
    DistributedMatrix,
    TimingSample,
    ResidualPair,
    SizeRecord,
)
from .errors import GridSizeError, GenerationError, FactorizationError
from .mpi import Collective, ProcessGrid, describe, global_indices, local_extent, owner
from .generator import generate, spectrum, synthesize_global, estimate_condition
from .routines import ScipyPolar, load_routine
from .invoker import DecompositionInvoker, Workspaces
from .timing import TimingAggregator
from .verification import CorrectnessVerifier
from .driver import ExperimentDriver, guard_size
from .report import Reporter
from .helpers import run_benchmark

__all__ = [
    # Data structures
    "ExperimentConfig",
    "GridLayout",
    "MatrixDescriptor",
    "DistributedMatrix",
    "TimingSample",
    "ResidualPair",
    "SizeRecord",
    # Errors
    "GridSizeError",
    "GenerationError",
    "FactorizationError",
    # Grid and distribution
    "Collective",
    "ProcessGrid",
    "describe",
    "global_indices",
    "local_extent",
    "owner",
    # Matrix generation
    "generate",
    "spectrum",
    "synthesize_global",
    "estimate_condition",
    # Decomposition
    "ScipyPolar",
    "load_routine",
    "DecompositionInvoker",
    "Workspaces",
    # Measurement
    "TimingAggregator",
    "CorrectnessVerifier",
    "ExperimentDriver",
    "guard_size",
    "Reporter",
    # Utilities
    "run_benchmark",
    "get_project_root",
]


def get_project_root() -> Path:
    """Get project root directory.

    Returns
    -------
    Path
        Project root directory (contains pyproject.toml).
    """
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent

    # Fallback: assume standard src layout
    return Path(__file__).resolve().parent.parent.parent
