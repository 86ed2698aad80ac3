"""Data structures for benchmark configuration, distribution and results.

Architecture: Params vs Metrics × Global vs Local

                 Params (input/config)         Metrics (output/results)
                 ─────────────────────         ────────────────────────
Global           ExperimentConfig              SizeRecord, TimingSample,
(same across     size range, nb, grid,         ResidualPair
ranks / agg)     mode, cond, niter...

Local            GridLayout,                   (local tiles live in
(per-rank)       MatrixDescriptor              DistributedMatrix)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


# ============================================================================
# Global configuration (identical across ranks)
# ============================================================================


MLFLOW_MODES = ("off", "local", "databricks")


@dataclass(frozen=True)
class ExperimentConfig:
    """Run configuration - built once from the command line, never mutated.

    Identical across all MPI ranks and passed explicitly to every component.
    """

    # Process grid
    nprow: int = 1
    npcol: int = 1

    # Size sweep (inclusive stop)
    start: int = 5120
    stop: int = 5120
    step: int = 1
    nb: int = 128

    # Matrix generation
    mode: int = 4
    cond: float = 9.0072e15
    optcond: bool = False
    seed: int = 1

    # Timing / checking
    niter: int = 1
    check: bool = False
    verbose: bool = False

    # Decomposition routine ("scipy" or "module:attribute")
    routine: str = "scipy"

    # Output and experiment tracking
    output: Optional[str] = None
    mlflow: str = "off"
    experiment_name: str = "polar-timing"

    # Auto-detected at runtime (not from arguments)
    environment: str = field(init=False)

    def __post_init__(self):
        """Validate ranges and record the execution environment."""
        if self.nprow < 1 or self.npcol < 1:
            raise ValueError(f"Invalid process grid {self.nprow}x{self.npcol}")
        if self.start < 1 or self.stop < self.start:
            raise ValueError(f"Invalid size range {self.start}:{self.stop}")
        if self.step < 1:
            raise ValueError(f"Size step must be positive, got {self.step}")
        if self.nb < 1:
            raise ValueError(f"Block size must be positive, got {self.nb}")
        if not 1 <= self.mode <= 6:
            raise ValueError(f"Mode must be in 1..6, got {self.mode}")
        if not self.cond >= 1.0:
            raise ValueError(f"Condition number must be >= 1, got {self.cond}")
        if self.niter < 1:
            raise ValueError(f"Number of iterations must be positive, got {self.niter}")
        if self.mlflow not in MLFLOW_MODES:
            raise ValueError(f"Unknown MLflow mode '{self.mlflow}'. Use one of {MLFLOW_MODES}")

        env = "hpc" if os.environ.get("LSB_JOBID") or os.environ.get("SLURM_JOB_ID") else "local"
        object.__setattr__(self, "environment", env)

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible params dict (bools as int, no None)."""
        return {
            k: (int(v) if isinstance(v, bool) else v)
            for k, v in self.__dict__.items()
            if v is not None
        }


# ============================================================================
# Distribution (per-rank)
# ============================================================================


@dataclass(frozen=True)
class GridLayout:
    """Shape of the process grid and this process's coordinate in it.

    Non-members of the grid carry coordinates (-1, -1).
    """

    nprow: int
    npcol: int
    myrow: int = 0
    mycol: int = 0

    @property
    def is_member(self) -> bool:
        return self.myrow >= 0 and self.mycol >= 0

    @property
    def size(self) -> int:
        return self.nprow * self.npcol


@dataclass(frozen=True)
class MatrixDescriptor:
    """Block-cyclic matrix descriptor (one instance per process).

    All processes agree on the global shape (m, n) and blocking; the local
    extents differ per process coordinate.
    """

    m: int
    n: int
    mb: int
    nb: int
    layout: GridLayout
    local_rows: int
    local_cols: int
    rsrc: int = 0
    csrc: int = 0

    @property
    def lld(self) -> int:
        """Local leading dimension (column-major local storage)."""
        return max(1, self.local_rows)

    @property
    def local_shape(self) -> Tuple[int, int]:
        return (self.local_rows, self.local_cols)

    @property
    def local_size(self) -> int:
        return self.local_rows * self.local_cols

    @property
    def global_shape(self) -> Tuple[int, int]:
        return (self.m, self.n)


@dataclass
class DistributedMatrix:
    """Descriptor plus the local tile owned exclusively by this process."""

    desc: MatrixDescriptor
    local: np.ndarray

    @property
    def shape(self) -> Tuple[int, int]:
        return self.desc.global_shape


# ============================================================================
# Metrics (aggregated, identical on every rank)
# ============================================================================


@dataclass
class TimingSample:
    """Grid-wide timing statistics for one matrix size."""

    total: float = 0.0
    minimum: float = math.inf
    maximum: float = 0.0
    count: int = 0


@dataclass
class ResidualPair:
    """Residuals normalized by the Frobenius norm of the original matrix."""

    orthogonality: float = math.nan
    factorization: float = math.nan


@dataclass
class SizeRecord:
    """Aggregated benchmark result for one matrix size."""

    n: int
    nb: int
    nprocs: int
    nprow: int
    npcol: int
    mode: int
    cond: float
    niter: int
    gflops: float = 0.0
    avg_time: float = math.nan
    max_time: float = math.nan
    min_time: float = math.nan
    berr_uh: float = math.nan
    orth_u: float = math.nan
    info: int = 0
    estimated_cond: Optional[float] = None

    def to_mlflow(self) -> dict:
        """Convert to MLflow-compatible metrics dict (no None/NaN, bools as int)."""
        out = {}
        for k, v in self.__dict__.items():
            if v is None:
                continue
            if isinstance(v, float) and math.isnan(v):
                continue
            out[k] = int(v) if isinstance(v, bool) else v
        return out
