"""Two-phase (query, then compute) invocation of a polar decomposition routine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .datastructures import DistributedMatrix, MatrixDescriptor
from .errors import FactorizationError
from .mpi.collective import Collective
from .routines import PolarRoutine

log = logging.getLogger(__name__)


@dataclass
class Workspaces:
    """Per-process scratch buffers, ``lwork`` rows by the local column count."""

    work1: np.ndarray
    lwork1: int
    work2: np.ndarray
    lwork2: int

    @property
    def nbytes(self) -> int:
        return self.work1.nbytes + self.work2.nbytes


class DecompositionInvoker:
    """Drives a routine through size_workspaces -> allocate -> compute.

    The sentinel-size query convention of the routine stays inside this
    class; callers only see the three explicit steps. Query once per matrix
    size and reuse the workspaces for every iteration.

    Parameters
    ----------
    routine : PolarRoutine
        Decomposition routine following the query convention.
    collective : Collective
        Grid-wide collectives used to agree the returned status.
    jobh : str
        ``"H"`` to also compute the symmetric factor.
    """

    def __init__(self, routine: PolarRoutine, collective: Collective, jobh: str = "H"):
        self.routine = routine
        self.collective = collective
        self.jobh = jobh

    def size_workspaces(self, a: DistributedMatrix, h: DistributedMatrix) -> Tuple[int, int]:
        """Phase 1: ask the routine for its workspace requirements."""
        work1 = np.zeros(1)
        work2 = np.zeros(1)
        info = self.routine(self.jobh, a.desc.m, a.desc.n, a, h, work1, -1, work2, -1)

        status = self.collective.agree_status(info)
        if status != 0:
            raise FactorizationError(status)

        lwork1, lwork2 = int(work1[0]), int(work2[0])
        log.debug(f"Workspace query: lwork1={lwork1}, lwork2={lwork2}")
        return lwork1, lwork2

    def allocate(self, lwork1: int, lwork2: int, desc: MatrixDescriptor) -> Workspaces:
        """Allocate both workspaces from the local column count of ``desc``."""
        nloc = desc.local_cols
        return Workspaces(
            work1=np.zeros((lwork1, nloc), dtype=np.float64, order="F"),
            lwork1=lwork1,
            work2=np.zeros((lwork2, nloc), dtype=np.float64, order="F"),
            lwork2=lwork2,
        )

    def compute(self, a: DistributedMatrix, h: DistributedMatrix, workspaces: Workspaces) -> float:
        """Phase 2: factor ``a`` in place.

        Returns
        -------
        float
            Elapsed seconds measured on this process.

        Raises
        ------
        FactorizationError
            On every rank when any rank reports a nonzero status.
        """
        self.collective.barrier()  # Sync all ranks before timing
        t0 = self.collective.wtime()
        info = self.routine(
            self.jobh,
            a.desc.m,
            a.desc.n,
            a,
            h,
            workspaces.work1,
            workspaces.lwork1,
            workspaces.work2,
            workspaces.lwork2,
        )
        elapsed = self.collective.wtime() - t0

        status = self.collective.agree_status(info)
        if status != 0:
            raise FactorizationError(status, elapsed)
        return elapsed
