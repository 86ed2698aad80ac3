"""Polar decomposition routines driven by the timing harness.

A routine follows the workspace-query calling convention::

    info = routine(jobh, m, n, a, h, work1, lwork1, work2, lwork2)

With ``lwork1 < 0`` or ``lwork2 < 0`` the call is a query: the required
number of rows of each workspace (per local column) is written to
``work1[0]`` / ``work2[0]`` and nothing else happens. Otherwise ``a`` is
overwritten by the orthogonal factor U and, when ``jobh == "H"``, ``h``
receives the symmetric positive semidefinite factor H.

``info`` is 0 on success, positive for a numerical failure and ``-i`` when
argument ``i`` (1-based) is invalid.
"""

from __future__ import annotations

import importlib
import logging
from typing import Protocol

import numpy as np
import scipy.linalg

from .datastructures import DistributedMatrix
from .mpi.collective import Collective
from .mpi.distribution import local_extent
from .pblas import gather_global, scatter_global

log = logging.getLogger(__name__)


class PolarRoutine(Protocol):
    """Calling convention of a distributed polar decomposition."""

    def __call__(
        self,
        jobh: str,
        m: int,
        n: int,
        a: DistributedMatrix,
        h: DistributedMatrix,
        work1: np.ndarray,
        lwork1: int,
        work2: np.ndarray,
        lwork2: int,
    ) -> int: ...


def svd_polar_flops(n: int) -> float:
    """Flop count of an SVD-based polar decomposition of an n x n matrix.

    Full SVD with both singular-vector sets (~21 n^3) plus U = W V^T and
    H = V S V^T (2 n^3 each).
    """
    return 25.0 * float(n) ** 3


class ScipyPolar:
    """SVD-based polar decomposition (``scipy.linalg.polar``).

    Replicates A on every grid member, factors it, and keeps the local
    tiles of U and H. Workspace requirements mirror a QR-based iteration on
    the stacked ``[A; I]`` matrix: ``work1`` holds the local rows of a
    ``2n x n`` matrix, ``work2`` the local rows of an ``n x n`` one.
    Argument checks are agreed across the grid before any collective work,
    so a bad argument on one rank fails the call on every rank.
    """

    name = "scipy"

    def __init__(self, collective: Collective):
        self.collective = collective

    flops = staticmethod(svd_polar_flops)

    def required_sizes(self, a: DistributedMatrix):
        desc = a.desc
        lay = desc.layout
        rows_stacked = local_extent(2 * desc.m, desc.mb, lay.myrow, lay.nprow)
        return max(1, rows_stacked), max(1, desc.local_rows)

    def _check_arguments(self, jobh, m, n, a, work1, lwork1, work2, lwork2, query) -> int:
        if jobh not in ("H", "N"):
            return -1
        if m != a.desc.m or m != n:
            return -2
        if n != a.desc.n:
            return -3
        if query:
            return 0

        need1, need2 = self.required_sizes(a)
        nloc = a.desc.local_cols
        if lwork1 < need1 or work1.size < need1 * nloc:
            return -7
        if lwork2 < need2 or work2.size < need2 * nloc:
            return -9
        return 0

    def __call__(self, jobh, m, n, a, h, work1, lwork1, work2, lwork2) -> int:
        # Ranks must agree on the path before the gather below
        query = self.collective.reduce_max(int(lwork1 < 0 or lwork2 < 0)) == 1
        info = self._check_arguments(jobh, m, n, a, work1, lwork1, work2, lwork2, query)
        info = self.collective.agree_status(info)
        if info != 0:
            return info

        if query:
            work1[0], work2[0] = self.required_sizes(a)
            return 0

        a_global = gather_global(a, self.collective)
        if not np.all(np.isfinite(a_global)):
            return 1
        try:
            u, p = scipy.linalg.polar(a_global, side="right")
        except np.linalg.LinAlgError as e:
            log.debug(f"SVD did not converge: {e}")
            return 2

        scatter_global(u, a)
        if jobh == "H":
            scatter_global(p, h)
        return 0


ROUTINES = {"scipy": ScipyPolar}


def load_routine(name: str, collective: Collective) -> PolarRoutine:
    """Create a routine by registry name or ``module:attribute`` path.

    The attribute is called with the collective and must return an object
    following :class:`PolarRoutine`.
    """
    if name in ROUTINES:
        return ROUTINES[name](collective)
    if ":" not in name:
        raise ValueError(f"Unknown routine '{name}'. Use one of {sorted(ROUTINES)} or module:attribute")

    module_name, attr = name.split(":", 1)
    factory = getattr(importlib.import_module(module_name), attr)
    return factory(collective)
