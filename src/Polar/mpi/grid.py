"""Two-dimensional process grid on top of an MPI Cartesian topology.

The grid is row-major: rank ``r`` of the parent communicator sits at
``(r // npcol, r % npcol)``. Ranks beyond ``nprow * npcol`` are not grid
members and take no part in the grid's collectives.

Example
-------
>>> with ProcessGrid.init(2, 2) as grid:
...     if grid.is_member:
...         desc = describe(n, n, nb, grid.layout)
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from mpi4py import MPI

from ..datastructures import GridLayout
from ..errors import GridSizeError
from .collective import Collective

log = logging.getLogger(__name__)


class ProcessGrid:
    """Row-major 2-D process mesh.

    Use :meth:`init` to create one; call :meth:`exit` exactly once when all
    distributed work is finished (or use the grid as a context manager).

    Parameters
    ----------
    nprow, npcol : int
        Grid shape.
    comm : MPI.Comm
        Parent communicator (must hold at least ``nprow * npcol`` ranks).
    """

    def __init__(self, nprow: int, npcol: int, comm: MPI.Comm = MPI.COMM_WORLD):
        if nprow < 1 or npcol < 1:
            raise ValueError(f"Invalid process grid {nprow}x{npcol}")

        self.comm = comm
        self.nprocs = comm.Get_size()
        self.world_rank = comm.Get_rank()
        if nprow * npcol > self.nprocs:
            raise GridSizeError(nprow, npcol, self.nprocs)

        self.nprow = nprow
        self.npcol = npcol
        self._exited = False

        # Split off the grid members, then lay them out as a Cartesian mesh
        member = self.world_rank < nprow * npcol
        self._member_comm = comm.Split(0 if member else MPI.UNDEFINED, self.world_rank)
        if member:
            self.cart_comm = self._member_comm.Create_cart(
                dims=[nprow, npcol], periods=[False, False], reorder=False
            )
            self.myrow, self.mycol = self.cart_comm.Get_coords(self.cart_comm.Get_rank())
            self.collective: Optional[Collective] = Collective(self.cart_comm)
        else:
            self.cart_comm = None
            self.myrow, self.mycol = -1, -1
            self.collective = None

        log.debug(
            f"Rank {self.world_rank} mapped to ({self.myrow}, {self.mycol}) "
            f"in {nprow}x{npcol} grid"
        )

    @classmethod
    def init(cls, nprow: int, npcol: int, comm: MPI.Comm = MPI.COMM_WORLD) -> "ProcessGrid":
        """Map the calling process into an ``nprow`` x ``npcol`` grid."""
        return cls(nprow, npcol, comm)

    @property
    def is_member(self) -> bool:
        return self.cart_comm is not None

    @property
    def layout(self) -> GridLayout:
        return GridLayout(self.nprow, self.npcol, self.myrow, self.mycol)

    def coordinates(self) -> Tuple[int, int]:
        """This process's (row, col); (-1, -1) for non-members."""
        return (self.myrow, self.mycol)

    def exit(self):
        """Release grid communicators. Must be called exactly once."""
        if self._exited:
            raise RuntimeError("Process grid already released")
        if self.cart_comm is not None:
            self.cart_comm.Free()
            self.cart_comm = None
        if self._member_comm != MPI.COMM_NULL:
            self._member_comm.Free()
        self._member_comm = MPI.COMM_NULL
        self.collective = None
        self._exited = True

    def __enter__(self) -> "ProcessGrid":
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self._exited:
            self.exit()
        return False
