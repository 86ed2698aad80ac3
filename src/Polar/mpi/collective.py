"""Blocking collective operations over the process grid."""

from __future__ import annotations

from typing import Any, List

import numpy as np
from mpi4py import MPI


class Collective:
    """Explicit capability for cross-process agreement.

    Every operation is a blocking collective: all ranks of the communicator
    must call it, in the same order, before any of them can proceed.

    Parameters
    ----------
    comm : MPI.Comm
        Communicator spanning exactly the processes of the grid.
    """

    def __init__(self, comm: MPI.Comm = MPI.COMM_WORLD):
        self.comm = comm
        self.rank = comm.Get_rank()
        self.size = comm.Get_size()

    @property
    def is_root(self) -> bool:
        """Only rank 0 reports."""
        return self.rank == 0

    def _allreduce(self, value, op):
        dtype = np.int64 if isinstance(value, (int, np.integer)) else np.float64
        result = np.zeros(1, dtype=dtype)
        self.comm.Allreduce(np.array([value], dtype=dtype), result, op=op)
        return result[0].item()

    def reduce_max(self, value):
        """MAX-reduce a scalar via MPI Allreduce."""
        return self._allreduce(value, MPI.MAX)

    def reduce_min(self, value):
        """MIN-reduce a scalar via MPI Allreduce."""
        return self._allreduce(value, MPI.MIN)

    def reduce_sum(self, value):
        """Reduce sum via MPI Allreduce."""
        return self._allreduce(value, MPI.SUM)

    def agree_status(self, info: int) -> int:
        """Combine per-process status codes into one value seen by all ranks.

        A positive code anywhere wins (largest first); otherwise the most
        negative code is kept, so argument errors are not masked by zeros.
        """
        highest = self.reduce_max(int(info))
        if highest > 0:
            return highest
        return self.reduce_min(int(info))

    def allgather(self, obj: Any) -> List[Any]:
        """Gather one picklable object from every rank, in rank order."""
        return self.comm.allgather(obj)

    def barrier(self):
        """Synchronize all ranks."""
        self.comm.Barrier()

    def wtime(self) -> float:
        """Get current time using MPI.Wtime()."""
        return MPI.Wtime()
