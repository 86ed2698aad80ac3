"""Distributed dense linear-algebra primitives on block-cyclic matrices.

Local tiles are column-major ``(mloc, nloc)`` float64 arrays. Routines that
need remote data (norm, multiply, gather) are collectives over the grid and
must be called by every grid member in the same order.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .datastructures import DistributedMatrix, MatrixDescriptor
from .mpi.collective import Collective
from .mpi.distribution import col_indices, row_indices


def allocate(desc: MatrixDescriptor, fill: float = 0.0) -> DistributedMatrix:
    """Allocate the local tile for ``desc``."""
    local = np.full(desc.local_shape, fill, dtype=np.float64, order="F")
    return DistributedMatrix(desc, local)


def extract_local(global_array: np.ndarray, desc: MatrixDescriptor) -> np.ndarray:
    """Cut the tile owned by ``desc``'s process out of a global array."""
    rows, cols = row_indices(desc), col_indices(desc)
    return np.asfortranarray(global_array[np.ix_(rows, cols)])


def assemble_global(
    pieces: Iterable[Tuple[np.ndarray, np.ndarray, np.ndarray]], m: int, n: int
) -> np.ndarray:
    """Build a global array from ``(row_indices, col_indices, tile)`` pieces."""
    out = np.zeros((m, n), dtype=np.float64)
    for rows, cols, tile in pieces:
        out[np.ix_(rows, cols)] = tile
    return out


def gather_global(matrix: DistributedMatrix, collective: Collective) -> np.ndarray:
    """Replicate the full global matrix on every grid member."""
    desc = matrix.desc
    pieces = collective.allgather((row_indices(desc), col_indices(desc), matrix.local))
    return assemble_global(pieces, desc.m, desc.n)


def scatter_global(global_array: np.ndarray, matrix: DistributedMatrix):
    """Overwrite the local tile from a global array replicated on every rank."""
    matrix.local[...] = extract_local(global_array, matrix.desc)


def lacpy(src: DistributedMatrix, dst: DistributedMatrix):
    """Copy ``src`` into ``dst`` (both with the same distribution)."""
    if src.desc.local_shape != dst.desc.local_shape:
        raise ValueError(
            f"Copy between incompatible tiles {src.desc.local_shape} -> {dst.desc.local_shape}"
        )
    dst.local[...] = src.local


def laset(alpha: float, beta: float, matrix: DistributedMatrix):
    """Set off-diagonal entries to ``alpha`` and diagonal entries to ``beta``."""
    matrix.local.fill(alpha)
    rows, cols = row_indices(matrix.desc), col_indices(matrix.desc)
    li, lj = np.nonzero(rows[:, None] == cols[None, :])
    matrix.local[li, lj] = beta


def lange_fro(matrix: DistributedMatrix, collective: Collective) -> float:
    """Global Frobenius norm (sum of local squares, then Allreduce)."""
    local_sum_sq = float(np.sum(matrix.local**2))
    return float(np.sqrt(collective.reduce_sum(local_sum_sq)))


def gemm(
    transa: str,
    transb: str,
    alpha: float,
    a: DistributedMatrix,
    b: DistributedMatrix,
    beta: float,
    c: DistributedMatrix,
    collective: Collective,
):
    """C := alpha * op(A) @ op(B) + beta * C, with op(X) = X or X^T.

    The operands are replicated on every member before the local block of
    the product is formed.
    """
    a_global = gather_global(a, collective)
    b_global = a_global if b is a else gather_global(b, collective)
    op_a = a_global.T if transa.upper() == "T" else a_global
    op_b = b_global.T if transb.upper() == "T" else b_global

    if op_a.shape[1] != op_b.shape[0] or (op_a.shape[0], op_b.shape[1]) != c.shape:
        raise ValueError(
            f"Incompatible shapes for gemm: {op_a.shape} x {op_b.shape} -> {c.shape}"
        )

    rows, cols = row_indices(c.desc), col_indices(c.desc)
    product = op_a[rows, :] @ op_b[:, cols]
    if beta == 0.0:
        c.local[...] = alpha * product
    else:
        c.local[...] = alpha * product + beta * c.local
