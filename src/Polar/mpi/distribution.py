"""Block-cyclic distribution arithmetic.

Pure functions: no communication, so any process coordinate can be
evaluated from any rank (used by tests and by the gather helpers).
"""

from __future__ import annotations

import numpy as np

from ..datastructures import GridLayout, MatrixDescriptor


def _check_axis(global_dim: int, block_size: int, proc_count: int):
    if global_dim < 0:
        raise ValueError(f"Global dimension must be non-negative, got {global_dim}")
    if block_size < 1:
        raise ValueError(f"Block size must be positive, got {block_size}")
    if proc_count < 1:
        raise ValueError(f"Process count must be positive, got {proc_count}")


def local_extent(
    global_dim: int, block_size: int, proc_coord: int, proc_count: int, src: int = 0
) -> int:
    """Number of global indices owned by ``proc_coord`` along one axis.

    Indices are cut into chunks of ``block_size`` and dealt round-robin to
    the processes of the axis, starting at ``src``. Only the last global
    chunk may be partial.

    Parameters
    ----------
    global_dim : int
        Global number of rows (or columns).
    block_size : int
        Distribution block size.
    proc_coord : int
        Coordinate of the process along this axis.
    proc_count : int
        Number of processes along this axis.
    src : int
        Coordinate of the process owning the first block.

    Returns
    -------
    int
        Local row (or column) count.
    """
    _check_axis(global_dim, block_size, proc_count)
    mydist = (proc_count + proc_coord - src) % proc_count
    nblocks = global_dim // block_size
    extent = (nblocks // proc_count) * block_size
    extra_blocks = nblocks % proc_count
    if mydist < extra_blocks:
        extent += block_size
    elif mydist == extra_blocks:
        extent += global_dim % block_size
    return extent


def global_indices(
    global_dim: int, block_size: int, proc_coord: int, proc_count: int, src: int = 0
) -> np.ndarray:
    """Ascending global indices owned by ``proc_coord`` along one axis."""
    count = local_extent(global_dim, block_size, proc_coord, proc_count, src)
    local = np.arange(count, dtype=np.int64)
    mydist = (proc_count + proc_coord - src) % proc_count
    return proc_count * block_size * (local // block_size) + local % block_size + mydist * block_size


def owner(global_index: int, block_size: int, proc_count: int, src: int = 0) -> int:
    """Coordinate of the process owning ``global_index`` along one axis."""
    return (src + global_index // block_size) % proc_count


def describe(
    global_rows: int, global_cols: int, block_size: int, layout: GridLayout
) -> MatrixDescriptor:
    """Build the descriptor of a square-blocked matrix for one process.

    Raises
    ------
    ValueError
        For negative dimensions, a non-positive block size, coordinates
        outside the grid, or a grid wider than the number of blocks along
        an axis.
    """
    if global_rows < 0 or global_cols < 0:
        raise ValueError(f"Negative matrix dimensions {global_rows}x{global_cols}")
    if block_size < 1:
        raise ValueError(f"Block size must be positive, got {block_size}")
    if not (0 <= layout.myrow < layout.nprow and 0 <= layout.mycol < layout.npcol):
        raise ValueError(
            f"Coordinate ({layout.myrow}, {layout.mycol}) outside "
            f"{layout.nprow}x{layout.npcol} grid"
        )
    if global_rows // block_size < layout.nprow or global_cols // block_size < layout.npcol:
        raise ValueError(
            f"Matrix {global_rows}x{global_cols} with block size {block_size} is too "
            f"small for a {layout.nprow}x{layout.npcol} grid"
        )

    local_rows = local_extent(global_rows, block_size, layout.myrow, layout.nprow)
    local_cols = local_extent(global_cols, block_size, layout.mycol, layout.npcol)

    return MatrixDescriptor(
        m=global_rows,
        n=global_cols,
        mb=block_size,
        nb=block_size,
        layout=layout,
        local_rows=local_rows,
        local_cols=local_cols,
    )


def row_indices(desc: MatrixDescriptor) -> np.ndarray:
    """Global row indices of the local tile described by ``desc``."""
    return global_indices(desc.m, desc.mb, desc.layout.myrow, desc.layout.nprow, desc.rsrc)


def col_indices(desc: MatrixDescriptor) -> np.ndarray:
    """Global column indices of the local tile described by ``desc``."""
    return global_indices(desc.n, desc.nb, desc.layout.mycol, desc.layout.npcol, desc.csrc)
