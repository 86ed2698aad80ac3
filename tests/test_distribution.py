"""Tests for block-cyclic distribution arithmetic."""

import numpy as np
import pytest

from Polar import GridLayout, describe, global_indices, local_extent, owner


class TestLocalExtent:
    """Tests for the per-axis local extent."""

    @pytest.mark.parametrize(
        "n,nb,nprocs",
        [(1000, 64, 3), (512, 64, 2), (100, 7, 4), (64, 64, 1), (5, 2, 3), (130, 32, 4)],
    )
    def test_extents_sum_to_global(self, n, nb, nprocs):
        """Every index is owned by exactly one process."""
        assert sum(local_extent(n, nb, p, nprocs) for p in range(nprocs)) == n

    def test_known_values(self):
        """15 full blocks of 64 dealt evenly; the 40-row tail goes to process 0."""
        assert [local_extent(1000, 64, p, 3) for p in range(3)] == [360, 320, 320]

    def test_source_shift(self):
        """Shifting the source process rotates the ownership."""
        plain = [local_extent(300, 32, p, 4) for p in range(4)]
        shifted = [local_extent(300, 32, (p + 1) % 4, 4, src=1) for p in range(4)]
        assert plain == shifted

    @pytest.mark.parametrize("args", [(-1, 8, 0, 2), (10, 0, 0, 2), (10, 8, 0, 0)])
    def test_invalid_arguments(self, args):
        with pytest.raises(ValueError):
            local_extent(*args)


class TestGlobalIndices:
    """Tests for local-to-global index mapping."""

    @pytest.mark.parametrize("n,nb,nprocs", [(100, 7, 4), (1000, 64, 3), (33, 8, 2)])
    def test_indices_partition_range(self, n, nb, nprocs):
        """Union of all processes' indices is 0..n-1 without overlap."""
        pieces = [global_indices(n, nb, p, nprocs) for p in range(nprocs)]
        merged = np.sort(np.concatenate(pieces))
        assert np.array_equal(merged, np.arange(n))

    def test_indices_ascending_and_owned(self):
        n, nb, nprocs = 200, 16, 3
        for p in range(nprocs):
            idx = global_indices(n, nb, p, nprocs)
            assert np.all(np.diff(idx) > 0)
            assert all(owner(int(i), nb, nprocs) == p for i in idx)


class TestDescribe:
    """Tests for descriptor construction."""

    def test_local_shape_matches_extents(self):
        layout = GridLayout(2, 3, myrow=1, mycol=2)
        desc = describe(1000, 1000, 64, layout)
        assert desc.local_shape == (local_extent(1000, 64, 1, 2), local_extent(1000, 64, 2, 3))
        assert desc.lld == max(1, desc.local_rows)
        assert desc.global_shape == (1000, 1000)

    def test_grid_local_sizes_cover_matrix(self):
        """Sum of local tile sizes over the grid equals m*n."""
        nprow, npcol, n, nb = 2, 2, 300, 32
        total = sum(
            describe(n, n, nb, GridLayout(nprow, npcol, r, c)).local_size
            for r in range(nprow)
            for c in range(npcol)
        )
        assert total == n * n

    @pytest.mark.parametrize(
        "m,n,nb,layout",
        [
            (-1, 10, 4, GridLayout(1, 1)),
            (10, 10, 0, GridLayout(1, 1)),
            (100, 100, 16, GridLayout(2, 2, myrow=2, mycol=0)),
            (100, 100, 64, GridLayout(2, 2)),
        ],
    )
    def test_invalid_descriptor(self, m, n, nb, layout):
        with pytest.raises(ValueError):
            describe(m, n, nb, layout)
