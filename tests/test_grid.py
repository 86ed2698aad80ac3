"""Tests for the process grid and its collectives (single process)."""

import pytest
from mpi4py import MPI

from Polar import Collective, GridSizeError, ProcessGrid


class TestProcessGrid:
    """Tests for grid initialization and release."""

    def test_single_process_grid(self):
        grid = ProcessGrid.init(1, 1, MPI.COMM_SELF)
        assert grid.is_member
        assert grid.coordinates() == (0, 0)
        assert grid.layout.size == 1
        grid.exit()

    def test_grid_too_large(self):
        """Grid larger than the communicator fails before any work."""
        with pytest.raises(GridSizeError) as exc:
            ProcessGrid.init(2, 2, MPI.COMM_SELF)
        assert exc.value.nprow * exc.value.npcol == 4
        assert exc.value.nprocs == 1

    def test_exit_only_once(self):
        grid = ProcessGrid.init(1, 1, MPI.COMM_SELF)
        grid.exit()
        with pytest.raises(RuntimeError):
            grid.exit()

    def test_context_manager_releases(self):
        with ProcessGrid.init(1, 1, MPI.COMM_SELF) as grid:
            assert grid.collective is not None
        assert grid.collective is None

    @pytest.mark.parametrize("shape", [(0, 1), (1, 0)])
    def test_invalid_shape(self, shape):
        with pytest.raises(ValueError):
            ProcessGrid.init(*shape, MPI.COMM_SELF)


class TestCollective:
    """Reductions are identities on one process."""

    def test_reductions(self, collective):
        assert collective.reduce_max(2.5) == 2.5
        assert collective.reduce_min(-3) == -3
        assert collective.reduce_sum(7) == 7
        assert isinstance(collective.reduce_sum(7), int)

    @pytest.mark.parametrize("info", [0, 3, -7])
    def test_agree_status(self, collective, info):
        assert collective.agree_status(info) == info

    def test_allgather(self, collective):
        assert collective.allgather({"a": 1}) == [{"a": 1}]

    def test_root(self):
        assert Collective(MPI.COMM_SELF).is_root
