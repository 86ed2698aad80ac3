"""Shared fixtures: a single-process grid over COMM_SELF."""

import pytest
from mpi4py import MPI

from Polar.mpi import Collective, ProcessGrid, describe


@pytest.fixture
def collective():
    return Collective(MPI.COMM_SELF)


@pytest.fixture
def grid():
    with ProcessGrid.init(1, 1, MPI.COMM_SELF) as g:
        yield g


@pytest.fixture
def desc_factory(grid):
    """Descriptor of an n x n matrix on the 1x1 grid."""

    def make(n, nb=16):
        return describe(n, n, nb, grid.layout)

    return make
