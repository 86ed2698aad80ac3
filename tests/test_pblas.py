"""Tests for the distributed matrix primitives on a 1x1 grid."""

import numpy as np
import pytest

from Polar.pblas import allocate, gather_global, gemm, lacpy, lange_fro, laset, scatter_global


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def test_allocate_is_column_major(desc_factory):
    m = allocate(desc_factory(40), fill=2.0)
    assert m.local.flags.f_contiguous
    assert m.local.shape == (40, 40)
    assert np.all(m.local == 2.0)


def test_scatter_then_gather(desc_factory, collective, rng):
    a = rng.standard_normal((40, 40))
    m = allocate(desc_factory(40))
    scatter_global(a, m)
    assert np.array_equal(gather_global(m, collective), a)


def test_laset_identity(desc_factory):
    m = allocate(desc_factory(32))
    laset(0.0, 1.0, m)
    assert np.array_equal(m.local, np.eye(32))


def test_lacpy_incompatible(desc_factory):
    with pytest.raises(ValueError):
        lacpy(allocate(desc_factory(32)), allocate(desc_factory(48)))


def test_lange_fro(desc_factory, collective, rng):
    a = rng.standard_normal((32, 32))
    m = allocate(desc_factory(32))
    scatter_global(a, m)
    assert lange_fro(m, collective) == pytest.approx(np.linalg.norm(a, "fro"))


@pytest.mark.parametrize("transa,transb", [("N", "N"), ("T", "N"), ("N", "T")])
def test_gemm(desc_factory, collective, rng, transa, transb):
    a, b, c0 = (rng.standard_normal((32, 32)) for _ in range(3))
    ma, mb, mc = (allocate(desc_factory(32)) for _ in range(3))
    for g, m in ((a, ma), (b, mb), (c0, mc)):
        scatter_global(g, m)

    gemm(transa, transb, 2.0, ma, mb, -1.0, mc, collective)

    op = {"N": lambda x: x, "T": lambda x: x.T}
    assert np.allclose(mc.local, 2.0 * op[transa](a) @ op[transb](b) - c0)
