"""Tests for synthetic matrix generation."""

import numpy as np
import pytest

from Polar import GenerationError, GridLayout, describe, estimate_condition, generate, spectrum, synthesize_global
from Polar.generator import BAD_COND, BAD_MODE, BAD_SIZE, INFEASIBLE, check_request
from Polar.pblas import allocate, assemble_global, extract_local
from Polar.mpi.distribution import col_indices, row_indices


class TestSpectrum:
    """Tests for the singular value profiles."""

    @pytest.mark.parametrize("mode", [1, 2, 3, 4, 5, 6])
    @pytest.mark.parametrize("cond", [1.0, 10.0, 1e6])
    def test_extremes_match_condition(self, mode, cond):
        d = spectrum(50, mode, cond, np.random.default_rng(0))
        assert len(d) == 50
        assert d.max() == pytest.approx(1.0)
        assert d.max() / d.min() == pytest.approx(cond, rel=1e-8)

    @pytest.mark.parametrize("mode", [3, 4])
    def test_monotone_decay(self, mode):
        d = spectrum(20, mode, 1e3, np.random.default_rng(0))
        assert np.all(np.diff(d) < 0)

    def test_negative_mode_reverses(self):
        d = spectrum(10, 3, 1e2, np.random.default_rng(0))
        r = spectrum(10, -3, 1e2, np.random.default_rng(0))
        assert np.array_equal(r, d[::-1])

    def test_single_entry(self):
        assert np.array_equal(spectrum(1, 4, 1e6, np.random.default_rng(0)), [1.0])

    @pytest.mark.parametrize(
        "n,mode,cond,code",
        [(-1, 4, 10.0, BAD_SIZE), (8, 0, 10.0, BAD_MODE), (8, 7, 10.0, BAD_MODE),
         (8, 4, 0.5, BAD_COND), (8, 4, np.inf, BAD_COND), (8, 4, np.nan, BAD_COND),
         (0, 4, 10.0, INFEASIBLE)],
    )
    def test_infeasible_requests(self, n, mode, cond, code):
        assert check_request(n, mode, cond) == code
        with pytest.raises(GenerationError) as exc:
            spectrum(n, mode, cond, np.random.default_rng(0))
        assert exc.value.code == code


class TestSynthesizeGlobal:
    """Tests for the global test matrix."""

    def test_symmetric_with_prescribed_singular_values(self):
        a = synthesize_global(64, 3, 1e2, seed=5)
        assert np.array_equal(a, a.T)
        expected = np.sort(spectrum(64, 3, 1e2, np.random.default_rng(5)))[::-1]
        assert np.allclose(np.linalg.svd(a, compute_uv=False), expected, rtol=1e-10)

    def test_same_seed_same_matrix(self):
        assert np.array_equal(synthesize_global(40, 4, 1e3, 11), synthesize_global(40, 4, 1e3, 11))

    def test_different_seed_differs(self):
        assert not np.array_equal(synthesize_global(40, 4, 1e3, 1), synthesize_global(40, 4, 1e3, 2))

    @pytest.mark.parametrize("nprow,npcol", [(2, 2), (1, 3), (3, 2)])
    def test_tiles_reassemble_to_same_global(self, nprow, npcol):
        """Tiles cut for any grid shape reassemble to the 1x1 matrix bit for bit."""
        n, nb = 96, 16
        a = synthesize_global(n, 4, 1e6, seed=1)
        pieces = []
        for r in range(nprow):
            for c in range(npcol):
                desc = describe(n, n, nb, GridLayout(nprow, npcol, r, c))
                pieces.append((row_indices(desc), col_indices(desc), extract_local(a, desc)))
        assert np.array_equal(assemble_global(pieces, n, n), a)


class TestGenerate:
    """Tests for distributed generation on a 1x1 grid."""

    def test_fills_tile_and_returns_norm(self, grid, desc_factory):
        matrix = allocate(desc_factory(64))
        frob = generate(matrix, 4, 1e6, 1, grid.collective)
        expected = synthesize_global(64, 4, 1e6, 1)
        assert np.array_equal(matrix.local, expected)
        assert frob == pytest.approx(np.linalg.norm(expected, "fro"))

    def test_infeasible_condition_raises(self, grid, desc_factory):
        matrix = allocate(desc_factory(32))
        with pytest.raises(GenerationError) as exc:
            generate(matrix, 4, float("inf"), 1, grid.collective)
        assert exc.value.code == BAD_COND

    def test_condition_estimate(self, grid, desc_factory):
        matrix = allocate(desc_factory(48))
        generate(matrix, 3, 1e3, 2, grid.collective)
        assert estimate_condition(matrix, grid.collective) == pytest.approx(1e3, rel=1e-6)
