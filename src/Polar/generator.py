"""Synthetic test matrices with a prescribed spectrum.

The global matrix is A = Q diag(d) Q^T with Q Haar-distributed orthogonal,
so A is symmetric positive definite and its singular values are exactly d.
Every process synthesizes the same global matrix from the seed and keeps only
its own tile: the result is bit-identical for any grid shape.
"""

from __future__ import annotations

import logging

import numpy as np

from .datastructures import DistributedMatrix
from .errors import GenerationError
from .mpi.collective import Collective
from .pblas import gather_global, lange_fro, scatter_global

log = logging.getLogger(__name__)

# Diagnostic codes (negative, like argument errors)
BAD_SIZE = -1
BAD_MODE = -2
BAD_COND = -3
INFEASIBLE = -4

SPECTRUM_MODES = {
    1: "one large, rest 1/cond",
    2: "all one, last 1/cond",
    3: "geometric decay",
    4: "arithmetic decay",
    5: "random, log-uniform",
    6: "random, uniform",
}


def check_request(n: int, mode: int, cond: float) -> int:
    """Return 0 if (n, mode, cond) can be generated, else a diagnostic code."""
    if n < 0:
        return BAD_SIZE
    if abs(mode) not in SPECTRUM_MODES:
        return BAD_MODE
    if not cond >= 1.0 or not np.isfinite(cond):
        return BAD_COND
    if n == 0:
        return INFEASIBLE
    return 0


def spectrum(n: int, mode: int, cond: float, rng: np.random.Generator) -> np.ndarray:
    """Singular values for the requested profile, max 1 and max/min = cond.

    A negative ``mode`` reverses the order of the values.
    """
    code = check_request(n, mode, cond)
    if code:
        raise GenerationError(code, f"Cannot build spectrum for n={n}, mode={mode}, cond={cond}")

    kind = abs(mode)
    if n == 1:
        d = np.ones(1)
    elif kind == 1:
        d = np.full(n, 1.0 / cond)
        d[0] = 1.0
    elif kind == 2:
        d = np.ones(n)
        d[-1] = 1.0 / cond
    elif kind == 3:
        d = cond ** (-np.arange(n) / (n - 1))
    elif kind == 4:
        d = 1.0 - np.arange(n) / (n - 1) * (1.0 - 1.0 / cond)
    elif kind == 5:
        d = np.exp(rng.uniform(-np.log(cond), 0.0, n))
        d[0], d[-1] = 1.0, 1.0 / cond
    else:
        d = rng.uniform(1.0 / cond, 1.0, n)
        d[0], d[-1] = 1.0, 1.0 / cond

    return d[::-1].copy() if mode < 0 else d


def haar_orthogonal(n: int, rng: np.random.Generator) -> np.ndarray:
    """Random orthogonal matrix from the QR of a Gaussian matrix."""
    q, r = np.linalg.qr(rng.standard_normal((n, n)))
    signs = np.sign(np.diag(r))
    signs[signs == 0] = 1.0
    return q * signs


def synthesize_global(n: int, mode: int, cond: float, seed: int) -> np.ndarray:
    """Build the full n x n test matrix (identical on every caller)."""
    rng = np.random.default_rng(seed)
    d = spectrum(n, mode, cond, rng)
    q = haar_orthogonal(n, rng)
    a = (q * d) @ q.T
    return 0.5 * (a + a.T)


def generate(
    matrix: DistributedMatrix,
    mode: int,
    cond: float,
    seed: int,
    collective: Collective,
) -> float:
    """Fill ``matrix`` with the synthetic test matrix.

    Returns
    -------
    float
        Global Frobenius norm of the generated matrix.

    Raises
    ------
    GenerationError
        On every grid member, when any member finds the request infeasible.
    """
    desc = matrix.desc
    code = check_request(desc.n, mode, cond) if desc.m == desc.n else INFEASIBLE
    code = collective.agree_status(code)
    if code:
        raise GenerationError(
            code, f"Matrix generation failed for n={desc.n}, mode={mode}, cond={cond:.4e}: {code}"
        )

    scatter_global(synthesize_global(desc.n, mode, cond, seed), matrix)
    log.debug(f"Generated {desc.m}x{desc.n} matrix (mode {mode}, cond {cond:.4e})")
    return lange_fro(matrix, collective)


def estimate_condition(matrix: DistributedMatrix, collective: Collective) -> float:
    """2-norm condition number estimate from the R factor of A = QR."""
    a = gather_global(matrix, collective)
    r = np.linalg.qr(a, mode="r")
    return float(np.linalg.cond(r))
