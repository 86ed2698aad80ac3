"""Residual checks for a computed polar decomposition A = U H."""

from .datastructures import DistributedMatrix, ResidualPair
from .mpi.collective import Collective
from .pblas import gemm, lacpy, lange_fro, laset


class CorrectnessVerifier:
    """Normalized residuals of the orthogonal and symmetric factors.

    All norms are collectives, so every grid member ends up with the same
    values; only the reporting rank needs to read them.

    Parameters
    ----------
    scratch : DistributedMatrix
        Work matrix with the same distribution as A, overwritten by each check.
    collective : Collective
        Grid-wide collectives.
    """

    def __init__(self, scratch: DistributedMatrix, collective: Collective):
        self.scratch = scratch
        self.collective = collective

    def orthogonality(self, u: DistributedMatrix, frob_a: float) -> float:
        """||U^T U - I||_F / ||A||_F."""
        c = self.scratch
        laset(0.0, 1.0, c)
        gemm("T", "N", 1.0, u, u, -1.0, c, self.collective)
        return lange_fro(c, self.collective) / frob_a

    def factorization(
        self, a: DistributedMatrix, u: DistributedMatrix, h: DistributedMatrix, frob_a: float
    ) -> float:
        """||A - U H||_F / ||A||_F with ``a`` the untouched original."""
        c = self.scratch
        lacpy(a, c)
        gemm("N", "N", 1.0, u, h, -1.0, c, self.collective)
        return lange_fro(c, self.collective) / frob_a

    def verify(
        self, a: DistributedMatrix, u: DistributedMatrix, h: DistributedMatrix, frob_a: float
    ) -> ResidualPair:
        """Compute both residuals."""
        return ResidualPair(
            orthogonality=self.orthogonality(u, frob_a),
            factorization=self.factorization(a, u, h, frob_a),
        )
