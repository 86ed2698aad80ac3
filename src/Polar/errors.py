"""Error kinds raised by the timing harness.

All codes carried by these exceptions have already been agreed across the
process grid, so every rank raises the same exception at the same point.
"""


class GridSizeError(RuntimeError):
    """Requested process grid needs more processes than are available."""

    def __init__(self, nprow: int, npcol: int, nprocs: int):
        self.nprow = nprow
        self.npcol = npcol
        self.nprocs = nprocs
        super().__init__(
            f"Process grid {nprow}x{npcol} needs {nprow * npcol} processes, "
            f"only {nprocs} available"
        )


class GenerationError(RuntimeError):
    """Synthetic matrix generation is infeasible for the requested shape/spectrum."""

    def __init__(self, code: int, message: str = ""):
        self.code = code
        super().__init__(message or f"Matrix generation failed with code {code}")


class FactorizationError(RuntimeError):
    """External decomposition routine returned a nonzero status."""

    def __init__(self, status: int, elapsed: float = 0.0):
        self.status = status
        self.elapsed = elapsed
        super().__init__(f"Polar decomposition failed with status {status}")
