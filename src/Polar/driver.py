"""Experiment driver: sweep matrix sizes and time the decomposition.

Per size the driver walks through

    GuardSize -> Allocate -> Generate -> [RestoreCopy -> Invoke -> Time -> Verify] x niter
    -> Report -> Free

Every rank executes the same sequence of collectives; branches are taken
only on values already agreed across the grid.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from .datastructures import (
    DistributedMatrix,
    ExperimentConfig,
    MatrixDescriptor,
    ResidualPair,
    SizeRecord,
)
from .errors import FactorizationError, GenerationError
from .generator import estimate_condition, generate
from .invoker import DecompositionInvoker, Workspaces
from .mpi.distribution import describe
from .mpi.grid import ProcessGrid
from .pblas import allocate, lacpy
from .routines import PolarRoutine, load_routine, svd_polar_flops
from .timing import TimingAggregator
from .verification import CorrectnessVerifier

log = logging.getLogger(__name__)


def guard_size(size: int, nb: int, nprow: int, npcol: int, step: int) -> int:
    """Advance ``size`` by ``step`` until it has enough blocks for the grid."""
    if step < 1:
        raise ValueError(f"Size step must be positive, got {step}")
    while size // nb < max(nprow, npcol):
        size += step
    return size


@dataclass
class WorkingSet:
    """Per-size buffers: working A (becomes U), pristine A, H, check scratch."""

    a: Optional[DistributedMatrix]
    pristine: Optional[DistributedMatrix]
    h: Optional[DistributedMatrix]
    scratch: Optional[DistributedMatrix] = None
    workspaces: Optional[Workspaces] = None

    def release(self):
        self.a = self.pristine = self.h = self.scratch = None
        self.workspaces = None


@contextmanager
def working_set(desc: MatrixDescriptor, check: bool) -> Iterator[WorkingSet]:
    """Allocate the buffers for one size; they are dropped on leaving the block."""
    ws = WorkingSet(
        a=allocate(desc),
        pristine=allocate(desc),
        h=allocate(desc),
        scratch=allocate(desc) if check else None,
    )
    try:
        yield ws
    finally:
        ws.release()


class ExperimentDriver:
    """Runs the configured size sweep on a process grid.

    Parameters
    ----------
    config : ExperimentConfig
        Immutable run configuration.
    grid : ProcessGrid
        Grid this process belongs to (must be a member).
    routine : PolarRoutine, optional
        Decomposition routine; loaded from ``config.routine`` if omitted.
    on_record : callable, optional
        Called with each SizeRecord as soon as it is complete.
    """

    def __init__(
        self,
        config: ExperimentConfig,
        grid: ProcessGrid,
        routine: Optional[PolarRoutine] = None,
        on_record: Optional[Callable[[SizeRecord], None]] = None,
    ):
        if not grid.is_member:
            raise ValueError("Experiment driver needs a grid member")

        self.config = config
        self.grid = grid
        self.collective = grid.collective
        self.routine = routine or load_routine(config.routine, self.collective)
        self.invoker = DecompositionInvoker(self.routine, self.collective)
        self.timing = TimingAggregator(self.collective)
        self.on_record = on_record
        self._flops = getattr(self.routine, "flops", svd_polar_flops)

    def sizes(self) -> Iterator[int]:
        """Matrix sizes of the sweep, each already guarded against the grid."""
        cfg = self.config
        size = cfg.start
        while size <= cfg.stop:
            guarded = guard_size(size, cfg.nb, cfg.nprow, cfg.npcol, cfg.step)
            if guarded != size and self.collective.is_root:
                log.warning(
                    f"Matrix size {size} is too small to be factorized on a "
                    f"{cfg.nprow}x{cfg.npcol} grid with nb={cfg.nb}, using {guarded}"
                )
            yield guarded
            size = guarded + cfg.step

    def run(self) -> List[SizeRecord]:
        """Run the whole sweep. Returns one record per size (same on every rank)."""
        records = []
        for n in self.sizes():
            record = self.run_size(n)
            records.append(record)
            if self.on_record is not None:
                self.on_record(record)
        log.debug("Range loop ends")
        return records

    def _new_record(self, n: int) -> SizeRecord:
        cfg = self.config
        return SizeRecord(
            n=n,
            nb=cfg.nb,
            nprocs=self.grid.nprocs,
            nprow=cfg.nprow,
            npcol=cfg.npcol,
            mode=cfg.mode,
            cond=cfg.cond,
            niter=cfg.niter,
        )

    def run_size(self, n: int) -> SizeRecord:
        """Generate, factor ``niter`` times, and aggregate one matrix size."""
        cfg = self.config
        record = self._new_record(n)
        desc = describe(n, n, cfg.nb, self.grid.layout)
        log.debug(f"Desc init done, local shape {desc.local_shape}")

        with working_set(desc, cfg.check) as ws:
            try:
                frob_a = generate(ws.pristine, cfg.mode, cfg.cond, cfg.seed, self.collective)
            except GenerationError as e:
                if self.collective.is_root:
                    log.error(f"An error occurred during matrix generation: {e.code}")
                record.info = e.code
                return record
            log.debug("MatGen done")

            if cfg.optcond:
                record.estimated_cond = estimate_condition(ws.pristine, self.collective)

            try:
                lwork1, lwork2 = self.invoker.size_workspaces(ws.a, ws.h)
            except FactorizationError as e:
                record.info = e.status
                return record
            ws.workspaces = self.invoker.allocate(lwork1, lwork2, desc)

            verifier = CorrectnessVerifier(ws.scratch, self.collective) if cfg.check else None
            residuals = ResidualPair()
            status = 0
            self.timing.reset()

            for it in range(cfg.niter):
                lacpy(ws.pristine, ws.a)
                log.debug(f"Iteration {it}: decomposition starts")

                try:
                    elapsed = self.invoker.compute(ws.a, ws.h, ws.workspaces)
                    status = 0
                except FactorizationError as e:
                    elapsed, status = e.elapsed, e.status
                    if self.collective.is_root:
                        log.warning(f"Decomposition failed for n={n}: status {status}")
                self.timing.record(elapsed)

                if verifier is not None:
                    if status == 0:
                        log.debug("Testing decomposition starts")
                        residuals = verifier.verify(ws.pristine, ws.a, ws.h, frob_a)
                    else:
                        residuals = ResidualPair()

            avg, tmin, tmax = self.timing.summary()
            record.avg_time, record.min_time, record.max_time = avg, tmin, tmax
            record.gflops = self.timing.throughput(self._flops(n))
            record.orth_u = residuals.orthogonality
            record.berr_uh = residuals.factorization
            record.info = status

        log.debug("Free matrices done")
        return record
