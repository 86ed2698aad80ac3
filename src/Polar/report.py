"""Result reporting: stderr table, CSV export and MLflow logging (rank 0 only)."""

from __future__ import annotations

import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, TextIO

import pandas as pd

from .datastructures import ExperimentConfig, SizeRecord

log = logging.getLogger(__name__)

SEPARATOR = "/" * 73

TABLE_HEADER = (
    "# \tN     \tNB   \tNP   \tP   \tQ   \tGflop/s \tAvg-Time     \tMax-Time    "
    "\tMin-Time    \tBerr_UpH  \tOrth_Up  \tinfo     "
)


def format_record(record: SizeRecord) -> str:
    """One table line for a matrix size."""
    return (
        f"   {record.n:6d} \t{record.nb:4d} \t{record.nprocs:4d} \t{record.nprow:3d} "
        f"\t{record.npcol:3d} \t{record.gflops:8.2f}"
        f"\t{record.avg_time:6.2f} \t\t{record.max_time:6.2f} \t\t{record.min_time:6.2f} "
        f"\t\t{record.berr_uh:2.4e} \t{record.orth_u:2.4e} \t{record.info:d} "
    )


def records_to_dataframe(records: List[SizeRecord]) -> pd.DataFrame:
    """Tabulate records, one row per matrix size."""
    return pd.DataFrame([asdict(r) for r in records])


class Reporter:
    """Writes benchmark output on the reporting rank; silent elsewhere.

    Parameters
    ----------
    config : ExperimentConfig
        Run configuration (header fields, output path, MLflow mode).
    is_root : bool
        Whether this process is the reporting process.
    nprocs : int
        Total number of processes in the run.
    stream : TextIO, optional
        Diagnostic stream (default: stderr).
    """

    def __init__(
        self,
        config: ExperimentConfig,
        is_root: bool,
        nprocs: int,
        stream: Optional[TextIO] = None,
    ):
        self.config = config
        self.is_root = is_root
        self.nprocs = nprocs
        self.stream = stream if stream is not None else sys.stderr

    def _write(self, line: str = ""):
        print(line, file=self.stream)

    def header(self):
        """Run header with grid shape, iterations and sweep parameters."""
        if not self.is_root:
            return
        cfg = self.config
        self._write("# ")
        self._write(f"# NPROCS {self.nprocs} P {cfg.nprow} Q {cfg.npcol}")
        self._write(f"# niter {cfg.niter}")
        self._write(
            f"# n_range {cfg.start}:{cfg.stop}:{cfg.step} mode: {cfg.mode} cond: {cfg.cond:2.4e} "
        )
        self._write("# ")

    def emit(self, record: SizeRecord):
        """Print the aggregated line for one size."""
        if not self.is_root:
            return
        self._write("\n")
        self._write(SEPARATOR)
        self._write(f"# {self.config.routine} ")
        self._write("#")
        self._write(TABLE_HEADER)
        self._write(format_record(record))
        if record.estimated_cond is not None:
            self._write(f"# estimated cond: {record.estimated_cond:2.4e}")
        self._write(SEPARATOR)

    def finish(self, records: List[SizeRecord]):
        """Export records to CSV and MLflow when configured."""
        if not self.is_root or not records:
            return
        if self.config.output:
            self.save_csv(records, Path(self.config.output))
        if self.config.mlflow != "off":
            self.log_mlflow(records)

    def save_csv(self, records: List[SizeRecord], path: Path):
        path.parent.mkdir(parents=True, exist_ok=True)
        records_to_dataframe(records).to_csv(path, index=False)
        log.info(f"Results written to {path}")

    def log_mlflow(self, records: List[SizeRecord]):
        """Log one nested MLflow run per matrix size."""
        from utils.mlflow.io import (
            log_metrics_dict,
            log_parameters,
            setup_mlflow_tracking,
            start_mlflow_run_context,
        )

        cfg = self.config
        setup_mlflow_tracking(mode=cfg.mlflow)
        parent = f"{cfg.routine}_P{cfg.nprow}xQ{cfg.npcol}"
        for record in records:
            child = f"{cfg.routine}_N{record.n}_p{record.nprocs}"
            with start_mlflow_run_context(
                experiment_name=cfg.experiment_name,
                parent_run_name=parent,
                child_run_name=child,
            ):
                log_parameters({**cfg.to_mlflow(), "N": record.n})
                log_metrics_dict(record.to_mlflow())
