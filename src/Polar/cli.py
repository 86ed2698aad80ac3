"""Command-line entry point for the SPMD timing run.

Usage:
    mpiexec -n 4 python -m Polar -p 2 -q 2 -r 1024:4096:1024 -b 128 -c
    mpiexec -n 1 polar-timing -n 512 -b 64 -m 4 -k 1e6 -c -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from mpi4py import MPI

from .datastructures import MLFLOW_MODES, ExperimentConfig
from .driver import ExperimentDriver
from .errors import GridSizeError
from .mpi.grid import ProcessGrid
from .report import Reporter

log = logging.getLogger(__name__)

DESCRIPTION = "======= Polar decomposition timing on a 2-D process grid"


class RootArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that only lets rank 0 print usage errors."""

    def __init__(self, *args, rank: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.rank = rank

    def error(self, message):
        if self.rank == 0:
            self.print_usage(sys.stderr)
            print(f"{self.prog}: error: {message}", file=sys.stderr)
        sys.exit(2)


def parse_range(text: str) -> Tuple[int, int, int]:
    """Parse ``start:stop[:step]`` into integers."""
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Expected start:stop:step, got '{text}'")
    try:
        values = [int(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Non-integer size range '{text}'") from None
    if len(values) == 2:
        values.append(1)
    return values[0], values[1], values[2]


def build_parser(rank: int = 0) -> RootArgumentParser:
    defaults = ExperimentConfig()
    parser = RootArgumentParser(
        prog="polar-timing", description=DESCRIPTION, add_help=False, rank=rank
    )

    grid = parser.add_argument_group("Process grid")
    grid.add_argument("-p", "--nprow", type=int, default=defaults.nprow, help="Number of MPI process rows")
    grid.add_argument("-q", "--npcol", type=int, default=defaults.npcol, help="Number of MPI process cols")

    sizes = parser.add_mutually_exclusive_group()
    sizes.add_argument("-n", "--N", dest="N", type=int, help="Dimension of the matrix")
    sizes.add_argument("-r", "--n_range", type=parse_range, help="Range for matrix sizes Start:Stop:Step")

    matrix = parser.add_argument_group("Matrix")
    matrix.add_argument("-b", "--nb", type=int, default=defaults.nb, help="Block size")
    matrix.add_argument("-m", "--mode", type=int, default=defaults.mode, help="[1:6] Spectrum mode used to generate the matrix")
    matrix.add_argument("-k", "--cond", type=float, default=defaults.cond, help="Condition number used to generate the matrix")
    matrix.add_argument("-o", "--optcond", action="store_true", help="Estimate condition number using QR")
    matrix.add_argument("-s", "--seed", type=int, default=defaults.seed, help="Seed of the matrix generator")

    run = parser.add_argument_group("Run")
    run.add_argument("-i", "--niter", type=int, default=defaults.niter, help="Number of iterations")
    run.add_argument("-c", "--check", action="store_true", help="Check the solution")
    run.add_argument("-v", "--verbose", action="store_true", help="Verbose")
    run.add_argument("--routine", default=defaults.routine, help="Decomposition routine: 'scipy' or module:attribute")
    run.add_argument("-h", "--help", action="store_true", help="Print this help")

    out = parser.add_argument_group("Output")
    out.add_argument("--output", default=None, help="CSV file for the per-size records")
    out.add_argument("--mlflow", choices=MLFLOW_MODES, default=defaults.mlflow, help="MLflow tracking mode")
    out.add_argument("--experiment-name", default=defaults.experiment_name, help="MLflow experiment name")

    return parser


def build_config(args: argparse.Namespace) -> ExperimentConfig:
    """Turn parsed arguments into the immutable run configuration."""
    defaults = ExperimentConfig()
    if args.N is not None:
        start, stop, step = args.N, args.N, 1
    elif args.n_range is not None:
        start, stop, step = args.n_range
    else:
        start, stop, step = defaults.start, defaults.stop, defaults.step

    return ExperimentConfig(
        nprow=args.nprow,
        npcol=args.npcol,
        start=start,
        stop=stop,
        step=step,
        nb=args.nb,
        mode=args.mode,
        cond=args.cond,
        optcond=args.optcond,
        seed=args.seed,
        niter=args.niter,
        check=args.check,
        verbose=args.verbose,
        routine=args.routine,
        output=args.output,
        mlflow=args.mlflow,
        experiment_name=args.experiment_name,
    )


def parse_arguments(argv: Optional[List[str]] = None, rank: int = 0):
    """Parse the command line. Returns (config, help_requested, parser)."""
    parser = build_parser(rank)
    args = parser.parse_args(argv)
    if args.help:
        return None, True, parser
    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))
    return config, False, parser


def configure_logging(verbose: bool, rank: int):
    """Diagnostics on stderr; only the reporting rank goes below ERROR."""
    if rank == 0:
        level = logging.DEBUG if verbose else logging.INFO
    else:
        level = logging.ERROR
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s", stream=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """SPMD entry point: every rank runs this identically."""
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()

    config, help_requested, parser = parse_arguments(argv, rank)
    if help_requested:
        if rank == 0:
            parser.print_help(sys.stderr)
        return 0

    configure_logging(config.verbose, rank)
    log.debug("Checking arguments done")

    try:
        grid = ProcessGrid.init(config.nprow, config.npcol, comm)
    except GridSizeError as e:
        if rank == 0:
            log.error(str(e))
        return 1
    log.debug("Process grid init done")

    with grid:
        if not grid.is_member:
            log.debug(f"Rank {rank} is outside the process grid, idle")
            return 0

        reporter = Reporter(config, grid.collective.is_root, grid.nprocs)
        reporter.header()
        driver = ExperimentDriver(config, grid, on_record=reporter.emit)
        records = driver.run()
        reporter.finish(records)

    log.debug("Program ends...")
    return 0
