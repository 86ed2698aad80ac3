"""
Polar Timing Runner - spawns the MPI timing harness from a Hydra config.

Usage:
    uv run python run_polar.py
    uv run python run_polar.py +experiment=scaling
    uv run python run_polar.py nprow=2 npcol=2 N=2048 check=true
"""

import logging
import os
import subprocess
import sys

import hydra
from omegaconf import DictConfig

log = logging.getLogger(__name__)

# Config key -> harness flag
_ARGS = [
    ("nb", "-b"), ("mode", "-m"), ("cond", "-k"),
    ("seed", "-s"), ("niter", "-i"), ("routine", "--routine"), ("output", "--output"),
    ("experiment_name", "--experiment-name"),
]
_SWITCHES = [("optcond", "-o"), ("check", "-c"), ("verbose", "-v")]


def build_command(cfg: DictConfig) -> list:
    """Build the ``mpiexec ... python -m Polar`` command line for one job."""
    nprow, npcol = cfg.nprow, cfg.npcol
    if cfg.get("grid"):
        # "PxQ" shorthand used by sweeps
        nprow, npcol = (int(v) for v in str(cfg.grid).split("x"))
    n_ranks = cfg.get("n_ranks") or nprow * npcol
    mpi = cfg.get("mpi", {})

    cmd = ["mpiexec", "-n", str(n_ranks)]
    if mpi.get("bind_to"):
        cmd.extend(["--report-bindings", "--map-by", str(mpi.get("map_by", "core")), "--bind-to", str(mpi.bind_to)])
    if mpi.get("oversubscribe"):
        cmd.append("--oversubscribe")
    cmd.extend([sys.executable, "-m", "Polar"])

    if cfg.get("n_range"):
        cmd.extend(["-r", str(cfg.n_range)])
    else:
        cmd.extend(["-n", str(cfg.N)])

    cmd.extend(["-p", str(nprow), "-q", str(npcol)])
    for key, flag in _ARGS:
        val = cfg.get(key)
        if val is not None:
            cmd.extend([flag, str(val)])
    for key, flag in _SWITCHES:
        if cfg.get(key):
            cmd.append(flag)
    cmd.extend(["--mlflow", str(cfg.mlflow.mode)])
    return cmd


def relay_output(stdout: str, stderr: str):
    """Forward harness output to the job log; stderr lines mentioning errors become warnings."""
    for line in (stdout or "").strip().split("\n"):
        if line:
            log.info(line)
    for line in (stderr or "").strip().split("\n"):
        if line:
            if "error" in line.lower():
                log.warning(line)
            else:
                log.info(line)


@hydra.main(config_path="Experiments/hydra-conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Entry point - spawns one MPI run of the harness per (multi)run job."""
    cmd = build_command(cfg)
    log.info(" ".join(cmd))

    result = subprocess.run(cmd, capture_output=True, text=True, env=os.environ.copy(), timeout=cfg.get("timeout", 3600))
    relay_output(result.stdout, result.stderr)

    if result.returncode != 0:
        log.error(f"Harness exited with code {result.returncode}")
        sys.exit(result.returncode)


if __name__ == "__main__":
    main()
