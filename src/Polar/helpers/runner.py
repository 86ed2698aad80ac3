"""Run the timing harness via mpiexec subprocess."""

import json
import os
import subprocess
import sys
import tempfile
from pathlib import Path

# Keyword -> command-line flag of ``python -m Polar``
_FLAGS = {
    "nprow": "--nprow",
    "npcol": "--npcol",
    "N": "--N",
    "n_range": "--n_range",
    "nb": "--nb",
    "mode": "--mode",
    "cond": "--cond",
    "optcond": "--optcond",
    "seed": "--seed",
    "niter": "--niter",
    "check": "--check",
    "verbose": "--verbose",
    "routine": "--routine",
    "mlflow": "--mlflow",
    "experiment_name": "--experiment-name",
}


def _mpi_env() -> dict:
    env = os.environ.copy()
    # Allow more ranks than cores on small test machines (Open MPI 4 and 5)
    env.setdefault("OMPI_MCA_rmaps_base_oversubscribe", "true")
    env.setdefault("PRTE_MCA_rmaps_default_mapping_policy", ":oversubscribe")
    return env


def build_cli_args(**kwargs) -> list:
    """Translate keyword options into ``python -m Polar`` flags."""
    args = []
    for key, val in kwargs.items():
        if key not in _FLAGS:
            raise ValueError(f"Unknown option: {key}")
        if val is None or val is False:
            continue
        if val is True:
            args.append(_FLAGS[key])
        elif key == "n_range" and not isinstance(val, str):
            args.extend([_FLAGS[key], ":".join(str(v) for v in val)])
        else:
            args.extend([_FLAGS[key], str(val)])
    return args


def run_benchmark(n_ranks: int = 1, output: str = None, timeout: int = 600, **kwargs) -> dict:
    """Run the timing harness on n_ranks MPI processes.

    Parameters
    ----------
    n_ranks : int
        Number of MPI ranks
    output : str, optional
        Path of the CSV results (uses temp file if not provided)
    timeout : int
        Seconds before the run is killed
    **kwargs
        Harness options: nprow, npcol, N, n_range, nb, mode, cond, niter, check...

    Returns
    -------
    dict
        ``records`` (DataFrame) and ``stderr`` (str), or an ``error`` key on failure
    """
    import pandas as pd

    use_temp = output is None
    if use_temp:
        tmp = tempfile.NamedTemporaryFile(suffix=".csv", delete=False)
        output = tmp.name
        tmp.close()

    cmd = ["mpiexec", "-n", str(n_ranks), sys.executable, "-m", "Polar"]
    cmd += build_cli_args(**kwargs) + ["--output", output]

    proc = subprocess.run(cmd, capture_output=True, text=True, env=_mpi_env(), timeout=timeout)

    if proc.returncode != 0:
        return {"error": proc.stderr, "returncode": proc.returncode}

    out_path = Path(output)
    if not out_path.exists() or out_path.stat().st_size == 0:
        return {"error": "No output file created", "stderr": proc.stderr}

    result = {"records": pd.read_csv(out_path), "stderr": proc.stderr}

    if use_temp:
        out_path.unlink(missing_ok=True)

    return result


def dump_matrix(n_ranks: int, path: str, timeout: int = 600, **config) -> dict:
    """Generate a matrix on n_ranks processes and save the gathered global copy.

    ``config`` holds nprow, npcol, N, nb, mode, cond, seed.
    """
    cmd = [
        "mpiexec", "-n", str(n_ranks), sys.executable, "-m", "Polar.helpers.dump_matrix",
        json.dumps({**config, "output": str(path)}),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, env=_mpi_env(), timeout=timeout)
    if proc.returncode != 0:
        return {"error": proc.stderr}
    return {"path": Path(path), "stderr": proc.stderr}
