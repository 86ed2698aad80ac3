"""
Polar Decomposition Strong Scaling
==================================

Time the polar decomposition of fixed-size matrices on growing process grids.

Each grid shape runs in its own ``mpiexec`` subprocess; the per-size records
are collected into one DataFrame and written next to this script.

Usage:
    uv run python Experiments/01-scaling/compute_scaling.py
"""

# %%
# Setup
# -----

import logging
from pathlib import Path

import pandas as pd

from Polar import get_project_root
from Polar.helpers import run_benchmark

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

data_dir = get_project_root() / "data" / "01-scaling"
data_dir.mkdir(parents=True, exist_ok=True)

# (nprow, npcol) grids to sweep
grids = [(1, 1), (1, 2), (2, 2), (2, 4)]
n_range = (512, 2048, 512)

# %%
# Strong Scaling
# --------------

frames = []
for nprow, npcol in grids:
    log.info(f"Grid {nprow}x{npcol}, n_range={n_range}")
    result = run_benchmark(
        n_ranks=nprow * npcol,
        nprow=nprow,
        npcol=npcol,
        n_range=n_range,
        nb=64,
        mode=4,
        cond=1e6,
        niter=3,
        check=True,
    )
    if "error" in result:
        log.error(f"Grid {nprow}x{npcol} failed:\n{result['error']}")
        continue
    frames.append(result["records"])

if not frames:
    raise SystemExit("No successful runs")

df = pd.concat(frames, ignore_index=True)

# %%
# Speedup against the single-process run of each size
# ---------------------------------------------------

baseline = df[df["nprocs"] == 1].set_index("n")["avg_time"]
df["speedup"] = df["n"].map(baseline) / df["avg_time"]
df["efficiency"] = df["speedup"] / df["nprocs"]

output = Path(data_dir) / "scaling.csv"
df.to_csv(output, index=False)
log.info(f"Saved {len(df)} records to {output}")
print(df[["n", "nprocs", "nprow", "npcol", "avg_time", "gflops", "speedup", "efficiency"]].to_string(index=False))
