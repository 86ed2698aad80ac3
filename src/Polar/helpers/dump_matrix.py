"""MPI worker - invoked via: mpiexec -n X python -m Polar.helpers.dump_matrix '{config}'

Generates the synthetic matrix on the requested grid, gathers it, and saves
the global array (rank 0) so runs on different grids can be compared.
"""

import json
import sys

import numpy as np
from mpi4py import MPI

from Polar.generator import generate
from Polar.mpi import ProcessGrid, describe
from Polar.pblas import allocate, gather_global

config = json.loads(sys.argv[1])
comm = MPI.COMM_WORLD

with ProcessGrid.init(config.get("nprow", 1), config.get("npcol", 1), comm) as grid:
    if grid.is_member:
        n = config["N"]
        desc = describe(n, n, config.get("nb", 64), grid.layout)
        a = allocate(desc)
        frob = generate(a, config.get("mode", 4), config.get("cond", 1e6), config.get("seed", 1), grid.collective)
        a_global = gather_global(a, grid.collective)

        if grid.collective.is_root:
            np.save(config["output"], a_global)
            print(f"RESULT:{config['output']} frob={frob!r}")
