"""Grid-wide wall-clock timing."""

import math
from typing import Tuple

from .datastructures import TimingSample
from .mpi.collective import Collective


class TimingAggregator:
    """Accumulates per-iteration times across the grid.

    A collective operation is only finished when its slowest participant is,
    so each iteration's sample is the MAX of the local elapsed times.
    """

    def __init__(self, collective: Collective):
        self.collective = collective
        self.sample = TimingSample()

    def reset(self):
        """Start a new matrix size."""
        self.sample = TimingSample()

    def record(self, local_elapsed: float) -> float:
        """MAX-reduce ``local_elapsed`` and update the running statistics."""
        elapsed = self.collective.reduce_max(float(local_elapsed))
        s = self.sample
        s.total += elapsed
        s.minimum = min(s.minimum, elapsed)
        s.maximum = max(s.maximum, elapsed)
        s.count += 1
        return elapsed

    def summary(self) -> Tuple[float, float, float]:
        """Return (average, min, max) over the recorded iterations."""
        s = self.sample
        if s.count == 0:
            raise RuntimeError("No timing recorded for this size")
        average = s.total / s.count
        # Snap back only rounding-sized drift of the running sum, one ulp per addition
        slack = (s.count + 1) * math.ulp(s.maximum)
        if s.minimum - slack <= average < s.minimum:
            average = s.minimum
        elif s.maximum < average <= s.maximum + slack:
            average = s.maximum
        return average, s.minimum, s.maximum

    @property
    def count(self) -> int:
        return self.sample.count

    def throughput(self, flops: float) -> float:
        """Gflop/s achieved by the fastest iteration."""
        if self.sample.count == 0 or not math.isfinite(self.sample.minimum) or self.sample.minimum <= 0:
            return 0.0
        return flops / 1e9 / self.sample.minimum
