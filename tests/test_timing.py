"""Tests for grid-wide timing aggregation."""

import pytest

from Polar import TimingAggregator


class TestTimingAggregator:
    @pytest.mark.parametrize(
        "samples", [[0.5], [1.0, 2.0, 3.0], [0.1, 0.1, 0.1], [3.2, 0.4, 1.7, 0.9]]
    )
    def test_min_le_avg_le_max(self, collective, samples):
        timing = TimingAggregator(collective)
        for s in samples:
            timing.record(s)
        avg, tmin, tmax = timing.summary()
        assert tmin <= avg <= tmax
        assert tmin == min(samples)
        assert tmax == max(samples)
        assert avg == pytest.approx(sum(samples) / len(samples))
        assert timing.count == len(samples)

    def test_reset(self, collective):
        timing = TimingAggregator(collective)
        timing.record(5.0)
        timing.reset()
        timing.record(1.0)
        assert timing.summary() == (1.0, 1.0, 1.0)

    def test_summary_without_samples(self, collective):
        with pytest.raises(RuntimeError):
            TimingAggregator(collective).summary()

    def test_throughput_uses_fastest_iteration(self, collective):
        timing = TimingAggregator(collective)
        assert timing.throughput(1e9) == 0.0
        timing.record(2.0)
        timing.record(0.5)
        assert timing.throughput(1e9) == pytest.approx(2.0)

    def test_rounding_drift_snapped_to_bounds(self, collective):
        """Three equal samples whose float sum overshoots still average to the sample."""
        timing = TimingAggregator(collective)
        for _ in range(3):
            timing.record(0.1)
        assert timing.summary() == (0.1, 0.1, 0.1)

    def test_inconsistent_total_not_hidden(self, collective):
        timing = TimingAggregator(collective)
        timing.record(1.0)
        timing.record(2.0)
        timing.sample.total = 10.0
        avg, _, tmax = timing.summary()
        assert avg == 5.0
        assert avg > tmax
