#!/usr/bin/env python3
"""
Test suite for monitoring/sample_window.py - rolling latency window
"""

import pytest

from agrimon.monitoring.sample_window import SampleWindow, MIN_SAMPLES_FOR_PERCENTILE


class TestSampleWindow:
    """Test suite for SampleWindow"""

    def test_capacity_is_enforced_fifo(self):
        """Test the window keeps only the newest 1000 samples"""
        window = SampleWindow()
        for i in range(1500):
            window.record(float(i))

        assert len(window) == 1000
        values = window.values()
        assert values[0] == 500.0
        assert values[-1] == 1499.0

    def test_sparse_window_has_no_percentile(self):
        """Test percentiles are withheld below the minimum sample count"""
        window = SampleWindow()
        for i in range(MIN_SAMPLES_FOR_PERCENTILE - 1):
            window.record(float(i))

        assert window.percentile(0.95) is None
        assert window.percentile(0.99) is None

    def test_percentile_rank_with_ten_samples(self):
        """Test rank floor(p * n) clamps to the last sample"""
        window = SampleWindow()
        for value in [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]:
            window.record(float(value))

        assert window.percentile(0.95) == 100.0
        assert window.percentile(0.99) == 100.0
        assert window.percentile(0.5) == 60.0

    def test_percentile_rank_with_hundred_samples(self):
        """Test p95/p99 over 1..100 inserted in reverse order"""
        window = SampleWindow()
        for value in range(100, 0, -1):
            window.record(float(value))

        assert window.percentile(0.95) == 96.0
        assert window.percentile(0.99) == 100.0

    def test_invalid_capacity(self):
        """Test a non-positive capacity is rejected"""
        with pytest.raises(ValueError):
            SampleWindow(capacity=0)
