#!/usr/bin/env python3
"""
Rolling latency window used for percentile estimation.
"""

import math
from collections import deque
from typing import List, Optional

DEFAULT_CAPACITY = 1000
MIN_SAMPLES_FOR_PERCENTILE = 10


class SampleWindow:
    """Fixed-capacity FIFO buffer of the most recent latency samples.

    Percentiles are only reported once the window holds at least
    ``MIN_SAMPLES_FOR_PERCENTILE`` samples; sparse windows return ``None``.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._samples: deque = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    def record(self, value: float) -> None:
        """Append a sample, evicting the oldest once the window is full."""
        self._samples.append(value)

    def values(self) -> List[float]:
        """Samples in insertion order, oldest first."""
        return list(self._samples)

    def percentile(self, p: float) -> Optional[float]:
        """Value at rank ``floor(p * n)`` of the ascending samples."""
        n = len(self._samples)
        if n < MIN_SAMPLES_FOR_PERCENTILE:
            return None
        ordered = sorted(self._samples)
        idx = min(int(math.floor(p * n)), n - 1)
        return ordered[idx]
