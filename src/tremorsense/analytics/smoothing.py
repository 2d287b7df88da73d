"""Moving-average smoothing and z-score anomaly detection."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def smooth(series: Sequence[float], window_size: int = 5) -> list[float]:
    """Centered moving average.

    Near the edges the window is clipped to the samples that exist and the
    average is taken over the clipped window.  If *window_size* is at least
    the series length the input is returned unchanged (as a new list).

    Raises:
        ValueError: if *window_size* < 1.
    """
    if window_size < 1:
        raise ValueError("window_size must be >= 1")
    n = len(series)
    if n == 0:
        return []
    if window_size >= n:
        return list(series)

    arr = np.asarray(series, dtype=np.float64)
    half = window_size // 2

    # Prefix sums give each clipped window in O(1)
    cumsum = np.insert(np.cumsum(arr), 0, 0.0)
    idx = np.arange(n)
    start = np.maximum(0, idx - half)
    end = np.minimum(n, idx + half + 1)
    return ((cumsum[end] - cumsum[start]) / (end - start)).tolist()


def detect_anomalies(series: Sequence[float], threshold: float = 2.0) -> list[int]:
    """Indices whose z-score ``|v - mean| / std`` exceeds *threshold*.

    A series with zero standard deviation (constant, or a single sample)
    has no anomalies.
    """
    if len(series) == 0:
        return []
    arr = np.asarray(series, dtype=np.float64)
    if np.ptp(arr) == 0.0:
        return []
    std = float(np.std(arr, ddof=0))
    if std == 0.0:
        return []
    z = np.abs(arr - np.mean(arr)) / std
    return [int(i) for i in np.where(z > threshold)[0]]
