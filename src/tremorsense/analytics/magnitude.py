"""Magnitude series and amplitude statistics.

Converts per-axis sensor arrays into a scalar magnitude series and derives
the three session statistics:
  - mean amplitude: mean absolute deviation from the series mean
  - variability: population standard deviation
  - peak amplitude: largest absolute deviation from the series mean

Every function is total; the empty series maps to 0.0.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from tremorsense.models import RecordingStats, SensorData


def magnitude(x: float, y: float, z: float) -> float:
    """Euclidean norm of a 3-axis sample."""
    return math.sqrt(x * x + y * y + z * z)


def magnitude_series(data: SensorData) -> list[float]:
    """Per-sample magnitude of *data*.

    Axes of unequal length are truncated to the shortest one.
    """
    n = min(len(data.x), len(data.y), len(data.z))
    if n == 0:
        return []
    arr = np.column_stack([
        np.asarray(data.x[:n], dtype=np.float64),
        np.asarray(data.y[:n], dtype=np.float64),
        np.asarray(data.z[:n], dtype=np.float64),
    ])  # shape (N, 3)
    return np.sqrt(np.sum(arr ** 2, axis=1)).tolist()


def _deviations(series: Sequence[float]) -> np.ndarray:
    arr = np.asarray(series, dtype=np.float64)
    if np.ptp(arr) == 0.0:
        # constant series; the float mean can be off by an ulp
        return np.zeros_like(arr)
    return np.abs(arr - np.mean(arr))


def mean_amplitude(series: Sequence[float]) -> float:
    """Mean absolute deviation from the series mean."""
    if len(series) == 0:
        return 0.0
    return float(np.mean(_deviations(series)))


def variability(series: Sequence[float]) -> float:
    """Population standard deviation (divides by N)."""
    if len(series) == 0:
        return 0.0
    arr = np.asarray(series, dtype=np.float64)
    if np.ptp(arr) == 0.0:
        return 0.0
    return float(np.std(arr, ddof=0))


def peak_amplitude(series: Sequence[float]) -> float:
    """Largest absolute deviation from the series mean."""
    if len(series) == 0:
        return 0.0
    return float(np.max(_deviations(series)))


def compute_stats(series: Sequence[float]) -> RecordingStats:
    """Bundle the amplitude statistics of a magnitude series."""
    return RecordingStats(
        mean_amplitude=mean_amplitude(series),
        variability=variability(series),
        peak_amplitude=peak_amplitude(series),
    )
