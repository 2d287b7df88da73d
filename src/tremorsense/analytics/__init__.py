"""Analytics engine for recorded motion sessions.

Modules:
    magnitude  -- Magnitude series and amplitude statistics
    smoothing  -- Moving-average smoothing and z-score anomaly detection
    trends     -- Baseline, trend, stability classification, correlations
    history    -- Per-day and rolling variability aggregations
"""

from tremorsense.analytics.magnitude import (
    magnitude,
    magnitude_series,
    mean_amplitude,
    variability,
    peak_amplitude,
    compute_stats,
)
from tremorsense.analytics.smoothing import smooth, detect_anomalies
from tremorsense.analytics.trends import (
    generate_trend_analysis,
    calculate_baseline,
    detect_trend,
    classify_stability,
    stability_score,
    find_correlations,
    TrendAnalysis,
    TrendDirection,
    StabilityClassification,
    StabilityType,
    Correlation,
    Impact,
)
from tremorsense.analytics.history import (
    group_sessions_by_day,
    daily_averages,
    rolling_average,
    DailyAverage,
)

__all__ = [
    # magnitude
    "magnitude",
    "magnitude_series",
    "mean_amplitude",
    "variability",
    "peak_amplitude",
    "compute_stats",
    # smoothing
    "smooth",
    "detect_anomalies",
    # trends
    "generate_trend_analysis",
    "calculate_baseline",
    "detect_trend",
    "classify_stability",
    "stability_score",
    "find_correlations",
    "TrendAnalysis",
    "TrendDirection",
    "StabilityClassification",
    "StabilityType",
    "Correlation",
    "Impact",
    # history
    "group_sessions_by_day",
    "daily_averages",
    "rolling_average",
    "DailyAverage",
]
