"""Trend, stability and context-correlation analysis over session history.

Everything here is rule-based and transparent: a median baseline, a
half-vs-half trend over the last week, an ordered rule table for the
stability classification and a group-mean comparison for context flags.
Each call is a pure function of the history passed in.
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np

from tremorsense.analytics.smoothing import detect_anomalies
from tremorsense.models import RecordingSession

DAY_MS = 24 * 60 * 60 * 1000


class TrendDirection(str, Enum):
    STABLE = "stable"
    INCREASING = "increasing"
    DECREASING = "decreasing"


class StabilityType(str, Enum):
    STABLE = "stable"
    VARIABLE = "variable"
    INCREASING = "increasing"
    IRREGULAR = "irregular"


class Impact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class StabilityClassification:
    type: StabilityType
    confidence: float  # 0-1

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "confidence": self.confidence}


@dataclass(frozen=True)
class Correlation:
    """Association between a context flag and session variability."""

    context: str
    impact: Impact
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "context": self.context,
            "impact": self.impact.value,
            "description": self.description,
        }


@dataclass
class TrendAnalysis:
    """Insight report derived from the full session history."""

    stability_score: int  # 0-100, higher = more consistent
    classification: StabilityClassification
    summary: str
    anomalies: list[str] = field(default_factory=list)
    correlations: list[Correlation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stabilityScore": self.stability_score,
            "classification": self.classification.to_dict(),
            "summary": self.summary,
            "anomalies": list(self.anomalies),
            "correlations": [c.to_dict() for c in self.correlations],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"TrendAnalysis(score={self.stability_score}, "
            f"{self.classification.type.value} "
            f"@{self.classification.confidence:.1f}, "
            f"anomalies={len(self.anomalies)}, "
            f"correlations={len(self.correlations)})"
        )


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

RECENT_DAYS = 7
MIN_TREND_SESSIONS = 3
TREND_CHANGE = 0.15  # relative change between halves

ANOMALY_FRACTION = 0.10  # of the latest magnitude series
ELEVATED_RECENT = 1.2  # recent avg vs baseline, for the summary

MIN_GROUP_SESSIONS = 3  # per group, for correlations
CORRELATION_DIFF = 0.10

NO_DATA_SUMMARY = "No data available yet. Start recording to see insights."
ANOMALY_MESSAGE = "Unusual motion patterns detected in recent recording"

TREND_SENTENCES = {
    TrendDirection.INCREASING: "Your motion variability has increased slightly over the past week.",
    TrendDirection.DECREASING: "Your motion variability has decreased, showing improved stability.",
    TrendDirection.STABLE: "Your motion patterns have remained relatively stable.",
}
ELEVATED_SENTENCE = "Recent recordings show higher variability compared to your baseline."


def _now_ms() -> int:
    return int(time.time() * 1000)


def _mean_variability(sessions: Sequence[RecordingSession]) -> float:
    return float(np.mean([s.stats.variability for s in sessions]))


# ---------------------------------------------------------------------------
# Baseline and trend
# ---------------------------------------------------------------------------


def calculate_baseline(sessions: Sequence[RecordingSession]) -> float:
    """Median session variability (0.0 for an empty history)."""
    if len(sessions) == 0:
        return 0.0
    return float(np.median([s.stats.variability for s in sessions]))


def recent_sessions(
    sessions: Sequence[RecordingSession],
    now_ms: int | None = None,
    days: int = RECENT_DAYS,
) -> list[RecordingSession]:
    """Sessions from the last *days* days, newest first."""
    now = _now_ms() if now_ms is None else now_ms
    cutoff = now - days * DAY_MS
    recent = [s for s in sessions if s.timestamp >= cutoff]
    return sorted(recent, key=lambda s: s.timestamp, reverse=True)


def detect_trend(
    sessions: Sequence[RecordingSession],
    now_ms: int | None = None,
    days: int = RECENT_DAYS,
) -> TrendDirection:
    """Compare the later half of the recent window against the earlier half.

    Fewer than three sessions (overall or in the window) is reported as
    stable.  With an odd count the later half is the larger one.
    """
    if len(sessions) < MIN_TREND_SESSIONS:
        return TrendDirection.STABLE

    recent = recent_sessions(sessions, now_ms, days)[::-1]  # oldest first
    if len(recent) < MIN_TREND_SESSIONS:
        return TrendDirection.STABLE

    split = len(recent) // 2
    first_avg = _mean_variability(recent[:split])
    second_avg = _mean_variability(recent[split:])

    if first_avg == 0.0:
        return TrendDirection.INCREASING if second_avg > 0.0 else TrendDirection.STABLE

    change = (second_avg - first_avg) / first_avg
    if change > TREND_CHANGE:
        return TrendDirection.INCREASING
    if change < -TREND_CHANGE:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


# ---------------------------------------------------------------------------
# Classification and score
# ---------------------------------------------------------------------------


def variability_ratio(current: float, baseline: float) -> float:
    """current / baseline, with a zero baseline treated as 1."""
    return current / (baseline or 1.0)


ClassificationRule = tuple[str, Callable[[float, TrendDirection], bool], StabilityClassification]

# Evaluated in order; the first matching predicate wins.
CLASSIFICATION_RULES: list[ClassificationRule] = [
    (
        "steady",
        lambda ratio, trend: ratio < 1.1 and trend == TrendDirection.STABLE,
        StabilityClassification(StabilityType.STABLE, 0.9),
    ),
    (
        "rising",
        lambda ratio, trend: ratio > 1.5 or trend == TrendDirection.INCREASING,
        StabilityClassification(StabilityType.INCREASING, 0.8),
    ),
    (
        "elevated",
        lambda ratio, trend: ratio > 1.2,
        StabilityClassification(StabilityType.VARIABLE, 0.7),
    ),
    (
        "fallback",
        lambda ratio, trend: True,
        StabilityClassification(StabilityType.IRREGULAR, 0.6),
    ),
]


def classify_stability(
    current_variability: float,
    baseline_variability: float,
    trend: TrendDirection,
) -> StabilityClassification:
    """Classify the latest session against the baseline and trend."""
    ratio = variability_ratio(current_variability, baseline_variability)
    for _name, predicate, result in CLASSIFICATION_RULES:
        if predicate(ratio, trend):
            return result
    raise AssertionError("classification rules must end with a catch-all")


def stability_score(current_variability: float, baseline_variability: float) -> int:
    """Map the variability ratio onto 0-100 (ratio 1 -> 100, ratio 3 -> 0)."""
    ratio = variability_ratio(current_variability, baseline_variability)
    raw = max(0.0, min(100.0, 100.0 - (ratio - 1.0) * 50.0))
    return int(math.floor(raw + 0.5))


# ---------------------------------------------------------------------------
# Anomalies, correlations, summary
# ---------------------------------------------------------------------------


def summarize_anomalies(magnitude: Sequence[float]) -> list[str]:
    """One message when more than 10% of the samples are outliers."""
    indices = detect_anomalies(magnitude)
    if len(indices) > len(magnitude) * ANOMALY_FRACTION:
        return [ANOMALY_MESSAGE]
    return []


@dataclass(frozen=True)
class TrackedContext:
    """A context flag checked for correlation with variability."""

    flag: str  # RecordingContext attribute
    label: str
    subject: str  # lead-in of the description sentence


TRACKED_CONTEXTS = (
    TrackedContext("caffeine", "Caffeine", "Sessions with caffeine"),
    TrackedContext("stress", "Stress", "Sessions marked as stressful"),
)


def correlate_context(
    sessions: Sequence[RecordingSession],
    tracked: TrackedContext,
) -> Correlation | None:
    """Compare flagged vs unflagged variability for one context flag.

    Returns None when either group has fewer than three sessions, when the
    unflagged average is zero, or when the relative difference is 10% or less.
    """
    flagged = [s for s in sessions if s.has_flag(tracked.flag)]
    unflagged = [s for s in sessions if not s.has_flag(tracked.flag)]
    if len(flagged) < MIN_GROUP_SESSIONS or len(unflagged) < MIN_GROUP_SESSIONS:
        return None

    flagged_avg = _mean_variability(flagged)
    unflagged_avg = _mean_variability(unflagged)
    if unflagged_avg == 0.0:
        return None

    diff = (flagged_avg - unflagged_avg) / unflagged_avg
    if abs(diff) <= CORRELATION_DIFF:
        return None

    direction = "higher" if diff > 0 else "lower"
    return Correlation(
        context=tracked.label,
        impact=Impact.NEGATIVE if diff > 0 else Impact.POSITIVE,
        description=f"{tracked.subject} show {abs(diff) * 100:.0f}% {direction} variability.",
    )


def find_correlations(sessions: Sequence[RecordingSession]) -> list[Correlation]:
    results = []
    for tracked in TRACKED_CONTEXTS:
        corr = correlate_context(sessions, tracked)
        if corr is not None:
            results.append(corr)
    return results


def build_summary(
    trend: TrendDirection,
    recent: Sequence[RecordingSession],
    baseline: float,
) -> str:
    sentences = [TREND_SENTENCES[trend]]
    if recent and _mean_variability(recent) > baseline * ELEVATED_RECENT:
        sentences.append(ELEVATED_SENTENCE)
    return " ".join(sentences)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def generate_trend_analysis(
    sessions: Sequence[RecordingSession],
    now_ms: int | None = None,
) -> TrendAnalysis:
    """Produce the insight report for a session history.

    Args:
        sessions: Full session history (any order; not modified).
        now_ms: Reference time in epoch ms (default: current time).

    Returns:
        A TrendAnalysis.  An empty history yields a neutral report.
    """
    if len(sessions) == 0:
        return TrendAnalysis(
            stability_score=50,
            classification=StabilityClassification(StabilityType.STABLE, 0.5),
            summary=NO_DATA_SUMMARY,
        )

    now = _now_ms() if now_ms is None else now_ms
    baseline = calculate_baseline(sessions)
    recent = recent_sessions(sessions, now)
    # Nothing in the window: fall back to the newest session overall
    latest = recent[0] if recent else max(sessions, key=lambda s: s.timestamp)
    trend = detect_trend(sessions, now)

    current = latest.stats.variability
    return TrendAnalysis(
        stability_score=stability_score(current, baseline),
        classification=classify_stability(current, baseline, trend),
        summary=build_summary(trend, recent, baseline),
        anomalies=summarize_anomalies(latest.magnitude),
        correlations=find_correlations(sessions),
    )
