"""Statistical analyzer -- trends, outliers, forecasts and risk over history.

Pure functions.  Fewer than two data points is a normal input, never an
error; each function documents the neutral value it returns then:

    mean / median            -> 0.0 when empty, the value itself for one
    standard_deviation       -> 0.0
    linear_trend             -> 0.0
    detect_outliers          -> [] for fewer than 4 values
    correlation              -> 0.0 (also for unequal lengths or zero variance)
    predict_compliance_score -> "insufficient_data" below 5 entries
    assess_risk              -> LOW below 2 entries
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from compliance_guard.contracts import HistoryEntry, RiskLevel

PATTERN_SLOPE = 0.5
DIRECTION_SLOPE = 0.1
FORECAST_MIN_ENTRIES = 5
RECENT_WINDOW = 5

MOST_EFFECTIVE_RATE = 10.0
NEEDS_IMPROVEMENT_RATE = 30.0

RISK_HIGH_AVG = 70.0
RISK_MEDIUM_AVG = 85.0
RISK_VOLATILITY = 15.0
RISK_VIOLATION_SLOPE = 2.0
RISK_RECENT_DROP = 10.0


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (mean of squared deviations)."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope of *values* against their index 0..n-1."""
    n = len(values)
    if n < 2:
        return 0.0
    x_mean = (n - 1) / 2
    y_mean = mean(values)
    num = sum((i - x_mean) * (v - y_mean) for i, v in enumerate(values))
    den = sum((i - x_mean) ** 2 for i in range(n))
    return num / den


def detect_outliers(values: Sequence[float]) -> list[float]:
    """Values outside [Q1 - 1.5*IQR, Q3 + 1.5*IQR], in input order.

    Quartiles are read from a sorted copy at ``floor(n * 0.25)`` and
    ``floor(n * 0.75)``.
    """
    n = len(values)
    if n < 4:
        return []
    ordered = sorted(values)
    q1 = ordered[int(n * 0.25)]
    q3 = ordered[int(n * 0.75)]
    iqr = q3 - q1
    low, high = q1 - 1.5 * iqr, q3 + 1.5 * iqr
    return [v for v in values if v < low or v > high]


def correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation coefficient."""
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    mx, my = mean(xs), mean(ys)
    num = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
    sx = sum((x - mx) ** 2 for x in xs)
    sy = sum((y - my) ** 2 for y in ys)
    den = math.sqrt(sx * sy)
    return 0.0 if den == 0 else num / den


def trend_direction(slope: float) -> str:
    if slope > DIRECTION_SLOPE:
        return "IMPROVING"
    if slope < -DIRECTION_SLOPE:
        return "DECLINING"
    return "STABLE"


# ---------------------------------------------------------------------------
# History analyses
# ---------------------------------------------------------------------------


def _scores(history: Sequence[HistoryEntry]) -> list[float]:
    return [e.compliance_score for e in history]


def _violation_counts(history: Sequence[HistoryEntry]) -> list[float]:
    return [float(e.violations) for e in history]


def analyze_violation_frequency(history: Sequence[HistoryEntry]) -> dict[str, Any]:
    """Classify the violation-count series as increasing, decreasing,
    sporadic (has outliers) or stable.  Pattern is ``none`` without data.
    """
    counts = _violation_counts(history)
    if not counts:
        return {
            "trend": 0.0,
            "averageViolations": 0,
            "pattern": "none",
            "outliers": 0,
            "totalEntries": 0,
        }
    slope = linear_trend(counts)
    outliers = detect_outliers(counts)
    if slope > PATTERN_SLOPE:
        pattern = "increasing"
    elif slope < -PATTERN_SLOPE:
        pattern = "decreasing"
    elif outliers:
        pattern = "sporadic"
    else:
        pattern = "stable"
    return {
        "trend": slope,
        "averageViolations": round(mean(counts)),
        "pattern": pattern,
        "outliers": len(outliers),
        "totalEntries": len(counts),
    }


def analyze_compliance_trends(history: Sequence[HistoryEntry]) -> dict[str, Any]:
    """Slope, average, volatility and recent improvement of the score.

    ``improvement`` is mean(last 5) - mean(previous 5); it is 0 until the
    previous window holds at least one entry.
    """
    scores = _scores(history)
    if not scores:
        return {
            "trend": 0.0,
            "direction": "STABLE",
            "averageScore": 0,
            "improvement": 0,
            "volatility": 0,
            "currentScore": 0,
        }
    slope = linear_trend(scores)
    recent = scores[-RECENT_WINDOW:]
    older = scores[-2 * RECENT_WINDOW:-RECENT_WINDOW]
    improvement = mean(recent) - mean(older) if older else 0.0
    return {
        "trend": slope,
        "direction": trend_direction(slope),
        "averageScore": round(mean(scores)),
        "improvement": round(improvement),
        "volatility": round(standard_deviation(scores)),
        "currentScore": scores[-1],
    }


def predict_compliance_score(
    history: Sequence[HistoryEntry], days_ahead: int = 7
) -> dict[str, Any]:
    """Linear extrapolation ``current + slope * days_ahead``, clamped to [0, 100].

    ``confidence`` is a heuristic, ``max(0, 100 - 2 * stddev(last 5))``:
    steadier recent scores give more confidence.  It is not a statistical
    confidence interval.
    """
    scores = _scores(history)
    if len(scores) < FORECAST_MIN_ENTRIES:
        return {"prediction": "insufficient_data", "confidence": 0}
    slope = linear_trend(scores)
    current = scores[-1]
    predicted = current + slope * days_ahead
    spread = standard_deviation(scores[-RECENT_WINDOW:])
    return {
        "prediction": max(0, min(100, round(predicted))),
        "confidence": round(max(0.0, 100 - spread * 2)),
        "trend": slope,
        "currentScore": current,
        "daysAhead": days_ahead,
    }


def analyze_standards_effectiveness(history: Sequence[HistoryEntry]) -> dict[str, Any]:
    """Average per-standard violation rate across the history.

    Below 10% a standard is "most effective"; above 30% it "needs
    improvement".
    """
    rates: dict[str, list[float]] = {}
    checks: dict[str, int] = {}
    for entry in history:
        for std, data in entry.metrics.standards_effectiveness.items():
            if data.total_checks <= 0:
                continue
            rates.setdefault(std, []).append(data.violations / data.total_checks * 100)
            checks[std] = checks.get(std, 0) + data.total_checks

    result: dict[str, Any] = {"mostEffective": [], "needsImprovement": [], "trends": {}}
    for std in sorted(rates):
        avg_rate = mean(rates[std])
        result["trends"][std] = {
            "averageViolationRate": round(avg_rate),
            "trend": linear_trend(rates[std]),
            "totalChecks": checks[std],
        }
        if avg_rate < MOST_EFFECTIVE_RATE:
            result["mostEffective"].append(std)
        elif avg_rate > NEEDS_IMPROVEMENT_RATE:
            result["needsImprovement"].append(std)
    return result


def generate_insights(history: Sequence[HistoryEntry]) -> list[dict[str, str]]:
    insights: list[dict[str, str]] = []

    freq = analyze_violation_frequency(history)
    if freq["pattern"] != "none":
        increasing = freq["pattern"] == "increasing"
        insights.append({
            "type": "violation_pattern",
            "priority": "HIGH" if increasing else "MEDIUM",
            "message": (
                f"Violation pattern is {freq['pattern']} "
                f"({freq['averageViolations']} avg)"
            ),
            "action": (
                "Focus on reducing violations immediately"
                if increasing
                else "Monitor for improvement opportunities"
            ),
        })

    trend = analyze_compliance_trends(history)
    if trend["improvement"] != 0:
        up = trend["improvement"] > 0
        insights.append({
            "type": "compliance_trend",
            "priority": "LOW" if up else "MEDIUM",
            "message": (
                f"Compliance {'improving' if up else 'declining'} "
                f"by {abs(trend['improvement'])}%"
            ),
            "action": (
                "Continue current practices"
                if up
                else "Review and improve compliance practices"
            ),
        })

    standards = analyze_standards_effectiveness(history)
    if standards["needsImprovement"]:
        insights.append({
            "type": "standards_effectiveness",
            "priority": "HIGH",
            "message": (
                "Standards needing improvement: "
                + ", ".join(standards["needsImprovement"])
            ),
            "action": "Review and update standards documentation",
        })
    return insights


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel = RiskLevel.LOW
    factors: tuple[str, ...] = ()
    metrics: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallRisk": self.level.value,
            "factors": list(self.factors),
            "metrics": dict(self.metrics),
        }


def assess_risk(history: Sequence[HistoryEntry]) -> RiskAssessment:
    """Compose independent risk triggers, keeping the most severe level.

    Triggers only ever raise the level: average score below 85 (MEDIUM)
    or 70 (HIGH), volatility above 15 (MEDIUM), violation-count slope
    above 2 (HIGH), and any of the last three scores more than 10 below
    the average (MEDIUM).
    """
    scores = _scores(history)
    if len(scores) < 2:
        return RiskAssessment(
            metrics={
                "averageScore": round(mean(scores)),
                "volatility": 0,
                "violationTrend": 0.0,
                "dataPoints": len(scores),
            }
        )

    avg = mean(scores)
    volatility = standard_deviation(scores)
    violation_slope = linear_trend(_violation_counts(history))

    level = RiskLevel.LOW
    factors: list[str] = []

    if avg < RISK_HIGH_AVG:
        level = RiskLevel.max(level, RiskLevel.HIGH)
        factors.append("Low average compliance score")
    elif avg < RISK_MEDIUM_AVG:
        level = RiskLevel.max(level, RiskLevel.MEDIUM)
        factors.append("Moderate compliance score")

    if volatility > RISK_VOLATILITY:
        level = RiskLevel.max(level, RiskLevel.MEDIUM)
        factors.append("High score volatility")

    if violation_slope > RISK_VIOLATION_SLOPE:
        level = RiskLevel.max(level, RiskLevel.HIGH)
        factors.append("Increasing violation trend")

    if any(s < avg - RISK_RECENT_DROP for s in scores[-3:]):
        level = RiskLevel.max(level, RiskLevel.MEDIUM)
        factors.append("Recent score decline")

    return RiskAssessment(
        level=level,
        factors=tuple(factors),
        metrics={
            "averageScore": round(avg),
            "volatility": round(volatility),
            "violationTrend": round(violation_slope, 2),
            "dataPoints": len(scores),
        },
    )


__all__ = [
    "RiskAssessment",
    "analyze_compliance_trends",
    "analyze_standards_effectiveness",
    "analyze_violation_frequency",
    "assess_risk",
    "correlation",
    "detect_outliers",
    "generate_insights",
    "linear_trend",
    "mean",
    "median",
    "predict_compliance_score",
    "standard_deviation",
    "trend_direction",
]
