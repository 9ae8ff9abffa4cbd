"""Report assembly -- the JSON-ready document handed to renderers.

Combines the run result, its telemetry, the stored history and the
performance baselines.  Performance figures are informational only and
never influence the score.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from compliance_guard.baselines import (
    bucket_baseline,
    classify_processing,
    size_bucket,
)
from compliance_guard.contracts import (
    BaselineMetrics,
    HistoryEntry,
    PerformanceBaselines,
    RunResult,
    Severity,
    ViolationKind,
)
from compliance_guard.scoring import RunMetrics, breakdown
from compliance_guard.trends import (
    analyze_compliance_trends,
    analyze_standards_effectiveness,
    analyze_violation_frequency,
    assess_risk,
    generate_insights,
    linear_trend,
    mean,
    predict_compliance_score,
    trend_direction,
)

logger = logging.getLogger(__name__)

TREND_WINDOW = 5
SLOW_FILE_MS = 1000.0
SCORE_TARGET = 80.0

# Rule category -> ValidationBaselines field
_CATEGORY_BASELINES = {
    "CODE_STYLE": "code_style",
    "SECURITY": "security",
    "ARCHITECTURE": "architecture",
    "TESTING": "testing",
    "DOCUMENTATION": "documentation",
}


def _timing_stats(samples: Sequence[float]) -> dict[str, float]:
    if not samples:
        return {"averageTime": 0.0, "maxTime": 0.0, "minTime": 0.0}
    return {
        "averageTime": round(mean(samples), 3),
        "maxTime": round(max(samples), 3),
        "minTime": round(min(samples), 3),
    }


def file_processing_performance(metrics: RunMetrics) -> dict[str, Any]:
    timings = list(metrics.file_timings.values())
    sizes = [t.size_bytes for t in timings]
    return {
        **_timing_stats([t.time_ms for t in timings]),
        "averageSize": round(mean(sizes), 1),
        "totalFiles": len(timings),
    }


def validation_performance(metrics: RunMetrics) -> dict[str, Any]:
    return {
        category: {**_timing_stats(samples), "totalRuns": len(samples)}
        for category, samples in sorted(metrics.validation_timings_ms.items())
        if samples
    }


def compare_baselines(
    run_result: RunResult, metrics: RunMetrics, baselines: PerformanceBaselines
) -> dict[str, Any]:
    """Classify the run against expected durations."""
    slow_files = sorted(
        path
        for path, timing in metrics.file_timings.items()
        if timing.time_ms > bucket_baseline(baselines, timing.size_bytes).max
    )
    buckets: dict[str, int] = {}
    for timing in metrics.file_timings.values():
        bucket = size_bucket(timing.size_bytes)
        buckets[bucket] = buckets.get(bucket, 0) + 1

    over_validation = []
    for category, samples in sorted(metrics.validation_timings_ms.items()):
        attr = _CATEGORY_BASELINES.get(category)
        if attr is None or not samples:
            continue
        expected: BaselineMetrics = getattr(baselines.validation, attr)
        if mean(samples) > expected.max:
            over_validation.append(category)

    execution = baselines.overall.execution_time
    return {
        "fileProcessing": classify_processing(metrics.average_file_ms, baselines).value,
        "execution": (
            "OVER_BASELINE" if run_result.duration_ms > execution.max else "WITHIN_BASELINE"
        ),
        "sizeBuckets": dict(sorted(buckets.items())),
        "slowFiles": slow_files,
        "validationOverBaseline": over_validation,
    }


def recent_trends(history: Sequence[HistoryEntry]) -> dict[str, Any]:
    """Score and violation direction over the last five entries."""
    if len(history) < 2:
        return {"message": "Insufficient data for trend analysis"}
    recent = history[-TREND_WINDOW:]
    scores = [e.compliance_score for e in recent]
    counts = [float(e.violations) for e in recent]
    return {
        "complianceScore": {
            "trend": trend_direction(linear_trend(scores)),
            "average": mean(scores),
        },
        # fewer violations is the improving direction
        "violations": {
            "trend": trend_direction(-linear_trend(counts)),
            "average": mean(counts),
        },
        "message": "Trend analysis completed",
    }


def recommendations(run_result: RunResult, metrics: RunMetrics) -> list[dict[str, str]]:
    recs: list[dict[str, str]] = []
    critical = sum(1 for v in run_result.violations if v.severity is Severity.CRITICAL)
    if critical:
        recs.append({
            "type": "CRITICAL",
            "category": "SECURITY",
            "message": f"Address {critical} critical violations immediately",
            "priority": "HIGH",
        })
    if metrics.average_file_ms > SLOW_FILE_MS:
        recs.append({
            "type": "WARNING",
            "category": "PERFORMANCE",
            "message": "File processing is taking longer than expected",
            "priority": "MEDIUM",
        })
    if run_result.compliance_score < SCORE_TARGET:
        recs.append({
            "type": "WARNING",
            "category": "COMPLIANCE",
            "message": f"Compliance score is below target ({SCORE_TARGET:g}%)",
            "priority": "HIGH",
        })
    return recs


def build_report(
    run_result: RunResult,
    metrics: RunMetrics,
    history: Sequence[HistoryEntry] = (),
    baselines: PerformanceBaselines | None = None,
) -> dict[str, Any]:
    """Assemble the full analytics report for one run.

    *history* should already include the current run's entry when it was
    recorded.
    """
    baselines = baselines or PerformanceBaselines()
    history = list(history)

    report = {
        "summary": {
            "complianceScore": run_result.compliance_score,
            "totalChecks": run_result.total_checks,
            "passedChecks": run_result.passed_checks,
            "totalFiles": run_result.files_processed,
            "failedFiles": run_result.files_failed,
            "totalViolations": len(run_result.violations),
            "criticalViolations": run_result.count(ViolationKind.CRITICAL),
            "warnings": run_result.count(ViolationKind.WARNING),
            "errors": run_result.count(ViolationKind.ERROR),
            "executionTime": round(run_result.duration_ms, 3),
            "averageProcessingTime": round(metrics.average_file_ms, 3),
        },
        "violations": breakdown(run_result.violations).to_dict(),
        "performance": {
            "fileProcessing": file_processing_performance(metrics),
            "validation": validation_performance(metrics),
            "baselines": compare_baselines(run_result, metrics, baselines),
        },
        "trends": recent_trends(history),
        "statistics": {
            "violationFrequency": analyze_violation_frequency(history),
            "complianceTrends": analyze_compliance_trends(history),
            "standardsEffectiveness": analyze_standards_effectiveness(history),
            "insights": generate_insights(history),
        },
        "risk": assess_risk(history).to_dict(),
        "forecast": predict_compliance_score(history),
        "recommendations": recommendations(run_result, metrics),
    }
    logger.debug(
        "Built report: score %.1f, %d history entries, risk %s",
        run_result.compliance_score, len(history), report["risk"]["overallRisk"],
    )
    return report


__all__ = [
    "build_report",
    "compare_baselines",
    "file_processing_performance",
    "recent_trends",
    "recommendations",
    "validation_performance",
]
