"""Score aggregator -- reduce per-file results into one RunResult.

Every reduction here is a sum or a count over the violation set, so the
outcome does not depend on how files were partitioned across workers or
in which order they completed.  Aggregation runs single-threaded after
the processor's join point.

Scoring: start at 100, subtract a fixed penalty per violation kind,
clamp to [0, 100].
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from compliance_guard.config import Settings, settings as default_settings
from compliance_guard.contracts import (
    CategoryCounts,
    FileResult,
    FileTiming,
    HistoryMetrics,
    RunResult,
    StandardEffectiveness,
    Violation,
    ViolationKind,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0


# ---------------------------------------------------------------------------
# Penalties + score
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Penalties:
    """Points deducted per violation kind."""

    critical: int = 10
    error: int = 10
    warning: int = 2

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> Penalties:
        cfg = cfg or default_settings
        return cls(
            critical=cfg.PENALTY_CRITICAL,
            error=cfg.PENALTY_ERROR,
            warning=cfg.PENALTY_WARNING,
        )

    def for_kind(self, kind: ViolationKind) -> int:
        if kind is ViolationKind.CRITICAL:
            return self.critical
        if kind is ViolationKind.ERROR:
            return self.error
        return self.warning


def compute_score(
    violations: Iterable[Violation], penalties: Penalties | None = None
) -> float:
    """100 minus the summed penalties, clamped to [0, 100]."""
    penalties = penalties or Penalties()
    deducted = sum(penalties.for_kind(v.kind) for v in violations)
    return max(0.0, min(MAX_SCORE, MAX_SCORE - deducted))


# ---------------------------------------------------------------------------
# Breakdown views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ViolationBreakdown:
    by_category: dict[str, CategoryCounts] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    by_standard: dict[str, int] = field(default_factory=dict)
    by_kind: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "byCategory": {k: v.model_dump() for k, v in self.by_category.items()},
            "bySeverity": dict(self.by_severity),
            "byStandard": dict(self.by_standard),
            "byKind": dict(self.by_kind),
        }


def breakdown(violations: Iterable[Violation]) -> ViolationBreakdown:
    """Count violations per category/kind, severity, standard and kind."""
    per_category: dict[str, Counter[str]] = {}
    severity: Counter[str] = Counter()
    standard: Counter[str] = Counter()
    kind: Counter[str] = Counter()

    for v in violations:
        per_category.setdefault(v.category, Counter())[v.kind.value] += 1
        severity[v.severity.value] += 1
        standard[v.standard] += 1
        kind[v.kind.value] += 1

    return ViolationBreakdown(
        by_category={
            cat: CategoryCounts(**counts) for cat, counts in sorted(per_category.items())
        },
        by_severity=dict(sorted(severity.items())),
        by_standard=dict(sorted(standard.items())),
        by_kind=dict(sorted(kind.items())),
    )


# ---------------------------------------------------------------------------
# Run metrics accumulator
# ---------------------------------------------------------------------------


@dataclass
class RunMetrics:
    """Telemetry for one run, passed explicitly between stages.

    Nothing in here feeds the score.  Two accumulators built from disjoint
    file sets can be combined with ``merge``.
    """

    file_timings: dict[str, FileTiming] = field(default_factory=dict)
    validation_timings_ms: dict[str, list[float]] = field(default_factory=dict)
    standard_checks: dict[str, list[int]] = field(default_factory=dict)
    standard_violations: Counter[str] = field(default_factory=Counter)

    def record_file(self, result: FileResult) -> None:
        self.file_timings[result.path] = FileTiming(
            time_ms=result.duration_ms,
            size_bytes=result.size_bytes,
            success=result.success,
        )
        for category, ms in result.category_timings_ms.items():
            self.validation_timings_ms.setdefault(category, []).append(ms)
        for std, tally in result.standard_checks.items():
            slot = self.standard_checks.setdefault(std, [0, 0])
            slot[0] += tally.total
            slot[1] += tally.failed
        self.standard_violations.update(v.standard for v in result.violations)

    def merge(self, other: RunMetrics) -> RunMetrics:
        merged = RunMetrics(
            file_timings={**self.file_timings, **other.file_timings},
            validation_timings_ms={
                k: list(v) for k, v in self.validation_timings_ms.items()
            },
            standard_checks={k: list(v) for k, v in self.standard_checks.items()},
            standard_violations=self.standard_violations + other.standard_violations,
        )
        for category, samples in other.validation_timings_ms.items():
            merged.validation_timings_ms.setdefault(category, []).extend(samples)
        for std, (total, failed) in other.standard_checks.items():
            slot = merged.standard_checks.setdefault(std, [0, 0])
            slot[0] += total
            slot[1] += failed
        return merged

    @property
    def files_processed(self) -> int:
        return len(self.file_timings)

    @property
    def average_file_ms(self) -> float:
        if not self.file_timings:
            return 0.0
        return sum(t.time_ms for t in self.file_timings.values()) / len(self.file_timings)

    def standards_effectiveness(self) -> dict[str, StandardEffectiveness]:
        """Share of each standard's checks that passed, as a percentage."""
        out: dict[str, StandardEffectiveness] = {}
        for std in sorted(self.standard_checks):
            total, failed = self.standard_checks[std]
            eff = ((total - failed) / total * 100) if total else 100.0
            out[std] = StandardEffectiveness(
                total_checks=total,
                violations=self.standard_violations.get(std, 0),
                effectiveness=round(eff, 2),
            )
        return out

    def to_history_metrics(
        self, run_result: RunResult, view: ViolationBreakdown | None = None
    ) -> HistoryMetrics:
        view = view or breakdown(run_result.violations)
        return HistoryMetrics(
            execution_time_ms=run_result.duration_ms,
            average_file_processing_ms=round(self.average_file_ms, 3),
            violation_categories=view.by_category,
            standards_effectiveness=self.standards_effectiveness(),
            files_processed=run_result.files_processed,
        )


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


def aggregate(
    file_results: Iterable[FileResult],
    *,
    duration_ms: float = 0.0,
    penalties: Penalties | None = None,
    metrics: RunMetrics | None = None,
) -> RunResult:
    """Reduce *file_results* into a ``RunResult``.

    Violations are emitted in ``Violation.sort_key`` order so identical
    inputs always serialise identically.  When *metrics* is given, each
    file's telemetry is recorded into it.
    """
    results = sorted(file_results, key=lambda r: r.path)
    violations = sorted(
        (v for r in results for v in r.violations), key=Violation.sort_key
    )
    total = sum(r.total_checks for r in results)
    passed = sum(r.passed_checks for r in results)
    failed_files = sum(1 for r in results if not r.success)

    if metrics is not None:
        for r in results:
            metrics.record_file(r)

    score = compute_score(violations, penalties)
    logger.info(
        "Aggregated %d files: %d violations, %d/%d checks passed, score %.1f",
        len(results), len(violations), passed, total, score,
    )
    return RunResult(
        violations=tuple(violations),
        total_checks=total,
        passed_checks=passed,
        compliance_score=score,
        duration_ms=max(0.0, duration_ms),
        file_timings={
            r.path: FileTiming(time_ms=r.duration_ms, size_bytes=r.size_bytes, success=r.success)
            for r in results
        },
        files_processed=len(results),
        files_failed=failed_files,
    )


__all__ = [
    "MAX_SCORE",
    "Penalties",
    "RunMetrics",
    "ViolationBreakdown",
    "aggregate",
    "breakdown",
    "compute_score",
]
