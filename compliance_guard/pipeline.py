"""End-to-end compliance check.

    sources -> FileProcessor (RuleEvaluator per file, bounded workers)
            -> aggregate (single-threaded, after the join)
            -> HistoryStore.append
            -> build_report

A history failure is logged and surfaced in the report; it never fails
the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from compliance_guard.analytics import build_report
from compliance_guard.baselines import BaselineStore
from compliance_guard.config import Settings, settings as default_settings
from compliance_guard.contracts import HistoryEntry, PerformanceBaselines, RunResult
from compliance_guard.errors import AnalyticsError
from compliance_guard.history import HistoryStore, build_entry
from compliance_guard.processor import FileProcessor, SourceFile
from compliance_guard.rules import RuleEvaluator, RuleSet
from compliance_guard.scoring import Penalties, RunMetrics, aggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplianceRun:
    result: RunResult
    report: dict[str, Any]
    metrics: RunMetrics
    entry: HistoryEntry | None = None
    history_error: AnalyticsError | None = None

    def passed(self, threshold: float | None = None) -> bool:
        if threshold is None:
            threshold = default_settings.PASS_THRESHOLD
        return self.result.compliance_score >= threshold


async def run_compliance_check(
    sources: Iterable[SourceFile],
    standards: Mapping[str, str],
    *,
    history_store: HistoryStore | None = None,
    baselines_store: BaselineStore | None = None,
    cfg: Settings | None = None,
    now: datetime | None = None,
) -> ComplianceRun:
    """Evaluate *sources* against *standards* and assemble the report.

    ``ConfigurationError`` from malformed standards propagates; every other
    failure is recovered per file or per history operation.
    """
    cfg = cfg or default_settings
    rules = RuleSet.from_standards(standards)
    logger.info(
        "Checking against %d rules from %d standards", len(rules), len(rules.standards)
    )

    processor = FileProcessor(
        RuleEvaluator(rules, max_bytes=cfg.MAX_FILE_BYTES),
        max_workers=cfg.MAX_WORKERS,
        timeout_seconds=cfg.FILE_TIMEOUT_SECONDS,
    )
    started = time.perf_counter()
    file_results = await processor.process(sources)
    duration_ms = (time.perf_counter() - started) * 1000

    metrics = RunMetrics()
    result = aggregate(
        file_results,
        duration_ms=duration_ms,
        penalties=Penalties.from_settings(cfg),
        metrics=metrics,
    )

    history: list[HistoryEntry] = []
    discarded = 0
    entry: HistoryEntry | None = None
    error: AnalyticsError | None = None
    if history_store is not None:
        try:
            loaded = history_store.load()
            discarded = loaded.discarded
            history = list(loaded.entries)
            entry = build_entry(result, metrics, now=now)
            history = list(history_store.append(entry))
        except AnalyticsError as exc:
            logger.warning("History not recorded: %s", exc)
            error = exc
            entry = None

    baselines = baselines_store.load() if baselines_store is not None else PerformanceBaselines()
    report = build_report(result, metrics, history, baselines)
    report["history"] = {
        "recorded": entry is not None,
        "runId": entry.run_id if entry is not None else None,
        "entries": len(history),
        "discarded": discarded,
        "error": error.to_dict() if error is not None else None,
    }
    return ComplianceRun(
        result=result,
        report=report,
        metrics=metrics,
        entry=entry,
        history_error=error,
    )


__all__ = ["ComplianceRun", "run_compliance_check"]
