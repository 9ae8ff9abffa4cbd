"""Performance baselines -- reference durations for classifying a run.

Baselines never affect scoring.  A missing or malformed baselines file
falls back to the built-in defaults.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from compliance_guard.config import settings
from compliance_guard.contracts import BaselineMetrics, PerformanceBaselines
from compliance_guard.errors import AnalyticsError, ErrorCode, FileProcessingError
from compliance_guard.storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

SMALL_FILE_BYTES = 10 * 1024
MEDIUM_FILE_BYTES = 100 * 1024


class ProcessingClass(str, enum.Enum):
    FAST = "FAST"
    NORMAL = "NORMAL"
    SLOW = "SLOW"


def size_bucket(size_bytes: int) -> str:
    """``small`` (<10 KiB), ``medium`` (<100 KiB) or ``large``."""
    if size_bytes < SMALL_FILE_BYTES:
        return "small"
    if size_bytes < MEDIUM_FILE_BYTES:
        return "medium"
    return "large"


def bucket_baseline(baselines: PerformanceBaselines, size_bytes: int) -> BaselineMetrics:
    return getattr(baselines.file_processing, size_bucket(size_bytes))


def classify_processing(avg_ms: float, baselines: PerformanceBaselines) -> ProcessingClass:
    fp = baselines.file_processing
    if avg_ms < fp.small.avg:
        return ProcessingClass.FAST
    if avg_ms > fp.large.avg:
        return ProcessingClass.SLOW
    return ProcessingClass.NORMAL


class BaselineStore:
    """Load/save ``PerformanceBaselines`` as camelCase JSON."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path if path is not None else settings.BASELINES_PATH)

    def load(self) -> PerformanceBaselines:
        try:
            raw = read_json(self.path)
        except (ValueError, FileProcessingError) as exc:
            logger.warning("Baselines at %s unreadable, using defaults: %s", self.path, exc)
            return PerformanceBaselines()
        if raw is None:
            logger.debug("No baselines at %s, using defaults", self.path)
            return PerformanceBaselines()
        try:
            return PerformanceBaselines.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning(
                "Baselines at %s malformed, using defaults (%d errors)",
                self.path, exc.error_count(),
            )
            return PerformanceBaselines()

    def save(self, baselines: PerformanceBaselines) -> None:
        try:
            atomic_write_json(self.path, baselines.model_dump(mode="json", by_alias=True))
        except FileProcessingError as exc:
            raise AnalyticsError(
                f"Failed to save baselines: {exc}",
                invariant="atomic_write",
                code=ErrorCode.BASELINE_ERROR,
            ) from exc


__all__ = [
    "BaselineStore",
    "MEDIUM_FILE_BYTES",
    "ProcessingClass",
    "SMALL_FILE_BYTES",
    "bucket_baseline",
    "classify_processing",
    "size_bucket",
]
