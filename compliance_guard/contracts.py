"""Engine contracts: Pydantic models for violations, runs and history.

Every entity the engine passes between stages is one of these models.
All models are frozen (immutable after creation) and validated at
construction time.

History and baseline models serialise with camelCase aliases so files
written by earlier versions of the tracker stay readable; unknown keys
are ignored and missing optional keys fall back to defaults.
"""

from __future__ import annotations

import enum
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

#: ISO-8601 UTC with millisecond precision, e.g. ``2026-01-01T00:00:00.000Z``.
TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")

SCHEMA_VERSION = "1.0"

_FROZEN = ConfigDict(frozen=True)
_CAMEL = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
    extra="ignore",
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ViolationKind(str, enum.Enum):
    """What kind of failure a violation records."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Severity(str, enum.Enum):
    """How urgently a violation needs attention."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RiskLevel(str, enum.Enum):
    """Coarse risk label; ordered by ``rank``, never by string value."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def max(cls, *levels: RiskLevel) -> RiskLevel:
        """Return the most severe of *levels* (LOW when none given)."""
        return max(levels, key=lambda lvl: lvl.rank, default=cls.LOW)


_RISK_RANK: dict[RiskLevel, int] = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
}


# ---------------------------------------------------------------------------
# Violations and per-file results
# ---------------------------------------------------------------------------


class Violation(BaseModel):
    """A single rule-check failure on a specific file/line.

    ``line`` is 1-based; 0 means the violation concerns the whole file.
    """

    model_config = _FROZEN

    file: str
    line: int = Field(0, ge=0)
    kind: ViolationKind
    category: str
    message: str
    standard: str
    severity: Severity

    def sort_key(self) -> tuple[str, int, str, str, str, str]:
        return (
            self.file,
            self.line,
            self.standard,
            self.category,
            self.kind.value,
            self.message,
        )


class CheckTally(BaseModel):
    """Checks run / failed for one standard."""

    model_config = _FROZEN

    total: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)


class FileTiming(BaseModel):
    """Telemetry for one processed file. Never feeds into scoring."""

    model_config = _FROZEN

    time_ms: float = Field(0.0, ge=0)
    size_bytes: int = Field(0, ge=0)
    success: bool = True


class FileResult(BaseModel):
    """Outcome of evaluating one file."""

    model_config = _FROZEN

    path: str
    violations: tuple[Violation, ...] = ()
    total_checks: int = Field(0, ge=0)
    passed_checks: int = Field(0, ge=0)
    standard_checks: dict[str, CheckTally] = Field(default_factory=dict)
    category_timings_ms: dict[str, float] = Field(default_factory=dict)
    duration_ms: float = Field(0.0, ge=0)
    size_bytes: int = Field(0, ge=0)
    success: bool = True
    error: str | None = None

    @model_validator(mode="after")
    def _passed_within_total(self) -> FileResult:
        if self.passed_checks > self.total_checks:
            raise ValueError("passed_checks cannot exceed total_checks")
        return self


class RunResult(BaseModel):
    """Aggregate of one full scan. Read-only once the aggregator returns."""

    model_config = _FROZEN

    violations: tuple[Violation, ...] = ()
    total_checks: int = Field(0, ge=0)
    passed_checks: int = Field(0, ge=0)
    compliance_score: float = Field(100.0, ge=0, le=100)
    duration_ms: float = Field(0.0, ge=0)
    file_timings: dict[str, FileTiming] = Field(default_factory=dict)
    files_processed: int = Field(0, ge=0)
    files_failed: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _passed_within_total(self) -> RunResult:
        if self.passed_checks > self.total_checks:
            raise ValueError("passed_checks cannot exceed total_checks")
        return self

    def count(self, kind: ViolationKind) -> int:
        return sum(1 for v in self.violations if v.kind is kind)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class CategoryCounts(BaseModel):
    """Violation counts per kind within one category."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    CRITICAL: int = Field(0, ge=0)
    WARNING: int = Field(0, ge=0)
    ERROR: int = Field(0, ge=0)


class StandardEffectiveness(BaseModel):
    model_config = _CAMEL

    total_checks: int = Field(0, ge=0)
    violations: int = Field(0, ge=0)
    effectiveness: float = Field(0.0, ge=0, le=100)


class HistoryMetrics(BaseModel):
    """Per-run telemetry snapshot stored alongside the score."""

    model_config = _CAMEL

    execution_time_ms: float = Field(0.0, ge=0, alias="executionTime")
    average_file_processing_ms: float = Field(
        0.0, ge=0, alias="averageFileProcessingTime"
    )
    violation_categories: dict[str, CategoryCounts] = Field(default_factory=dict)
    standards_effectiveness: dict[str, StandardEffectiveness] = Field(
        default_factory=dict
    )
    files_processed: int = Field(0, ge=0)


class DataIntegrity(BaseModel):
    model_config = _CAMEL

    checksum: str
    version: str = SCHEMA_VERSION
    validated: bool = True


class HistoryEntry(BaseModel):
    """One persisted snapshot of a run's score and violation breakdown."""

    model_config = _CAMEL

    timestamp: str
    run_id: str = Field(..., min_length=1)
    compliance_score: float = Field(..., ge=0, le=100)
    total_checks: int = Field(..., ge=0)
    passed_checks: int = Field(..., ge=0)
    violations: int = Field(..., ge=0)
    critical_violations: int = Field(..., ge=0)
    warnings: int = Field(..., ge=0)
    metrics: HistoryMetrics = Field(default_factory=HistoryMetrics)
    data_integrity: DataIntegrity | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> HistoryEntry:
        if not TIMESTAMP_RE.match(self.timestamp):
            raise ValueError(f"invalid timestamp format: {self.timestamp!r}")
        if self.passed_checks > self.total_checks:
            raise ValueError("passedChecks cannot exceed totalChecks")
        return self

    def to_json_dict(self) -> dict[str, Any]:
        """Serialise with the on-disk (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Performance baselines
# ---------------------------------------------------------------------------


class BaselineMetrics(BaseModel):
    model_config = _CAMEL

    avg: float = Field(0.0, ge=0)
    max: float = Field(0.0, ge=0)
    min: float = Field(0.0, ge=0)


class FileProcessingBaselines(BaseModel):
    model_config = _CAMEL

    small: BaselineMetrics = BaselineMetrics(avg=50, max=100, min=10)
    medium: BaselineMetrics = BaselineMetrics(avg=200, max=500, min=100)
    large: BaselineMetrics = BaselineMetrics(avg=1000, max=2000, min=500)


class ValidationBaselines(BaseModel):
    model_config = _CAMEL

    code_style: BaselineMetrics = BaselineMetrics(avg=10, max=50, min=5)
    security: BaselineMetrics = BaselineMetrics(avg=20, max=100, min=10)
    architecture: BaselineMetrics = BaselineMetrics(avg=15, max=75, min=5)
    testing: BaselineMetrics = BaselineMetrics(avg=25, max=125, min=10)
    documentation: BaselineMetrics = BaselineMetrics(avg=10, max=50, min=5)


class OverallBaselines(BaseModel):
    model_config = _CAMEL

    execution_time: BaselineMetrics = BaselineMetrics(avg=5000, max=15000, min=1000)
    memory_usage: BaselineMetrics = BaselineMetrics(avg=50, max=200, min=10)


class PerformanceBaselines(BaseModel):
    """Expected durations (ms) used only to classify run performance."""

    model_config = _CAMEL

    file_processing: FileProcessingBaselines = FileProcessingBaselines()
    validation: ValidationBaselines = ValidationBaselines()
    overall: OverallBaselines = OverallBaselines()


__all__ = [
    "BaselineMetrics",
    "CategoryCounts",
    "CheckTally",
    "DataIntegrity",
    "FileProcessingBaselines",
    "FileResult",
    "FileTiming",
    "HistoryEntry",
    "HistoryMetrics",
    "OverallBaselines",
    "PerformanceBaselines",
    "RiskLevel",
    "RunResult",
    "SCHEMA_VERSION",
    "Severity",
    "StandardEffectiveness",
    "TIMESTAMP_RE",
    "ValidationBaselines",
    "Violation",
    "ViolationKind",
]
