"""Compliance guard -- rule evaluation, scoring and history trends.

Public API
----------
Pipeline::

    run_compliance_check, ComplianceRun

Contracts (Pydantic models)::

    Violation, ViolationKind, Severity, RiskLevel,
    FileResult, RunResult, HistoryEntry, HistoryMetrics,
    PerformanceBaselines

Rules::

    RuleSet, RuleEvaluator, Document, ContentProfile,
    ForbiddenPatternRule, RequiredPatternRule, LineLengthRule,
    MinWordCountRule, RequiredHeadingRule, NamingRule

Processing & scoring::

    SourceFile, FileProcessor, ConcurrencyLimiter,
    Penalties, RunMetrics, aggregate, compute_score, breakdown

Persistence::

    HistoryStore, HistoryLoad, build_entry, validate_entry,
    compute_checksum, BaselineStore

Statistics::

    assess_risk, RiskAssessment, predict_compliance_score,
    detect_outliers, linear_trend, standard_deviation, correlation

Errors::

    ComplianceError, ValidationError, FileProcessingError,
    AnalyticsError, ConfigurationError, ErrorCode
"""

from compliance_guard.baselines import BaselineStore
from compliance_guard.config import VERSION
from compliance_guard.contracts import (
    FileResult,
    HistoryEntry,
    HistoryMetrics,
    PerformanceBaselines,
    RiskLevel,
    RunResult,
    Severity,
    Violation,
    ViolationKind,
)
from compliance_guard.errors import (
    AnalyticsError,
    ComplianceError,
    ConfigurationError,
    ErrorCode,
    FileProcessingError,
    ValidationError,
)
from compliance_guard.history import (
    HistoryLoad,
    HistoryStore,
    build_entry,
    compute_checksum,
    validate_entry,
)
from compliance_guard.limiter import ConcurrencyLimiter
from compliance_guard.pipeline import ComplianceRun, run_compliance_check
from compliance_guard.processor import FileProcessor, SourceFile
from compliance_guard.rules import (
    ContentProfile,
    Document,
    ForbiddenPatternRule,
    LineLengthRule,
    MinWordCountRule,
    NamingRule,
    RequiredHeadingRule,
    RequiredPatternRule,
    RuleEvaluator,
    RuleSet,
)
from compliance_guard.scoring import (
    Penalties,
    RunMetrics,
    aggregate,
    breakdown,
    compute_score,
)
from compliance_guard.trends import (
    RiskAssessment,
    assess_risk,
    correlation,
    detect_outliers,
    linear_trend,
    predict_compliance_score,
    standard_deviation,
)

__version__ = VERSION

__all__ = [
    # pipeline
    "ComplianceRun",
    "run_compliance_check",
    # contracts
    "FileResult",
    "HistoryEntry",
    "HistoryMetrics",
    "PerformanceBaselines",
    "RiskLevel",
    "RunResult",
    "Severity",
    "Violation",
    "ViolationKind",
    # rules
    "ContentProfile",
    "Document",
    "ForbiddenPatternRule",
    "LineLengthRule",
    "MinWordCountRule",
    "NamingRule",
    "RequiredHeadingRule",
    "RequiredPatternRule",
    "RuleEvaluator",
    "RuleSet",
    # processing & scoring
    "ConcurrencyLimiter",
    "FileProcessor",
    "Penalties",
    "RunMetrics",
    "SourceFile",
    "aggregate",
    "breakdown",
    "compute_score",
    # persistence
    "BaselineStore",
    "HistoryLoad",
    "HistoryStore",
    "build_entry",
    "compute_checksum",
    "validate_entry",
    # statistics
    "RiskAssessment",
    "assess_risk",
    "correlation",
    "detect_outliers",
    "linear_trend",
    "predict_compliance_score",
    "standard_deviation",
    # errors
    "AnalyticsError",
    "ComplianceError",
    "ConfigurationError",
    "ErrorCode",
    "FileProcessingError",
    "ValidationError",
]
