"""Compliance error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for serialisation into JSON reports,
and has a readable ``__str__`` for logging.
"""

from __future__ import annotations

import enum


class ErrorCode(str, enum.Enum):
    """Machine-readable failure codes shared by every error class."""

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    MALFORMED_CONTENT = "MALFORMED_CONTENT"

    # File processing
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"

    # Analytics / persistence integrity
    DATA_CORRUPTION = "DATA_CORRUPTION"
    INVALID_METRICS = "INVALID_METRICS"
    BASELINE_ERROR = "BASELINE_ERROR"

    # Configuration / standards
    MISSING_CONFIG = "MISSING_CONFIG"
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_STANDARD = "INVALID_STANDARD"


class ComplianceError(Exception):
    """Base error for all compliance engine failures."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        detail: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            **self.detail,
        }

    def __str__(self) -> str:
        return self.message


class ValidationError(ComplianceError):
    """A file's content could not be evaluated against the rules."""

    def __init__(
        self,
        message: str,
        *,
        file: str,
        code: ErrorCode = ErrorCode.MALFORMED_CONTENT,
    ) -> None:
        self.file = file
        super().__init__(message, code=code, detail={"file": file})


class FileProcessingError(ComplianceError):
    """Reading a source file failed (missing, unreadable, oversized)."""

    def __init__(
        self,
        message: str,
        *,
        file: str,
        code: ErrorCode = ErrorCode.FILE_READ_ERROR,
    ) -> None:
        self.file = file
        super().__init__(message, code=code, detail={"file": file})


class AnalyticsError(ComplianceError):
    """Metric computation or history persistence broke an invariant.

    ``invariant`` names the specific check that failed (e.g.
    ``"score_range"`` or ``"checksum"``) so callers can report it.
    """

    def __init__(
        self,
        message: str,
        *,
        invariant: str | None = None,
        code: ErrorCode = ErrorCode.DATA_CORRUPTION,
    ) -> None:
        self.invariant = invariant
        detail: dict = {}
        if invariant:
            detail["invariant"] = invariant
        super().__init__(message, code=code, detail=detail)


class ConfigurationError(ComplianceError):
    """Standards or rule configuration is malformed."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        code: ErrorCode = ErrorCode.INVALID_CONFIG,
    ) -> None:
        self.source = source
        detail: dict = {}
        if source:
            detail["source"] = source
        super().__init__(message, code=code, detail=detail)


__all__ = [
    "AnalyticsError",
    "ComplianceError",
    "ConfigurationError",
    "ErrorCode",
    "FileProcessingError",
    "ValidationError",
]
