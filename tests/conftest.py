"""Shared test fixtures.

Provides:
- ``set_test_config`` -- autouse fixture pinning settings to defaults
- ``make_violation`` -- factory for ``Violation`` objects
- ``make_entry`` -- factory for checksummed ``HistoryEntry`` objects
- ``history_path`` -- a history file location under ``tmp_path``
"""

from datetime import datetime, timedelta, timezone

import pytest

from compliance_guard.contracts import (
    RunResult,
    Severity,
    Violation,
    ViolationKind,
)
from compliance_guard.history import build_entry

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Environment patching
# ---------------------------------------------------------------------------

_SETTINGS_PATCHES: dict[str, object] = {
    "compliance_guard.config.settings.MAX_WORKERS": 4,
    "compliance_guard.config.settings.FILE_TIMEOUT_SECONDS": 30.0,
    "compliance_guard.config.settings.MAX_FILE_BYTES": 10 * 1024 * 1024,
    "compliance_guard.config.settings.HISTORY_RETENTION": 30,
    "compliance_guard.config.settings.PENALTY_CRITICAL": 10,
    "compliance_guard.config.settings.PENALTY_ERROR": 10,
    "compliance_guard.config.settings.PENALTY_WARNING": 2,
    "compliance_guard.config.settings.PASS_THRESHOLD": 85.0,
    "compliance_guard.config.settings.LOG_FILE": "",
}


@pytest.fixture(autouse=True)
def set_test_config(monkeypatch, tmp_path):
    """Deterministic settings; persisted state always lands in tmp_path."""
    for target, value in _SETTINGS_PATCHES.items():
        monkeypatch.setattr(target, value)
    monkeypatch.setattr(
        "compliance_guard.config.settings.HISTORY_PATH",
        str(tmp_path / "reports" / "compliance-history.json"),
    )
    monkeypatch.setattr(
        "compliance_guard.config.settings.BASELINES_PATH",
        str(tmp_path / "reports" / "performance-baselines.json"),
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_violation():
    def _make(
        kind: ViolationKind = ViolationKind.WARNING,
        *,
        file: str = "src/app.py",
        line: int = 1,
        category: str = "CODE_STYLE",
        standard: str = "code-style",
        severity: Severity = Severity.LOW,
        message: str = "Line exceeds character limit",
    ) -> Violation:
        return Violation(
            file=file,
            line=line,
            kind=kind,
            category=category,
            message=message,
            standard=standard,
            severity=severity,
        )

    return _make


@pytest.fixture
def make_entry():
    """Build the *index*-th history entry of a sequence, one minute apart."""

    def _make(score: float, index: int = 0, *, violations: int = 0):
        run = RunResult(
            violations=tuple(
                Violation(
                    file=f"f{i}.py",
                    line=i + 1,
                    kind=ViolationKind.WARNING,
                    category="CODE_STYLE",
                    message="m",
                    standard="code-style",
                    severity=Severity.LOW,
                )
                for i in range(violations)
            ),
            total_checks=10,
            passed_checks=10 - min(violations, 10),
            compliance_score=score,
            duration_ms=5.0,
            files_processed=1,
        )
        return build_entry(
            run, now=BASE_TIME + timedelta(minutes=index), run_id=f"run_test_{index:03d}"
        )

    return _make


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "reports" / "compliance-history.json"
