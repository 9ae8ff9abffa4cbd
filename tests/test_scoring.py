"""Tests for the score aggregator."""

import itertools
import random

import pytest

from compliance_guard.contracts import CheckTally, FileResult, Severity, ViolationKind
from compliance_guard.scoring import (
    Penalties,
    RunMetrics,
    aggregate,
    breakdown,
    compute_score,
)


class TestComputeScore:
    def test_empty_is_100(self):
        assert compute_score([]) == 100

    def test_penalties_per_kind(self, make_violation):
        assert compute_score([make_violation(ViolationKind.WARNING)]) == 98
        assert compute_score([make_violation(ViolationKind.CRITICAL)]) == 90
        assert compute_score([make_violation(ViolationKind.ERROR)]) == 90

    def test_clamped_at_zero(self, make_violation):
        many = [make_violation(ViolationKind.CRITICAL, line=i + 1) for i in range(50)]
        assert compute_score(many) == 0

    def test_permutation_invariant(self, make_violation):
        violations = [
            make_violation(ViolationKind.WARNING, line=1),
            make_violation(ViolationKind.CRITICAL, line=2),
            make_violation(ViolationKind.ERROR, line=3),
            make_violation(ViolationKind.WARNING, line=4),
        ]
        scores = {compute_score(p) for p in itertools.permutations(violations)}
        assert scores == {100 - 2 - 10 - 10 - 2}

    def test_non_increasing_as_violations_added(self, make_violation):
        rng = random.Random(7)
        kinds = list(ViolationKind)
        violations = []
        previous = compute_score(violations)
        for i in range(30):
            violations.append(make_violation(rng.choice(kinds), line=i + 1))
            current = compute_score(violations)
            assert current <= previous
            assert 0 <= current <= 100
            previous = current

    def test_custom_penalties(self, make_violation):
        penalties = Penalties(critical=25, error=5, warning=1)
        v = [make_violation(ViolationKind.CRITICAL), make_violation(ViolationKind.ERROR)]
        assert compute_score(v, penalties) == 70

    def test_penalties_from_settings(self, monkeypatch):
        monkeypatch.setattr("compliance_guard.config.settings.PENALTY_WARNING", 5)
        assert Penalties.from_settings().warning == 5


class TestBreakdown:
    def test_counts(self, make_violation):
        view = breakdown([
            make_violation(ViolationKind.WARNING, category="CODE_STYLE"),
            make_violation(ViolationKind.CRITICAL, category="SECURITY",
                           standard="security-compliance", severity=Severity.HIGH),
            make_violation(ViolationKind.WARNING, category="CODE_STYLE", line=2),
        ])
        assert view.by_category["CODE_STYLE"].WARNING == 2
        assert view.by_category["SECURITY"].CRITICAL == 1
        assert view.by_severity == {"HIGH": 1, "LOW": 2}
        assert view.by_standard == {"code-style": 2, "security-compliance": 1}
        assert view.by_kind == {"CRITICAL": 1, "WARNING": 2}

    def test_partition_independent(self, make_violation):
        violations = [
            make_violation(kind, line=i + 1, category=cat)
            for i, (kind, cat) in enumerate(
                itertools.product(ViolationKind, ["A", "B", "C"])
            )
        ]
        whole = breakdown(violations).to_dict()
        reversed_view = breakdown(list(reversed(violations))).to_dict()
        assert whole == reversed_view

    def test_to_dict_shape(self, make_violation):
        d = breakdown([make_violation()]).to_dict()
        assert d["byCategory"]["CODE_STYLE"] == {"CRITICAL": 0, "WARNING": 1, "ERROR": 0}


def _file(path, violations=(), total=2, passed=None, **kw):
    passed = total - len(violations) if passed is None else passed
    return FileResult(
        path=path,
        violations=tuple(violations),
        total_checks=total,
        passed_checks=max(0, passed),
        **kw,
    )


class TestAggregate:
    def test_reduces_files(self, make_violation):
        results = [
            _file("b.md", [make_violation(file="b.md")], duration_ms=3.0, size_bytes=10),
            _file("a.md", duration_ms=1.0, size_bytes=20),
        ]
        run = aggregate(results, duration_ms=12.5)
        assert run.total_checks == 4
        assert run.passed_checks == 3
        assert run.compliance_score == 98
        assert run.files_processed == 2
        assert run.duration_ms == 12.5
        assert run.file_timings["a.md"].size_bytes == 20

    def test_order_independent(self, make_violation):
        results = [
            _file(f"f{i}.py", [make_violation(file=f"f{i}.py", line=j + 1) for j in range(i)],
                  total=5)
            for i in range(5)
        ]
        forward = aggregate(results)
        backward = aggregate(list(reversed(results)))
        assert forward == backward

    def test_counts_failed_files(self, make_violation):
        failed = _file(
            "x.md",
            [make_violation(ViolationKind.ERROR, file="x.md", line=0)],
            total=1,
            success=False,
            error="boom",
        )
        run = aggregate([failed])
        assert run.files_failed == 1
        assert run.compliance_score == 90

    def test_records_metrics(self, make_violation):
        metrics = RunMetrics()
        results = [
            _file(
                "a.py",
                [make_violation(file="a.py")],
                duration_ms=4.0,
                category_timings_ms={"CODE_STYLE": 0.5},
                standard_checks={"code-style": CheckTally(total=2, failed=1)},
            ),
        ]
        aggregate(results, metrics=metrics)
        assert metrics.files_processed == 1
        assert metrics.average_file_ms == pytest.approx(4.0)
        assert metrics.validation_timings_ms == {"CODE_STYLE": [0.5]}
        eff = metrics.standards_effectiveness()["code-style"]
        assert eff.total_checks == 2
        assert eff.violations == 1
        assert eff.effectiveness == 50.0


class TestRunMetrics:
    def test_merge_combines_disjoint_runs(self, make_violation):
        left, right = RunMetrics(), RunMetrics()
        left.record_file(_file(
            "a.py", [make_violation(file="a.py")], duration_ms=2.0,
            standard_checks={"code-style": CheckTally(total=3, failed=1)},
            category_timings_ms={"CODE_STYLE": 1.0},
        ))
        right.record_file(_file(
            "b.py", duration_ms=4.0,
            standard_checks={"code-style": CheckTally(total=3, failed=0)},
            category_timings_ms={"CODE_STYLE": 2.0},
        ))
        merged = left.merge(right)
        assert merged.files_processed == 2
        assert merged.average_file_ms == pytest.approx(3.0)
        assert merged.standard_checks == {"code-style": [6, 1]}
        assert merged.validation_timings_ms == {"CODE_STYLE": [1.0, 2.0]}
        # inputs untouched
        assert left.standard_checks == {"code-style": [3, 1]}

    def test_empty_metrics(self):
        metrics = RunMetrics()
        assert metrics.average_file_ms == 0.0
        assert metrics.standards_effectiveness() == {}
