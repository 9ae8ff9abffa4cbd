"""Tests for the history store -- validation, retention, atomic writes."""

import json
from datetime import datetime, timezone

import pytest

from compliance_guard.contracts import RunResult, ViolationKind
from compliance_guard.errors import AnalyticsError, ErrorCode
from compliance_guard.history import (
    HistoryStore,
    build_entry,
    compute_checksum,
    format_timestamp,
    validate_entry,
)
from compliance_guard.scoring import RunMetrics


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------


class TestBuildEntry:
    def test_fields_from_run(self, make_violation):
        run = RunResult(
            violations=(
                make_violation(ViolationKind.CRITICAL, line=1),
                make_violation(ViolationKind.WARNING, line=2),
                make_violation(ViolationKind.WARNING, line=3),
            ),
            total_checks=10,
            passed_checks=7,
            compliance_score=86,
            duration_ms=42.0,
            files_processed=3,
        )
        now = datetime(2026, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
        entry = build_entry(run, RunMetrics(), now=now)

        assert entry.timestamp == "2026-03-04T05:06:07.891Z"
        assert entry.run_id.startswith(f"run_{int(now.timestamp() * 1000)}_")
        assert entry.violations == 3
        assert entry.critical_violations == 1
        assert entry.warnings == 2
        assert entry.metrics.execution_time_ms == 42.0
        assert entry.metrics.violation_categories["CODE_STYLE"].WARNING == 2
        assert entry.data_integrity.checksum == compute_checksum(entry)
        assert entry.data_integrity.version == "1.0"

    def test_camel_case_on_disk(self, make_entry):
        data = make_entry(90).to_json_dict()
        assert {"runId", "complianceScore", "totalChecks", "passedChecks",
                "criticalViolations", "dataIntegrity"} <= set(data)
        assert "executionTime" in data["metrics"]
        assert "averageFileProcessingTime" in data["metrics"]

    def test_checksum_is_deterministic(self, make_entry):
        assert compute_checksum(make_entry(90)) == compute_checksum(make_entry(90))
        assert compute_checksum(make_entry(90)) != compute_checksum(make_entry(91))

    def test_naive_datetime_treated_as_utc(self):
        assert format_timestamp(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000Z"


# ---------------------------------------------------------------------------
# validate_entry
# ---------------------------------------------------------------------------


class TestValidateEntry:
    def test_valid(self, make_entry):
        assert validate_entry(make_entry(90).to_json_dict()) == []

    def test_not_a_mapping(self):
        assert validate_entry([1, 2]) == ["structure"]

    def test_missing_fields(self, make_entry):
        raw = make_entry(90).to_json_dict()
        del raw["runId"]
        assert "required_fields" in validate_entry(raw)

    def test_score_out_of_range(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["complianceScore"] = 150
        assert validate_entry(raw)[0] == "score_range"

    def test_negative_checks(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["totalChecks"] = -1
        assert "non_negative_checks" in validate_entry(raw)

    def test_passed_exceeds_total(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["passedChecks"] = 11
        assert validate_entry(raw) == ["passed_within_total"]

    def test_bad_timestamp(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["timestamp"] = "2026-01-01 12:00:00"
        assert validate_entry(raw) == ["timestamp_format"]

    def test_checksum_mismatch(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["warnings"] = 7
        assert validate_entry(raw) == ["checksum"]

    def test_missing_integrity_block(self, make_entry):
        raw = make_entry(90).to_json_dict()
        del raw["dataIntegrity"]
        assert validate_entry(raw) == ["checksum"]

    def test_unknown_fields_ignored(self, make_entry):
        raw = make_entry(90).to_json_dict()
        raw["legacyField"] = {"anything": True}
        assert validate_entry(raw) == []


# ---------------------------------------------------------------------------
# HistoryStore
# ---------------------------------------------------------------------------


class TestHistoryStore:
    def test_missing_file_is_empty(self, history_path):
        loaded = HistoryStore(history_path).load()
        assert loaded.entries == ()
        assert loaded.discarded == 0

    def test_defaults_from_settings(self, history_path):
        store = HistoryStore()
        assert store.path == history_path
        assert store.retention == 30

    def test_round_trip(self, history_path, make_entry):
        entries = [make_entry(80 + i, i) for i in range(5)]
        store = HistoryStore(history_path)
        store.save(entries)
        assert store.load().entries == tuple(entries)

    def test_append_keeps_last_30_in_order(self, history_path, make_entry):
        store = HistoryStore(history_path)
        entries = [make_entry(50 + i, i) for i in range(31)]
        for entry in entries:
            store.append(entry)

        loaded = store.load().entries
        assert len(loaded) == 30
        assert [e.run_id for e in loaded] == [e.run_id for e in entries[1:]]
        assert [e.compliance_score for e in loaded] == sorted(e.compliance_score for e in loaded)

    def test_invalid_score_rejected_file_unchanged(self, history_path, make_entry):
        store = HistoryStore(history_path)
        store.append(make_entry(90, 0))
        before = history_path.read_bytes()

        bad = make_entry(95, 1).model_copy(update={"compliance_score": 150})
        with pytest.raises(AnalyticsError) as exc_info:
            store.append(bad)

        assert exc_info.value.invariant == "score_range"
        assert history_path.read_bytes() == before
        assert not history_path.with_name(history_path.name + ".part").exists()

    def test_rejected_append_on_empty_store_writes_nothing(self, history_path, make_entry):
        bad = make_entry(95).model_copy(update={"compliance_score": 150})
        with pytest.raises(AnalyticsError):
            HistoryStore(history_path).append(bad)
        assert not history_path.exists()

    def test_duplicate_run_id_rejected(self, history_path, make_entry):
        store = HistoryStore(history_path)
        store.append(make_entry(90, 0))
        with pytest.raises(AnalyticsError) as exc_info:
            store.append(make_entry(90, 0))
        assert exc_info.value.invariant == "unique_run_id"

    def test_out_of_order_rejected(self, history_path, make_entry):
        store = HistoryStore(history_path)
        store.append(make_entry(90, 5))
        with pytest.raises(AnalyticsError) as exc_info:
            store.append(make_entry(90, 1))
        assert exc_info.value.invariant == "chronological_order"

    def test_load_discards_malformed_entries(self, history_path, make_entry, caplog):
        good = [make_entry(90, 0).to_json_dict(), make_entry(91, 1).to_json_dict()]
        tampered = make_entry(92, 2).to_json_dict()
        tampered["complianceScore"] = 12
        raw = [good[0], "garbage", tampered, {"runId": "x"}, good[1]]
        history_path.parent.mkdir(parents=True)
        history_path.write_text(json.dumps(raw), encoding="utf-8")

        with caplog.at_level("WARNING"):
            loaded = HistoryStore(history_path).load()

        assert [e.compliance_score for e in loaded.entries] == [90, 91]
        assert loaded.discarded == 3
        assert "Discarded 3 malformed history entries" in caplog.text

    def test_unparseable_file_raises(self, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(AnalyticsError) as exc_info:
            HistoryStore(history_path).load()
        assert exc_info.value.invariant == "parse"

    def test_unreadable_file_raises_analytics_error(self, history_path):
        history_path.mkdir(parents=True)
        with pytest.raises(AnalyticsError) as exc_info:
            HistoryStore(history_path).load()
        assert exc_info.value.invariant == "read"
        assert exc_info.value.code is ErrorCode.FILE_READ_ERROR

    def test_non_array_file_raises(self, history_path):
        history_path.parent.mkdir(parents=True)
        history_path.write_text('{"entries": []}', encoding="utf-8")
        with pytest.raises(AnalyticsError) as exc_info:
            HistoryStore(history_path).load()
        assert exc_info.value.invariant == "structure"

    def test_save_applies_retention(self, history_path, make_entry):
        store = HistoryStore(history_path, retention=3)
        store.save([make_entry(80 + i, i) for i in range(5)])
        assert [e.compliance_score for e in store.load().entries] == [82, 83, 84]

    def test_record_builds_and_appends(self, history_path):
        store = HistoryStore(history_path)
        entry = store.record(RunResult(compliance_score=97, total_checks=3, passed_checks=2))
        assert store.load().entries == (entry,)

    def test_rejects_zero_retention(self, history_path):
        with pytest.raises(ValueError):
            HistoryStore(history_path, retention=0)
