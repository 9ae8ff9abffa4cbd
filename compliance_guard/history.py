"""History store -- bounded, append-only, checksum-verified run log.

The backing file is a JSON array of ``HistoryEntry`` objects (camelCase
keys), oldest first, never longer than the retention limit.

Write path: ``append`` re-validates the entry (structure, bounds,
timestamp format, checksum), refuses duplicates and out-of-order
timestamps, then atomically replaces the file with the retained tail.
A rejected append raises ``AnalyticsError`` naming the failed invariant
and leaves the file untouched.

Read path: ``load`` skips individually malformed entries and reports
how many it discarded instead of failing the whole load.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from compliance_guard.config import settings
from compliance_guard.contracts import (
    TIMESTAMP_RE,
    DataIntegrity,
    HistoryEntry,
    HistoryMetrics,
    RunResult,
    ViolationKind,
)
from compliance_guard.errors import AnalyticsError, ErrorCode, FileProcessingError
from compliance_guard.scoring import RunMetrics
from compliance_guard.storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "timestamp",
    "runId",
    "complianceScore",
    "totalChecks",
    "passedChecks",
    "violations",
    "criticalViolations",
    "warnings",
)


# ---------------------------------------------------------------------------
# Checksums + timestamps
# ---------------------------------------------------------------------------


def compute_checksum(entry: HistoryEntry) -> str:
    """64-bit BLAKE2b fingerprint of the entry minus its integrity block.

    Detects accidental corruption of a stored entry; not a security
    boundary.
    """
    payload = entry.model_dump(mode="json", by_alias=True, exclude={"data_integrity"})
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.blake2b(canonical.encode("utf-8"), digest_size=8).hexdigest()


def format_timestamp(moment: datetime) -> str:
    """``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def new_run_id(moment: datetime) -> str:
    return f"run_{int(moment.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


# ---------------------------------------------------------------------------
# Entry construction + validation
# ---------------------------------------------------------------------------


def build_entry(
    run_result: RunResult,
    metrics: RunMetrics | HistoryMetrics | None = None,
    *,
    run_id: str | None = None,
    now: datetime | None = None,
) -> HistoryEntry:
    """Snapshot *run_result* as a checksummed ``HistoryEntry``."""
    moment = now or datetime.now(timezone.utc)
    if isinstance(metrics, RunMetrics):
        snapshot = metrics.to_history_metrics(run_result)
    elif metrics is None:
        snapshot = RunMetrics().to_history_metrics(run_result)
    else:
        snapshot = metrics

    entry = HistoryEntry(
        timestamp=format_timestamp(moment),
        run_id=run_id or new_run_id(moment),
        compliance_score=run_result.compliance_score,
        total_checks=run_result.total_checks,
        passed_checks=run_result.passed_checks,
        violations=len(run_result.violations),
        critical_violations=run_result.count(ViolationKind.CRITICAL),
        warnings=run_result.count(ViolationKind.WARNING),
        metrics=snapshot,
    )
    return entry.model_copy(
        update={"data_integrity": DataIntegrity(checksum=compute_checksum(entry))}
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_entry(raw: Any) -> tuple[HistoryEntry | None, list[str]]:
    if not isinstance(raw, Mapping):
        return None, ["structure"]

    failures: list[str] = []
    if any(raw.get(key) is None for key in REQUIRED_FIELDS):
        failures.append("required_fields")

    score = raw.get("complianceScore")
    if score is not None and not (_is_number(score) and 0 <= score <= 100):
        failures.append("score_range")

    counts = [raw.get(k) for k in ("totalChecks", "passedChecks", "violations",
                                   "criticalViolations", "warnings")]
    if any(c is not None and not (_is_number(c) and c >= 0) for c in counts):
        failures.append("non_negative_checks")
    elif counts[0] is not None and counts[1] is not None and counts[1] > counts[0]:
        failures.append("passed_within_total")

    stamp = raw.get("timestamp")
    if stamp is not None and not (isinstance(stamp, str) and TIMESTAMP_RE.match(stamp)):
        failures.append("timestamp_format")

    if failures:
        return None, failures

    try:
        entry = HistoryEntry.model_validate(raw)
    except PydanticValidationError:
        return None, ["schema"]

    integrity = entry.data_integrity
    if integrity is None or integrity.checksum != compute_checksum(entry):
        return None, ["checksum"]
    return entry, []


def validate_entry(raw: Any) -> list[str]:
    """Names of the invariants *raw* breaks; empty when it is valid."""
    return _parse_entry(raw)[1]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryLoad:
    entries: tuple[HistoryEntry, ...] = ()
    discarded: int = 0


class HistoryStore:
    """JSON-file-backed history with bounded retention.

    Single writer per process; the atomic rename protects against a crash
    mid-write, not against concurrent writers.
    """

    def __init__(self, path: str | Path | None = None, retention: int | None = None) -> None:
        self.path = Path(path if path is not None else settings.HISTORY_PATH)
        self.retention = retention if retention is not None else settings.HISTORY_RETENTION
        if self.retention < 1:
            raise ValueError("retention must be >= 1")

    def load(self) -> HistoryLoad:
        """Valid entries in file order plus the count of discarded ones.

        A missing file is empty history.  An unreadable file, or one that is
        not a JSON array, raises ``AnalyticsError``.
        """
        try:
            raw = read_json(self.path)
        except FileProcessingError as exc:
            raise AnalyticsError(
                f"History file {self.path} could not be read: {exc}",
                invariant="read",
                code=ErrorCode.FILE_READ_ERROR,
            ) from exc
        except ValueError as exc:
            raise AnalyticsError(
                f"History file {self.path} is not valid JSON: {exc}",
                invariant="parse",
            ) from exc
        if raw is None:
            return HistoryLoad()
        if not isinstance(raw, list):
            raise AnalyticsError(
                f"History file {self.path} must hold a JSON array",
                invariant="structure",
            )

        entries: list[HistoryEntry] = []
        discarded = 0
        for idx, item in enumerate(raw):
            entry, failures = _parse_entry(item)
            if entry is None:
                discarded += 1
                logger.debug("History entry #%d discarded: %s", idx, ", ".join(failures))
                continue
            entries.append(entry)

        if discarded:
            logger.warning(
                "Discarded %d malformed history entries from %s", discarded, self.path
            )
        return HistoryLoad(entries=tuple(entries), discarded=discarded)

    def append(self, entry: HistoryEntry) -> tuple[HistoryEntry, ...]:
        """Validate and persist *entry*; return the retained history."""
        failures = validate_entry(entry.to_json_dict())
        if failures:
            logger.warning(
                "Rejected history entry %s: %s", entry.run_id, ", ".join(failures)
            )
            raise AnalyticsError(
                f"History entry {entry.run_id} rejected: {', '.join(failures)}",
                invariant=failures[0],
            )

        current = self.load().entries
        if any(e.run_id == entry.run_id for e in current):
            raise AnalyticsError(
                f"Duplicate run id {entry.run_id}", invariant="unique_run_id"
            )
        if current and entry.timestamp < current[-1].timestamp:
            raise AnalyticsError(
                f"Entry {entry.run_id} is older than the newest stored entry",
                invariant="chronological_order",
            )

        retained = (*current, entry)[-self.retention:]
        dropped = len(current) + 1 - len(retained)
        self._write(retained)
        logger.info(
            "Recorded %s (score %.1f); %d entries retained, %d dropped",
            entry.run_id, entry.compliance_score, len(retained), dropped,
        )
        return retained

    def save(self, entries: Iterable[HistoryEntry]) -> tuple[HistoryEntry, ...]:
        """Replace the whole history with *entries* (validated, tail-retained)."""
        entries = tuple(entries)
        for entry in entries:
            failures = validate_entry(entry.to_json_dict())
            if failures:
                raise AnalyticsError(
                    f"History entry {entry.run_id} rejected: {', '.join(failures)}",
                    invariant=failures[0],
                )
        retained = entries[-self.retention:]
        self._write(retained)
        return retained

    def record(
        self,
        run_result: RunResult,
        metrics: RunMetrics | HistoryMetrics | None = None,
        *,
        now: datetime | None = None,
    ) -> HistoryEntry:
        entry = build_entry(run_result, metrics, now=now)
        self.append(entry)
        return entry

    def _write(self, entries: tuple[HistoryEntry, ...]) -> None:
        try:
            atomic_write_json(self.path, [e.to_json_dict() for e in entries])
        except FileProcessingError as exc:
            raise AnalyticsError(
                f"Failed to persist history: {exc}",
                invariant="atomic_write",
                code=ErrorCode.FILE_WRITE_ERROR,
            ) from exc


__all__ = [
    "HistoryLoad",
    "HistoryStore",
    "REQUIRED_FIELDS",
    "build_entry",
    "compute_checksum",
    "format_timestamp",
    "new_run_id",
    "validate_entry",
]
