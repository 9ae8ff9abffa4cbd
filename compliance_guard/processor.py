"""Concurrent file processor.

Runs the rule evaluator over every source with bounded parallelism.
Each file's read and evaluation happen in a worker thread
(``asyncio.to_thread``) behind a ``ConcurrencyLimiter``; excess files
queue behind the bound.  A failure in one file becomes a single
ERROR-kind violation for that file and never cancels its siblings.

Results are returned sorted by path, so the caller sees the same output
whatever order the workers finished in.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

from compliance_guard.config import settings
from compliance_guard.contracts import (
    CheckTally,
    FileResult,
    Severity,
    Violation,
    ViolationKind,
)
from compliance_guard.errors import (
    ComplianceError,
    ErrorCode,
    FileProcessingError,
    ValidationError,
)
from compliance_guard.limiter import ConcurrencyLimiter
from compliance_guard.rules import FileEvaluation, RuleEvaluator

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
FILE_PROCESSING_ERROR = "FILE_PROCESSING_ERROR"
GENERAL_STANDARD = "GENERAL"


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def read_source(path: str | Path, max_bytes: int | None = None) -> bytes:
    """Read at most *max_bytes* (+1 to detect overflow) from *path*."""
    limit = max_bytes if max_bytes is not None else settings.MAX_FILE_BYTES
    target = Path(path)
    try:
        with open(target, "rb") as fh:
            data = fh.read(limit + 1)
    except FileNotFoundError as exc:
        raise FileProcessingError(
            f"File not found: {target}", file=str(target), code=ErrorCode.FILE_NOT_FOUND
        ) from exc
    except PermissionError as exc:
        raise FileProcessingError(
            f"Permission denied: {target}",
            file=str(target),
            code=ErrorCode.PERMISSION_DENIED,
        ) from exc
    except OSError as exc:
        raise FileProcessingError(
            f"Failed to read file: {exc}", file=str(target)
        ) from exc
    if len(data) > limit:
        raise FileProcessingError(
            f"File too large: exceeds {limit / 1024 / 1024:.2f}MB",
            file=str(target),
            code=ErrorCode.FILE_TOO_LARGE,
        )
    return data


@dataclass(frozen=True)
class SourceFile:
    """A (path, content) pair from the discovery collaborator.

    Either ``content`` is supplied up front or ``loader`` is a zero-argument
    callable that the worker invokes to fetch it.
    """

    path: str
    content: str | bytes | None = None
    loader: Callable[[], str | bytes] | None = None

    @classmethod
    def from_path(
        cls, file_path: Path, *, root: Path | None = None, max_bytes: int | None = None
    ) -> SourceFile:
        rel = file_path.relative_to(root) if root is not None else file_path
        return cls(path=rel.as_posix(), loader=partial(read_source, file_path, max_bytes))

    def load(self) -> str | bytes:
        if self.content is not None:
            return self.content
        if self.loader is None:
            raise FileProcessingError(
                "No content or loader supplied",
                file=self.path,
                code=ErrorCode.FILE_NOT_FOUND,
            )
        return self.loader()


def _byte_size(content: str | bytes) -> int:
    if isinstance(content, bytes):
        return len(content)
    return len(content.encode("utf-8", "replace"))


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


class FileProcessor:
    """Evaluate many files with at most ``max_workers`` in flight.

    The bound is soft after a timeout: the timed-out file gets its failure
    result and frees its limiter slot, but its worker thread cannot be
    cancelled and keeps running until the evaluation returns.
    """

    def __init__(
        self,
        evaluator: RuleEvaluator,
        *,
        max_workers: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._max_workers = max_workers if max_workers is not None else settings.MAX_WORKERS
        if self._max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if timeout_seconds is None:
            timeout_seconds = settings.FILE_TIMEOUT_SECONDS
        # 0 disables the per-file timeout
        self._timeout = timeout_seconds or None
        self.peak_concurrency = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def process(self, sources: Iterable[SourceFile]) -> list[FileResult]:
        unique: dict[str, SourceFile] = {}
        for src in sources:
            if src.path in unique:
                logger.warning("Duplicate source %s ignored", src.path)
                continue
            unique[src.path] = src

        limiter = ConcurrencyLimiter(self._max_workers)
        results = await asyncio.gather(
            *(self._process_one(src, limiter) for src in unique.values())
        )
        self.peak_concurrency = limiter.peak
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Processed %d files (%d failed, peak concurrency %d)",
            len(results), failed, limiter.peak,
        )
        return sorted(results, key=lambda r: r.path)

    def process_sync(self, sources: Iterable[SourceFile]) -> list[FileResult]:
        return asyncio.run(self.process(sources))

    # -- internals ----------------------------------------------------------

    def _evaluate(self, source: SourceFile) -> tuple[FileEvaluation, int]:
        content = source.load()
        return self._evaluator.evaluate(source.path, content), _byte_size(content)

    async def _process_one(
        self, source: SourceFile, limiter: ConcurrencyLimiter
    ) -> FileResult:
        async with limiter:
            started = time.perf_counter()
            try:
                work = asyncio.to_thread(self._evaluate, source)
                if self._timeout:
                    evaluation, size = await asyncio.wait_for(work, timeout=self._timeout)
                else:
                    evaluation, size = await work
            except asyncio.TimeoutError:
                err = FileProcessingError(
                    f"Timed out after {self._timeout:g}s",
                    file=source.path,
                    code=ErrorCode.TIMEOUT_ERROR,
                )
                return self._failure(source.path, FILE_PROCESSING_ERROR, err, started)
            except ValidationError as exc:
                return self._failure(source.path, VALIDATION_ERROR, exc, started)
            except ComplianceError as exc:
                return self._failure(source.path, FILE_PROCESSING_ERROR, exc, started)
            except Exception as exc:
                logger.exception("Unexpected failure evaluating %s", source.path)
                return self._failure(source.path, FILE_PROCESSING_ERROR, exc, started)

            elapsed_ms = (time.perf_counter() - started) * 1000
            return FileResult(
                path=source.path,
                violations=evaluation.violations,
                total_checks=evaluation.total_checks,
                passed_checks=evaluation.passed_checks,
                standard_checks=evaluation.standard_checks,
                category_timings_ms=evaluation.category_timings_ms,
                duration_ms=elapsed_ms,
                size_bytes=size,
            )

    @staticmethod
    def _failure(
        path: str, category: str, exc: Exception, started: float
    ) -> FileResult:
        if category == VALIDATION_ERROR:
            message = f"Validation failed: {exc}"
        else:
            message = f"File processing failed: {exc}"
        logger.warning("%s: %s", path, message)
        violation = Violation(
            file=path,
            line=0,
            kind=ViolationKind.ERROR,
            category=category,
            message=message,
            standard=GENERAL_STANDARD,
            severity=Severity.CRITICAL,
        )
        return FileResult(
            path=path,
            violations=(violation,),
            total_checks=1,
            passed_checks=0,
            standard_checks={GENERAL_STANDARD: CheckTally(total=1, failed=1)},
            duration_ms=(time.perf_counter() - started) * 1000,
            success=False,
            error=str(exc),
        )


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


def processing_stats(results: Iterable[FileResult]) -> dict[str, Any]:
    """Summarise a batch of file results (counts, timings, extensions)."""
    results = list(results)
    if not results:
        return {
            "totalFiles": 0,
            "successfulFiles": 0,
            "failedFiles": 0,
            "totalProcessingTime": 0.0,
            "averageProcessingTime": 0.0,
            "slowestFile": None,
            "fileTypes": {},
        }

    total_ms = sum(r.duration_ms for r in results)
    slowest = max(results, key=lambda r: (r.duration_ms, r.path))
    types: Counter[str] = Counter()
    for r in results:
        name = r.path.rsplit("/", 1)[-1]
        types[name[name.rfind("."):].lower() if "." in name[1:] else "(none)"] += 1

    ok = sum(1 for r in results if r.success)
    return {
        "totalFiles": len(results),
        "successfulFiles": ok,
        "failedFiles": len(results) - ok,
        "totalProcessingTime": round(total_ms, 3),
        "averageProcessingTime": round(total_ms / len(results), 3),
        "slowestFile": {"path": slowest.path, "timeMs": round(slowest.duration_ms, 3)},
        "fileTypes": dict(sorted(types.items())),
    }


__all__ = [
    "FILE_PROCESSING_ERROR",
    "FileProcessor",
    "GENERAL_STANDARD",
    "SourceFile",
    "VALIDATION_ERROR",
    "processing_stats",
    "read_source",
]
