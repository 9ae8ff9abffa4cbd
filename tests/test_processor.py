"""Tests for the concurrent file processor."""

import time

import pytest

from compliance_guard.contracts import Severity, ViolationKind
from compliance_guard.errors import ErrorCode, FileProcessingError
from compliance_guard.processor import (
    FILE_PROCESSING_ERROR,
    VALIDATION_ERROR,
    FileProcessor,
    SourceFile,
    processing_stats,
    read_source,
)
from compliance_guard.rules import RuleEvaluator, RuleSet

SAMPLE_FILES = {
    "a.md": "short",
    "src/config.py": 'API_KEY = "abcd1234efgh"\n',
    "src/app.js": "function Bad_Name() {}\nasync function go() { await x; }\n",
    "src/long.py": "x = '" + "a" * 120 + "'\n",
    "tests/test_a.py": "def test_a():\n    pass\n",
}


def _processor(**kwargs) -> FileProcessor:
    return FileProcessor(RuleEvaluator(RuleSet.default()), **kwargs)


def _sources(paths=None):
    paths = paths or sorted(SAMPLE_FILES)
    return [SourceFile(path=p, content=SAMPLE_FILES[p]) for p in paths]


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


class TestFileProcessor:
    @pytest.mark.asyncio
    async def test_results_sorted_by_path(self):
        results = await _processor().process(reversed(_sources()))
        assert [r.path for r in results] == sorted(SAMPLE_FILES)
        assert all(r.success for r in results)

    @pytest.mark.asyncio
    async def test_violation_set_independent_of_workers_and_order(self):
        baseline = await _processor(max_workers=1).process(_sources())
        shuffled = await _processor(max_workers=4).process(
            _sources(["src/long.py", "a.md", "tests/test_a.py", "src/app.js", "src/config.py"])
        )
        first = {v for r in baseline for v in r.violations}
        second = {v for r in shuffled for v in r.violations}
        assert first == second
        assert sum(len(r.violations) for r in baseline) == sum(
            len(r.violations) for r in shuffled
        )

    @pytest.mark.asyncio
    async def test_validation_failure_is_isolated(self):
        sources = [
            SourceFile(path="bad.md", content=b"\xff\xfe\xfa"),
            SourceFile(path="a.md", content="short"),
        ]
        results = await _processor().process(sources)
        bad = next(r for r in results if r.path == "bad.md")
        good = next(r for r in results if r.path == "a.md")

        assert not bad.success
        assert bad.total_checks == 1
        assert bad.passed_checks == 0
        (v,) = bad.violations
        assert v.kind is ViolationKind.ERROR
        assert v.severity is Severity.CRITICAL
        assert v.category == VALIDATION_ERROR
        assert v.file == "bad.md"

        assert good.success
        assert len(good.violations) == 1

    @pytest.mark.asyncio
    async def test_loader_error(self):
        def fail():
            raise FileProcessingError(
                "Permission denied", file="x.py", code=ErrorCode.PERMISSION_DENIED
            )

        (result,) = await _processor().process([SourceFile(path="x.py", loader=fail)])
        assert result.violations[0].category == FILE_PROCESSING_ERROR
        assert "Permission denied" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_exception(self):
        def boom():
            raise RuntimeError("boom")

        (result,) = await _processor().process([SourceFile(path="x.py", loader=boom)])
        assert not result.success
        assert "boom" in result.violations[0].message

    @pytest.mark.asyncio
    async def test_missing_content_and_loader(self):
        (result,) = await _processor().process([SourceFile(path="ghost.py")])
        assert result.violations[0].category == FILE_PROCESSING_ERROR

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        def slow():
            time.sleep(0.02)
            return "short"

        processor = _processor(max_workers=2)
        sources = [SourceFile(path=f"doc{i}.md", loader=slow) for i in range(8)]
        results = await processor.process(sources)
        assert len(results) == 8
        assert processor.peak_concurrency == 2

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_violation(self):
        def hang():
            time.sleep(0.3)
            return "short"

        sources = [SourceFile(path="slow.md", loader=hang), SourceFile(path="a.md", content="short")]
        results = await _processor(timeout_seconds=0.05).process(sources)
        slow = next(r for r in results if r.path == "slow.md")
        assert not slow.success
        assert "Timed out" in slow.violations[0].message
        assert next(r for r in results if r.path == "a.md").success

    @pytest.mark.asyncio
    async def test_duplicate_paths_processed_once(self):
        sources = [SourceFile(path="a.md", content="short")] * 3
        results = await _processor().process(sources)
        assert len(results) == 1

    def test_process_sync(self):
        results = _processor().process_sync(_sources())
        assert len(results) == len(SAMPLE_FILES)

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            _processor(max_workers=0)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TestReadSource:
    def test_reads_bytes(self, tmp_path):
        f = tmp_path / "a.md"
        f.write_text("hello", encoding="utf-8")
        assert read_source(f) == b"hello"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileProcessingError) as exc_info:
            read_source(tmp_path / "nope.md")
        assert exc_info.value.code is ErrorCode.FILE_NOT_FOUND

    def test_too_large(self, tmp_path):
        f = tmp_path / "big.md"
        f.write_bytes(b"x" * 20)
        with pytest.raises(FileProcessingError) as exc_info:
            read_source(f, max_bytes=10)
        assert exc_info.value.code is ErrorCode.FILE_TOO_LARGE

    def test_directory(self, tmp_path):
        with pytest.raises(FileProcessingError) as exc_info:
            read_source(tmp_path)
        assert exc_info.value.code is ErrorCode.FILE_READ_ERROR

    def test_from_path_uses_relative_posix_path(self, tmp_path):
        sub = tmp_path / "docs"
        sub.mkdir()
        f = sub / "guide.md"
        f.write_text("short", encoding="utf-8")
        src = SourceFile.from_path(f, root=tmp_path)
        assert src.path == "docs/guide.md"
        assert src.load() == b"short"


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class TestProcessingStats:
    def test_empty(self):
        stats = processing_stats([])
        assert stats["totalFiles"] == 0
        assert stats["averageProcessingTime"] == 0.0
        assert stats["slowestFile"] is None

    @pytest.mark.asyncio
    async def test_counts_and_types(self):
        sources = _sources() + [SourceFile(path="bad.md", content=b"\xff")]
        results = await _processor().process(sources)
        stats = processing_stats(results)
        assert stats["totalFiles"] == 6
        assert stats["failedFiles"] == 1
        assert stats["successfulFiles"] == 5
        assert stats["fileTypes"] == {".js": 1, ".md": 2, ".py": 3}
