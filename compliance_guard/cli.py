"""Command-line entry point.

Usage::

    python -m compliance_guard check ROOT [--standards DIR] [--history FILE]
                                          [--workers N] [--json] [--no-history]

Exit status: 0 when the score reaches ``PASS_THRESHOLD``, 1 when it does
not, 2 on configuration errors.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from argparse import ArgumentParser
from pathlib import Path

from compliance_guard.baselines import BaselineStore
from compliance_guard.config import VERSION, settings
from compliance_guard.errors import ConfigurationError, ErrorCode
from compliance_guard.history import HistoryStore
from compliance_guard.log_setup import configure_logging
from compliance_guard.pipeline import ComplianceRun, run_compliance_check
from compliance_guard.processor import SourceFile
from compliance_guard.rules import BUILTIN_RULES, SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        "__pycache__",
        "node_modules",
        ".venv",
        "venv",
        ".tox",
        "dist",
        "build",
        "coverage",
        ".mypy_cache",
        ".pytest_cache",
    }
)


def discover_sources(
    root: Path,
    *,
    skip_dirs: frozenset[str] = DEFAULT_SKIP_DIRS,
    extensions: frozenset[str] = SUPPORTED_EXTENSIONS,
    max_bytes: int | None = None,
) -> list[SourceFile]:
    """Supported files under *root*, as lazily loaded sources sorted by path."""
    sources: list[SourceFile] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        for name in sorted(filenames):
            if Path(name).suffix.lower() not in extensions:
                continue
            sources.append(
                SourceFile.from_path(Path(dirpath) / name, root=root, max_bytes=max_bytes)
            )
    return sources


def load_standards(directory: Path | None) -> dict[str, str]:
    """Standards keyed by file stem; the built-in groups when no directory."""
    if directory is None:
        return {standard: "" for standard in BUILTIN_RULES}
    if not directory.is_dir():
        raise ConfigurationError(
            f"Standards directory not found: {directory}",
            source=str(directory),
            code=ErrorCode.MISSING_CONFIG,
        )
    standards: dict[str, str] = {}
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() in (".md", ".json") and path.is_file():
            standards[path.stem] = path.read_text(encoding="utf-8")
    return standards


def _print_summary(run: ComplianceRun, threshold: float) -> None:
    result = run.result
    summary = run.report["summary"]
    print(f"Compliance score: {result.compliance_score:.1f} (threshold {threshold:g})")
    print(
        f"Files: {result.files_processed} ({result.files_failed} failed)   "
        f"Checks: {result.passed_checks}/{result.total_checks} passed"
    )
    print(
        f"Violations: {summary['totalViolations']} "
        f"(critical {summary['criticalViolations']}, warnings {summary['warnings']}, "
        f"errors {summary['errors']})"
    )
    for v in result.violations:
        where = f"{v.file}:{v.line}" if v.line else v.file
        print(f"  [{v.kind.value}/{v.severity.value}] {where} {v.standard}: {v.message}")
    print(f"Risk: {run.report['risk']['overallRisk']}")
    for rec in run.report["recommendations"]:
        print(f"  ({rec['priority']}) {rec['message']}")
    if run.history_error is not None:
        print(f"History not recorded: {run.history_error}")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="compliance-guard", description="Codebase compliance checker")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Scan a directory and score it")
    check.add_argument("root", type=Path, help="Directory to scan")
    check.add_argument("--standards", type=Path, help="Directory of standards (*.md, *.json)")
    check.add_argument("--history", type=Path, help="History file (default from settings)")
    check.add_argument("--baselines", type=Path, help="Baselines file (default from settings)")
    check.add_argument("--workers", type=int, help="Concurrent file workers")
    check.add_argument("--json", action="store_true", help="Print the full JSON report")
    check.add_argument("--no-history", action="store_true", help="Do not record this run")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else settings.LOG_LEVEL, settings.LOG_FILE)

    cfg = settings
    if args.workers is not None:
        if args.workers < 1:
            logger.error("--workers must be >= 1")
            return 2
        cfg = settings.model_copy(update={"MAX_WORKERS": args.workers})

    if not args.root.is_dir():
        logger.error("Not a directory: %s", args.root)
        return 2

    try:
        standards = load_standards(args.standards)
        sources = discover_sources(args.root, max_bytes=cfg.MAX_FILE_BYTES)
        logger.info("Discovered %d files under %s", len(sources), args.root)
        history = None if args.no_history else HistoryStore(
            args.history or cfg.HISTORY_PATH, cfg.HISTORY_RETENTION
        )
        run = asyncio.run(
            run_compliance_check(
                sources,
                standards,
                history_store=history,
                baselines_store=BaselineStore(args.baselines or cfg.BASELINES_PATH),
                cfg=cfg,
            )
        )
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    if args.json:
        payload = {"result": run.result.model_dump(mode="json"), "report": run.report}
        print(json.dumps(payload, indent=2))
    else:
        _print_summary(run, cfg.PASS_THRESHOLD)
    return 0 if run.passed(cfg.PASS_THRESHOLD) else 1


if __name__ == "__main__":
    sys.exit(main())
