"""Rule evaluator -- pure analysis layer.

Applies named line/content pattern checks to one file's text.
Input: path + content + rules -> Output: violations and check tallies.
No filesystem access, no shared mutable state.

Every rule sees a ``Document`` whose ``ContentProfile`` was computed in a
single forward pass over the lines (fence state, headings, links, words),
so no rule ever re-scans the file to recover structural context.
"""

from __future__ import annotations

import abc
import fnmatch
import json
import logging
import re
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from compliance_guard.config import settings
from compliance_guard.contracts import CheckTally, Severity, Violation, ViolationKind
from compliance_guard.errors import ConfigurationError, ErrorCode, ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# File classes
# ---------------------------------------------------------------------------

JS_EXTS = frozenset({".js", ".jsx", ".ts", ".tsx"})
CODE_EXTS = JS_EXTS | {".py", ".java", ".go", ".rs"}
CONFIG_EXTS = frozenset({".json", ".yml", ".yaml"})
DOC_EXTS = frozenset({".md"})

SUPPORTED_EXTENSIONS = CODE_EXTS | CONFIG_EXTS | DOC_EXTS | {
    ".xml", ".html", ".css", ".scss",
}

TEST_FILE_GLOBS = (
    "*.test.*",
    "*.spec.*",
    "test_*.py",
    "*_test.py",
    "*_test.go",
)

_HEADING_RE = re.compile(r"^#{1,6}\s+\S")
_LINK_RE = re.compile(r"(?<!!)\[[^\]]*\]\([^)\s]+[^)]*\)")
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_LIST_RE = re.compile(r"^(?:[-*+]|\d+\.)\s+")
_FENCE_MARKERS = ("```", "~~~")


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:].lower() if dot > 0 else ""


@lru_cache(maxsize=512)
def _compile(pattern: str, ignore_case: bool = False) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


# ---------------------------------------------------------------------------
# Document + single-pass profile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContentProfile:
    """Structural counts gathered in one forward pass.

    ``fenced[i]`` is True when line *i* sits inside (or opens/closes) a
    fenced code block.  Headings, links and words are only counted outside
    fences; an unterminated fence at end of file is not a code block.
    """

    headings: int = 0
    code_blocks: int = 0
    links: int = 0
    images: int = 0
    list_items: int = 0
    table_rows: int = 0
    blank_lines: int = 0
    word_count: int = 0
    fenced: tuple[bool, ...] = ()


def profile_lines(lines: tuple[str, ...] | list[str]) -> ContentProfile:
    """Compute a ``ContentProfile`` without backtracking."""
    headings = code_blocks = links = images = 0
    list_items = table_rows = blank = words = 0
    fenced: list[bool] = []
    in_fence = False

    for line in lines:
        stripped = line.strip()
        if stripped.startswith(_FENCE_MARKERS):
            fenced.append(True)
            if in_fence:
                code_blocks += 1
            in_fence = not in_fence
            continue
        fenced.append(in_fence)
        if in_fence:
            continue
        if not stripped:
            blank += 1
            continue
        if _HEADING_RE.match(stripped):
            headings += 1
        if _LIST_RE.match(stripped):
            list_items += 1
        if stripped.startswith("|"):
            table_rows += 1
        links += len(_LINK_RE.findall(stripped))
        images += len(_IMAGE_RE.findall(stripped))
        words += len(stripped.split())

    return ContentProfile(
        headings=headings,
        code_blocks=code_blocks,
        links=links,
        images=images,
        list_items=list_items,
        table_rows=table_rows,
        blank_lines=blank,
        word_count=words,
        fenced=tuple(fenced),
    )


@dataclass(frozen=True)
class Document:
    """A decoded file ready for rule checks."""

    path: str
    lines: tuple[str, ...]
    profile: ContentProfile

    @classmethod
    def from_text(cls, path: str, text: str) -> Document:
        lines = tuple(text.splitlines())
        return cls(path=path, lines=lines, profile=profile_lines(lines))

    @property
    def extension(self) -> str:
        return _extension(self.path)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def iter_lines(self, *, skip_fenced: bool = False) -> Iterator[tuple[int, str]]:
        """Yield ``(line_number, line)`` pairs, 1-based."""
        fenced = self.profile.fenced
        for idx, line in enumerate(self.lines):
            if skip_fenced and fenced[idx]:
                continue
            yield idx + 1, line


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class Rule(abc.ABC):
    """A named check.  Each applicable rule counts as one check per file.

    ``extensions`` (empty = any) and ``paths`` (fnmatch globs, empty = any)
    decide which files a rule applies to; ``min_words`` skips documents too
    short for the rule to be meaningful.
    """

    rule_id: str
    standard: str
    category: str
    message: str
    kind: ViolationKind = ViolationKind.WARNING
    severity: Severity = Severity.MEDIUM
    extensions: frozenset[str] = frozenset()
    paths: tuple[str, ...] = ()
    min_words: int = 0

    def applies_to(self, path: str) -> bool:
        if self.extensions and _extension(path) not in self.extensions:
            return False
        if self.paths:
            name = path.rsplit("/", 1)[-1]
            return any(
                fnmatch.fnmatch(name, pat) or fnmatch.fnmatch(path, pat)
                for pat in self.paths
            )
        return True

    def is_applicable(self, doc: Document) -> bool:
        return doc.profile.word_count >= self.min_words

    @abc.abstractmethod
    def check(self, doc: Document) -> list[Violation]:
        """Violations found in *doc*; an empty list means the check passed."""

    def _violation(self, doc: Document, line: int, message: str | None = None) -> Violation:
        return Violation(
            file=doc.path,
            line=line,
            kind=self.kind,
            category=self.category,
            message=message or self.message,
            standard=self.standard,
            severity=self.severity,
        )


@dataclass(frozen=True, kw_only=True)
class ForbiddenPatternRule(Rule):
    """Flag every line matching ``pattern``.

    When ``unless`` matches anywhere in the file the rule passes; this
    covers checks like "async code without error handling".
    """

    pattern: str
    ignore_case: bool = False
    skip_fenced: bool = True
    unless: str | None = None
    first_only: bool = False

    def check(self, doc: Document) -> list[Violation]:
        if self.unless and _compile(self.unless, self.ignore_case).search(doc.text):
            return []
        regex = _compile(self.pattern, self.ignore_case)
        found: list[Violation] = []
        for lineno, line in doc.iter_lines(skip_fenced=self.skip_fenced):
            if regex.search(line):
                found.append(self._violation(doc, lineno))
                if self.first_only:
                    break
        return found


@dataclass(frozen=True, kw_only=True)
class RequiredPatternRule(Rule):
    """Require a structural marker somewhere in the file."""

    pattern: str
    ignore_case: bool = False
    skip_fenced: bool = False

    def check(self, doc: Document) -> list[Violation]:
        regex = _compile(self.pattern, self.ignore_case)
        for _, line in doc.iter_lines(skip_fenced=self.skip_fenced):
            if regex.search(line):
                return []
        return [self._violation(doc, 0)]


@dataclass(frozen=True, kw_only=True)
class LineLengthRule(Rule):
    max_length: int = 100
    skip_fenced: bool = False

    def check(self, doc: Document) -> list[Violation]:
        return [
            self._violation(
                doc,
                lineno,
                f"{self.message} ({len(line)} > {self.max_length} chars)",
            )
            for lineno, line in doc.iter_lines(skip_fenced=self.skip_fenced)
            if len(line) > self.max_length
        ]


@dataclass(frozen=True, kw_only=True)
class MinWordCountRule(Rule):
    """Words outside fenced code must reach ``minimum``."""

    minimum: int = 50

    def check(self, doc: Document) -> list[Violation]:
        count = doc.profile.word_count
        if count >= self.minimum:
            return []
        return [self._violation(doc, 0, f"{self.message} ({count} < {self.minimum} words)")]


@dataclass(frozen=True, kw_only=True)
class RequiredHeadingRule(Rule):
    minimum: int = 1

    def check(self, doc: Document) -> list[Violation]:
        if doc.profile.headings >= self.minimum:
            return []
        return [self._violation(doc, 0)]


@dataclass(frozen=True, kw_only=True)
class NamingRule(Rule):
    """Names captured by group 1 of ``declaration`` must match ``convention``.

    ``message`` may reference ``{name}``.
    """

    declaration: str
    convention: str

    def check(self, doc: Document) -> list[Violation]:
        decl = _compile(self.declaration)
        conv = _compile(self.convention)
        found: list[Violation] = []
        for lineno, line in doc.iter_lines(skip_fenced=True):
            for match in decl.finditer(line):
                name = match.group(1)
                if not conv.match(name):
                    found.append(self._violation(doc, lineno, self.message.format(name=name)))
        return found


# ---------------------------------------------------------------------------
# Built-in rule groups, keyed by standard id
# ---------------------------------------------------------------------------

_SECRET_ASSIGNMENT = (
    r"""(?:password|passwd|pwd|api[_-]?key|secret|token)\s*[:=]\s*['"][^'"]{4,}['"]"""
)
_INTERPOLATED_SQL = (
    r"""(?:f['"].*\b(?:SELECT|INSERT|UPDATE|DELETE|DROP)\b.*\{"""
    r"""|`.*\b(?:SELECT|INSERT|UPDATE|DELETE|DROP)\b.*\$\{"""
    r"""|['"].*\b(?:SELECT|INSERT|UPDATE|DELETE|DROP)\b.*['"]\s*(?:\+|%|\.format\())"""
)


def _builtin_groups() -> dict[str, tuple[Rule, ...]]:
    tech = "tech-stack"
    style = "code-style"
    sec = "security-compliance"
    best = "best-practices"
    tests = "testing-strategy"
    docs = "documentation"
    return {
        tech: (
            ForbiddenPatternRule(
                rule_id="TS001", standard=tech, category="TECH_STACK",
                message="TypeScript syntax detected in .js file. Consider using .ts extension",
                extensions=frozenset({".js", ".jsx"}),
                pattern=r"^\s*(?:export\s+)?(?:interface\s+\w+|type\s+\w+\s*=)",
                first_only=True,
            ),
            ForbiddenPatternRule(
                rule_id="TS002", standard=tech, category="TECH_STACK",
                message="CommonJS require() in TypeScript. Use ES module imports",
                severity=Severity.LOW,
                extensions=frozenset({".ts", ".tsx"}),
                pattern=r"\brequire\(",
                first_only=True,
            ),
        ),
        style: (
            LineLengthRule(
                rule_id="CS001", standard=style, category="CODE_STYLE",
                message="Line exceeds character limit",
                severity=Severity.LOW,
                extensions=CODE_EXTS,
                max_length=100,
            ),
            ForbiddenPatternRule(
                rule_id="CS002", standard=style, category="CODE_STYLE",
                message="Tab indentation. Use spaces for indentation",
                severity=Severity.LOW,
                extensions=CODE_EXTS - {".go"},
                pattern=r"^\t+\S",
                first_only=True,
            ),
            NamingRule(
                rule_id="CS003", standard=style, category="CODE_STYLE",
                message="Function name '{name}' should use camelCase",
                severity=Severity.LOW,
                extensions=JS_EXTS,
                declaration=r"\bfunction\s+([A-Za-z_$][A-Za-z0-9_$]*)",
                convention=r"^[a-z][a-zA-Z0-9]*$",
            ),
            NamingRule(
                rule_id="CS004", standard=style, category="CODE_STYLE",
                message="Function name '{name}' should use snake_case",
                severity=Severity.LOW,
                extensions=frozenset({".py"}),
                declaration=r"^\s*(?:async\s+)?def\s+([A-Za-z_][A-Za-z0-9_]*)",
                convention=r"^_{0,2}[a-z][a-z0-9_]*$",
            ),
        ),
        sec: (
            ForbiddenPatternRule(
                rule_id="SEC001", standard=sec, category="SECURITY",
                message="Hardcoded secrets detected. Use environment variables instead",
                kind=ViolationKind.CRITICAL, severity=Severity.HIGH,
                extensions=CODE_EXTS | CONFIG_EXTS,
                pattern=_SECRET_ASSIGNMENT,
                ignore_case=True,
            ),
            ForbiddenPatternRule(
                rule_id="SEC002", standard=sec, category="SECURITY",
                message="Private key material committed to source",
                kind=ViolationKind.CRITICAL, severity=Severity.CRITICAL,
                pattern=r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----",
                skip_fenced=False,
            ),
            ForbiddenPatternRule(
                rule_id="SEC003", standard=sec, category="SECURITY",
                message="AWS access key detected",
                kind=ViolationKind.CRITICAL, severity=Severity.CRITICAL,
                pattern=r"\bAKIA[0-9A-Z]{16}\b",
                skip_fenced=False,
            ),
            ForbiddenPatternRule(
                rule_id="SEC004", standard=sec, category="SECURITY",
                message="Potential SQL injection vulnerability. Use parameterized queries",
                kind=ViolationKind.CRITICAL, severity=Severity.HIGH,
                extensions=CODE_EXTS,
                pattern=_INTERPOLATED_SQL,
                ignore_case=True,
            ),
            ForbiddenPatternRule(
                rule_id="SEC005", standard=sec, category="SECURITY",
                message="Dynamic code execution via eval/exec",
                severity=Severity.HIGH,
                extensions=CODE_EXTS,
                pattern=r"(?<![\w.])(?:eval|exec)\s*\(",
            ),
        ),
        best: (
            ForbiddenPatternRule(
                rule_id="BP001", standard=best, category="ARCHITECTURE",
                message="Async code detected without proper error handling",
                extensions=JS_EXTS,
                pattern=r"\basync\b|\bPromise\b",
                unless=r"\btry\s*\{|\.catch\(",
                first_only=True,
            ),
            ForbiddenPatternRule(
                rule_id="BP002", standard=best, category="ARCHITECTURE",
                message="Bare except clause swallows every error",
                extensions=frozenset({".py"}),
                pattern=r"^\s*except\s*:",
            ),
        ),
        tests: (
            RequiredPatternRule(
                rule_id="TST001", standard=tests, category="TESTING",
                message="Test file should contain proper test structure (describe, it, test)",
                paths=TEST_FILE_GLOBS,
                pattern=r"\b(?:describe|it|test)\s*\(|^\s*(?:async\s+)?def\s+test_|^func\s+Test",
            ),
            RequiredPatternRule(
                rule_id="TST002", standard=tests, category="TESTING",
                message="Test file should contain assertions (expect, assert)",
                paths=TEST_FILE_GLOBS,
                pattern=r"\b(?:expect|assert)\s*\(|^\s*assert\b|\.assert\w*\(|\bt\.(?:Error|Fatal)",
            ),
        ),
        docs: (
            MinWordCountRule(
                rule_id="DOC001", standard=docs, category="DOCUMENTATION",
                message="Very short content - may need expansion",
                severity=Severity.LOW,
                extensions=DOC_EXTS,
                minimum=50,
            ),
            RequiredHeadingRule(
                rule_id="DOC002", standard=docs, category="DOCUMENTATION",
                message="Limited structure - consider adding headings",
                severity=Severity.LOW,
                extensions=DOC_EXTS,
                min_words=50,
            ),
            RequiredPatternRule(
                rule_id="DOC003", standard=docs, category="DOCUMENTATION",
                message="No links found - consider adding references",
                severity=Severity.LOW,
                extensions=DOC_EXTS,
                pattern=_LINK_RE.pattern,
                skip_fenced=True,
                min_words=50,
            ),
        ),
    }


BUILTIN_RULES: dict[str, tuple[Rule, ...]] = _builtin_groups()


# ---------------------------------------------------------------------------
# Custom rule configuration
# ---------------------------------------------------------------------------

_RULE_TYPES: dict[str, type[Rule]] = {
    "forbidden": ForbiddenPatternRule,
    "required": RequiredPatternRule,
    "max_line_length": LineLengthRule,
    "min_words": MinWordCountRule,
    "heading": RequiredHeadingRule,
    "naming": NamingRule,
}

# JSON key -> dataclass field
_CONFIG_KEYS: dict[str, str] = {
    "pattern": "pattern",
    "ignoreCase": "ignore_case",
    "skipFenced": "skip_fenced",
    "unless": "unless",
    "firstOnly": "first_only",
    "max": "max_length",
    "min": "minimum",
    "minWords": "min_words",
    "declaration": "declaration",
    "convention": "convention",
}


_INT_KEYS = frozenset({"max", "min", "minWords"})
_BOOL_KEYS = frozenset({"ignoreCase", "skipFenced", "firstOnly"})


def _str_list(value: Any, key: str, standard: str, index: int) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    raise ConfigurationError(
        f"rule #{index}: {key!r} must be a string or a list of strings", source=standard
    )


def _rule_from_config(item: Any, standard: str, index: int) -> Rule:
    if not isinstance(item, Mapping):
        raise ConfigurationError(f"rule #{index} is not an object", source=standard)
    rule_type = item.get("type")
    cls = _RULE_TYPES.get(rule_type) if isinstance(rule_type, str) else None
    if cls is None:
        raise ConfigurationError(
            f"rule #{index} has unknown type {rule_type!r}; "
            f"expected one of {', '.join(sorted(_RULE_TYPES))}",
            source=standard,
        )

    kwargs: dict[str, Any] = {
        "rule_id": str(item.get("id") or f"{standard}#{index}"),
        "standard": standard,
        "category": str(item.get("category", "CUSTOM")).upper(),
        "message": str(item.get("message") or f"Rule {item.get('id', index)} failed"),
    }
    try:
        kwargs["kind"] = ViolationKind(str(item.get("kind", "WARNING")).upper())
        kwargs["severity"] = Severity(str(item.get("severity", "MEDIUM")).upper())
    except ValueError as exc:
        raise ConfigurationError(f"rule #{index}: {exc}", source=standard) from exc

    if "extensions" in item:
        exts = _str_list(item["extensions"], "extensions", standard, index)
        kwargs["extensions"] = frozenset(e.lower() for e in exts)
    if "glob" in item:
        kwargs["paths"] = tuple(_str_list(item["glob"], "glob", standard, index))
    for key, attr in _CONFIG_KEYS.items():
        if key not in item:
            continue
        value = item[key]
        if key in _INT_KEYS:
            ok = isinstance(value, int) and not isinstance(value, bool) and value >= 0
        elif key in _BOOL_KEYS:
            ok = isinstance(value, bool)
        else:
            ok = isinstance(value, str)
        if not ok:
            raise ConfigurationError(
                f"rule #{index}: invalid {key} {value!r}", source=standard
            )
        kwargs[attr] = value

    try:
        rule = cls(**kwargs)
    except TypeError as exc:
        raise ConfigurationError(f"rule #{index}: {exc}", source=standard) from exc

    for attr in ("pattern", "unless", "declaration", "convention"):
        value = getattr(rule, attr, None)
        if value is None:
            continue
        try:
            _compile(value, getattr(rule, "ignore_case", False))
        except (re.error, TypeError) as exc:
            raise ConfigurationError(
                f"rule #{index}: invalid {attr} {value!r}: {exc}", source=standard
            ) from exc

    if isinstance(rule, NamingRule):
        if _compile(rule.declaration).groups < 1:
            raise ConfigurationError(
                f"rule #{index}: declaration must capture the name in group 1",
                source=standard,
            )
        try:
            rule.message.format(name="x")
        except (KeyError, IndexError, ValueError) as exc:
            raise ConfigurationError(
                f"rule #{index}: message may only reference {{name}}: {exc}",
                source=standard,
            ) from exc
    return rule


def load_rule_config(data: Any, *, source: str) -> tuple[Rule, ...]:
    """Build rules from a ``{"rules": [...]}`` mapping."""
    if not isinstance(data, Mapping) or not isinstance(data.get("rules"), list):
        raise ConfigurationError(
            "rule config must be an object with a 'rules' array",
            source=source,
            code=ErrorCode.INVALID_STANDARD,
        )
    return tuple(
        _rule_from_config(item, source, idx) for idx, item in enumerate(data["rules"])
    )


# ---------------------------------------------------------------------------
# RuleSet
# ---------------------------------------------------------------------------


class RuleSet:
    """Ordered, immutable collection of rules."""

    __slots__ = ("_rules",)

    def __init__(self, rules: tuple[Rule, ...] | list[Rule] = ()) -> None:
        self._rules = tuple(rules)
        ids = [r.rule_id for r in self._rules]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ConfigurationError(f"duplicate rule ids: {', '.join(dupes)}")

    @classmethod
    def default(cls) -> RuleSet:
        return cls([rule for group in BUILTIN_RULES.values() for rule in group])

    @classmethod
    def from_standards(cls, standards: Mapping[str, str]) -> RuleSet:
        """Select rules for the supplied standards.

        A standard whose text is a JSON object carrying a ``rules`` array
        defines its own rules.  Any other text is opaque: the built-in group
        registered under that id is used, and unknown ids add nothing.
        """
        rules: list[Rule] = []
        for standard_id in sorted(standards):
            text = standards[standard_id]
            if not isinstance(text, str):
                raise ConfigurationError(
                    "standard content must be text", source=standard_id
                )
            stripped = text.lstrip()
            if stripped.startswith("{"):
                try:
                    data = json.loads(stripped)
                except json.JSONDecodeError as exc:
                    raise ConfigurationError(
                        f"malformed rule JSON: {exc}",
                        source=standard_id,
                        code=ErrorCode.INVALID_STANDARD,
                    ) from exc
                rules.extend(load_rule_config(data, source=standard_id))
                continue
            group = BUILTIN_RULES.get(standard_id)
            if group is None:
                logger.debug("Standard %s has no built-in rules; skipping", standard_id)
                continue
            rules.extend(group)
        return cls(rules)

    def for_path(self, path: str) -> list[Rule]:
        return [r for r in self._rules if r.applies_to(path)]

    @property
    def standards(self) -> list[str]:
        return sorted({r.standard for r in self._rules})

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileEvaluation:
    """Violations and check counts for one file."""

    path: str
    violations: tuple[Violation, ...] = ()
    total_checks: int = 0
    passed_checks: int = 0
    standard_checks: dict[str, CheckTally] = field(default_factory=dict)
    category_timings_ms: dict[str, float] = field(default_factory=dict)


class RuleEvaluator:
    """Apply a ``RuleSet`` to one file at a time.

    ``evaluate`` is a pure function of its inputs and safe to call from
    several worker threads at once.
    """

    __slots__ = ("_rules", "_max_bytes")

    def __init__(self, rules: RuleSet, *, max_bytes: int | None = None) -> None:
        self._rules = rules
        self._max_bytes = max_bytes if max_bytes is not None else settings.MAX_FILE_BYTES

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def decode(self, path: str, content: str | bytes) -> str:
        """Return checkable text or raise ``ValidationError`` for *path*."""
        if isinstance(content, bytes):
            size = len(content)
            if size > self._max_bytes:
                raise ValidationError(
                    f"File too large: {size / 1024 / 1024:.2f}MB",
                    file=path,
                    code=ErrorCode.FILE_TOO_LARGE,
                )
            try:
                text = content.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise ValidationError(
                    f"Undecodable content at byte {exc.start}: {exc.reason}",
                    file=path,
                ) from exc
        else:
            try:
                size = len(content.encode("utf-8"))
            except UnicodeEncodeError as exc:
                raise ValidationError(
                    f"Undecodable content at offset {exc.start}: {exc.reason}",
                    file=path,
                ) from exc
            if size > self._max_bytes:
                raise ValidationError(
                    f"File too large: {size / 1024 / 1024:.2f}MB",
                    file=path,
                    code=ErrorCode.FILE_TOO_LARGE,
                )
            text = content
        if "\x00" in text:
            raise ValidationError("Binary content (NUL byte) cannot be checked", file=path)
        return text

    def evaluate(self, path: str, content: str | bytes) -> FileEvaluation:
        doc = Document.from_text(path, self.decode(path, content))

        violations: list[Violation] = []
        total = passed = 0
        tallies: dict[str, list[int]] = {}
        timings: dict[str, float] = {}

        for rule in self._rules.for_path(path):
            if not rule.is_applicable(doc):
                continue
            started = time.perf_counter()
            found = rule.check(doc)
            elapsed_ms = (time.perf_counter() - started) * 1000
            timings[rule.category] = timings.get(rule.category, 0.0) + elapsed_ms

            tally = tallies.setdefault(rule.standard, [0, 0])
            tally[0] += 1
            total += 1
            if found:
                tally[1] += 1
                violations.extend(found)
            else:
                passed += 1

        return FileEvaluation(
            path=path,
            violations=tuple(violations),
            total_checks=total,
            passed_checks=passed,
            standard_checks={
                std: CheckTally(total=t, failed=f) for std, (t, f) in tallies.items()
            },
            category_timings_ms=timings,
        )


__all__ = [
    "BUILTIN_RULES",
    "CODE_EXTS",
    "ContentProfile",
    "Document",
    "FileEvaluation",
    "ForbiddenPatternRule",
    "LineLengthRule",
    "MinWordCountRule",
    "NamingRule",
    "RequiredHeadingRule",
    "RequiredPatternRule",
    "Rule",
    "RuleEvaluator",
    "RuleSet",
    "SUPPORTED_EXTENSIONS",
    "load_rule_config",
    "profile_lines",
]
