# clarity_audit/errors.py
"""
Clarity Audit Error Types and Reporting Module

Diagnostic infrastructure shared by every stage of the pipeline (lexer,
parser, semantic analyzer, static analyzer, parsing service).

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                    │
├─────────────────────────────────────────────────────────────────────────────┤
│  ClarityAuditError (base)                                                   │
│  ├── SourceReadError        - Source text could not be read (fatal)         │
│  ├── ConfigError            - Invalid configuration file or value           │
│  └── InternalAnalysisError  - Unexpected failure inside a stage             │
└─────────────────────────────────────────────────────────────────────────────┘

Recoverable problems (malformed forms, duplicate names, undefined
identifiers) are never raised: they are collected as ``Diagnostic``
records by a ``DiagnosticCollector`` and the stage continues.

Error Codes:
────────────
Codes are fixed kebab-case strings (``duplicate-definition``,
``reentrancy-vulnerability``, ...).  Downstream tooling filters and
displays by these strings, so they are part of the public interface.

Example Usage:
──────────────
    from clarity_audit.errors import DiagnosticCollector, ErrorCode

    collector = DiagnosticCollector(ErrorPhase.SEMANTIC)
    collector.error(ErrorCode.UNDEFINED_IDENTIFIER,
                    "Undefined identifier: foo", loc)
    if collector.has_errors:
        ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from clarity_audit.ast import SourceLocation

# ═══════════════════════════════════════════════════════════════════════════════
# SEVERITIES, RISK LEVELS, PHASES
# ═══════════════════════════════════════════════════════════════════════════════


class Severity(Enum):
    """Severity of a diagnostic or analysis issue.

    Each member carries its display name and the termcolor colour used by
    the console report.
    """

    ERROR = ("error", "red")
    WARNING = ("warning", "yellow")
    INFO = ("info", "blue")

    def __init__(self, label: str, color: str) -> None:
        self.label = label
        self.color = color

    def __str__(self) -> str:
        return self.label


class RiskLevel(Enum):
    """Risk attached to a vulnerability finding, ordered low → critical."""

    LOW = ("low", 1, "cyan")
    MEDIUM = ("medium", 2, "yellow")
    HIGH = ("high", 3, "red")
    CRITICAL = ("critical", 4, "magenta")

    def __init__(self, label: str, rank: int, color: str) -> None:
        self.label = label
        self.rank = rank
        self.color = color

    def __str__(self) -> str:
        return self.label

    def at_least(self, other: "RiskLevel") -> bool:
        return self.rank >= other.rank

    @classmethod
    def from_string(cls, s: str) -> "RiskLevel":
        s_low = s.strip().lower()
        for member in cls:
            if member.label == s_low:
                return member
        raise ValueError(f"unknown risk level: {s!r}")


class ErrorPhase(Enum):
    """Pipeline stage a diagnostic originates from."""

    PARSE = "parse"
    SEMANTIC = "semantic"
    ANALYSIS = "analysis"
    SERVICE = "service"


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorCode(Enum):
    """Machine-readable diagnostic codes.

    Value tuple: ``(code, phase, default severity)``.
    """

    # parse
    PARSE_ERROR = ("parse-error", ErrorPhase.PARSE, Severity.ERROR)
    UNEXPECTED_TOKEN = ("unexpected-token", ErrorPhase.PARSE, Severity.ERROR)
    UNKNOWN_DEFINITION = ("unknown-definition", ErrorPhase.PARSE, Severity.ERROR)
    UNTERMINATED_FORM = ("unterminated-form", ErrorPhase.PARSE, Severity.ERROR)

    # semantic errors
    DUPLICATE_DEFINITION = ("duplicate-definition", ErrorPhase.SEMANTIC, Severity.ERROR)
    UNDEFINED_IDENTIFIER = ("undefined-identifier", ErrorPhase.SEMANTIC, Severity.ERROR)
    SEMANTIC_ERROR = ("semantic-error", ErrorPhase.SEMANTIC, Severity.ERROR)

    # semantic warnings
    UNUSED_FUNCTION = ("unused-function", ErrorPhase.SEMANTIC, Severity.WARNING)
    UNUSED_CONSTANT = ("unused-constant", ErrorPhase.SEMANTIC, Severity.WARNING)
    UNUSED_VARIABLE = ("unused-variable", ErrorPhase.SEMANTIC, Severity.WARNING)
    UNUSED_MAP = ("unused-map", ErrorPhase.SEMANTIC, Severity.WARNING)
    WRITE_ONLY_VARIABLE = ("write-only-variable", ErrorPhase.SEMANTIC, Severity.WARNING)
    WRITE_ONLY_MAP = ("write-only-map", ErrorPhase.SEMANTIC, Severity.WARNING)
    TYPE_MISMATCH = ("type-mismatch", ErrorPhase.SEMANTIC, Severity.WARNING)

    # analysis issues
    NAMING_CONVENTION = ("naming-convention", ErrorPhase.ANALYSIS, Severity.INFO)
    UNSAFE_UNWRAP = ("unsafe-unwrap", ErrorPhase.ANALYSIS, Severity.WARNING)
    POTENTIAL_DIVISION_BY_ZERO = ("potential-division-by-zero", ErrorPhase.ANALYSIS, Severity.INFO)
    HIGH_COMPLEXITY = ("high-complexity", ErrorPhase.ANALYSIS, Severity.WARNING)
    STATE_MODIFICATION_PUBLIC = ("state-modification-public", ErrorPhase.ANALYSIS, Severity.INFO)
    UNHANDLED_FAILURE = ("unhandled-failure", ErrorPhase.ANALYSIS, Severity.WARNING)
    INTERNAL_CHECKER_ERROR = ("internal-checker-error", ErrorPhase.ANALYSIS, Severity.INFO)

    # vulnerabilities
    REENTRANCY = ("reentrancy-vulnerability", ErrorPhase.ANALYSIS, Severity.ERROR)
    INTEGER_OVERFLOW = ("integer-overflow", ErrorPhase.ANALYSIS, Severity.WARNING)
    MISSING_AUTHORIZATION = ("missing-authorization", ErrorPhase.ANALYSIS, Severity.ERROR)
    UNSAFE_OPERATION = ("unsafe-operation", ErrorPhase.ANALYSIS, Severity.WARNING)
    STATE_INCONSISTENCY = ("state-inconsistency", ErrorPhase.ANALYSIS, Severity.INFO)

    # service
    SOURCE_UNREADABLE = ("source-unreadable", ErrorPhase.SERVICE, Severity.ERROR)
    INTERNAL_ERROR = ("internal-error", ErrorPhase.SERVICE, Severity.ERROR)

    def __init__(self, code: str, phase: ErrorPhase, default_severity: Severity) -> None:
        self.code = code
        self.phase = phase
        self.default_severity = default_severity

    def __str__(self) -> str:
        return self.code


# ═══════════════════════════════════════════════════════════════════════════════
# DIAGNOSTIC RECORDS
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One error or warning produced by the parse or semantic stage.

    Attributes:
        code: Fixed string code (see ``ErrorCode``)
        message: Human-readable description
        location: Where in the source the problem was found
        severity: ERROR for errors, WARNING for warnings
        phase: Stage that produced the record
        suggestions: Optional remediation hints
    """

    code: str
    message: str
    location: SourceLocation
    severity: Severity
    phase: ErrorPhase
    suggestions: Tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "location": self.location.to_dict(),
            "severity": self.severity.label,
            "type": self.phase.value,
        }
        if self.suggestions:
            result["suggestions"] = list(self.suggestions)
        return result

    def to_gcc_format(self, filename: str = "<input>") -> str:
        loc = self.location
        return (
            f"{filename}:{loc.line}:{loc.column}: {self.severity.label}: "
            f"[{self.code}] {self.message}"
        )

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.label}: {self.message} [{self.code}]"


class DiagnosticCollector:
    """Accumulates the errors and warnings of one pipeline stage."""

    def __init__(self, phase: ErrorPhase) -> None:
        self.phase = phase
        self._errors: List[Diagnostic] = []
        self._warnings: List[Diagnostic] = []

    def error(
        self,
        code: ErrorCode,
        message: str,
        location: SourceLocation,
        suggestions: Iterable[str] = (),
    ) -> Diagnostic:
        diag = Diagnostic(
            code=code.code,
            message=message,
            location=location,
            severity=Severity.ERROR,
            phase=self.phase,
            suggestions=tuple(suggestions),
        )
        self._errors.append(diag)
        return diag

    def warning(
        self,
        code: ErrorCode,
        message: str,
        location: SourceLocation,
        suggestions: Iterable[str] = (),
    ) -> Diagnostic:
        diag = Diagnostic(
            code=code.code,
            message=message,
            location=location,
            severity=Severity.WARNING,
            phase=self.phase,
            suggestions=tuple(suggestions),
        )
        self._warnings.append(diag)
        return diag

    @property
    def errors(self) -> List[Diagnostic]:
        return list(self._errors)

    @property
    def warnings(self) -> List[Diagnostic]:
        return list(self._warnings)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)


# ═══════════════════════════════════════════════════════════════════════════════
# SUPPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════════


class SuppressionManager:
    """
    Filters findings by code, globally or per source line.

    Inline form (applies to its own line and the next one)::

        ;; clarity-audit-suppress reentrancy-vulnerability integer-overflow

    The wildcard ``*`` suppresses every code.
    """

    _INLINE = re.compile(
        r";+\s*clarity-audit-suppress\s+([\w*-]+(?:[ \t]+[\w*-]+)*)",
        re.IGNORECASE,
    )

    def __init__(self) -> None:
        self._inline: Dict[int, Set[str]] = {}
        self._global: Set[str] = set()

    def add_global_suppression(self, code: str) -> None:
        self._global.add(code)

    def add_inline_suppression(self, line: int, code: str) -> None:
        self._inline.setdefault(line, set()).add(code)

    def load_inline_suppressions_from_source(self, source: str) -> None:
        for line_num, line in enumerate(source.splitlines(), start=1):
            match = self._INLINE.search(line)
            if match:
                for code in match.group(1).split():
                    self.add_inline_suppression(line_num, code)
                    self.add_inline_suppression(line_num + 1, code)

    def is_suppressed(self, code: str, location: Optional[SourceLocation]) -> bool:
        if code in self._global or "*" in self._global:
            return True
        if location is None:
            return False
        codes = self._inline.get(location.line, ())
        return code in codes or "*" in codes

    def __len__(self) -> int:
        return len(self._global) + sum(len(v) for v in self._inline.values())


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════


class ClarityAuditError(Exception):
    """Base class of every exception raised by clarity_audit."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SourceReadError(ClarityAuditError):
    """Contract source could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(ClarityAuditError):
    """Invalid configuration file or value."""


class InternalAnalysisError(ClarityAuditError):
    """An analysis stage failed unexpectedly."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


@dataclass
class StageErrors:
    """Errors and warnings merged across stages, tagged with their phase."""

    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)

    def extend(self, errors: Iterable[Diagnostic], warnings: Iterable[Diagnostic]) -> None:
        self.errors.extend(errors)
        self.warnings.extend(warnings)
