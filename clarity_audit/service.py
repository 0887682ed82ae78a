"""
clarity_audit/service.py
════════════════════════

Orchestrates lex → parse → semantic → (analysis) for one contract.

Every call creates fresh Lexer, Parser and analyzer instances, so a
``ParsingService`` holds no state between calls beyond its configuration.
Stage timings are logged at DEBUG.

Failure tiers
─────────────
  * unreadable source     → one ``source-unreadable`` error, no AST
  * recoverable problems  → diagnostics of the parse / semantic phase
  * unexpected exception  → one ``internal-error`` record
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TypeVar

from clarity_audit import ast as A
from clarity_audit.analyzer import EnhancedAnalysisResult, StaticAnalyzer
from clarity_audit.config import AnalysisConfig
from clarity_audit.errors import (
    Diagnostic,
    ErrorCode,
    ErrorPhase,
    InternalAnalysisError,
    Severity,
    SourceReadError,
    StageErrors,
    SuppressionManager,
)
from clarity_audit.lexer import Lexer
from clarity_audit.parser import Parser
from clarity_audit.semantic import SemanticAnalyzer, SemanticResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ServiceResult:
    filename: str
    ast: Optional[A.Program] = None
    semantic: Optional[SemanticResult] = None
    analysis: Optional[EnhancedAnalysisResult] = None
    errors: List[Diagnostic] = field(default_factory=list)
    warnings: List[Diagnostic] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def errors_of(self, phase: ErrorPhase) -> List[Diagnostic]:
        return [e for e in self.errors if e.phase is phase]


@dataclass(frozen=True)
class SyntaxIssue:
    line: int
    column: int
    message: str


@dataclass
class SyntaxValidation:
    valid: bool
    errors: List[SyntaxIssue] = field(default_factory=list)


def read_source(path: str) -> str:
    """Read a contract file as UTF-8, raising ``SourceReadError``."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except OSError as exc:
        raise SourceReadError(path, exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise SourceReadError(path, f"not valid UTF-8 ({exc.reason})") from exc


def _service_error(code: ErrorCode, message: str) -> Diagnostic:
    return Diagnostic(
        code=code.code,
        message=message,
        location=A.NO_LOC,
        severity=Severity.ERROR,
        phase=ErrorPhase.SERVICE,
    )


class ParsingService:
    """
    Front door to the pipeline.

    >>> service = ParsingService()
    >>> result = service.analyze_text(source, "token.clar")
    >>> result.success, len(result.analysis.vulnerabilities)
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or AnalysisConfig()

    # ── Entry points ─────────────────────────────────────────────────

    def parse_text(self, source: str, filename: str = "<input>") -> ServiceResult:
        return self._run(source, filename, analyze=False)

    def parse_file(self, path: str) -> ServiceResult:
        return self._run_file(path, analyze=False)

    def analyze_text(self, source: str, filename: str = "<input>") -> ServiceResult:
        return self._run(source, filename, analyze=True)

    def analyze_file(self, path: str) -> ServiceResult:
        return self._run_file(path, analyze=True)

    def _run_file(self, path: str, analyze: bool) -> ServiceResult:
        try:
            source = read_source(path)
        except SourceReadError as exc:
            logger.debug("%s", exc.message)
            return ServiceResult(
                filename=path,
                errors=[_service_error(ErrorCode.SOURCE_UNREADABLE, exc.message)],
            )
        return self._run(source, path, analyze)

    def _run(self, source: str, filename: str, analyze: bool) -> ServiceResult:
        result = ServiceResult(filename=filename)
        try:
            self._pipeline(source, result, analyze)
        except InternalAnalysisError as exc:
            logger.debug("internal failure in %s", filename, exc_info=True)
            result.ast = result.semantic = result.analysis = None
            result.errors = [_service_error(ErrorCode.INTERNAL_ERROR, exc.message)]
            result.warnings = []
        return result

    def _pipeline(self, source: str, result: ServiceResult, analyze: bool) -> None:
        stages = StageErrors()

        tokens = self._stage(result, "lex", lambda: Lexer().tokenize(source))
        parsed = self._stage(result, "parse", lambda: Parser().parse_tokens(tokens))
        result.ast = parsed.ast
        stages.extend(parsed.errors, parsed.warnings)

        if parsed.ast is not None:
            program = parsed.ast
            semantic = self._stage(result, "semantic", lambda: SemanticAnalyzer().analyze(program))
            result.semantic = semantic
            stages.extend(semantic.errors, semantic.warnings)

            if analyze:
                suppressions = SuppressionManager()
                suppressions.load_inline_suppressions_from_source(source)
                analyzer = StaticAnalyzer(self.config)
                result.analysis = self._stage(
                    result, "analysis", lambda: analyzer.analyze_enhanced(semantic, suppressions)
                )

        result.errors = stages.errors
        result.warnings = stages.warnings
        logger.debug(
            "%s: %s",
            result.filename,
            ", ".join(f"{k} {v:.1f}ms" for k, v in result.timings.items()),
        )

    @staticmethod
    def _stage(result: ServiceResult, name: str, fn: Callable[[], T]) -> T:
        t0 = time.monotonic()
        try:
            value = fn()
        except Exception as exc:
            raise InternalAnalysisError(name, exc) from exc
        result.timings[name] = (time.monotonic() - t0) * 1000.0
        return value

    # ── Helpers over results ─────────────────────────────────────────

    @staticmethod
    def extract_functions(program: A.Program) -> List[A.FunctionDef]:
        return list(program.functions())

    @staticmethod
    def get_parsing_statistics(result: ServiceResult) -> Dict[str, int]:
        stats = {
            "total_functions": 0,
            "public_functions": 0,
            "private_functions": 0,
            "read_only_functions": 0,
            "constants": 0,
            "variables": 0,
            "maps": 0,
        }
        if result.ast is None:
            return stats
        counts = {
            A.Visibility.PUBLIC: "public_functions",
            A.Visibility.PRIVATE: "private_functions",
            A.Visibility.READ_ONLY: "read_only_functions",
        }
        for stmt in result.ast.body:
            if isinstance(stmt, A.FunctionDef):
                stats["total_functions"] += 1
                stats[counts[stmt.visibility]] += 1
            elif isinstance(stmt, A.ConstantDef):
                stats["constants"] += 1
            elif isinstance(stmt, A.DataVarDef):
                stats["variables"] += 1
            elif isinstance(stmt, A.MapDef):
                stats["maps"] += 1
        return stats

    def validate_syntax(self, source: str) -> SyntaxValidation:
        """Lex and parse only; semantic problems are not reported."""
        parsed = Parser().parse(source)
        return SyntaxValidation(
            valid=parsed.success,
            errors=[
                SyntaxIssue(e.location.line, e.location.column, e.message)
                for e in parsed.errors
            ],
        )

    def generate_parsing_report(self, result: ServiceResult) -> str:
        lines = [
            "Clarity Contract Parsing Report",
            "=" * 31,
            f"File:   {result.filename}",
            f"Status: {'SUCCESS' if result.success else 'FAILED'}",
            "",
        ]
        if result.ast is not None:
            stats = self.get_parsing_statistics(result)
            lines += [
                "Statistics:",
                f"  Functions: {stats['total_functions']} ("
                f"{stats['public_functions']} public, "
                f"{stats['private_functions']} private, "
                f"{stats['read_only_functions']} read-only)",
                f"  Constants: {stats['constants']}",
                f"  Variables: {stats['variables']}",
                f"  Maps:      {stats['maps']}",
                "",
            ]
        if result.errors:
            lines.append(f"Errors ({len(result.errors)}):")
            lines += [f"  [{e.phase.value}] {e.location}: {e.message}" for e in result.errors]
            lines.append("")
        if result.warnings:
            lines.append(f"Warnings ({len(result.warnings)}):")
            lines += [f"  [{w.phase.value}] {w.location}: {w.message}" for w in result.warnings]
            lines.append("")
        if result.timings:
            lines.append("Timings:")
            lines += [f"  {stage:<9} {ms:.2f} ms" for stage, ms in result.timings.items()]
        return "\n".join(lines).rstrip() + "\n"


def validate_file(path: str) -> SyntaxValidation:
    """Syntax-check a file; an unreadable file is a single invalid entry."""
    try:
        source = read_source(path)
    except SourceReadError as exc:
        return SyntaxValidation(False, [SyntaxIssue(0, 0, exc.message)])
    return ParsingService().validate_syntax(source)
