"""
clarity_audit/checkers.py
═════════════════════════

Checker framework and the vulnerability detectors built on it.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────┐  ┌──────────────┐  ┌──────────────┐  │
  │  │ Reentrancy   │  │  Overflow    │  │Authorization │  │
  │  │   Checker    │  │  Checker     │  │  Checker     │  │
  │  └──────┬───────┘  └──────┬───────┘  └──────┬───────┘  │
  │         │                 │                  │          │
  │  ┌──────▼─────────────────▼──────────────────▼───────┐  │
  │  │              Evidence Collection                  │  │
  │  │  SemanticFacts │ CallGraph │ DataFlowGraph        │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │  SuppressionManager  ;; clarity-audit-suppress    │  │
  │  └───────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read thresholds from the context
  2. **collect_evidence()** — scan the analyzed program for suspicious sites
  3. **diagnose()**         — turn evidence into ``Issue`` records
  4. **report()**           — return issues not filtered by suppressions

A checker that raises is isolated by the runner: the failure becomes a
single ``internal-checker-error`` info issue and the run continues.

``collect_unused_code`` (PART 7) is not a checker: it reports unused and
write-only storage as plain warning issues.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple, Type

from clarity_audit import ast as A
from clarity_audit.callgraph import CallGraph, DataFlowGraph
from clarity_audit.config import AnalysisConfig
from clarity_audit.errors import ErrorCode, RiskLevel, Severity, SuppressionManager
from clarity_audit.semantic import (
    STATE_WRITE_FUNCTIONS,
    TOKEN_TRANSFER_FUNCTIONS,
    SemanticResult,
)
from clarity_audit.visitor import find_nodes_by_type

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — ISSUE MODEL
# ═════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Issue:
    """
    One analysis finding.

    Plain issues (unused code, style, complexity) only fill the first five
    fields.  Vulnerabilities also carry ``category``, ``risk_level``,
    ``cwe``, ``recommendation`` and ``code_example``.
    """

    code: str
    severity: Severity
    message: str
    location: Optional[A.SourceLocation] = None
    suggestion: Optional[str] = None
    category: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    cwe: Optional[str] = None
    recommendation: Optional[str] = None
    code_example: Optional[str] = None
    checker: str = ""

    @property
    def is_vulnerability(self) -> bool:
        return self.risk_level is not None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.code,
            "severity": self.severity.label,
            "message": self.message,
        }
        if self.location is not None:
            result["location"] = {"line": self.location.line, "column": self.location.column}
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.is_vulnerability:
            result["category"] = self.category
            result["riskLevel"] = self.risk_level.label  # type: ignore[union-attr]
            if self.cwe:
                result["cwe"] = self.cwe
            result["recommendation"] = self.recommendation
            if self.code_example:
                result["codeExample"] = self.code_example
        return result


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CHECKER BASE CLASS AND CONTEXT
# ═════════════════════════════════════════════════════════════════════════


@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    semantic     : SemanticResult of the program under analysis
    call_graph   : CallGraph built from it
    data_flow    : DataFlowGraph built from it
    config       : AnalysisConfig (auth identifiers, thresholds)
    suppressions : SuppressionManager
    stats        : timing statistics filled in by the runner
    """

    semantic: SemanticResult
    call_graph: CallGraph
    data_flow: DataFlowGraph
    config: AnalysisConfig = field(default_factory=AnalysisConfig)
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def program(self) -> A.Program:
        return self.semantic.program


class Checker(ABC):
    """
    Abstract base class for all vulnerability checkers.

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``code``, ``category``,
        ``risk_level`` and optionally ``cwe``
      - Implement ``collect_evidence()`` and ``diagnose()``
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    code: ClassVar[ErrorCode] = ErrorCode.INTERNAL_CHECKER_ERROR
    category: ClassVar[str] = ""
    risk_level: ClassVar[RiskLevel] = RiskLevel.MEDIUM
    cwe: ClassVar[Optional[str]] = None

    def __init__(self) -> None:
        self._issues: List[Issue] = []

    @property
    def issues(self) -> List[Issue]:
        return list(self._issues)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection.  Default does nothing."""

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        ...

    def report(self, ctx: CheckerContext) -> List[Issue]:
        return [
            issue for issue in self._issues
            if not ctx.suppressions.is_suppressed(issue.code, issue.location)
        ]

    def _emit(
        self,
        message: str,
        location: Optional[A.SourceLocation],
        recommendation: str,
        suggestion: Optional[str] = None,
        code_example: Optional[str] = None,
    ) -> None:
        self._issues.append(Issue(
            code=self.code.code,
            severity=self.code.default_severity,
            message=message,
            location=location,
            suggestion=suggestion,
            category=self.category,
            risk_level=self.risk_level,
            cwe=self.cwe,
            recommendation=recommendation,
            code_example=code_example,
            checker=self.name,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════


class CheckerRegistry:
    """
    Registry of available checkers with filtering.

    >>> registry = CheckerRegistry()
    >>> registry.register(ReentrancyChecker)
    >>> registry.disable("reentrancy")
    >>> registry.get_enabled()
    []
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def unregister(self, name: str) -> None:
        self._checkers.pop(name, None)

    def disable(self, name: str) -> None:
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [
            cls for name, cls in self._checkers.items()
            if name not in self._disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_code(self, code: str) -> List[Type[Checker]]:
        return [cls for cls in self._checkers.values() if cls.code.code == code]

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — HELPERS
# ═════════════════════════════════════════════════════════════════════════


def _calls_named(body: Tuple[A.Expression, ...], names: FrozenSet[str]) -> List[A.FunctionCall]:
    calls: List[A.FunctionCall] = []
    for expr in body:
        calls.extend(c for c in find_nodes_by_type(expr, A.FunctionCall) if c.name in names)
    return calls


def _mentions_any(node: A.Node, identifiers: FrozenSet[str]) -> bool:
    return any(i.name in identifiers for i in find_nodes_by_type(node, A.Identifier))


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — CONCRETE CHECKERS
# ═════════════════════════════════════════════════════════════════════════

# ─────────────────────────────────────────────────────────────────────────
#  5.1  Reentrancy (CWE-841)
# ─────────────────────────────────────────────────────────────────────────

_REENTRANCY_EXAMPLE = """
;; BAD: External call before state update
(define-public (withdraw (amount uint))
  (begin
    (unwrap! (stx-transfer? amount tx-sender recipient) (err u1))
    (map-set balances tx-sender (- (get-balance tx-sender) amount))
    (ok true)
  )
)

;; GOOD: State update before external call
(define-public (withdraw (amount uint))
  (begin
    (map-set balances tx-sender (- (get-balance tx-sender) amount))
    (unwrap! (stx-transfer? amount tx-sender recipient) (err u1))
    (ok true)
  )
)"""


class ReentrancyChecker(Checker):
    """
    A state write that follows an external interaction in the same body.

    The body is flattened in pre-order, so a write nested inside a later
    sibling counts as "after" every node of an earlier sibling.  External
    interactions are external calls and STX/FT/NFT transfers.
    """

    name: ClassVar[str] = "reentrancy"
    description: ClassVar[str] = "State modification after an external interaction"
    code: ClassVar[ErrorCode] = ErrorCode.REENTRANCY
    category: ClassVar[str] = "reentrancy"
    risk_level: ClassVar[RiskLevel] = RiskLevel.HIGH
    cwe: ClassVar[Optional[str]] = "CWE-841"

    def __init__(self) -> None:
        super().__init__()
        self._flagged: List[A.FunctionDef] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        facts = ctx.semantic.facts
        for func in ctx.program.functions():
            seen_external = False
            for call, info in facts.calls_in(func.body):
                if seen_external and call.name in STATE_WRITE_FUNCTIONS:
                    self._flagged.append(func)
                    break
                if info.is_external or call.name in TOKEN_TRANSFER_FUNCTIONS:
                    seen_external = True

    def diagnose(self, ctx: CheckerContext) -> None:
        for func in self._flagged:
            self._emit(
                f"Function '{func.name}' may be vulnerable to reentrancy attacks",
                func.location,
                recommendation=(
                    "Use the checks-effects-interactions pattern: perform all checks "
                    "first, then update state, then make external calls."
                ),
                suggestion="Move state updates before external calls or use reentrancy guards.",
                code_example=_REENTRANCY_EXAMPLE,
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.2  Integer overflow / underflow (CWE-190)
# ─────────────────────────────────────────────────────────────────────────

_OVERFLOW_EXAMPLE = """
;; BAD: No overflow check
(+ balance amount)

;; GOOD: With overflow check
(asserts! (<= amount (- u340282366920938463463374607431768211455 balance)) (err u1))
(+ balance amount)"""


class OverflowChecker(Checker):
    """
    Every ``+``, ``-`` and ``*`` call.

    The bounds-check test always answers "absent", so every arithmetic
    call is reported.
    """

    name: ClassVar[str] = "overflow"
    description: ClassVar[str] = "Arithmetic without a bounds check"
    code: ClassVar[ErrorCode] = ErrorCode.INTEGER_OVERFLOW
    category: ClassVar[str] = "overflow"
    risk_level: ClassVar[RiskLevel] = RiskLevel.MEDIUM
    cwe: ClassVar[Optional[str]] = "CWE-190"

    OPERATORS: ClassVar[FrozenSet[str]] = frozenset({"+", "-", "*"})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[A.FunctionCall] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for func in ctx.program.functions():
            for call in _calls_named(func.body, self.OPERATORS):
                if not self._has_bounds_check(call, func):
                    self._sites.append(call)

    def _has_bounds_check(self, call: A.FunctionCall, func: A.FunctionDef) -> bool:
        return False

    def diagnose(self, ctx: CheckerContext) -> None:
        for call in self._sites:
            self._emit(
                f"Potential integer overflow in {call.name} operation",
                call.location,
                recommendation=(
                    "Add bounds checking before arithmetic operations to prevent "
                    "overflow/underflow."
                ),
                suggestion="Use safe arithmetic patterns or add explicit bounds checks.",
                code_example=_OVERFLOW_EXAMPLE,
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.3  Missing authorization (CWE-862)
# ─────────────────────────────────────────────────────────────────────────

_AUTHORIZATION_EXAMPLE = """
;; BAD: No authorization check
(define-public (admin-function)
  (begin
    (var-set important-config u42)
    (ok true)
  )
)

;; GOOD: With authorization check
(define-public (admin-function)
  (begin
    (asserts! (is-eq tx-sender contract-owner) (err u401))
    (var-set important-config u42)
    (ok true)
  )
)"""


class AuthorizationChecker(Checker):
    """Public state-modifying functions with no caller check."""

    name: ClassVar[str] = "authorization"
    description: ClassVar[str] = "Public state change without an authorization check"
    code: ClassVar[ErrorCode] = ErrorCode.MISSING_AUTHORIZATION
    category: ClassVar[str] = "authorization"
    risk_level: ClassVar[RiskLevel] = RiskLevel.HIGH
    cwe: ClassVar[Optional[str]] = "CWE-862"

    CHECK_FUNCTIONS: ClassVar[FrozenSet[str]] = frozenset({"asserts!", "is-eq"})

    def __init__(self) -> None:
        super().__init__()
        self._auth_identifiers: FrozenSet[str] = frozenset()
        self._flagged: List[A.FunctionDef] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._auth_identifiers = frozenset(ctx.config.auth_identifiers)

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for func in ctx.program.functions():
            if not func.is_public:
                continue
            facts = ctx.semantic.function_facts(func)
            if facts is None or not facts.modifies_state:
                continue
            if not self._has_authorization_check(func):
                self._flagged.append(func)

    def _has_authorization_check(self, func: A.FunctionDef) -> bool:
        for call in _calls_named(func.body, self.CHECK_FUNCTIONS):
            if any(_mentions_any(arg, self._auth_identifiers) for arg in call.args):
                return True
        return False

    def diagnose(self, ctx: CheckerContext) -> None:
        for func in self._flagged:
            self._emit(
                f"Public function '{func.name}' modifies state without authorization checks",
                func.location,
                recommendation=(
                    "Add proper authorization checks to ensure only authorized users "
                    "can modify state."
                ),
                suggestion="Use tx-sender verification, role-based access control, or ownership patterns.",
                code_example=_AUTHORIZATION_EXAMPLE,
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.4  Unsafe operations
# ─────────────────────────────────────────────────────────────────────────


class UnsafeOperationChecker(Checker):
    """``unwrap!`` / ``unwrap-panic`` calls and every division."""

    name: ClassVar[str] = "unsafe-operation"
    description: ClassVar[str] = "Panicking unwraps and unchecked division"
    code: ClassVar[ErrorCode] = ErrorCode.UNSAFE_OPERATION
    category: ClassVar[str] = "unsafe-operation"
    risk_level: ClassVar[RiskLevel] = RiskLevel.MEDIUM

    OPERATIONS: ClassVar[FrozenSet[str]] = frozenset({"unwrap!", "unwrap-panic", "/"})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[A.FunctionCall] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for func in ctx.program.functions():
            self._sites.extend(_calls_named(func.body, self.OPERATIONS))

    def diagnose(self, ctx: CheckerContext) -> None:
        for call in self._sites:
            if call.name == "/":
                self._emit(
                    "Unsafe operation: division",
                    call.location,
                    recommendation="Check for division by zero before performing division.",
                    suggestion="Add assertions to ensure the divisor is not zero.",
                )
            else:
                self._emit(
                    f"Unsafe operation: {call.name}",
                    call.location,
                    recommendation="Use proper error handling instead of unwrap! or unwrap-panic.",
                    suggestion="Consider using match expressions or asserts! with proper error handling.",
                )


# ─────────────────────────────────────────────────────────────────────────
#  5.5  State inconsistency
# ─────────────────────────────────────────────────────────────────────────


class StateInconsistencyChecker(Checker):
    """Variables and maps written by more than one function."""

    name: ClassVar[str] = "state-inconsistency"
    description: ClassVar[str] = "Shared state with several writers"
    code: ClassVar[ErrorCode] = ErrorCode.STATE_INCONSISTENCY
    category: ClassVar[str] = "state-inconsistency"
    risk_level: ClassVar[RiskLevel] = RiskLevel.LOW

    def __init__(self) -> None:
        super().__init__()
        self._shared: List[Tuple[str, str, List[str]]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for node in ctx.data_flow.nodes.values():
            if node.kind in ("variable", "map") and len(node.writers) > 1:
                self._shared.append((node.name, node.kind, list(node.writers)))

    def diagnose(self, ctx: CheckerContext) -> None:
        env = ctx.semantic.environment
        for name, kind, writers in self._shared:
            if kind == "variable":
                label, info = "Variable", env.variables.get(name)
            else:
                label, info = "Map", env.maps.get(name)
            self._emit(
                f"{label} '{name}' is modified by multiple functions: {', '.join(writers)}",
                info.span.start if info is not None else None,
                recommendation="Ensure proper synchronization and access patterns for shared state.",
                suggestion="Consider using atomic operations or restructuring to avoid race conditions.",
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

BUILTIN_CHECKERS: Tuple[Type[Checker], ...] = (
    ReentrancyChecker,
    OverflowChecker,
    AuthorizationChecker,
    UnsafeOperationChecker,
    StateInconsistencyChecker,
)


def default_registry(disabled: Sequence[str] = ()) -> CheckerRegistry:
    """A fresh registry holding every built-in checker."""
    registry = CheckerRegistry()
    for cls in BUILTIN_CHECKERS:
        registry.register(cls)
    for name in disabled:
        registry.disable(name)
    return registry


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    issues            : All issues from all checkers, in checker order
    issues_by_checker : Issues grouped by checker name
    stats             : Timing statistics
    checker_names     : Names of checkers that were run
    """

    issues: List[Issue] = field(default_factory=list)
    issues_by_checker: Dict[str, List[Issue]] = field(default_factory=lambda: defaultdict(list))
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)

    def by_risk(self, level: RiskLevel) -> List[Issue]:
        return [i for i in self.issues if i.risk_level is level]

    def by_category(self, category: str) -> List[Issue]:
        return [i for i in self.issues if i.category == category]

    def summary(self) -> str:
        lines = [f"Checker run complete: {len(self.issues)} finding(s)"]
        for name in self.checker_names:
            count = len(self.issues_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers against one analyzed program.

    >>> runner = CheckerRunner()
    >>> results = runner.run(ctx)
    >>> print(results.summary())
    """

    def __init__(self, registry: Optional[CheckerRegistry] = None) -> None:
        self.registry = registry or default_registry()

    def run(
        self,
        ctx: CheckerContext,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        results = CheckerRunResults()

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is not None:
                    checker_classes.append(cls)
        else:
            checker_classes = self.registry.get_enabled()

        for cls in checker_classes:
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                issues = checker.report(ctx)
            except Exception as exc:
                logger.warning("checker %s failed: %s", checker_name, exc, exc_info=True)
                issues = [Issue(
                    code=ErrorCode.INTERNAL_CHECKER_ERROR.code,
                    severity=Severity.INFO,
                    message=f"Checker '{checker_name}' failed: {exc}",
                    checker=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.issues.extend(issues)
            results.issues_by_checker[checker_name] = issues
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms
            logger.debug("checker %s: %d finding(s) in %.1fms", checker_name, len(issues), elapsed_ms)

        ctx.stats.update(results.stats)
        return results


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — UNUSED CODE
# ═════════════════════════════════════════════════════════════════════════


def _unused(code: ErrorCode, message: str, location: A.SourceLocation, suggestion: str) -> Issue:
    return Issue(
        code=code.code,
        severity=Severity.WARNING,
        message=message,
        location=location,
        suggestion=suggestion,
        checker="unused-code",
    )


def collect_unused_code(semantic: SemanticResult) -> List[Issue]:
    """
    Unused constants, variables and maps, and write-only storage.

    A variable or map that is written but never read is reported as
    write-only only, not also as unused.
    """
    env = semantic.environment
    issues: List[Issue] = []

    for name, const in env.constants.items():
        if not const.used:
            issues.append(_unused(
                ErrorCode.UNUSED_CONSTANT,
                f"Constant '{name}' is defined but never used",
                const.span.start,
                "Remove unused constants to reduce contract size and improve readability.",
            ))
    for name, var in env.variables.items():
        if not var.accessed and not var.modified:
            issues.append(_unused(
                ErrorCode.UNUSED_VARIABLE,
                f"Variable '{name}' is defined but never accessed",
                var.span.start,
                "Remove unused variables or ensure they are accessed where needed.",
            ))
    for name, mp in env.maps.items():
        if not mp.accessed and not mp.modified:
            issues.append(_unused(
                ErrorCode.UNUSED_MAP,
                f"Map '{name}' is defined but never accessed",
                mp.span.start,
                "Remove unused maps to reduce contract size.",
            ))

    for name, var in env.variables.items():
        if var.modified and not var.accessed:
            issues.append(_unused(
                ErrorCode.WRITE_ONLY_VARIABLE,
                f"Variable '{name}' is modified but never read",
                var.span.start,
                "Ensure variables that are modified are also read, or remove unnecessary writes.",
            ))
    for name, mp in env.maps.items():
        if mp.modified and not mp.accessed:
            issues.append(_unused(
                ErrorCode.WRITE_ONLY_MAP,
                f"Map '{name}' is modified but never read",
                mp.span.start,
                "Ensure maps that are modified are also accessed, or remove unnecessary writes.",
            ))
    return issues
