"""
clarity_audit/analyzer.py
═════════════════════════

Static analysis over a semantically analyzed contract.

``StaticAnalyzer.analyze_enhanced`` combines four layers, in this order:

  1. base issues        — unused private functions, unwrap and division
                          counts, function naming
  2. semantic issues    — per-function info (parameter count, public state
                          changes, failable public functions) followed by
                          unused and write-only storage
  3. vulnerabilities    — the registered checkers (see ``checkers``)
  4. metrics            — definition counts and a complexity score

The analyzer never mutates its input; the call graph and data-flow graph
are built fresh for every call.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from clarity_audit import ast as A
from clarity_audit.callgraph import CallGraph, DataFlowGraph, build_callgraph, build_dataflow_graph
from clarity_audit.checkers import (
    CheckerContext,
    CheckerRunner,
    Issue,
    collect_unused_code,
    default_registry,
)
from clarity_audit.config import AnalysisConfig
from clarity_audit.errors import ErrorCode, RiskLevel, Severity, SuppressionManager
from clarity_audit.semantic import SemanticResult, TypeEnvironment
from clarity_audit.visitor import find_function_calls

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — RESULT TYPES
# ═════════════════════════════════════════════════════════════════════════


@dataclass
class Metrics:
    function_count: int = 0
    public_function_count: int = 0
    private_function_count: int = 0
    read_only_function_count: int = 0
    map_count: int = 0
    constant_count: int = 0
    var_count: int = 0
    complexity_score: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class AnalysisResult:
    """Base analysis only: issues and metrics."""

    issues: List[Issue] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)


@dataclass
class EnhancedAnalysisResult(AnalysisResult):
    """
    Full analysis.  ``issues`` holds base issues, then semantic issues,
    then vulnerabilities; the two latter groups are also kept separately.
    """

    semantic_issues: List[Issue] = field(default_factory=list)
    vulnerabilities: List[Issue] = field(default_factory=list)
    call_graph: CallGraph = field(default_factory=CallGraph)
    data_flow_graph: DataFlowGraph = field(default_factory=DataFlowGraph)
    environment: Optional[TypeEnvironment] = None
    checker_stats: Dict[str, Any] = field(default_factory=dict)

    def vulnerabilities_at_least(self, level: RiskLevel) -> List[Issue]:
        return [
            v for v in self.vulnerabilities
            if v.risk_level is not None and v.risk_level.at_least(level)
        ]

    @property
    def highest_risk(self) -> Optional[RiskLevel]:
        levels = [v.risk_level for v in self.vulnerabilities if v.risk_level is not None]
        return max(levels, key=lambda r: r.rank) if levels else None

    def issues_by_severity(self, severity: Severity) -> List[Issue]:
        return [i for i in self.issues if i.severity is severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "metrics": self.metrics.to_dict(),
            "semanticIssues": [i.to_dict() for i in self.semantic_issues],
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "callGraph": [n.to_dict() for n in self.call_graph.nodes.values()],
            "dataFlowGraph": [n.to_dict() for n in self.data_flow_graph.nodes.values()],
            "typeEnvironment": self.environment.summary() if self.environment else {},
        }


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — STATIC ANALYZER
# ═════════════════════════════════════════════════════════════════════════


class StaticAnalyzer:
    """
    Runs the base analysis, the semantic-info analysis and the registered
    vulnerability checkers over one ``SemanticResult``.

    >>> semantic = analyze_program(parse(source).ast)
    >>> result = StaticAnalyzer().analyze_enhanced(semantic)
    >>> [v.message for v in result.vulnerabilities]
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or AnalysisConfig()

    # ── Public entry points ──────────────────────────────────────────

    def analyze(self, semantic: SemanticResult) -> AnalysisResult:
        return AnalysisResult(
            issues=self._base_issues(semantic),
            metrics=self.calculate_metrics(semantic.program),
        )

    def analyze_enhanced(
        self,
        semantic: SemanticResult,
        suppressions: Optional[SuppressionManager] = None,
    ) -> EnhancedAnalysisResult:
        suppressions = self._suppressions(suppressions)
        call_graph = build_callgraph(semantic)
        data_flow = build_dataflow_graph(semantic)

        ctx = CheckerContext(
            semantic=semantic,
            call_graph=call_graph,
            data_flow=data_flow,
            config=self.config,
            suppressions=suppressions,
        )
        runner = CheckerRunner(default_registry(self.config.disabled_checkers))
        run = runner.run(ctx)

        def keep(issue: Issue) -> bool:
            return not suppressions.is_suppressed(issue.code, issue.location)

        base = [i for i in self._base_issues(semantic) if keep(i)]
        semantic_issues = [
            i for i in self._semantic_info_issues(semantic) + collect_unused_code(semantic)
            if keep(i)
        ]
        vulnerabilities = run.issues

        logger.debug(
            "static analysis: %d base, %d semantic, %d vulnerability finding(s)",
            len(base), len(semantic_issues), len(vulnerabilities),
        )
        return EnhancedAnalysisResult(
            issues=base + semantic_issues + vulnerabilities,
            metrics=self.calculate_metrics(semantic.program),
            semantic_issues=semantic_issues,
            vulnerabilities=vulnerabilities,
            call_graph=call_graph,
            data_flow_graph=data_flow,
            environment=semantic.environment,
            checker_stats=dict(run.stats),
        )

    def _suppressions(self, given: Optional[SuppressionManager]) -> SuppressionManager:
        manager = given if given is not None else SuppressionManager()
        for code in self.config.suppressed_codes:
            manager.add_global_suppression(code)
        return manager

    # ── Base analysis ────────────────────────────────────────────────

    def _base_issues(self, semantic: SemanticResult) -> List[Issue]:
        program = semantic.program
        issues: List[Issue] = []

        references = semantic.facts.references
        for func in program.functions():
            if func.visibility is not A.Visibility.PRIVATE:
                continue
            if not references.get(func.name, set()) - {func.name}:
                issues.append(Issue(
                    code=ErrorCode.UNUSED_FUNCTION.code,
                    severity=Severity.WARNING,
                    message=f"Private function '{func.name}' is defined but never called",
                    location=func.location,
                    suggestion="Consider removing the unused function or making sure it's called where needed.",
                ))

        unwraps = len(find_function_calls(program, "unwrap!")) + len(find_function_calls(program, "unwrap-panic"))
        if unwraps:
            issues.append(Issue(
                code=ErrorCode.UNSAFE_UNWRAP.code,
                severity=Severity.WARNING,
                message=f"Found {unwraps} usage(s) of unwrap! or unwrap-panic, which can lead to runtime errors",
                suggestion="Consider using 'match' or 'asserts!' with proper error handling instead.",
            ))

        divisions = len(find_function_calls(program, "/"))
        if divisions:
            issues.append(Issue(
                code=ErrorCode.POTENTIAL_DIVISION_BY_ZERO.code,
                severity=Severity.INFO,
                message=f"Found {divisions} division operation(s). Ensure divisors cannot be zero",
                suggestion="Consider adding checks before division to ensure the divisor is not zero.",
            ))

        naming = self.config.naming_regex
        for func in program.functions():
            if not naming.match(func.name):
                fixed = re.sub(r"[^a-z0-9-]", "-", func.name.lower())
                issues.append(Issue(
                    code=ErrorCode.NAMING_CONVENTION.code,
                    severity=Severity.INFO,
                    message=(
                        f"Function name '{func.name}' does not follow kebab-case "
                        "convention (lowercase with hyphens)"
                    ),
                    location=func.location,
                    suggestion=f"Rename to follow kebab-case convention, e.g., '{fixed}'",
                ))
        return issues

    # ── Semantic-info analysis ───────────────────────────────────────

    def _semantic_info_issues(self, semantic: SemanticResult) -> List[Issue]:
        issues: List[Issue] = []
        program = semantic.program
        for name, sig in semantic.environment.functions.items():
            func = program.find_definition(A.FunctionDef, name)
            if not isinstance(func, A.FunctionDef):
                continue
            facts = semantic.function_facts(func)

            if len(func.params) > self.config.max_parameters:
                issues.append(Issue(
                    code=ErrorCode.HIGH_COMPLEXITY.code,
                    severity=Severity.WARNING,
                    message=f"Function '{name}' has many parameters ({len(func.params)}), consider refactoring",
                    location=func.location,
                    suggestion="Consider using a tuple or breaking the function into smaller functions.",
                ))
            if facts is None or sig.visibility is not A.Visibility.PUBLIC:
                continue
            if facts.modifies_state and not facts.calls_external:
                issues.append(Issue(
                    code=ErrorCode.STATE_MODIFICATION_PUBLIC.code,
                    severity=Severity.INFO,
                    message=f"Public function '{name}' modifies state without external calls",
                    location=func.location,
                    suggestion="Ensure proper access controls are in place for state-modifying public functions.",
                ))
            if facts.can_fail:
                issues.append(Issue(
                    code=ErrorCode.UNHANDLED_FAILURE.code,
                    severity=Severity.WARNING,
                    message=f"Public function '{name}' can fail, ensure callers handle errors properly",
                    location=func.location,
                    suggestion="Document the error conditions and ensure proper error handling in calling code.",
                ))
        return issues

    # ── Metrics ──────────────────────────────────────────────────────

    @staticmethod
    def calculate_metrics(program: A.Program) -> Metrics:
        functions = program.functions()
        by_visibility = {v: 0 for v in A.Visibility}
        for func in functions:
            by_visibility[func.visibility] += 1
        return Metrics(
            function_count=len(functions),
            public_function_count=by_visibility[A.Visibility.PUBLIC],
            private_function_count=by_visibility[A.Visibility.PRIVATE],
            read_only_function_count=by_visibility[A.Visibility.READ_ONLY],
            map_count=sum(1 for s in program.body if isinstance(s, A.MapDef)),
            constant_count=sum(1 for s in program.body if isinstance(s, A.ConstantDef)),
            var_count=sum(1 for s in program.body if isinstance(s, A.DataVarDef)),
            complexity_score=sum(1 + len(f.params) + len(f.body) for f in functions),
        )
