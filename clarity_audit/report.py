"""
clarity_audit/report.py
═══════════════════════

Renderers for analysis results.

  * ``render_console_report``   — sectioned, coloured text (termcolor)
  * ``render_json_report``      — machine-readable JSON document
  * ``render_vulnerabilities``  — per-finding detail with recommendations
  * ``render_audit_summary``    — risk breakdown used by ``audit``
  * ``render_call_graph`` / ``render_data_flow``
  * ``AstVisualizer``           — box-drawing tree of a parsed contract

Every renderer takes ``color``; with ``color=False`` the output is plain
text and byte-identical across runs.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from termcolor import colored

from clarity_audit import ast as A
from clarity_audit.analyzer import EnhancedAnalysisResult
from clarity_audit.checkers import Issue
from clarity_audit.errors import RiskLevel, Severity
from clarity_audit.visitor import ExpressionVisitor, StatementVisitor

__all__ = [
    "AstVisualizer",
    "render_console_report",
    "render_json_report",
    "render_vulnerabilities",
    "render_audit_summary",
    "render_call_graph",
    "render_data_flow",
]


def _paint(text: str, color: Optional[str], enabled: bool, attrs: Sequence[str] = ()) -> str:
    if not enabled:
        return text
    return colored(text, color, attrs=list(attrs) or None)


# ═════════════════════════════════════════════════════════════════════════
#  CONSOLE REPORT
# ═════════════════════════════════════════════════════════════════════════

_SEVERITY_HEADINGS = (
    (Severity.ERROR, "Errors:"),
    (Severity.WARNING, "Warnings:"),
    (Severity.INFO, "Infos:"),
)


def _issue_lines(issues: Iterable[Issue], color: bool) -> List[str]:
    lines: List[str] = []
    for i, issue in enumerate(issues, 1):
        lines.append(f"{i}. {_paint(issue.code, 'cyan', color)}: {issue.message}")
        if issue.suggestion:
            lines.append("   " + _paint(f"Suggestion: {issue.suggestion}", "dark_grey", color))
        if issue.location is not None:
            loc = f"Line: {issue.location.line}, Column: {issue.location.column}"
            lines.append("   " + _paint(f"Location: {loc}", "dark_grey", color))
    return lines


def render_console_report(
    filename: str,
    program: Optional[A.Program],
    result: EnhancedAnalysisResult,
    color: bool = True,
    include_ast: bool = False,
) -> str:
    lines = [
        _paint("Clarity Contract Audit Report", "blue", color, ["bold"]),
        _paint(f"Contract: {filename}", "dark_grey", color),
        "",
    ]

    counts = {sev: len(result.issues_by_severity(sev)) for sev, _ in _SEVERITY_HEADINGS}
    lines.append(_paint("Summary:", "green", color, ["bold"]))
    lines.append("- " + _paint(f"{counts[Severity.ERROR]} errors", "red", color))
    lines.append("- " + _paint(f"{counts[Severity.WARNING]} warnings", "yellow", color))
    lines.append("- " + _paint(f"{counts[Severity.INFO]} infos", "blue", color))
    lines.append("")

    m = result.metrics
    lines += [
        _paint("Metrics:", "green", color, ["bold"]),
        f"- Functions: {m.function_count} ({m.public_function_count} public, "
        f"{m.private_function_count} private, {m.read_only_function_count} read-only)",
        f"- Maps: {m.map_count}",
        f"- Constants: {m.constant_count}",
        f"- Variables: {m.var_count}",
        f"- Complexity score: {m.complexity_score}",
        "",
    ]

    if result.issues:
        lines.append(_paint("Issues:", "green", color, ["bold"]))
        for severity, heading in _SEVERITY_HEADINGS:
            group = result.issues_by_severity(severity)
            if group:
                lines.append(_paint(heading, severity.color, color, ["bold"]))
                lines += _issue_lines(group, color)
                lines.append("")
    else:
        lines.append(_paint("No issues found.", "green", color))
        lines.append("")

    if include_ast and program is not None:
        lines.append(_paint("Abstract Syntax Tree:", "green", color, ["bold"]))
        lines.append(AstVisualizer(color).visualize(program))
        lines.append("")
    return "\n".join(lines)


def render_vulnerabilities(vulnerabilities: Sequence[Issue], color: bool = True, verbose: bool = False) -> str:
    if not vulnerabilities:
        return _paint("No security vulnerabilities found.", "green", color)
    lines = [_paint("Security Vulnerabilities Found:", "red", color, ["bold"])]
    for vuln in vulnerabilities:
        risk = vuln.risk_level or RiskLevel.LOW
        lines.append("")
        lines.append(_paint(f"{vuln.code} ({risk.label} risk):", risk.color, color, ["bold"]))
        lines.append(f"   {vuln.message}")
        if vuln.location is not None:
            lines.append(f"   Location: {vuln.location}")
        lines.append(f"   Category: {vuln.category}")
        if vuln.cwe:
            lines.append(f"   CWE: {vuln.cwe}")
        lines.append(f"   Recommendation: {vuln.recommendation}")
        if verbose and vuln.code_example:
            lines.append("")
            lines.append("   Code Example:")
            lines += ["   " + ln for ln in vuln.code_example.strip("\n").splitlines()]
    return "\n".join(lines)


def render_audit_summary(result: EnhancedAnalysisResult, color: bool = True) -> str:
    if not result.vulnerabilities:
        return _paint("SECURITY AUDIT PASSED - No vulnerabilities detected", "green", color, ["bold"])

    by_level = {
        level: [v for v in result.vulnerabilities if v.risk_level is level]
        for level in RiskLevel
    }
    lines = [_paint("SECURITY AUDIT RESULTS:", "red", color, ["bold"])]
    for level in sorted(RiskLevel, key=lambda r: r.rank, reverse=True):
        lines.append(f"   {level.label.capitalize()}: {len(by_level[level])}")

    severe = by_level[RiskLevel.CRITICAL] + by_level[RiskLevel.HIGH]
    for i, vuln in enumerate(severe, 1):
        risk = vuln.risk_level or RiskLevel.HIGH
        lines.append("")
        lines.append(_paint(f"{i}. {vuln.code} ({risk.label.upper()} RISK)", risk.color, color, ["bold"]))
        lines.append(f"   {vuln.message}")
        lines.append(f"   Category: {vuln.category}")
        if vuln.cwe:
            lines.append(f"   CWE: {vuln.cwe}")
        lines.append(f"   Recommendation: {vuln.recommendation}")

    lines.append("")
    lines.append("AUDIT SUMMARY:")
    if by_level[RiskLevel.CRITICAL]:
        lines.append("   " + _paint("CRITICAL ISSUES FOUND - Immediate action required", "magenta", color))
    elif by_level[RiskLevel.HIGH]:
        lines.append("   " + _paint("HIGH RISK ISSUES - Should be addressed before deployment", "red", color))
    elif by_level[RiskLevel.MEDIUM]:
        lines.append("   " + _paint("MEDIUM RISK ISSUES - Recommended to address", "yellow", color))
    else:
        lines.append("   " + _paint("No high-risk vulnerabilities found", "green", color))
    return "\n".join(lines)


def render_call_graph(result: EnhancedAnalysisResult, color: bool = True) -> str:
    lines = [_paint("Call Graph:", "green", color, ["bold"])]
    for node in result.call_graph.nodes.values():
        lines.append(f"   {_paint(node.function_name, 'yellow', color)}:")
        lines.append(f"     Calls: [{', '.join(node.calls) or 'none'}]")
        lines.append(f"     Called by: [{', '.join(node.called_by) or 'none'}]")
        lines.append(
            f"     External: {str(node.is_external).lower()}, "
            f"State-modifying: {str(node.modifies_state).lower()}"
        )
    return "\n".join(lines)


def render_data_flow(result: EnhancedAnalysisResult, color: bool = True, limit: int = 5) -> str:
    nodes = list(result.data_flow_graph.nodes.values())
    lines = [_paint("Data Flow:", "green", color, ["bold"])]
    for node in nodes[:limit]:
        lines.append(f"   {_paint(node.name, 'yellow', color)} ({node.kind}):")
        lines.append(f"     Readers: [{', '.join(node.readers) or 'none'}]")
        lines.append(f"     Writers: [{', '.join(node.writers) or 'none'}]")
    if len(nodes) > limit:
        lines.append(f"   ... and {len(nodes) - limit} more")
    return "\n".join(lines)


# ═════════════════════════════════════════════════════════════════════════
#  JSON REPORT
# ═════════════════════════════════════════════════════════════════════════


def render_json_report(
    filename: str,
    result: EnhancedAnalysisResult,
    errors: Sequence[Any] = (),
    warnings: Sequence[Any] = (),
    indent: int = 2,
) -> str:
    doc: Dict[str, Any] = {
        "contract": filename,
        "success": not errors,
        "errors": [e.to_dict() for e in errors],
        "warnings": [w.to_dict() for w in warnings],
    }
    doc.update(result.to_dict())
    return json.dumps(doc, indent=indent)


# ═════════════════════════════════════════════════════════════════════════
#  AST VISUALIZER
# ═════════════════════════════════════════════════════════════════════════


class _NodeLabeler(ExpressionVisitor, StatementVisitor):
    """One-line label for every node kind."""

    # statements

    def visit_function_def(self, node: A.FunctionDef) -> str:
        return f"function-definition: {node.name} ({node.visibility.value})"

    def visit_constant_def(self, node: A.ConstantDef) -> str:
        return f"constant-definition: {node.name}"

    def visit_map_def(self, node: A.MapDef) -> str:
        return f"map-definition: {node.name} {node.key_type} -> {node.value_type}"

    def visit_data_var_def(self, node: A.DataVarDef) -> str:
        return f"data-var-definition: {node.name} {node.var_type}"

    def visit_nft_def(self, node: A.NonFungibleTokenDef) -> str:
        return f"non-fungible-token: {node.name} {node.asset_type}"

    def visit_ft_def(self, node: A.FungibleTokenDef) -> str:
        return f"fungible-token: {node.name}"

    def visit_trait_def(self, node: A.TraitDef) -> str:
        names = ", ".join(f.name for f in node.functions)
        return f"trait-definition: {node.name} [{names}]"

    def visit_use_trait(self, node: A.UseTrait) -> str:
        return f"use-trait: {node.alias}"

    def visit_impl_trait(self, node: A.ImplTrait) -> str:
        return "impl-trait"

    # expressions

    def visit_function_call(self, node: A.FunctionCall) -> str:
        return f"function-call: {node.name}"

    def visit_let_expr(self, node: A.LetExpr) -> str:
        return "let"

    def visit_begin_expr(self, node: A.BeginExpr) -> str:
        return "begin"

    def visit_if_expr(self, node: A.IfExpr) -> str:
        return "if"

    def visit_match_expr(self, node: A.MatchExpr) -> str:
        return "match"

    def visit_list_literal(self, node: A.ListLiteral) -> str:
        return f"list ({len(node.elements)})"

    def visit_tuple_literal(self, node: A.TupleLiteral) -> str:
        return "tuple"

    def visit_identifier(self, node: A.Identifier) -> str:
        return f"identifier: {node.name}"

    def visit_uint_literal(self, node: A.UIntLiteral) -> str:
        return f"uint: u{node.value}"

    def visit_int_literal(self, node: A.IntLiteral) -> str:
        return f"int: {node.value}"

    def visit_bool_literal(self, node: A.BoolLiteral) -> str:
        return f"bool: {str(node.value).lower()}"

    def visit_string_literal(self, node: A.StringLiteral) -> str:
        return f"string-{node.encoding.value}: {json.dumps(node.value)}"

    def visit_buffer_literal(self, node: A.BufferLiteral) -> str:
        return f"buffer: 0x{node.hex}"

    def visit_principal_literal(self, node: A.PrincipalLiteral) -> str:
        return f"principal: {node}"

    # helper nodes

    def visit_let_binding(self, node: A.LetBinding) -> str:
        return f"binding: {node.name}"

    def visit_tuple_field(self, node: A.TupleField) -> str:
        return f"field: {node.name}"

    def visit_match_arm(self, node: A.MatchArm) -> str:
        return "arm"

    def visit_wrapper_pattern(self, node: A.WrapperPattern) -> str:
        return f"pattern: {node.kind}"

    def visit_none_pattern(self, node: A.NonePattern) -> str:
        return "pattern: none"

    def visit_identifier_pattern(self, node: A.IdentifierPattern) -> str:
        return f"pattern: {node.name}"

    def visit_literal_pattern(self, node: A.LiteralPattern) -> str:
        return "pattern: literal"

    def visit_program(self, node: A.Program) -> str:
        return "Program"


class AstVisualizer:
    """
    Box-drawing rendering of a program::

        Program
        ├─ constant-definition: contract-owner
        │  └─ identifier: tx-sender
        └─ function-definition: get-owner (read-only)
           └─ identifier: contract-owner
    """

    def __init__(self, color: bool = True) -> None:
        self.color = color
        self._labeler = _NodeLabeler()

    def visualize(self, program: A.Program) -> str:
        lines = [_paint("Program", "blue", self.color)]
        self._children(program, "", lines)
        return "\n".join(lines)

    def _children(self, node: A.Node, indent: str, lines: List[str]) -> None:
        kids = node.children()
        for i, child in enumerate(kids):
            last = i == len(kids) - 1
            branch = "└─ " if last else "├─ "
            lines.append(indent + branch + self._label(child))
            if isinstance(child, A.FunctionDef) and child.params:
                sub = indent + ("   " if last else "│  ")
                params = ", ".join(f"{p.name}: {p.type}" for p in child.params)
                lines.append(sub + ("└─ " if not child.body else "├─ ") + f"params: {params}")
            self._children(child, indent + ("   " if last else "│  "), lines)

    def _label(self, node: A.Node) -> str:
        text = self._labeler.visit(node)
        kind, sep, rest = text.partition(": ")
        if not sep:
            return _paint(text, "green", self.color)
        return f"{_paint(kind, 'green', self.color)}: {_paint(rest, 'yellow', self.color)}"
