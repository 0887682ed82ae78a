"""
clarity_audit — static analysis for Clarity smart contracts.

Pipeline::

    source ─► lexer ─► parser ─► semantic ─► analyzer ─► report
                        (AST)    (facts)     (issues, vulnerabilities)

Typical usage::

    from clarity_audit import ParsingService

    result = ParsingService().analyze_text(source, "token.clar")
    for vuln in result.analysis.vulnerabilities:
        print(vuln.risk_level, vuln.message)
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clarity-audit")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

from clarity_audit.analyzer import EnhancedAnalysisResult, StaticAnalyzer
from clarity_audit.config import AnalysisConfig, load_config
from clarity_audit.errors import ClarityAuditError, RiskLevel, Severity
from clarity_audit.lexer import tokenize
from clarity_audit.parser import ParseResult, Parser, parse
from clarity_audit.semantic import SemanticAnalyzer, SemanticResult, analyze_program
from clarity_audit.service import ParsingService, ServiceResult

__all__ = [
    "__version__",
    "AnalysisConfig",
    "ClarityAuditError",
    "EnhancedAnalysisResult",
    "ParseResult",
    "Parser",
    "ParsingService",
    "RiskLevel",
    "SemanticAnalyzer",
    "SemanticResult",
    "ServiceResult",
    "Severity",
    "StaticAnalyzer",
    "analyze_program",
    "load_config",
    "parse",
    "tokenize",
]
