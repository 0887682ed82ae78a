#!/usr/bin/env python3
"""clarity_audit/main.py — CLI entry-point for clarity-audit.

Usage examples
--------------
    # Analyse a contract and print the console report
    clarity-audit analyze token.clar

    # JSON report, only failing on medium risk or worse
    clarity-audit analyze token.clar --format json --fail-on medium

    # Full audit: parsing report, findings, risk breakdown, call graph
    clarity-audit audit token.clar

    # Syntax check only
    clarity-audit validate token.clar

    # Print the AST tree / the definition counts
    clarity-audit parse token.clar
    clarity-audit stats token.clar

Exit codes
----------
    0   Success.
    1   Parse/semantic errors, or a vulnerability at or above ``fail_on``.
    2   Infrastructure failure (missing file, bad configuration).
    130 Interrupted.

The module doubles as ``python -m clarity_audit`` via the companion
``clarity_audit/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from clarity_audit import __version__
from clarity_audit.config import AnalysisConfig, load_config
from clarity_audit.errors import ConfigError
from clarity_audit.report import (
    AstVisualizer,
    render_audit_summary,
    render_call_graph,
    render_console_report,
    render_data_flow,
    render_json_report,
    render_vulnerabilities,
)
from clarity_audit.service import ParsingService, ServiceResult, validate_file

_log = logging.getLogger("clarity_audit")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_INTERRUPTED: int = 130


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``clarity_audit`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("clarity_audit")
    root.setLevel(level)
    if any(getattr(h, "_clarity_audit", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._clarity_audit = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.is_file():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _open_output(dest: Optional[str]) -> TextIO:
    """``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _load_config(args: argparse.Namespace) -> AnalysisConfig:
    try:
        config = load_config(getattr(args, "config", None))
        return config.with_overrides(
            disabled_checkers=tuple(getattr(args, "disable", None) or ()),
            fail_on=getattr(args, "fail_on", None),
        )
    except ConfigError as exc:
        _log.error("%s", exc.message)
        raise SystemExit(EXIT_INFRA)


def _use_color(args: argparse.Namespace) -> bool:
    return not getattr(args, "no_color", False) and sys.stdout.isatty()


def _report_failure(result: ServiceResult) -> int:
    """Print pipeline errors; 2 for an unreadable source, else 1."""
    sys.stderr.write("Parsing failed:\n")
    for err in result.errors:
        sys.stderr.write(f"   {err.message} (Line {err.location.line}:{err.location.column})\n")
    if any(e.code == "source-unreadable" for e in result.errors):
        return EXIT_INFRA
    return EXIT_ERROR


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_analyze(args: argparse.Namespace) -> int:
    """Parse, analyse and report on one contract."""
    config = _load_config(args)
    path = _resolve_path(args.file, "contract")
    result = ParsingService(config).analyze_file(str(path))
    if not result.success or result.analysis is None:
        return _report_failure(result)

    analysis = result.analysis
    color = _use_color(args) and args.format == "console"

    if args.format == "json":
        report = render_json_report(str(path), analysis, result.errors, result.warnings)
    else:
        report = render_console_report(str(path), result.ast, analysis, color=color, include_ast=args.ast)

    sections = [report]
    if args.format == "console":
        if args.vulnerabilities:
            sections.append(render_vulnerabilities(analysis.vulnerabilities, color, verbose=args.verbose > 0))
        if args.call_graph:
            sections.append(render_call_graph(analysis, color))
        if args.data_flow:
            sections.append(render_data_flow(analysis, color))

    out = _open_output(args.output)
    try:
        out.write("\n\n".join(sections) + "\n")
    finally:
        if out is not sys.stdout:
            out.close()
            _log.info("Report written to %s", args.output)

    failing = analysis.vulnerabilities_at_least(config.fail_on)
    if failing:
        _log.warning(
            "%d vulnerability finding(s) at or above %s risk",
            len(failing), config.fail_on.label,
        )
        return EXIT_ERROR
    return EXIT_OK


def cmd_audit(args: argparse.Namespace) -> int:
    """Comprehensive audit: parsing report, full report, risk breakdown."""
    config = _load_config(args)
    path = _resolve_path(args.file, "contract")
    service = ParsingService(config)
    result = service.analyze_file(str(path))
    if not result.success or result.analysis is None:
        return _report_failure(result)

    analysis = result.analysis
    color = _use_color(args)
    sections = [
        service.generate_parsing_report(result),
        "=" * 80,
        render_console_report(str(path), result.ast, analysis, color=color, include_ast=args.ast),
        render_vulnerabilities(analysis.vulnerabilities, color, verbose=True),
        render_audit_summary(analysis, color),
        render_call_graph(analysis, color),
        render_data_flow(analysis, color, limit=len(analysis.data_flow_graph)),
    ]

    out = _open_output(args.output)
    try:
        out.write("\n\n".join(sections) + "\n")
    finally:
        if out is not sys.stdout:
            out.close()

    return EXIT_ERROR if analysis.vulnerabilities_at_least(config.fail_on) else EXIT_OK


def cmd_validate(args: argparse.Namespace) -> int:
    path = _resolve_path(args.file, "contract")
    validation = validate_file(str(path))
    if validation.valid:
        sys.stdout.write("Syntax validation passed\n")
        return EXIT_OK
    sys.stdout.write("Syntax validation failed:\n")
    for err in validation.errors:
        sys.stdout.write(f"   Line {err.line}:{err.column} - {err.message}\n")
    return EXIT_ERROR


def cmd_parse(args: argparse.Namespace) -> int:
    path = _resolve_path(args.file, "contract")
    result = ParsingService().parse_file(str(path))
    if result.ast is not None:
        sys.stdout.write(AstVisualizer(_use_color(args)).visualize(result.ast) + "\n")
    for err in result.errors:
        sys.stderr.write(f"{err.to_gcc_format(str(path))}\n")
    return EXIT_OK if result.success else EXIT_ERROR


def cmd_stats(args: argparse.Namespace) -> int:
    path = _resolve_path(args.file, "contract")
    service = ParsingService()
    result = service.parse_file(str(path))
    if result.ast is None:
        return _report_failure(result)
    stats = service.get_parsing_statistics(result)
    sys.stdout.write(
        f"Functions: {stats['total_functions']} ({stats['public_functions']} public, "
        f"{stats['private_functions']} private, {stats['read_only_functions']} read-only)\n"
        f"Constants: {stats['constants']}, Variables: {stats['variables']}, Maps: {stats['maps']}\n"
    )
    return EXIT_OK if result.success else EXIT_ERROR


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="clarity-audit",
        description="Static analysis and security auditing for Clarity smart contracts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              clarity-audit analyze token.clar --vulnerabilities
              clarity-audit analyze token.clar --format json -o report.json
              clarity-audit audit   token.clar --fail-on medium
              clarity-audit validate token.clar
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # Shared argument groups (reusable) ------------------------------------

    def _add_file_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument("file", help="Path to a Clarity contract (.clar).")

    def _add_report_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="FILE",
            help="Write the report to FILE instead of stdout.",
        )
        p.add_argument("--ast", action="store_true", help="Include the AST tree in the report.")
        p.add_argument("--no-color", action="store_true", help="Disable coloured output.")
        p.add_argument("--config", default=None, metavar="FILE", help="JSON configuration file.")
        p.add_argument(
            "--disable",
            action="append",
            default=None,
            metavar="CHECKER",
            help="Disable a vulnerability checker (repeatable).",
        )
        p.add_argument(
            "--fail-on",
            default=None,
            choices=["low", "medium", "high", "critical"],
            help="Minimum risk level that makes the exit code non-zero (default: high).",
        )

    # --- analyze -----------------------------------------------------------
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Analyze a contract for issues and vulnerabilities.",
    )
    _add_file_arg(p_analyze)
    _add_report_args(p_analyze)
    p_analyze.add_argument(
        "-f", "--format",
        default="console",
        choices=["console", "json"],
        help="Report format (default: console).",
    )
    p_analyze.add_argument("--vulnerabilities", action="store_true", help="Show detailed vulnerability analysis.")
    p_analyze.add_argument("--call-graph", action="store_true", help="Include the call graph.")
    p_analyze.add_argument("--data-flow", action="store_true", help="Include data-flow analysis.")
    p_analyze.set_defaults(func=cmd_analyze)

    # --- audit -------------------------------------------------------------
    p_audit = subparsers.add_parser(
        "audit",
        help="Perform a comprehensive audit of a contract.",
    )
    _add_file_arg(p_audit)
    _add_report_args(p_audit)
    p_audit.set_defaults(func=cmd_audit)

    # --- validate ----------------------------------------------------------
    p_validate = subparsers.add_parser("validate", help="Quickly validate contract syntax.")
    _add_file_arg(p_validate)
    p_validate.set_defaults(func=cmd_validate)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser("parse", help="Parse a contract and print the AST tree.")
    _add_file_arg(p_parse)
    p_parse.add_argument("--no-color", action="store_true", help="Disable coloured output.")
    p_parse.set_defaults(func=cmd_parse)

    # --- stats -------------------------------------------------------------
    p_stats = subparsers.add_parser("stats", help="Print definition counts.")
    _add_file_arg(p_stats)
    p_stats.set_defaults(func=cmd_stats)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the clarity-audit CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return EXIT_INTERRUPTED
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
