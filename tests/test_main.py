# tests/test_main.py
"""
End-to-end tests for the ``clarity-audit`` command line: every
sub-command, the report options and the exit-code contract.
"""

import json

import pytest

from clarity_audit.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main
from tests.conftest import (
    DUPLICATE_SOURCE,
    MISSING_PAREN_SOURCE,
    OWNER_CONSTANT_SOURCE,
    REENTRANT_WITHDRAW_SOURCE,
    TOKEN_SOURCE,
)

CLEAN_SOURCE = "(define-read-only (get-one) u1)\n"


class TestAnalyze:

    def test_console_report(self, contract_file, capsys):
        path = contract_file(TOKEN_SOURCE, "token.clar")
        assert main(["analyze", str(path)]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("Clarity Contract Audit Report\n")
        assert "\x1b[" not in out

    def test_high_risk_fails(self, contract_file, capsys):
        path = contract_file(REENTRANT_WITHDRAW_SOURCE)
        assert main(["analyze", str(path)]) == EXIT_ERROR

    def test_fail_on_threshold(self, contract_file, capsys):
        path = contract_file(TOKEN_SOURCE)
        assert main(["analyze", str(path), "--fail-on", "medium"]) == EXIT_ERROR
        assert main(["analyze", str(path), "--fail-on", "critical"]) == EXIT_OK

    def test_disable_checkers(self, contract_file, capsys):
        path = contract_file(REENTRANT_WITHDRAW_SOURCE)
        argv = ["analyze", str(path), "--disable", "reentrancy", "--disable", "authorization"]
        assert main(argv) == EXIT_OK

    def test_optional_sections(self, contract_file, capsys):
        path = contract_file(REENTRANT_WITHDRAW_SOURCE)
        main(["analyze", str(path), "--ast", "--vulnerabilities", "--call-graph", "--data-flow"])
        out = capsys.readouterr().out
        for heading in (
            "Abstract Syntax Tree:",
            "Security Vulnerabilities Found:",
            "Call Graph:",
            "Data Flow:",
        ):
            assert heading in out

    def test_json_format(self, contract_file, capsys):
        path = contract_file(TOKEN_SOURCE, "token.clar")
        assert main(["analyze", str(path), "--format", "json", "--call-graph"]) == EXIT_OK
        doc = json.loads(capsys.readouterr().out)
        assert doc["contract"].endswith("token.clar")
        assert doc["success"] is True
        assert [v["type"] for v in doc["vulnerabilities"]] == ["integer-overflow"]

    def test_output_file(self, contract_file, tmp_path, capsys):
        path = contract_file(TOKEN_SOURCE)
        target = tmp_path / "reports" / "token.txt"
        assert main(["analyze", str(path), "-o", str(target)]) == EXIT_OK
        assert capsys.readouterr().out == ""
        assert target.read_text(encoding="utf-8").startswith("Clarity Contract Audit Report")

    def test_semantic_errors(self, contract_file, capsys):
        path = contract_file(DUPLICATE_SOURCE)
        assert main(["analyze", str(path)]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert "Parsing failed:" in err
        assert "   Constant 'fee' is already defined (Line 2:1)" in err

    def test_parse_errors(self, contract_file, capsys):
        path = contract_file(MISSING_PAREN_SOURCE)
        assert main(["analyze", str(path)]) == EXIT_ERROR

    def test_missing_file(self, tmp_path, capsys):
        assert main(["analyze", str(tmp_path / "absent.clar")]) == EXIT_INFRA

    def test_directory_is_not_a_file(self, tmp_path, capsys):
        assert main(["analyze", str(tmp_path)]) == EXIT_INFRA


class TestConfigOption:

    def test_bad_config(self, contract_file, tmp_path, capsys):
        config = tmp_path / "audit.json"
        config.write_text(json.dumps({"colour": True}))
        path = contract_file(TOKEN_SOURCE)
        assert main(["analyze", str(path), "--config", str(config)]) == EXIT_INFRA

    def test_missing_config(self, contract_file, tmp_path, capsys):
        path = contract_file(TOKEN_SOURCE)
        assert main(["analyze", str(path), "--config", str(tmp_path / "none.json")]) == EXIT_INFRA

    def test_config_values(self, contract_file, tmp_path, capsys):
        config = tmp_path / "audit.json"
        config.write_text(json.dumps({"disabled_checkers": ["overflow"], "fail_on": "medium"}))
        path = contract_file(TOKEN_SOURCE)
        assert main(["analyze", str(path), "--config", str(config)]) == EXIT_OK

    def test_command_line_overrides_config(self, contract_file, tmp_path, capsys):
        config = tmp_path / "audit.json"
        config.write_text(json.dumps({"fail_on": "critical"}))
        path = contract_file(TOKEN_SOURCE)
        argv = ["analyze", str(path), "--config", str(config), "--fail-on", "medium"]
        assert main(argv) == EXIT_ERROR


class TestAudit:

    def test_vulnerable_contract(self, contract_file, capsys):
        path = contract_file(REENTRANT_WITHDRAW_SOURCE)
        assert main(["audit", str(path)]) == EXIT_ERROR
        out = capsys.readouterr().out
        assert out.startswith("Clarity Contract Parsing Report\n")
        assert "=" * 80 in out
        assert "SECURITY AUDIT RESULTS:" in out
        assert "   Code Example:" in out
        assert "Call Graph:" in out

    def test_clean_contract(self, contract_file, capsys):
        path = contract_file(CLEAN_SOURCE)
        assert main(["audit", str(path)]) == EXIT_OK
        assert "SECURITY AUDIT PASSED - No vulnerabilities detected" in capsys.readouterr().out


class TestValidate:

    def test_valid(self, contract_file, capsys):
        path = contract_file(TOKEN_SOURCE)
        assert main(["validate", str(path)]) == EXIT_OK
        assert capsys.readouterr().out == "Syntax validation passed\n"

    def test_invalid(self, contract_file, capsys):
        path = contract_file(MISSING_PAREN_SOURCE)
        assert main(["validate", str(path)]) == EXIT_ERROR
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Syntax validation failed:"
        assert lines[1].startswith("   Line 1:")

    def test_semantic_problems_pass(self, contract_file, capsys):
        path = contract_file(DUPLICATE_SOURCE)
        assert main(["validate", str(path)]) == EXIT_OK


class TestParse:

    def test_tree(self, contract_file, capsys):
        path = contract_file(OWNER_CONSTANT_SOURCE)
        assert main(["parse", str(path)]) == EXIT_OK
        assert capsys.readouterr().out.splitlines() == [
            "Program",
            "└─ constant-definition: contract-owner",
            "   └─ identifier: tx-sender",
        ]

    def test_errors_in_gcc_format(self, contract_file, capsys):
        path = contract_file(MISSING_PAREN_SOURCE, "broken.clar")
        assert main(["parse", str(path)]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert "broken.clar:1:" in err
        assert "[unterminated-form]" in err


class TestStats:

    def test_counts(self, contract_file, capsys):
        path = contract_file(TOKEN_SOURCE)
        assert main(["stats", str(path)]) == EXIT_OK
        assert capsys.readouterr().out == (
            "Functions: 5 (2 public, 1 private, 2 read-only)\n"
            "Constants: 2, Variables: 1, Maps: 1\n"
        )

    def test_counts_despite_errors(self, contract_file, capsys):
        path = contract_file(DUPLICATE_SOURCE)
        assert main(["stats", str(path)]) == EXIT_ERROR
        assert "Constants: 2, Variables: 0, Maps: 0" in capsys.readouterr().out


class TestTopLevel:

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as info:
            main(["--version"])
        assert info.value.code == 0
        assert capsys.readouterr().out.startswith("clarity-audit ")

    def test_unknown_command(self, capsys):
        with pytest.raises(SystemExit):
            main(["explode"])
