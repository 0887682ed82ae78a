# tests/test_config.py
"""
Tests for AnalysisConfig: mapping validation, JSON loading and
command-line overrides.
"""

import json

import pytest

from clarity_audit.config import (
    DEFAULT_AUTH_IDENTIFIERS,
    AnalysisConfig,
    load_config,
    parse_risk_level,
)
from clarity_audit.errors import ConfigError, RiskLevel


class TestDefaults:

    def test_default_values(self):
        config = AnalysisConfig()
        assert config.disabled_checkers == ()
        assert config.suppressed_codes == ()
        assert config.max_parameters == 10
        assert config.auth_identifiers == DEFAULT_AUTH_IDENTIFIERS
        assert config.fail_on is RiskLevel.HIGH

    def test_naming_regex(self):
        regex = AnalysisConfig().naming_regex
        assert regex.match("get-balance")
        assert not regex.match("getBalance")
        assert not regex.match("1st")

    def test_to_dict(self):
        data = AnalysisConfig().to_dict()
        assert data["fail_on"] == "high"
        assert data["auth_identifiers"] == ["contract-caller", "contract-owner", "tx-sender"]


class TestFromMapping:

    def test_every_key(self):
        config = AnalysisConfig.from_mapping({
            "disabled_checkers": ["overflow"],
            "suppressed_codes": ["naming-convention"],
            "max_parameters": 4,
            "auth_identifiers": ["admin"],
            "fail_on": "Medium",
            "naming_pattern": "^[a-z_]+$",
        })
        assert config.disabled_checkers == ("overflow",)
        assert config.suppressed_codes == ("naming-convention",)
        assert config.max_parameters == 4
        assert config.auth_identifiers == frozenset({"admin"})
        assert config.fail_on is RiskLevel.MEDIUM
        assert config.naming_pattern == "^[a-z_]+$"

    def test_empty_mapping(self):
        assert AnalysisConfig.from_mapping({}) == AnalysisConfig()

    def test_round_trip_through_dict(self):
        config = AnalysisConfig(disabled_checkers=("reentrancy",), max_parameters=3)
        assert AnalysisConfig.from_mapping(config.to_dict()) == config

    def test_unknown_keys(self):
        with pytest.raises(ConfigError, match=r"unknown configuration key\(s\): colour, depth"):
            AnalysisConfig.from_mapping({"depth": 1, "colour": True})

    def test_not_an_object(self):
        with pytest.raises(ConfigError, match="must be a JSON object"):
            AnalysisConfig.from_mapping(["overflow"])

    @pytest.mark.parametrize("value", [-1, "3", True, 2.5])
    def test_bad_max_parameters(self, value):
        with pytest.raises(ConfigError, match="max_parameters"):
            AnalysisConfig.from_mapping({"max_parameters": value})

    @pytest.mark.parametrize("value", ["overflow", [1, 2], None])
    def test_bad_string_list(self, value):
        with pytest.raises(ConfigError, match="disabled_checkers must be a list of strings"):
            AnalysisConfig.from_mapping({"disabled_checkers": value})

    def test_bad_risk_level(self):
        with pytest.raises(ConfigError, match="unknown risk level"):
            AnalysisConfig.from_mapping({"fail_on": "severe"})

    def test_invalid_regex(self):
        with pytest.raises(ConfigError, match="invalid naming_pattern"):
            AnalysisConfig.from_mapping({"naming_pattern": "([a-z"})

    def test_non_string_pattern(self):
        with pytest.raises(ConfigError, match="naming_pattern must be a string"):
            AnalysisConfig.from_mapping({"naming_pattern": 7})


class TestParseRiskLevel:

    def test_strings(self):
        assert parse_risk_level(" critical ") is RiskLevel.CRITICAL
        assert parse_risk_level("LOW") is RiskLevel.LOW

    def test_member_passes_through(self):
        assert parse_risk_level(RiskLevel.HIGH) is RiskLevel.HIGH

    def test_non_string(self):
        with pytest.raises(ConfigError, match="risk level must be a string"):
            parse_risk_level(3)


class TestLoadConfig:

    def test_none_gives_defaults(self):
        assert load_config(None) == AnalysisConfig()

    def test_json_file(self, tmp_path):
        path = tmp_path / "audit.json"
        path.write_text(json.dumps({"disabled_checkers": ["overflow"], "fail_on": "low"}))
        config = load_config(str(path))
        assert config.disabled_checkers == ("overflow",)
        assert config.fail_on is RiskLevel.LOW

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read configuration"):
            load_config(str(tmp_path / "absent.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "audit.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="invalid JSON"):
            load_config(str(path))

    def test_validation_errors_propagate(self, tmp_path):
        path = tmp_path / "audit.json"
        path.write_text(json.dumps({"max_parameters": -2}))
        with pytest.raises(ConfigError):
            load_config(str(path))


class TestOverrides:

    def test_disabled_checkers_merge_without_duplicates(self):
        config = AnalysisConfig(disabled_checkers=("overflow",))
        merged = config.with_overrides(disabled_checkers=("reentrancy", "overflow"))
        assert merged.disabled_checkers == ("overflow", "reentrancy")

    def test_fail_on(self):
        assert AnalysisConfig().with_overrides(fail_on="low").fail_on is RiskLevel.LOW

    def test_no_overrides_returns_same_values(self):
        config = AnalysisConfig(max_parameters=3)
        assert config.with_overrides() == config

    def test_bad_fail_on(self):
        with pytest.raises(ConfigError):
            AnalysisConfig().with_overrides(fail_on="extreme")
