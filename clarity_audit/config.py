"""
clarity_audit/config.py
═══════════════════════

Analysis options, loadable from a JSON file::

    {
        "disabled_checkers": ["overflow"],
        "suppressed_codes": ["naming-convention"],
        "max_parameters": 8,
        "auth_identifiers": ["tx-sender", "contract-owner", "admin"],
        "fail_on": "medium",
        "naming_pattern": "^[a-z][a-z0-9-]*$"
    }

Every key is optional.  Unknown keys and ill-typed values raise
``ConfigError``.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from clarity_audit.errors import ConfigError, RiskLevel

DEFAULT_AUTH_IDENTIFIERS: FrozenSet[str] = frozenset({
    "tx-sender", "contract-caller", "contract-owner",
})


@dataclass(frozen=True)
class AnalysisConfig:
    disabled_checkers: Tuple[str, ...] = ()
    suppressed_codes: Tuple[str, ...] = ()
    max_parameters: int = 10
    auth_identifiers: FrozenSet[str] = field(default_factory=lambda: DEFAULT_AUTH_IDENTIFIERS)
    fail_on: RiskLevel = RiskLevel.HIGH
    naming_pattern: str = r"^[a-z][a-z0-9-]*$"

    @property
    def naming_regex(self) -> "re.Pattern[str]":
        return re.compile(self.naming_pattern)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisConfig":
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a JSON object")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key in ("disabled_checkers", "suppressed_codes"):
            if key in data:
                kwargs[key] = tuple(_string_list(key, data[key]))
        if "auth_identifiers" in data:
            kwargs["auth_identifiers"] = frozenset(_string_list("auth_identifiers", data["auth_identifiers"]))
        if "max_parameters" in data:
            value = data["max_parameters"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"max_parameters must be a non-negative integer, got {value!r}")
            kwargs["max_parameters"] = value
        if "fail_on" in data:
            kwargs["fail_on"] = parse_risk_level(data["fail_on"])
        if "naming_pattern" in data:
            pattern = data["naming_pattern"]
            if not isinstance(pattern, str):
                raise ConfigError(f"naming_pattern must be a string, got {pattern!r}")
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ConfigError(f"invalid naming_pattern {pattern!r}: {exc}") from exc
            kwargs["naming_pattern"] = pattern
        return cls(**kwargs)

    def with_overrides(
        self,
        disabled_checkers: Tuple[str, ...] = (),
        fail_on: Optional[str] = None,
    ) -> "AnalysisConfig":
        """Apply command-line overrides on top of file values."""
        config = self
        if disabled_checkers:
            merged = tuple(dict.fromkeys(self.disabled_checkers + tuple(disabled_checkers)))
            config = replace(config, disabled_checkers=merged)
        if fail_on is not None:
            config = replace(config, fail_on=parse_risk_level(fail_on))
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disabled_checkers": list(self.disabled_checkers),
            "suppressed_codes": list(self.suppressed_codes),
            "max_parameters": self.max_parameters,
            "auth_identifiers": sorted(self.auth_identifiers),
            "fail_on": self.fail_on.label,
            "naming_pattern": self.naming_pattern,
        }


def _string_list(key: str, value: Any) -> list:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    return value


def parse_risk_level(value: Any) -> RiskLevel:
    if isinstance(value, RiskLevel):
        return value
    if not isinstance(value, str):
        raise ConfigError(f"risk level must be a string, got {value!r}")
    try:
        return RiskLevel.from_string(value)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Optional[str]) -> AnalysisConfig:
    """Read a JSON configuration file; ``None`` gives the defaults."""
    if path is None:
        return AnalysisConfig()
    path = os.path.expanduser(path)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc.strerror or exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {path}: {exc}") from exc
    return AnalysisConfig.from_mapping(data)
