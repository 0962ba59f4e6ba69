"""
Rule configuration management.

Loads per-record-type validation rules and header aliases from YAML files
and provides a builder for assembling rule sets in code.
"""

from pathlib import Path
from typing import Any

import yaml

DEFAULT_RULES_PATH = Path(__file__).with_name("default_rules.yaml")

VALID_SEVERITIES = ("error", "warning")


class RuleConfigLoader:
    """
    Loads validation rules from YAML configuration files.

    Expected YAML format:
    ```yaml
    header_aliases:
      jamb_no: [jamb_reg_no, reg_no]

    record_types:
      candidate_bio:
        natural_key: jamb_no
        rules:
          jamb_no:
            - type: required_field
            - type: regex
              severity: warning
              params:
                pattern: "^[A-Z0-9]{10,15}$"
          jamb_score:
            - type: type_check
              params:
                expected_type: int
            - type: range
              params:
                min: 0
                max: 400
    ```
    """

    def __init__(self, config_path: str | Path | None = None):
        """
        Initialize the rule config loader.

        Args:
            config_path: Path to the YAML configuration file
                         (defaults to the packaged default_rules.yaml)
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_RULES_PATH
        if not self.config_path.exists():
            raise FileNotFoundError(f"Rule configuration file not found: {self.config_path}")
        self._config: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._config is None:
            with open(self.config_path) as f:
                config = yaml.safe_load(f)

            if not config or "record_types" not in config:
                raise ValueError("Configuration file must contain 'record_types' section")
            self._config = config
        return self._config

    def load_header_aliases(self) -> dict[str, list[str]]:
        """
        Load the canonical-field -> header-spellings table.

        Returns:
            Mapping of canonical field name to accepted aliases
        """
        aliases = self._load().get("header_aliases") or {}
        if not isinstance(aliases, dict):
            raise ValueError("'header_aliases' must be a mapping")

        return {
            str(field): [str(a) for a in (spellings or [])]
            for field, spellings in aliases.items()
        }

    def load_record_types(self) -> dict[str, dict[str, Any]]:
        """
        Load and parse the rule set of every record type.

        Returns:
            Mapping of record type to {"natural_key": str, "rules": [rule dicts]}

        Raises:
            ValueError: If YAML is invalid or missing required fields
        """
        record_types = {}

        for record_type, type_config in self._load()["record_types"].items():
            if not isinstance(type_config, dict) or "rules" not in type_config:
                raise ValueError(f"Record type '{record_type}' must contain a 'rules' section")

            natural_key = type_config.get("natural_key")
            if not natural_key:
                raise ValueError(f"Record type '{record_type}' is missing 'natural_key'")

            rules = []
            for field_name, field_rule_list in type_config["rules"].items():
                if not isinstance(field_rule_list, list):
                    raise ValueError(f"Rules for field '{field_name}' must be a list")

                for idx, rule_def in enumerate(field_rule_list):
                    rules.append(self._parse_rule(field_name, rule_def, idx))

            record_types[record_type] = {"natural_key": natural_key, "rules": rules}

        return record_types

    def _parse_rule(self, field_name: str, rule_def: dict[str, Any], idx: int) -> dict[str, Any]:
        """
        Parse a single rule definition.

        Args:
            field_name: The field this rule applies to
            rule_def: The rule definition from YAML
            idx: Index of this rule for the field (for naming)

        Returns:
            Parsed rule dictionary

        Raises:
            ValueError: If rule definition is invalid
        """
        if "type" not in rule_def:
            raise ValueError(f"Rule for field '{field_name}' is missing 'type'")

        rule_type = rule_def["type"]
        rule_name = rule_def.get("name", f"{field_name}_{rule_type}_{idx}")
        parameters = rule_def.get("params", rule_def.get("parameters", {}))

        severity = rule_def.get("severity", "error")
        if severity not in VALID_SEVERITIES:
            raise ValueError(f"Invalid severity '{severity}' for rule '{rule_name}'. Must be 'error' or 'warning'")

        return {
            "rule_name": rule_name,
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": severity,
            "enabled": rule_def.get("enabled", True),
        }


class RuleConfigBuilder:
    """
    Programmatically build a record type's rules (for testing or dynamic rules).
    """

    def __init__(self, natural_key: str = "jamb_no"):
        """Initialize empty rule configuration."""
        self.natural_key = natural_key
        self.rules: list[dict[str, Any]] = []

    def _add(self, field_name: str, rule_type: str, parameters: dict[str, Any], severity: str = "error") -> "RuleConfigBuilder":
        self.rules.append({
            "rule_name": f"{field_name}_{rule_type}",
            "rule_type": rule_type,
            "field_name": field_name,
            "parameters": parameters,
            "severity": severity,
            "enabled": True,
        })
        return self

    def add_required_field(self, field_name: str) -> "RuleConfigBuilder":
        """Add a required field rule."""
        return self._add(field_name, "required_field", {})

    def add_type_check(self, field_name: str, expected_type: str, coerce: bool = True) -> "RuleConfigBuilder":
        """Add a type check rule."""
        return self._add(field_name, "type_check", {"expected_type": expected_type, "coerce": coerce})

    def add_range(
        self,
        field_name: str,
        min_value: float | None = None,
        max_value: float | None = None
    ) -> "RuleConfigBuilder":
        """Add a range validation rule."""
        params = {}
        if min_value is not None:
            params["min"] = min_value
        if max_value is not None:
            params["max"] = max_value
        return self._add(field_name, "range", params)

    def add_regex(self, field_name: str, pattern: str, severity: str = "error") -> "RuleConfigBuilder":
        """Add a regex validation rule."""
        return self._add(field_name, "regex", {"pattern": pattern}, severity)

    def add_enum(self, field_name: str, allowed_values: list[str]) -> "RuleConfigBuilder":
        """Add an enumeration rule."""
        return self._add(field_name, "enum", {"allowed_values": allowed_values})

    def add_date(self, field_name: str, not_in_future: bool = True) -> "RuleConfigBuilder":
        """Add a date rule."""
        return self._add(field_name, "date", {"not_in_future": not_in_future})

    def build(self) -> dict[str, Any]:
        """Build and return the record type configuration."""
        return {"natural_key": self.natural_key, "rules": self.rules}
