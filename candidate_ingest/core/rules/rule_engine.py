"""
Rule engine for validating normalized upload rows.

Applies the rule set of the requested record type to one row at a time,
collecting every failure so the uploader sees all problems in one pass.
Validation is row-local and never touches storage.
"""

from pathlib import Path
from typing import Any

from candidate_ingest.core.models import CellValue, RowValidationResult
from candidate_ingest.core.validators import (
    BaseValidator,
    DateValidator,
    EnumValidator,
    RangeValidator,
    RegexValidator,
    RequiredFieldValidator,
    TypeValidator,
    ValidationError,
)

from .rule_config import RuleConfigLoader


class RowValidator:
    """
    Validates normalized rows against per-record-type rule chains.

    Each field has an ordered chain of validators. A value flows through
    the chain and may be coerced on the way; an error-severity failure
    stops that field's chain, a warning-severity failure is recorded and
    the chain continues with the value unchanged.
    """

    VALIDATOR_REGISTRY = {
        "required_field": RequiredFieldValidator,
        "type_check": TypeValidator,
        "range": RangeValidator,
        "regex": RegexValidator,
        "enum": EnumValidator,
        "date": DateValidator,
    }

    def __init__(self, record_types: dict[str, dict[str, Any]]):
        """
        Initialize the validator with rule sets.

        Args:
            record_types: Mapping of record type to
                          {"natural_key": str, "rules": [rule dicts]} where each
                          rule dict contains rule_name, rule_type, field_name,
                          parameters, severity and enabled
        """
        self.record_types = record_types
        self.natural_keys: dict[str, str] = {}
        self.chains: dict[str, dict[str, list[tuple[str, str, BaseValidator]]]] = {}
        self._build_validators()

    @classmethod
    def from_config(cls, config_path: str | Path | None = None) -> "RowValidator":
        """Build a validator from a rules YAML file (packaged defaults if None)."""
        return cls(RuleConfigLoader(config_path).load_record_types())

    def _build_validators(self) -> None:
        """Build validator chains from rule configurations."""
        for record_type, config in self.record_types.items():
            self.natural_keys[record_type] = config["natural_key"]
            chains: dict[str, list[tuple[str, str, BaseValidator]]] = {}

            for rule in config["rules"]:
                field_name = rule["field_name"]
                # Disabled rules still make the field part of the record
                chain = chains.setdefault(field_name, [])
                if not rule.get("enabled", True):
                    continue

                rule_name = rule["rule_name"]
                rule_type = rule["rule_type"]

                validator_class = self.VALIDATOR_REGISTRY.get(rule_type)
                if not validator_class:
                    raise ValueError(f"Unknown rule type: {rule_type}")

                try:
                    validator = validator_class(field_name, rule.get("parameters") or {})
                except Exception as e:
                    raise ValueError(f"Failed to create validator for rule '{rule_name}': {e}")

                chain.append((rule_name, rule.get("severity", "error"), validator))

            self.chains[record_type] = chains

    def natural_key_field(self, record_type: str) -> str:
        self._require_record_type(record_type)
        return self.natural_keys[record_type]

    def extract_natural_key(self, row: dict[str, CellValue], record_type: str) -> str | None:
        """
        Read the natural key from a row, even one that fails validation.

        Returns:
            Stripped, upper-cased key, or None when the cell is absent/empty
        """
        cell = row.get(self.natural_key_field(record_type))
        if cell is None or cell.is_empty:
            return None
        return cell.as_text().strip().upper()

    def validate(
        self,
        row: dict[str, CellValue],
        record_type: str,
        row_number: int | None = None
    ) -> RowValidationResult:
        """
        Validate one normalized row.

        Args:
            row: Canonical field name -> CellValue
            record_type: "candidate_bio" or "prelist_score"
            row_number: Spreadsheet row number, carried into the result

        Returns:
            RowValidationResult with coerced fields, or every failure reason
        """
        self._require_record_type(record_type)
        natural_key_field = self.natural_keys[record_type]
        natural_key = self.extract_natural_key(row, record_type)

        payload: dict[str, Any] = {}
        for field_name, cell in row.items():
            payload[field_name] = cell.to_python()
        if natural_key_field in payload:
            payload[natural_key_field] = natural_key

        fields: dict[str, Any] = {}
        errors: list[str] = []
        warnings: list[str] = []

        for field_name, chain in self.chains[record_type].items():
            value = payload.get(field_name)
            failed = False

            for rule_name, severity, validator in chain:
                try:
                    value = validator.validate(value, payload)
                except ValidationError as e:
                    if severity == "error":
                        # Required-field messages already name the field
                        if e.rule_name == "required_field":
                            errors.append(e.message)
                        else:
                            errors.append(f"{field_name}: {e.message}")
                        failed = True
                        break
                    warnings.append(f"{rule_name}: {e.message}")

            if not failed and value is not None:
                fields[field_name] = value

        return RowValidationResult(
            row_number=row_number,
            record_type=record_type,
            natural_key=natural_key,
            passed=not errors,
            fields=fields,
            errors=errors,
            warnings=warnings,
        )

    def get_rule_summary(self) -> dict[str, Any]:
        """
        Get summary of loaded rules.

        Returns:
            Dictionary with per-record-type field and rule counts
        """
        summary = {}
        for record_type, chains in self.chains.items():
            by_type: dict[str, int] = {}
            for chain in chains.values():
                for _, _, validator in chain:
                    by_type[validator.rule_type] = by_type.get(validator.rule_type, 0) + 1
            summary[record_type] = {
                "natural_key": self.natural_keys[record_type],
                "fields": len(chains),
                "rules_by_type": by_type,
            }
        return summary

    def _require_record_type(self, record_type: str) -> None:
        if record_type not in self.chains:
            raise ValueError(
                f"Unknown record type '{record_type}'. "
                f"Expected one of: {', '.join(self.chains)}"
            )
