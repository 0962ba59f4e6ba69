"""
EnumValidator - constrains a field to a fixed set of values.
"""

from typing import Any

from .base_validator import BaseValidator, ValidationError


class EnumValidator(BaseValidator):
    """
    Validates that a field holds one of a fixed set of values.

    Parameters:
    - allowed_values: List of accepted values (required)
    - case_sensitive: Compare case-sensitively (default False)

    Matching values are returned in their canonical spelling from
    allowed_values, so " Male " comes back as "male".
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        allowed = self.parameters.get("allowed_values")
        if not allowed:
            raise ValueError("EnumValidator requires 'allowed_values' parameter")

        self.allowed_values = [str(v) for v in allowed]
        self.case_sensitive = self.parameters.get("case_sensitive", False)
        self._lookup = {self._key(v): v for v in self.allowed_values}

    def _key(self, value: str) -> str:
        value = value.strip()
        return value if self.case_sensitive else value.lower()

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if value is None:
            return None

        canonical = self._lookup.get(self._key(str(value)))
        if canonical is None:
            raise ValidationError(
                rule_name="enum",
                field_name=self.field_name,
                message=f"Value '{value}' must be one of: {', '.join(self.allowed_values)}"
            )
        return canonical

    @property
    def rule_type(self) -> str:
        return "enum"
