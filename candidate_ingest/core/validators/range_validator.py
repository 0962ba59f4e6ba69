"""
RangeValidator - numeric scores within inclusive bounds.
"""

from typing import Any

from .base_validator import BaseValidator, ValidationError


class RangeValidator(BaseValidator):
    """
    Checks that a numeric field (JAMB aggregate, subject score) lies
    between min and max, both inclusive. Either bound may be omitted.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        self.min_value = self.parameters.get("min")
        self.max_value = self.parameters.get("max")

        if self.min_value is None and self.max_value is None:
            raise ValueError(f"Range rule for '{field_name}' needs a min or max bound")

    def _fail(self, message: str) -> ValidationError:
        return ValidationError(rule_name=self.rule_type, field_name=self.field_name, message=message)

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if value is None:
            return None

        # bool is an int subclass; "true" is never a score
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise self._fail(f"Value must be numeric, got {type(value).__name__}")

        if self.min_value is not None and value < self.min_value:
            raise self._fail(f"Value {value} is less than minimum {self.min_value}")

        if self.max_value is not None and value > self.max_value:
            raise self._fail(f"Value {value} exceeds maximum {self.max_value}")

        return value

    @property
    def rule_type(self) -> str:
        return "range"
