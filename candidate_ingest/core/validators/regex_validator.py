"""
RegexValidator - validates field values against a regular expression pattern.
"""

import re
from re import Pattern
from typing import Any

from .base_validator import BaseValidator, ValidationError


class RegexValidator(BaseValidator):
    """
    Validates that a field value matches a regular expression pattern.

    Parameters:
    - pattern: Regular expression pattern (string or compiled Pattern)
    - ignore_case: Match case-insensitively (default False)
    - message: Optional replacement for the default failure message
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        pattern = self.parameters.get("pattern")
        if not pattern:
            raise ValueError("RegexValidator requires 'pattern' parameter")

        flags = re.IGNORECASE if self.parameters.get("ignore_case") else 0
        self.message = self.parameters.get("message")

        try:
            if isinstance(pattern, str):
                self.pattern: Pattern = re.compile(pattern, flags)
            elif isinstance(pattern, Pattern):
                self.pattern = pattern
            else:
                raise ValueError(f"Pattern must be string or compiled Pattern, got {type(pattern)}")
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}")

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        """
        Validate that the value matches the regex pattern.

        Args:
            value: The field value to validate
            record: The entire row

        Returns:
            The unchanged value

        Raises:
            ValidationError: If value doesn't match the pattern
        """
        # Skip validation for None (handled by required_field validator)
        if value is None:
            return None

        value_str = value if isinstance(value, str) else str(value)

        if not self.pattern.fullmatch(value_str):
            raise ValidationError(
                rule_name="regex",
                field_name=self.field_name,
                message=self.message or f"Value '{value_str}' does not match pattern '{self.pattern.pattern}'"
            )

        return value

    @property
    def rule_type(self) -> str:
        return "regex"
