"""
TypeValidator - validates and coerces cell values to the expected type.
"""

from typing import Any

from .base_validator import BaseValidator, ValidationError


class TypeValidator(BaseValidator):
    """
    Validates that a field matches the expected type, coercing when possible.

    Coercion examples: "250" -> 250 for int, 250.0 -> 250 for int,
    250.0 -> "250" for str (numeric spreadsheet cells holding identifiers).

    Supported types:
    - int, float, str
    - Aliases: "integer", "decimal", "double", "string"
    """

    TYPE_MAPPING = {
        "integer": int,
        "int": int,
        "decimal": float,
        "float": float,
        "double": float,
        "string": str,
        "str": str,
    }

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)

        expected_type = self.parameters.get("expected_type")
        if not expected_type:
            raise ValueError("TypeValidator requires 'expected_type' parameter")

        self.expected_type = self.TYPE_MAPPING.get(str(expected_type).lower())
        if not self.expected_type:
            raise ValueError(f"Unsupported type: {expected_type}")

        self.coerce = self.parameters.get("coerce", True)

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        """
        Validate that the value matches the expected type.

        Args:
            value: The field value to validate
            record: The entire row

        Returns:
            The value converted to the expected type

        Raises:
            ValidationError: If the value cannot be converted
        """
        # Skip validation for None (handled by required_field validator)
        if value is None:
            return None

        if type(value) is self.expected_type:
            return value

        if not self.coerce:
            raise ValidationError(
                rule_name="type_check",
                field_name=self.field_name,
                message=f"Expected {self.expected_type.__name__}, got {type(value).__name__}"
            )

        try:
            return self._coerce_type(value)
        except (ValueError, TypeError) as e:
            raise ValidationError(
                rule_name="type_check",
                field_name=self.field_name,
                message=f"Cannot coerce {type(value).__name__} to {self.expected_type.__name__}: {e}"
            )

    def _coerce_type(self, value: Any) -> Any:
        """
        Attempt to coerce value to the expected type.

        Raises:
            ValueError: If coercion fails
        """
        if self.expected_type is str:
            if isinstance(value, float) and value.is_integer():
                return str(int(value))
            return str(value).strip()

        if self.expected_type is int:
            if isinstance(value, bool):
                raise ValueError(f"'{value}' is not a whole number")
            if isinstance(value, str):
                value = value.strip().replace(",", "")
                try:
                    return int(value)
                except ValueError:
                    value = float(value)
            if isinstance(value, float):
                if not value.is_integer():
                    raise ValueError(f"'{value}' is not a whole number")
                return int(value)
            return int(value)

        if isinstance(value, str):
            value = value.strip().replace(",", "")
        return float(value)

    @property
    def rule_type(self) -> str:
        return "type_check"
