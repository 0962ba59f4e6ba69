"""
RequiredFieldValidator - ensures a field is present and not empty.
"""

from typing import Any, Dict

from .base_validator import BaseValidator, ValidationError


class RequiredFieldValidator(BaseValidator):
    """
    Validates that a required field is present and not empty.

    Fails if:
    - The column is missing from the file
    - The cell is empty
    - The cell holds only whitespace
    """

    def validate(self, value: Any, record: Dict[str, Any]) -> Any:
        """
        Validate that the field is present and not empty.

        Args:
            value: The field value to validate
            record: The entire row

        Returns:
            The unchanged value

        Raises:
            ValidationError: If the column is missing or the cell is empty
        """
        if self.field_name not in record:
            raise ValidationError(
                rule_name="required_field",
                field_name=self.field_name,
                message=f"Missing required field '{self.field_name}'"
            )

        if value is None or (isinstance(value, str) and value.strip() == ""):
            raise ValidationError(
                rule_name="required_field",
                field_name=self.field_name,
                message=f"Required field '{self.field_name}' is empty"
            )

        return value

    @property
    def rule_type(self) -> str:
        return "required_field"
