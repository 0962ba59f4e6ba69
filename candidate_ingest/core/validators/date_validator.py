"""
DateValidator - parses date cells and checks them against today.
"""

from datetime import date, datetime
from typing import Any

from .base_validator import BaseValidator, ValidationError

DEFAULT_FORMATS = ["%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d", "%d.%m.%Y"]


class DateValidator(BaseValidator):
    """
    Coerces a cell to a date and optionally rejects future dates.

    Spreadsheet date cells arrive as dates already; CSV cells arrive as
    text and are parsed with the configured formats (day-first for the
    ambiguous slash/dash forms).

    Parameters:
    - formats: strptime formats to try, in order
    - not_in_future: Reject dates after today (default True)
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        super().__init__(field_name, parameters)
        self.formats = self.parameters.get("formats", DEFAULT_FORMATS)
        self.not_in_future = self.parameters.get("not_in_future", True)

    def validate(self, value: Any, record: dict[str, Any]) -> Any:
        if value is None:
            return None

        parsed = self._parse(value)

        if self.not_in_future and parsed > date.today():
            raise ValidationError(
                rule_name="date",
                field_name=self.field_name,
                message=f"Date {parsed.isoformat()} cannot be in the future"
            )

        return parsed

    def _parse(self, value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        for fmt in self.formats:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue

        raise ValidationError(
            rule_name="date",
            field_name=self.field_name,
            message=f"Value '{text}' is not a recognised date"
        )

    @property
    def rule_type(self) -> str:
        return "date"
