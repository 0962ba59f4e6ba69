"""
CellValue model representing one decoded spreadsheet/CSV cell.
"""

import math
import numbers
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class CellKind(str, Enum):
    """Kinds of value a cell can hold after decoding."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


class CellValue(BaseModel):
    """
    Tagged cell value produced by the row normalizer.

    Attributes:
        kind: Which of string/number/date/empty this cell holds
        value: The typed value (None when kind is EMPTY)
    """

    kind: CellKind
    value: str | int | float | date | None = None

    @classmethod
    def empty(cls) -> "CellValue":
        return cls(kind=CellKind.EMPTY)

    @classmethod
    def from_raw(cls, raw: Any) -> "CellValue":
        """
        Coerce a raw decoder value into a tagged cell.

        Args:
            raw: Value as produced by pandas/openpyxl (str, int, float,
                 datetime, Timestamp, NaN, None, ...)

        Returns:
            CellValue with an explicit kind
        """
        if raw is None:
            return cls.empty()

        # datetime is a subclass of date (pandas Timestamp subclasses datetime)
        if isinstance(raw, datetime):
            if raw != raw:  # NaT
                return cls.empty()
            return cls(kind=CellKind.DATE, value=raw.date())
        if isinstance(raw, date):
            return cls(kind=CellKind.DATE, value=raw)

        if isinstance(raw, bool):
            return cls(kind=CellKind.STRING, value=str(raw).lower())

        if isinstance(raw, numbers.Integral):
            return cls(kind=CellKind.NUMBER, value=int(raw))
        if isinstance(raw, numbers.Real):
            number = float(raw)
            if math.isnan(number):
                return cls.empty()
            return cls(kind=CellKind.NUMBER, value=number)

        text = str(raw).strip()
        if not text:
            return cls.empty()
        return cls(kind=CellKind.STRING, value=text)

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def as_text(self) -> str | None:
        """Render the cell as text; integral floats lose their trailing .0"""
        if self.kind is CellKind.EMPTY:
            return None
        if self.kind is CellKind.DATE:
            return self.value.isoformat()
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)

    def to_python(self) -> str | int | float | date | None:
        return self.value

    def to_json(self) -> str | int | float | None:
        """JSON-safe value for row error payloads."""
        if self.kind is CellKind.DATE:
            return self.value.isoformat()
        return self.value
