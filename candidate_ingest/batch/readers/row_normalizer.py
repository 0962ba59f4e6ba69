"""
Row normalizer: maps free-form headers onto canonical field names and
coerces raw cells into tagged CellValues.
"""

import re
from typing import Any

from candidate_ingest.core.models import CellValue

_WHITESPACE = re.compile(r"\s+")


def canonical_header(name: Any) -> str:
    """
    Canonicalize one header cell.

    Lower-cases, trims and replaces runs of whitespace with a single
    underscore: "  First   Name " -> "first_name".
    """
    if name is None:
        return ""
    if isinstance(name, float):
        if name != name:
            return ""
        if name.is_integer():
            name = int(name)
    return _WHITESPACE.sub("_", str(name).strip().lower())


def _squash(name: str) -> str:
    return name.replace("_", "")


class RowNormalizer:
    """
    Produces canonical field -> CellValue mappings for data rows.

    Headers are matched against the alias table space/underscore-insensitively;
    headers that match nothing keep their canonical spelling and are simply
    ignored downstream. Never raises.
    """

    def __init__(self, header_aliases: dict[str, list[str]] | None = None):
        """
        Initialize the normalizer.

        Args:
            header_aliases: Canonical field name -> accepted header spellings
        """
        self._lookup: dict[str, str] = {}
        for field, aliases in (header_aliases or {}).items():
            canonical = canonical_header(field)
            self._lookup[_squash(canonical)] = canonical
            for alias in aliases:
                self._lookup.setdefault(_squash(canonical_header(alias)), canonical)

    def field_name(self, header: Any) -> str:
        """Resolve one header cell to its canonical field name."""
        name = canonical_header(header)
        return self._lookup.get(_squash(name), name)

    def map_header(self, header: list[Any]) -> list[str]:
        return [self.field_name(h) for h in header]

    def normalize(self, header: list[Any], cells: list[Any]) -> dict[str, CellValue]:
        """
        Normalize one data row.

        Args:
            header: Header row as decoded
            cells: Data row aligned by column position

        Returns:
            Canonical field name -> CellValue. Columns missing from a short
            row produce no key; blank headers are dropped; when two columns
            map to the same field the first non-empty value wins.
        """
        row: dict[str, CellValue] = {}

        for position, field in enumerate(self.map_header(header)):
            if not field or position >= len(cells):
                continue

            cell = CellValue.from_raw(cells[position])
            existing = row.get(field)
            if existing is None or (existing.is_empty and not cell.is_empty):
                row[field] = cell

        return row


def row_to_json(row: dict[str, CellValue]) -> dict[str, Any]:
    """JSON-safe copy of a normalized row for error payloads."""
    return {field: cell.to_json() for field, cell in row.items()}
