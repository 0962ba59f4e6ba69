"""
File decoder for uploaded CSV and Excel candidate files.

Turns an in-memory upload into a header row plus ordered data rows, each
data row tagged with its spreadsheet row number (header is row 1).
"""

import base64
import binascii
import csv
import io
import zipfile
from pathlib import PurePath
from typing import Any, Literal

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import BaseModel, Field

FileType = Literal["csv", "excel"]

EXTENSION_TYPES: dict[str, FileType] = {
    ".csv": "csv",
    ".txt": "csv",
    ".xlsx": "excel",
    ".xlsm": "excel",
}

MIME_TYPES: dict[str, FileType] = {
    "text/csv": "csv",
    "application/csv": "csv",
    "text/plain": "csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "excel",
    "application/vnd.ms-excel.sheet.macroenabled.12": "excel",
}


class FileDecodeError(Exception):
    """Raised when an upload cannot be turned into rows."""


class MalformedFileError(FileDecodeError):
    """The buffer cannot be parsed as the declared or inferred format."""


class EmptyFileError(FileDecodeError):
    """The file holds no data rows beyond the header."""


class DecodedRow(BaseModel):
    """One data row with its position in the original file."""

    row_number: int = Field(..., ge=2)
    cells: list[Any]


class DecodedFile(BaseModel):
    """
    Result of decoding an upload.

    Attributes:
        file_type: "csv" or "excel"
        header: Column names as they appear in the file
        rows: Non-blank data rows in file order
    """

    file_type: FileType
    header: list[Any]
    rows: list[DecodedRow]

    @property
    def total_rows(self) -> int:
        return len(self.rows)


def decode_base64(payload: str) -> bytes:
    """
    Decode a base64 upload body, accepting an optional data: URL prefix.

    Raises:
        MalformedFileError: If the payload is not valid base64
    """
    payload = "".join(payload.split())
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedFileError(f"Upload is not valid base64: {e}") from e


class FileDecoder:
    """
    Decodes CSV and Excel (xlsx) uploads using pandas.

    Legacy .xls workbooks are rejected; openpyxl only reads the
    Office Open XML formats.
    """

    def __init__(self, max_bytes: int | None = None):
        """
        Initialize the decoder.

        Args:
            max_bytes: Optional upper bound on upload size
        """
        self.max_bytes = max_bytes

    def infer_file_type(
        self,
        filename: str | None = None,
        content_type: str | None = None
    ) -> FileType:
        """
        Infer the file type from the filename extension, then the MIME type.

        Raises:
            MalformedFileError: If neither identifies a supported format
        """
        if filename:
            suffix = PurePath(filename).suffix.lower()
            if suffix == ".xls":
                raise MalformedFileError(
                    "Legacy .xls workbooks are not supported; save the file as .xlsx or .csv"
                )
            if suffix in EXTENSION_TYPES:
                return EXTENSION_TYPES[suffix]

        if content_type:
            mime = content_type.split(";", 1)[0].strip().lower()
            if mime in MIME_TYPES:
                return MIME_TYPES[mime]

        raise MalformedFileError(
            f"Unsupported file type (filename={filename!r}, content_type={content_type!r}); "
            "expected CSV or Excel (.xlsx)"
        )

    def decode(
        self,
        data: bytes,
        filename: str | None = None,
        content_type: str | None = None,
        file_type: FileType | None = None
    ) -> DecodedFile:
        """
        Decode an upload into header and data rows.

        Args:
            data: Raw file bytes
            filename: Original filename (used to infer the type)
            content_type: MIME type (used when the filename is inconclusive)
            file_type: Explicit "csv" or "excel", overriding inference

        Returns:
            DecodedFile

        Raises:
            MalformedFileError: Unsupported type or unparsable buffer
            EmptyFileError: No data rows beyond the header
        """
        resolved_type = file_type or self.infer_file_type(filename, content_type)

        if not data:
            raise EmptyFileError("File is empty")
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise MalformedFileError(
                f"File is {len(data)} bytes, larger than the {self.max_bytes} byte limit"
            )

        if resolved_type == "csv":
            frame = self._read_csv(data)
        else:
            frame = self._read_excel(data)

        return self._to_rows(frame, resolved_type)

    def _read_csv(self, data: bytes) -> pd.DataFrame:
        try:
            text = data.decode("utf-8-sig")
            # Rows may be ragged (trailing commas); size the frame to the widest one
            width = max((len(line) for line in csv.reader(io.StringIO(text))), default=0)
            if width == 0:
                raise EmptyFileError("File is empty")
            return pd.read_csv(
                io.StringIO(text),
                header=None,
                names=range(width),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
            )
        except pd.errors.EmptyDataError as e:
            raise EmptyFileError("File is empty") from e
        except (pd.errors.ParserError, csv.Error, UnicodeDecodeError, ValueError) as e:
            raise MalformedFileError(f"Could not parse CSV: {e}") from e

    def _read_excel(self, data: bytes) -> pd.DataFrame:
        try:
            return pd.read_excel(
                io.BytesIO(data),
                sheet_name=0,
                header=None,
                dtype=object,
                engine="openpyxl",
            )
        except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, OSError) as e:
            raise MalformedFileError(f"Could not parse Excel workbook: {e}") from e

    def _to_rows(self, frame: pd.DataFrame, file_type: FileType) -> DecodedFile:
        header: list[Any] | None = None
        rows: list[DecodedRow] = []

        # DataFrame position i is spreadsheet row i + 1
        for position, values in enumerate(frame.itertuples(index=False, name=None)):
            cells = list(values)
            if _is_blank(cells):
                continue
            if header is None:
                header = cells
                continue
            rows.append(DecodedRow(row_number=position + 1, cells=cells))

        if header is None or not rows:
            raise EmptyFileError("File must contain a header row and at least one data row")

        return DecodedFile(file_type=file_type, header=header, rows=rows)


def _is_blank(cells: list[Any]) -> bool:
    for cell in cells:
        if isinstance(cell, str):
            if cell.strip():
                return False
        elif cell is not None and not pd.isna(cell):
            return False
    return True
