"""
Unit tests for the upload file decoder.
"""

import base64
from datetime import datetime

import pytest

from candidate_ingest.batch.readers import (
    EmptyFileError,
    FileDecodeError,
    FileDecoder,
    MalformedFileError,
    decode_base64,
)


@pytest.mark.unit
class TestFileTypeInference:
    """Tests for FileDecoder.infer_file_type"""

    def test_extension_wins(self):
        decoder = FileDecoder()
        assert decoder.infer_file_type("prelist.CSV") == "csv"
        assert decoder.infer_file_type("candidates.xlsx") == "excel"

    def test_mime_type_used_when_extension_unknown(self):
        decoder = FileDecoder()
        assert decoder.infer_file_type("upload.bin", "text/csv; charset=utf-8") == "csv"
        assert decoder.infer_file_type(
            None, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        ) == "excel"

    def test_legacy_xls_rejected(self):
        with pytest.raises(MalformedFileError, match="xls"):
            FileDecoder().infer_file_type("old.xls")

    def test_unknown_type_rejected(self):
        with pytest.raises(MalformedFileError):
            FileDecoder().infer_file_type("notes.pdf", "application/pdf")


@pytest.mark.unit
class TestCSVDecoding:
    """Tests for decoding CSV uploads"""

    def test_header_and_rows(self, csv_file):
        data = csv_file([
            ["JAMB No", "Surname"],
            ["202512345678AB", "Okafor"],
            ["202512345678CD", "Bello"],
        ])

        decoded = FileDecoder().decode(data, filename="c.csv")

        assert decoded.file_type == "csv"
        assert decoded.header == ["JAMB No", "Surname"]
        assert decoded.total_rows == 2
        assert [row.row_number for row in decoded.rows] == [2, 3]
        assert decoded.rows[0].cells == ["202512345678AB", "Okafor"]

    def test_cells_stay_text(self):
        data = b"jamb_no,score\n0012345678,250\n"
        decoded = FileDecoder().decode(data, filename="c.csv")
        # Leading zeros survive because CSV cells are never parsed as numbers
        assert decoded.rows[0].cells == ["0012345678", "250"]

    def test_blank_lines_skipped_but_counted(self):
        data = b"jamb_no,surname\nA1,Okafor\n,\nA2,Bello\n"
        decoded = FileDecoder().decode(data, filename="c.csv")

        assert decoded.total_rows == 2
        assert [row.row_number for row in decoded.rows] == [2, 4]

    def test_ragged_rows_padded_to_widest(self):
        data = b"JAMB No,Surname,First Name\nA1,Okafor,Ada\nA2,Bello,Musa,\nA3,Eze\n"
        decoded = FileDecoder().decode(data, filename="c.csv")

        assert decoded.total_rows == 3
        assert decoded.header[:3] == ["JAMB No", "Surname", "First Name"]
        assert decoded.rows[1].cells == ["A2", "Bello", "Musa", ""]
        assert decoded.rows[2].cells[:2] == ["A3", "Eze"]

    def test_utf8_bom_tolerated(self):
        data = "\ufeffjamb_no,surname\nA1,Okafor\n".encode("utf-8")
        decoded = FileDecoder().decode(data, filename="c.csv")
        assert decoded.header[0] == "jamb_no"
        assert decoded.rows[0].cells[1] == "Okafor"

    def test_explicit_file_type_overrides_filename(self):
        decoded = FileDecoder().decode(b"a,b\n1,2\n", filename="upload.dat", file_type="csv")
        assert decoded.total_rows == 1

    def test_zero_bytes_is_empty(self):
        with pytest.raises(EmptyFileError):
            FileDecoder().decode(b"", filename="c.csv")

    def test_header_only_is_empty(self):
        with pytest.raises(EmptyFileError):
            FileDecoder().decode(b"jamb_no,surname\n", filename="c.csv")

    def test_invalid_utf8_is_malformed(self):
        with pytest.raises(MalformedFileError):
            FileDecoder().decode(b"jamb_no\n\xff\xfe\xfa\n", filename="c.csv")

    def test_size_limit(self):
        with pytest.raises(MalformedFileError, match="limit"):
            FileDecoder(max_bytes=10).decode(b"jamb_no,surname\nA1,B\n", filename="c.csv")

    def test_errors_share_base_class(self):
        assert issubclass(EmptyFileError, FileDecodeError)
        assert issubclass(MalformedFileError, FileDecodeError)


@pytest.mark.unit
class TestExcelDecoding:
    """Tests for decoding xlsx uploads"""

    def test_first_sheet_decoded(self, xlsx_file):
        data = xlsx_file([
            ["JAMB No", "Surname", "JAMB Score", "Date of Birth"],
            ["202512345678AB", "Okafor", 250, datetime(2005, 3, 14)],
        ])

        decoded = FileDecoder().decode(data, filename="c.xlsx")

        assert decoded.file_type == "excel"
        assert decoded.header == ["JAMB No", "Surname", "JAMB Score", "Date of Birth"]
        row = decoded.rows[0]
        assert row.row_number == 2
        assert row.cells[0] == "202512345678AB"
        assert row.cells[2] == 250
        assert row.cells[3].year == 2005

    def test_garbage_bytes_malformed(self):
        with pytest.raises(MalformedFileError):
            FileDecoder().decode(b"this is not a zip archive", filename="c.xlsx")


@pytest.mark.unit
class TestBase64:
    """Tests for decode_base64"""

    def test_plain_payload(self):
        payload = base64.b64encode(b"a,b\n1,2\n").decode()
        assert decode_base64(payload) == b"a,b\n1,2\n"

    def test_data_url_and_whitespace(self):
        encoded = base64.b64encode(b"a,b\n1,2\n").decode()
        payload = f"data:text/csv;base64,{encoded[:4]}\n{encoded[4:]}"
        assert decode_base64(payload) == b"a,b\n1,2\n"

    def test_invalid_payload(self):
        with pytest.raises(MalformedFileError):
            decode_base64("not base64 at all!")
