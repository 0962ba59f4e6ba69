"""
Upload readers: file decoding and row normalization.
"""

from .file_decoder import (
    DecodedFile,
    DecodedRow,
    EmptyFileError,
    FileDecodeError,
    FileDecoder,
    MalformedFileError,
    decode_base64,
)
from .row_normalizer import RowNormalizer, canonical_header, row_to_json

__all__ = [
    "DecodedFile",
    "DecodedRow",
    "EmptyFileError",
    "FileDecodeError",
    "FileDecoder",
    "MalformedFileError",
    "RowNormalizer",
    "canonical_header",
    "decode_base64",
    "row_to_json",
]
