"""
Batch upload processing module.
"""

from .pipeline import BatchPipeline, BatchProcessingError
from .readers import FileDecoder, RowNormalizer
from .resolver import DuplicatePolicy, Resolution, UpsertResolver

__all__ = [
    "BatchPipeline",
    "BatchProcessingError",
    "DuplicatePolicy",
    "FileDecoder",
    "Resolution",
    "RowNormalizer",
    "UpsertResolver",
]
