"""
Contact import module.

Public API:
- ImportPipeline: normalize -> dedup -> reserve -> insert -> settle
- ImportService: Spreadsheet and namecard entry points, background jobs
- normalize, normalize_email, normalize_phone, suggest_mapping
- deduplicate, keys_from_rows
- parse_spreadsheet, validate_spreadsheet, validate_image
- Models: FieldMapping, ImportResult, UploadedFile, ParsedSheet, RowError
"""

from .models import (
    CANONICAL_FIELDS,
    DedupKeys,
    DedupResult,
    FieldMapping,
    ImportResult,
    NormalizationResult,
    ParsedSheet,
    RowError,
    UploadedFile,
)
from .exceptions import EmptySpreadsheetError, ImportFailedError, UnsupportedFileError
from .normalization import (
    extract_field,
    normalize,
    normalize_email,
    normalize_phone,
    suggest_mapping,
)
from .dedup import deduplicate, keys_from_rows
from .parsing import parse_spreadsheet, validate_image, validate_spreadsheet
from .pipeline import ImportPipeline
from .service import ImportService

__all__ = [
    # Models
    "CANONICAL_FIELDS",
    "DedupKeys",
    "DedupResult",
    "FieldMapping",
    "ImportResult",
    "NormalizationResult",
    "ParsedSheet",
    "RowError",
    "UploadedFile",
    # Exceptions
    "EmptySpreadsheetError",
    "ImportFailedError",
    "UnsupportedFileError",
    # Normalization
    "extract_field",
    "normalize",
    "normalize_email",
    "normalize_phone",
    "suggest_mapping",
    # Dedup
    "deduplicate",
    "keys_from_rows",
    # Parsing
    "parse_spreadsheet",
    "validate_image",
    "validate_spreadsheet",
    # Services
    "ImportPipeline",
    "ImportService",
]
