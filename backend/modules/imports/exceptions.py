"""
Import module exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError, ValidationError


class UnsupportedFileError(ValidationError):
    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(
            message,
            code="INVALID_FILE_TYPE",
            details={"filename": filename} if filename else None,
        )


class EmptySpreadsheetError(ValidationError):
    def __init__(self):
        super().__init__("Spreadsheet is empty", code="EMPTY_FILE")


class ImportFailedError(ExternalServiceError):
    """The bulk insert failed; nothing from the batch was stored."""

    default_code = "IMPORT_FAILED"

    def __init__(self, reason: str, attempted: int):
        super().__init__(
            f"Failed to import contacts: {reason}",
            service="contacts-store",
            details={"attempted": attempted},
        )
