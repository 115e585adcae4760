"""
Upload validation and spreadsheet parsing.

Spreadsheets are read with pandas (openpyxl for .xlsx, xlrd for .xls).
Only the first sheet is used and every cell is read as text.
"""

import io
import logging
import zipfile
from typing import Optional

import pandas as pd

from shared.exceptions import PayloadTooLargeError

from .exceptions import EmptySpreadsheetError, UnsupportedFileError
from .models import ParsedSheet, UploadedFile

logger = logging.getLogger(__name__)

SPREADSHEET_TYPES = {
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "text/csv": "csv",
    "application/csv": "csv",
}
SPREADSHEET_EXTENSIONS = ("xlsx", "xls", "csv")

IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic")


def _extension(filename: str) -> Optional[str]:
    if "." not in filename:
        return None
    return filename.rsplit(".", 1)[1].lower()


def spreadsheet_kind(upload: UploadedFile) -> str:
    """``xlsx``, ``xls`` or ``csv``. The extension wins over a generic MIME type."""
    ext = _extension(upload.filename)
    if ext in SPREADSHEET_EXTENSIONS:
        return ext
    kind = SPREADSHEET_TYPES.get((upload.content_type or "").lower())
    if kind is None:
        raise UnsupportedFileError(
            "Invalid file type. Only Excel and CSV files are allowed.", upload.filename
        )
    return kind


def validate_spreadsheet(upload: UploadedFile, max_bytes: int) -> str:
    if upload.size > max_bytes:
        raise PayloadTooLargeError(max_bytes, upload.size)
    return spreadsheet_kind(upload)


def validate_image(upload: UploadedFile, max_bytes: int) -> None:
    if upload.size > max_bytes:
        raise PayloadTooLargeError(max_bytes, upload.size)
    if (upload.content_type or "").lower() not in IMAGE_TYPES:
        raise UnsupportedFileError(
            "Invalid file type. Only JPEG, PNG, WebP and HEIC images are allowed.",
            upload.filename,
        )


def parse_spreadsheet(upload: UploadedFile) -> ParsedSheet:
    """
    Read the first sheet of an upload.

    Raises:
        UnsupportedFileError: If the file is not a spreadsheet or cannot be read
        EmptySpreadsheetError: If the sheet has no data rows
    """
    kind = spreadsheet_kind(upload)
    buffer = io.BytesIO(upload.content)
    sheet_names: list[str] = []

    try:
        if kind == "csv":
            frame = pd.read_csv(buffer, dtype=str, skip_blank_lines=True)
        else:
            workbook = pd.ExcelFile(buffer, engine="openpyxl" if kind == "xlsx" else "xlrd")
            sheet_names = [str(name) for name in workbook.sheet_names]
            frame = workbook.parse(sheet_names[0], dtype=str)
    except pd.errors.EmptyDataError:
        raise EmptySpreadsheetError()
    except (ValueError, KeyError, zipfile.BadZipFile, pd.errors.ParserError) as e:
        logger.info(f"Could not parse {upload.filename}: {e}")
        raise UnsupportedFileError(f"Could not read spreadsheet: {e}", upload.filename) from e

    frame = frame.dropna(how="all")
    if frame.empty:
        raise EmptySpreadsheetError()

    frame.columns = [str(column).strip() for column in frame.columns]
    frame = frame.astype(object).where(frame.notna(), None)

    return ParsedSheet(
        headers=list(frame.columns),
        rows=frame.to_dict(orient="records"),
        sheet_names=sheet_names,
    )
