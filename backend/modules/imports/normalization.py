"""
Row normalization for contact imports.

Turns raw spreadsheet (or card scan) rows into contact rows. Problems with
a single field (a malformed email, a too-short phone) null that field; a
row only becomes an error when nothing identifies the person at all.
"""

import re
from typing import Any, Iterable, Mapping, Optional

from modules.contacts.models import DEFAULT_CATEGORY, EMAIL_PATTERN

from .models import CANONICAL_FIELDS, FieldMapping, NormalizationResult, RowError

COUNTRY_CODE = "60"
MIN_PHONE_LENGTH = 10
# Spreadsheet row of the first data row: rows are 1-based and the header takes row 1
HEADER_OFFSET = 2

NO_IDENTITY_REASON = "No identifiable information"
UNKNOWN_NAME = "Unknown"

# Header keywords for the heuristic column mapper, checked in order
HEADER_HINTS: dict[str, tuple[str, ...]] = {
    "email": ("email", "e-mail", "mail"),
    "phone": ("phone", "mobile", "tel", "contact no", "hp", "whatsapp"),
    "company": ("company", "organisation", "organization", "business", "firm", "syarikat"),
    "position": ("position", "title", "designation", "role", "jawatan"),
    "industry": ("industry", "sector"),
    "notes": ("note", "remark", "comment"),
    "name": ("name", "nama", "contact", "person"),
}


def extract_field(row: Mapping[str, Any], column: Optional[str]) -> Optional[str]:
    """Trimmed string value of ``column``; empty or missing gives None."""
    if not column:
        return None
    value = row.get(column)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_email(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = value.strip().lower()
    return cleaned if EMAIL_PATTERN.match(cleaned) else None


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """
    Coerce a phone number to +60 international form.

    A leading trunk ``0`` becomes ``+60``, a bare ``60`` gets its ``+``, and
    any other bare number of 9+ digits is assumed to be national.
    """
    if not value:
        return None
    cleaned = re.sub(r"[^\d+]", "", str(value))

    if cleaned.startswith("0"):
        cleaned = f"+{COUNTRY_CODE}{cleaned[1:]}"
    elif cleaned.startswith(COUNTRY_CODE):
        cleaned = f"+{cleaned}"
    elif not cleaned.startswith("+") and len(cleaned) >= 9:
        cleaned = f"+{COUNTRY_CODE}{cleaned}"

    return cleaned if len(cleaned) >= MIN_PHONE_LENGTH else None


def normalize(
    raw_rows: Iterable[Mapping[str, Any]],
    field_mapping: FieldMapping,
    default_category: str = DEFAULT_CATEGORY,
) -> NormalizationResult:
    """Map and clean raw rows into contact rows, collecting per-row errors."""
    result = NormalizationResult()

    for index, row in enumerate(raw_rows):
        values = {f: extract_field(row, getattr(field_mapping, f)) for f in CANONICAL_FIELDS}
        email = normalize_email(values["email"])
        phone = normalize_phone(values["phone"])

        if not values["name"] and not email and not phone:
            result.errors.append(RowError(row=index + HEADER_OFFSET, reason=NO_IDENTITY_REASON))
            continue

        result.contacts.append({
            "name": values["name"] or UNKNOWN_NAME,
            "email": email,
            "phone": phone,
            "company": values["company"],
            "position": values["position"],
            "industry": values["industry"],
            "notes": values["notes"],
            "category": default_category,
            "_row": index + HEADER_OFFSET,
        })

    return result


def suggest_mapping(headers: Iterable[str]) -> FieldMapping:
    """
    Guess a column mapping from header names alone.

    Used when no assistant is available to analyze the sheet.
    """
    assigned: dict[str, str] = {}
    for header in headers:
        label = str(header).strip().lower()
        if not label:
            continue
        for canonical, hints in HEADER_HINTS.items():
            if canonical in assigned:
                continue
            if any(hint in label for hint in hints):
                assigned[canonical] = header
                break
    return FieldMapping(**assigned)
