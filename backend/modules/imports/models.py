"""
Import pipeline data models.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

# Canonical contact fields a source column can be mapped to
CANONICAL_FIELDS = ("name", "email", "phone", "company", "position", "industry", "notes")

DETAIL_LIMIT = 10


@dataclass(frozen=True)
class UploadedFile:
    """An uploaded file held in memory."""

    filename: str
    content_type: Optional[str]
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class FieldMapping(BaseModel):
    """Canonical field -> source column name. Unmapped fields are None."""

    model_config = {"extra": "ignore"}

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    industry: Optional[str] = None
    notes: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(getattr(self, f) for f in CANONICAL_FIELDS)


class RowError(BaseModel):
    row: int = Field(..., description="1-based spreadsheet row, counting the header")
    reason: str


@dataclass
class NormalizationResult:
    contacts: list[dict[str, Any]] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)


@dataclass
class DedupKeys:
    """Keys of contacts a tenant already has."""

    emails: set[str] = field(default_factory=set)
    phone_suffixes: set[str] = field(default_factory=set)


@dataclass
class DedupResult:
    unique: list[dict[str, Any]] = field(default_factory=list)
    duplicates: list[dict[str, Any]] = field(default_factory=list)


class ImportResult(BaseModel):
    """
    Outcome of one import.

    Every source row lands in exactly one bucket:
    ``imported + duplicates + errors + skipped_by_limit == total``.
    """

    imported: int = 0
    duplicates: int = 0
    errors: int = 0
    skipped_by_limit: int = 0
    total: int = 0
    error_details: list[RowError] = Field(default_factory=list)
    duplicate_details: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def accounted(self) -> int:
        return self.imported + self.duplicates + self.errors + self.skipped_by_limit

    def summary(self) -> str:
        message = f"Imported {self.imported} of {self.total} contacts"
        if self.skipped_by_limit:
            message += f" ({self.skipped_by_limit} skipped: contact limit reached)"
        return message


@dataclass(frozen=True)
class ParsedSheet:
    """First sheet of a spreadsheet with every cell as a string or None."""

    headers: list[str]
    rows: list[dict[str, Optional[str]]]
    sheet_names: list[str] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    def sample(self, count: int = DETAIL_LIMIT) -> list[dict[str, Optional[str]]]:
        return self.rows[:count]
