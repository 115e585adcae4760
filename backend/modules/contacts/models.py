"""
Contact data models and validation rules.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]{8,}$")

PHONE_SUFFIX_LENGTH = 8

DEFAULT_CATEGORY = "Lead"
SORTABLE_FIELDS = ("created_at", "updated_at", "name", "company", "last_interaction")
SEARCH_FIELDS = ("name", "company", "email", "phone", "notes")
MAX_BULK_CONTACTS = 500

# Columns a client may never overwrite
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


def email_key(email: Optional[str]) -> Optional[str]:
    """Dedup key for an email address."""
    if not email:
        return None
    return email.strip().lower() or None


def phone_suffix(phone: Optional[str]) -> Optional[str]:
    """
    Dedup key for a phone number: its last eight digits.

    Comparing suffixes makes "012-345 6789" and "+60123456789" collide.
    """
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) < PHONE_SUFFIX_LENGTH:
        return None
    return digits[-PHONE_SUFFIX_LENGTH:]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ContactFields(BaseModel):
    """Fields shared by create and update requests."""

    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    industry: Optional[str] = None
    category: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    custom_fields: Optional[dict[str, Any]] = None
    status: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        v = _clean(v)
        if v is None:
            return None
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        v = _clean(v)
        if v is None:
            return None
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number format")
        return v

    @field_validator("company", "position", "address", "notes")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean(v)


class CreateContactRequest(ContactFields):
    """Request body for creating a single contact."""

    name: str = Field(..., description="Contact name, at least 2 characters")
    source: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name is required (minimum 2 characters)")
        return v

    def to_row(self, tenant_id: str, default_source: str = "manual") -> dict[str, Any]:
        return {
            "user_id": tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "position": self.position,
            "industry": self.industry,
            "category": self.category or DEFAULT_CATEGORY,
            "address": self.address,
            "notes": self.notes,
            "tags": self.tags or [],
            "custom_fields": self.custom_fields or {},
            "source": self.source or default_source,
            "status": self.status or "active",
        }


class UpdateContactRequest(ContactFields):
    """Partial update. ``id``, ``user_id`` and ``created_at`` are ignored."""

    model_config = {"extra": "ignore"}

    name: Optional[str] = None
    last_interaction: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name is required (minimum 2 characters)")
        return v

    def to_patch(self) -> dict[str, Any]:
        patch = self.model_dump(exclude_unset=True)
        return {k: v for k, v in patch.items() if k not in PROTECTED_FIELDS}


class BulkContactItem(BaseModel):
    """Loosely validated row for the bulk endpoint."""

    model_config = {"extra": "ignore"}

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    industry: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    source: Optional[str] = None

    def to_row(self, tenant_id: str) -> dict[str, Any]:
        return {
            "user_id": tenant_id,
            "name": _clean(self.name) or "Unknown",
            "email": email_key(self.email),
            "phone": _clean(self.phone),
            "company": _clean(self.company),
            "position": _clean(self.position),
            "industry": self.industry,
            "category": self.category or DEFAULT_CATEGORY,
            "notes": _clean(self.notes),
            "tags": self.tags or [],
            "source": self.source or "bulk_import",
            "status": "active",
        }


class BulkCreateRequest(BaseModel):
    contacts: list[BulkContactItem] = Field(..., min_length=1)


class ContactFilters(BaseModel):
    category: Optional[str] = None
    industry: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None


class ContactSearch(BaseModel):
    """Criteria for the search endpoint."""

    q: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    has_interaction: Optional[bool] = None
    created_after: Optional[str] = None
    created_before: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=100)
