"""
Contact module exceptions.
"""

from typing import Any, Optional

from shared.exceptions import DuplicateError, NotFoundError, ValidationError


class ContactNotFoundError(NotFoundError):
    def __init__(self, contact_id: Optional[str] = None):
        super().__init__(
            "Contact not found",
            code="CONTACT_NOT_FOUND",
            details={"contact_id": contact_id} if contact_id else None,
        )


class DuplicateContactError(DuplicateError):
    """A contact with the same email or phone already exists for this tenant."""

    def __init__(self, existing: dict[str, Any]):
        super().__init__(
            "A contact with this email or phone already exists",
            code="DUPLICATE_CONTACT",
            details={"existing_id": existing.get("id"), "existing_name": existing.get("name")},
        )


class TooManyContactsError(ValidationError):
    def __init__(self, submitted: int, maximum: int):
        super().__init__(
            f"Maximum {maximum} contacts per bulk request",
            code="TOO_MANY_CONTACTS",
            details={"submitted": submitted, "max": maximum},
        )
