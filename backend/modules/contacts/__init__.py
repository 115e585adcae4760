"""
Contacts module.

Public API:
- IContactService / ContactService: Tenant-scoped contacts behind the quota gate
- email_key, phone_suffix: Duplicate detection keys shared with imports
- Contact exceptions: ContactNotFoundError, DuplicateContactError, TooManyContactsError
"""

from .interfaces import IContactService
from .models import (
    BulkCreateRequest,
    ContactFilters,
    ContactSearch,
    CreateContactRequest,
    UpdateContactRequest,
    email_key,
    phone_suffix,
)
from .exceptions import ContactNotFoundError, DuplicateContactError, TooManyContactsError
from .service import ContactService

__all__ = [
    "IContactService",
    "ContactService",
    "BulkCreateRequest",
    "ContactFilters",
    "ContactSearch",
    "CreateContactRequest",
    "UpdateContactRequest",
    "email_key",
    "phone_suffix",
    "ContactNotFoundError",
    "DuplicateContactError",
    "TooManyContactsError",
]
