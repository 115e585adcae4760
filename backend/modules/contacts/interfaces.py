"""
Contacts module interface.

The import pipeline and the namecard scanner create contacts through this
contract so that every write goes through the quota gate.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from .models import (
    BulkCreateRequest,
    ContactFilters,
    ContactSearch,
    CreateContactRequest,
    UpdateContactRequest,
)


@runtime_checkable
class IContactService(Protocol):
    """Interface for tenant-scoped contact operations."""

    async def list_contacts(
        self,
        tenant_id: str,
        filters: ContactFilters,
        page: int = 1,
        limit: int = 50,
        sort: str = "created_at",
        ascending: bool = False,
    ) -> dict[str, Any]:
        """Paginated contacts with the sort field restricted to a whitelist."""
        ...

    async def search(self, tenant_id: str, criteria: ContactSearch) -> list[dict[str, Any]]:
        ...

    async def count(self, tenant_id: str) -> dict[str, Any]:
        """Contact count alongside the tenant's quota."""
        ...

    async def stats(self, tenant_id: str) -> dict[str, Any]:
        ...

    async def get(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        ...

    async def create(
        self,
        tenant_id: str,
        request: CreateContactRequest,
        default_source: str = "manual",
    ) -> dict[str, Any]:
        """
        Create one contact.

        Raises:
            DuplicateContactError: If the email or phone is already used
            QuotaExceededError: If the tenant has no headroom left
        """
        ...

    async def bulk_create(self, tenant_id: str, request: BulkCreateRequest) -> dict[str, Any]:
        """Create many contacts, all or none with respect to the quota."""
        ...

    async def update(
        self, tenant_id: str, contact_id: str, request: UpdateContactRequest
    ) -> dict[str, Any]:
        ...

    async def delete(self, tenant_id: str, contact_id: str) -> None:
        ...

    async def interactions(
        self, tenant_id: str, contact_id: str, limit: int = 20, offset: int = 0
    ) -> list[dict[str, Any]]:
        ...

    async def export(self, tenant_id: str, category: Optional[str] = None) -> list[dict[str, Any]]:
        ...
