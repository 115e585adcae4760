"""
Contact service.

Single and bulk creation are gated by the quota tracker: headroom is
reserved atomically before the insert and settled after it, and released
again if the insert fails.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from shared.repository import (
    ITableRepository,
    PageRequest,
    Sort,
    eq,
    gte,
    ilike,
    is_null,
    lt,
    lte,
    not_null,
    search,
)

from modules.quota.exceptions import QuotaExceededError
from modules.quota.interfaces import IQuotaTracker

from .exceptions import ContactNotFoundError, DuplicateContactError, TooManyContactsError
from .interfaces import IContactService
from .models import (
    MAX_BULK_CONTACTS,
    SEARCH_FIELDS,
    SORTABLE_FIELDS,
    BulkCreateRequest,
    ContactFilters,
    ContactSearch,
    CreateContactRequest,
    UpdateContactRequest,
    phone_suffix,
)

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "name",
    "email",
    "phone",
    "company",
    "position",
    "industry",
    "category",
    "status",
    "notes",
    "created_at",
)


class ContactService(IContactService):
    """Contacts for one tenant at a time."""

    def __init__(
        self,
        contacts: ITableRepository,
        interactions: ITableRepository,
        reminders: ITableRepository,
        quota: IQuotaTracker,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._contacts = contacts
        self._interactions = interactions
        self._reminders = reminders
        self._quota = quota
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _require(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        row = await self._contacts.get(contact_id, [eq("user_id", tenant_id)])
        if row is None:
            raise ContactNotFoundError(contact_id)
        return row

    async def find_duplicate(
        self,
        tenant_id: str,
        email: Optional[str],
        phone: Optional[str],
    ) -> Optional[dict[str, Any]]:
        """Existing contact sharing the email or the phone's last 8 digits."""
        owned = eq("user_id", tenant_id)
        if email:
            page = await self._contacts.find([owned, eq("email", email.lower())], page=PageRequest(1, 1))
            if page.rows:
                return page.rows[0]
        suffix = phone_suffix(phone)
        if suffix:
            page = await self._contacts.find([owned, ilike("phone", suffix)], page=PageRequest(1, 1))
            if page.rows:
                return page.rows[0]
        return None

    async def list_contacts(
        self,
        tenant_id: str,
        filters: ContactFilters,
        page: int = 1,
        limit: int = 50,
        sort: str = "created_at",
        ascending: bool = False,
    ) -> dict[str, Any]:
        conditions = [eq("user_id", tenant_id)]
        for name in ("category", "industry", "status"):
            value = getattr(filters, name)
            if value:
                conditions.append(eq(name, value))
        if filters.search:
            conditions.append(search(("name", "company", "email", "phone"), filters.search))

        sort_field = sort if sort in SORTABLE_FIELDS else "created_at"
        request = PageRequest(page, limit)
        result = await self._contacts.find(
            conditions, sort=Sort(sort_field, descending=not ascending), page=request
        )
        total = result.total_count
        return {
            "contacts": result.rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": -(-total // limit),
                "has_more": request.offset + len(result.rows) < total,
            },
        }

    async def search(self, tenant_id: str, criteria: ContactSearch) -> list[dict[str, Any]]:
        conditions = [eq("user_id", tenant_id)]
        if criteria.q:
            conditions.append(search(SEARCH_FIELDS, criteria.q))
        for name in ("name", "company", "phone", "email"):
            value = getattr(criteria, name)
            if value:
                conditions.append(ilike(name, value))
        for name in ("industry", "category"):
            value = getattr(criteria, name)
            if value:
                conditions.append(eq(name, value))
        if criteria.created_after:
            conditions.append(gte("created_at", criteria.created_after))
        if criteria.created_before:
            conditions.append(lte("created_at", criteria.created_before))
        if criteria.has_interaction is True:
            conditions.append(not_null("last_interaction"))
        elif criteria.has_interaction is False:
            conditions.append(is_null("last_interaction"))

        page = await self._contacts.find(conditions, page=PageRequest(1, criteria.limit))
        return page.rows

    async def count(self, tenant_id: str) -> dict[str, Any]:
        page = await self._contacts.find(
            [eq("user_id", tenant_id)], page=PageRequest(1, 1), columns="id"
        )
        decision = await self._quota.get_decision(tenant_id)
        return {
            "count": page.total_count,
            "limit": decision.max,
            "remaining": decision.remaining,
            "plan": decision.plan.value,
        }

    async def stats(self, tenant_id: str) -> dict[str, Any]:
        owned = eq("user_id", tenant_id)
        now = self._clock()

        rows = (await self._contacts.find([owned], columns="category,industry")).rows
        by_category = Counter(row.get("category") or "Uncategorized" for row in rows)
        by_industry = Counter(row.get("industry") or "Unknown" for row in rows)

        week_ago = (now - timedelta(days=7)).isoformat()
        month_ago = (now - timedelta(days=30)).isoformat()
        one = PageRequest(1, 1)
        recent = await self._contacts.find([owned, gte("created_at", week_ago)], page=one, columns="id")
        stale = await self._contacts.find(
            [owned, lt("last_interaction", month_ago)], page=one, columns="id"
        )
        never = await self._contacts.find([owned, is_null("last_interaction")], page=one, columns="id")

        return {
            "total": len(rows),
            "recently_added": recent.total_count,
            "need_follow_up": stale.total_count + never.total_count,
            "by_category": dict(by_category),
            "by_industry": dict(by_industry),
        }

    async def get(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        return await self._require(tenant_id, contact_id)

    async def create(
        self,
        tenant_id: str,
        request: CreateContactRequest,
        default_source: str = "manual",
    ) -> dict[str, Any]:
        duplicate = await self.find_duplicate(tenant_id, request.email, request.phone)
        if duplicate is not None:
            raise DuplicateContactError(duplicate)

        decision = await self._quota.reserve_or_raise(tenant_id, 1)
        try:
            rows = await self._contacts.insert(request.to_row(tenant_id, default_source))
        except Exception:
            await self._quota.release(tenant_id, decision.reserved)
            raise
        await self._quota.commit(tenant_id, decision.reserved, len(rows))
        return rows[0]

    async def bulk_create(self, tenant_id: str, request: BulkCreateRequest) -> dict[str, Any]:
        submitted = len(request.contacts)
        if submitted > MAX_BULK_CONTACTS:
            raise TooManyContactsError(submitted, MAX_BULK_CONTACTS)

        decision = await self._quota.check_and_reserve(tenant_id, submitted, allow_partial=False)
        if not decision.allowed:
            raise QuotaExceededError(
                current=decision.current,
                limit=decision.max,
                requested=submitted,
                plan=decision.plan.value,
                code="CONTACT_LIMIT_EXCEEDED",
            )

        try:
            created = await self._contacts.insert([c.to_row(tenant_id) for c in request.contacts])
        except Exception:
            await self._quota.release(tenant_id, decision.reserved)
            raise
        await self._quota.commit(tenant_id, decision.reserved, len(created))
        return {"created": len(created), "contacts": created}

    async def update(
        self, tenant_id: str, contact_id: str, request: UpdateContactRequest
    ) -> dict[str, Any]:
        patch = request.to_patch()
        if not patch:
            return await self._require(tenant_id, contact_id)
        row = await self._contacts.update(contact_id, patch, [eq("user_id", tenant_id)])
        if row is None:
            raise ContactNotFoundError(contact_id)
        return row

    async def delete(self, tenant_id: str, contact_id: str) -> None:
        await self._require(tenant_id, contact_id)

        await self._interactions.delete_where([eq("contact_id", contact_id)])
        await self._reminders.delete_where([eq("contact_id", contact_id)])
        if not await self._contacts.delete(contact_id, [eq("user_id", tenant_id)]):
            raise ContactNotFoundError(contact_id)

        await self._quota.release(tenant_id, 1)
        logger.debug(f"Deleted contact {contact_id} for {tenant_id}")

    async def interactions(
        self, tenant_id: str, contact_id: str, limit: int = 20, offset: int = 0
    ) -> list[dict[str, Any]]:
        await self._require(tenant_id, contact_id)
        page = await self._interactions.find(
            [eq("contact_id", contact_id)],
            sort=Sort("interaction_date"),
            page=PageRequest(offset // limit + 1, limit),
        )
        return page.rows

    async def export(self, tenant_id: str, category: Optional[str] = None) -> list[dict[str, Any]]:
        conditions = [eq("user_id", tenant_id)]
        if category:
            conditions.append(eq("category", category))
        page = await self._contacts.find(
            conditions, sort=Sort("created_at"), columns=",".join(EXPORT_COLUMNS)
        )
        return page.rows
