"""
Contact import pipeline.

normalize -> deduplicate -> reserve quota -> truncate -> one bulk insert
-> settle the reservation. Row problems are accumulated, never raised; a
failure of the insert itself aborts the whole batch.
"""

import logging
from typing import Any, Iterable, Mapping

from shared.repository import ITableRepository, PageRequest, Sort, eq

from modules.contacts.models import DEFAULT_CATEGORY
from modules.quota.interfaces import IQuotaTracker

from .dedup import deduplicate, keys_from_rows
from .exceptions import ImportFailedError
from .models import DETAIL_LIMIT, DedupKeys, FieldMapping, ImportResult
from .normalization import normalize

logger = logging.getLogger(__name__)

# PostgREST caps unranged selects at its max-rows setting (1000 by default)
EXISTING_PAGE_SIZE = 1000


def _duplicate_detail(contact: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "row": contact.get("_row"),
        "name": contact.get("name"),
        "email": contact.get("email"),
        "phone": contact.get("phone"),
    }


class ImportPipeline:
    """Runs an import for one tenant against the contacts table and the quota."""

    def __init__(self, contacts: ITableRepository, quota: IQuotaTracker):
        self._contacts = contacts
        self._quota = quota

    async def existing_keys(self, tenant_id: str) -> DedupKeys:
        """Email and phone keys of every contact the tenant has, read page by page."""
        rows: list[dict[str, Any]] = []
        number = 1
        while True:
            page = await self._contacts.find(
                [eq("user_id", tenant_id)],
                sort=Sort("id", descending=False),
                page=PageRequest(number, EXISTING_PAGE_SIZE),
                columns="id,email,phone",
            )
            rows.extend(page.rows)
            if not page.rows or len(rows) >= page.total_count:
                break
            number += 1
        return keys_from_rows(rows)

    async def run(
        self,
        tenant_id: str,
        rows: Iterable[Mapping[str, Any]],
        mapping: FieldMapping,
        skip_duplicates: bool = True,
        default_category: str = DEFAULT_CATEGORY,
        source: str = "spreadsheet_import",
    ) -> ImportResult:
        """
        Import ``rows`` for a tenant.

        Unique rows beyond the tenant's remaining quota are not inserted and
        are reported as ``skipped_by_limit``.

        Raises:
            ImportFailedError: If the bulk insert fails (the reservation is released)
            QuotaUnavailableError: If the quota store cannot be reached
        """
        rows = list(rows)
        normalized = normalize(rows, mapping, default_category)

        existing = await self.existing_keys(tenant_id) if skip_duplicates else DedupKeys()
        dedup = deduplicate(normalized.contacts, existing, skip_duplicates)

        imported = 0
        skipped = 0
        if dedup.unique:
            decision = await self._quota.check_and_reserve(
                tenant_id, len(dedup.unique), allow_partial=True
            )
            batch = dedup.unique[: decision.reserved]
            skipped = len(dedup.unique) - len(batch)

            if batch:
                imported = await self._insert(tenant_id, batch, source, decision.reserved)

        result = ImportResult(
            imported=imported,
            duplicates=len(dedup.duplicates),
            errors=len(normalized.errors),
            skipped_by_limit=skipped,
            total=len(rows),
            error_details=normalized.errors[:DETAIL_LIMIT],
            duplicate_details=[_duplicate_detail(c) for c in dedup.duplicates[:DETAIL_LIMIT]],
        )
        logger.info(
            f"Import for {tenant_id}: {result.imported} imported, {result.duplicates} duplicates, "
            f"{result.errors} errors, {result.skipped_by_limit} over limit of {result.total}"
        )
        return result

    async def _insert(
        self,
        tenant_id: str,
        batch: list[dict[str, Any]],
        source: str,
        reserved: int,
    ) -> int:
        records = []
        for contact in batch:
            record = {k: v for k, v in contact.items() if not k.startswith("_")}
            record.update(user_id=tenant_id, source=source, status="active")
            records.append(record)

        try:
            inserted = await self._contacts.insert(records)
        except Exception as e:
            logger.exception(f"Bulk insert of {len(records)} contacts failed for {tenant_id}")
            await self._quota.release(tenant_id, reserved)
            raise ImportFailedError(str(e), len(records)) from e

        await self._quota.commit(tenant_id, reserved, len(inserted))
        return len(inserted)
