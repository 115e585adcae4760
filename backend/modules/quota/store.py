"""
Quota store implementations.

Both stores keep ``contact_count`` on the tenant's profile row and only
ever change it through a single atomic step, never a read followed by a
write from application memory.
"""

import asyncio
import logging
from typing import Any

from shared.fallback import Strategy, run_with_fallback
from shared.repository import BaseRepository, ITableRepository

from .exceptions import TenantProfileNotFoundError
from .models import PlanType, QuotaSnapshot, Reservation

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
CAS_MAX_ATTEMPTS = 5


def _ceiling(ceiling_for_plan: dict[str, int], plan: PlanType) -> int:
    return ceiling_for_plan.get(plan.value, ceiling_for_plan[PlanType.FREE.value])


class InMemoryQuotaStore:
    """
    Quota store over an in-process profiles repository.

    Every mutation of the counter goes through this store's lock, which
    makes check-and-increment one atomic step within the process.
    """

    def __init__(self, profiles: ITableRepository) -> None:
        self._profiles = profiles
        self._lock = asyncio.Lock()

    async def _load(self, tenant_id: str) -> dict[str, Any]:
        row = await self._profiles.get(tenant_id)
        if row is None:
            raise TenantProfileNotFoundError(tenant_id)
        return row

    async def snapshot(self, tenant_id: str) -> QuotaSnapshot:
        row = await self._load(tenant_id)
        return QuotaSnapshot(
            plan=PlanType.parse(row.get("subscription_plan")),
            contact_count=int(row.get("contact_count") or 0),
        )

    async def reserve(
        self,
        tenant_id: str,
        requested: int,
        ceiling_for_plan: dict[str, int],
        allow_partial: bool,
    ) -> Reservation:
        async with self._lock:
            row = await self._load(tenant_id)
            plan = PlanType.parse(row.get("subscription_plan"))
            count = int(row.get("contact_count") or 0)

            headroom = max(0, _ceiling(ceiling_for_plan, plan) - count)
            granted = min(requested, headroom)
            if not allow_partial and granted < requested:
                granted = 0

            if granted:
                count += granted
                await self._profiles.update(tenant_id, {"contact_count": count})

            return Reservation(plan=plan, granted=granted, contact_count=count)

    async def adjust(self, tenant_id: str, delta: int) -> int:
        async with self._lock:
            row = await self._load(tenant_id)
            count = max(0, int(row.get("contact_count") or 0) + delta)
            await self._profiles.update(tenant_id, {"contact_count": count})
            return count


class SupabaseQuotaStore(BaseRepository[QuotaSnapshot]):
    """
    Quota store backed by Postgres functions (see migrations/001_contact_quota.sql).

    ``reserve_contact_quota`` locks the profile row, computes the headroom
    and increments in the same statement. ``adjust`` prefers the
    ``adjust_contact_count`` function and falls back to a compare-and-swap
    loop on the row when the function is unavailable.
    """

    async def _execute(self, query: Any) -> Any:
        return await asyncio.to_thread(query.execute)

    async def snapshot(self, tenant_id: str) -> QuotaSnapshot:
        result = await self._execute(
            self._db.table(PROFILES_TABLE)
            .select("subscription_plan, contact_count")
            .eq("id", tenant_id)
            .limit(1)
        )
        if not result.data:
            raise TenantProfileNotFoundError(tenant_id)
        row = result.data[0]
        return QuotaSnapshot(
            plan=PlanType.parse(row.get("subscription_plan")),
            contact_count=int(row.get("contact_count") or 0),
        )

    async def reserve(
        self,
        tenant_id: str,
        requested: int,
        ceiling_for_plan: dict[str, int],
        allow_partial: bool,
    ) -> Reservation:
        result = await self._execute(
            self._db.rpc(
                "reserve_contact_quota",
                {
                    "p_user_id": tenant_id,
                    "p_requested": requested,
                    "p_ceilings": ceiling_for_plan,
                    "p_allow_partial": allow_partial,
                },
            )
        )
        if not result.data:
            raise TenantProfileNotFoundError(tenant_id)
        row = result.data[0]
        return Reservation(
            plan=PlanType.parse(row.get("plan")),
            granted=int(row["granted"]),
            contact_count=int(row["contact_count"]),
        )

    async def adjust(self, tenant_id: str, delta: int) -> int:
        return await run_with_fallback(
            [
                Strategy("rpc", lambda: self._adjust_rpc(tenant_id, delta)),
                Strategy("compare_and_swap", lambda: self._adjust_cas(tenant_id, delta)),
            ],
            service="quota-store",
            give_up_on=(TenantProfileNotFoundError,),
        )

    async def _adjust_rpc(self, tenant_id: str, delta: int) -> int:
        result = await self._execute(
            self._db.rpc(
                "adjust_contact_count",
                {"p_user_id": tenant_id, "p_delta": delta},
            )
        )
        if result.data is None:
            raise TenantProfileNotFoundError(tenant_id)
        return int(result.data)

    async def _adjust_cas(self, tenant_id: str, delta: int) -> int:
        for attempt in range(1, CAS_MAX_ATTEMPTS + 1):
            observed = (await self.snapshot(tenant_id)).contact_count
            target = max(0, observed + delta)
            # The update only lands if nobody changed the counter since we read it
            result = await self._execute(
                self._db.table(PROFILES_TABLE)
                .update({"contact_count": target})
                .eq("id", tenant_id)
                .eq("contact_count", observed)
            )
            if result.data:
                return target
            logger.debug(f"Contact count CAS conflict for {tenant_id} (attempt {attempt})")

        raise RuntimeError(
            f"Contact count for {tenant_id} kept changing after {CAS_MAX_ATTEMPTS} attempts"
        )
