"""
Quota tracker implementation.

Wraps an IQuotaStore with the plan ceiling table, a bounded timeout on
every store call, and fail-closed error handling: if the store is slow or
down, contact writes are blocked rather than risk an under-counted tenant.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from shared.exceptions import SalesdeskError, ValidationError

from .exceptions import QuotaExceededError, QuotaUnavailableError
from .interfaces import IQuotaStore, IQuotaTracker
from .models import PLAN_CONTACT_LIMITS, QuotaDecision, contact_limit_for

logger = logging.getLogger(__name__)

T = TypeVar("T")

CEILINGS_BY_PLAN_NAME: dict[str, int] = {
    plan.value: limit for plan, limit in PLAN_CONTACT_LIMITS.items()
}


class QuotaTracker(IQuotaTracker):
    """Plan-aware contact quota backed by an atomic store."""

    def __init__(self, store: IQuotaStore, timeout_seconds: float = 2.0):
        self._store = store
        self._timeout = timeout_seconds

    async def _call(self, operation: str, awaitable: Awaitable[T], context: str = "") -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except SalesdeskError:
            raise
        except asyncio.TimeoutError:
            # The store call may still complete after we stop waiting; a
            # reservation that lands late holds headroom until reconciled.
            logger.error(
                f"Quota store timed out during {operation} after {self._timeout}s "
                f"({context or 'no context'}); the change may still apply"
            )
            raise QuotaUnavailableError(operation, "timed out")
        except Exception as e:
            logger.exception(f"Quota store failed during {operation}")
            raise QuotaUnavailableError(operation, str(e)) from e

    async def get_decision(self, tenant_id: str, requested: int = 1) -> QuotaDecision:
        """Advisory headroom check. Nothing is reserved."""
        snapshot = await self._call("snapshot", self._store.snapshot(tenant_id))
        return QuotaDecision.from_snapshot(snapshot, requested)

    async def check_and_reserve(
        self,
        tenant_id: str,
        requested: int,
        allow_partial: bool = False,
    ) -> QuotaDecision:
        """Check and reserve headroom as one conditional update."""
        if requested < 1:
            raise ValidationError(f"Requested count must be positive, got {requested}")

        reservation = await self._call(
            "reserve",
            self._store.reserve(tenant_id, requested, CEILINGS_BY_PLAN_NAME, allow_partial),
            f"tenant={tenant_id} requested={requested}",
        )

        ceiling = contact_limit_for(reservation.plan)
        current = reservation.contact_count - reservation.granted
        decision = QuotaDecision(
            allowed=reservation.granted > 0,
            current=current,
            max=ceiling,
            remaining=max(0, ceiling - current),
            requested=requested,
            reserved=reservation.granted,
            plan=reservation.plan,
        )

        if not decision.allowed:
            logger.info(
                f"Quota rejected {requested} contacts for {tenant_id} "
                f"({current}/{ceiling}, plan={reservation.plan.value})"
            )
        return decision

    async def reserve_or_raise(self, tenant_id: str, requested: int = 1) -> QuotaDecision:
        """
        Reserve exactly ``requested`` or raise.

        Raises:
            QuotaExceededError: If the tenant does not have that much headroom
        """
        decision = await self.check_and_reserve(tenant_id, requested)
        if not decision.allowed:
            raise QuotaExceededError(
                current=decision.current,
                limit=decision.max,
                requested=requested,
                plan=decision.plan.value,
            )
        return decision

    async def commit(self, tenant_id: str, reserved: int, actual: int) -> int:
        """Return unused headroom so the counter matches what was stored."""
        if actual > reserved:
            logger.warning(
                f"Committing {actual} contacts for {tenant_id} against a reservation of {reserved}"
            )
        return await self._call(
            "commit",
            self._store.adjust(tenant_id, actual - reserved),
            f"tenant={tenant_id} delta={actual - reserved}",
        )

    async def release(self, tenant_id: str, count: int) -> int:
        """Give back quota after deletions."""
        return await self._call(
            "release", self._store.adjust(tenant_id, -abs(count)), f"tenant={tenant_id} delta={-abs(count)}"
        )

    async def increment(self, tenant_id: str, delta: int) -> int:
        return await self._call(
            "increment", self._store.adjust(tenant_id, delta), f"tenant={tenant_id} delta={delta}"
        )
