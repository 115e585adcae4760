"""
Quota module interfaces.

Other modules should depend on IQuotaTracker, not the concrete implementation.
Stores implement IQuotaStore; every mutation they expose is a single atomic
operation at the storage layer.
"""

from typing import Protocol, runtime_checkable

from .models import QuotaDecision, QuotaSnapshot, Reservation


@runtime_checkable
class IQuotaStore(Protocol):
    """Storage contract for the tenant contact counter."""

    async def snapshot(self, tenant_id: str) -> QuotaSnapshot:
        """
        Read the tenant's plan and counter.

        Raises:
            TenantProfileNotFoundError: If the tenant has no profile
        """
        ...

    async def reserve(
        self,
        tenant_id: str,
        requested: int,
        ceiling_for_plan: dict[str, int],
        allow_partial: bool,
    ) -> Reservation:
        """
        Increment the counter, bounded by the plan ceiling, in one atomic step.

        With ``allow_partial`` the increment is ``min(requested, headroom)``;
        without it the increment is ``requested`` or nothing.
        """
        ...

    async def adjust(self, tenant_id: str, delta: int) -> int:
        """Atomically add ``delta`` (may be negative, floored at 0). Returns the new count."""
        ...


@runtime_checkable
class IQuotaTracker(Protocol):
    """
    Interface for contact quota governance.

    The reservation made by check_and_reserve is the admission: it is a
    conditional update at the store, so concurrent callers near the ceiling
    can never be admitted past it.
    """

    async def get_decision(self, tenant_id: str, requested: int = 1) -> QuotaDecision:
        """
        Advisory read of the tenant's headroom. Mutates nothing.

        Raises:
            QuotaUnavailableError: If the store does not answer in time
        """
        ...

    async def check_and_reserve(
        self,
        tenant_id: str,
        requested: int,
        allow_partial: bool = False,
    ) -> QuotaDecision:
        """
        Check headroom and reserve it atomically.

        Args:
            tenant_id: Tenant (user) id
            requested: Number of new contacts the caller wants to write
            allow_partial: Reserve ``min(requested, remaining)`` instead of
                rejecting wholesale. Only bulk import truncation uses this.

        Returns:
            QuotaDecision with ``reserved`` set to what was added to the counter

        Raises:
            QuotaUnavailableError: If the store does not answer in time
        """
        ...

    async def reserve_or_raise(self, tenant_id: str, requested: int = 1) -> QuotaDecision:
        """
        Reserve exactly ``requested`` with no partial grant.

        Raises:
            QuotaExceededError: If the tenant lacks the headroom
        """
        ...

    async def commit(self, tenant_id: str, reserved: int, actual: int) -> int:
        """
        Settle a reservation after the write.

        Gives back ``reserved - actual`` so the counter matches stored rows.
        Returns the new counter value.
        """
        ...

    async def release(self, tenant_id: str, count: int) -> int:
        """Atomic decrement for deletions (floored at 0). Returns the new count."""
        ...

    async def increment(self, tenant_id: str, delta: int) -> int:
        """Raw atomic increment. Returns the new count."""
        ...
