"""
Quota module.

Tracks each tenant's contact count against the ceiling of their plan.

Public API:
- IQuotaTracker: Interface for quota checks and atomic counter changes
- QuotaTracker: Implementation over an IQuotaStore
- PlanType, QuotaDecision: Plans and the per-request quota answer
- TenantProfile, SubscriptionStatus: The profile row quota is read from
- Quota exceptions: QuotaExceededError, QuotaUnavailableError
"""

from .interfaces import IQuotaStore, IQuotaTracker
from .models import (
    PlanType,
    PLAN_CONTACT_LIMITS,
    QuotaDecision,
    QuotaSnapshot,
    Reservation,
    SubscriptionStatus,
    TenantProfile,
    contact_limit_for,
)
from .exceptions import (
    QuotaExceededError,
    QuotaUnavailableError,
    TenantProfileNotFoundError,
)
from .service import QuotaTracker
from .store import InMemoryQuotaStore, SupabaseQuotaStore

__all__ = [
    # Interfaces
    "IQuotaStore",
    "IQuotaTracker",
    # Implementations
    "QuotaTracker",
    "InMemoryQuotaStore",
    "SupabaseQuotaStore",
    # Models
    "PlanType",
    "PLAN_CONTACT_LIMITS",
    "QuotaDecision",
    "QuotaSnapshot",
    "Reservation",
    "SubscriptionStatus",
    "TenantProfile",
    "contact_limit_for",
    # Exceptions
    "QuotaExceededError",
    "QuotaUnavailableError",
    "TenantProfileNotFoundError",
]
