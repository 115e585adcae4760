"""
Route-class limiter registry.

Built once at startup and looked up by route class at request time.
"""

from dataclasses import replace
from typing import Mapping, Optional

from modules.quota.models import PlanType

from .models import LimiterConfig, RequestIdentity, RouteClass

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS


def key_by_tenant_or_address(identity: RequestIdentity) -> str:
    """Authenticated tenant when known, network address otherwise."""
    if identity.tenant_id:
        return f"user:{identity.tenant_id}"
    return f"ip:{identity.address}"


def key_by_claimed_identity(identity: RequestIdentity) -> str:
    """
    The identity a request claims (e.g. the phone an OTP is sent to).

    Keying on the target rather than the caller stops a brute force spread
    over many addresses against one phone number.
    """
    if identity.claimed_identity:
        return f"identity:{identity.claimed_identity}"
    return f"ip:{identity.address}"


DEFAULT_LIMITS: dict[RouteClass, LimiterConfig] = {
    RouteClass.GLOBAL: LimiterConfig(
        window_ms=15 * MINUTE_MS,
        max=1000,
        key_fn=key_by_tenant_or_address,
        message="Too many requests, please try again later.",
    ),
    RouteClass.AUTH_SEND: LimiterConfig(
        window_ms=15 * MINUTE_MS,
        max=10,
        key_fn=key_by_claimed_identity,
        message="Too many authentication attempts. Please try again in 15 minutes.",
        plan_scaled=False,
    ),
    RouteClass.OTP_VERIFY: LimiterConfig(
        window_ms=5 * MINUTE_MS,
        max=5,
        key_fn=key_by_claimed_identity,
        message="Too many OTP verification attempts. Please request a new code.",
        plan_scaled=False,
    ),
    RouteClass.CHAT: LimiterConfig(
        window_ms=MINUTE_MS,
        max=20,
        key_fn=key_by_tenant_or_address,
        message="You're sending messages too quickly. Please wait a moment.",
    ),
    RouteClass.UPLOAD: LimiterConfig(
        window_ms=HOUR_MS,
        max=20,
        key_fn=key_by_tenant_or_address,
        message="Upload limit reached. Please try again later.",
    ),
    RouteClass.CONTACT_CREATE: LimiterConfig(
        window_ms=MINUTE_MS,
        max=100,
        key_fn=key_by_tenant_or_address,
        message="Too many contacts created. Please slow down.",
    ),
    RouteClass.SEARCH: LimiterConfig(
        window_ms=MINUTE_MS,
        max=60,
        key_fn=key_by_tenant_or_address,
        message="Too many search requests. Please slow down.",
    ),
    RouteClass.PAYMENT: LimiterConfig(
        window_ms=HOUR_MS,
        max=10,
        key_fn=key_by_tenant_or_address,
        message="Too many payment requests. Please try again later.",
    ),
    RouteClass.EXPORT: LimiterConfig(
        window_ms=HOUR_MS,
        max=5,
        key_fn=key_by_tenant_or_address,
        message="Export limit reached. Please try again later.",
    ),
}


PLAN_MULTIPLIERS: dict[PlanType, int] = {
    PlanType.FREE: 1,
    PlanType.TRIAL: 1,
    PlanType.BASE: 5,
    PlanType.ENTERPRISE: 20,
}


def plan_multiplier(plan: PlanType | str | None) -> int:
    """Ceiling multiplier for a plan. Unknown plans get 1."""
    if plan is None:
        return 1
    if not isinstance(plan, PlanType):
        plan = PlanType.parse(plan)
    return PLAN_MULTIPLIERS.get(plan, 1)


class LimiterRegistry:
    """Maps route classes to their limiter configuration."""

    def __init__(self, configs: Optional[Mapping[RouteClass, LimiterConfig]] = None):
        self._configs = dict(configs or DEFAULT_LIMITS)

    def get(self, route_class: RouteClass) -> LimiterConfig:
        try:
            return self._configs[route_class]
        except KeyError:
            raise ValueError(f"No limiter registered for route class '{route_class}'")

    def with_overrides(self, route_class: RouteClass, **changes) -> "LimiterRegistry":
        """Copy of this registry with one route class changed."""
        configs = dict(self._configs)
        configs[route_class] = replace(self.get(route_class), **changes)
        return LimiterRegistry(configs)
