"""
Rate limiter service.

Admission control per (route class, key) over a trailing window. The
limiter fails open: when the window store is slow or unreachable the
request is admitted and a warning is logged, so an infrastructure
problem degrades enforcement instead of blocking all traffic.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol, runtime_checkable

from modules.quota.models import PlanType

from .exceptions import RateLimitExceededError
from .models import RateLimitDecision, RequestIdentity, RouteClass
from .registry import LimiterRegistry, plan_multiplier
from .store import IWindowStore

logger = logging.getLogger(__name__)


@runtime_checkable
class IRateLimiter(Protocol):
    """Interface for route-class admission control."""

    async def admit(
        self,
        route_class: RouteClass,
        key: str,
        plan: PlanType | str | None = None,
    ) -> RateLimitDecision:
        """Record and admit the call if the window has room."""
        ...

    def key_for(self, route_class: RouteClass, identity: RequestIdentity) -> str:
        """Derive the limiter key for a request using the class's key function."""
        ...

    async def enforce(
        self,
        route_class: RouteClass,
        identity: RequestIdentity,
        plan: PlanType | str | None = None,
    ) -> RateLimitDecision:
        """Admit or raise RateLimitExceededError."""
        ...


class RateLimiter(IRateLimiter):
    """Sliding-window rate limiter over an IWindowStore."""

    def __init__(
        self,
        store: IWindowStore,
        registry: Optional[LimiterRegistry] = None,
        timeout_seconds: float = 0.5,
        enabled: bool = True,
        time_provider: Optional[Callable[[], float]] = None,
    ):
        self._store = store
        self._registry = registry or LimiterRegistry()
        self._timeout = timeout_seconds
        self._enabled = enabled
        # Injectable clock for deterministic tests
        self._time_provider = time_provider or time.time

    @property
    def registry(self) -> LimiterRegistry:
        return self._registry

    def limit_for(self, route_class: RouteClass, plan: PlanType | str | None = None) -> int:
        config = self._registry.get(route_class)
        if not config.plan_scaled:
            return config.max
        return config.max * plan_multiplier(plan)

    def key_for(self, route_class: RouteClass, identity: RequestIdentity) -> str:
        return self._registry.get(route_class).key_fn(identity)

    async def admit(
        self,
        route_class: RouteClass,
        key: str,
        plan: PlanType | str | None = None,
    ) -> RateLimitDecision:
        config = self._registry.get(route_class)
        limit = self.limit_for(route_class, plan)

        if not self._enabled:
            return RateLimitDecision(route_class, allowed=True, remaining=limit, limit=limit)

        now_ms = int(self._time_provider() * 1000)
        store_key = f"ratelimit:{route_class.value}:{key}"

        try:
            hit = await asyncio.wait_for(
                self._store.hit(store_key, now_ms, config.window_ms, limit),
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning(
                f"Rate limit store unavailable for {route_class.value} ({e!r}). Allowing request"
            )
            return RateLimitDecision(
                route_class, allowed=True, remaining=limit, limit=limit, degraded=True
            )

        oldest = hit.oldest_ms if hit.oldest_ms is not None else now_ms
        reset_after_ms = max(0, oldest + config.window_ms - now_ms)

        if not hit.admitted:
            return RateLimitDecision(
                route_class,
                allowed=False,
                remaining=0,
                limit=limit,
                reset_after_ms=reset_after_ms,
            )

        return RateLimitDecision(
            route_class,
            allowed=True,
            remaining=max(0, limit - hit.count - 1),
            limit=limit,
            reset_after_ms=reset_after_ms,
        )

    async def enforce(
        self,
        route_class: RouteClass,
        identity: RequestIdentity,
        plan: PlanType | str | None = None,
    ) -> RateLimitDecision:
        """
        Admit the request or raise.

        Raises:
            RateLimitExceededError: If the window for this key is full
        """
        key = self.key_for(route_class, identity)
        decision = await self.admit(route_class, key, plan)
        if not decision.allowed:
            logger.info(f"Rate limited {route_class.value} for {key}")
            plan_name = plan.value if isinstance(plan, PlanType) else plan
            raise RateLimitExceededError(
                decision,
                self._registry.get(route_class).message,
                plan=plan_name,
            )
        return decision
