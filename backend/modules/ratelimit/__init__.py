"""
Rate limiting module.

Per-key sliding windows, one independent limiter per route class.

Public API:
- IRateLimiter / RateLimiter: Admission control
- LimiterRegistry, DEFAULT_LIMITS: Route class -> window/ceiling/key function
- plan_multiplier: Plan -> ceiling multiplier, consulted at admission time
- InMemoryWindowStore, RedisWindowStore: Window storage
- RateLimitExceededError
"""

from .models import (
    LimiterConfig,
    RateLimitDecision,
    RequestIdentity,
    RouteClass,
    WindowHit,
)
from .registry import (
    DEFAULT_LIMITS,
    LimiterRegistry,
    key_by_claimed_identity,
    key_by_tenant_or_address,
    plan_multiplier,
)
from .store import IWindowStore, InMemoryWindowStore, RedisWindowStore
from .service import IRateLimiter, RateLimiter
from .exceptions import RateLimitExceededError

__all__ = [
    # Models
    "LimiterConfig",
    "RateLimitDecision",
    "RequestIdentity",
    "RouteClass",
    "WindowHit",
    # Registry
    "DEFAULT_LIMITS",
    "LimiterRegistry",
    "key_by_claimed_identity",
    "key_by_tenant_or_address",
    "plan_multiplier",
    # Stores
    "IWindowStore",
    "InMemoryWindowStore",
    "RedisWindowStore",
    # Service
    "IRateLimiter",
    "RateLimiter",
    # Exceptions
    "RateLimitExceededError",
]
