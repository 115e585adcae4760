"""
Request gate.

Admission runs in a fixed order and stops at the first failure:

1. Global rate limit, as HTTP middleware before routing, keyed by the
   tenant id in a valid bearer token or else the client address.
2. Per route, as a FastAPI dependency: resolve identity from the bearer
   token (no database access), admit the route class, require auth,
   load the tenant profile, then an advisory quota check for routes that
   create contacts. Handlers still reserve quota atomically themselves.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from api.dependencies import get_auth_service, get_quota_tracker, get_rate_limiter
from api.errors import error_response
from modules.auth.exceptions import MissingTokenError
from modules.auth.interfaces import IAuthService
from modules.quota.exceptions import QuotaExceededError
from modules.quota.interfaces import IQuotaTracker
from modules.quota.models import QuotaDecision, TenantProfile
from modules.ratelimit.exceptions import RateLimitExceededError
from modules.ratelimit.models import RateLimitDecision, RequestIdentity, RouteClass
from modules.ratelimit.service import IRateLimiter
from shared.config import get_settings
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser

logger = logging.getLogger(__name__)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)

EXEMPT_PATHS = frozenset({"/api/health", "/api/ready", "/api/payments/webhook"})


def client_address(request: Request) -> str:
    """
    Caller address as seen by the outermost trusted proxy.

    Each proxy appends the peer it saw to X-Forwarded-For, so only the last
    ``trusted_proxy_count`` entries are trustworthy; anything to their left
    was supplied by the client.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = get_settings().trusted_proxy_count
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded or trusted <= 0:
        return peer

    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    if len(hops) < trusted:
        return peer
    return hops[-trusted]


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@dataclass
class GateContext:
    """What the gate learned about the request, handed to the route."""

    user: Optional[AuthenticatedUser] = None
    profile: Optional[TenantProfile] = None
    token: Optional[str] = None
    rate_limit: Optional[RateLimitDecision] = None
    quota: Optional[QuotaDecision] = None

    @property
    def tenant_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def plan(self) -> Optional[str]:
        if self.profile is not None:
            return self.profile.plan.value
        return self.user.plan if self.user else None


class RequestGate:
    """
    Per-route admission dependency.

    Usage:
        @router.post("/contacts")
        async def create(ctx: GateContext = Depends(RequestGate(RouteClass.CONTACT_CREATE, quota=True))):
            ...
    """

    def __init__(
        self,
        route_class: Optional[RouteClass] = None,
        identity_field: Optional[str] = None,
        require_auth: bool = True,
        quota: bool = False,
    ):
        self.route_class = route_class
        self.identity_field = identity_field
        self.require_auth = require_auth
        self.quota = quota

    async def _claimed_identity(self, request: Request) -> Optional[str]:
        if not self.identity_field:
            return None
        try:
            body = await request.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        value = body.get(self.identity_field)
        return str(value) if value else None

    async def __call__(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        auth: IAuthService = Depends(get_auth_service),
        limiter: IRateLimiter = Depends(get_rate_limiter),
        quota: IQuotaTracker = Depends(get_quota_tracker),
    ) -> GateContext:
        ctx = GateContext(token=credentials.credentials if credentials else None)

        # 1. Identity, from the token alone
        auth_error: Optional[AuthenticationError] = None
        if ctx.token:
            try:
                ctx.user = await auth.validate_token(ctx.token)
            except AuthenticationError as e:
                auth_error = e

        # 2. Route-class window
        if self.route_class is not None:
            identity = RequestIdentity(
                address=client_address(request),
                tenant_id=ctx.tenant_id,
                claimed_identity=await self._claimed_identity(request),
            )
            ctx.rate_limit = await limiter.enforce(self.route_class, identity, ctx.plan)

        # 3. Authentication
        if ctx.user is None:
            if self.require_auth:
                raise auth_error or MissingTokenError()
            return ctx

        # 4. Tenant profile
        ctx.profile = await auth.get_profile(ctx.user.id)
        if ctx.profile is None:
            ctx.profile = await auth.ensure_profile(ctx.user.id, ctx.user.phone)

        # 5. Advisory quota check
        if self.quota:
            decision = await quota.get_decision(ctx.user.id)
            if not decision.allowed:
                raise QuotaExceededError(
                    current=decision.current,
                    limit=decision.max,
                    requested=decision.requested,
                    plan=decision.plan.value,
                )
            ctx.quota = decision

        return ctx


def _resolve(request: Request, dependency: Callable[[], Any]) -> Any:
    provider = request.app.dependency_overrides.get(dependency, dependency)
    return provider()


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    """Global route class, applied to every request before routing."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        limiter: IRateLimiter = _resolve(request, get_rate_limiter)
        tenant_id = None
        plan = None
        token = bearer_token(request)
        if token:
            auth: IAuthService = _resolve(request, get_auth_service)
            try:
                user = await auth.validate_token(token)
            except AuthenticationError:
                # Rejected later by the route gate if the route needs auth
                user = None
            if user is not None:
                tenant_id, plan = user.id, user.plan

        identity = RequestIdentity(address=client_address(request), tenant_id=tenant_id)
        try:
            decision = await limiter.enforce(RouteClass.GLOBAL, identity, plan)
        except RateLimitExceededError as e:
            return error_response(e)

        response = await call_next(request)
        # A route class that rejected the request already set stricter headers
        response.headers.setdefault("X-RateLimit-Limit", str(decision.limit))
        response.headers.setdefault("X-RateLimit-Remaining", str(decision.remaining))
        return response
