"""
Auth API endpoints.

Phone OTP login. ``send-otp`` and ``verify-otp`` are rate limited by the
phone number in the body, so one number can not be brute forced from
many addresses.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_auth_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope
from modules.ratelimit.models import RouteClass

from .interfaces import IAuthService
from .models import RefreshRequest, SendOtpRequest, UpdateProfileRequest, VerifyOtpRequest

router = APIRouter()

authenticated = RequestGate()


def _subscription(profile) -> dict:
    if profile is None:
        return {"status": "none", "plan": None, "expires_at": None}
    return {
        "status": profile.subscription_status.value,
        "plan": profile.plan.value,
        "expires_at": profile.subscription_ends_at,
    }


@router.post("/send-otp")
async def send_otp(
    request: SendOtpRequest,
    _: GateContext = Depends(
        RequestGate(RouteClass.AUTH_SEND, identity_field="phone", require_auth=False)
    ),
    service: IAuthService = Depends(get_auth_service),
):
    return envelope(await service.send_otp(request.phone))


@router.post("/verify-otp")
async def verify_otp(
    request: VerifyOtpRequest,
    _: GateContext = Depends(
        RequestGate(RouteClass.OTP_VERIFY, identity_field="phone", require_auth=False)
    ),
    service: IAuthService = Depends(get_auth_service),
):
    identity, profile = await service.verify_otp(request.phone, request.code)
    return envelope(
        {
            "user": {
                "id": identity.user_id,
                "phone": identity.phone,
                "created_at": identity.created_at,
            },
            "session": identity.session,
            "profile": profile,
            "is_new_user": not profile.name,
        }
    )


@router.get("/me")
async def me(ctx: GateContext = Depends(authenticated)):
    return envelope(
        {
            "user": {
                "id": ctx.user.id,
                "phone": ctx.user.phone,
                "email": ctx.user.email,
            },
            "profile": ctx.profile,
            "subscription": _subscription(ctx.profile),
        }
    )


@router.put("/profile")
async def update_profile(
    request: UpdateProfileRequest,
    ctx: GateContext = Depends(authenticated),
    service: IAuthService = Depends(get_auth_service),
):
    return envelope({"profile": await service.update_profile(ctx.tenant_id, request)})


@router.post("/logout")
async def logout(
    ctx: GateContext = Depends(authenticated),
    service: IAuthService = Depends(get_auth_service),
):
    await service.sign_out(ctx.token)
    return envelope({"message": "Logged out successfully"})


@router.post("/refresh")
async def refresh(
    request: RefreshRequest,
    _: GateContext = Depends(RequestGate(require_auth=False)),
    service: IAuthService = Depends(get_auth_service),
):
    session = await service.refresh(request.refresh_token)
    return envelope({"session": session})
