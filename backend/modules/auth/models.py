"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.contacts.models import EMAIL_PATTERN

OTP_PATTERN = re.compile(r"^\d{6}$")

# Profile columns a tenant may change themselves
WRITABLE_PROFILE_FIELDS = ("name", "email", "company", "position", "avatar_url", "preferences")


class JWTPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    This matches the structure of Supabase Auth JWTs. Phone logins carry
    ``phone`` and usually no email.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email")
    phone: Optional[str] = Field(None, description="User's phone")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    aud: str = Field(default="authenticated", description="Audience")
    role: str = Field(default="authenticated", description="User role")

    # Supabase-specific claims
    app_metadata: dict = Field(default_factory=dict)
    user_metadata: dict = Field(default_factory=dict)

    @property
    def plan(self) -> Optional[str]:
        return self.app_metadata.get("plan") or self.app_metadata.get("subscription_plan")


class Session(BaseModel):
    """Tokens issued by the identity provider."""

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None


class IdentityResult(BaseModel):
    """A verified identity and its fresh session."""

    user_id: str
    phone: Optional[str] = None
    created_at: Optional[str] = None
    session: Session


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------


class SendOtpRequest(BaseModel):
    phone: str = Field(..., min_length=1, description="Phone number in any local format")


class VerifyOtpRequest(BaseModel):
    phone: str = Field(..., min_length=1)
    code: str = Field(..., description="Six digit code from the SMS")

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not OTP_PATTERN.match(v):
            raise ValueError("OTP must be 6 digits")
        return v


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., min_length=1, alias="refreshToken")


class UpdateProfileRequest(BaseModel):
    """Self-service profile update. Only the listed fields are writable."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None
    preferences: Optional[dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(include=set(WRITABLE_PROFILE_FIELDS), exclude_unset=True)
