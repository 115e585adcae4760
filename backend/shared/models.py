"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated tenant in the system.

    This model is populated from JWT claims and made available
    to route handlers via dependency injection. It carries only what the
    token says; plan and usage live on the tenant profile.
    """

    id: str = Field(..., description="User ID (UUID from Supabase)")
    email: Optional[str] = Field(None, description="User's email address, if any")
    phone: Optional[str] = Field(None, description="User's phone number (E.164)")

    # Timestamps
    last_sign_in: Optional[datetime] = Field(None, description="Token issue time")

    role: str = Field(default="user", description="User role")
    plan: Optional[str] = Field(
        None, description="Plan claim from app_metadata, used before the profile is loaded"
    )

    model_config = {
        "frozen": True,
        "extra": "ignore",  # Ignore extra fields from JWT
    }
