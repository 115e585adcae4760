"""
Shared infrastructure for Salesdesk backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database / cache / storage: Supabase, Redis and object storage clients
- repository: Generic table access contract and implementations
- exceptions: Base exception classes
- fallback: Ordered strategy chains for collaborators with a backup

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    SalesdeskError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    PayloadTooLargeError,
    ExternalServiceError,
    AllStrategiesFailedError,
)
from .fallback import Strategy, run_with_fallback
from .models import AuthenticatedUser

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "SalesdeskError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateError",
    "PayloadTooLargeError",
    "ExternalServiceError",
    "AllStrategiesFailedError",
    "Strategy",
    "run_with_fallback",
    "AuthenticatedUser",
]
