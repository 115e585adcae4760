"""API models package."""

from .envelope import Envelope, ErrorBody, envelope, error_envelope

__all__ = [
    "Envelope",
    "ErrorBody",
    "envelope",
    "error_envelope",
]
