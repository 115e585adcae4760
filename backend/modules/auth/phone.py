"""
Login phone number helpers.

Logins accept Malaysian mobile numbers written as ``+60…``, ``60…`` or
``0…`` followed by 9 or 10 digits, and store them in E.164 form.
"""

import re

_LOGIN_PATTERNS = (
    re.compile(r"^\+60\d{9,10}$"),
    re.compile(r"^60\d{9,10}$"),
    re.compile(r"^0\d{9,10}$"),
)


def _strip(phone: str) -> str:
    return re.sub(r"[^\d+]", "", phone)


def is_valid_login_phone(phone: str) -> bool:
    cleaned = _strip(phone)
    return any(pattern.match(cleaned) for pattern in _LOGIN_PATTERNS)


def normalize_login_phone(phone: str) -> str:
    """``012-345 6789`` -> ``+60123456789``."""
    cleaned = _strip(phone)
    if cleaned.startswith("0"):
        return "+60" + cleaned[1:]
    if cleaned.startswith("60"):
        return "+" + cleaned
    if not cleaned.startswith("+"):
        return "+" + cleaned
    return cleaned
