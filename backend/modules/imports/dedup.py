"""
Duplicate detection for imports.

A contact is a duplicate when its lowercased email or the last eight
digits of its phone match an existing contact of the tenant or an
earlier row of the same batch.
"""

from typing import Any, Iterable, Mapping

from modules.contacts.models import email_key, phone_suffix

from .models import DedupKeys, DedupResult


def keys_from_rows(rows: Iterable[Mapping[str, Any]]) -> DedupKeys:
    keys = DedupKeys()
    for row in rows:
        email = email_key(row.get("email"))
        if email:
            keys.emails.add(email)
        suffix = phone_suffix(row.get("phone"))
        if suffix:
            keys.phone_suffixes.add(suffix)
    return keys


def deduplicate(
    contacts: list[dict[str, Any]],
    existing_keys: DedupKeys,
    skip_duplicates: bool = True,
) -> DedupResult:
    if not skip_duplicates:
        return DedupResult(unique=list(contacts))

    seen = DedupKeys(
        emails=set(existing_keys.emails),
        phone_suffixes=set(existing_keys.phone_suffixes),
    )
    result = DedupResult()

    for contact in contacts:
        email = email_key(contact.get("email"))
        suffix = phone_suffix(contact.get("phone"))

        if (email and email in seen.emails) or (suffix and suffix in seen.phone_suffixes):
            result.duplicates.append(contact)
            continue

        if email:
            seen.emails.add(email)
        if suffix:
            seen.phone_suffixes.add(suffix)
        result.unique.append(contact)

    return result
