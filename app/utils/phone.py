"""
Phone number validation and formatting.

Numbers are always international: input without a leading '+' is treated as
if the country code were typed first.
"""
import re
from typing import Optional

import phonenumbers


def _clean_for_parse(value: str) -> str:
    trimmed = value.strip() if isinstance(value, str) else ''
    if not trimmed:
        return ''
    cleaned = re.sub(r'[^\d+]', '', trimmed)
    return cleaned if cleaned.startswith('+') else f'+{cleaned}'


def parse_phone(value: str) -> Optional[phonenumbers.PhoneNumber]:
    """Parsed number when valid, else None."""
    cleaned = _clean_for_parse(value)
    if not cleaned or cleaned == '+':
        return None
    try:
        parsed = phonenumbers.parse(cleaned, None)
    except phonenumbers.NumberParseException:
        return None
    return parsed if phonenumbers.is_valid_number(parsed) else None


def is_valid_phone(value: str) -> bool:
    """Empty is valid (phone is optional); otherwise must parse as a real number."""
    if value is None:
        return True
    if not isinstance(value, str):
        return False
    if not value.strip():
        return True
    return parse_phone(value) is not None


def to_e164(value: str) -> Optional[str]:
    parsed = parse_phone(value)
    if parsed is None:
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)

