"""Phone number utilities for consistent handling across the application.

Every phone that reaches the CRM is reduced to one canonical form,
``+{country_code}{10 digits}`` for local numbers, before it is stored on a
Contact. Lookups go the other way: a raw number is expanded into every shape
it may have been stored or delivered in, so exact-match queries still find it.
"""

import logging
import re

from app.settings import settings

logger = logging.getLogger(__name__)

LOCAL_NUMBER_LENGTH = 10
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


class UnresolvableIdentity(ValueError):
    """Raised when a phone string cannot be turned into a canonical phone."""

    def __init__(self, raw_phone: str | None, reason: str = "too short or unparseable"):
        self.raw_phone = raw_phone
        self.reason = reason
        super().__init__(f"Cannot resolve phone identity {raw_phone!r}: {reason}")


def digits_only(phone: str | None) -> str:
    """Strip everything except digits."""
    if not phone:
        return ""
    return re.sub(r'\D', '', phone)


def canonicalize(
    phone: str | None,
    country_code: str | None = None,
    mobile_prefix: str | None = None,
) -> str | None:
    """Normalize a phone number to the canonical +CCXXXXXXXXXX form.

    With the default Mexican numbering plan:
        5512345678      → +525512345678
        525512345678    → +525512345678
        +5215512345678  → +525512345678  (legacy mobile form)
        (55) 1234-5678  → +525512345678
        +14155550123    → +14155550123   (other country codes kept)

    Returns:
        Canonical phone or None when fewer than 10 digits remain
    """
    if not phone or phone.strip() == "-":
        return None

    cc = country_code if country_code is not None else settings.phone_default_country_code
    prefix = mobile_prefix if mobile_prefix is not None else settings.phone_mobile_prefix

    digits = digits_only(phone)
    if len(digits) < MIN_PHONE_DIGITS:
        return None

    if len(digits) == LOCAL_NUMBER_LENGTH:
        return f"+{cc}{digits}"

    legacy_mobile = cc + prefix
    if prefix and digits.startswith(legacy_mobile) and len(digits) == len(legacy_mobile) + LOCAL_NUMBER_LENGTH:
        return f"+{cc}{digits[-LOCAL_NUMBER_LENGTH:]}"

    # Explicit country code (ours or anyone else's)
    return f"+{digits}"


def require_canonical(phone: str | None) -> str:
    """Canonicalize or raise UnresolvableIdentity."""
    if not phone or not phone.strip():
        raise UnresolvableIdentity(phone, "empty phone")
    canonical = canonicalize(phone)
    if canonical is None:
        raise UnresolvableIdentity(phone)
    return canonical


def variants_of(
    phone: str | None,
    country_code: str | None = None,
    mobile_prefix: str | None = None,
) -> list[str]:
    """Generate every stored/delivered shape of a phone, for DB lookups.

    Order is stable: canonical, canonical without +, legacy mobile with and
    without +, bare local 10 digits, then the raw digits with and without +.

    Args:
        phone: Phone number in any format

    Returns:
        Deduplicated list of variants (empty when the phone is unusable)
    """
    canonical = canonicalize(phone, country_code, mobile_prefix)
    if canonical is None:
        return []

    cc = country_code if country_code is not None else settings.phone_default_country_code
    prefix = mobile_prefix if mobile_prefix is not None else settings.phone_mobile_prefix
    raw_digits = digits_only(phone)
    local = raw_digits[-LOCAL_NUMBER_LENGTH:]

    candidates = [
        canonical,
        canonical.lstrip("+"),
        f"+{cc}{prefix}{local}",
        f"{cc}{prefix}{local}",
        local,
        raw_digits,
        f"+{raw_digits}",
    ]

    variants: list[str] = []
    for candidate in candidates:
        if candidate not in variants:
            variants.append(candidate)
    return variants


def phones_match(phone1: str | None, phone2: str | None) -> bool:
    """Check whether two phone strings denote the same number."""
    if not phone1 or not phone2:
        return False
    norm1 = canonicalize(phone1)
    return norm1 is not None and norm1 == canonicalize(phone2)


def to_dialable(phone: str) -> str:
    """Format a phone the way the WhatsApp network addresses it (digits, with country code)."""
    digits = digits_only(phone)
    if len(digits) == LOCAL_NUMBER_LENGTH:
        digits = settings.phone_default_country_code + digits
    return digits


def is_plausible_phone(phone: str | None) -> bool:
    """True when the digit count is within E.164 bounds (10-15 digits)."""
    return MIN_PHONE_DIGITS <= len(digits_only(phone)) <= MAX_PHONE_DIGITS
