"""Tests for phone identity normalization."""

import pytest

from app.core.phone import (
    UnresolvableIdentity,
    canonicalize,
    is_plausible_phone,
    phones_match,
    require_canonical,
    to_dialable,
    variants_of,
)

SAME_NUMBER = [
    "5512345678",
    "525512345678",
    "+525512345678",
    "+5215512345678",
    "5215512345678",
    "(55) 1234-5678",
    "+52 1 55 1234 5678",
]


def test_local_number_gets_country_code():
    assert canonicalize("5512345678") == "+525512345678"


def test_legacy_mobile_form_collapses():
    assert canonicalize("+5215512345678") == "+525512345678"
    assert canonicalize("5215512345678") == "+525512345678"


@pytest.mark.parametrize("raw", SAME_NUMBER)
def test_every_historical_format_maps_to_one_canonical(raw):
    assert canonicalize(raw) == "+525512345678"


def test_other_country_codes_are_kept():
    assert canonicalize("+14155550123") == "+14155550123"
    assert canonicalize("447911123456") == "+447911123456"


@pytest.mark.parametrize("raw", [None, "", "-", "12345", "555-1234", "abc"])
def test_short_or_empty_input_has_no_canonical_form(raw):
    assert canonicalize(raw) is None


@pytest.mark.parametrize("raw", SAME_NUMBER + ["+14155550123", "447911123456", "123456789012345"])
def test_canonicalize_is_idempotent(raw):
    once = canonicalize(raw)
    assert canonicalize(once) == once


@pytest.mark.parametrize("raw", SAME_NUMBER + ["+14155550123"])
def test_canonical_is_among_variants(raw):
    assert canonicalize(raw) in variants_of(raw)


def test_variants_order_and_dedup():
    assert variants_of("+5215512345678") == [
        "+525512345678",
        "525512345678",
        "+5215512345678",
        "5215512345678",
        "5512345678",
    ]


def test_variants_of_unusable_phone_is_empty():
    assert variants_of("12345") == []
    assert variants_of(None) == []


def test_country_code_is_configurable():
    assert canonicalize("2025550123", country_code="1", mobile_prefix="") == "+12025550123"
    assert variants_of("2025550123", country_code="1", mobile_prefix="")[0] == "+12025550123"


def test_phones_match():
    assert phones_match("5512345678", "+5215512345678")
    assert not phones_match("5512345678", "5512345679")
    assert not phones_match("5512345678", None)


def test_require_canonical_raises_for_unusable_input():
    assert require_canonical("525512345678") == "+525512345678"
    with pytest.raises(UnresolvableIdentity):
        require_canonical("   ")
    with pytest.raises(UnresolvableIdentity) as exc_info:
        require_canonical("12345")
    assert exc_info.value.raw_phone == "12345"


def test_to_dialable():
    assert to_dialable("5512345678") == "525512345678"
    assert to_dialable("+52 55 1234 5678") == "525512345678"


def test_is_plausible_phone_bounds():
    assert not is_plausible_phone("123456789")
    assert is_plausible_phone("5512345678")
    assert is_plausible_phone("123456789012345")
    assert not is_plausible_phone("1234567890123456")
