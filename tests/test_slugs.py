from __future__ import annotations

import pytest

from pagesmith.errors import InvalidSlug
from pagesmith.slugs import derive_slug, resolve_slug, validate_slug


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Nowa Strona", "nowa-strona"),
        ("  Oferta   Ślubna  ", "oferta-lubna"),
        ("Zażółć Gęślą", "za-gl"),
        ("Event 2025!", "event-2025"),
        ("tab\tand\nnewline", "tab-and-newline"),
    ],
)
def test_derive_slug_follows_normalization_policy(name: str, expected: str) -> None:
    assert derive_slug(name) == expected


@pytest.mark.parametrize("name", ["", "   ", "ąę", "Łóź ść", "!!!"])
def test_derive_slug_rejects_names_without_ascii_letters_or_digits(name: str) -> None:
    with pytest.raises(InvalidSlug):
        derive_slug(name)


@pytest.mark.parametrize("slug", ["home", "nowa-strona", "2025", "a-1-b"])
def test_validate_slug_accepts_safe_values(slug: str) -> None:
    assert validate_slug(slug) == slug


@pytest.mark.parametrize("slug", ["", "Home", "nowa strona", "a/b", "..", "-", "oferta\n", "żółw"])
def test_validate_slug_rejects_unsafe_values(slug: str) -> None:
    with pytest.raises(InvalidSlug):
        validate_slug(slug)


def test_resolve_slug_prefers_explicit_value() -> None:
    assert resolve_slug("Nowa Strona", "landing") == "landing"
    assert resolve_slug("Nowa Strona") == "nowa-strona"
    assert resolve_slug("Nowa Strona", "") == "nowa-strona"


def test_resolve_slug_validates_explicit_value_without_normalizing() -> None:
    with pytest.raises(InvalidSlug):
        resolve_slug("Nowa Strona", "Nowa Strona")
