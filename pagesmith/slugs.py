"""Slug derivation and validation for page names."""

from __future__ import annotations

import re

from .errors import InvalidSlug

WHITESPACE_PATTERN = re.compile(r"\s+")
UNSAFE_PATTERN = re.compile(r"[^a-z0-9\-]")
SLUG_PATTERN = re.compile(r"[a-z0-9\-]+")
ALNUM_PATTERN = re.compile(r"[a-z0-9]")


def derive_slug(name: str) -> str:
    """Derive a slug from a display name.

    Ignores surrounding whitespace, lowercases, collapses inner whitespace runs
    into a single hyphen, then drops every character outside ``[a-z0-9-]``.
    Non-ASCII letters are removed rather than transliterated, so
    ``"Zażółć Gęślą"`` becomes ``"za-gl"``. The result is validated; a name
    with no ASCII letters or digits raises ``InvalidSlug``.
    """
    text = WHITESPACE_PATTERN.sub("-", name.strip().lower())
    text = UNSAFE_PATTERN.sub("", text)
    if not ALNUM_PATTERN.search(text):
        raise InvalidSlug(f"Unable to derive a slug from {name!r}; provide one explicitly.")
    return validate_slug(text)


def validate_slug(slug: str) -> str:
    """Return ``slug`` unchanged when it is safe to use as a directory and file name."""
    if not slug or not SLUG_PATTERN.fullmatch(slug):
        raise InvalidSlug(f"Slug {slug!r} must use only lowercase letters, digits, or hyphens.")
    if not ALNUM_PATTERN.search(slug):
        raise InvalidSlug(f"Slug {slug!r} must contain at least one letter or digit.")
    return slug


def resolve_slug(name: str, slug: str | None = None) -> str:
    """Validate an explicit slug or derive one from ``name`` when none is given."""
    if slug:
        return validate_slug(slug)
    return derive_slug(name)
