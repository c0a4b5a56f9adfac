"""Shared item name normalization utilities."""

import re

_WHITESPACE = re.compile(r"\s+")


def normalize_key(item_name: str) -> str:
    """Normalize an item name into its shopping list merge key.

    Lowercases and collapses runs of whitespace, so " Milk   2% " and
    "milk 2%" share a key. Punctuation is kept.
    """
    return _WHITESPACE.sub(" ", item_name.strip().lower())


def display_name(item_name: str) -> str:
    """Trimmed, whitespace-collapsed name keeping the user's casing."""
    return _WHITESPACE.sub(" ", item_name.strip())
