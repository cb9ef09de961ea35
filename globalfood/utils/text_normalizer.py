"""Text normalization utilities for restaurant names.

Different providers spell the same place differently: "Joe's Pizza",
"Joes Pizza", "JOE'S PIZZA", "Café Habana" vs "Cafe Habana".  The helpers
here reduce a display name to a comparison key and score two keys with
rapidfuzz so the aggregator can decide whether two records are the same
venue.
"""

import re
import unicodedata

from rapidfuzz import fuzz

# Apostrophes are dropped outright so that "Joe's" and "Joes" collapse.
_APOSTROPHES = re.compile(r"['‘’ʼ`´]")
_NON_ALNUM = re.compile(r"[^0-9a-z]+")
_MULTI_SPACE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove combining marks after NFKD decomposition ("Café" -> "Cafe")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_place_name(name: str) -> str:
    """Reduce a venue name to a case- and diacritic-insensitive match key.

    Args:
        name: Raw display name from a provider.

    Returns:
        Lower-case ASCII-ish key with punctuation removed and whitespace
        collapsed.  ``"  Joe's  Pizza!"`` and ``"JOES PIZZA"`` both become
        ``"joes pizza"``.
    """
    key = strip_diacritics(name).casefold()
    key = _APOSTROPHES.sub("", key)
    key = key.replace("&", " and ")
    key = _NON_ALNUM.sub(" ", key)
    return _MULTI_SPACE.sub(" ", key).strip()


def name_similarity(left: str, right: str) -> float:
    """Similarity of two display names on a 0.0--1.0 scale.

    Both names are normalized first; identical keys score 1.0.  Otherwise
    rapidfuzz ``token_sort_ratio`` is used, which tolerates word-order
    differences ("Pizza Joe's" vs "Joe's Pizza").
    """
    left_key = normalize_place_name(left)
    right_key = normalize_place_name(right)
    if not left_key or not right_key:
        return 0.0
    if left_key == right_key:
        return 1.0
    return fuzz.token_sort_ratio(left_key, right_key) / 100.0


def names_match(left: str, right: str, threshold: float = 0.9) -> bool:
    """Return ``True`` if two names refer to the same venue under *threshold*."""
    return name_similarity(left, right) >= threshold
