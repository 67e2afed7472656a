"""Company name normalization and fuzzy matching."""
from __future__ import annotations

from typing import Optional


def normalize_name(name: Optional[str]) -> str:
    """Return the lower-cased, trimmed form of a company name.

    Args:
        name: Raw company name; ``None`` is treated as empty.

    Returns:
        str: Normalized name. Applying the function twice yields the same value.
    """

    if not name:
        return ""
    return str(name).strip().lower()


def names_match(left: Optional[str], right: Optional[str]) -> bool:
    """Return whether either normalized name contains the other.

    Two empty names match because the empty string is contained in every
    string; callers that must not pair unnamed records check for that first.
    """

    first = normalize_name(left)
    second = normalize_name(right)
    return first in second or second in first


__all__ = ["normalize_name", "names_match"]
