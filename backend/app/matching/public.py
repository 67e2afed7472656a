"""Public-company detection from configured name fragments."""
from __future__ import annotations

from typing import Mapping, Optional

from backend.app.matching.names import normalize_name


def match_public_symbol(name: Optional[str], symbols: Mapping[str, str]) -> Optional[str]:
    """Return the stock symbol of the first public name contained in ``name``.

    Matching is one-directional: ``"Intel Israel"`` matches ``"intel"`` but
    ``"Int"`` does not.
    """

    normalized = normalize_name(name)
    if not normalized:
        return None
    for public_name, symbol in symbols.items():
        fragment = normalize_name(public_name)
        if fragment and fragment in normalized:
            return symbol
    return None


__all__ = ["match_public_symbol"]
