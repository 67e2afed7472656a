"""Partition company records into groups sharing a normalized name."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from backend.app.matching.names import normalize_name

Record = Dict[str, Any]


def group_duplicates(companies: Iterable[Mapping[str, Any]]) -> Dict[str, List[Record]]:
    """Group companies whose normalized names are equal.

    Groups appear in order of first occurrence and members keep input order.
    Every input record lands in exactly one group, including records with an
    empty name, which share the ``""`` group.
    """

    groups: Dict[str, List[Record]] = {}
    for company in companies:
        key = normalize_name(company.get("name"))
        groups.setdefault(key, []).append(dict(company))
    return groups


def duplicate_clusters(groups: Mapping[str, List[Record]]) -> List[List[Record]]:
    """Return the groups that hold more than one record.

    The empty-name group is never returned; unnamed records are not merged
    automatically.
    """

    return [members for key, members in groups.items() if key and len(members) > 1]


__all__ = ["group_duplicates", "duplicate_clusters"]
