"""Field-level merge of a cluster of duplicate company records."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from backend.app.matching.contacts import dedupe_by_name

Record = Dict[str, Any]

EXCLUDED_FIELDS = frozenset({"id", "created_date", "updated_date", "created_by"})


def _unique_years_descending(values: List[Any]) -> List[str]:
    return sorted({str(value) for value in values if value is not None and str(value).strip()}, reverse=True)


ARRAY_RULES: Dict[str, Callable[[List[Any]], List[Any]]] = {
    "decision_makers": dedupe_by_name,
    "past_sponsor_years": _unique_years_descending,
}


@dataclass(frozen=True, slots=True)
class MergePlan:
    """Outcome of merging a cluster: the survivor, its new fields, the losers."""

    keep: Record
    merged_fields: Dict[str, Any] = field(default_factory=dict)
    remove: List[Record] = field(default_factory=list)

    @property
    def remove_ids(self) -> List[str]:
        """Identifiers of the records to delete."""

        return [str(record.get("id")) for record in self.remove]


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _recency_key(record: Mapping[str, Any]) -> Tuple[int, datetime]:
    parsed = _parse_timestamp(record.get("updated_date"))
    if parsed is None:
        return (0, datetime.min.replace(tzinfo=timezone.utc))
    return (1, parsed)


def is_empty(value: Any) -> bool:
    """Return whether a scalar counts as missing for merge purposes.

    ``None``, blank strings and empty mappings are missing; ``0`` and
    ``False`` are real values.
    """

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, dict):
        return not value
    return False


def order_by_recency(cluster: Sequence[Mapping[str, Any]]) -> List[Record]:
    """Sort records newest ``updated_date`` first; undated records go last.

    The sort is stable, so records with equal timestamps keep input order.
    """

    return sorted((dict(record) for record in cluster), key=_recency_key, reverse=True)


def _field_names(records: Sequence[Mapping[str, Any]]) -> List[str]:
    names: List[str] = []
    for record in records:
        for key in record:
            if key not in EXCLUDED_FIELDS and key not in names:
                names.append(key)
    return names


def _merge_array(field_name: str, values: List[Any]) -> List[Any]:
    combined: List[Any] = []
    for value in values:
        if isinstance(value, list):
            combined.extend(value)
    rule = ARRAY_RULES.get(field_name)
    return rule(combined) if rule else combined


def merge_cluster(cluster: Sequence[Mapping[str, Any]]) -> MergePlan:
    """Plan the merge of records that represent the same company.

    The most recently updated record survives. A field whose first non-empty
    value in recency order is a list is concatenated across members in recency
    order (with name dedup for ``decision_makers`` and a sorted
    unique set for ``past_sponsor_years``); every other field takes the first
    non-empty value in recency order.

    Args:
        cluster: Records believed to be duplicates. Must not be empty.

    Returns:
        MergePlan: Survivor, fields to write onto it and records to delete.
        A single-record cluster yields no fields and nothing to remove.
    """

    if not cluster:
        msg = "Cannot merge an empty cluster"
        raise ValueError(msg)
    ordered = order_by_recency(cluster)
    keep, rest = ordered[0], ordered[1:]
    if not rest:
        return MergePlan(keep=keep)

    merged: Dict[str, Any] = {}
    for name in _field_names(ordered):
        values = [record.get(name) for record in ordered]
        present = [value for value in values if not is_empty(value)]
        if not present:
            continue
        # the first non-empty value decides whether the field is a list
        if isinstance(present[0], list):
            merged[name] = _merge_array(name, values)
        else:
            merged[name] = present[0]
    return MergePlan(keep=keep, merged_fields=merged, remove=rest)


__all__ = ["EXCLUDED_FIELDS", "MergePlan", "is_empty", "merge_cluster", "order_by_recency"]
