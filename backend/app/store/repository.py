"""Document-style entity store on top of SQLAlchemy async sessions.

Every public call opens its own session and commits before returning, so a
sequence of calls is never atomic. Records are plain dictionaries: the stored
``data`` mapping plus ``id``, ``created_date``, ``updated_date`` and
``created_by``.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.store.models import EntityRow

LOGGER = logging.getLogger(__name__)

Record = Dict[str, Any]

RESERVED_FIELDS = frozenset({"id", "created_date", "updated_date", "created_by"})


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _strip_reserved(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if key not in RESERVED_FIELDS}


def _sort_key(field: str) -> Callable[[Record], tuple]:
    def _key(record: Record) -> tuple:
        value = record.get(field)
        if value is None:
            return (0, "")
        return (1, value)

    return _key


class EntityStore:
    """CRUD and filter operations over typed documents."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        return _ensure_utc(self._clock())

    @staticmethod
    def _to_record(row: EntityRow) -> Record:
        record: Record = dict(row.data or {})
        record["id"] = row.id
        record["created_date"] = _ensure_utc(row.created_date).isoformat()
        record["updated_date"] = _ensure_utc(row.updated_date).isoformat()
        record["created_by"] = row.created_by
        return record

    async def _load_row(self, session: AsyncSession, entity_type: str, entity_id: str) -> Optional[EntityRow]:
        result = await session.execute(
            select(EntityRow).where(EntityRow.entity_type == entity_type, EntityRow.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def list(self, entity_type: str, *, sort: Optional[str] = None, limit: Optional[int] = None) -> List[Record]:
        """Return every record of ``entity_type`` in insertion order unless sorted."""

        return await self.filter(entity_type, None, sort=sort, limit=limit)

    async def filter(
        self,
        entity_type: str,
        criteria: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        """Return records whose fields equal every value in ``criteria``.

        Args:
            entity_type: Entity collection name.
            criteria: Field equality constraints; ``None`` matches everything.
            sort: Field name to sort on, prefixed with ``-`` for descending.
                Ties keep insertion order.
            limit: Maximum number of records to return.
        """

        async with self._session_factory() as session:
            result = await session.execute(
                select(EntityRow).where(EntityRow.entity_type == entity_type).order_by(EntityRow.seq)
            )
            records = [self._to_record(row) for row in result.scalars().all()]
        if criteria:
            records = [
                record
                for record in records
                if all(record.get(key) == value for key, value in criteria.items())
            ]
        if sort:
            descending = sort.startswith("-")
            field = sort.lstrip("-")
            records.sort(key=_sort_key(field), reverse=descending)
        if limit is not None:
            records = records[: max(limit, 0)]
        return records

    async def get(self, entity_type: str, entity_id: str) -> Optional[Record]:
        """Return a single record or ``None`` when it does not exist."""

        async with self._session_factory() as session:
            row = await self._load_row(session, entity_type, entity_id)
            return self._to_record(row) if row is not None else None

    async def create(
        self, entity_type: str, data: Mapping[str, Any], *, created_by: Optional[str] = None
    ) -> Record:
        """Persist a new record and return it with store metadata."""

        records = await self.bulk_create(entity_type, [data], created_by=created_by)
        return records[0]

    async def bulk_create(
        self,
        entity_type: str,
        items: Iterable[Mapping[str, Any]],
        *,
        created_by: Optional[str] = None,
    ) -> List[Record]:
        """Persist several records in one commit."""

        now = self._now()
        rows = [
            EntityRow(
                id=str(uuid4()),
                entity_type=entity_type,
                data=_strip_reserved(item),
                created_date=now,
                updated_date=now,
                created_by=created_by,
            )
            for item in items
        ]
        if not rows:
            return []
        async with self._session_factory() as session:
            session.add_all(rows)
            await session.commit()
            records = [self._to_record(row) for row in rows]
        LOGGER.debug("Created %d %s record(s)", len(records), entity_type)
        return records

    async def update(
        self, entity_type: str, entity_id: str, fields: Mapping[str, Any]
    ) -> Optional[Record]:
        """Shallow-merge ``fields`` into a record and bump ``updated_date``.

        Returns:
            Optional[Record]: Updated record, or ``None`` if it does not exist.
        """

        async with self._session_factory() as session:
            row = await self._load_row(session, entity_type, entity_id)
            if row is None:
                return None
            row.data = {**(row.data or {}), **_strip_reserved(fields)}
            row.updated_date = self._now()
            await session.commit()
            return self._to_record(row)

    async def delete(self, entity_type: str, entity_id: str) -> bool:
        """Delete a record, returning whether anything was removed."""

        async with self._session_factory() as session:
            row = await self._load_row(session, entity_type, entity_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
        return True


__all__ = ["EntityStore", "Record", "RESERVED_FIELDS"]
