"""SQLAlchemy ORM model backing the generic entity store."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class EntityBase(DeclarativeBase):
    """Base declarative class for entity store tables."""


class EntityRow(EntityBase):
    """One stored document of any entity type."""

    __tablename__ = "entities"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(36), unique=True, index=True, default=lambda: str(uuid4())
    )
    entity_type: Mapped[str] = mapped_column(String(64), index=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(320))


__all__ = ["EntityBase", "EntityRow"]
