"""Shared authentication enums."""
from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Application role assigned to a team member."""

    ADMIN = "admin"
    USER = "user"


__all__ = ["UserRole"]
