"""Authentication package providing team membership, JWT and invitation utilities."""

from backend.app.auth.service import AuthService, AuthServiceError
from backend.app.auth.utils import EmailDispatcher, JWTManager

__all__ = ["AuthService", "AuthServiceError", "JWTManager", "EmailDispatcher"]
