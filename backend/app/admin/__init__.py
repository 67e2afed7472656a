"""Admin maintenance workflows over company records."""
from backend.app.admin.service import AdminService

__all__ = ["AdminService"]
