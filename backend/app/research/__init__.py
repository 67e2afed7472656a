"""LLM-assisted research over company records."""
from backend.app.research.service import ResearchService

__all__ = ["ResearchService"]
