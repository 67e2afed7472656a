"""Knowledge base storage and keyword relevance ranking."""
from backend.app.knowledge.scoring import rank_documents, score_document
from backend.app.knowledge.service import KnowledgeService

__all__ = ["KnowledgeService", "rank_documents", "score_document"]
