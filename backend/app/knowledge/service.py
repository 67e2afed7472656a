"""Knowledge base persistence and keyword retrieval."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from backend.app.config import KnowledgeBaseConfig
from backend.app.contracts import KnowledgeDocumentCreate, KnowledgeQuery
from backend.app.errors import ServiceError
from backend.app.knowledge.scoring import rank_documents
from backend.app.llm.client import LLMClient, LLMError
from backend.app.llm.prompts import QUERY_REFINEMENT_SCHEMA, query_refinement_prompt
from backend.app.store import KNOWLEDGE_DOCUMENT, EntityStore

LOGGER = logging.getLogger(__name__)


class KnowledgeService:
    """Save documents and answer keyword queries against them."""

    def __init__(
        self,
        store: EntityStore,
        settings: KnowledgeBaseConfig,
        llm: Optional[LLMClient] = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._llm = llm

    async def save_document(
        self, payload: KnowledgeDocumentCreate, *, created_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """Store a document unless one with the same title and type exists.

        Raises:
            ServiceError: If title, content or document_type is missing.
        """

        if not payload.title or not payload.content or not payload.document_type:
            raise ServiceError("title, content, and document_type are required")
        existing = await self._store.filter(
            KNOWLEDGE_DOCUMENT,
            {"title": payload.title, "document_type": payload.document_type},
            limit=1,
        )
        if existing:
            return {"success": False, "message": "Document already exists in knowledge base"}
        document = await self._store.create(
            KNOWLEDGE_DOCUMENT,
            {
                "title": payload.title,
                "content": payload.content,
                "document_type": payload.document_type,
                "company_id": payload.company_id or None,
                "tags": list(payload.tags),
                "source": payload.source or "manual",
            },
            created_by=created_by,
        )
        LOGGER.info(
            "Saved knowledge document",
            extra={"doc_id": document["id"], "document_type": payload.document_type},
        )
        return {"success": True, "doc_id": document["id"], "message": "Document saved to knowledge base"}

    async def _refine_query(self, query: str) -> str:
        if not self._settings.refine_query_with_llm or self._llm is None:
            return query
        try:
            result = await self._llm.invoke(query_refinement_prompt(query), QUERY_REFINEMENT_SCHEMA)
        except LLMError as exc:
            LOGGER.warning("Query refinement failed; using raw query: %s", exc)
            return query
        refined = str(result.get("refined_query") or "").strip()
        return refined or query

    async def query(self, request: KnowledgeQuery) -> Dict[str, Any]:
        """Rank stored documents against the request's query.

        Raises:
            ServiceError: If the query is missing or blank.
        """

        if not request.query or not request.query.strip():
            raise ServiceError("Query is required")
        limit = min(request.limit or self._settings.default_limit, self._settings.max_limit)
        criteria = {"document_type": request.document_type} if request.document_type else None
        documents = await self._store.filter(
            KNOWLEDGE_DOCUMENT, criteria, sort="-created_date", limit=self._settings.fetch_limit
        )
        if not documents:
            return {
                "success": True,
                "results": [],
                "count": 0,
                "message": "No knowledge base documents found",
            }
        search_query = await self._refine_query(request.query)
        results = rank_documents(
            documents,
            search_query,
            limit=limit,
            min_token_length=self._settings.min_token_length,
        )
        return {"success": True, "results": results, "count": len(results)}


__all__ = ["KnowledgeService"]
