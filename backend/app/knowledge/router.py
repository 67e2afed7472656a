"""FastAPI router for knowledge base endpoints."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from backend.app.auth.router import get_app_config, get_verified_user
from backend.app.auth.schemas import AuthUser
from backend.app.config import AppConfig
from backend.app.contracts import KnowledgeDocumentCreate, KnowledgeQuery
from backend.app.dependencies import get_entity_store, get_llm_client
from backend.app.errors import ServiceError, to_http_exception
from backend.app.knowledge.service import KnowledgeService
from backend.app.llm.client import LLMClient
from backend.app.store import EntityStore

router = APIRouter(prefix="/api/knowledge", tags=["knowledge"])


def get_knowledge_service(
    store: EntityStore = Depends(get_entity_store),
    config: AppConfig = Depends(get_app_config),
    llm: LLMClient = Depends(get_llm_client),
) -> KnowledgeService:
    """Construct a KnowledgeService for the current request."""

    return KnowledgeService(store, config.knowledge_base, llm)


@router.post("/documents")
async def save_document(
    payload: KnowledgeDocumentCreate,
    service: KnowledgeService = Depends(get_knowledge_service),
    current_user: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Save a document to the knowledge base."""

    try:
        return await service.save_document(payload, created_by=current_user.email)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/query")
async def query_documents(
    payload: KnowledgeQuery,
    service: KnowledgeService = Depends(get_knowledge_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Return knowledge base documents ranked by keyword relevance."""

    try:
        return await service.query(payload)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["router", "get_knowledge_service"]
