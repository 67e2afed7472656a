"""Tests for saving and querying knowledge base documents."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from backend.app.config import KnowledgeBaseConfig
from backend.app.contracts import KnowledgeDocumentCreate, KnowledgeQuery
from backend.app.errors import ServiceError
from backend.app.knowledge.service import KnowledgeService
from backend.app.llm.client import LLMError
from backend.app.store import KNOWLEDGE_DOCUMENT, EntityBase, EntityStore


class StubLLM:
    """Return a canned refinement or fail on demand."""

    def __init__(self, refined: str = "", fail: bool = False) -> None:
        self.refined = refined
        self.fail = fail
        self.prompts: List[str] = []

    async def invoke(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.fail:
            raise LLMError("provider down")
        return {"refined_query": self.refined}


async def _setup(tmp_path: Path) -> Tuple[EntityStore, AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'kb.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(EntityBase.metadata.create_all)
    return EntityStore(async_sessionmaker(engine, expire_on_commit=False)), engine


def _settings(**overrides: Any) -> KnowledgeBaseConfig:
    values = {"default_limit": 10, "max_limit": 100, "fetch_limit": 100, "min_token_length": 3}
    values.update(overrides)
    return KnowledgeBaseConfig(**values)


def test_save_document_requires_title_content_and_type(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        service = KnowledgeService(store, _settings())
        with pytest.raises(ServiceError) as excinfo:
            await service.save_document(KnowledgeDocumentCreate(title="Deck", content="text"))
        assert str(excinfo.value) == "title, content, and document_type are required"
        assert excinfo.value.reason == "bad_request"
        await engine.dispose()

    asyncio.run(_run())


def test_duplicate_title_and_type_is_rejected_without_storing(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        service = KnowledgeService(store, _settings())
        payload = KnowledgeDocumentCreate(
            title="Gold tier deck", content="Gold tier benefits", document_type="deck", tags=["gold"]
        )

        first = await service.save_document(payload, created_by="a@example.com")
        second = await service.save_document(payload)
        other_type = await service.save_document(
            KnowledgeDocumentCreate(title="Gold tier deck", content="notes", document_type="notes")
        )

        assert first["success"] is True
        assert first["message"] == "Document saved to knowledge base"
        assert second == {"success": False, "message": "Document already exists in knowledge base"}
        assert other_type["success"] is True
        documents = await store.list(KNOWLEDGE_DOCUMENT)
        assert len(documents) == 2
        assert documents[0]["source"] == "manual"
        assert documents[0]["created_by"] == "a@example.com"
        await engine.dispose()

    asyncio.run(_run())


def test_query_requires_text(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        service = KnowledgeService(store, _settings())
        with pytest.raises(ServiceError, match="Query is required"):
            await service.query(KnowledgeQuery(query="   "))
        await engine.dispose()

    asyncio.run(_run())


def test_query_on_empty_base_reports_no_documents(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        result = await KnowledgeService(store, _settings()).query(KnowledgeQuery(query="gold"))
        assert result == {
            "success": True,
            "results": [],
            "count": 0,
            "message": "No knowledge base documents found",
        }
        await engine.dispose()

    asyncio.run(_run())


def test_query_ranks_filters_by_type_and_caps_limit(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        service = KnowledgeService(store, _settings(max_limit=2, default_limit=2))
        await store.bulk_create(
            KNOWLEDGE_DOCUMENT,
            [
                {"title": "A", "document_type": "deck", "content": "gold sponsor pricing", "tags": []},
                {"title": "B", "document_type": "deck", "content": "sponsor pricing", "tags": ["gold"]},
                {"title": "C", "document_type": "email", "content": "gold sponsor pricing", "tags": []},
                {"title": "D", "document_type": "deck", "content": "pricing", "tags": []},
            ],
        )

        result = await service.query(KnowledgeQuery(query="gold sponsor pricing", limit=50, document_type="deck"))

        assert result["success"] is True
        assert result["count"] == 2
        assert [item["title"] for item in result["results"]] == ["A", "B"]
        assert result["results"][0]["relevance_score"] == 130
        assert result["results"][1]["relevance_score"] == 35
        await engine.dispose()

    asyncio.run(_run())


def test_query_refinement_uses_llm_and_falls_back_on_error(tmp_path: Path) -> None:
    async def _run() -> None:
        store, engine = await _setup(tmp_path)
        await store.create(
            KNOWLEDGE_DOCUMENT,
            {"title": "Deck", "document_type": "deck", "content": "booth pricing", "tags": []},
        )
        refining = StubLLM(refined="booth pricing")
        service = KnowledgeService(store, _settings(refine_query_with_llm=True), refining)
        refined = await service.query(KnowledgeQuery(query="how much is a stand?"))
        assert refining.prompts
        assert refined["count"] == 1
        assert refined["results"][0]["relevance_score"] == 120

        failing = StubLLM(fail=True)
        fallback = await KnowledgeService(store, _settings(refine_query_with_llm=True), failing).query(
            KnowledgeQuery(query="pricing")
        )
        assert fallback["count"] == 1

        disabled = StubLLM(refined="ignored")
        await KnowledgeService(store, _settings(), disabled).query(KnowledgeQuery(query="pricing"))
        assert disabled.prompts == []
        await engine.dispose()

    asyncio.run(_run())
