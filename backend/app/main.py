"""FastAPI application factory for the sponsorship pipeline backend."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.admin.router import router as admin_router
from backend.app.auth.models import AuthBase
from backend.app.auth.router import router as auth_router
from backend.app.auth.utils import EmailDispatcher, JWTManager
from backend.app.config import AppConfig, load_config
from backend.app.crm.router import router as crm_router
from backend.app.dependencies import SleepCallable
from backend.app.errors import (
    ServiceError,
    http_exception_handler,
    service_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from backend.app.knowledge.router import router as knowledge_router
from backend.app.llm.client import LLMClient, OpenAIJSONClient
from backend.app.research.router import router as research_router
from backend.app.store import EntityBase, EntityStore

LOGGER = logging.getLogger(__name__)


def _create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, future=True, echo=echo)


def create_app(
    config: Optional[AppConfig] = None,
    *,
    llm_client: Optional[LLMClient] = None,
    sleep: Optional[SleepCallable] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Optional pre-loaded configuration. If omitted, the default
            configuration defined in config.yaml is used.
        llm_client: Optional LLM adapter. When omitted an
            :class:`OpenAIJSONClient` is built from ``config.llm``.
        sleep: Optional coroutine used to pace batch loops.

    Returns:
        FastAPI: Configured FastAPI application.
    """

    resolved_config = config or load_config()
    app = FastAPI(title=resolved_config.service.name, version=resolved_config.service.version)
    app.state.app_config = resolved_config

    store_engine = _create_engine(
        resolved_config.store.database_url, echo=resolved_config.store.echo_sql
    )
    if resolved_config.auth.database_url == resolved_config.store.database_url:
        auth_engine = store_engine
    else:
        auth_engine = _create_engine(resolved_config.auth.database_url)
    app.state.store_engine = store_engine
    app.state.auth_engine = auth_engine
    app.state.entity_store = EntityStore(async_sessionmaker(store_engine, expire_on_commit=False))
    app.state.auth_session_factory = async_sessionmaker(auth_engine, expire_on_commit=False)
    app.state.jwt_manager = JWTManager(resolved_config.auth.jwt)
    app.state.email_dispatcher = EmailDispatcher(
        resolved_config.auth.smtp,
        resolved_config.auth.invitation,
        service_name=resolved_config.service.name,
    )
    owns_llm_client = llm_client is None
    app.state.llm_client = llm_client or OpenAIJSONClient(settings=resolved_config.llm)
    app.state.sleep = sleep or asyncio.sleep

    @app.on_event("startup")
    async def _init_schema() -> None:
        async with store_engine.begin() as connection:
            await connection.run_sync(EntityBase.metadata.create_all)
        async with auth_engine.begin() as connection:
            await connection.run_sync(AuthBase.metadata.create_all)
        LOGGER.info("Database schema ready", extra={"service_version": resolved_config.service.version})

    @app.on_event("shutdown")
    async def _dispose_resources() -> None:
        if owns_llm_client:
            await app.state.llm_client.aclose()
        await store_engine.dispose()
        if auth_engine is not store_engine:
            await auth_engine.dispose()

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    allowed_origins = resolved_config.ui.allowed_origins
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health", tags=["system"], summary="Service health probe")
    def health() -> dict[str, str]:
        """Return service health information."""

        return {
            "status": "ok",
            "service": resolved_config.service.name,
            "version": resolved_config.service.version,
        }

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(research_router)
    app.include_router(crm_router)
    app.include_router(knowledge_router)
    return app


__all__ = ["create_app"]
