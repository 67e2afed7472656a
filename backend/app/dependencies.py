"""Request-scoped dependencies resolved from the application state."""
from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request

from backend.app.llm.client import LLMClient
from backend.app.store import EntityStore

SleepCallable = Callable[[float], Awaitable[None]]


def get_entity_store(request: Request) -> EntityStore:
    """Return the entity store stored on the app state."""

    return request.app.state.entity_store


def get_llm_client(request: Request) -> LLMClient:
    """Return the LLM adapter stored on the app state."""

    return request.app.state.llm_client


def get_sleep(request: Request) -> SleepCallable:
    """Return the coroutine used to pace batch loops."""

    return request.app.state.sleep


__all__ = ["SleepCallable", "get_entity_store", "get_llm_client", "get_sleep"]
