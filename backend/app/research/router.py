"""FastAPI router for research endpoints."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from backend.app.auth.router import get_app_config, get_verified_user
from backend.app.auth.schemas import AuthUser
from backend.app.config import AppConfig
from backend.app.dependencies import SleepCallable, get_entity_store, get_llm_client, get_sleep
from backend.app.errors import ServiceError, to_http_exception
from backend.app.llm.client import LLMClient
from backend.app.research.service import ResearchService
from backend.app.store import EntityStore

router = APIRouter(prefix="/api/research", tags=["research"])


class CompanyResearchRequest(BaseModel):
    """Company to research, by stored id or by name."""

    company_id: Optional[str] = None
    company_name: Optional[str] = Field(default=None, max_length=255)


class CompanyReference(BaseModel):
    """Request naming a stored company."""

    company_id: Optional[str] = None


class DiscoveryRequest(BaseModel):
    """Focus description for company discovery."""

    focus: Optional[str] = Field(default=None, max_length=2000)
    limit: Optional[int] = Field(default=None, ge=1)


def get_research_service(
    store: EntityStore = Depends(get_entity_store),
    llm: LLMClient = Depends(get_llm_client),
    config: AppConfig = Depends(get_app_config),
    sleep: SleepCallable = Depends(get_sleep),
) -> ResearchService:
    """Construct a ResearchService for the current request."""

    return ResearchService(store, llm, config.batch, sleep=sleep)


@router.post("/company")
async def research_company(
    payload: CompanyResearchRequest,
    service: ResearchService = Depends(get_research_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Research a company and store what was found."""

    try:
        return await service.research_company(
            company_id=payload.company_id, company_name=payload.company_name
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/decision-makers")
async def find_decision_makers(
    payload: CompanyReference,
    service: ResearchService = Depends(get_research_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Find decision makers for one company."""

    try:
        return await service.find_decision_makers(payload.company_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/decision-makers/bulk")
async def bulk_find_decision_makers(
    service: ResearchService = Depends(get_research_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Find decision makers for every company that has none."""

    return await service.bulk_find_decision_makers()


@router.post("/network")
async def check_network(
    payload: CompanyReference,
    service: ResearchService = Depends(get_research_service),
    current_user: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Look for the caller's connections at a company."""

    try:
        return await service.check_network(payload.company_id, current_user)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/discover")
async def discover_companies(
    payload: DiscoveryRequest,
    service: ResearchService = Depends(get_research_service),
    current_user: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Discover new candidate sponsors for a focus area."""

    try:
        return await service.discover_companies(
            payload.focus, payload.limit, created_by=current_user.email
        )
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["router", "get_research_service"]
