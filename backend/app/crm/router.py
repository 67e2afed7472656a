"""FastAPI router for company records and outreach logging."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from backend.app.auth.router import get_verified_user, require_admin
from backend.app.auth.schemas import AuthUser
from backend.app.contracts import CompanyCreate, CompanyStatus, CompanyUpdate, OutreachCreate
from backend.app.crm.service import CompanyService
from backend.app.dependencies import get_entity_store
from backend.app.errors import ServiceError, to_http_exception
from backend.app.store import EntityStore

router = APIRouter(prefix="/api/companies", tags=["companies"])


def get_company_service(store: EntityStore = Depends(get_entity_store)) -> CompanyService:
    """Construct a CompanyService for the current request."""

    return CompanyService(store)


@router.get("")
async def list_companies(
    status_filter: Optional[CompanyStatus] = Query(default=None, alias="status"),
    sort: Optional[str] = Query(default=None, max_length=64),
    service: CompanyService = Depends(get_company_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """List companies, optionally filtered by pipeline status."""

    companies = await service.list_companies(status=status_filter, sort=sort)
    return {"success": True, "companies": companies, "count": len(companies)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreate,
    service: CompanyService = Depends(get_company_service),
    current_user: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Create a company record."""

    company = await service.create_company(payload, created_by=current_user.email)
    return {"success": True, "company": company}


@router.get("/{company_id}")
async def get_company(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    try:
        company = await service.get_company(company_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "company": company}


@router.patch("/{company_id}")
async def update_company(
    company_id: str,
    payload: CompanyUpdate,
    service: CompanyService = Depends(get_company_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Update selected company fields."""

    try:
        company = await service.update_company(company_id, payload)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "company": company}


@router.delete("/{company_id}")
async def delete_company(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Delete a company record."""

    try:
        return await service.delete_company(company_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{company_id}/outreach", status_code=status.HTTP_201_CREATED)
async def log_outreach(
    company_id: str,
    payload: OutreachCreate,
    service: CompanyService = Depends(get_company_service),
    current_user: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    """Log an outreach touch against a company."""

    try:
        return await service.log_outreach(company_id, payload, current_user)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{company_id}/outreach")
async def list_outreach(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
    _: AuthUser = Depends(get_verified_user),
) -> Dict[str, Any]:
    try:
        outreach = await service.list_outreach(company_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "outreach": outreach, "count": len(outreach)}


__all__ = ["router", "get_company_service"]
