"""FastAPI router for admin-only maintenance and team management endpoints."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from backend.app.admin.service import AdminService
from backend.app.auth.router import get_app_config, get_auth_service, require_admin
from backend.app.auth.schemas import (
    AuthUser,
    InviteUserRequest,
    InviteUserResponse,
    LinkedInUpdateRequest,
    UserActionResponse,
)
from backend.app.auth.service import AuthService
from backend.app.config import AppConfig
from backend.app.contracts import CompanyCreate, SponsorRoster
from backend.app.dependencies import get_entity_store
from backend.app.errors import ServiceError, to_http_exception
from backend.app.matching import load_roster
from backend.app.store import EntityStore

router = APIRouter(prefix="/api/admin", tags=["admin"])


class MergeRequest(BaseModel):
    """Companies to merge into one record."""

    company_ids: List[str] = Field(default_factory=list)


class ImportRequest(BaseModel):
    """Companies to import in one batch."""

    companies: List[CompanyCreate] = Field(default_factory=list)


def get_admin_service(store: EntityStore = Depends(get_entity_store)) -> AdminService:
    """Construct an AdminService for the current request."""

    return AdminService(store)


def get_sponsor_roster(config: AppConfig = Depends(get_app_config)) -> SponsorRoster:
    """Load the sponsor roster from its configured location."""

    return load_roster(config.sponsors.resolved_roster_path())


@router.post("/companies/remove-duplicates")
async def remove_duplicates(
    service: AdminService = Depends(get_admin_service),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Merge companies that share a normalized name."""

    return await service.remove_duplicates()


@router.post("/companies/merge")
async def merge_companies(
    payload: MergeRequest,
    service: AdminService = Depends(get_admin_service),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Merge an explicit list of companies into the most recently updated one."""

    try:
        return await service.merge_companies(payload.company_ids)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/sponsors/tag")
async def tag_sponsors(
    service: AdminService = Depends(get_admin_service),
    roster: SponsorRoster = Depends(get_sponsor_roster),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Record past sponsorship years from the roster."""

    return await service.tag_sponsors(roster)


@router.post("/sponsors/add-missing")
async def add_missing_sponsors(
    service: AdminService = Depends(get_admin_service),
    roster: SponsorRoster = Depends(get_sponsor_roster),
    config: AppConfig = Depends(get_app_config),
    current_user: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Create records for roster sponsors missing from the store."""

    return await service.add_missing_sponsors(roster, config.sponsors, created_by=current_user.email)


@router.post("/companies/mark-public")
async def mark_public_companies(
    service: AdminService = Depends(get_admin_service),
    config: AppConfig = Depends(get_app_config),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Flag configured public companies with their stock symbol."""

    return await service.mark_public_companies(config.public_companies)


@router.post("/companies/import")
async def import_companies(
    payload: ImportRequest,
    service: AdminService = Depends(get_admin_service),
    current_user: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Bulk import companies, skipping names already present."""

    return await service.import_companies(payload.companies, created_by=current_user.email)


@router.post("/alumni/scan")
async def scan_alumni(
    service: AdminService = Depends(get_admin_service),
    auth_service: AuthService = Depends(get_auth_service),
    _: AuthUser = Depends(require_admin),
) -> Dict[str, Any]:
    """Record email-domain alumni connections for every active member."""

    users = await auth_service.list_active_users()
    return await service.scan_alumni(users)


@router.post("/users/invite", response_model=InviteUserResponse)
async def invite_user(
    payload: InviteUserRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: AuthUser = Depends(require_admin),
) -> InviteUserResponse:
    """Invite a team member by email."""

    try:
        response, token = await auth_service.invite_user(payload, invited_by=current_user.email)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    background_tasks.add_task(
        auth_service.send_invitation_email, response.user.email, token, response.expires_at
    )
    return response


@router.post("/users/linkedin", response_model=UserActionResponse)
async def update_user_linkedin(
    payload: LinkedInUpdateRequest,
    auth_service: AuthService = Depends(get_auth_service),
    _: AuthUser = Depends(require_admin),
) -> UserActionResponse:
    """Set a member's LinkedIn profile and mark it verified."""

    try:
        return await auth_service.update_user_linkedin(payload.email, payload.linkedin_url)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/users/{user_id}/approve", response_model=UserActionResponse)
async def approve_user(
    user_id: str,
    auth_service: AuthService = Depends(get_auth_service),
    _: AuthUser = Depends(require_admin),
) -> UserActionResponse:
    """Approve a member without an allow-list match."""

    try:
        return await auth_service.approve_user(user_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["router", "get_admin_service", "get_sponsor_roster"]
