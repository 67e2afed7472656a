"""Company CRUD and outreach logging over the entity store."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from backend.app.auth.schemas import AuthUser
from backend.app.contracts import CompanyCreate, CompanyStatus, CompanyUpdate, OutreachCreate
from backend.app.crm.pipeline import advance_status
from backend.app.errors import ServiceError
from backend.app.store import COMPANY, OUTREACH, EntityStore, Record

LOGGER = logging.getLogger(__name__)


class CompanyService:
    """Manage company records and their outreach history."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def list_companies(
        self, *, status: Optional[CompanyStatus] = None, sort: Optional[str] = None
    ) -> List[Record]:
        criteria = {"status": status.value} if status else None
        return await self._store.filter(COMPANY, criteria, sort=sort)

    async def get_company(self, company_id: str) -> Record:
        company = await self._store.get(COMPANY, company_id)
        if company is None:
            raise ServiceError("Company not found", reason="not_found")
        return company

    async def create_company(self, payload: CompanyCreate, *, created_by: Optional[str] = None) -> Record:
        data = payload.model_dump(mode="json", exclude_none=True)
        company = await self._store.create(COMPANY, data, created_by=created_by)
        LOGGER.info("Created company", extra={"company_id": company["id"]})
        return company

    async def update_company(self, company_id: str, payload: CompanyUpdate) -> Record:
        """Apply a partial update; status changes follow the forward-only pipeline."""

        company = await self.get_company(company_id)
        fields = payload.model_dump(mode="json", exclude_unset=True)
        if "status" in fields:
            fields["status"] = advance_status(company.get("status"), fields["status"]).value
        updated = await self._store.update(COMPANY, company_id, fields)
        if updated is None:
            raise ServiceError("Company not found", reason="not_found")
        return updated

    async def delete_company(self, company_id: str) -> Dict[str, Any]:
        deleted = await self._store.delete(COMPANY, company_id)
        if not deleted:
            raise ServiceError("Company not found", reason="not_found")
        LOGGER.info("Deleted company", extra={"company_id": company_id})
        return {"success": True, "message": "Company deleted"}

    async def log_outreach(
        self, company_id: str, payload: OutreachCreate, user: AuthUser
    ) -> Dict[str, Any]:
        """Record an outreach touch and advance the company's status if requested."""

        company = await self.get_company(company_id)
        outreach = await self._store.create(
            OUTREACH,
            {
                "company_id": company_id,
                "channel": payload.channel,
                "contact_name": payload.contact_name,
                "notes": payload.notes,
                "outcome_status": payload.outcome_status.value if payload.outcome_status else None,
                "team_member_name": user.full_name,
                "team_member_email": user.email,
            },
            created_by=user.email,
        )
        previous = company.get("status")
        new_status = advance_status(previous, payload.outcome_status)
        status_changed = new_status.value != previous
        if status_changed:
            await self._store.update(COMPANY, company_id, {"status": new_status.value})
            LOGGER.info(
                "Advanced company status",
                extra={"company_id": company_id, "from": previous, "to": new_status.value},
            )
        return {
            "success": True,
            "outreach": outreach,
            "status": new_status.value,
            "status_changed": status_changed,
        }

    async def list_outreach(self, company_id: str) -> List[Record]:
        await self.get_company(company_id)
        return await self._store.filter(OUTREACH, {"company_id": company_id}, sort="-created_date")


__all__ = ["CompanyService"]
