"""LLM-backed company research, contact discovery and network lookups."""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from backend.app.auth.schemas import AuthUser
from backend.app.config import BatchConfig
from backend.app.contracts import CompanySize, CompanyStatus
from backend.app.dependencies import SleepCallable
from backend.app.errors import ServiceError
from backend.app.llm.client import LLMClient, LLMError, LLMRateLimitError
from backend.app.llm.prompts import (
    COMPANY_RESEARCH_SCHEMA,
    DECISION_MAKERS_SCHEMA,
    DISCOVERY_SCHEMA,
    NETWORK_SCHEMA,
    company_research_prompt,
    decision_makers_prompt,
    discovery_prompt,
    network_prompt,
)
from backend.app.matching import merge_alumni_connections, merge_decision_makers, normalize_name
from backend.app.store import COMPANY, EntityStore, Record

LOGGER = logging.getLogger(__name__)

_RESEARCH_FIELDS = (
    "website",
    "industry",
    "size",
    "headquarters",
    "founded_year",
    "funding_raised",
    "valuation",
    "investor_count",
    "employee_count",
)
_SIZES = {size.value for size in CompanySize}


def _as_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ResearchService:
    """Enrich company records with LLM research results."""

    def __init__(
        self,
        store: EntityStore,
        llm: LLMClient,
        batch: BatchConfig,
        *,
        sleep: SleepCallable = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._llm = llm
        self._batch = batch
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _invoke(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        """Call the LLM, translating adapter failures into service errors."""

        try:
            return await self._llm.invoke(prompt, schema)
        except LLMRateLimitError as exc:
            raise ServiceError(str(exc), reason="rate_limited") from exc
        except LLMError as exc:
            raise ServiceError(str(exc), reason="upstream") from exc

    async def _require_company(self, company_id: Optional[str]) -> Record:
        if not company_id:
            raise ServiceError("company_id is required")
        company = await self._store.get(COMPANY, company_id)
        if company is None:
            raise ServiceError("Company not found", reason="not_found")
        return company

    async def research_company(
        self, *, company_id: Optional[str] = None, company_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Research a company by id or name and store non-empty findings.

        Without ``company_id`` the research is returned but nothing is saved.
        """

        if not company_id and not company_name:
            raise ServiceError("Either company_id or company_name is required")
        company: Optional[Record] = None
        name = company_name
        if company_id:
            company = await self._require_company(company_id)
            name = company_name or company.get("name")

        response = await self._invoke(company_research_prompt(str(name)), COMPANY_RESEARCH_SCHEMA)

        update: Dict[str, Any] = {}
        for field_name in _RESEARCH_FIELDS:
            value = response.get(field_name)
            if not value:
                continue
            if field_name == "size" and value not in _SIZES:
                continue
            update[field_name] = value
        found_makers = _as_list(response.get("decision_makers"))
        if found_makers:
            existing = company.get("decision_makers") if company else None
            update["decision_makers"] = merge_decision_makers(existing, found_makers)
        update["ai_research"] = json.dumps(response)
        update["last_research_update"] = self._clock().isoformat()

        if company is not None:
            await self._store.update(COMPANY, company["id"], update)
            LOGGER.info(
                "Stored company research",
                extra={"company_id": company["id"], "fields": sorted(update)},
            )
        return {"success": True, "data": response, "updated_fields": list(update)}

    async def find_decision_makers(self, company_id: Optional[str]) -> Dict[str, Any]:
        """Look up decision makers and merge new names into the company."""

        company = await self._require_company(company_id)
        response = await self._invoke(
            decision_makers_prompt(company.get("name") or "", company.get("website")),
            DECISION_MAKERS_SCHEMA,
        )
        found = _as_list(response.get("decision_makers"))
        merged = merge_decision_makers(company.get("decision_makers"), found)
        await self._store.update(COMPANY, company["id"], {"decision_makers": merged})
        return {"success": True, "decision_makers": found}

    async def bulk_find_decision_makers(self) -> Dict[str, Any]:
        """Research decision makers for every company that has none.

        Upstream failures are recorded per company and do not stop the loop.
        """

        companies = await self._store.list(COMPANY)
        pending = [company for company in companies if not company.get("decision_makers")]
        results: List[Dict[str, Any]] = []
        processed = 0
        failed = 0
        for index, company in enumerate(pending):
            if index and self._batch.inter_call_delay_seconds > 0:
                await self._sleep(self._batch.inter_call_delay_seconds)
            try:
                response = await self._llm.invoke(
                    decision_makers_prompt(company.get("name") or "", company.get("website")),
                    DECISION_MAKERS_SCHEMA,
                )
            except LLMError as exc:
                failed += 1
                LOGGER.warning(
                    "Decision maker research failed",
                    extra={"company_id": company["id"], "error": str(exc)},
                )
                results.append({"company": company.get("name"), "success": False, "error": str(exc)})
                continue
            found = merge_decision_makers([], _as_list(response.get("decision_makers")))
            await self._store.update(COMPANY, company["id"], {"decision_makers": found})
            processed += 1
            results.append(
                {"company": company.get("name"), "success": True, "decision_makers_found": len(found)}
            )
        LOGGER.info(
            "Bulk decision maker research finished",
            extra={"total": len(pending), "processed": processed, "failed": failed},
        )
        return {
            "success": True,
            "total": len(pending),
            "processed": processed,
            "failed": failed,
            "results": results,
        }

    async def check_network(self, company_id: Optional[str], user: AuthUser) -> Dict[str, Any]:
        """Search for the caller's connections at a company and record new ones."""

        company = await self._require_company(company_id)
        if not user.linkedin_profile:
            raise ServiceError(
                "LinkedIn profile not found. Please update your profile with your LinkedIn URL."
            )
        company_name = company.get("name") or ""
        response = await self._invoke(
            network_prompt(user.full_name or user.email, user.linkedin_profile, company_name),
            NETWORK_SCHEMA,
        )
        found = _as_list(response.get("connections"))
        existing = company.get("alumni_connections") or []
        added = 0
        if found:
            merged = merge_alumni_connections(
                existing, found, {"full_name": user.full_name, "email": user.email}
            )
            added = len(merged) - len(existing)
            if added > 0:
                await self._store.update(COMPANY, company["id"], {"alumni_connections": merged})
        return {
            "success": True,
            "company_name": company_name,
            "has_connections": bool(found),
            "connections_found": len(found),
            "connections_added": added,
            "connections": found,
        }

    async def discover_companies(
        self, focus: Optional[str], limit: Optional[int] = None, *, created_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """Ask the LLM for candidate sponsors and store the ones not yet known."""

        if not focus or not focus.strip():
            raise ServiceError("focus is required")
        cap = min(limit or self._batch.discovery_max_companies, self._batch.discovery_max_companies)
        response = await self._invoke(discovery_prompt(focus.strip(), cap), DISCOVERY_SCHEMA)
        candidates = _as_list(response.get("companies"))[:cap]

        existing = await self._store.list(COMPANY)
        known = {normalize_name(company.get("name")) for company in existing}
        new_companies: List[Dict[str, Any]] = []
        for candidate in candidates:
            key = normalize_name(candidate.get("name"))
            if not key or key in known:
                continue
            known.add(key)
            size = candidate.get("size")
            note = candidate.get("connection_note")
            record: Dict[str, Any] = {
                "name": str(candidate["name"]).strip(),
                "website": candidate.get("website"),
                "industry": candidate.get("industry"),
                "size": size if size in _SIZES else CompanySize.MEDIUM.value,
                "status": CompanyStatus.RESEARCH.value,
            }
            if note:
                record["notes"] = f"Discovery note: {note}"
            new_companies.append(record)
        if new_companies:
            await self._store.bulk_create(COMPANY, new_companies, created_by=created_by)
        LOGGER.info(
            "Company discovery finished",
            extra={"found": len(candidates), "added": len(new_companies)},
        )
        return {
            "success": True,
            "total_found": len(candidates),
            "new_companies_added": len(new_companies),
            "already_existed": len(candidates) - len(new_companies),
            "companies": [company["name"] for company in new_companies],
        }


__all__ = ["ResearchService"]
