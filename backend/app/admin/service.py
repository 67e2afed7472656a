"""Admin maintenance operations over the company collection."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from backend.app.auth.schemas import AuthUser
from backend.app.config import PublicCompaniesConfig, SponsorsConfig
from backend.app.contracts import CompanyCreate, ProfileType, SponsorRoster
from backend.app.errors import ServiceError
from backend.app.matching import (
    MergePlan,
    duplicate_clusters,
    email_domain_connection,
    find_missing_sponsors,
    group_duplicates,
    match_public_symbol,
    merge_cluster,
    normalize_name,
    tag_sponsor_years,
)
from backend.app.store import COMPANY, EntityStore

LOGGER = logging.getLogger(__name__)


class AdminService:
    """Run deduplication, roster tagging, imports and alumni scans."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def _apply_plan(self, plan: MergePlan) -> Dict[str, Any]:
        """Write merged fields onto the survivor, then delete the other records.

        The calls are not atomic; an interrupted run leaves duplicates behind
        that the next run merges again.
        """

        keep_id = plan.keep["id"]
        if plan.merged_fields:
            await self._store.update(COMPANY, keep_id, plan.merged_fields)
        for record in plan.remove:
            await self._store.delete(COMPANY, record["id"])
        return {
            "kept_id": keep_id,
            "name": plan.keep.get("name"),
            "removed_ids": plan.remove_ids,
            "merged_fields": list(plan.merged_fields),
        }

    async def remove_duplicates(self) -> Dict[str, Any]:
        """Merge every group of companies sharing a normalized name."""

        companies = await self._store.list(COMPANY)
        clusters = duplicate_clusters(group_duplicates(companies))
        merged: List[Dict[str, Any]] = []
        removed_count = 0
        for cluster in clusters:
            summary = await self._apply_plan(merge_cluster(cluster))
            removed_count += len(summary["removed_ids"])
            merged.append(summary)
        LOGGER.info(
            "Duplicate removal finished",
            extra={"groups": len(clusters), "removed": removed_count},
        )
        return {
            "success": True,
            "duplicate_groups_found": len(clusters),
            "removed_count": removed_count,
            "merged": merged,
            "message": f"Merged {len(clusters)} duplicate groups and removed {removed_count} companies",
        }

    async def merge_companies(self, company_ids: Sequence[str]) -> Dict[str, Any]:
        """Merge an explicit set of companies regardless of their names.

        Raises:
            ServiceError: With fewer than two distinct ids, or when an id is unknown.
        """

        unique_ids = list(dict.fromkeys(company_id for company_id in company_ids if company_id))
        if len(unique_ids) < 2:
            raise ServiceError("At least two distinct company ids are required")
        cluster = []
        for company_id in unique_ids:
            company = await self._store.get(COMPANY, company_id)
            if company is None:
                raise ServiceError(f"Company not found: {company_id}", reason="not_found")
            cluster.append(company)
        summary = await self._apply_plan(merge_cluster(cluster))
        LOGGER.info(
            "Merged selected companies",
            extra={"kept_id": summary["kept_id"], "removed": len(summary["removed_ids"])},
        )
        return {
            "success": True,
            **summary,
            "removed_count": len(summary["removed_ids"]),
            "message": f"Merged {len(cluster)} companies into {summary['name']}",
        }

    async def tag_sponsors(self, roster: SponsorRoster) -> Dict[str, Any]:
        """Record past sponsorship years on companies matching the roster."""

        companies = await self._store.list(COMPANY)
        tags = tag_sponsor_years(companies, roster)
        for tag in tags:
            await self._store.update(COMPANY, tag.company_id, {"past_sponsor_years": tag.years})
        return {
            "success": True,
            "updated_count": len(tags),
            "total_companies": len(companies),
            "updated_companies": [{"name": tag.name, "years": tag.years} for tag in tags],
            "message": f"Tagged {len(tags)} of {len(companies)} companies as past sponsors",
        }

    async def add_missing_sponsors(
        self, roster: SponsorRoster, settings: SponsorsConfig, *, created_by: str
    ) -> Dict[str, Any]:
        """Create company records for roster sponsors not yet in the store."""

        companies = await self._store.list(COMPANY)
        missing = find_missing_sponsors(
            companies,
            roster,
            event_name=settings.event_name,
            default_industry=settings.default_industry,
        )
        if missing:
            await self._store.bulk_create(COMPANY, missing, created_by=created_by)
        return {
            "success": True,
            "added_count": len(missing),
            "companies": [company["name"] for company in missing],
            "message": f"Added {len(missing)} past sponsors",
        }

    async def mark_public_companies(self, settings: PublicCompaniesConfig) -> Dict[str, Any]:
        """Flag known public companies and set their stock symbol."""

        companies = await self._store.list(COMPANY)
        updated: List[Dict[str, Any]] = []
        for company in companies:
            if company.get("profile_type") == ProfileType.PUBLIC.value:
                continue
            symbol = match_public_symbol(company.get("name"), settings.symbols)
            if symbol is None:
                continue
            await self._store.update(
                COMPANY,
                company["id"],
                {"profile_type": ProfileType.PUBLIC.value, "stock_symbol": symbol},
            )
            updated.append({"name": company.get("name"), "stock_symbol": symbol})
        return {
            "success": True,
            "updated_count": len(updated),
            "updated_companies": updated,
            "message": f"Updated {len(updated)} companies to public with stock symbols",
        }

    async def import_companies(
        self, companies: Iterable[CompanyCreate], *, created_by: str
    ) -> Dict[str, Any]:
        """Create companies whose normalized name is neither stored nor repeated."""

        existing = await self._store.list(COMPANY)
        known = {normalize_name(company.get("name")) for company in existing}
        to_create: List[Dict[str, Any]] = []
        skipped = 0
        for company in companies:
            key = normalize_name(company.name)
            if key in known:
                skipped += 1
                continue
            known.add(key)
            to_create.append(company.model_dump(mode="json", exclude_none=True))
        if to_create:
            await self._store.bulk_create(COMPANY, to_create, created_by=created_by)
        LOGGER.info("Imported companies", extra={"created": len(to_create), "skipped": skipped})
        return {
            "success": True,
            "count": len(to_create),
            "skipped": skipped,
            "companies": [company["name"] for company in to_create],
            "message": f"Imported {len(to_create)} companies, skipped {skipped} duplicates",
        }

    async def scan_alumni(self, users: Sequence[AuthUser]) -> Dict[str, Any]:
        """Append email-domain alumni connections for every user and company pair.

        A pair already recorded with the same member email and connection type
        is not added again.
        """

        companies = await self._store.list(COMPANY)
        companies_updated = 0
        total_found = 0
        for company in companies:
            existing: List[Mapping[str, Any]] = list(company.get("alumni_connections") or [])
            recorded = {
                (connection.get("team_member_email"), connection.get("connection_type"))
                for connection in existing
            }
            additions: List[Dict[str, Any]] = []
            for user in users:
                match = email_domain_connection(user.email, company.get("website"))
                if match is None:
                    continue
                key = (user.email, match["connection_type"])
                if key in recorded:
                    continue
                recorded.add(key)
                additions.append(
                    {
                        "team_member_name": user.full_name,
                        "team_member_email": user.email,
                        **match,
                    }
                )
            if additions:
                await self._store.update(
                    COMPANY, company["id"], {"alumni_connections": [*existing, *additions]}
                )
                companies_updated += 1
                total_found += len(additions)
        return {
            "success": True,
            "companies_updated": companies_updated,
            "total_connections_found": total_found,
            "message": f"Found {total_found} alumni connections across {companies_updated} companies",
        }


__all__ = ["AdminService"]
