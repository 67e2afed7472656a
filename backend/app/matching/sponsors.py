"""Historical sponsor roster loading and sponsor-year tagging."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from backend.app.config import ConfigError
from backend.app.contracts import CompanyStatus, SponsorRoster
from backend.app.matching.names import names_match, normalize_name

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SponsorTag:
    """Years a stored company matched the roster."""

    company_id: Optional[str]
    name: str
    years: List[str]


def load_roster(path: Path) -> SponsorRoster:
    """Read and validate the sponsor roster YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Sponsor roster missing at %s", path)
        raise ConfigError("Sponsor roster not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in sponsor roster %s", path)
        raise ConfigError("Invalid sponsor roster syntax") from exc
    if not isinstance(data, dict):
        raise ConfigError("Sponsor roster root must be a mapping")
    try:
        roster = SponsorRoster(**data)
    except ValidationError as exc:
        LOGGER.error("Invalid sponsor roster values: %s", exc)
        raise ConfigError("Sponsor roster validation failed") from exc
    LOGGER.info(
        "Loaded sponsor roster",
        extra={"path": str(path), "version": roster.version, "years": len(roster.years)},
    )
    return roster


def sponsor_years_for(name: Optional[str], roster: SponsorRoster) -> List[str]:
    """Return roster years whose sponsors match ``name``, newest first."""

    if not normalize_name(name):
        return []
    years = set()
    for year, sponsors in roster.names_by_year().items():
        if any(names_match(name, sponsor) for sponsor in sponsors):
            years.add(year)
    return sorted(years, reverse=True)


def tag_sponsor_years(
    companies: Iterable[Mapping[str, Any]], roster: SponsorRoster
) -> List[SponsorTag]:
    """Compute ``past_sponsor_years`` for companies that match the roster.

    Only companies with at least one matching year are returned, in input
    order. Unnamed companies never match.
    """

    tags: List[SponsorTag] = []
    for company in companies:
        years = sponsor_years_for(company.get("name"), roster)
        if years:
            tags.append(SponsorTag(company_id=company.get("id"), name=company.get("name"), years=years))
    return tags


def find_missing_sponsors(
    companies: Iterable[Mapping[str, Any]],
    roster: SponsorRoster,
    *,
    event_name: str,
    default_industry: str,
) -> List[Dict[str, Any]]:
    """Build company payloads for roster sponsors absent from the store.

    A sponsor is present when any stored, non-empty company name matches it
    by containment in either direction. Each missing sponsor appears once,
    with every year it sponsored and the tier it held that year.
    """

    existing = [normalize_name(company.get("name")) for company in companies]
    existing = [name for name in existing if name]

    collected: Dict[str, Dict[str, Any]] = {}
    for year, entries in roster.years.items():
        for entry in entries:
            record = collected.setdefault(entry.name, {"years": [], "tiers": {}})
            if year not in record["years"]:
                record["years"].append(year)
            if entry.tier:
                record["tiers"][year] = entry.tier

    missing: List[Dict[str, Any]] = []
    for name, record in collected.items():
        if any(names_match(name, other) for other in existing):
            continue
        years = sorted(record["years"], reverse=True)
        missing.append(
            {
                "name": name,
                "status": CompanyStatus.RESEARCH.value,
                "industry": default_industry,
                "past_sponsor_years": years,
                "sponsor_tiers": dict(record["tiers"]),
                "notes": f"Past {event_name} sponsor: {', '.join(years)}",
            }
        )
    return missing


__all__ = [
    "SponsorTag",
    "find_missing_sponsors",
    "load_roster",
    "sponsor_years_for",
    "tag_sponsor_years",
]
