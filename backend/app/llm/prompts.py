"""Prompt templates and JSON schemas for research calls."""
from __future__ import annotations

from typing import Any, Dict, Optional

_NULLABLE_STRING = {"type": ["string", "null"]}
_NULLABLE_NUMBER = {"type": ["number", "null"]}

_DECISION_MAKER_ITEM = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "title": {"type": "string"},
        "linkedin_url": _NULLABLE_STRING,
    },
    "required": ["name"],
}

COMPANY_RESEARCH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "website": _NULLABLE_STRING,
        "industry": _NULLABLE_STRING,
        "size": {
            "type": ["string", "null"],
            "enum": ["startup", "small", "medium", "large", "enterprise", None],
        },
        "founded_year": _NULLABLE_NUMBER,
        "headquarters": _NULLABLE_STRING,
        "funding_raised": _NULLABLE_NUMBER,
        "valuation": _NULLABLE_NUMBER,
        "latest_funding_date": _NULLABLE_STRING,
        "investor_count": _NULLABLE_NUMBER,
        "employee_count": _NULLABLE_NUMBER,
        "decision_makers": {"type": ["array", "null"], "items": _DECISION_MAKER_ITEM},
    },
}

DECISION_MAKERS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"decision_makers": {"type": "array", "items": _DECISION_MAKER_ITEM}},
}

NETWORK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "has_connections": {"type": "boolean"},
        "connections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "contact_name": {"type": "string"},
                    "contact_title": {"type": "string"},
                    "contact_linkedin": {"type": "string"},
                    "connection_type": {"type": "string"},
                    "connection_strength": {
                        "type": "string",
                        "enum": ["direct", "mutual", "alumni", "weak"],
                    },
                    "notes": {"type": "string"},
                },
            },
        },
    },
}

DISCOVERY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "companies": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "website": {"type": "string"},
                    "industry": {"type": "string"},
                    "size": {"type": "string"},
                    "connection_note": {"type": "string"},
                },
                "required": ["name"],
            },
        }
    },
}

QUERY_REFINEMENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"refined_query": {"type": "string"}},
    "required": ["refined_query"],
}


def company_research_prompt(name: str) -> str:
    return (
        f"Perform comprehensive research on the company: {name}\n\n"
        "Return current, accurate data for: website, industry (primary sector), size (one of startup, "
        "small, medium, large, enterprise based on employee count), founded_year, headquarters "
        "(city, country), funding_raised in USD, valuation in USD, latest_funding_date, investor_count, "
        "employee_count, and decision_makers (name, title, LinkedIn profile URL).\n"
        "Use null for any field that is not available."
    )


def decision_makers_prompt(name: str, website: Optional[str]) -> str:
    return (
        f'Research the company "{name}" (website: {website or "N/A"}) and find 3 potential decision '
        "makers relevant for sponsorship decisions (for example CEO, CMO, VP Marketing, HR Director).\n"
        "For each person provide the full name, current job title at this company and LinkedIn profile "
        "URL if available. Focus on executives who handle marketing, sponsorships, partnerships or "
        "community engagement."
    )


def network_prompt(full_name: str, linkedin_url: str, company_name: str) -> str:
    return (
        f'Find connections between "{full_name}" (LinkedIn: {linkedin_url}) and people working at '
        f'"{company_name}".\n'
        f"Look for people currently at {company_name} connected to {full_name}, mutual connections or "
        "shared experiences (schools, previous employers), and any relationship that could help with "
        "sponsorship outreach."
    )


def discovery_prompt(focus: str, limit: int) -> str:
    return (
        f"Create a list of up to {limit} companies matching this focus: {focus}.\n"
        "For each company provide the name, website (full https URL), industry or focus area, size "
        "(one of startup, small, medium, large, enterprise) and a short note explaining why it fits "
        "the focus."
    )


def query_refinement_prompt(query: str) -> str:
    return f'Convert this text to a concise keyword search query: "{query}". Return only the refined query.'


__all__ = [
    "COMPANY_RESEARCH_SCHEMA",
    "DECISION_MAKERS_SCHEMA",
    "DISCOVERY_SCHEMA",
    "NETWORK_SCHEMA",
    "QUERY_REFINEMENT_SCHEMA",
    "company_research_prompt",
    "decision_makers_prompt",
    "discovery_prompt",
    "network_prompt",
    "query_refinement_prompt",
]
