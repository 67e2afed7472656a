"""Data contracts for the sponsorship pipeline backend."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class _DocumentModel(BaseModel):
    """Base model for store documents that tolerate unknown fields."""

    model_config = ConfigDict(extra="allow")


class CompanyStatus(str, Enum):
    """Pipeline stage of a candidate sponsor."""

    RESEARCH = "research"
    CONTACTED = "contacted"
    RESPONDED = "responded"
    NEGOTIATING = "negotiating"
    COMMITTED = "committed"
    CLOSED = "closed"
    DECLINED = "declined"


PIPELINE_ORDER: List[CompanyStatus] = [
    CompanyStatus.RESEARCH,
    CompanyStatus.CONTACTED,
    CompanyStatus.RESPONDED,
    CompanyStatus.NEGOTIATING,
    CompanyStatus.COMMITTED,
    CompanyStatus.CLOSED,
]

TERMINAL_STATUSES = frozenset({CompanyStatus.CLOSED, CompanyStatus.DECLINED})


class CompanySize(str, Enum):
    """Headcount bucket reported by research."""

    STARTUP = "startup"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


class ProfileType(str, Enum):
    """Whether a company is publicly traded."""

    PUBLIC = "public"
    PRIVATE = "private"


class DecisionMaker(_FrozenBaseModel):
    """Person at a company who can approve a sponsorship."""

    name: str = Field(..., min_length=1)
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None


class AlumniConnection(_FrozenBaseModel):
    """Link between a team member and someone at a company."""

    team_member_name: Optional[str] = None
    team_member_email: Optional[str] = None
    connection_type: str = Field(..., min_length=1)
    notes: str = ""


class CompanyBase(_DocumentModel):
    """Fields shared by company create and update payloads."""

    website: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[CompanySize] = None
    headquarters: Optional[str] = None
    founded_year: Optional[int] = Field(None, ge=1800, le=2100)
    employee_count: Optional[int] = Field(None, ge=0)
    funding_raised: Optional[float] = Field(None, ge=0)
    valuation: Optional[float] = Field(None, ge=0)
    investor_count: Optional[int] = Field(None, ge=0)
    market_cap: Optional[float] = Field(None, ge=0)
    profile_type: Optional[ProfileType] = None
    stock_symbol: Optional[str] = None
    notes: Optional[str] = None
    decision_makers: Optional[List[DecisionMaker]] = None
    alumni_connections: Optional[List[AlumniConnection]] = None


class CompanyCreate(CompanyBase):
    """Payload for creating a company record."""

    name: str = Field(..., min_length=1)
    status: CompanyStatus = CompanyStatus.RESEARCH

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("company name must not be blank")
        return stripped


class CompanyUpdate(CompanyBase):
    """Partial update for a company record."""

    name: Optional[str] = Field(None, min_length=1)
    status: Optional[CompanyStatus] = None


class KnowledgeDocumentCreate(BaseModel):
    """Payload for saving a document to the knowledge base.

    Required fields are validated by the service so that missing values
    surface as a single ``400`` rather than a schema error per field.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    document_type: Optional[str] = None
    company_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    source: str = "manual"


class KnowledgeQuery(BaseModel):
    """Knowledge base search request."""

    query: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    document_type: Optional[str] = None


class OutreachCreate(BaseModel):
    """Outreach touch logged against a company."""

    channel: str = Field(..., min_length=1)
    contact_name: Optional[str] = None
    notes: Optional[str] = None
    outcome_status: Optional[CompanyStatus] = None


class SponsorRosterEntry(_FrozenBaseModel):
    """Single historical sponsorship."""

    name: str = Field(..., min_length=1)
    tier: Optional[str] = None


class SponsorRoster(_FrozenBaseModel):
    """Year-indexed list of historical sponsors."""

    version: int = Field(1, ge=1)
    years: Dict[str, List[SponsorRosterEntry]] = Field(default_factory=dict)

    @field_validator("years", mode="before")
    @classmethod
    def _coerce_year_keys(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(year): entries for year, entries in value.items()}
        return value

    def names_by_year(self) -> Dict[str, List[str]]:
        """Return sponsor names keyed by year, preserving roster order."""

        return {year: [entry.name for entry in entries] for year, entries in self.years.items()}


__all__ = [
    "CompanyStatus",
    "PIPELINE_ORDER",
    "TERMINAL_STATUSES",
    "CompanySize",
    "ProfileType",
    "DecisionMaker",
    "AlumniConnection",
    "CompanyCreate",
    "CompanyUpdate",
    "KnowledgeDocumentCreate",
    "KnowledgeQuery",
    "OutreachCreate",
    "SponsorRosterEntry",
    "SponsorRoster",
]
