from __future__ import annotations

import pytest
from pydantic import ValidationError

from backend.app.contracts import (
    PIPELINE_ORDER,
    TERMINAL_STATUSES,
    AlumniConnection,
    CompanyCreate,
    CompanyStatus,
    DecisionMaker,
    SponsorRoster,
)


def test_company_create_defaults_and_extra_fields() -> None:
    company = CompanyCreate(name="  Oasis Security ", linkedin_url="https://linkedin.com/company/oasis")
    assert company.name == "Oasis Security"
    assert company.status is CompanyStatus.RESEARCH
    dumped = company.model_dump(mode="json", exclude_none=True)
    assert dumped["linkedin_url"] == "https://linkedin.com/company/oasis"
    assert dumped["status"] == "research"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "   "},
        {"name": "Acme", "founded_year": 1700},
        {"name": "Acme", "size": "gigantic"},
        {"name": "Acme", "employee_count": -1},
    ],
)
def test_company_create_rejects_invalid_values(payload) -> None:
    with pytest.raises(ValidationError):
        CompanyCreate(**payload)


def test_nested_models_are_frozen() -> None:
    person = DecisionMaker(name="Dana", title="CISO")
    with pytest.raises(ValidationError):
        person.title = "CTO"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        AlumniConnection(connection_type="")


def test_pipeline_order_excludes_declined() -> None:
    assert PIPELINE_ORDER[0] is CompanyStatus.RESEARCH
    assert PIPELINE_ORDER[-1] is CompanyStatus.CLOSED
    assert CompanyStatus.DECLINED not in PIPELINE_ORDER
    assert CompanyStatus.DECLINED in TERMINAL_STATUSES


def test_sponsor_roster_coerces_year_keys() -> None:
    roster = SponsorRoster(years={2023: [{"name": "Wiz", "tier": "gold"}], "2024": [{"name": "Cato"}]})
    assert roster.names_by_year() == {"2023": ["Wiz"], "2024": ["Cato"]}
    assert roster.years["2023"][0].tier == "gold"
