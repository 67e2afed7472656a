"""End-to-end API tests against a temporary SQLite database."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi.testclient import TestClient

from backend.app.config import AppConfig, load_config
from backend.app.llm.client import LLMError, LLMRateLimitError
from backend.app.main import create_app

ADMIN_PROFILE = "https://www.linkedin.com/in/organizer-admin"
MEMBER_PROFILE = "https://www.linkedin.com/in/organizer-sponsorships/"


class ScriptedLLM:
    """Answer prompts from a queue of responses or exceptions."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])

    async def invoke(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StubEmailDispatcher:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, datetime]] = []

    async def send_invitation_email(self, recipient: str, token: str, expires_at: datetime) -> None:
        self.messages.append((recipient, token, expires_at))


async def _no_sleep(_: float) -> None:
    return None


def _config(tmp_path: Path) -> AppConfig:
    base = load_config()
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    return base.model_copy(
        update={
            "store": base.store.model_copy(update={"database_url": database_url}),
            "auth": base.auth.model_copy(update={"database_url": database_url}),
        }
    )


def _client(tmp_path: Path, llm: Optional[ScriptedLLM] = None, **kwargs: Any) -> Tuple[TestClient, StubEmailDispatcher]:
    app = create_app(_config(tmp_path), llm_client=llm or ScriptedLLM(), sleep=_no_sleep)
    dispatcher = StubEmailDispatcher()
    app.state.email_dispatcher = dispatcher
    return TestClient(app, **kwargs), dispatcher


def _headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _sign_up(client: TestClient, email: str, linkedin_url: Optional[str] = None) -> str:
    registered = client.post(
        "/api/auth/register", json={"email": email, "password": "password123", "full_name": email.split("@")[0]}
    )
    assert registered.status_code == 201
    login = client.post("/api/auth/login", json={"email": email, "password": "password123"})
    assert login.status_code == 200
    token = login.json()["tokens"]["access_token"]
    if linkedin_url:
        verified = client.post("/api/auth/linkedin/verify", json={"linkedin_url": linkedin_url}, headers=_headers(token))
        assert verified.json()["verified"] is True
    return token


def test_health_reports_service_and_version(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    with client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "Sponsorship Pipeline API", "version": "1.0.0"}


def test_access_levels_and_error_shape(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    with client:
        anonymous = client.get("/api/companies")
        assert anonymous.status_code == 401
        assert anonymous.json() == {"error": "Not authenticated"}

        bad_token = client.get("/api/companies", headers=_headers("not-a-jwt"))
        assert bad_token.status_code == 401
        assert bad_token.json() == {"error": "Invalid access token"}

        unverified = _sign_up(client, "pending@example.com")
        blocked = client.get("/api/companies", headers=_headers(unverified))
        assert blocked.status_code == 403
        assert blocked.json() == {"error": "LinkedIn verification required"}

        member = _sign_up(client, "member@example.com", MEMBER_PROFILE)
        assert client.get("/api/companies", headers=_headers(member)).status_code == 200
        admin_only = client.post("/api/admin/companies/remove-duplicates", headers=_headers(member))
        assert admin_only.status_code == 403
        assert admin_only.json() == {"error": "Admin access required"}

        me = client.get("/api/auth/me", headers=_headers(member)).json()
        assert me["authenticated"] is True
        assert me["user"]["linkedin_verified"] is True
        assert client.get("/api/auth/me").json() == {"authenticated": False, "user": None}


def test_validation_and_service_errors_return_400(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    with client:
        admin = _sign_up(client, "admin@example.com", ADMIN_PROFILE)
        invalid = client.post("/api/knowledge/query", json={"query": "x", "limit": 0}, headers=_headers(admin))
        assert invalid.status_code == 400
        assert set(invalid.json()) == {"error"}

        blank = client.post("/api/knowledge/query", json={"query": "  "}, headers=_headers(admin))
        assert blank.status_code == 400
        assert blank.json() == {"error": "Query is required"}

        missing = client.post("/api/knowledge/documents", json={"title": "Deck"}, headers=_headers(admin))
        assert missing.status_code == 400
        assert missing.json() == {"error": "title, content, and document_type are required"}

        too_few = client.post("/api/admin/companies/merge", json={"company_ids": ["one"]}, headers=_headers(admin))
        assert too_few.status_code == 400

        unknown = client.get("/api/companies/missing", headers=_headers(admin))
        assert unknown.status_code == 404
        assert unknown.json() == {"error": "Company not found"}


def test_company_lifecycle_and_outreach(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    with client:
        member = _sign_up(client, "member@example.com", MEMBER_PROFILE)
        admin = _sign_up(client, "admin@example.com", ADMIN_PROFILE)

        created = client.post("/api/companies", json={"name": "Oasis Security"}, headers=_headers(member))
        assert created.status_code == 201
        company_id = created.json()["company"]["id"]
        assert created.json()["company"]["status"] == "research"

        outreach = client.post(
            f"/api/companies/{company_id}/outreach",
            json={"channel": "email", "contact_name": "Gal", "outcome_status": "contacted"},
            headers=_headers(member),
        )
        assert outreach.status_code == 201
        assert outreach.json()["status"] == "contacted"
        assert outreach.json()["status_changed"] is True

        backwards = client.patch(f"/api/companies/{company_id}", json={"status": "research"}, headers=_headers(member))
        assert backwards.json()["company"]["status"] == "contacted"

        listed = client.get("/api/companies", params={"status": "contacted"}, headers=_headers(member)).json()
        assert listed["count"] == 1
        history = client.get(f"/api/companies/{company_id}/outreach", headers=_headers(member)).json()
        assert history["count"] == 1

        assert client.delete(f"/api/companies/{company_id}", headers=_headers(member)).status_code == 403
        assert client.delete(f"/api/companies/{company_id}", headers=_headers(admin)).status_code == 200
        assert client.get(f"/api/companies/{company_id}", headers=_headers(admin)).status_code == 404


def test_admin_dedup_and_sponsor_workflows(tmp_path: Path) -> None:
    client, _ = _client(tmp_path)
    with client:
        admin = _sign_up(client, "admin@example.com", ADMIN_PROFILE)
        headers = _headers(admin)
        first = client.post("/api/companies", json={"name": "Sygnia", "industry": "ir"}, headers=headers).json()
        second = client.post(
            "/api/companies", json={"name": "sygnia ", "website": "https://sygnia.co"}, headers=headers
        ).json()
        client.post("/api/companies", json={"name": "Intel Israel"}, headers=headers)

        dedup = client.post("/api/admin/companies/remove-duplicates", headers=headers).json()
        assert dedup["duplicate_groups_found"] == 1
        assert dedup["removed_count"] == 1
        assert dedup["merged"][0]["kept_id"] == second["company"]["id"]
        survivor = client.get(f"/api/companies/{second['company']['id']}", headers=headers).json()["company"]
        assert survivor["industry"] == "ir"
        assert survivor["website"] == "https://sygnia.co"
        assert client.get(f"/api/companies/{first['company']['id']}", headers=headers).status_code == 404

        tagged = client.post("/api/admin/sponsors/tag", headers=headers).json()
        years = {item["name"]: item["years"] for item in tagged["updated_companies"]}
        assert years["sygnia"] == ["2024"]
        assert years["Intel Israel"] == ["2021", "2020"]

        public = client.post("/api/admin/companies/mark-public", headers=headers).json()
        assert public["updated_companies"] == [{"name": "Intel Israel", "stock_symbol": "INTC"}]

        added = client.post("/api/admin/sponsors/add-missing", headers=headers).json()
        assert added["added_count"] > 0
        assert "Sygnia" not in added["companies"]
        assert "Intel" not in added["companies"]
        assert client.post("/api/admin/sponsors/add-missing", headers=headers).json()["added_count"] == 0

        imported = client.post(
            "/api/admin/companies/import",
            json={"companies": [{"name": "SYGNIA"}, {"name": "Brand New Co"}]},
            headers=headers,
        ).json()
        assert imported["count"] == 1
        assert imported["skipped"] == 1


def test_invitation_round_trip(tmp_path: Path) -> None:
    client, dispatcher = _client(tmp_path)
    with client:
        admin = _sign_up(client, "admin@example.com", ADMIN_PROFILE)
        invited = client.post(
            "/api/admin/users/invite",
            json={"email": "invitee@example.com", "full_name": "Invitee"},
            headers=_headers(admin),
        )
        assert invited.status_code == 200
        assert invited.json()["user"]["is_active"] is False
        assert dispatcher.messages[0][0] == "invitee@example.com"
        token = dispatcher.messages[0][1]

        accepted = client.post("/api/auth/invitations/accept", json={"token": token, "password": "welcome123"})
        assert accepted.status_code == 200
        member_token = accepted.json()["tokens"]["access_token"]

        approved = client.post(
            f"/api/admin/users/{accepted.json()['user']['id']}/approve", headers=_headers(admin)
        )
        assert approved.json()["user"]["linkedin_verified"] is True
        assert client.get("/api/companies", headers=_headers(member_token)).status_code == 200

        reused = client.post("/api/auth/invitations/accept", json={"token": token, "password": "welcome123"})
        assert reused.status_code == 410


def test_research_and_knowledge_endpoints(tmp_path: Path) -> None:
    llm = ScriptedLLM(
        [
            {"website": "https://wix.com", "size": "large"},
            LLMRateLimitError("slow down"),
            LLMError("provider exploded"),
        ]
    )
    client, _ = _client(tmp_path, llm)
    with client:
        member = _sign_up(client, "member@example.com", MEMBER_PROFILE)
        headers = _headers(member)
        company_id = client.post("/api/companies", json={"name": "Wix"}, headers=headers).json()["company"]["id"]

        researched = client.post("/api/research/company", json={"company_id": company_id}, headers=headers)
        assert researched.status_code == 200
        assert set(researched.json()["updated_fields"]) >= {"website", "size", "ai_research"}

        limited = client.post("/api/research/company", json={"company_name": "Wix"}, headers=headers)
        assert limited.status_code == 429
        failed = client.post("/api/research/company", json={"company_name": "Wix"}, headers=headers)
        assert failed.status_code == 500
        assert failed.json() == {"error": "provider exploded"}

        assert client.post("/api/research/company", json={}, headers=headers).status_code == 400

        saved = client.post(
            "/api/knowledge/documents",
            json={"title": "Gold deck", "content": "gold tier booth pricing", "document_type": "deck", "tags": ["gold"]},
            headers=headers,
        )
        assert saved.json()["success"] is True
        query = client.post("/api/knowledge/query", json={"query": "booth pricing"}, headers=headers).json()
        assert query["count"] == 1
        assert query["results"][0]["relevance_score"] == 120


def test_unhandled_errors_return_json_500(tmp_path: Path) -> None:
    llm = ScriptedLLM([RuntimeError("unexpected failure")])
    client, _ = _client(tmp_path, llm, raise_server_exceptions=False)
    with client:
        member = _sign_up(client, "member@example.com", MEMBER_PROFILE)
        response = client.post("/api/research/company", json={"company_name": "Wix"}, headers=_headers(member))
    assert response.status_code == 500
    assert response.json() == {"error": "unexpected failure"}
