"""Tests for authentication utilities, invitations and LinkedIn verification."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Sequence, Tuple

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from backend.app.auth.enums import UserRole
from backend.app.auth.models import AuthBase
from backend.app.auth.repository import AuthRepository
from backend.app.auth.schemas import (
    InvitationAcceptRequest,
    InviteUserRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
)
from backend.app.auth.service import AuthService, AuthServiceError
from backend.app.auth.utils import (
    JWTError,
    JWTManager,
    build_invitation_link,
    match_allowed_profile,
    normalize_linkedin_url,
)
from backend.app.config import (
    AllowedProfileConfig,
    AuthConfig,
    AuthInvitationConfig,
    AuthJWTConfig,
    AuthSMTPConfig,
)

ALLOWED = [
    AllowedProfileConfig(url="linkedin.com/in/organizer-admin", role="admin"),
    AllowedProfileConfig(url="https://www.linkedin.com/in/organizer-outreach/", role="user"),
]


class StubEmailDispatcher:
    """Collect invitation emails instead of sending them over SMTP."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, datetime]] = []

    async def send_invitation_email(self, recipient: str, token: str, expires_at: datetime) -> None:
        self.messages.append((recipient, token, expires_at))


def _auth_config(*, invitations: bool = True) -> AuthConfig:
    return AuthConfig(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt=AuthJWTConfig(
            secret_key="auth-test-secret-key-that-is-long-enough-123456",
            algorithm="HS256",
            access_token_expires_minutes=5,
            refresh_token_expires_minutes=60,
        ),
        invitation=AuthInvitationConfig(
            enabled=invitations,
            token_ttl_minutes=60,
            link_base_url="https://app.example.com/accept-invite?source=email",
        ),
        smtp=AuthSMTPConfig(
            host="localhost",
            port=1025,
            username="",
            password="",
            use_tls=False,
            from_email="no-reply@example.com",
        ),
    )


async def _setup(
    tmp_path: Path, *, invitations: bool = True, allowed: Sequence[AllowedProfileConfig] = ALLOWED
) -> Tuple[AuthService, AuthRepository, StubEmailDispatcher, AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(AuthBase.metadata.create_all)
    session = async_sessionmaker(engine, expire_on_commit=False)()
    repo = AuthRepository(session)
    dispatcher = StubEmailDispatcher()
    config = _auth_config(invitations=invitations)
    service = AuthService(config, repo, JWTManager(config.jwt), dispatcher, allowed)
    return service, repo, dispatcher, engine


async def _teardown(repo: AuthRepository, engine: AsyncEngine) -> None:
    await repo.session.close()
    await engine.dispose()


def test_password_hashing_round_trip(tmp_path: Path) -> None:
    async def _run() -> None:
        _, repo, _, engine = await _setup(tmp_path)
        hashed = repo.hash_password("correct horse battery staple")
        assert hashed != "correct horse battery staple"
        assert repo.verify_password("correct horse battery staple", hashed)
        assert not repo.verify_password("wrong password", hashed)
        assert not repo.verify_password("anything", None)
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_password_length_restriction() -> None:
    with pytest.raises(ValidationError):
        RegisterRequest(email="toolong@example.com", password="x" * 73)
    with pytest.raises(ValidationError):
        RegisterRequest(email="short@example.com", password="x" * 7)


def test_jwt_expiry_enforced() -> None:
    manager = JWTManager(_auth_config().jwt)
    token = manager.create_access_token(
        "user-id",
        expires_delta=timedelta(seconds=1),
        issued_at=datetime.now(timezone.utc) - timedelta(seconds=5),
    )
    with pytest.raises(JWTError):
        manager.decode(token)


def test_normalize_linkedin_url() -> None:
    assert normalize_linkedin_url("HTTPS://www.LinkedIn.com/in/Someone/") == "linkedin.com/in/someone"
    assert normalize_linkedin_url(None) == ""


def test_allow_list_entry_must_be_contained_in_submitted_url() -> None:
    assert match_allowed_profile("https://linkedin.com/in/organizer-admin/", ALLOWED).role == "admin"
    assert match_allowed_profile("linkedin.com/in/organizer-outreach?trk=x", ALLOWED).role == "user"
    assert match_allowed_profile("linkedin.com/in/organizer", ALLOWED) is None
    assert match_allowed_profile("linkedin.com", ALLOWED) is None
    assert match_allowed_profile("", ALLOWED) is None


def test_invitation_link_keeps_existing_query() -> None:
    link = build_invitation_link(_auth_config().invitation, "tok123")
    assert link == "https://app.example.com/accept-invite?source=email&token=tok123"


def test_register_and_login_issue_tokens(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        registered = await service.register_user(
            RegisterRequest(email="Member@Example.com", password="sup3rsecret", full_name="Member")
        )
        assert registered.user.email == "member@example.com"
        assert registered.user.linkedin_verified is False
        assert registered.user.role == UserRole.USER

        with pytest.raises(AuthServiceError) as duplicate:
            await service.register_user(RegisterRequest(email="member@example.com", password="sup3rsecret"))
        assert duplicate.value.reason == "conflict"

        login = await service.login(LoginRequest(email="member@example.com", password="sup3rsecret"))
        assert login.tokens.token_type == "bearer"
        authenticated = await service.authenticate(login.tokens.access_token)
        assert authenticated.id == registered.user.id

        with pytest.raises(AuthServiceError) as wrong:
            await service.login(LoginRequest(email="member@example.com", password="not-the-password"))
        assert wrong.value.reason == "unauthorized"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_refresh_tokens_extends_existing_session(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        user = await repo.create_user("refresh@example.com", password="refreshpass")
        await repo.commit()

        initial_expires = service._now() + timedelta(minutes=5)
        refresh_token = "static-refresh-token"
        await repo.create_refresh_token(user, refresh_token, initial_expires, user_agent="initial-agent")
        await repo.commit()

        response = await service.refresh_tokens(
            RefreshRequest(refresh_token=refresh_token, user_agent="updated-agent")
        )

        assert response.tokens.refresh_token == refresh_token
        assert response.tokens.access_token
        stored = await repo.get_refresh_token(refresh_token)
        assert stored is not None
        assert stored.user_agent == "updated-agent"
        stored_expires = stored.expires_at
        if stored_expires.tzinfo is None:
            stored_expires = stored_expires.replace(tzinfo=timezone.utc)
        assert stored_expires > initial_expires

        await service.logout(refresh_token, user_id=user.id)
        with pytest.raises(AuthServiceError) as revoked:
            await service.refresh_tokens(RefreshRequest(refresh_token=refresh_token))
        assert revoked.value.reason == "unauthorized"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_invitation_flow_activates_user(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, dispatcher, engine = await _setup(tmp_path)
        response, token = await service.invite_user(
            InviteUserRequest(email="new@example.com", full_name="New Member"),
            invited_by="admin@example.com",
        )
        assert response.success is True
        assert response.user.is_active is False
        assert response.user.linkedin_verified is False

        with pytest.raises(AuthServiceError) as inactive:
            await service.login(LoginRequest(email="new@example.com", password="whatever1"))
        assert inactive.value.reason == "unauthorized"

        await service.send_invitation_email(response.user.email, token, response.expires_at)
        assert dispatcher.messages[0][:2] == ("new@example.com", token)

        accepted = await service.accept_invitation(InvitationAcceptRequest(token=token, password="fresh-pass1"))
        assert accepted.user.is_active is True
        assert accepted.tokens.access_token

        with pytest.raises(AuthServiceError) as reused:
            await service.accept_invitation(InvitationAcceptRequest(token=token, password="fresh-pass2"))
        assert reused.value.reason == "gone"

        with pytest.raises(AuthServiceError) as again:
            await service.invite_user(InviteUserRequest(email="new@example.com"))
        assert again.value.reason == "conflict"

        with pytest.raises(AuthServiceError) as unknown:
            await service.accept_invitation(InvitationAcceptRequest(token="nope", password="fresh-pass1"))
        assert unknown.value.reason == "not_found"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_expired_invitation_is_rejected(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        user = await repo.create_user("late@example.com", is_active=False)
        await repo.create_invitation(user, "old-token", datetime.now(timezone.utc) - timedelta(minutes=1))
        await repo.commit()
        with pytest.raises(AuthServiceError) as expired:
            await service.accept_invitation(InvitationAcceptRequest(token="old-token", password="fresh-pass1"))
        assert expired.value.reason == "gone"
        assert str(expired.value) == "Invitation expired"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_invitation_with_linkedin_url_is_pre_verified(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        response, _ = await service.invite_user(
            InviteUserRequest(email="pre@example.com", linkedin_url="https://linkedin.com/in/pre")
        )
        assert response.user.linkedin_verified is True
        assert response.user.linkedin_profile == "https://linkedin.com/in/pre"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_invitations_can_be_disabled(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path, invitations=False)
        with pytest.raises(AuthServiceError) as disabled:
            await service.invite_user(InviteUserRequest(email="x@example.com"))
        assert disabled.value.reason == "forbidden"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_verify_linkedin_grants_role_from_allow_list(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        user = await repo.create_user("organizer@example.com", password="organizer1")
        await repo.commit()

        missing = await service.verify_linkedin(user.id, "  ")
        assert missing.verified is False
        assert missing.message == "LinkedIn URL is required"

        rejected = await service.verify_linkedin(user.id, "https://linkedin.com/in/stranger")
        assert rejected.verified is False
        assert "not authorized" in rejected.message

        verified = await service.verify_linkedin(user.id, "https://www.linkedin.com/in/organizer-admin/")
        assert verified.verified is True
        assert verified.role == UserRole.ADMIN
        current = await service.authenticate(
            JWTManager(_auth_config().jwt).create_access_token(subject=user.id)
        )
        assert current.is_admin
        assert current.can_use_workspace
        assert current.linkedin_profile == "https://www.linkedin.com/in/organizer-admin/"
        await _teardown(repo, engine)

    asyncio.run(_run())


def test_admin_member_management(tmp_path: Path) -> None:
    async def _run() -> None:
        service, repo, _, engine = await _setup(tmp_path)
        user = await repo.create_user("member@example.com", password="member-pass", full_name="Member")
        await repo.create_user("inactive@example.com", is_active=False)
        await repo.commit()

        approved = await service.approve_user(user.id)
        assert approved.user.linkedin_verified is True
        assert approved.user.can_use_workspace

        updated = await service.update_user_linkedin("member@example.com", " https://linkedin.com/in/member ")
        assert updated.user.linkedin_profile == "https://linkedin.com/in/member"

        with pytest.raises(AuthServiceError) as missing_user:
            await service.approve_user("missing")
        assert missing_user.value.reason == "not_found"
        with pytest.raises(AuthServiceError) as missing_email:
            await service.update_user_linkedin("ghost@example.com", "https://linkedin.com/in/ghost")
        assert missing_email.value.reason == "not_found"

        active = await service.list_active_users()
        assert [member.email for member in active] == ["member@example.com"]
        await _teardown(repo, engine)

    asyncio.run(_run())
