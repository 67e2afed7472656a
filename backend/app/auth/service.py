"""Service layer orchestrating authentication and team membership workflows."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from backend.app.auth.enums import UserRole
from backend.app.auth.models import User
from backend.app.auth.repository import AuthRepository
from backend.app.auth.schemas import (
    AuthUser,
    InvitationAcceptRequest,
    InviteUserRequest,
    InviteUserResponse,
    LinkedInVerifyResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RefreshRequest,
    RegisterRequest,
    RegistrationResponse,
    TokenPair,
    TokenRefreshResponse,
    UserActionResponse,
)
from backend.app.auth.utils import (
    EmailDispatcher,
    JWTError,
    JWTManager,
    generate_refresh_token,
    match_allowed_profile,
)
from backend.app.config import AllowedProfileConfig, AuthConfig
from backend.app.errors import ServiceError

LOGGER = logging.getLogger(__name__)


class AuthServiceError(ServiceError):
    """Raised when authentication operations fail."""


class AuthService:
    """Coordinate repository operations and JWT generation."""

    def __init__(
        self,
        config: AuthConfig,
        repository: AuthRepository,
        jwt_manager: JWTManager,
        email_dispatcher: EmailDispatcher,
        allowed_profiles: Sequence[AllowedProfileConfig] = (),
    ) -> None:
        self._config = config
        self._repository = repository
        self._jwt_manager = jwt_manager
        self._email_dispatcher = email_dispatcher
        self._allowed_profiles = list(allowed_profiles)

    @staticmethod
    def _now() -> datetime:
        """Return current UTC timestamp."""

        return datetime.now(timezone.utc)

    @staticmethod
    def _to_auth_user(user: User) -> AuthUser:
        """Convert ORM user model into API schema."""

        return AuthUser(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            is_active=user.is_active,
            linkedin_profile=user.linkedin_profile,
            linkedin_verified=user.linkedin_verified,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    @staticmethod
    def _as_utc(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    async def _issue_tokens(self, user: User, user_agent: Optional[str]) -> TokenPair:
        access_token = self._jwt_manager.create_access_token(
            subject=user.id,
            additional_claims={"email": user.email, "role": user.role.value},
        )
        refresh_token = generate_refresh_token()
        refresh_expires = self._now() + self._config.jwt.refresh_token_ttl
        await self._repository.create_refresh_token(user, refresh_token, refresh_expires, user_agent)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=self._config.jwt.access_token_expires_minutes * 60,
        )

    async def _require_user(self, user_id: str) -> User:
        user = await self._repository.get_user_by_id(user_id)
        if user is None:
            raise AuthServiceError("User not found", reason="not_found")
        return user

    async def register_user(self, payload: RegisterRequest) -> RegistrationResponse:
        """Register a new, not yet LinkedIn-verified, team member."""

        existing = await self._repository.get_user_by_email(payload.email)
        if existing is not None:
            raise AuthServiceError("Email already registered", reason="conflict")
        try:
            user = await self._repository.create_user(
                payload.email, password=payload.password, full_name=payload.full_name
            )
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        LOGGER.info("Registered user", extra={"user_id": user.id})
        return RegistrationResponse(
            message="Registration successful. Verify your LinkedIn profile to continue.",
            user=self._to_auth_user(user),
        )

    async def login(self, payload: LoginRequest) -> LoginResponse:
        """Authenticate email and password and return JWT tokens."""

        user = await self._repository.get_user_by_email(payload.email)
        if user is None or not self._repository.verify_password(payload.password, user.hashed_password):
            raise AuthServiceError("Invalid email or password", reason="unauthorized")
        if not user.is_active:
            raise AuthServiceError("User is disabled", reason="forbidden")
        try:
            tokens = await self._issue_tokens(user, payload.user_agent)
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        return LoginResponse(message="Login successful", user=self._to_auth_user(user), tokens=tokens)

    async def refresh_tokens(self, payload: RefreshRequest) -> TokenRefreshResponse:
        """Issue a new access token and extend the refresh token lifetime."""

        record = await self._repository.get_refresh_token(payload.refresh_token)
        if record is None:
            raise AuthServiceError("Unknown refresh token", reason="unauthorized")

        now = self._now()
        if record.revoked_at is not None or self._as_utc(record.expires_at) < now:
            raise AuthServiceError("Refresh token expired", reason="unauthorized")

        user = record.user
        if not user.is_active:
            raise AuthServiceError("User is disabled", reason="forbidden")

        new_access_token = self._jwt_manager.create_access_token(
            subject=user.id,
            additional_claims={"email": user.email, "role": user.role.value},
        )
        try:
            record.expires_at = now + self._config.jwt.refresh_token_ttl
            record.user_agent = payload.user_agent
            await self._repository.session.flush()
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc

        pair = TokenPair(
            access_token=new_access_token,
            refresh_token=payload.refresh_token,
            token_type="bearer",
            expires_in=self._config.jwt.access_token_expires_minutes * 60,
        )
        return TokenRefreshResponse(message="Token refreshed", tokens=pair)

    async def logout(self, token: str, user_id: Optional[str] = None) -> LogoutResponse:
        """Revoke the supplied refresh token."""

        record = await self._repository.get_refresh_token(token)
        if record is not None:
            if user_id is not None and record.user_id != user_id:
                raise AuthServiceError("Refresh token does not belong to the user", reason="forbidden")
            if record.revoked_at is None:
                try:
                    await self._repository.revoke_refresh_token(record)
                    await self._repository.commit()
                except Exception as exc:  # pragma: no cover
                    await self._repository.rollback()
                    raise exc
        return LogoutResponse(message="Logged out")

    async def authenticate(self, token: str) -> AuthUser:
        """Validate a bearer token and load the associated user."""

        try:
            payload = self._jwt_manager.decode(token)
        except JWTError as exc:
            raise AuthServiceError("Invalid access token", reason="unauthorized") from exc

        subject = payload.get("sub")
        if not subject:
            raise AuthServiceError("Invalid access token", reason="unauthorized")

        user = await self._repository.get_user_by_id(subject)
        if user is None or not user.is_active:
            raise AuthServiceError("User not authorized", reason="unauthorized")
        return self._to_auth_user(user)

    async def invite_user(
        self, payload: InviteUserRequest, *, invited_by: Optional[str] = None
    ) -> Tuple[InviteUserResponse, str]:
        """Create an inactive user and an invitation token for them.

        Re-inviting someone who never accepted issues a fresh token for the
        same account.
        """

        if not self._config.invitation.enabled:
            raise AuthServiceError("Invitations are disabled", reason="forbidden")
        user = await self._repository.get_user_by_email(payload.email)
        if user is not None and user.is_active:
            raise AuthServiceError("User already exists", reason="conflict")

        token = generate_refresh_token(32)
        now = self._now()
        expires_at = now + self._config.invitation.token_ttl
        try:
            if user is None:
                user = await self._repository.create_user(
                    payload.email,
                    password=None,
                    role=payload.role,
                    full_name=payload.full_name,
                    is_active=False,
                    linkedin_profile=payload.linkedin_url,
                    linkedin_verified=bool(payload.linkedin_url),
                )
            else:
                user.role = payload.role
                user.full_name = payload.full_name or user.full_name
                if payload.linkedin_url:
                    user.linkedin_profile = payload.linkedin_url
                    user.linkedin_verified = True
                user.updated_at = now
            await self._repository.create_invitation(user, token, expires_at, invited_by=invited_by)
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        LOGGER.info("Invited user", extra={"user_id": user.id, "invited_by": invited_by})
        response = InviteUserResponse(
            message=f"Invitation sent to {user.email}",
            user=self._to_auth_user(user),
            expires_at=expires_at,
        )
        return response, token

    async def send_invitation_email(self, email: str, token: str, expires_at: datetime) -> None:
        """Send the invitation email via dispatcher."""

        await self._email_dispatcher.send_invitation_email(email, token, expires_at)

    async def accept_invitation(self, payload: InvitationAcceptRequest) -> LoginResponse:
        """Set the invited member's password, activate the account and sign them in."""

        invitation = await self._repository.get_invitation(payload.token)
        if invitation is None:
            raise AuthServiceError("Invalid invitation token", reason="not_found")
        if invitation.consumed_at is not None:
            raise AuthServiceError("Invitation already used", reason="gone")
        now = self._now()
        if self._as_utc(invitation.expires_at) < now:
            raise AuthServiceError("Invitation expired", reason="gone")
        try:
            user = await self._repository.accept_invitation(invitation, payload.password, now)
            tokens = await self._issue_tokens(user, payload.user_agent)
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        return LoginResponse(message="Invitation accepted", user=self._to_auth_user(user), tokens=tokens)

    async def verify_linkedin(self, user_id: str, linkedin_url: Optional[str]) -> LinkedInVerifyResponse:
        """Check a LinkedIn profile against the allow-list and grant its role."""

        if not linkedin_url or not linkedin_url.strip():
            return LinkedInVerifyResponse(verified=False, message="LinkedIn URL is required")
        profile = match_allowed_profile(linkedin_url, self._allowed_profiles)
        if profile is None:
            LOGGER.info("LinkedIn profile not on allow-list", extra={"user_id": user_id})
            return LinkedInVerifyResponse(
                verified=False,
                message="This LinkedIn profile is not authorized to access the app. Please contact the admin.",
            )
        user = await self._require_user(user_id)
        try:
            user.linkedin_profile = linkedin_url.strip()
            user.linkedin_verified = True
            user.role = UserRole(profile.role)
            user.updated_at = self._now()
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        LOGGER.info("Verified LinkedIn profile", extra={"user_id": user_id, "role": profile.role})
        return LinkedInVerifyResponse(
            verified=True,
            message="LinkedIn profile verified successfully!",
            role=user.role,
        )

    async def approve_user(self, user_id: str) -> UserActionResponse:
        """Mark a member as LinkedIn-verified without an allow-list match."""

        user = await self._require_user(user_id)
        try:
            user.linkedin_verified = True
            user.updated_at = self._now()
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        return UserActionResponse(message="User approved successfully", user=self._to_auth_user(user))

    async def update_user_linkedin(self, email: str, linkedin_url: str) -> UserActionResponse:
        """Set a member's LinkedIn profile and mark it verified."""

        user = await self._repository.get_user_by_email(email)
        if user is None:
            raise AuthServiceError("User not found", reason="not_found")
        try:
            user.linkedin_profile = linkedin_url.strip()
            user.linkedin_verified = True
            user.updated_at = self._now()
            await self._repository.commit()
        except Exception as exc:  # pragma: no cover
            await self._repository.rollback()
            raise exc
        return UserActionResponse(
            message=f"Updated LinkedIn profile for {user.email}", user=self._to_auth_user(user)
        )

    async def list_active_users(self) -> List[AuthUser]:
        """Return every active team member."""

        users = await self._repository.list_active_users()
        return [self._to_auth_user(user) for user in users]


__all__ = ["AuthService", "AuthServiceError"]
