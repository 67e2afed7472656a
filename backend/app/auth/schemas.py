"""Pydantic schemas for authentication and team management APIs."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.app.auth.enums import UserRole


class _FrozenModel(BaseModel):
    """Base immutable schema."""

    model_config = ConfigDict(frozen=True)


class AuthUser(_FrozenModel):
    """User information exposed through the API."""

    id: str = Field(..., min_length=1)
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole
    is_active: bool
    linkedin_profile: Optional[str] = None
    linkedin_verified: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_use_workspace(self) -> bool:
        """Admins and LinkedIn-verified members may use research and CRM endpoints."""

        return self.is_admin or self.linkedin_verified


class SessionStatusResponse(_FrozenModel):
    """Response payload describing authentication state."""

    authenticated: bool
    user: Optional[AuthUser] = None


class TokenPair(_FrozenModel):
    """Access and refresh tokens returned after authentication."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    token_type: str = Field("bearer", min_length=1)
    expires_in: int = Field(..., ge=1)


class RegistrationResponse(_FrozenModel):
    """Response returned after user registration."""

    message: str = Field(..., min_length=1)
    user: AuthUser


class LoginResponse(_FrozenModel):
    """Response payload returned after a successful login."""

    message: str = Field(..., min_length=1)
    user: AuthUser
    tokens: TokenPair


class TokenRefreshResponse(_FrozenModel):
    """Response payload when refreshing authentication tokens."""

    message: str = Field(..., min_length=1)
    tokens: TokenPair


class LogoutResponse(_FrozenModel):
    """Response payload confirming logout."""

    message: str = Field(..., min_length=1)


class LinkedInVerifyResponse(_FrozenModel):
    """Outcome of checking a LinkedIn profile against the allow-list."""

    verified: bool
    message: str = Field(..., min_length=1)
    role: Optional[UserRole] = None


class InviteUserResponse(_FrozenModel):
    """Response returned when an admin invites a team member."""

    success: bool = True
    message: str = Field(..., min_length=1)
    user: AuthUser
    expires_at: datetime


class UserActionResponse(_FrozenModel):
    """Response returned by admin user-management actions."""

    success: bool = True
    message: str = Field(..., min_length=1)
    user: AuthUser


class RegisterRequest(BaseModel):
    """Registration input payload."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Login request payload."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    user_agent: Optional[str] = Field(default=None, max_length=255)


class RefreshRequest(BaseModel):
    """Refresh token request payload."""

    refresh_token: str = Field(..., min_length=1)
    user_agent: Optional[str] = Field(default=None, max_length=255)


class LogoutRequest(BaseModel):
    """Logout request payload."""

    refresh_token: str = Field(..., min_length=1)


class InvitationAcceptRequest(BaseModel):
    """Payload used by an invited member to set a password."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=72)
    user_agent: Optional[str] = Field(default=None, max_length=255)


class LinkedInVerifyRequest(BaseModel):
    """LinkedIn profile URL submitted for verification."""

    linkedin_url: Optional[str] = Field(default=None, max_length=512)


class InviteUserRequest(BaseModel):
    """Admin request to invite a team member."""

    email: EmailStr
    role: UserRole = UserRole.USER
    full_name: Optional[str] = Field(default=None, max_length=255)
    linkedin_url: Optional[str] = Field(default=None, max_length=512)


class LinkedInUpdateRequest(BaseModel):
    """Admin request to set a member's LinkedIn profile."""

    email: EmailStr
    linkedin_url: str = Field(..., min_length=1, max_length=512)


__all__ = [
    "AuthUser",
    "TokenPair",
    "RegistrationResponse",
    "LoginResponse",
    "SessionStatusResponse",
    "TokenRefreshResponse",
    "LogoutResponse",
    "LinkedInVerifyResponse",
    "InviteUserResponse",
    "UserActionResponse",
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "LogoutRequest",
    "InvitationAcceptRequest",
    "LinkedInVerifyRequest",
    "InviteUserRequest",
    "LinkedInUpdateRequest",
]
