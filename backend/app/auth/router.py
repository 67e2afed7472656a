"""FastAPI router for authentication endpoints and access dependencies."""
from __future__ import annotations

from typing import AsyncIterator, Optional, cast

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.auth.repository import AuthRepository
from backend.app.auth.schemas import (
    AuthUser,
    InvitationAcceptRequest,
    LinkedInVerifyRequest,
    LinkedInVerifyResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    LogoutResponse,
    RefreshRequest,
    RegisterRequest,
    RegistrationResponse,
    SessionStatusResponse,
    TokenRefreshResponse,
)
from backend.app.auth.service import AuthService, AuthServiceError
from backend.app.auth.utils import EmailDispatcher, JWTManager
from backend.app.config import AppConfig
from backend.app.errors import to_http_exception

router = APIRouter(prefix="/api/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
oauth2_optional_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_app_config(request: Request) -> AppConfig:
    """Resolve the application configuration from the application state."""

    return request.app.state.app_config


async def get_auth_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an auth database session."""

    session_factory = cast(
        async_sessionmaker[AsyncSession], request.app.state.auth_session_factory
    )
    async with session_factory() as session:
        yield session


def get_jwt_manager(request: Request) -> JWTManager:
    """Return the JWT manager stored on the app state."""

    return request.app.state.jwt_manager


def get_email_dispatcher(request: Request) -> EmailDispatcher:
    """Return the email dispatcher stored on the app state."""

    return request.app.state.email_dispatcher


async def get_auth_service(
    session: AsyncSession = Depends(get_auth_session),
    config: AppConfig = Depends(get_app_config),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
) -> AuthService:
    """Construct an AuthService for the current request."""

    repository = AuthRepository(session)
    return AuthService(
        config=config.auth,
        repository=repository,
        jwt_manager=jwt_manager,
        email_dispatcher=dispatcher,
        allowed_profiles=config.access.allowed_profiles,
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    service: AuthService = Depends(get_auth_service),
) -> AuthUser:
    """Validate bearer token and return the authenticated user."""

    try:
        return await service.authenticate(token)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_optional_scheme),
    service: AuthService = Depends(get_auth_service),
) -> Optional[AuthUser]:
    """Attempt to authenticate bearer token, returning None when absent or invalid."""

    if not token:
        return None
    try:
        return await service.authenticate(token)
    except AuthServiceError as exc:
        if exc.reason in {"unauthorized", "forbidden"}:
            return None
        raise to_http_exception(exc) from exc


async def get_verified_user(current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Require an admin or a member whose LinkedIn profile was verified."""

    if not current_user.can_use_workspace:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="LinkedIn verification required"
        )
    return current_user


async def require_admin(current_user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Require the admin role."""

    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest, service: AuthService = Depends(get_auth_service)
) -> RegistrationResponse:
    """Register a new team member account."""

    try:
        return await service.register_user(payload)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> LoginResponse:
    """Authenticate with email and password."""

    try:
        return await service.login(payload)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/token/refresh", response_model=TokenRefreshResponse)
async def refresh_tokens(
    payload: RefreshRequest, service: AuthService = Depends(get_auth_service)
) -> TokenRefreshResponse:
    """Refresh access tokens using a valid refresh token."""

    try:
        return await service.refresh_tokens(payload)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    payload: LogoutRequest,
    service: AuthService = Depends(get_auth_service),
    current_user: AuthUser = Depends(get_current_user),
) -> LogoutResponse:
    """Revoke a refresh token for the current user."""

    try:
        return await service.logout(payload.refresh_token, user_id=current_user.id)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/invitations/accept", response_model=LoginResponse)
async def accept_invitation(
    payload: InvitationAcceptRequest, service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """Set a password from an invitation link and sign in."""

    try:
        return await service.accept_invitation(payload)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.post("/linkedin/verify", response_model=LinkedInVerifyResponse)
async def verify_linkedin(
    payload: LinkedInVerifyRequest,
    service: AuthService = Depends(get_auth_service),
    current_user: AuthUser = Depends(get_current_user),
) -> LinkedInVerifyResponse:
    """Check the caller's LinkedIn profile against the team allow-list."""

    try:
        return await service.verify_linkedin(current_user.id, payload.linkedin_url)
    except AuthServiceError as exc:
        raise to_http_exception(exc) from exc


@router.get("/me", response_model=SessionStatusResponse)
async def me(current_user: Optional[AuthUser] = Depends(get_optional_user)) -> SessionStatusResponse:
    """Return authentication status for the current session."""

    if current_user is None:
        return SessionStatusResponse(authenticated=False, user=None)
    return SessionStatusResponse(authenticated=True, user=current_user)


__all__ = [
    "router",
    "get_app_config",
    "get_auth_service",
    "get_auth_session",
    "get_current_user",
    "get_optional_user",
    "get_verified_user",
    "require_admin",
]
