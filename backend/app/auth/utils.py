"""Utilities for JWT handling, invitation email dispatch and LinkedIn matching."""
from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from typing import Any, Dict, Optional, Sequence
from urllib.parse import urlencode, urlparse, urlunparse, parse_qsl

from aiosmtplib import send
from jose import JWTError, jwt

from backend.app.config import AllowedProfileConfig, AuthInvitationConfig, AuthJWTConfig, AuthSMTPConfig

LOGGER = logging.getLogger(__name__)


class JWTManager:
    """Helper for encoding and decoding JSON Web Tokens."""

    def __init__(self, config: AuthJWTConfig) -> None:
        self._config = config

    def create_access_token(
        self,
        subject: str,
        additional_claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
        issued_at: Optional[datetime] = None,
    ) -> str:
        """Create a signed JWT access token."""

        now = issued_at or datetime.now(timezone.utc)
        ttl = expires_delta or self._config.access_token_ttl
        expire_at = now + ttl
        payload: Dict[str, Any] = {
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int(expire_at.timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """Decode and validate a JWT."""

        return jwt.decode(token, self._config.secret_key, algorithms=[self._config.algorithm])


def generate_refresh_token(size: int = 48) -> str:
    """Generate a cryptographically secure refresh token."""

    return secrets.token_urlsafe(size)


def normalize_linkedin_url(url: Optional[str]) -> str:
    """Lower-case a profile URL and strip its scheme, ``www.`` and trailing slash."""

    if not url:
        return ""
    normalized = url.strip().lower()
    normalized = re.sub(r"^https?://", "", normalized)
    normalized = re.sub(r"^www\.", "", normalized)
    return normalized.rstrip("/")


def match_allowed_profile(
    linkedin_url: Optional[str], allowed_profiles: Sequence[AllowedProfileConfig]
) -> Optional[AllowedProfileConfig]:
    """Return the first allow-list entry contained in the submitted profile URL."""

    candidate = normalize_linkedin_url(linkedin_url)
    if not candidate:
        return None
    for profile in allowed_profiles:
        allowed = normalize_linkedin_url(profile.url)
        if allowed and allowed in candidate:
            return profile
    return None


def build_invitation_link(config: AuthInvitationConfig, token: str) -> str:
    """Construct the absolute invitation link using the configured base URL."""

    parsed = urlparse(config.link_base_url)
    query = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query.update({"token": token})
    encoded_query = urlencode(query)
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, parsed.params, encoded_query, parsed.fragment))


def build_invitation_email(
    smtp_config: AuthSMTPConfig,
    recipient: str,
    invitation_link: str,
    expires_at: datetime,
    *,
    service_name: str,
) -> EmailMessage:
    """Render the invitation email template."""

    message = EmailMessage()
    message["From"] = smtp_config.from_email
    message["To"] = recipient
    message["Subject"] = f"You're invited to {service_name}"
    message.set_content(
        (
            "Hello,\n\n"
            f"You have been invited to join the sponsorship team on {service_name}.\n"
            f"Set your password here: {invitation_link}\n"
            f"This link expires at {expires_at.isoformat()}.\n\n"
            "If you were not expecting this invitation, please ignore this email."
        )
    )
    return message


class EmailDispatcher:
    """Send transactional team emails."""

    def __init__(
        self,
        smtp_config: AuthSMTPConfig,
        invitation_config: AuthInvitationConfig,
        *,
        service_name: str = "the sponsorship pipeline",
    ) -> None:
        self._smtp_config = smtp_config
        self._invitation_config = invitation_config
        self._service_name = service_name

    async def send_invitation_email(self, recipient: str, token: str, expires_at: datetime) -> None:
        """Deliver the invitation email to the provided recipient."""

        invitation_link = build_invitation_link(self._invitation_config, token)
        message = build_invitation_email(
            self._smtp_config,
            recipient,
            invitation_link,
            expires_at,
            service_name=self._service_name,
        )
        try:
            await send(
                message,
                hostname=self._smtp_config.host,
                port=self._smtp_config.port,
                username=self._smtp_config.username or None,
                password=self._smtp_config.password or None,
                start_tls=self._smtp_config.use_tls,
            )
        except Exception:  # pragma: no cover - network failures are logged
            LOGGER.exception("Failed to send invitation email", extra={"recipient": recipient})


__all__ = [
    "JWTManager",
    "EmailDispatcher",
    "build_invitation_email",
    "build_invitation_link",
    "generate_refresh_token",
    "match_allowed_profile",
    "normalize_linkedin_url",
    "JWTError",
]
