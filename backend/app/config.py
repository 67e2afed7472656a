"""Configuration loader for the sponsorship pipeline backend."""
from __future__ import annotations

import logging
import os
import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from typing_extensions import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

DATABASE_URL_ENV_VAR = "SPONSORSHIP_DATABASE_URL"
JWT_SECRET_ENV_VAR = "SPONSORSHIP_JWT_SECRET"
ALLOWED_ORIGINS_ENV_VAR = "SPONSORSHIP_ALLOWED_ORIGINS"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class ServiceConfig(_FrozenModel):
    """Service identity reported by the API."""

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


class StoreConfig(_FrozenModel):
    """Entity store connection settings."""

    database_url: str = Field(..., min_length=1)
    echo_sql: bool = False


class LLMConfig(_FrozenModel):
    """Settings for the OpenAI-compatible structured output adapter."""

    enabled: bool = True
    provider: Literal["openai"] = "openai"
    model: str = Field(..., min_length=1)
    base_url: str = Field(..., min_length=1)
    api_key_env: str = Field("OPENAI_API_KEY", min_length=1)
    timeout_seconds: float = Field(..., gt=0)
    temperature: float = Field(0.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(..., ge=1)
    prompt_version: str = Field(..., min_length=1)

    @field_validator("provider", mode="before")
    @classmethod
    def _validate_provider(cls, value: str) -> str:
        normalized = str(value).lower()
        if normalized != "openai":
            msg = f"Unsupported LLM provider: {value}"
            raise ValueError(msg)
        return "openai"

    def api_key(self) -> Optional[str]:
        """Return the API key read from the configured environment variable."""

        value = os.getenv(self.api_key_env)
        if value is None or not value.strip():
            return None
        return value.strip()


class BatchConfig(_FrozenModel):
    """Pacing for batch loops that call upstream services."""

    inter_call_delay_seconds: float = Field(0.3, ge=0.0)
    discovery_max_companies: int = Field(60, ge=1)


class KnowledgeBaseConfig(_FrozenModel):
    """Knowledge base retrieval parameters."""

    default_limit: int = Field(10, ge=1)
    max_limit: int = Field(100, ge=1)
    fetch_limit: int = Field(100, ge=1)
    min_token_length: int = Field(3, ge=0)
    refine_query_with_llm: bool = False

    @model_validator(mode="after")
    def _validate_limits(self) -> "KnowledgeBaseConfig":
        if self.default_limit > self.max_limit:
            msg = "knowledge_base.default_limit cannot exceed knowledge_base.max_limit"
            raise ValueError(msg)
        return self


class SponsorsConfig(_FrozenModel):
    """Historical sponsor roster location and defaults for created records."""

    roster_path: str = Field(..., min_length=1)
    event_name: str = Field(..., min_length=1)
    default_industry: str = Field("cybersecurity", min_length=1)

    def resolved_roster_path(self) -> Path:
        """Return the roster path resolved against the repository root."""

        candidate = Path(self.roster_path).expanduser()
        if candidate.is_absolute():
            return candidate
        return (REPO_ROOT / candidate).resolve()


class PublicCompaniesConfig(_FrozenModel):
    """Known public companies keyed by lower-cased name fragment."""

    symbols: Dict[str, str] = Field(default_factory=dict)

    @field_validator("symbols")
    @classmethod
    def _normalize_symbols(cls, values: Dict[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for name, symbol in values.items():
            key = name.strip().lower()
            if not key:
                continue
            normalized[key] = symbol.strip().upper()
        return normalized


class AllowedProfileConfig(_FrozenModel):
    """LinkedIn profile permitted to use the application."""

    url: str = Field(..., min_length=1)
    role: Literal["admin", "user"] = "user"


class AccessConfig(_FrozenModel):
    """LinkedIn allow-list used to verify team members."""

    allowed_profiles: List[AllowedProfileConfig] = Field(default_factory=list)


class UIConfig(_FrozenModel):
    """Settings consumed by the dashboard frontend."""

    allowed_origins: List[str] = Field(default_factory=list)
    app_base_url: str = Field(..., min_length=1)


class AuthJWTConfig(_FrozenModel):
    """JWT signing settings."""

    secret_key: str = Field(..., min_length=32)
    algorithm: str = Field("HS256", min_length=1)
    access_token_expires_minutes: int = Field(..., ge=1)
    refresh_token_expires_minutes: int = Field(..., ge=1)

    @property
    def access_token_ttl(self) -> timedelta:
        """Return the configured access token lifetime."""

        return timedelta(minutes=self.access_token_expires_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        """Return the configured refresh token lifetime."""

        return timedelta(minutes=self.refresh_token_expires_minutes)


class AuthInvitationConfig(_FrozenModel):
    """Invitation token settings for admin-invited team members."""

    enabled: bool = True
    token_ttl_minutes: int = Field(..., ge=1)
    link_base_url: str = Field(..., min_length=1)

    @property
    def token_ttl(self) -> timedelta:
        """Return the invitation token lifetime."""

        return timedelta(minutes=self.token_ttl_minutes)


class AuthSMTPConfig(_FrozenModel):
    """SMTP credentials for transactional email delivery."""

    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)
    username: str = Field(default="")
    password: str = Field(default="")
    use_tls: bool = False
    from_email: str = Field(..., min_length=3)


class AuthConfig(_FrozenModel):
    """Top-level authentication configuration."""

    database_url: str = Field(..., min_length=1)
    jwt: AuthJWTConfig
    invitation: AuthInvitationConfig
    smtp: AuthSMTPConfig


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    service: ServiceConfig
    store: StoreConfig
    llm: LLMConfig
    batch: BatchConfig
    knowledge_base: KnowledgeBaseConfig
    sponsors: SponsorsConfig
    public_companies: PublicCompaniesConfig
    access: AccessConfig
    ui: UIConfig
    auth: AuthConfig

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return Path(__file__).resolve().parents[2] / "config.yaml"


def _determine_env_file_path() -> Optional[Path]:
    """Return the path to the environment file if one should be loaded."""

    override = os.getenv("SPONSORSHIP_ENV_FILE")
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate
        LOGGER.warning("Configured environment file override does not exist: %s", candidate)
        return None
    if DEFAULT_ENV_FILE.exists():
        return DEFAULT_ENV_FILE
    return None


def _strip_inline_comment(value: str) -> str:
    """Remove inline comments from an environment value when unquoted."""

    comment_index = value.find("#")
    if comment_index == -1:
        return value
    return value[:comment_index].rstrip()


def _load_env_file(path: Path) -> None:
    """Populate ``os.environ`` with values read from a ``.env`` file."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.lower().startswith("export "):
                    line = line[7:].lstrip()
                if "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                key = key.strip()
                if not key:
                    continue
                existing_value = os.environ.get(key)
                if existing_value is not None and existing_value.strip() != "":
                    continue
                value = raw_value.strip()
                if not value:
                    os.environ[key] = ""
                    continue
                if value[0] in {'"', "'"} and value[-1] == value[0]:
                    os.environ[key] = value[1:-1]
                    continue
                os.environ[key] = _strip_inline_comment(value)
    except OSError:
        LOGGER.warning("Unable to read environment file at %s", path)


def _parse_origins(value: str) -> List[str]:
    """Split a comma or whitespace separated origin list, keeping order."""

    unique: List[str] = []
    for item in re.split(r"[,\s]+", value):
        candidate = item.strip()
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Merge environment-based overrides into the raw configuration mapping.

    Args:
        raw_content: Parsed YAML configuration prior to Pydantic validation.

    Returns:
        Dict[str, Any]: Configuration mapping with environment overrides applied.
    """

    env_file_path = _determine_env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)

    database_url = os.getenv(DATABASE_URL_ENV_VAR)
    if database_url and database_url.strip():
        raw_content.setdefault("store", {})["database_url"] = database_url.strip()
        raw_content.setdefault("auth", {})["database_url"] = database_url.strip()
        LOGGER.info("Database URL overridden from environment")

    jwt_secret = os.getenv(JWT_SECRET_ENV_VAR)
    if jwt_secret and jwt_secret.strip():
        auth_section = raw_content.setdefault("auth", {})
        auth_section.setdefault("jwt", {})["secret_key"] = jwt_secret.strip()
        LOGGER.info("JWT secret overridden from environment")

    origins = os.getenv(ALLOWED_ORIGINS_ENV_VAR)
    if origins:
        parsed = _parse_origins(origins)
        if parsed:
            raw_content.setdefault("ui", {})["allowed_origins"] = parsed
            LOGGER.info("Allowed origins overridden from environment (count=%d)", len(parsed))
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc
