"""Configuration models for the HQ Admin end-to-end suite."""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

LOCAL_BASE_URL = "http://hqadmin.localhost:8087/hq-admin"
LOCAL_ENV_FILE = ".env.local"
SHARED_ENV_FILE = ".env"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ConfigError(ValueError):
    """Raised when the suite environment is missing or invalid."""


class AppEnv(str, enum.Enum):
    """Target deployments of the HQ Admin application."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"


class SessionConfig(BaseModel):
    """Settings for the cached authenticated session."""

    auth_dir: Path = Path("playwright/.auth")
    check_expiry: bool = Field(
        default=True,
        description="When disabled any non-empty snapshot is reused indefinitely.",
    )
    max_age_hours: float = Field(default=23.0, gt=0)
    feature_flags: dict[str, str] = Field(
        default_factory=lambda: {"hq-admin.campaignAi": "true"},
        description="localStorage entries written right after login.",
    )

    @property
    def max_age(self) -> timedelta:
        return timedelta(hours=self.max_age_hours)


class TimeoutConfig(BaseModel):
    """Wait budgets, in seconds."""

    expect: float = Field(default=10.0, gt=0)
    action: float = Field(default=15.0, gt=0)
    navigation: float = Field(default=30.0, gt=0)
    generation: float = Field(default=60.0, gt=0)


class BrowserConfig(BaseModel):
    """Settings for the browser used by the suite."""

    name: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    slow_mo: float = Field(default=0.0, ge=0, description="Milliseconds between actions.")

    @property
    def viewport(self) -> dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}


class SuiteConfig(BaseSettings):
    """Top-level configuration for a suite run."""

    model_config = SettingsConfigDict(
        env_file=LOCAL_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    app_env: AppEnv = AppEnv.LOCAL
    hq_admin_auth_email: str
    hq_admin_auth_password: str = Field(min_length=1)
    hq_admin_base_url: Optional[str] = None
    test_campaign_id: Optional[str] = None
    ci: bool = False
    session: SessionConfig = Field(default_factory=SessionConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources as ``.env.local`` > process environment > ``.env``.

        ``dotenv_settings`` reads ``.env.local`` or the file passed as
        ``_env_file``; the shared ``.env`` only fills in what is still unset.
        """

        shared_env = DotEnvSettingsSource(settings_cls, env_file=SHARED_ENV_FILE)
        return init_settings, dotenv_settings, env_settings, shared_env, file_secret_settings

    @field_validator("hq_admin_auth_email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("must be a valid email address")
        return value

    @field_validator("test_campaign_id")
    @classmethod
    def _blank_campaign_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_base_url(self) -> "SuiteConfig":
        if self.hq_admin_base_url is None and self.app_env is not AppEnv.LOCAL:
            raise ValueError(
                f"HQ_ADMIN_BASE_URL is required when APP_ENV={self.app_env.value}"
            )
        return self

    @property
    def base_url(self) -> str:
        return (self.hq_admin_base_url or LOCAL_BASE_URL).rstrip("/")


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> SuiteConfig:
    """Load configuration from the environment, an optional YAML file and overrides.

    Raises :class:`ConfigError` describing every invalid or missing variable.
    """

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    try:
        return SuiteConfig(**data, **settings_kwargs)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc)) from exc


def format_validation_error(exc: ValidationError) -> str:
    """Render a validation error the way a user fixing their ``.env`` wants it."""

    lines = []
    for issue in exc.errors():
        name = "__".join(str(part) for part in issue["loc"]).upper()
        message = issue["msg"].removeprefix("Value error, ")
        lines.append(f"{name}: {message}" if name else message)
    details = "\n  - ".join(lines)
    return (
        f"Environment validation failed\n  - {details}\n\n"
        "Tip: copy .env.example to .env.local and fill in the required values"
    )


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
