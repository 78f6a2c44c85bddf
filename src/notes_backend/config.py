from __future__ import annotations

from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# NOTE: Keep alias parsing centralized to avoid per-field conditional declarations.
_CORS_ALLOW_ORIGINS_VALIDATION_ALIAS = AliasChoices("CORS_ALLOW_ORIGINS", "CORS_ORIGINS")

_PLACEHOLDER_SESSION_SECRET = "session_secret_change_me"


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Notes Sync Backend"
    # Empty by default: the client calls `/changes` at the server root.
    api_prefix: str = ""

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    database_url: str = "sqlite:///./dev.db"

    # Primary env: CORS_ALLOW_ORIGINS; also accept CORS_ORIGINS as alias.
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=_CORS_ALLOW_ORIGINS_VALIDATION_ALIAS,
    )

    log_level: str = "INFO"

    # Signed session cookie (HMAC-SHA256). Override the secret in every deployment.
    session_secret: str = _PLACEHOLDER_SESSION_SECRET
    session_cookie_name: str = "session"
    session_max_age_seconds: int = 60 * 60 * 24 * 30  # 30 days

    # Upper bound of concurrent per-item store calls inside one /changes phase.
    changes_item_concurrency: int = 4

    # Validate production settings early to fail fast on unsafe defaults.
    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        secret = self.session_secret.strip()
        if not secret or secret == _PLACEHOLDER_SESSION_SECRET:
            errors.append("SESSION_SECRET must be set in production")

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def item_concurrency(self) -> int:
        return max(1, int(self.changes_item_concurrency))

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        secret = self.session_secret.strip()
        if not secret or secret == _PLACEHOLDER_SESSION_SECRET:
            warnings.append("SESSION_SECRET is missing or using placeholder value")
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        return warnings


settings = Settings()
