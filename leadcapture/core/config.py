from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    app_version: str = Field(default="1.0.0", validation_alias="APP_VERSION")

    # Server
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8080, validation_alias="API_PORT")

    # Store (Supabase). Both are required: the process refuses to start without them.
    supabase_url: str = Field(validation_alias="SUPABASE_URL")
    supabase_service_role_key: str = Field(validation_alias="SUPABASE_SERVICE_ROLE_KEY")
    leads_table: str = Field(default="leads", validation_alias="LEADS_TABLE")
    store_conflict_key: str = Field(default="email", validation_alias="STORE_CONFLICT_KEY")
    store_timeout_seconds: float = Field(default=10.0, validation_alias="STORE_TIMEOUT_SECONDS")

    # Lead form
    lead_form: str = Field(default="pharmacy", validation_alias="LEAD_FORM")
    legacy_columns: bool = Field(default=True, validation_alias="LEGACY_COLUMNS")
    default_source: str = Field(default="atoms", validation_alias="DEFAULT_SOURCE")
    role_options: str = Field(
        default="Titolare,Direttore,Farmacista collaboratore,Altro",
        validation_alias="ROLE_OPTIONS",
    )
    revenue_options: str = Field(
        default="Meno di €500.000,€500.000 - €1.000.000,€1.000.000 - €2.000.000,Oltre €2.000.000",
        validation_alias="REVENUE_OPTIONS",
    )

    # Request gate
    allowed_origin: Optional[str] = Field(default=None, validation_alias="ALLOWED_ORIGIN")
    allowed_origins: str = Field(default="", validation_alias="ALLOWED_ORIGINS")
    allowed_origin_suffix: Optional[str] = Field(default=None, validation_alias="ALLOWED_ORIGIN_SUFFIX")
    max_body_bytes: int = Field(default=200 * 1024, validation_alias="MAX_BODY_BYTES")

    # Notifications (Resend)
    notify_enabled: bool = Field(default=False, validation_alias="NOTIFY_ENABLED")
    resend_api_key: Optional[str] = Field(default=None, validation_alias="RESEND_API_KEY")
    resend_api_url: str = Field(default="https://api.resend.com/emails", validation_alias="RESEND_API_URL")
    notify_from: str = Field(default="Lead <onboarding@resend.dev>", validation_alias="NOTIFY_FROM")
    notify_to: str = Field(default="", validation_alias="NOTIFY_TO")
    notify_subject_prefix: str = Field(default="Nuovo lead", validation_alias="NOTIFY_SUBJECT_PREFIX")
    notify_placeholder: str = Field(default="Non fornito", validation_alias="NOTIFY_PLACEHOLDER")
    notify_timeout_seconds: float = Field(default=10.0, validation_alias="NOTIFY_TIMEOUT_SECONDS")
    shutdown_grace_seconds: float = Field(default=10.0, validation_alias="SHUTDOWN_GRACE_SECONDS")

    # Operator diagnostics
    debug_token: Optional[str] = Field(default=None, validation_alias="DEBUG_TOKEN")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # Monitoring
    sentry_dsn: Optional[str] = Field(default=None, validation_alias="SENTRY_DSN")

    @field_validator("environment")
    def validate_environment(cls, v):
        valid_envs = ["development", "testing", "staging", "production"]
        if v not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    def validate_log_format(cls, v):
        valid_formats = ["json", "console"]
        if v not in valid_formats:
            raise ValueError(f"log_format must be one of {valid_formats}")
        return v

    @field_validator("lead_form")
    def validate_lead_form(cls, v):
        valid_forms = ["pharmacy", "contact"]
        if v not in valid_forms:
            raise ValueError(f"lead_form must be one of {valid_forms}")
        return v

    @field_validator("supabase_url", "supabase_service_role_key")
    def validate_required_credential(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("max_body_bytes")
    def validate_max_body_bytes(cls, v):
        if v <= 0:
            raise ValueError("max_body_bytes must be positive")
        return v

    @model_validator(mode="after")
    def validate_notifications(self):
        if self.notify_enabled:
            if not self.resend_api_key:
                raise ValueError("RESEND_API_KEY is required when NOTIFY_ENABLED is true")
            if not self.notify_recipients():
                raise ValueError("NOTIFY_TO is required when NOTIFY_ENABLED is true")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"

    def origins(self) -> List[str]:
        values = [self.allowed_origin or ""] + self.allowed_origins.split(",")
        origins: List[str] = []
        for origin in values:
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    def origin_suffix(self) -> Optional[str]:
        if self.allowed_origin_suffix and self.allowed_origin_suffix.strip():
            return self.allowed_origin_suffix.strip().rstrip("/")
        return None

    def roles(self) -> List[str]:
        return [role.strip() for role in self.role_options.split(",") if role.strip()]

    def revenue_brackets(self) -> List[str]:
        return [bracket.strip() for bracket in self.revenue_options.split(",") if bracket.strip()]

    def notify_recipients(self) -> List[str]:
        return [address.strip() for address in self.notify_to.split(",") if address.strip()]

    @property
    def conflict_key(self) -> Optional[str]:
        return self.store_conflict_key.strip() or None


@lru_cache
def get_settings() -> Settings:
    """Load process-wide settings once; raises pydantic.ValidationError when required values are missing."""
    return Settings()
