# Central place for all configurable settings. We use Pydantic's
# BaseSettings so values can be read from env vars or a .env file.
# Panels are declared here too, as a JSON list in PANELS.

import json
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def safe_json_loads(value):
    try:
        return json.loads(value)
    except Exception:
        return value


class TenancySettings(BaseModel):
    enabled: bool = False
    # "row" (shared schema) or "connection" (one database per tenant).
    # Aliases "single" / "multi" are accepted and normalized later.
    mode: Optional[str] = None
    tenant_model: str = "paneltenancy.models.tenants.Tenant"
    ownership_relationship: str = "tenant"
    slug_attribute: str = "slug"
    registration_enabled: bool = True
    database_url_template: Optional[str] = None


class PanelSettings(BaseModel):
    id: str
    path: str
    is_default: bool = False
    tenancy: TenancySettings = Field(default_factory=TenancySettings)


def _default_panels() -> list[PanelSettings]:
    return [
        PanelSettings(
            id="admin",
            path="admin",
            is_default=True,
            tenancy=TenancySettings(enabled=True),
        )
    ]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_json_loads=safe_json_loads,
    )

    # Core DB connection string (tenants, users, memberships, sessions).
    # In row-scoped panels tenant data lives here as well.
    DATABASE_URL: str

    # Secret key used for signing JWTs.
    SECRET_KEY: str

    # JWT algorithm to use. Default HS256 (symmetric HMAC-SHA256).
    ALGORITHM: str = "HS256"

    # How long issued access tokens are valid, in minutes.
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # "development" / "production"; production enables stricter startup checks.
    ENVIRONMENT: str = "development"

    # Toggle SQLAlchemy echo logs. Useful for debugging queries locally.
    DB_ECHO: bool = False

    # Isolation mode used when a panel does not name one, and for sessions
    # opened outside a request (background work).
    DEFAULT_TENANCY_MODE: str = "row"

    # Connection-switched panels: per-tenant database URL. Placeholders:
    # {tenant_id}, {slug}. A tenant's own database_url column wins.
    TENANT_DATABASE_URL_TEMPLATE: Optional[str] = None

    # Session key suffix holding the last resolved tenant per panel.
    SESSION_TENANT_KEY_SUFFIX: str = "tenant_id"

    PANELS: List[PanelSettings] = Field(default_factory=_default_panels)

    @field_validator("DEFAULT_TENANCY_MODE", mode="before")
    @classmethod
    def _normalize_mode(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or "row"
        return value


# Instantiate a single settings object for app-wide import.
# Any module can just `from paneltenancy.core.config import settings`.
settings = Settings()
