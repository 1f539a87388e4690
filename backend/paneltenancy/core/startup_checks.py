"""
Startup-time checks for required configuration.
"""

from __future__ import annotations

from paneltenancy.core.config import settings
from paneltenancy.tenancy.modes import parse_mode


def _is_production() -> bool:
    env = (settings.ENVIRONMENT or "").strip().lower()
    return env in {"production", "prod"}


def _has_placeholder_secret(value: str | None) -> bool:
    if not value:
        return True
    lowered = value.strip().lower()
    return lowered in {"changeme", "super-secret-key", "secret", "test-secret"}


def run_startup_checks(registry=None) -> None:
    missing: list[str] = []
    insecure: list[str] = []

    if not settings.DATABASE_URL:
        missing.append("DATABASE_URL")
    if not settings.SECRET_KEY:
        missing.append("SECRET_KEY")

    if _is_production():
        if _has_placeholder_secret(settings.SECRET_KEY) or len(settings.SECRET_KEY or "") < 32:
            insecure.append("SECRET_KEY")

    panels = registry.all() if registry is not None else []
    for panel in panels:
        if not panel.has_tenancy() or not panel.mode.is_connection:
            continue
        if not (panel.tenancy.database_url_template or settings.TENANT_DATABASE_URL_TEMPLATE):
            missing.append(f"PANELS[{panel.id}].tenancy.database_url_template")

    if parse_mode(settings.DEFAULT_TENANCY_MODE).is_connection and not settings.TENANT_DATABASE_URL_TEMPLATE:
        missing.append("TENANT_DATABASE_URL_TEMPLATE")

    if missing or insecure:
        parts = []
        if missing:
            parts.append(f"Missing required settings: {', '.join(sorted(set(missing)))}")
        if insecure:
            parts.append(f"Insecure settings detected: {', '.join(sorted(set(insecure)))}")
        raise RuntimeError("Startup checks failed. " + " ".join(parts))
