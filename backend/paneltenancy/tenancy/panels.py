"""
Panel configuration and the registry that holds it.

A Panel is an aggregate of small services: its tenancy configuration and,
for connection-switched panels, the manager of per-tenant engines. The
registry is a pure configuration store; the active panel is resolved per
request from the URL and passed along explicitly.
"""

from dataclasses import dataclass
import importlib
from typing import Optional

from sqlalchemy import inspect as sa_inspect

from paneltenancy.tenancy.connections import TenantConnectionManager
from paneltenancy.tenancy.constants import TENANT_ROUTE_PREFIX
from paneltenancy.tenancy.modes import TenancyMode, parse_mode

DEFAULT_TENANT_MODEL = "paneltenancy.models.tenants.Tenant"


def _import_string(path: str):
    module_path, _, attr = path.rpartition(".")
    if not module_path:
        raise ValueError(f"Invalid import path: {path!r}")
    return getattr(importlib.import_module(module_path), attr)


@dataclass
class TenancyConfig:
    enabled: bool = False
    mode: TenancyMode = TenancyMode.ROW
    tenant_model: str = DEFAULT_TENANT_MODEL
    ownership_relationship: str = "tenant"
    slug_attribute: str = "slug"
    registration_enabled: bool = True
    database_url_template: Optional[str] = None

    def __post_init__(self):
        self.mode = parse_mode(self.mode)

    def get_tenant_model(self):
        return _import_string(self.tenant_model)

    @property
    def ownership_column(self) -> str:
        return f"{self.ownership_relationship}_id"

    def get_slug_attribute(self) -> str:
        """The column addressing a tenant in URLs; the primary key when no slug column exists."""
        columns = sa_inspect(self.get_tenant_model()).columns
        if self.slug_attribute in columns:
            return self.slug_attribute
        return "id"

    def get_tenant_slug(self, tenant) -> str:
        return str(getattr(tenant, self.get_slug_attribute()))


class Panel:
    def __init__(
        self,
        id: str,
        path: str,
        *,
        is_default: bool = False,
        tenancy: Optional[TenancyConfig] = None,
        connections: Optional[TenantConnectionManager] = None,
    ):
        self.id = id
        self.path = path.strip("/")
        self.is_default = is_default
        self.tenancy = tenancy or TenancyConfig()
        if connections is None and self.tenancy.enabled and self.tenancy.mode.is_connection:
            connections = TenantConnectionManager(self.tenancy.database_url_template)
        self.connections = connections

    def __repr__(self) -> str:
        return f"Panel(id={self.id!r}, path={self.path!r})"

    def has_tenancy(self) -> bool:
        return self.tenancy.enabled

    @property
    def mode(self) -> TenancyMode:
        return self.tenancy.mode

    @property
    def session_tenant_key(self) -> str:
        from paneltenancy.core.config import settings

        return f"{self.id}.{settings.SESSION_TENANT_KEY_SUFFIX}"

    def url(self, *segments) -> str:
        parts = [self.path, *(str(segment).strip("/") for segment in segments)]
        return "/" + "/".join(part for part in parts if part)

    @property
    def root_url(self) -> str:
        return self.url()

    @property
    def registration_url(self) -> str:
        return self.url(TENANT_ROUTE_PREFIX, "register")

    @property
    def settings_url(self) -> str:
        return self.url(TENANT_ROUTE_PREFIX, "settings")

    @property
    def switch_url(self) -> str:
        return self.url(TENANT_ROUTE_PREFIX, "switch")

    def get_tenant_url(self, tenant) -> str:
        return self.url(self.tenancy.get_tenant_slug(tenant))


class PanelRegistry:
    def __init__(self, panels=()):
        self._panels: dict[str, Panel] = {}
        self._default_id: Optional[str] = None
        for panel in panels:
            self.register(panel)

    @classmethod
    def from_settings(cls, config) -> "PanelRegistry":
        registry = cls()
        for item in config.PANELS:
            tenancy = item.tenancy
            registry.register(
                Panel(
                    item.id,
                    item.path,
                    is_default=item.is_default,
                    tenancy=TenancyConfig(
                        enabled=tenancy.enabled,
                        mode=parse_mode(tenancy.mode or config.DEFAULT_TENANCY_MODE),
                        tenant_model=tenancy.tenant_model,
                        ownership_relationship=tenancy.ownership_relationship,
                        slug_attribute=tenancy.slug_attribute,
                        registration_enabled=tenancy.registration_enabled,
                        database_url_template=tenancy.database_url_template,
                    ),
                )
            )
        return registry

    def register(self, panel: Panel) -> Panel:
        if panel.id in self._panels:
            raise ValueError(f"Panel {panel.id!r} is already registered.")
        self._panels[panel.id] = panel
        if panel.is_default:
            self._default_id = panel.id
        return panel

    def get(self, panel_id: str) -> Optional[Panel]:
        return self._panels.get(panel_id)

    def has(self, panel_id: str) -> bool:
        return panel_id in self._panels

    def all(self) -> list[Panel]:
        return list(self._panels.values())

    def get_default(self) -> Optional[Panel]:
        if self._default_id:
            return self.get(self._default_id)
        return next(iter(self._panels.values()), None)

    def get_by_path(self, path: str) -> Optional[Panel]:
        path = (path or "").strip("/")
        for panel in self._panels.values():
            if panel.path == path:
                return panel
        return None
