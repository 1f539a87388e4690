from typing import Any, Optional

from pydantic import BaseModel

# Request bodies stay permissive; TenantLifecycle validates and reports
# errors against the field they belong to, which are flashed back.


class TenantCreate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None


class TenantRename(BaseModel):
    name: Optional[str] = None


class TenantSwitch(BaseModel):
    tenant_id: int


class TenantSummary(BaseModel):
    id: int
    name: str
    slug: str
    avatar: Optional[str] = None


class TenantMenuItem(TenantSummary):
    url: str
    is_current: bool = False


class TenantMenu(BaseModel):
    tenants: list[TenantMenuItem]
    current: Optional[TenantSummary] = None


class FlashMessages(BaseModel):
    success: Optional[str] = None
    errors: dict[str, str] = {}
    old: dict[str, Any] = {}


class PanelRead(BaseModel):
    id: str
    path: str
    url: str
    has_tenancy: bool
    mode: str


class PanelDashboard(BaseModel):
    panel: PanelRead
    tenant: Optional[TenantSummary] = None
    tenant_source: Optional[str] = None
    menu: TenantMenu
    flash: FlashMessages


class RegistrationForm(BaseModel):
    panel: PanelRead
    action: str
    fields: list[str]
    flash: FlashMessages
