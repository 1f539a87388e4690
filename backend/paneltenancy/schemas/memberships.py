from typing import Optional

from pydantic import BaseModel

from paneltenancy.models.enums import RoleEnum
from paneltenancy.schemas.tenants import FlashMessages


class MemberInvite(BaseModel):
    email: Optional[str] = None
    role: str = RoleEnum.MEMBER.value


class MemberRoleUpdate(BaseModel):
    role: Optional[str] = None


class MemberRead(BaseModel):
    id: int
    name: str
    email: str
    role: RoleEnum
    is_owner: bool


class RoleOption(BaseModel):
    key: RoleEnum
    name: str
    description: str


class TeamRead(BaseModel):
    id: int
    name: str
    slug: str
    owner_id: Optional[int] = None


class SettingsPermissions(BaseModel):
    can_update_team: bool
    can_delete_team: bool
    can_add_team_members: bool
    can_remove_team_members: bool


class SettingsPanel(BaseModel):
    id: str
    path: str


class TenantSettingsView(BaseModel):
    panel: SettingsPanel
    team: TeamRead
    members: list[MemberRead]
    is_owner: bool
    available_roles: list[RoleOption]
    permissions: SettingsPermissions
    flash: FlashMessages
