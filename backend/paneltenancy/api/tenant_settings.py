from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paneltenancy.api.panels import flash_failure, flash_success, pull_flash, redirect_to
from paneltenancy.core.db import get_db
from paneltenancy.schemas.memberships import MemberInvite, MemberRoleUpdate, TenantSettingsView
from paneltenancy.schemas.tenants import TenantRename
from paneltenancy.tenancy.constants import TENANT_ROUTE_PREFIX
from paneltenancy.tenancy.dependencies import get_lifecycle, get_session_store
from paneltenancy.tenancy.errors import TenancyError
from paneltenancy.tenancy.lifecycle import TenantLifecycle
from paneltenancy.tenancy.session_store import SessionStore

router = APIRouter(tags=["tenant-settings"])

SETTINGS_PATH = f"/{{panel}}/{TENANT_ROUTE_PREFIX}/settings"


@router.get(SETTINGS_PATH, response_model=TenantSettingsView)
def read_settings(
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    if not lifecycle.ctx.has_tenant():
        return redirect_to(lifecycle.panel.root_url)
    view = lifecycle.settings_view()
    view["flash"] = pull_flash(db, session_store)
    return view


@router.patch(SETTINGS_PATH)
def rename_team(
    payload: TenantRename,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        lifecycle.rename_tenant(payload.name)
    except TenancyError as exc:
        flash_failure(db, session_store, exc, old_input=payload.model_dump(exclude_none=True))
    else:
        flash_success(db, session_store, "Team name updated successfully.")
    return redirect_to(lifecycle.panel.settings_url)


@router.delete(SETTINGS_PATH)
def delete_team(
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        lifecycle.delete_tenant()
    except TenancyError as exc:
        flash_failure(db, session_store, exc)
        return redirect_to(lifecycle.panel.settings_url)
    flash_success(db, session_store, "Team deleted successfully.")
    return redirect_to(lifecycle.panel.root_url)


@router.post(f"{SETTINGS_PATH}/members")
def invite_member(
    payload: MemberInvite,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        lifecycle.invite_member(payload.email, payload.role)
    except TenancyError as exc:
        flash_failure(db, session_store, exc, old_input=payload.model_dump(exclude_none=True))
    else:
        flash_success(db, session_store, "Team member added successfully.")
    return redirect_to(lifecycle.panel.settings_url)


@router.patch(f"{SETTINGS_PATH}/members/{{member_id}}")
def update_member_role(
    member_id: int,
    payload: MemberRoleUpdate,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        lifecycle.update_member_role(member_id, payload.role)
    except TenancyError as exc:
        flash_failure(db, session_store, exc)
    else:
        flash_success(db, session_store, "Member role updated successfully.")
    return redirect_to(lifecycle.panel.settings_url)


@router.delete(f"{SETTINGS_PATH}/members/{{member_id}}")
def remove_member(
    member_id: int,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        removed_self = lifecycle.remove_member(member_id)
    except TenancyError as exc:
        flash_failure(db, session_store, exc)
        return redirect_to(lifecycle.panel.settings_url)
    if removed_self:
        flash_success(db, session_store, "You have left the team.")
        return redirect_to(lifecycle.panel.root_url)
    flash_success(db, session_store, "Team member removed successfully.")
    return redirect_to(lifecycle.panel.settings_url)
