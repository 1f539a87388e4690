from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from paneltenancy.api.panels import (
    back_url,
    flash_failure,
    flash_success,
    panel_payload,
    pull_flash,
    redirect_to,
)
from paneltenancy.core.db import get_db
from paneltenancy.schemas.tenants import RegistrationForm, TenantCreate, TenantMenu, TenantSwitch
from paneltenancy.tenancy.constants import TENANT_ROUTE_PREFIX
from paneltenancy.tenancy.dependencies import get_lifecycle, get_session_store
from paneltenancy.tenancy.errors import TenancyError
from paneltenancy.tenancy.lifecycle import TenantLifecycle
from paneltenancy.tenancy.session_store import SessionStore

router = APIRouter(tags=["tenants"])


def _require_registration(panel) -> None:
    if not panel.has_tenancy() or not panel.tenancy.registration_enabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant registration is disabled.")


@router.get(f"/{{panel}}/{TENANT_ROUTE_PREFIX}", response_model=TenantMenu)
def list_tenants_endpoint(lifecycle: TenantLifecycle = Depends(get_lifecycle)):
    return lifecycle.list_tenants()


@router.post(f"/{{panel}}/{TENANT_ROUTE_PREFIX}/switch")
def switch_tenant_endpoint(
    payload: TenantSwitch,
    request: Request,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    try:
        lifecycle.switch_tenant(payload.tenant_id)
    except TenancyError as exc:
        flash_failure(db, session_store, exc)
        return redirect_to(back_url(request, lifecycle.panel))
    return redirect_to(lifecycle.panel.root_url)


@router.get(f"/{{panel}}/{TENANT_ROUTE_PREFIX}/register", response_model=RegistrationForm)
def registration_form(
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    panel = lifecycle.panel
    _require_registration(panel)
    return {
        "panel": panel_payload(panel),
        "action": panel.registration_url,
        "fields": ["name", "slug"],
        "flash": pull_flash(db, session_store),
    }


@router.post(f"/{{panel}}/{TENANT_ROUTE_PREFIX}/register")
def register_tenant(
    payload: TenantCreate,
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    panel = lifecycle.panel
    _require_registration(panel)
    try:
        tenant = lifecycle.create_tenant(payload.name, payload.slug)
    except TenancyError as exc:
        flash_failure(db, session_store, exc, old_input=payload.model_dump(exclude_none=True))
        return redirect_to(panel.registration_url)
    flash_success(db, session_store, f"Team '{tenant.name}' created.")
    return redirect_to(panel.root_url)
