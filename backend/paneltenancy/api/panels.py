from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from paneltenancy.core.db import get_db
from paneltenancy.schemas.tenants import PanelDashboard
from paneltenancy.tenancy.dependencies import get_lifecycle, get_session_store, require_tenant
from paneltenancy.tenancy.errors import TenancyError
from paneltenancy.tenancy.lifecycle import TenantLifecycle
from paneltenancy.tenancy.session_store import SessionStore

router = APIRouter(tags=["panels"])


def panel_payload(panel) -> dict:
    return {
        "id": panel.id,
        "path": panel.path,
        "url": panel.root_url,
        "has_tenancy": panel.has_tenancy(),
        "mode": panel.mode.value,
    }


def redirect_to(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def back_url(request: Request, panel) -> str:
    """The referring page when it lies inside the panel, else the panel root."""
    referer = request.headers.get("referer")
    if referer:
        path = urlsplit(referer).path
        if path == panel.root_url or path.startswith(panel.root_url + "/"):
            return path
    return panel.root_url


def pull_flash(db: Session, session_store: SessionStore) -> dict:
    flash = session_store.pull_flash()
    db.commit()
    return flash


def flash_failure(
    db: Session,
    session_store: SessionStore,
    exc: TenancyError,
    *,
    old_input: Optional[dict] = None,
) -> None:
    session_store.flash_errors({exc.field: exc.message}, old_input=old_input)
    db.commit()


def flash_success(db: Session, session_store: SessionStore, message: str) -> None:
    session_store.flash_success(message)
    db.commit()


def _dashboard(ctx, lifecycle: TenantLifecycle, db: Session, session_store: SessionStore) -> dict:
    return {
        "panel": panel_payload(ctx.panel),
        "tenant": lifecycle.summarize(ctx.tenant) if ctx.tenant is not None else None,
        "tenant_source": ctx.source,
        "menu": lifecycle.list_tenants(),
        "flash": pull_flash(db, session_store),
    }


@router.get("/{panel}", response_model=PanelDashboard)
def panel_root(
    ctx=Depends(require_tenant),
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    return _dashboard(ctx, lifecycle, db, session_store)


@router.get("/{panel}/{tenant}", response_model=PanelDashboard)
def tenant_root(
    ctx=Depends(require_tenant),
    lifecycle: TenantLifecycle = Depends(get_lifecycle),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
):
    return _dashboard(ctx, lifecycle, db, session_store)
