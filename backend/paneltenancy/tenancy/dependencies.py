"""
FastAPI dependency helpers for panel lookup and tenant context.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from paneltenancy.api.dependencies import get_current_user, get_session_id
from paneltenancy.core.db import get_db
from paneltenancy.tenancy.constants import TENANT_ROUTE_PARAMETER
from paneltenancy.tenancy.context import TenantContext
from paneltenancy.tenancy.errors import (
    TenantAccessDenied,
    TenantNotFound,
    TenantRegistrationRequired,
)
from paneltenancy.tenancy.lifecycle import TenantLifecycle
from paneltenancy.tenancy.panels import Panel
from paneltenancy.tenancy.resolver import TenantResolver
from paneltenancy.tenancy.scoping import build_store, detach_store, install_store
from paneltenancy.tenancy.session_store import DatabaseSessionStore, SessionStore


def get_panel(request: Request, panel: str) -> Panel:
    registry = request.app.state.panels
    found = registry.get_by_path(panel)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Panel not found")
    return found


def get_session_store(
    db: Session = Depends(get_db),
    session_id: str = Depends(get_session_id),
) -> SessionStore:
    return DatabaseSessionStore(db, session_id)


def get_tenant_context(
    request: Request,
    panel: Panel = Depends(get_panel),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    session_store: SessionStore = Depends(get_session_store),
):
    """
    Resolve the tenant for this request and scope the request's DB session to it.
    The context is built fresh per request and lives on request.state.
    """
    ctx = TenantContext(
        request_id=getattr(request.state, "request_id", None) or "",
        panel=panel,
        mode=panel.mode,
        user=current_user,
    )
    ctx.store = install_store(db, build_store(db, panel))
    request.state.tenant_context = ctx
    try:
        try:
            TenantResolver(panel, db, session_store).establish(
                ctx,
                current_user,
                request.path_params.get(TENANT_ROUTE_PARAMETER),
            )
        except TenantNotFound as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
        except TenantAccessDenied as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message) from exc
        # Persist a refreshed or discarded session pointer before handling the request.
        db.commit()
        yield ctx
    finally:
        detach_store(db)


def require_tenant(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
    panel = ctx.panel
    if not panel.has_tenancy() or ctx.has_tenant():
        return ctx
    if panel.tenancy.registration_enabled:
        raise TenantRegistrationRequired(
            "Create a team to continue.",
            redirect_to=panel.registration_url,
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No tenant available.")


def get_lifecycle(
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
    session_store: SessionStore = Depends(get_session_store),
) -> TenantLifecycle:
    return TenantLifecycle(ctx, db, session_store)
