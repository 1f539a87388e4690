# This file bootstraps the FastAPI app: it loads the panel registry,
# wires up logging, metrics and request-context middlewares, maps tenancy
# errors onto responses, and includes the panel routers.

import os
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from paneltenancy.core import db as db_module
from paneltenancy.core.config import settings
from paneltenancy.core.logging import APILoggingMiddleware, configure_logging
from paneltenancy.core.metrics import MetricsMiddleware
from paneltenancy.core.startup_checks import run_startup_checks
from paneltenancy.tenancy.errors import (
    IsolationContextMissing,
    TenantReassignmentError,
    TenantRegistrationRequired,
)
from paneltenancy.tenancy.middleware import RequestContextMiddleware
from paneltenancy.tenancy.panels import PanelRegistry

# Models must be imported before create_all so their tables are known.
import paneltenancy.models  # noqa: F401

from paneltenancy.api.auth import router as auth_router
from paneltenancy.api.panels import router as panels_router
from paneltenancy.api.tenant_settings import router as tenant_settings_router
from paneltenancy.api.tenants import router as tenants_router


def _error_response(status_code: int, exc, code: str) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": code},
    )
    response.headers["X-Error-Code"] = code
    return response


def create_app(registry: Optional[PanelRegistry] = None) -> FastAPI:
    configure_logging()

    # Create tables right away so the app doesn't hit missing schema
    # issues later. Tests and managed deployments set SKIP_MIGRATIONS=1.
    if os.getenv("SKIP_MIGRATIONS") != "1":
        db_module.Base.metadata.create_all(bind=db_module.engine)

    app = FastAPI(title="Panel Tenancy")
    app.state.panels = registry or PanelRegistry.from_settings(settings)

    @app.on_event("startup")
    def _run_startup_checks() -> None:
        run_startup_checks(app.state.panels)

    @app.exception_handler(IsolationContextMissing)
    def handle_isolation_missing(_request, exc: IsolationContextMissing):
        return _error_response(500, exc, exc.code)

    @app.exception_handler(TenantReassignmentError)
    def handle_reassignment(_request, exc: TenantReassignmentError):
        return _error_response(409, exc, exc.code)

    @app.exception_handler(TenantRegistrationRequired)
    def handle_registration_required(_request, exc: TenantRegistrationRequired):
        return RedirectResponse(exc.redirect_to, status_code=303)

    # Observability layers: structured request logs and Prometheus metrics.
    app.add_middleware(APILoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    # /metrics endpoint (Prometheus scraping). Registered before the panel
    # routes so "/metrics" is never read as a panel path.
    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Order matters: /{panel}/tenant/... must match before /{panel}/{tenant}.
    app.include_router(auth_router)
    app.include_router(tenant_settings_router)
    app.include_router(tenants_router)
    app.include_router(panels_router)

    # Attach request context (request_id) early; added last so it runs first.
    app.add_middleware(RequestContextMiddleware)
    return app


app = create_app()
