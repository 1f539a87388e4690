"""
Request correlation for panel requests.

The tenant is not resolved here; get_tenant_context does that once the route
and the user are known. This middleware only prepares request.state for it
and reports the outcome on the response.
"""

import logging
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from paneltenancy.tenancy.constants import PANEL_RESPONSE_HEADER, TENANT_RESPONSE_HEADER

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attaches a request_id to request.state and echoes it on the response.
    When the request resolved a tenant, the panel id and tenant id are echoed too.
    """

    async def dispatch(self, request, call_next):
        request_id = (
            getattr(request.state, "request_id", None)
            or request.headers.get("X-Request-ID")
            or request.headers.get("X-Request-Id")
            or str(uuid4())
        )
        request.state.request_id = request_id
        request.state.tenant_context = None

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id

        ctx = getattr(request.state, "tenant_context", None)
        if ctx is not None:
            response.headers[PANEL_RESPONSE_HEADER] = ctx.panel.id
            if ctx.tenant_id is not None:
                response.headers[TENANT_RESPONSE_HEADER] = str(ctx.tenant_id)
        logger.debug(
            "request.tenant",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "panel": getattr(getattr(ctx, "panel", None), "id", None),
                "tenant_id": getattr(ctx, "tenant_id", None),
                "tenant_source": getattr(ctx, "source", None),
            },
        )
        return response
