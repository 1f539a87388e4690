# Centralized Prometheus metrics. Middleware below records timing and
# counts for every request; the tenancy engine records how tenants were
# resolved and every isolation failure so dashboards can alert on leaks.

from time import monotonic

from fastapi import Request
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

# Which resolver step produced the active tenant (route, session, default,
# first, none). A spike in "none" means users landing without a tenant.
TENANT_RESOLUTIONS_TOTAL = Counter(
    "tenant_resolutions_total",
    "Tenant resolutions grouped by panel and resolver step",
    ["panel", "source"],
)

# Session pointers that named a tenant the user can no longer reach.
STALE_TENANT_POINTERS_TOTAL = Counter(
    "stale_tenant_pointers_total",
    "Session tenant pointers discarded as stale",
    ["panel"],
)

# Tenant-scoped access attempted with connection switching and no tenant.
ISOLATION_CONTEXT_MISSING_TOTAL = Counter(
    "isolation_context_missing_total",
    "Tenant-scoped operations rejected for lack of an active tenant",
    ["model"],
)

TENANT_LIFECYCLE_TOTAL = Counter(
    "tenant_lifecycle_operations_total",
    "Tenant lifecycle operations grouped by outcome",
    ["operation", "outcome"],
)

# Generic API latency + request counters, labelled by method and route.
REQUEST_LATENCY = Histogram(
    "api_request_latency_seconds",
    "Latency of API requests in seconds",
    ["method", "endpoint"],
)
REQUEST_COUNT = Counter(
    "api_request_count_total",
    "Total API requests",
    ["method", "endpoint", "http_status"],
)


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = monotonic()
        response = await call_next(request)
        endpoint = _route_label(request)
        REQUEST_LATENCY.labels(request.method, endpoint).observe(monotonic() - start)
        REQUEST_COUNT.labels(request.method, endpoint, str(response.status_code)).inc()
        return response
