"""
Request-scoped tenancy context.

One TenantContext is built per request after resolution and passed to the
code that needs it. Nothing here is process-wide: a worker thread that
serves the next request starts from a fresh object.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from paneltenancy.tenancy.modes import TenancyMode


@dataclass
class TenantContext:
    """
    Captures the active panel, isolation mode, and at most one tenant.

    Ids are copied when the user and tenant are set so they stay readable
    after the request's DB session has closed (request logging).
    """

    request_id: str
    panel: Any
    mode: TenancyMode
    user: Any = None
    tenant: Any = None
    # Which resolver step produced the tenant: route, session, default, first.
    source: Optional[str] = None
    store: Any = field(default=None, repr=False)
    user_id: Any = field(default=None, init=False)
    tenant_id: Any = field(default=None, init=False)

    def __post_init__(self):
        self.user_id = getattr(self.user, "id", None)
        self.tenant_id = getattr(self.tenant, "id", None)

    def has_tenant(self) -> bool:
        return self.tenant is not None

    def set_tenant(self, tenant, *, source: Optional[str] = None) -> None:
        self.tenant = tenant
        self.tenant_id = tenant.id if tenant is not None else None
        self.source = source
        if self.store is not None:
            self.store.tenant = tenant

    def clear(self) -> None:
        self.set_tenant(None)
