"""
Per-request tenant resolution.

Priority: explicit route segment, session pointer, the user's default
tenant, then the first tenant the membership store returns. A session
pointer is never trusted: it is re-checked against the user's access and
dropped when stale.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from paneltenancy.core.metrics import STALE_TENANT_POINTERS_TOTAL, TENANT_RESOLUTIONS_TOTAL
from paneltenancy.crud.tenants import find_tenant, get_tenant_by_id
from paneltenancy.tenancy.context import TenantContext
from paneltenancy.tenancy.contracts import DefaultTenantAware, TenantAware
from paneltenancy.tenancy.errors import TenantAccessDenied, TenantNotFound
from paneltenancy.tenancy.session_store import SessionStore

logger = logging.getLogger(__name__)

SOURCE_ROUTE = "route"
SOURCE_SESSION = "session"
SOURCE_DEFAULT = "default"
SOURCE_FIRST = "first"
SOURCE_NONE = "none"


def can_access(user, tenant) -> bool:
    """Access check. Users that do not declare TenantAware never reach a tenant."""
    if tenant is None or not isinstance(user, TenantAware):
        return False
    return bool(user.can_access_tenant(tenant))


class TenantResolver:
    def __init__(self, panel, db: Session, session_store: SessionStore):
        self.panel = panel
        self.db = db
        self.session_store = session_store

    @property
    def pointer_key(self) -> str:
        return self.panel.session_tenant_key

    def _tenant_model(self):
        return self.panel.tenancy.get_tenant_model()

    def resolve(self, user, route_value=None) -> tuple[Optional[object], str]:
        """
        Return (tenant, source). The route tenant comes back without an access
        check; establish() performs it before publishing.
        """
        if not self.panel.has_tenancy() or user is None:
            return None, SOURCE_NONE
        if not isinstance(user, TenantAware):
            # Soft degradation: the user type has no tenants, so tenancy is off for it.
            return None, SOURCE_NONE

        model = self._tenant_model()

        if route_value:
            tenant = find_tenant(
                self.db,
                route_value,
                model=model,
                slug_attribute=self.panel.tenancy.get_slug_attribute(),
            )
            if tenant is None:
                raise TenantNotFound("Tenant not found.")
            return tenant, SOURCE_ROUTE

        pointer = self.session_store.get(self.pointer_key)
        if pointer is not None:
            tenant = get_tenant_by_id(self.db, pointer, model=model)
            if tenant is not None and can_access(user, tenant):
                return tenant, SOURCE_SESSION
            self._discard_stale_pointer(pointer)

        if isinstance(user, DefaultTenantAware):
            tenant = user.get_default_tenant(self.panel)
            if tenant is not None and can_access(user, tenant):
                return tenant, SOURCE_DEFAULT

        # First in membership-store order; no recency or alphabetical ranking implied.
        tenants = user.get_tenants(self.panel)
        if tenants:
            return tenants[0], SOURCE_FIRST
        return None, SOURCE_NONE

    def _discard_stale_pointer(self, pointer) -> None:
        self.session_store.forget(self.pointer_key)
        STALE_TENANT_POINTERS_TOTAL.labels(panel=self.panel.id).inc()
        logger.info(
            "tenant.stale_pointer_discarded",
            extra={"panel": self.panel.id, "tenant_id": pointer},
        )

    def establish(self, ctx: TenantContext, user, route_value=None):
        """Resolve, check access, publish into ctx and refresh the session pointer."""
        tenant, source = self.resolve(user, route_value)
        if tenant is not None and source == SOURCE_ROUTE and not can_access(user, tenant):
            raise TenantAccessDenied("You do not have access to this tenant.")
        ctx.set_tenant(tenant, source=source)
        if tenant is not None and self.session_store.get(self.pointer_key) != tenant.id:
            self.session_store.put(self.pointer_key, tenant.id)
        TENANT_RESOLUTIONS_TOTAL.labels(panel=self.panel.id, source=source).inc()
        logger.debug(
            "tenant.resolved",
            extra={
                "panel": self.panel.id,
                "tenant_id": ctx.tenant_id,
                "source": source,
                "request_id": ctx.request_id,
            },
        )
        return tenant
