"""
Per-tenant storage endpoints for connection-switched panels.
"""

import logging
from threading import Lock
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from paneltenancy.core.config import settings
from paneltenancy.tenancy.errors import IsolationContextMissing, TenancyError

logger = logging.getLogger(__name__)


def create_tenant_tables(engine: Engine) -> None:
    """Default provisioning hook: create the tenant-scoped tables on a fresh endpoint."""
    from paneltenancy.core.db import Base  # local import to avoid cycles
    from paneltenancy.tenancy.scoping import tenant_tables

    Base.metadata.create_all(bind=engine, tables=tenant_tables(Base.metadata))


class TenantConnectionManager:
    """
    Caches one engine per tenant. The URL comes from the tenant's own
    database_url, else from the panel template, else the global template.
    """

    def __init__(
        self,
        url_template: Optional[str] = None,
        *,
        provisioner: Optional[Callable[[Engine], None]] = None,
    ):
        self.url_template = url_template
        self.provisioner = provisioner or create_tenant_tables
        self._engines: dict = {}
        self._lock = Lock()

    def url_for(self, tenant) -> str:
        explicit = getattr(tenant, "database_url", None)
        if explicit:
            return explicit
        template = self.url_template or settings.TENANT_DATABASE_URL_TEMPLATE
        if not template:
            raise TenancyError("No database URL configured for connection-switched tenants.")
        return template.format(tenant_id=tenant.id, slug=getattr(tenant, "slug", tenant.id))

    def engine_for(self, tenant) -> Engine:
        if tenant is None:
            raise IsolationContextMissing("No active tenant to route storage access to.")
        from paneltenancy.core.db import make_engine  # local import to avoid cycles

        key = tenant.id
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = make_engine(self.url_for(tenant))
                self._engines[key] = engine
                logger.debug("tenant.engine_created", extra={"tenant_id": key})
            return engine

    def provision(self, tenant) -> Engine:
        engine = self.engine_for(tenant)
        self.provisioner(engine)
        logger.info("tenant.provisioned", extra={"tenant_id": tenant.id})
        return engine

    def forget(self, tenant_id) -> None:
        with self._lock:
            engine = self._engines.pop(tenant_id, None)
        if engine is not None:
            engine.dispose()

    def dispose_all(self) -> None:
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            engine.dispose()
