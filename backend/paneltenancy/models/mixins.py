from sqlalchemy import Column, DateTime, String

from paneltenancy.core.time import utcnow
from paneltenancy.tenancy.contracts import HasTenantAvatar, HasTenantName


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class TenantDisplayMixin(HasTenantName, HasTenantAvatar):
    """Name and avatar the panel's tenant menu shows for a tenant row."""

    avatar_url = Column(String, nullable=True)

    def get_tenant_name(self) -> str:
        return self.name or self.slug

    def get_tenant_avatar_url(self) -> str | None:
        return self.avatar_url
