"""
Capabilities a user or tenant model declares by inheriting from these classes.

They are plain base classes rather than ABCs so they can be mixed into
SQLAlchemy declarative models without a metaclass conflict. Conformance is
checked with isinstance(), never by probing for attributes.
"""


class TenantAware:
    """A user that belongs to tenants."""

    def get_tenants(self, panel) -> list:
        """Tenants the user can access in the panel, in membership-store order."""
        raise NotImplementedError

    def can_access_tenant(self, tenant) -> bool:
        raise NotImplementedError


class DefaultTenantAware:
    """A user that remembers a preferred tenant."""

    def get_default_tenant(self, panel):
        raise NotImplementedError


class HasTenantName:
    def get_tenant_name(self) -> str:
        raise NotImplementedError


class HasTenantAvatar:
    def get_tenant_avatar_url(self) -> str | None:
        raise NotImplementedError
