"""
Custom exceptions for tenant resolution, isolation, and lifecycle operations.
"""


class TenancyError(Exception):
    """Base class for tenancy failures. `field` names the input the error belongs to."""

    field = "tenant"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field


class TenantNotFound(TenancyError):
    """Raised when a tenant or member referenced by the caller does not exist."""


class TenantAccessDenied(TenancyError):
    """Raised when a user attempts an action outside their tenant or role."""


class TenantValidationError(TenancyError):
    """Raised for malformed input on create, rename, or invite."""


class TenantRegistrationRequired(TenancyError):
    """The user belongs to no tenant and must create one first."""

    def __init__(self, message: str, *, redirect_to: str):
        super().__init__(message)
        self.redirect_to = redirect_to


class IsolationContextMissing(TenancyError):
    """A tenant-scoped operation ran without an active tenant under connection switching."""

    code = "isolation_context_missing"


class TenantReassignmentError(TenancyError):
    """A persisted tenant-scoped row had its tenant column changed."""

    code = "tenant_reassignment"
