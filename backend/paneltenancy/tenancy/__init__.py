"Tenancy engine: panel configuration, tenant resolution, data isolation, and lifecycle."

from .constants import TENANT_ROUTE_PREFIX  # noqa: F401
from .context import TenantContext  # noqa: F401
from .contracts import DefaultTenantAware, HasTenantAvatar, HasTenantName, TenantAware  # noqa: F401
from .errors import (  # noqa: F401
    IsolationContextMissing,
    TenancyError,
    TenantAccessDenied,
    TenantNotFound,
    TenantRegistrationRequired,
    TenantValidationError,
)
from .middleware import RequestContextMiddleware  # noqa: F401
from .modes import TenancyMode, parse_mode  # noqa: F401
