"""
Constants for tenancy concerns.
"""

# Path segment under a panel that hosts the tenant endpoints.
TENANT_ROUTE_PREFIX = "tenant"

# Slugs that would shadow panel routes when used as /<panel>/<slug>.
RESERVED_TENANT_SLUGS = frozenset({"tenant", "login", "logout", "register", "metrics"})

# Session keys.
FLASH_SUCCESS_KEY = "_flash.success"
FLASH_ERRORS_KEY = "_flash.errors"
FLASH_OLD_INPUT_KEY = "_flash.old"

# session.info keys used by the scope injector.
SCOPED_STORE_INFO_KEY = "paneltenancy.scoped_store"
SKIP_TENANT_SCOPE_OPTION = "paneltenancy_skip_tenant_scope"

# Path parameter naming the tenant in tenant-addressed panel routes.
TENANT_ROUTE_PARAMETER = "tenant"

# Response headers naming the panel and tenant a request was served for.
PANEL_RESPONSE_HEADER = "X-Panel"
TENANT_RESPONSE_HEADER = "X-Tenant-Id"
