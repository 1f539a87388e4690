from .memberships import Membership
from .sessions import SessionEntry
from .tenants import Tenant
from .users import User

__all__ = ["Membership", "SessionEntry", "Tenant", "User"]
