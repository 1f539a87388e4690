from .memberships import (
    create_membership,
    get_membership,
    list_members,
    remove_membership,
    update_membership_role,
)
from .sessions import delete_entry, get_entry, put_entry
from .tenants import (
    create_tenant,
    create_tenant_with_owner,
    delete_tenant,
    find_tenant,
    get_tenant_by_id,
    get_tenant_by_slug,
    rename_tenant,
)
from .users import create_user, get_user, get_user_by_email
